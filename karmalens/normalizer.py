"""
Schema normalization for exported simulation logs.

Converts the raw JSON shapes emitted by the various simulators into canonical
LifeRecord sequences (or a NetworkLog for network exports). Every producer
declares its shape through its registry entry; normalization never guesses
the shape from the payload.

Supported shapes:
```json
// MULTI_LIFE
{"lives": [{"t3_history": [...], "atp_history": [...], "start_tick": 0,
            "end_tick": 40, "termination_reason": "atp_exhaustion"}]}

// NESTED_MULTI_LIFE (same as above, one level down)
{"multi_life": {"lives": [...]}}

// SINGLE_LIFE_SUMMARY (only endpoints survive; history becomes [initial, final])
{"life_summary": {"initial_trust": 0.5, "final_trust": 0.62, "initial_atp": 100,
                  "final_atp": 0, "ticks_survived": 37, "termination_reason": "..."}}

// NETWORK_LOG (no lives; routed to the network detector path)
{"num_agents": 12, "num_ticks": 200, "events": [...], "snapshots": [...]}
```

Failure policy: a payload that does not match its declared shape yields None,
never an exception, so one bad export cannot stop the remaining datasets.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from .logging_utils import log_error
from .schemas import (
    Dataset,
    LifeRecord,
    NetworkLog,
    SchemaKind,
    SimulationSource,
    TerminationReason,
)

LifeNormalizer = Callable[[Any, SimulationSource], List[LifeRecord]]

# Defaults for summary-only exports when a field is absent
SUMMARY_DEFAULT_TRUST = 0.5
SUMMARY_DEFAULT_INITIAL_ATP = 100.0
SUMMARY_DEFAULT_FINAL_ATP = 0.0
SUMMARY_DEFAULT_TICKS = 20

DEFAULT_NESTED_KEY = "multi_life"


class MalformedExportError(ValueError):
    """Raised internally when a payload does not match its declared shape."""


def _require_mapping(raw: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise MalformedExportError(f"{what} must be a JSON object, got {type(raw).__name__}")
    return raw


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _value_or(raw: Mapping[str, Any], key: str, default: Any) -> Any:
    # Only a missing/null field falls back; 0 and 0.0 are real data
    value = raw.get(key)
    return default if value is None else value


def _parse_life(raw_life: Any, life_number: int) -> LifeRecord:
    """Convert one raw life entry into a LifeRecord.

    Missing histories default to empty sequences, which naturally silences
    detectors that need at least two samples.
    """
    life = _require_mapping(raw_life, f"life {life_number}")

    trust_history = _first_present(life, "t3_history", "trust_history") or []
    atp_history = _value_or(life, "atp_history", [])
    start_tick = int(_value_or(life, "start_tick", 0))
    end_tick = int(_value_or(life, "end_tick", start_tick))

    return LifeRecord(
        life_number=life_number,
        start_tick=start_tick,
        end_tick=end_tick,
        trust_history=trust_history,
        atp_history=atp_history,
        termination_reason=TerminationReason.parse(life.get("termination_reason")),
        life_state=life.get("life_state"),
    )


def normalize_multi_life(raw: Any, source: SimulationSource) -> List[LifeRecord]:
    """Normalize ``{"lives": [...]}``."""
    payload = _require_mapping(raw, f"{source.id} payload")
    if "lives" not in payload:
        raise MalformedExportError(f"{source.id}: missing 'lives' collection")

    raw_lives = payload["lives"]
    if not isinstance(raw_lives, list):
        raise MalformedExportError(f"{source.id}: 'lives' must be a list")

    return [_parse_life(raw_life, index + 1) for index, raw_life in enumerate(raw_lives)]


def normalize_nested_multi_life(raw: Any, source: SimulationSource) -> List[LifeRecord]:
    """Normalize a multi-life block nested under ``source.nested_key``."""
    payload = _require_mapping(raw, f"{source.id} payload")
    key = source.nested_key or DEFAULT_NESTED_KEY
    if key not in payload:
        raise MalformedExportError(f"{source.id}: missing nested block '{key}'")
    return normalize_multi_life(payload[key], source)


def normalize_single_life_summary(raw: Any, source: SimulationSource) -> List[LifeRecord]:
    """Synthesize a one-life record from a ``life_summary`` block.

    Summary exports cannot reconstruct intermediate ticks, so both histories
    are the two-point approximation ``[initial, final]``.
    """
    payload = _require_mapping(raw, f"{source.id} payload")
    summary = _require_mapping(payload.get("life_summary"), f"{source.id} life_summary")

    initial_trust = float(_value_or(summary, "initial_trust", SUMMARY_DEFAULT_TRUST))
    final_trust = float(_value_or(summary, "final_trust", SUMMARY_DEFAULT_TRUST))
    initial_atp = float(_value_or(summary, "initial_atp", SUMMARY_DEFAULT_INITIAL_ATP))
    final_atp = float(_value_or(summary, "final_atp", SUMMARY_DEFAULT_FINAL_ATP))
    ticks_survived = int(_value_or(summary, "ticks_survived", SUMMARY_DEFAULT_TICKS))
    # An unreported final budget fills the ATP history but says nothing about death
    reported_atp = summary.get("final_atp")
    is_dead = reported_atp is not None and float(reported_atp) <= 0

    return [
        LifeRecord(
            life_number=1,
            start_tick=0,
            end_tick=ticks_survived,
            trust_history=(initial_trust, final_trust),
            atp_history=(initial_atp, final_atp),
            termination_reason=TerminationReason.parse(summary.get("termination_reason")),
            life_state="dead" if is_dead else "alive",
        )
    ]


# Strategy map: schema kind -> life normalizer. NETWORK_LOG is deliberately
# absent; network exports do not fit the life model (see normalize_network).
LIFE_NORMALIZERS: Dict[SchemaKind, LifeNormalizer] = {
    SchemaKind.MULTI_LIFE: normalize_multi_life,
    SchemaKind.NESTED_MULTI_LIFE: normalize_nested_multi_life,
    SchemaKind.SINGLE_LIFE_SUMMARY: normalize_single_life_summary,
}


def normalize(raw: Any, source: SimulationSource) -> Optional[List[LifeRecord]]:
    """Convert a raw export into canonical LifeRecords.

    Args:
        raw: Parsed JSON document
        source: Registry entry declaring the document's shape

    Returns:
        List of LifeRecords in life order, or None when the payload is
        malformed or the shape has no life representation (network logs).
    """
    normalizer = LIFE_NORMALIZERS.get(source.schema_kind)
    if normalizer is None:
        return None

    try:
        return normalizer(raw, source)
    except (ValueError, TypeError) as exc:
        # pydantic.ValidationError is a ValueError subclass
        log_error(f"[Normalize] Skipping {source.id}: {exc}")
        return None


def normalize_network(raw: Any, source: SimulationSource) -> Optional[NetworkLog]:
    """Parse a network export into a NetworkLog, or None when malformed."""
    try:
        payload = _require_mapping(raw, f"{source.id} payload")
        events = _value_or(payload, "events", [])
        snapshots = _value_or(payload, "snapshots", [])
        if not isinstance(events, list) or not isinstance(snapshots, list):
            raise MalformedExportError(f"{source.id}: 'events' and 'snapshots' must be lists")
        return NetworkLog(
            num_agents=int(_value_or(payload, "num_agents", 0)),
            num_ticks=int(_value_or(payload, "num_ticks", 0)),
            events=events,
            snapshots=snapshots,
        )
    except (ValueError, TypeError) as exc:
        log_error(f"[Normalize] Skipping {source.id}: {exc}")
        return None


def load_dataset(raw: Any, source: SimulationSource) -> Optional[Dataset]:
    """Normalize a raw export into a Dataset (lives or network log), or None."""
    if source.schema_kind is SchemaKind.NETWORK_LOG:
        network = normalize_network(raw, source)
        if network is None:
            return None
        return Dataset(
            id=source.id,
            label=source.label,
            narrative_id=source.narrative_id,
            schema_kind=source.schema_kind,
            network=network,
        )

    lives = normalize(raw, source)
    if lives is None:
        return None
    return Dataset(
        id=source.id,
        label=source.label,
        narrative_id=source.narrative_id,
        schema_kind=source.schema_kind,
        lives=tuple(lives),
    )
