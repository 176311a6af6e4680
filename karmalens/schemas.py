"""
Pydantic schemas for the karmalens analytics engine.

All canonical data structures produced by normalization and consumed by the
detector catalog, ranking engine and ecosystem aggregator are defined here.
Interaction-pattern schemas live in ``karmalens.patterns.schemas``.

Design Philosophy:
- Canonical shapes only: every supported export format is converted into
  LifeRecord/Dataset before any detector sees it
- Frozen models with tuple histories (inputs are read-only once loaded)
- Moments carry their numeric evidence in ``data`` so narratives can be
  regenerated and compared byte-for-byte
"""

from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enumerations
# ============================================================================


class SchemaKind(str, Enum):
    """Raw export shape declared by a registry entry (never sniffed from content)."""

    MULTI_LIFE = "multi_life"
    NESTED_MULTI_LIFE = "nested_multi_life"
    SINGLE_LIFE_SUMMARY = "single_life_summary"
    NETWORK_LOG = "network_log"


class TerminationReason(str, Enum):
    """Why a life ended (``alive`` when the export stopped mid-life)."""

    ATP_EXHAUSTION = "atp_exhaustion"
    TRUST_COLLAPSE = "trust_collapse"
    NATURAL = "natural"
    ALIVE = "alive"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "TerminationReason":
        """Map a producer string onto the enum; anything unrecognized is UNKNOWN."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


class MomentCategory(str, Enum):
    """What kind of story a moment tells."""

    TRUST = "trust"          # Trust collapses and surges
    ATP = "atp"              # Attention budget events
    KARMA = "karma"          # Cross-life consequences
    LEARNING = "learning"    # Maturation across lives
    CRISIS = "crisis"        # Death, near-death, ATP exhaustion
    EMERGENCE = "emergence"  # Threshold crossings, coalition formation


class MomentSeverity(str, Enum):
    """How strongly a moment should be surfaced."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class MomentKind(str, Enum):
    """Which detector emitted a moment."""

    KARMA = "karma"
    COLLAPSE = "collapse"
    SURGE = "surge"
    THRESHOLD = "threshold"
    ATP_CRISIS = "atp_crisis"
    MATURATION = "maturation"
    DEATH = "death"
    COALITION = "coalition"
    NETWORK_EVOLUTION = "network_evolution"


# ============================================================================
# Source Registry Schemas
# ============================================================================


class SimulationSource(BaseModel):
    """One registry entry describing where a dataset lives and how it is shaped."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable dataset identifier used in moment ids")
    filename: str = Field(..., description="Static JSON document to fetch")
    label: str = Field(..., description="Human-friendly dataset name")
    # Narrative id links moments back to the long-form story page for the same run
    narrative_id: Optional[str] = Field(None, description="Optional narrative cross-link")
    schema_kind: SchemaKind = Field(
        SchemaKind.MULTI_LIFE, description="Which raw export shape this file uses"
    )
    # Only meaningful for NESTED_MULTI_LIFE exports ("policy" runs nest lives one level down)
    nested_key: Optional[str] = Field(
        None, description="Key holding the nested multi-life block"
    )


# ============================================================================
# Life / Dataset Schemas
# ============================================================================


class LifeRecord(BaseModel):
    """One episode of an agent's existence, from birth (or rebirth) to termination.

    Trust and ATP histories are independent series: producers do not guarantee
    equal lengths, so every accessor below is bounds-checked and returns None
    when the requested sample does not exist.
    """

    model_config = ConfigDict(frozen=True)

    life_number: int = Field(..., ge=1, description="1-based position within the dataset")
    start_tick: int = Field(0, ge=0, description="Tick at which the life began")
    end_tick: int = Field(0, ge=0, description="Tick at which the life ended")
    # Trust is conceptually bounded to [0, 1] but out-of-range producer values are kept as data
    trust_history: Tuple[float, ...] = Field(default=(), description="T3 trust per tick")
    atp_history: Tuple[float, ...] = Field(default=(), description="ATP budget per tick")
    termination_reason: TerminationReason = Field(
        TerminationReason.UNKNOWN, description="Why the life ended"
    )
    # Some producers report an explicit state ("dead"/"alive") alongside the reason
    life_state: Optional[str] = Field(None, description="Producer-reported life state")

    @model_validator(mode="after")
    def _check_tick_order(self) -> "LifeRecord":
        if self.end_tick < self.start_tick:
            raise ValueError(
                f"Life {self.life_number}: end_tick {self.end_tick} precedes start_tick {self.start_tick}"
            )
        return self

    @property
    def initial_trust(self) -> Optional[float]:
        return self.trust_history[0] if self.trust_history else None

    @property
    def final_trust(self) -> Optional[float]:
        return self.trust_history[-1] if self.trust_history else None

    @property
    def initial_atp(self) -> Optional[float]:
        return self.atp_history[0] if self.atp_history else None

    @property
    def final_atp(self) -> Optional[float]:
        return self.atp_history[-1] if self.atp_history else None


class NetworkEvent(BaseModel):
    """A single event from a multi-agent trust network log.

    Producers disagree on the key naming the event type (``event_type`` vs
    ``type``); both are accepted and normalized onto ``event_type``.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    event_type: Optional[str] = Field(None, description="Event type, e.g. coalition_formed")
    tick: int = Field(0, description="Tick at which the event happened")
    # Producers report members as agent names or as integer agent indices
    members: Tuple[Union[str, int], ...] = Field(default=(), description="Agents involved, when reported")

    @model_validator(mode="before")
    @classmethod
    def _accept_type_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("event_type") is None and "type" in data:
            data = {**data, "event_type": data["type"]}
        if isinstance(data, dict) and data.get("tick") is None:
            data = {**data, "tick": 0}
        return data


class NetworkLog(BaseModel):
    """Event/snapshot log from the multi-agent trust network simulator."""

    model_config = ConfigDict(frozen=True)

    num_agents: int = Field(0, ge=0, description="Agents in the simulated society")
    num_ticks: int = Field(0, ge=0, description="Ticks simulated")
    events: Tuple[NetworkEvent, ...] = Field(default=(), description="Event log in emission order")
    # Snapshots are opaque to the engine; only their count matters to detection
    snapshots: Tuple[Dict[str, Any], ...] = Field(default=(), description="Periodic network snapshots")


class Dataset(BaseModel):
    """A successfully loaded dataset in canonical form.

    Lives are temporally sequential: life i+1 begins where life i ended and
    its first trust value is derived from life i's last one (karma).
    Network datasets carry a NetworkLog instead of lives.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Dataset identifier (copied from the source)")
    label: str = Field(..., description="Human-friendly dataset name")
    narrative_id: Optional[str] = Field(None, description="Optional narrative cross-link")
    schema_kind: SchemaKind = Field(SchemaKind.MULTI_LIFE, description="Raw shape it came from")
    lives: Tuple[LifeRecord, ...] = Field(default=(), description="Lives in temporal order")
    network: Optional[NetworkLog] = Field(None, description="Network log for network datasets")

    def trust_samples(self) -> Iterator[float]:
        """Yield every trust sample across every life, in order."""
        for life in self.lives:
            yield from life.trust_history


# ============================================================================
# Moment Schemas
# ============================================================================

# Numeric evidence behind a narrative. Strings are allowed for categorical
# evidence (termination reason, coalition members).
MomentValue = Union[int, float, str]


class Moment(BaseModel):
    """An algorithmically detected, narratively described significant event.

    Moments are pure derived values: recomputed on every pass, never mutated,
    and identical input always yields identical moments (same ids, same text).
    """

    model_config = ConfigDict(frozen=True)

    # Derived from dataset id + detector kind + life + sample index, so re-detection is idempotent
    id: str = Field(..., description="Deterministic moment identifier")
    title: str = Field(..., description="Short templated headline")
    narrative: str = Field(..., description="Templated narrative filled from numeric evidence")
    significance: str = Field(..., description="Fixed explanation per detector kind")
    kind: MomentKind = Field(..., description="Detector that emitted the moment")
    category: MomentCategory = Field(..., description="Story category")
    severity: MomentSeverity = Field(..., description="Surfacing severity")
    tick: int = Field(..., description="Tick the moment refers to")
    # Network-level moments are not tied to a life and use 0
    life_number: int = Field(..., ge=0, description="Life the moment belongs to")
    simulation_id: str = Field(..., description="Dataset the moment was detected in")
    simulation_label: str = Field("", description="Dataset label for display")
    narrative_id: Optional[str] = Field(None, description="Optional narrative cross-link")
    data: Dict[str, MomentValue] = Field(
        default_factory=dict, description="Numeric evidence used to fill the narrative"
    )


class MomentStats(BaseModel):
    """Histogram summary of a moment set."""

    total: int = Field(0, ge=0)
    by_category: Dict[MomentCategory, int] = Field(default_factory=dict)
    by_severity: Dict[MomentSeverity, int] = Field(default_factory=dict)
    by_simulation: Dict[str, int] = Field(default_factory=dict)
    most_interesting: Optional[Moment] = Field(None, description="Top-ranked moment, if any")


# ============================================================================
# Ecosystem Schemas
# ============================================================================


class TrustRange(BaseModel):
    """Observed trust extremes across a flattened sample population."""

    minimum: float = 0.0
    maximum: float = 0.0


class EcosystemStats(BaseModel):
    """Aggregate "state of the ecosystem" over every successfully loaded dataset."""

    total_simulations: int = Field(0, ge=0, description="Datasets that loaded successfully")
    total_lives: int = Field(0, ge=0, description="Lives across all datasets")
    total_trust_samples: int = Field(0, ge=0, description="Trust samples in the flattened population")
    # Mean over the single flattened population, not a mean of per-dataset means
    average_trust: float = Field(0.0, description="Mean of every trust sample")
    trust_range: TrustRange = Field(default_factory=TrustRange)
    # Per life: max(0, first ATP - last ATP); a life that gains ATP contributes 0
    total_atp_consumed: float = Field(0.0, ge=0, description="Net ATP spent across lives")
    total_moments: int = Field(0, ge=0)
    threshold_crossings: int = Field(0, ge=0, description="Emergence moments from trust crossings")
    karma_events: int = Field(0, ge=0)
    crisis_events: int = Field(0, ge=0)
    emergence_events: int = Field(0, ge=0)
    moments_by_category: Dict[MomentCategory, int] = Field(default_factory=dict)
