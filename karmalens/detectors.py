"""
Moment detector catalog.

Each detector is an independent, pure rule over one life (plus the
immediately preceding life of the same dataset) that emits zero or more
Moments. Detectors never share state through closures or globals: rules that
report only the first occurrence of something receive a DetectionState
accumulator and return an updated copy alongside their moments.

Narratives are fixed templates filled with formatted numbers, so running the
catalog twice over identical input produces byte-identical moments.

Catalog (per life, in this order):
- Karma inheritance      (life 2+)  rebirth trust differs from previous final trust
- Trust collapse                    consecutive drop of at least 20%
- Trust surge                       consecutive rise of at least 15%
- Threshold crossing                first upward crossing of the 0.5 trust threshold
- ATP crisis                        first fall to 20 ATP or below
- Maturation             (life 2+)  final trust improves by more than 0.05
- Death by exhaustion               life ended from ATP exhaustion

Network exports run a separate catalog (first coalition, network evolution).

Known limitations: the ATP-crisis rule reports only the first
crisis of a life, and maturation compares final trust values only.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .schemas import (
    Dataset,
    LifeRecord,
    Moment,
    MomentCategory,
    MomentKind,
    MomentSeverity,
    MomentValue,
    NetworkLog,
    TerminationReason,
)


# ============================================================================
# Thresholds
# ============================================================================

CONSCIOUSNESS_THRESHOLD = 0.5
KARMA_MIN_EFFECT = 0.001
COLLAPSE_MIN_DROP = 0.20
SURGE_MIN_RISE = 0.15
ATP_CRISIS_LEVEL = 20.0
MATURATION_MIN_GAIN = 0.05
COALITION_EVENT_TYPE = "coalition_formed"
MIN_SNAPSHOTS_FOR_EVOLUTION = 2


# ============================================================================
# Detector plumbing
# ============================================================================


@dataclass(frozen=True)
class DetectionState:
    """Accumulator for first-occurrence detectors.

    Holds the (detector kind, scope) pairs that have already fired. Scope is
    the life number for per-life rules and 0 for dataset-wide rules.
    """

    fired: FrozenSet[Tuple[str, int]] = field(default_factory=frozenset)

    def has_fired(self, kind: str, scope: int) -> bool:
        return (kind, scope) in self.fired

    def mark(self, kind: str, scope: int) -> "DetectionState":
        return DetectionState(fired=self.fired | {(kind, scope)})


@dataclass(frozen=True)
class LifeContext:
    """Inputs visible to a life detector."""

    dataset: Dataset
    life: LifeRecord
    # Immediately preceding life of the same dataset; None for the first life
    prev_life: Optional[LifeRecord] = None


DetectionResult = Tuple[List[Moment], DetectionState]
LifeDetector = Callable[[LifeContext, DetectionState], DetectionResult]
NetworkDetector = Callable[[Dataset, NetworkLog, DetectionState], DetectionResult]


def percent_change(prev: float, curr: float) -> float:
    """Return ``abs((curr - prev) / prev)``, or 0.0 on a zero or negative baseline.

    Guarding the baseline keeps a zero sample from producing Infinity/NaN and
    with it a spurious collapse or surge.
    """
    if prev <= 0:
        return 0.0
    change = abs((curr - prev) / prev)
    return change if math.isfinite(change) else 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _fmt(value: float, places: int = 3) -> str:
    return f"{value:.{places}f}"


def _pct(fraction: float, places: int = 0) -> str:
    return f"{fraction * 100:.{places}f}"


def _build_moment(
    dataset: Dataset,
    *,
    kind: MomentKind,
    moment_id: str,
    title: str,
    narrative: str,
    significance: str,
    category: MomentCategory,
    severity: MomentSeverity,
    tick: int,
    life_number: int,
    data: Dict[str, MomentValue],
) -> Moment:
    return Moment(
        id=f"{dataset.id}-{moment_id}",
        kind=kind,
        title=title,
        narrative=narrative,
        significance=significance,
        category=category,
        severity=severity,
        tick=tick,
        life_number=life_number,
        simulation_id=dataset.id,
        simulation_label=dataset.label,
        narrative_id=dataset.narrative_id,
        data=data,
    )


def _consecutive_pairs(history: Tuple[float, ...]) -> Iterable[Tuple[int, float, float]]:
    """Yield ``(index, prev, curr)`` for every adjacent pair of samples."""
    for index in range(1, len(history)):
        yield index, history[index - 1], history[index]


# ============================================================================
# Life detectors
# ============================================================================

SIGNIFICANCE_KARMA = "Trust is not reset on rebirth: karma carries the previous life's standing forward."
SIGNIFICANCE_COLLAPSE = "Trust is asymmetric. It is slow to build and quick to lose, much like real reputations."
SIGNIFICANCE_SURGE = "Consistent behavior compounds, and coherent action patterns accelerate trust growth."
SIGNIFICANCE_THRESHOLD = "The 0.5 threshold marks the transition from reactive behavior to recognizably intentional behavior."
SIGNIFICANCE_ATP_CRISIS = "ATP is the metabolic budget of the society. Running low forces a choice between conserving and contributing."
SIGNIFICANCE_MATURATION = "The agent is discovering effective behavior through experience and carrying it across lives."
SIGNIFICANCE_DEATH = "Death by exhaustion is what gives trust its stakes: without it, reputation would be free."


def detect_karma_inheritance(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """Rebirth whose initial trust differs from the previous life's final trust."""
    if ctx.prev_life is None:
        return [], state

    prev_final = ctx.prev_life.final_trust
    new_initial = ctx.life.initial_trust
    if prev_final is None or new_initial is None:
        return [], state

    karma_effect = new_initial - prev_final
    if abs(karma_effect) <= KARMA_MIN_EFFECT:
        return [], state

    life_number = ctx.life.life_number
    if karma_effect > 0:
        title = f"Karma Rewards: Life {life_number} Begins Stronger"
        narrative = (
            f"Life {life_number - 1} ended with trust {_fmt(prev_final)} and the agent is reborn "
            f"at {_fmt(new_initial)}, a karma bonus of {_pct(karma_effect, 1)}%. "
            "Good conduct in one life compounds into the next."
        )
    else:
        title = f"Karma Consequences: Life {life_number} Starts Diminished"
        narrative = (
            f"Life {life_number} starts at trust {_fmt(new_initial)}, down from the previous "
            f"life's final {_fmt(prev_final)}. Earlier behavior carries a lasting cost."
        )

    moment = _build_moment(
        ctx.dataset,
        kind=MomentKind.KARMA,
        moment_id=f"rebirth-{life_number}",
        title=title,
        narrative=narrative,
        significance=SIGNIFICANCE_KARMA,
        category=MomentCategory.KARMA,
        severity=MomentSeverity.CRITICAL,
        tick=ctx.life.start_tick,
        life_number=life_number,
        data={
            "prev_final_trust": prev_final,
            "new_initial_trust": new_initial,
            "karma_effect": karma_effect,
        },
    )
    return [moment], state


def detect_trust_collapse(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """Every consecutive trust drop of at least 20% of the previous sample."""
    moments: List[Moment] = []
    life = ctx.life
    for index, prev, curr in _consecutive_pairs(life.trust_history):
        change = curr - prev
        pct = percent_change(prev, curr)
        if change < 0 and pct >= COLLAPSE_MIN_DROP:
            moments.append(
                _build_moment(
                    ctx.dataset,
                    kind=MomentKind.COLLAPSE,
                    moment_id=f"collapse-{life.life_number}-{index}",
                    title=f"Trust Collapse: {_pct(pct)}% Drop in Life {life.life_number}",
                    narrative=(
                        f"Trust falls from {_fmt(prev)} to {_fmt(curr)}, a {_pct(pct)}% collapse. "
                        "Something the agent did broke the society's expectations, and the "
                        "damage may follow it into future lives."
                    ),
                    significance=SIGNIFICANCE_COLLAPSE,
                    category=MomentCategory.TRUST,
                    severity=MomentSeverity.CRITICAL,
                    tick=life.start_tick + index,
                    life_number=life.life_number,
                    data={"prev_trust": prev, "new_trust": curr, "percent_change": pct},
                )
            )
    return moments, state


def detect_trust_surge(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """Every consecutive trust rise of at least 15% of the previous sample."""
    moments: List[Moment] = []
    life = ctx.life
    for index, prev, curr in _consecutive_pairs(life.trust_history):
        change = curr - prev
        pct = percent_change(prev, curr)
        if change > 0 and pct >= SURGE_MIN_RISE:
            moments.append(
                _build_moment(
                    ctx.dataset,
                    kind=MomentKind.SURGE,
                    moment_id=f"spike-{life.life_number}-{index}",
                    title=f"Trust Surge: +{_pct(pct)}% in Life {life.life_number}",
                    narrative=(
                        f"Trust jumps from {_fmt(prev)} to {_fmt(curr)}, a {_pct(pct)}% surge. "
                        "The society is recognizing a run of genuine contribution."
                    ),
                    significance=SIGNIFICANCE_SURGE,
                    category=MomentCategory.TRUST,
                    severity=MomentSeverity.HIGH,
                    tick=life.start_tick + index,
                    life_number=life.life_number,
                    data={"prev_trust": prev, "new_trust": curr, "percent_change": pct},
                )
            )
    return moments, state


def detect_threshold_crossing(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """First upward crossing of the consciousness threshold within a life.

    Falling back below 0.5 and rising again later in the same life is not
    reported a second time.
    """
    life = ctx.life
    if state.has_fired("threshold", life.life_number):
        return [], state

    for index, prev, curr in _consecutive_pairs(life.trust_history):
        if prev < CONSCIOUSNESS_THRESHOLD <= curr:
            moment = _build_moment(
                ctx.dataset,
                kind=MomentKind.THRESHOLD,
                moment_id=f"threshold-{life.life_number}-{index}",
                title=f"Consciousness Threshold Crossed in Life {life.life_number}",
                narrative=(
                    f"Trust reaches {_fmt(curr)}, crossing the {CONSCIOUSNESS_THRESHOLD} threshold. "
                    "Below it the agent's behavior reads as noise; above it, its actions are "
                    "coherent enough to be recognized as intentional."
                ),
                significance=SIGNIFICANCE_THRESHOLD,
                category=MomentCategory.EMERGENCE,
                severity=MomentSeverity.CRITICAL,
                tick=life.start_tick + index,
                life_number=life.life_number,
                data={"prev_trust": prev, "new_trust": curr},
            )
            return [moment], state.mark("threshold", life.life_number)

    return [], state


def detect_atp_crisis(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """First fall of the ATP budget to the crisis level within a life.

    Only the first crossing is reported; a life that recovers and crashes
    again is not reported twice.
    """
    life = ctx.life
    if state.has_fired("atp-crisis", life.life_number):
        return [], state

    for index, prev, curr in _consecutive_pairs(life.atp_history):
        if curr <= ATP_CRISIS_LEVEL and prev > ATP_CRISIS_LEVEL:
            remaining = round_half_up(curr)
            moment = _build_moment(
                ctx.dataset,
                kind=MomentKind.ATP_CRISIS,
                moment_id=f"atp-crisis-{life.life_number}-{index}",
                title=f"ATP Crisis: Only {remaining} Attention Remaining",
                narrative=(
                    f"The attention budget drops to {remaining} ATP. Unless the agent earns more "
                    "through valuable contribution it will die of exhaustion: participation "
                    "costs energy, and energy has to be earned."
                ),
                significance=SIGNIFICANCE_ATP_CRISIS,
                category=MomentCategory.CRISIS,
                severity=MomentSeverity.HIGH,
                tick=life.start_tick + index,
                life_number=life.life_number,
                data={"current_atp": remaining, "previous_atp": round_half_up(prev)},
            )
            return [moment], state.mark("atp-crisis", life.life_number)

    return [], state


def detect_maturation(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """Final trust improved by more than 0.05 over the previous life's final trust."""
    if ctx.prev_life is None:
        return [], state

    prev_final = ctx.prev_life.final_trust
    curr_final = ctx.life.final_trust
    if prev_final is None or curr_final is None:
        return [], state

    improvement = curr_final - prev_final
    if improvement <= MATURATION_MIN_GAIN:
        return [], state

    life_number = ctx.life.life_number
    moment = _build_moment(
        ctx.dataset,
        kind=MomentKind.MATURATION,
        moment_id=f"maturation-{life_number}",
        title="Maturation: Trust Improves Across Lives",
        narrative=(
            f"Life {life_number} ends at trust {_fmt(curr_final)}, up from {_fmt(prev_final)} "
            f"at the end of life {life_number - 1}, an improvement of {_pct(improvement, 1)}%. "
            "The agent is learning what works and carrying it forward."
        ),
        significance=SIGNIFICANCE_MATURATION,
        category=MomentCategory.LEARNING,
        severity=MomentSeverity.HIGH,
        tick=ctx.life.end_tick,
        life_number=life_number,
        data={
            "prev_final_trust": prev_final,
            "curr_final_trust": curr_final,
            "improvement": improvement,
        },
    )
    return [moment], state


def detect_exhaustion_death(ctx: LifeContext, state: DetectionState) -> DetectionResult:
    """Life terminated by ATP exhaustion (reported reason or dead with empty budget)."""
    life = ctx.life
    exhausted = life.termination_reason is TerminationReason.ATP_EXHAUSTION
    if not exhausted and life.life_state == "dead":
        final_atp = life.final_atp
        exhausted = final_atp is not None and final_atp <= 0
    if not exhausted:
        return [], state

    final_trust = life.final_trust if life.final_trust is not None else 0.0
    moment = _build_moment(
        ctx.dataset,
        kind=MomentKind.DEATH,
        moment_id=f"death-{life.life_number}",
        title=f"Death by Exhaustion: Life {life.life_number} Ends",
        narrative=(
            f"ATP runs out and life {life.life_number} ends with trust {_fmt(final_trust)}. "
            "The agent no longer has the capacity to act, but its trust becomes the seed "
            "of the next life."
        ),
        significance=SIGNIFICANCE_DEATH,
        category=MomentCategory.CRISIS,
        severity=MomentSeverity.CRITICAL,
        tick=life.end_tick,
        life_number=life.life_number,
        data={"final_trust": final_trust, "termination_reason": life.termination_reason.value},
    )
    return [moment], state


# Stages run in order for each life. Moments of detectors sharing a stage are
# interleaved by sample tick (collapse, surge, threshold at each index).
LIFE_DETECTORS: Tuple[Tuple[LifeDetector, ...], ...] = (
    (detect_karma_inheritance,),
    (detect_trust_collapse, detect_trust_surge, detect_threshold_crossing),
    (detect_atp_crisis,),
    (detect_maturation,),
    (detect_exhaustion_death,),
)


# ============================================================================
# Network detectors
# ============================================================================

SIGNIFICANCE_COALITION = "Coalitions arise from individual trust dynamics, not from central coordination."
SIGNIFICANCE_EVOLUTION = "Individual trust decisions add up to social structure that no single agent designed."


def detect_first_coalition(dataset: Dataset, network: NetworkLog, state: DetectionState) -> DetectionResult:
    """First ``coalition_formed`` event in the network log."""
    if state.has_fired("coalition", 0):
        return [], state

    coalition_events = [e for e in network.events if e.event_type == COALITION_EVENT_TYPE]
    if not coalition_events:
        return [], state

    first = coalition_events[0]
    moment = _build_moment(
        dataset,
        kind=MomentKind.COALITION,
        moment_id="coalition-first",
        title="First Coalition Forms",
        narrative=(
            f"At tick {first.tick} a group of agents forms a coalition. Nobody programmed it: "
            "their trust interactions created the conditions for cooperation to appear."
        ),
        significance=SIGNIFICANCE_COALITION,
        category=MomentCategory.EMERGENCE,
        severity=MomentSeverity.CRITICAL,
        tick=first.tick,
        life_number=0,
        data={
            "coalition_count": len(coalition_events),
            "members": ", ".join(str(member) for member in first.members),
        },
    )
    return [moment], state.mark("coalition", 0)


def detect_network_evolution(dataset: Dataset, network: NetworkLog, state: DetectionState) -> DetectionResult:
    """One summary moment for any network log with at least two snapshots."""
    if len(network.snapshots) < MIN_SNAPSHOTS_FOR_EVOLUTION:
        return [], state

    moment = _build_moment(
        dataset,
        kind=MomentKind.NETWORK_EVOLUTION,
        moment_id="network-evolution",
        title=f"Network Evolves: {network.num_agents} Agents Over {network.num_ticks} Ticks",
        narrative=(
            f"{network.num_agents} agents with different strategies interact for "
            f"{network.num_ticks} ticks and produce {len(network.events)} events. Trust links "
            "form and break and coalitions come and go; the final network is the sum of "
            "every individual interaction."
        ),
        significance=SIGNIFICANCE_EVOLUTION,
        category=MomentCategory.EMERGENCE,
        severity=MomentSeverity.HIGH,
        tick=0,
        life_number=0,
        data={
            "agent_count": network.num_agents,
            "total_events": len(network.events),
            "snapshot_count": len(network.snapshots),
        },
    )
    return [moment], state


NETWORK_DETECTORS: Tuple[NetworkDetector, ...] = (
    detect_first_coalition,
    detect_network_evolution,
)


# ============================================================================
# Catalog runners
# ============================================================================



def detect_life_moments(
    dataset: Dataset,
    stages: Tuple[Tuple[LifeDetector, ...], ...] = LIFE_DETECTORS,
) -> List[Moment]:
    """Run the life detector stages over every life of a dataset.

    Lives are processed in order so each life sees the already-processed,
    immediately preceding life of the same dataset as ``prev_life``.
    """
    moments: List[Moment] = []
    state = DetectionState()
    prev_life: Optional[LifeRecord] = None

    for life in dataset.lives:
        ctx = LifeContext(dataset=dataset, life=life, prev_life=prev_life)
        for stage in stages:
            stage_moments: List[Moment] = []
            for detector in stage:
                found, state = detector(ctx, state)
                stage_moments.extend(found)
            # sorted() is stable, so detectors firing on the same sample keep stage order
            moments.extend(sorted(stage_moments, key=lambda moment: moment.tick))
        prev_life = life

    return moments


def detect_network_moments(
    dataset: Dataset,
    detectors: Tuple[NetworkDetector, ...] = NETWORK_DETECTORS,
) -> List[Moment]:
    """Run the network detectors over a network dataset (empty for life datasets)."""
    if dataset.network is None:
        return []

    moments: List[Moment] = []
    state = DetectionState()
    for detector in detectors:
        found, state = detector(dataset, dataset.network, state)
        moments.extend(found)
    return moments


def detect_moments(dataset: Dataset) -> List[Moment]:
    """Run the detector catalog appropriate for the dataset's shape."""
    if dataset.network is not None:
        return detect_network_moments(dataset)
    return detect_life_moments(dataset)


def detect_all(datasets: Iterable[Dataset]) -> List[Moment]:
    """Detect moments for every dataset, concatenated in dataset order."""
    moments: List[Moment] = []
    for dataset in datasets:
        moments.extend(detect_moments(dataset))
    return moments
