"""
Timeline projection and moment overlay.

A DatasetTimeline flattens every life of a dataset into one continuous
trust (and ATP) series for plotting. ``place_moments`` maps detected moments
onto positions in that flattened series.

Moments whose life or tick falls outside the visible view are dropped, never
clamped onto the nearest sample: a clamped marker would point at a value the
moment does not describe.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .schemas import Dataset, LifeRecord, Moment, MomentSeverity


DEFAULT_MARKER_LIMIT = 20

SEVERITY_ORDER: Dict[MomentSeverity, int] = {
    MomentSeverity.CRITICAL: 0,
    MomentSeverity.HIGH: 1,
    MomentSeverity.MEDIUM: 2,
}


class TimelineMetric(str, Enum):
    TRUST = "trust"
    ATP = "atp"


class DatasetTimeline(BaseModel):
    """Flattened view of one dataset's lives."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    narrative_id: Optional[str] = None
    lives: Tuple[LifeRecord, ...] = ()
    trust_flat: Tuple[float, ...] = Field(default=(), description="Trust samples across all lives")
    atp_flat: Tuple[float, ...] = Field(default=(), description="ATP samples across all lives")
    final_trust: float = 0.0
    average_trust: float = 0.0
    # Last life's final trust minus first life's initial trust; None for single-life datasets
    cross_life_growth: Optional[float] = None

    @property
    def life_count(self) -> int:
        return len(self.lives)

    def series(self, metric: TimelineMetric) -> Tuple[float, ...]:
        return self.trust_flat if metric == TimelineMetric.TRUST else self.atp_flat


class MomentMarker(BaseModel):
    """A moment positioned on a flattened timeline."""

    model_config = ConfigDict(frozen=True)

    moment: Moment
    flat_index: int = Field(..., ge=0)
    # 0.0 is the first sample of the series and 1.0 the last
    norm_position: float = Field(..., ge=0.0, le=1.0)
    value: float


def build_timeline(dataset: Dataset) -> Optional[DatasetTimeline]:
    """Flatten a dataset's lives, or None when it has no lives (e.g. network logs)."""
    if not dataset.lives:
        return None

    trust_flat = tuple(sample for life in dataset.lives for sample in life.trust_history)
    atp_flat = tuple(sample for life in dataset.lives for sample in life.atp_history)

    growth: Optional[float] = None
    if len(dataset.lives) > 1:
        first_start = dataset.lives[0].initial_trust
        last_end = dataset.lives[-1].final_trust
        if first_start is not None and last_end is not None:
            growth = last_end - first_start

    return DatasetTimeline(
        id=dataset.id,
        label=dataset.label,
        narrative_id=dataset.narrative_id,
        lives=dataset.lives,
        trust_flat=trust_flat,
        atp_flat=atp_flat,
        final_trust=trust_flat[-1] if trust_flat else 0.0,
        average_trust=sum(trust_flat) / len(trust_flat) if trust_flat else 0.0,
        cross_life_growth=growth,
    )


def _life_series(life: LifeRecord, metric: TimelineMetric) -> Tuple[float, ...]:
    return life.trust_history if metric == TimelineMetric.TRUST else life.atp_history


def locate_moment(
    moment: Moment,
    timeline: DatasetTimeline,
    metric: TimelineMetric = TimelineMetric.TRUST,
) -> Optional[int]:
    """Index of a moment in the timeline's flattened series, or None if out of view."""
    life_index = moment.life_number - 1
    if life_index < 0 or life_index >= len(timeline.lives):
        return None

    life = timeline.lives[life_index]
    tick_in_life = moment.tick - life.start_tick
    if tick_in_life < 0 or tick_in_life >= len(_life_series(life, metric)):
        return None

    offset = sum(len(_life_series(earlier, metric)) for earlier in timeline.lives[:life_index])
    return offset + tick_in_life


def place_moments(
    moments: Sequence[Moment],
    timelines: Sequence[DatasetTimeline],
    metric: TimelineMetric = TimelineMetric.TRUST,
    limit: int = DEFAULT_MARKER_LIMIT,
) -> List[MomentMarker]:
    """Position moments on the visible timelines.

    Moments from datasets not in ``timelines`` and moments that fall outside
    their life's samples are dropped. Remaining markers are ordered by
    severity (stable) and truncated to ``limit``.
    """
    by_id = {timeline.id: timeline for timeline in timelines}
    markers: List[MomentMarker] = []

    for moment in moments:
        timeline = by_id.get(moment.simulation_id)
        if timeline is None:
            continue

        flat_index = locate_moment(moment, timeline, metric)
        if flat_index is None:
            continue

        values = timeline.series(metric)
        markers.append(
            MomentMarker(
                moment=moment,
                flat_index=flat_index,
                norm_position=flat_index / (len(values) - 1) if len(values) > 1 else 0.5,
                value=values[flat_index],
            )
        )

    markers.sort(key=lambda marker: SEVERITY_ORDER[marker.moment.severity])
    return markers[: max(limit, 0)]
