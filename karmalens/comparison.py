"""
Side-by-side comparison of simulation runs.

``compare`` reduces one dataset to a row of headline figures (start and end
values, averages, volatility, major moments). ``compare_all`` builds every
row and picks out the runs worth calling out: the strongest trust growth,
the steadiest trust, the runs that crossed the consciousness threshold while
others did not, and the most eventful run.

Start values come from the first sample of the first life and end values
from the last sample of the last life. A missing sample leaves the figure
(and its change) as None instead of inventing a value.
"""

import math
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .detectors import CONSCIOUSNESS_THRESHOLD
from .schemas import Dataset, Moment, MomentSeverity


MAJOR_SEVERITIES = (MomentSeverity.CRITICAL, MomentSeverity.HIGH)


class ComparativeMetrics(BaseModel):
    """Headline figures for one dataset."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    total_lives: int = 0
    # Trust samples across all lives
    total_ticks: int = 0

    start_trust: Optional[float] = None
    end_trust: Optional[float] = None
    trust_change: Optional[float] = None
    start_atp: Optional[float] = None
    end_atp: Optional[float] = None
    atp_change: Optional[float] = None

    average_trust: float = 0.0
    average_atp: float = 0.0
    # Population standard deviation over the flattened series
    trust_volatility: float = 0.0
    atp_volatility: float = 0.0

    crossed_threshold: bool = Field(False, description="Any trust sample at or above the threshold")
    major_events: int = Field(0, ge=0, description="Critical and high severity moments")


class ComparisonReport(BaseModel):
    """Rows for every compared dataset plus the runs that stand out."""

    metrics: List[ComparativeMetrics] = Field(default_factory=list)
    # Dataset ids; None when nothing qualifies
    highest_growth: Optional[str] = None
    most_stable: Optional[str] = None
    most_eventful: Optional[str] = None
    # Only reported when some, but not all, runs crossed
    threshold_crossers: List[str] = Field(default_factory=list)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def volatility(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for an empty series."""
    if not values:
        return 0.0
    mean = _mean(values)
    return math.sqrt(sum((value - mean) ** 2 for value in values) / len(values))


def _change(start: Optional[float], end: Optional[float]) -> Optional[float]:
    if start is None or end is None:
        return None
    return end - start


def compare(dataset: Dataset, moments: Sequence[Moment]) -> ComparativeMetrics:
    """Summarize one dataset; ``moments`` may span other datasets too."""
    trust = [sample for life in dataset.lives for sample in life.trust_history]
    atp = [sample for life in dataset.lives for sample in life.atp_history]

    first_life = dataset.lives[0] if dataset.lives else None
    last_life = dataset.lives[-1] if dataset.lives else None
    start_trust = first_life.initial_trust if first_life else None
    end_trust = last_life.final_trust if last_life else None
    start_atp = first_life.initial_atp if first_life else None
    end_atp = last_life.final_atp if last_life else None

    major_events = sum(
        1 for moment in moments
        if moment.simulation_id == dataset.id and moment.severity in MAJOR_SEVERITIES
    )

    return ComparativeMetrics(
        id=dataset.id,
        label=dataset.label,
        total_lives=len(dataset.lives),
        total_ticks=len(trust),
        start_trust=start_trust,
        end_trust=end_trust,
        trust_change=_change(start_trust, end_trust),
        start_atp=start_atp,
        end_atp=end_atp,
        atp_change=_change(start_atp, end_atp),
        average_trust=_mean(trust),
        average_atp=_mean(atp),
        trust_volatility=volatility(trust),
        atp_volatility=volatility(atp),
        crossed_threshold=any(sample >= CONSCIOUSNESS_THRESHOLD for sample in trust),
        major_events=major_events,
    )


def compare_all(datasets: Sequence[Dataset], moments: Sequence[Moment]) -> ComparisonReport:
    """Compare every life dataset (network logs are skipped).

    Ties go to the dataset that comes first.
    """
    metrics = [compare(dataset, moments) for dataset in datasets if dataset.lives]
    report = ComparisonReport(metrics=metrics)
    if not metrics:
        return report

    growing = [row for row in metrics if row.trust_change is not None and row.trust_change > 0]
    if growing:
        report.highest_growth = max(growing, key=lambda row: row.trust_change).id

    with_samples = [row for row in metrics if row.total_ticks > 0]
    if with_samples:
        report.most_stable = min(with_samples, key=lambda row: row.trust_volatility).id

    eventful = max(metrics, key=lambda row: row.major_events)
    if eventful.major_events > 0:
        report.most_eventful = eventful.id

    crossers = [row.id for row in metrics if row.crossed_threshold]
    if 0 < len(crossers) < len(metrics):
        report.threshold_crossers = crossers

    return report
