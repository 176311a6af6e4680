"""
Ecosystem-wide aggregation across successfully loaded datasets.

Failed datasets are simply absent from the input, so they can never bias an
average. Trust statistics are computed over the single flattened population
of every trust sample in every life, not as a mean of per-dataset means.
"""

from typing import Dict, List, Sequence

from .schemas import Dataset, EcosystemStats, Moment, MomentCategory, MomentKind, TrustRange


def atp_consumed(atp_history: Sequence[float]) -> float:
    """Net ATP spent in one life; lives that gained ATP (or have none) count 0."""
    if not atp_history:
        return 0.0
    return max(0.0, atp_history[0] - atp_history[-1])


def aggregate(datasets: Sequence[Dataset], moments: Sequence[Moment]) -> EcosystemStats:
    """Compute ecosystem statistics.

    Args:
        datasets: Successfully loaded datasets
        moments: Moments detected over those datasets

    Returns:
        EcosystemStats with zeroed trust figures when there are no samples
    """
    trust_samples: List[float] = []
    total_lives = 0
    total_atp = 0.0

    for dataset in datasets:
        total_lives += len(dataset.lives)
        trust_samples.extend(dataset.trust_samples())
        for life in dataset.lives:
            total_atp += atp_consumed(life.atp_history)

    if trust_samples:
        average_trust = sum(trust_samples) / len(trust_samples)
        trust_range = TrustRange(minimum=min(trust_samples), maximum=max(trust_samples))
    else:
        average_trust = 0.0
        trust_range = TrustRange()

    by_category: Dict[MomentCategory, int] = {category: 0 for category in MomentCategory}
    for moment in moments:
        by_category[moment.category] += 1

    threshold_crossings = sum(1 for moment in moments if moment.kind is MomentKind.THRESHOLD)

    return EcosystemStats(
        total_simulations=len(datasets),
        total_lives=total_lives,
        total_trust_samples=len(trust_samples),
        average_trust=average_trust,
        trust_range=trust_range,
        total_atp_consumed=total_atp,
        total_moments=len(moments),
        threshold_crossings=threshold_crossings,
        karma_events=by_category[MomentCategory.KARMA],
        crisis_events=by_category[MomentCategory.CRISIS],
        emergence_events=by_category[MomentCategory.EMERGENCE],
        moments_by_category=by_category,
    )
