"""
Moment ranking and summary helpers.

Moments are ordered by a fixed interest score: severity weight times
category weight. Ranking is a stable descending sort, so moments with equal
scores keep the order in which they were detected.

Filtering helpers operate on an already-ranked list and never re-score it.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from .schemas import Moment, MomentCategory, MomentSeverity, MomentStats


SEVERITY_WEIGHT: Dict[MomentSeverity, int] = {
    MomentSeverity.CRITICAL: 3,
    MomentSeverity.HIGH: 2,
    MomentSeverity.MEDIUM: 1,
}

CATEGORY_WEIGHT: Dict[MomentCategory, float] = {
    MomentCategory.EMERGENCE: 2.0,   # Rarest, most interesting
    MomentCategory.KARMA: 1.5,       # Core mechanic
    MomentCategory.LEARNING: 1.5,    # Agents improving
    MomentCategory.CRISIS: 1.0,      # Dramatic but common
    MomentCategory.TRUST: 0.8,       # Frequent
    MomentCategory.ATP: 0.5,         # Very frequent
}


def score(moment: Moment) -> float:
    """Interest score of a moment (severity weight x category weight)."""
    return SEVERITY_WEIGHT[moment.severity] * CATEGORY_WEIGHT[moment.category]


def rank(moments: Iterable[Moment]) -> List[Moment]:
    """Return moments sorted by descending score; ties keep detection order."""
    return sorted(moments, key=score, reverse=True)


def filter_by_category(ranked: Sequence[Moment], category: MomentCategory) -> List[Moment]:
    return [moment for moment in ranked if moment.category == category]


def filter_by_simulation(ranked: Sequence[Moment], simulation_id: str) -> List[Moment]:
    return [moment for moment in ranked if moment.simulation_id == simulation_id]


def top(ranked: Sequence[Moment], limit: int) -> List[Moment]:
    """First ``limit`` moments of an already-ranked list."""
    if limit <= 0:
        return []
    return list(ranked[:limit])


def calculate_moment_stats(moments: Sequence[Moment]) -> MomentStats:
    """Histogram a moment set by category, severity and simulation.

    Category and severity counts are zero-filled so every key is present.
    ``most_interesting`` is the top-ranked moment, or None for an empty set.
    """
    by_category: Dict[MomentCategory, int] = {category: 0 for category in MomentCategory}
    by_severity: Dict[MomentSeverity, int] = {severity: 0 for severity in MomentSeverity}
    by_simulation: Dict[str, int] = {}

    for moment in moments:
        by_category[moment.category] += 1
        by_severity[moment.severity] += 1
        by_simulation[moment.simulation_id] = by_simulation.get(moment.simulation_id, 0) + 1

    ranked = rank(moments)
    return MomentStats(
        total=len(moments),
        by_category=by_category,
        by_severity=by_severity,
        by_simulation=by_simulation,
        most_interesting=ranked[0] if ranked else None,
    )


def most_interesting_by_category(moments: Sequence[Moment]) -> Dict[MomentCategory, Optional[Moment]]:
    """Highest-ranked moment per category (None where a category has no moments)."""
    ranked = rank(moments)
    result: Dict[MomentCategory, Optional[Moment]] = {}
    for category in MomentCategory:
        matches = filter_by_category(ranked, category)
        result[category] = matches[0] if matches else None
    return result
