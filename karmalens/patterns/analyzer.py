"""
Pattern corpus analysis.

Answers the questions a reader of a pattern corpus asks: what has the agent
learned, how reliable are its predictions, which scenarios does it handle
well, and is it improving over the course of the corpus.

All statistics treat the corpus as an ordered log; "early" and "late" refer
to recording order, never to timestamps.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from .schemas import (
    DomainAnalysis,
    InteractionPattern,
    LearningTrajectory,
    PatternCorpus,
    PatternStatistics,
    RiskLevel,
    ScenarioAnalysis,
)


HIGH_RISK_THRESHOLD = 0.6
LOW_RISK_THRESHOLD = 0.3
CASCADE_THRESHOLD = 0.5
UNKNOWN_DECISION = "unknown"


def risk_level(mean_risk: float) -> RiskLevel:
    """Bucket a mean risk: low below 0.3, medium below 0.6, high otherwise."""
    if mean_risk < LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if mean_risk < HIGH_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _success_rate(patterns: Sequence[InteractionPattern]) -> float:
    if not patterns:
        return 0.0
    return sum(1 for pattern in patterns if pattern.succeeded) / len(patterns)


def confidences(pattern: InteractionPattern) -> List[float]:
    """Every confidence reported by the pattern's domain predictions."""
    return [p.confidence for p in pattern.ep_predictions.values() if p.confidence is not None]


def risks(pattern: InteractionPattern) -> List[float]:
    return [p.risk for p in pattern.ep_predictions.values() if p.risk is not None]


def average_confidence(pattern: InteractionPattern) -> Optional[float]:
    """Mean confidence of a pattern, or None when no domain reported one."""
    values = confidences(pattern)
    return _mean(values) if values else None


def average_risk(pattern: InteractionPattern) -> Optional[float]:
    """Mean risk of a pattern, or None when no domain reported one."""
    values = risks(pattern)
    return _mean(values) if values else None


def accuracy_fraction(pattern: InteractionPattern) -> Optional[float]:
    """Share of domain predictions marked accurate, or None without accuracy data."""
    if pattern.outcome is None or not pattern.outcome.predictions_accurate:
        return None
    flags = list(pattern.outcome.predictions_accurate.values())
    return sum(1 for flag in flags if flag) / len(flags)


def most_common(values: Iterable[str]) -> str:
    """Modal value; ties go to the value seen first, empty input gives ''."""
    counts: Dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1

    best, best_count = "", 0
    for value, count in counts.items():
        if count > best_count:
            best, best_count = value, count
    return best


class PatternAnalyzer:
    """Statistics, breakdowns and key-pattern search over one corpus."""

    def __init__(self, corpus: PatternCorpus):
        self.corpus = corpus
        self.patterns: List[InteractionPattern] = list(corpus.patterns)

    def get_statistics(self) -> PatternStatistics:
        """Corpus-wide statistics (all zeros for an empty corpus)."""
        if not self.patterns:
            return PatternStatistics()

        domains: Dict[str, None] = {}
        scenarios: Dict[str, None] = {}
        all_confidences: List[float] = []
        accuracy_total = 0.0
        decisions = {"proceed": 0, "adjust": 0, "defer": 0}
        high_risk = 0
        cascades = 0

        for pattern in self.patterns:
            # dicts keep first-seen order
            scenarios.setdefault(pattern.scenario_type)
            for domain in pattern.ep_predictions:
                domains.setdefault(domain)

            all_confidences.extend(confidences(pattern))

            fraction = accuracy_fraction(pattern)
            if fraction is not None:
                accuracy_total += fraction

            if pattern.decision in decisions:
                decisions[pattern.decision] += 1

            if pattern.coordinated_decision and pattern.coordinated_decision.cascade_risk > CASCADE_THRESHOLD:
                cascades += 1
            if (average_risk(pattern) or 0.0) > HIGH_RISK_THRESHOLD:
                high_risk += 1

        total = len(self.patterns)
        quarter = total // 4
        if quarter > 0:
            early_rate = _success_rate(self.patterns[:quarter])
            late_rate = _success_rate(self.patterns[-quarter:])
        else:
            early_rate = late_rate = 0.0

        return PatternStatistics(
            total_patterns=total,
            domains_present=list(domains),
            scenarios_covered=list(scenarios),
            average_confidence=_mean(all_confidences),
            average_success_rate=_success_rate(self.patterns),
            prediction_accuracy=accuracy_total / total,
            early_success_rate=early_rate,
            late_success_rate=late_rate,
            learning_improvement=late_rate - early_rate,
            proceed_count=decisions["proceed"],
            adjust_count=decisions["adjust"],
            defer_count=decisions["defer"],
            high_risk_patterns=high_risk,
            cascade_detections=cascades,
        )

    def analyze_scenarios(self) -> List[ScenarioAnalysis]:
        """Per-scenario breakdown, most frequent scenario first."""
        groups: Dict[str, List[InteractionPattern]] = {}
        for pattern in self.patterns:
            groups.setdefault(pattern.scenario_type, []).append(pattern)

        analyses = []
        for scenario_type, patterns in groups.items():
            pooled = [value for pattern in patterns for value in confidences(pattern)]
            mean_risk = _mean([average_risk(pattern) or 0.0 for pattern in patterns])
            analyses.append(
                ScenarioAnalysis(
                    scenario_type=scenario_type,
                    count=len(patterns),
                    success_rate=_success_rate(patterns),
                    average_confidence=_mean(pooled),
                    typical_decision=most_common(p.decision or UNKNOWN_DECISION for p in patterns),
                    risk_level=risk_level(mean_risk),
                )
            )

        # Stable: equal counts keep first-seen scenario order
        analyses.sort(key=lambda analysis: analysis.count, reverse=True)
        return analyses

    def analyze_domains(self) -> List[DomainAnalysis]:
        """Per-domain breakdown in first-seen domain order."""
        counts: Dict[str, int] = {}
        domain_confidences: Dict[str, List[float]] = {}
        domain_risks: Dict[str, List[float]] = {}
        accurate: Dict[str, int] = {}
        recommendations: Dict[str, List[str]] = {}

        for pattern in self.patterns:
            accuracy = pattern.outcome.predictions_accurate if pattern.outcome else {}
            for domain, prediction in pattern.ep_predictions.items():
                counts[domain] = counts.get(domain, 0) + 1
                if prediction.confidence is not None:
                    domain_confidences.setdefault(domain, []).append(prediction.confidence)
                if prediction.risk is not None:
                    domain_risks.setdefault(domain, []).append(prediction.risk)
                if accuracy.get(domain) is True:
                    accurate[domain] = accurate.get(domain, 0) + 1
                if prediction.recommended_action:
                    recommendations.setdefault(domain, []).append(prediction.recommended_action)

        return [
            DomainAnalysis(
                domain=domain,
                pattern_count=count,
                # Patterns that omit a confidence count as zero confidence
                average_confidence=sum(domain_confidences.get(domain, [])) / count,
                prediction_accuracy=accurate.get(domain, 0) / count,
                typical_recommendation=most_common(recommendations.get(domain, [])),
                risk_level=risk_level(_mean(domain_risks.get(domain, []))),
            )
            for domain, count in counts.items()
        ]

    def get_learning_trajectory(self, window_size: int = 10) -> LearningTrajectory:
        """Confidence, accuracy and success per consecutive window of patterns.

        A window's accuracy is the share of its patterns where more than half
        of the domain predictions were accurate.
        """
        if window_size <= 0:
            raise ValueError(f"window_size must be positive (got {window_size})")

        trajectory = LearningTrajectory()
        for start in range(0, len(self.patterns), window_size):
            window = self.patterns[start:start + window_size]
            pooled = [value for pattern in window for value in confidences(pattern)]
            mostly_accurate = sum(
                1 for pattern in window if (accuracy_fraction(pattern) or 0.0) > 0.5
            )

            trajectory.time_points.append(start)
            trajectory.confidence_over_time.append(_mean(pooled))
            trajectory.accuracy_over_time.append(mostly_accurate / len(window))
            trajectory.success_rate_over_time.append(_success_rate(window))

        return trajectory

    def key_pattern_score(self, pattern: InteractionPattern) -> float:
        """Learning value of a pattern: disagreement, cascade risk, misses, high risk."""
        value = 0.0
        decision = pattern.coordinated_decision
        if decision is not None:
            if decision.disagreement_detected:
                value += 2.0
            value += decision.cascade_risk

        if pattern.outcome is not None:
            misses = sum(1 for flag in pattern.outcome.predictions_accurate.values() if flag is False)
            value += 0.5 * misses

        if (average_risk(pattern) or 0.0) > HIGH_RISK_THRESHOLD:
            value += 1.0
        return value

    def find_key_patterns(self, limit: int = 10) -> List[InteractionPattern]:
        """Most informative patterns, highest score first (stable on ties)."""
        if limit <= 0:
            return []
        ranked = sorted(self.patterns, key=self.key_pattern_score, reverse=True)
        return ranked[:limit]
