"""
Calibration metrics for a pattern corpus.

A well-calibrated predictor succeeds more often when it is confident, fails
more often when it flags risk, and its cautious "defer" decisions end better
than its "proceed" decisions. Each metric compares the success rates of two
buckets of patterns and is clamped to [0, 1]; 0.5 means "no evidence either
way" and is also the answer whenever one of the buckets is empty.
"""

from typing import List, Optional, Sequence

from .analyzer import PatternAnalyzer, average_confidence, average_risk
from .schemas import (
    InteractionPattern,
    PatternCorpus,
    PatternQualityMetrics,
    PatternReport,
)


MIN_PATTERNS_FOR_QUALITY = 10

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.4
HIGH_RISK = 0.6
LOW_RISK = 0.3

NEUTRAL_SCORE = 0.5
# Deferring is expected to be safer, so parity between buckets already scores above neutral
DECISION_BASELINE = 0.7

QUALITY_WEIGHTS = {
    "confidence_reliability": 0.30,
    "risk_calibration": 0.25,
    "decision_effectiveness": 0.25,
    "learning_velocity": 0.20,
}


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _bucket_success_rate(patterns: Sequence[InteractionPattern]) -> Optional[float]:
    if not patterns:
        return None
    return sum(1 for pattern in patterns if pattern.succeeded) / len(patterns)


def _compare_buckets(better: List[InteractionPattern], worse: List[InteractionPattern], baseline: float) -> float:
    better_rate = _bucket_success_rate(better)
    worse_rate = _bucket_success_rate(worse)
    if better_rate is None or worse_rate is None:
        return NEUTRAL_SCORE
    return clamp01(better_rate - worse_rate + baseline)


class PatternQualityAnalyzer:
    """Assesses how well a corpus's predictions track real outcomes."""

    def __init__(self, corpus: PatternCorpus):
        self.analyzer = PatternAnalyzer(corpus)
        self.patterns = self.analyzer.patterns

    def assess_quality(self) -> PatternQualityMetrics:
        """All metrics, or all zeros when the corpus is too small to judge."""
        if len(self.patterns) < MIN_PATTERNS_FOR_QUALITY:
            return PatternQualityMetrics()

        statistics = self.analyzer.get_statistics()
        confidence_reliability = self.confidence_reliability()
        risk_calibration = self.risk_calibration()
        decision_effectiveness = self.decision_effectiveness()
        learning_velocity = clamp01(2 * statistics.learning_improvement)

        overall = (
            QUALITY_WEIGHTS["confidence_reliability"] * confidence_reliability
            + QUALITY_WEIGHTS["risk_calibration"] * risk_calibration
            + QUALITY_WEIGHTS["decision_effectiveness"] * decision_effectiveness
            + QUALITY_WEIGHTS["learning_velocity"] * learning_velocity
        )

        return PatternQualityMetrics(
            overall_quality=clamp01(overall),
            confidence_reliability=confidence_reliability,
            risk_calibration=risk_calibration,
            decision_effectiveness=decision_effectiveness,
            learning_velocity=learning_velocity,
        )

    def confidence_reliability(self) -> float:
        high, low = [], []
        for pattern in self.patterns:
            confidence = average_confidence(pattern)
            if confidence is None:
                continue
            if confidence > HIGH_CONFIDENCE:
                high.append(pattern)
            elif confidence < LOW_CONFIDENCE:
                low.append(pattern)
        return _compare_buckets(high, low, NEUTRAL_SCORE)

    def risk_calibration(self) -> float:
        high, low = [], []
        for pattern in self.patterns:
            risk = average_risk(pattern)
            if risk is None:
                continue
            if risk > HIGH_RISK:
                high.append(pattern)
            elif risk < LOW_RISK:
                low.append(pattern)
        # Low-risk patterns should succeed more often than high-risk ones
        return _compare_buckets(low, high, NEUTRAL_SCORE)

    def decision_effectiveness(self) -> float:
        defer = [pattern for pattern in self.patterns if pattern.decision == "defer"]
        proceed = [pattern for pattern in self.patterns if pattern.decision == "proceed"]
        return _compare_buckets(defer, proceed, DECISION_BASELINE)


def build_pattern_report(
    corpus: PatternCorpus,
    corpus_id: Optional[str] = None,
    key_pattern_limit: int = 10,
    window_size: int = 10,
) -> PatternReport:
    """Run every pattern analysis over one corpus."""
    analyzer = PatternAnalyzer(corpus)
    return PatternReport(
        corpus_id=corpus_id,
        statistics=analyzer.get_statistics(),
        quality=PatternQualityAnalyzer(corpus).assess_quality(),
        scenarios=analyzer.analyze_scenarios(),
        domains=analyzer.analyze_domains(),
        key_patterns=analyzer.find_key_patterns(key_pattern_limit),
        trajectory=analyzer.get_learning_trajectory(window_size),
    )
