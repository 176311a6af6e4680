"""Tests for pattern corpus statistics and breakdowns."""

import pytest

from karmalens.patterns import (
    InteractionPattern,
    PatternAnalyzer,
    PatternCorpus,
    RiskLevel,
    risk_level,
)


def make_pattern(
    success=True,
    confidence=0.5,
    risk=0.2,
    decision="proceed",
    scenario="routine",
    disagreement=False,
    cascade=0.0,
    accurate=None,
    domains=("emotional", "quality"),
    recommendation="proceed",
):
    return InteractionPattern.model_validate(
        {
            "pattern_id": f"{scenario}-{decision}",
            "scenario_type": scenario,
            "context": {"emotional": {"frustration": 0.1, "calm": True}},
            "ep_predictions": {
                domain: {
                    "domain": domain,
                    "outcome_probability": 0.5,
                    "confidence": confidence,
                    "severity": 0.1,
                    "risk": risk,
                    "recommended_action": recommendation,
                }
                for domain in domains
            },
            "coordinated_decision": {
                "decision": decision,
                "consensus_strength": 0.8,
                "disagreement_detected": disagreement,
                "cascade_risk": cascade,
            },
            "outcome": {
                "success": success,
                "atp_consumed": 5,
                "t3_change": 0.01,
                "predictions_accurate": accurate or {},
            },
        }
    )


def make_corpus(*patterns):
    return PatternCorpus(patterns=list(patterns))


def test_empty_corpus_statistics_are_zero():
    stats = PatternAnalyzer(make_corpus()).get_statistics()

    assert stats.total_patterns == 0
    assert stats.average_confidence == 0
    assert stats.domains_present == []


def test_statistics():
    corpus = make_corpus(
        make_pattern(success=False, decision="proceed", accurate={"emotional": True, "quality": False}),
        make_pattern(success=False, decision="defer", scenario="conflict", accurate={"emotional": True, "quality": True}),
        make_pattern(success=True, decision="adjust", cascade=0.6, confidence=0.9),
        make_pattern(success=True, decision="proceed", risk=0.8),
    )

    stats = PatternAnalyzer(corpus).get_statistics()

    assert stats.total_patterns == 4
    assert stats.domains_present == ["emotional", "quality"]
    assert stats.scenarios_covered == ["routine", "conflict"]
    assert stats.average_confidence == pytest.approx(0.6)
    assert stats.average_success_rate == 0.5
    # (0.5 + 1.0 + 0 + 0) / 4: patterns without accuracy data contribute 0
    assert stats.prediction_accuracy == pytest.approx(0.375)
    assert stats.early_success_rate == 0.0
    assert stats.late_success_rate == 1.0
    assert stats.learning_improvement == 1.0
    assert (stats.proceed_count, stats.adjust_count, stats.defer_count) == (2, 1, 1)
    assert stats.high_risk_patterns == 1
    assert stats.cascade_detections == 1


def test_learning_improvement_is_zero_when_quarter_is_empty():
    corpus = make_corpus(make_pattern(success=False), make_pattern(success=True), make_pattern(success=True))

    stats = PatternAnalyzer(corpus).get_statistics()

    assert stats.early_success_rate == 0.0
    assert stats.late_success_rate == 0.0
    assert stats.learning_improvement == 0.0


def test_risk_level_boundaries():
    assert risk_level(0.29) is RiskLevel.LOW
    assert risk_level(0.3) is RiskLevel.MEDIUM
    assert risk_level(0.59) is RiskLevel.MEDIUM
    assert risk_level(0.6) is RiskLevel.HIGH


def test_analyze_scenarios_sorted_by_count_then_first_seen():
    corpus = make_corpus(
        make_pattern(scenario="alpha", risk=0.1),
        make_pattern(scenario="beta", risk=0.7, decision="defer"),
        make_pattern(scenario="gamma", success=False),
        make_pattern(scenario="beta", risk=0.7, decision="defer", success=False),
        make_pattern(scenario="gamma", decision="adjust"),
    )

    scenarios = PatternAnalyzer(corpus).analyze_scenarios()

    assert [s.scenario_type for s in scenarios] == ["beta", "gamma", "alpha"]
    beta = scenarios[0]
    assert beta.count == 2
    assert beta.success_rate == 0.5
    assert beta.typical_decision == "defer"
    assert beta.risk_level is RiskLevel.HIGH
    # Tied decisions resolve to the first one seen
    assert scenarios[1].typical_decision == "proceed"
    assert scenarios[2].risk_level is RiskLevel.LOW


def test_analyze_domains():
    corpus = make_corpus(
        make_pattern(confidence=0.8, risk=0.4, accurate={"emotional": True, "quality": False}, recommendation="adjust"),
        make_pattern(confidence=0.6, risk=0.4, accurate={"emotional": True}, recommendation="adjust"),
        make_pattern(domains=("emotional",), confidence=0.4, risk=0.4, recommendation="defer"),
    )

    domains = {d.domain: d for d in PatternAnalyzer(corpus).analyze_domains()}

    emotional = domains["emotional"]
    assert emotional.pattern_count == 3
    assert emotional.average_confidence == pytest.approx(0.6)
    assert emotional.prediction_accuracy == pytest.approx(2 / 3)
    assert emotional.typical_recommendation == "adjust"
    assert emotional.risk_level is RiskLevel.MEDIUM

    quality = domains["quality"]
    assert quality.pattern_count == 2
    assert quality.prediction_accuracy == 0.0


def test_learning_trajectory_windows():
    patterns = [make_pattern(success=index >= 10, confidence=0.5) for index in range(25)]

    trajectory = PatternAnalyzer(make_corpus(*patterns)).get_learning_trajectory(window_size=10)

    assert trajectory.time_points == [0, 10, 20]
    assert trajectory.success_rate_over_time == [0.0, 1.0, 1.0]
    assert trajectory.confidence_over_time == pytest.approx([0.5, 0.5, 0.5])


def test_learning_trajectory_accuracy_needs_majority():
    corpus = make_corpus(
        make_pattern(accurate={"emotional": True, "quality": True}),
        make_pattern(accurate={"emotional": True, "quality": False}),
    )

    trajectory = PatternAnalyzer(corpus).get_learning_trajectory(window_size=2)

    assert trajectory.accuracy_over_time == [0.5]


def test_learning_trajectory_rejects_bad_window():
    with pytest.raises(ValueError):
        PatternAnalyzer(make_corpus()).get_learning_trajectory(window_size=0)


def test_find_key_patterns_scores_and_ties():
    plain = make_pattern(scenario="plain")
    disagreement = make_pattern(scenario="disagreement", disagreement=True)
    misses = make_pattern(scenario="misses", accurate={"emotional": False, "quality": False})
    risky = make_pattern(scenario="risky", risk=0.9)
    cascade = make_pattern(scenario="cascade", cascade=0.4)
    analyzer = PatternAnalyzer(make_corpus(plain, disagreement, misses, risky, cascade))

    assert analyzer.key_pattern_score(disagreement) == 2.0
    assert analyzer.key_pattern_score(misses) == 1.0
    assert analyzer.key_pattern_score(risky) == 1.0

    key = analyzer.find_key_patterns(limit=4)

    assert [p.scenario_type for p in key] == ["disagreement", "misses", "risky", "cascade"]
    assert analyzer.find_key_patterns(limit=0) == []


def test_null_predictions_are_ignored():
    pattern = InteractionPattern.model_validate(
        {"scenario_type": "sparse", "ep_predictions": {"emotional": None, "quality": {"confidence": 0.7}}}
    )

    assert list(pattern.ep_predictions) == ["quality"]
    assert pattern.succeeded is False
    assert pattern.decision is None
