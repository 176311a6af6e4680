"""Interaction-pattern corpus analysis for karmalens."""

from .schemas import (
    CoordinatedDecision,
    CorpusMetadata,
    DomainAnalysis,
    DomainPrediction,
    InteractionPattern,
    LearningTrajectory,
    PatternCorpus,
    PatternOutcome,
    PatternQualityMetrics,
    PatternReport,
    PatternStatistics,
    RiskLevel,
    ScenarioAnalysis,
)
from .analyzer import PatternAnalyzer, risk_level
from .quality import PatternQualityAnalyzer, build_pattern_report

__all__ = [
    "CoordinatedDecision",
    "CorpusMetadata",
    "DomainAnalysis",
    "DomainPrediction",
    "InteractionPattern",
    "LearningTrajectory",
    "PatternCorpus",
    "PatternOutcome",
    "PatternQualityMetrics",
    "PatternReport",
    "PatternStatistics",
    "RiskLevel",
    "ScenarioAnalysis",
    "PatternAnalyzer",
    "risk_level",
    "PatternQualityAnalyzer",
    "build_pattern_report",
]
