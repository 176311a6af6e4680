"""
Pydantic schemas for interaction-pattern corpora and their analysis results.

A corpus is a log of decisions made by a multi-domain epistemic predictor:
for every interaction each domain (emotional, quality, attention, grounding,
authorization, ...) predicts an outcome, a coordinator combines the
predictions into one decision, and the real outcome is recorded alongside
which domain predictions turned out to be accurate.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Corpus Schemas (input)
# ============================================================================

ContextValue = Union[bool, int, float, str]


def _drop_nulls(data: Any) -> Any:
    """Remove null-valued keys so the field defaults apply."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if value is not None}
    return data


class DomainPrediction(BaseModel):
    """One domain's prediction for an interaction."""

    model_config = ConfigDict(frozen=True)

    domain: Optional[str] = None
    outcome_probability: Optional[float] = None
    confidence: Optional[float] = None
    severity: Optional[float] = None
    risk: Optional[float] = None
    # "proceed", "adjust" or "defer"
    recommended_action: Optional[str] = None
    reasoning: Optional[str] = None


class CoordinatedDecision(BaseModel):
    """The decision taken after combining every domain's prediction."""

    model_config = ConfigDict(frozen=True)

    decision: Optional[str] = Field(None, description="proceed, adjust or defer")
    consensus_strength: float = 0.0
    disagreement_detected: bool = False
    cascade_risk: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_defaults(cls, data: Any) -> Any:
        return _drop_nulls(data)


class PatternOutcome(BaseModel):
    """What actually happened after the decision."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    atp_consumed: float = 0.0
    t3_change: float = 0.0
    # Domain -> was that domain's prediction right
    predictions_accurate: Dict[str, bool] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_defaults(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @field_validator("predictions_accurate", mode="before")
    @classmethod
    def _drop_unscored_domains(cls, value: Any) -> Any:
        return _drop_nulls(value)


class InteractionPattern(BaseModel):
    """One recorded interaction: context, predictions, decision and outcome."""

    model_config = ConfigDict(frozen=True)

    pattern_id: Optional[str] = None
    scenario_type: str = "unknown"
    scenario_description: Optional[str] = None
    timestamp: Optional[str] = None
    context: Dict[str, Dict[str, ContextValue]] = Field(default_factory=dict)
    ep_predictions: Dict[str, DomainPrediction] = Field(default_factory=dict)
    coordinated_decision: Optional[CoordinatedDecision] = None
    outcome: Optional[PatternOutcome] = None

    @model_validator(mode="before")
    @classmethod
    def _nulls_to_defaults(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @field_validator("ep_predictions", mode="before")
    @classmethod
    def _drop_null_predictions(cls, value: Any) -> Any:
        # Producers emit null for domains that did not predict
        if isinstance(value, dict):
            return {domain: prediction for domain, prediction in value.items() if prediction is not None}
        return value

    @property
    def succeeded(self) -> bool:
        return self.outcome is not None and self.outcome.success

    @property
    def decision(self) -> Optional[str]:
        return self.coordinated_decision.decision if self.coordinated_decision else None


class CorpusMetadata(BaseModel):
    created_at: Optional[str] = None
    total_patterns: Optional[int] = None
    domains_covered: List[str] = Field(default_factory=list)
    source: Optional[str] = None


class PatternCorpus(BaseModel):
    """An exported pattern corpus, patterns in recording order."""

    patterns: List[InteractionPattern] = Field(default_factory=list)
    metadata: Optional[CorpusMetadata] = None


# ============================================================================
# Analysis Schemas (output)
# ============================================================================


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PatternStatistics(BaseModel):
    """Corpus-wide statistics."""

    total_patterns: int = 0
    domains_present: List[str] = Field(default_factory=list)
    scenarios_covered: List[str] = Field(default_factory=list)

    # Quality
    average_confidence: float = 0.0
    average_success_rate: float = 0.0
    prediction_accuracy: float = 0.0

    # Learning progression (first quarter vs last quarter, corpus order)
    early_success_rate: float = 0.0
    late_success_rate: float = 0.0
    learning_improvement: float = 0.0

    # Decision distribution
    proceed_count: int = 0
    adjust_count: int = 0
    defer_count: int = 0

    # Risk
    high_risk_patterns: int = 0
    cascade_detections: int = 0


class ScenarioAnalysis(BaseModel):
    scenario_type: str
    count: int
    success_rate: float
    average_confidence: float
    typical_decision: str
    risk_level: RiskLevel


class DomainAnalysis(BaseModel):
    domain: str
    pattern_count: int
    average_confidence: float
    prediction_accuracy: float
    typical_recommendation: str
    risk_level: RiskLevel


class LearningTrajectory(BaseModel):
    """Per-window learning quality, windows taken in corpus order."""

    # Index of the first pattern of each window
    time_points: List[int] = Field(default_factory=list)
    confidence_over_time: List[float] = Field(default_factory=list)
    accuracy_over_time: List[float] = Field(default_factory=list)
    success_rate_over_time: List[float] = Field(default_factory=list)


class PatternQualityMetrics(BaseModel):
    """Calibration scores, each in [0, 1]."""

    overall_quality: float = Field(0.0, ge=0.0, le=1.0)
    # Do high-confidence predictions succeed more often than low-confidence ones?
    confidence_reliability: float = Field(0.0, ge=0.0, le=1.0)
    # Do high-risk predictions fail more often than low-risk ones?
    risk_calibration: float = Field(0.0, ge=0.0, le=1.0)
    # Do "defer" decisions end better than "proceed" decisions?
    decision_effectiveness: float = Field(0.0, ge=0.0, le=1.0)
    learning_velocity: float = Field(0.0, ge=0.0, le=1.0)


class PatternReport(BaseModel):
    """Everything the pattern browser needs for one corpus."""

    corpus_id: Optional[str] = None
    statistics: PatternStatistics
    quality: PatternQualityMetrics
    scenarios: List[ScenarioAnalysis] = Field(default_factory=list)
    domains: List[DomainAnalysis] = Field(default_factory=list)
    key_patterns: List[InteractionPattern] = Field(default_factory=list)
    trajectory: LearningTrajectory = Field(default_factory=LearningTrajectory)
