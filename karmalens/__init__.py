"""
Karmalens - moment detection and analytics for multi-life trust simulations.

Turns exported simulation logs into ranked, narrated "moments" and
ecosystem-wide statistics, and measures how well interaction-pattern corpora
are calibrated.

Pure recompute per invocation. No persistence, no global state.
Transport is injected by the caller.
"""

__version__ = "0.1.0"

# Pipeline
from .pipeline import (
    AnalysisResult,
    MomentPipeline,
    UnknownCorpusError,
    analyze,
    detect_moments_from_raw,
)

# Transport
from .fetchers import (
    DataFetcher,
    FetchError,
    HttpFetcher,
    InMemoryFetcher,
    KarmalensError,
    LocalFileFetcher,
    build_default_fetcher,
)

# Core schemas
from .schemas import (
    Dataset,
    EcosystemStats,
    LifeRecord,
    Moment,
    MomentCategory,
    MomentSeverity,
    MomentKind,
    MomentStats,
    NetworkEvent,
    NetworkLog,
    SchemaKind,
    SimulationSource,
    TerminationReason,
    TrustRange,
)

# Computation
from .normalizer import load_dataset, normalize, normalize_network
from .detectors import DetectionState, detect_all, detect_moments, detect_network_moments
from .ranking import (
    CATEGORY_WEIGHT,
    SEVERITY_WEIGHT,
    calculate_moment_stats,
    filter_by_category,
    filter_by_simulation,
    most_interesting_by_category,
    rank,
    score,
    top,
)
from .ecosystem import aggregate
from .timeline import DatasetTimeline, MomentMarker, TimelineMetric, build_timeline, place_moments
from .comparison import ComparativeMetrics, ComparisonReport, compare, compare_all

# Registry
from .sources import PATTERN_CORPORA, SIMULATION_SOURCES, get_source

from .config import Config

__all__ = [
    # Pipeline
    "AnalysisResult",
    "MomentPipeline",
    "UnknownCorpusError",
    "analyze",
    "detect_moments_from_raw",
    # Transport
    "DataFetcher",
    "FetchError",
    "HttpFetcher",
    "InMemoryFetcher",
    "KarmalensError",
    "LocalFileFetcher",
    "build_default_fetcher",
    # Schemas
    "Dataset",
    "EcosystemStats",
    "LifeRecord",
    "Moment",
    "MomentCategory",
    "MomentSeverity",
    "MomentKind",
    "MomentStats",
    "NetworkEvent",
    "NetworkLog",
    "SchemaKind",
    "SimulationSource",
    "TerminationReason",
    "TrustRange",
    # Computation
    "load_dataset",
    "normalize",
    "normalize_network",
    "DetectionState",
    "detect_all",
    "detect_moments",
    "detect_network_moments",
    "CATEGORY_WEIGHT",
    "SEVERITY_WEIGHT",
    "calculate_moment_stats",
    "filter_by_category",
    "filter_by_simulation",
    "most_interesting_by_category",
    "rank",
    "score",
    "top",
    "aggregate",
    "DatasetTimeline",
    "MomentMarker",
    "TimelineMetric",
    "build_timeline",
    "place_moments",
    "ComparativeMetrics",
    "ComparisonReport",
    "compare",
    "compare_all",
    # Registry
    "PATTERN_CORPORA",
    "SIMULATION_SOURCES",
    "get_source",
    # Config
    "Config",
]
