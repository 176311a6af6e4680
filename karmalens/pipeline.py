"""
Moment pipeline orchestration.

Fully decoupled from transport and configuration: the fetcher and the source
registry are injected by the caller.

Coordinates one analysis pass:
1. Fetch every registry entry concurrently (the only I/O)
2. Normalize each raw export into a Dataset (failures are logged and skipped)
3. Detect moments per dataset, in registry order
4. Rank moments and aggregate ecosystem statistics

Pattern corpora run through a separate path (``analyze_patterns``) that
shares no state with moment detection.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError

from .config import Config
from .detectors import detect_all, detect_moments
from .ecosystem import aggregate
from .fetchers import DataFetcher, FetchError, KarmalensError, LocalFileFetcher, build_default_fetcher
from .logging_utils import log_deterministic, log_detail, log_error, log_fetch, log_success
from .normalizer import load_dataset
from .patterns import PatternCorpus, PatternReport, build_pattern_report
from .ranking import calculate_moment_stats, rank
from .schemas import Dataset, EcosystemStats, Moment, MomentStats, SimulationSource
from .sources import PATTERN_CORPORA, SIMULATION_SOURCES
from .timeline import DatasetTimeline, build_timeline
from .comparison import ComparisonReport, compare_all


class UnknownCorpusError(KarmalensError, KeyError):
    """Raised when a pattern corpus id is not in the corpus registry."""

    def __init__(self, corpus_id: str, known: Sequence[str]):
        self.corpus_id = corpus_id
        super().__init__(f"Unknown pattern corpus '{corpus_id}' (known: {', '.join(known)})")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class AnalysisResult(BaseModel):
    """Output of one analysis pass."""

    datasets: List[Dataset] = Field(default_factory=list, description="Loaded datasets, registry order")
    moments: List[Moment] = Field(default_factory=list, description="Ranked moments")
    ecosystem: EcosystemStats = Field(default_factory=EcosystemStats)
    moment_stats: MomentStats = Field(default_factory=MomentStats)
    # Registry ids that failed to fetch or normalize
    failed_sources: List[str] = Field(default_factory=list)

    def timelines(self) -> List[DatasetTimeline]:
        """Flattened timelines for every loaded life dataset."""
        timelines = []
        for dataset in self.datasets:
            timeline = build_timeline(dataset)
            if timeline is not None:
                timelines.append(timeline)
        return timelines

    def comparison(self) -> ComparisonReport:
        """Side-by-side metrics for every loaded life dataset."""
        return compare_all(self.datasets, self.moments)


def detect_moments_from_raw(raw: Any, source: SimulationSource) -> List[Moment]:
    """Normalize one raw export and run the detector catalog over it (unranked)."""
    dataset = load_dataset(raw, source)
    if dataset is None:
        return []
    return detect_moments(dataset)


def analyze(datasets: Sequence[Dataset], failed_sources: Sequence[str] = ()) -> AnalysisResult:
    """Pure computation over already-loaded datasets."""
    moments = rank(detect_all(datasets))
    log_deterministic(f"[Detect] {len(moments)} moments across {len(datasets)} datasets")
    return AnalysisResult(
        datasets=list(datasets),
        moments=moments,
        ecosystem=aggregate(datasets, moments),
        moment_stats=calculate_moment_stats(moments),
        failed_sources=list(failed_sources),
    )


class MomentPipeline:
    """Fetches registry entries and turns them into ranked moments and statistics."""

    def __init__(
        self,
        fetcher: DataFetcher,
        sources: Optional[Sequence[SimulationSource]] = None,
        pattern_fetcher: Optional[DataFetcher] = None,
        pattern_corpora: Optional[Dict[str, str]] = None,
    ):
        """Initialize the pipeline with its transport injected.

        Args:
            fetcher: Transport for simulation exports
            sources: Registry entries to load (defaults to SIMULATION_SOURCES)
            pattern_fetcher: Transport for pattern corpora (defaults to ``fetcher``)
            pattern_corpora: Corpus id -> filename (defaults to PATTERN_CORPORA)
        """
        self.fetcher = fetcher
        self.sources: List[SimulationSource] = list(sources if sources is not None else SIMULATION_SOURCES)
        self.pattern_fetcher = pattern_fetcher or fetcher
        self.pattern_corpora = dict(pattern_corpora if pattern_corpora is not None else PATTERN_CORPORA)

    @classmethod
    def from_config(cls) -> "MomentPipeline":
        """Pipeline wired from environment configuration."""
        fetcher = build_default_fetcher()
        pattern_fetcher = None if Config.DATA_BASE_URL else LocalFileFetcher(Config.PATTERN_DIR)
        return cls(fetcher, pattern_fetcher=pattern_fetcher)

    async def _load_source(self, source: SimulationSource) -> Optional[Dataset]:
        raw = await self.fetcher.fetch_json(source.filename)
        dataset = load_dataset(raw, source)
        if dataset is not None:
            log_detail(f"[Normalize] {source.id}: {len(dataset.lives)} lives")
        return dataset

    async def load_datasets(self) -> Tuple[List[Dataset], List[str]]:
        """Fetch and normalize every source concurrently.

        Returns:
            (datasets in registry order, ids of sources that failed)
        """
        log_fetch(f"[Fetch] Loading {len(self.sources)} datasets...")

        # One failing source must not cancel the others, so failures come back as results
        results = await asyncio.gather(
            *[self._load_source(source) for source in self.sources], return_exceptions=True
        )

        datasets: List[Dataset] = []
        failed: List[str] = []
        for source, result in zip(self.sources, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                log_error(f"[Fetch] {source.id}: {result}")
                failed.append(source.id)
            elif result is None:
                # The normalizer already logged why
                failed.append(source.id)
            else:
                datasets.append(result)

        log_success(f"[Fetch] Loaded {len(datasets)}/{len(self.sources)} datasets")
        return datasets, failed

    async def run(self) -> AnalysisResult:
        """Load every dataset, then detect, rank and aggregate."""
        datasets, failed = await self.load_datasets()
        return analyze(datasets, failed)

    async def load_corpus(self, corpus_id: str) -> PatternCorpus:
        """Fetch and validate one pattern corpus.

        Raises:
            UnknownCorpusError: If ``corpus_id`` is not registered
            FetchError: If the corpus cannot be fetched or is not a pattern corpus
        """
        filename = self.pattern_corpora.get(corpus_id)
        if filename is None:
            raise UnknownCorpusError(corpus_id, list(self.pattern_corpora))

        log_fetch(f"[Patterns] Loading corpus {corpus_id}...")
        raw = await self.pattern_fetcher.fetch_json(filename)
        try:
            return PatternCorpus.model_validate(raw)
        except ValidationError as exc:
            raise FetchError(filename, f"not a pattern corpus ({exc.error_count()} validation errors)") from exc

    async def analyze_patterns(self, corpus_id: str) -> PatternReport:
        """Load a corpus and run every pattern analysis over it."""
        corpus = await self.load_corpus(corpus_id)
        report = build_pattern_report(corpus, corpus_id=corpus_id)
        log_deterministic(
            f"[Patterns] {corpus_id}: {report.statistics.total_patterns} patterns, "
            f"quality {report.quality.overall_quality:.2f}"
        )
        return report
