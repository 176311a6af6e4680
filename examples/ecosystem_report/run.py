"""Ecosystem report over the bundled simulation exports.

Loads every registered export from ``examples/data`` (or from
``KARMALENS_DATA_BASE_URL`` when set), detects and ranks moments, and prints
the headline statistics:

    uv run python examples/ecosystem_report/run.py --top 8

Add a pattern corpus summary with `--patterns`:

    uv run python examples/ecosystem_report/run.py --patterns web4_native

Set `KARMALENS_VERBOSE=1` to see per-source fetch and normalize details.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from karmalens import Config, MomentPipeline
from karmalens.fetchers import LocalFileFetcher
from karmalens.ranking import most_interesting_by_category, top
from karmalens.timeline import TimelineMetric, place_moments


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Karmalens ecosystem report")
    parser.add_argument("--top", type=int, default=5, help="How many ranked moments to print")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory of exported JSON logs (defaults to KARMALENS_DATA_DIR)",
    )
    parser.add_argument(
        "--patterns",
        default=None,
        help="Pattern corpus id to summarize (e.g. web4_native)",
    )
    return parser.parse_args()


async def main() -> None:
    args = parse_args()

    if args.data_dir is not None:
        fetcher = LocalFileFetcher(args.data_dir)
        pipeline = MomentPipeline(fetcher)
    else:
        print(Config.display())
        pipeline = MomentPipeline.from_config()

    result = await pipeline.run()
    stats = result.ecosystem

    print("\n=== Ecosystem ===")
    print(f"Simulations: {stats.total_simulations}  Lives: {stats.total_lives}")
    print(
        f"Average trust: {stats.average_trust:.3f} "
        f"(range {stats.trust_range.minimum:.3f} - {stats.trust_range.maximum:.3f})"
    )
    print(f"ATP consumed: {stats.total_atp_consumed:.0f}")
    print(
        f"Moments: {stats.total_moments}  threshold crossings: {stats.threshold_crossings}  "
        f"karma: {stats.karma_events}  crisis: {stats.crisis_events}"
    )
    if result.failed_sources:
        print(f"Skipped sources: {', '.join(result.failed_sources)}")

    print(f"\n=== Top {args.top} moments ===")
    for index, moment in enumerate(top(result.moments, args.top), start=1):
        print(f"{index:2d}. [{moment.severity.value:8s}] {moment.title} ({moment.simulation_label})")
        print(f"    {moment.narrative}")

    print("\n=== Best story per category ===")
    for category, moment in most_interesting_by_category(result.moments).items():
        print(f"  {category.value:10s} {moment.title if moment else '-'}")

    print("\n=== Trust timelines ===")
    timelines = result.timelines()
    markers = place_moments(result.moments, timelines, TimelineMetric.TRUST)
    for timeline in timelines:
        growth = "n/a" if timeline.cross_life_growth is None else f"{timeline.cross_life_growth:+.3f}"
        placed = [marker for marker in markers if marker.moment.simulation_id == timeline.id]
        print(
            f"  {timeline.label:24s} lives={timeline.life_count} "
            f"final={timeline.final_trust:.3f} growth={growth} markers={len(placed)}"
        )

    comparison = result.comparison()
    print("\n=== Comparison ===")
    for row in comparison.metrics:
        print(
            f"  {row.label:24s} avg trust={row.average_trust:.3f} "
            f"volatility={row.trust_volatility:.3f} major events={row.major_events}"
        )
    if comparison.highest_growth:
        print(f"  Highest trust growth: {comparison.highest_growth}")
    if comparison.most_stable:
        print(f"  Most stable trust: {comparison.most_stable}")
    if comparison.threshold_crossers:
        print(f"  Crossed the threshold: {', '.join(comparison.threshold_crossers)}")

    if args.patterns:
        report = await pipeline.analyze_patterns(args.patterns)
        quality = report.quality
        print(f"\n=== Pattern corpus: {report.corpus_id} ===")
        print(
            f"Patterns: {report.statistics.total_patterns}  "
            f"success rate: {report.statistics.average_success_rate:.2f}"
        )
        print(
            f"Quality {quality.overall_quality:.2f} (confidence {quality.confidence_reliability:.2f}, "
            f"risk {quality.risk_calibration:.2f}, decisions {quality.decision_effectiveness:.2f})"
        )
        for scenario in report.scenarios:
            print(f"  {scenario.scenario_type:20s} n={scenario.count} success={scenario.success_rate:.2f}")


if __name__ == "__main__":
    asyncio.run(main())
