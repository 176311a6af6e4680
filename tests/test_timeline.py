"""Tests for timeline projection and moment overlay."""

import pytest

from karmalens.schemas import Dataset, LifeRecord, Moment, MomentCategory, MomentKind, MomentSeverity
from karmalens.timeline import TimelineMetric, build_timeline, locate_moment, place_moments


def make_dataset():
    return Dataset(
        id="sim",
        label="Sim",
        lives=[
            LifeRecord(life_number=1, start_tick=0, end_tick=2, trust_history=[0.5, 0.4, 0.3], atp_history=[100, 90]),
            LifeRecord(life_number=2, start_tick=3, end_tick=4, trust_history=[0.35, 0.6], atp_history=[80, 70, 60]),
        ],
    )


def make_moment(moment_id, life_number, tick, severity=MomentSeverity.HIGH, simulation_id="sim"):
    return Moment(
        id=moment_id,
        title=moment_id,
        narrative="",
        significance="",
        kind=MomentKind.COLLAPSE,
        category=MomentCategory.TRUST,
        severity=severity,
        tick=tick,
        life_number=life_number,
        simulation_id=simulation_id,
    )


def test_build_timeline_flattens_lives():
    timeline = build_timeline(make_dataset())

    assert timeline.trust_flat == (0.5, 0.4, 0.3, 0.35, 0.6)
    assert timeline.atp_flat == (100, 90, 80, 70, 60)
    assert timeline.final_trust == 0.6
    assert timeline.average_trust == pytest.approx(0.43)
    assert timeline.life_count == 2
    assert timeline.cross_life_growth == pytest.approx(0.1)


def test_build_timeline_skips_datasets_without_lives():
    assert build_timeline(Dataset(id="net", label="Net")) is None


def test_locate_moment_uses_tick_within_life():
    timeline = build_timeline(make_dataset())

    assert locate_moment(make_moment("a", 1, 1), timeline) == 1
    # Life 2 starts at tick 3, so tick 4 is its second sample
    assert locate_moment(make_moment("b", 2, 4), timeline) == 4


def test_locate_moment_per_metric_offsets():
    timeline = build_timeline(make_dataset())

    # Life 1 has two ATP samples, so life 2's third ATP sample sits at index 4
    assert locate_moment(make_moment("c", 2, 5), timeline, TimelineMetric.ATP) == 4
    assert locate_moment(make_moment("c", 2, 5), timeline, TimelineMetric.TRUST) is None


def test_out_of_range_moments_are_dropped_not_clamped():
    timeline = build_timeline(make_dataset())
    moments = [
        make_moment("past-end", 1, 7),
        make_moment("before-start", 2, 1),
        make_moment("no-such-life", 3, 0),
        make_moment("network-level", 0, 0),
        make_moment("other-dataset", 1, 0, simulation_id="other"),
        make_moment("ok", 1, 2),
    ]

    markers = place_moments(moments, [timeline])

    assert [marker.moment.id for marker in markers] == ["ok"]
    assert markers[0].flat_index == 2
    assert markers[0].value == 0.3
    assert markers[0].norm_position == pytest.approx(0.5)


def test_markers_sorted_by_severity_and_limited():
    timeline = build_timeline(make_dataset())
    moments = [
        make_moment("medium", 1, 0, MomentSeverity.MEDIUM),
        make_moment("high", 1, 1, MomentSeverity.HIGH),
        make_moment("critical", 1, 2, MomentSeverity.CRITICAL),
        make_moment("critical-2", 2, 3, MomentSeverity.CRITICAL),
    ]

    markers = place_moments(moments, [timeline], limit=3)

    assert [marker.moment.id for marker in markers] == ["critical", "critical-2", "high"]


def test_single_sample_series_centers_marker():
    dataset = Dataset(
        id="sim",
        label="Sim",
        lives=[LifeRecord(life_number=1, trust_history=[0.5])],
    )

    (marker,) = place_moments([make_moment("only", 1, 0)], [build_timeline(dataset)])

    assert marker.norm_position == 0.5
