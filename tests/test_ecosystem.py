"""Tests for ecosystem-wide aggregation."""

import pytest

from karmalens.detectors import detect_all
from karmalens.ecosystem import aggregate, atp_consumed
from karmalens.schemas import Dataset, LifeRecord, MomentCategory, MomentKind


def make_dataset(dataset_id, *lives):
    return Dataset(id=dataset_id, label=dataset_id, lives=lives)


def make_life(number, trust, atp=(), start=0):
    return LifeRecord(
        life_number=number,
        start_tick=start,
        end_tick=start + max(len(trust) - 1, 0),
        trust_history=trust,
        atp_history=atp,
    )


def test_atp_consumed_ignores_gains_and_empty_histories():
    assert atp_consumed([100, 40]) == 60
    assert atp_consumed([20, 80]) == 0
    assert atp_consumed([]) == 0


def test_trust_statistics_use_flattened_population():
    # Per-dataset means would be 0.2 and 0.8 (mean 0.5); the flattened mean is 0.65
    small = make_dataset("small", make_life(1, [0.2]))
    large = make_dataset("large", make_life(1, [0.8, 0.8, 0.8]))

    stats = aggregate([small, large], [])

    assert stats.average_trust == pytest.approx(0.65)
    assert stats.trust_range.minimum == 0.2
    assert stats.trust_range.maximum == 0.8
    assert stats.total_trust_samples == 4


def test_counts_and_atp_consumption():
    dataset = make_dataset(
        "sim",
        make_life(1, [0.6, 0.3, 0.55], atp=[100, 15]),
        make_life(2, [0.7, 0.65], atp=[50, 70], start=3),
    )
    moments = detect_all([dataset])

    stats = aggregate([dataset], moments)

    assert stats.total_simulations == 1
    assert stats.total_lives == 2
    assert stats.total_atp_consumed == 85
    assert stats.total_moments == len(moments)
    assert stats.threshold_crossings == 1
    assert stats.karma_events == 1
    assert stats.crisis_events == 1
    assert stats.emergence_events == 1
    assert stats.moments_by_category[MomentCategory.TRUST] == 2
    assert stats.moments_by_category[MomentCategory.ATP] == 0


def test_empty_input_yields_zeroed_statistics():
    stats = aggregate([], [])

    assert stats.total_simulations == 0
    assert stats.average_trust == 0.0
    assert stats.trust_range.minimum == 0.0
    assert stats.trust_range.maximum == 0.0
    assert set(stats.moments_by_category) == set(MomentCategory)


def test_network_datasets_count_without_lives():
    network_only = Dataset(id="net", label="Net")

    stats = aggregate([network_only], [])

    assert stats.total_simulations == 1
    assert stats.total_lives == 0


def test_threshold_crossings_count_by_detector_kind():
    # Coalition and network-evolution moments are emergence but not crossings
    dataset = make_dataset("sim", make_life(1, [0.6, 0.3]), make_life(2, [0.4, 0.6], start=2))
    network = Dataset(
        id="net",
        label="net",
        network={"events": [{"type": "coalition_formed", "tick": 2}], "snapshots": [{}, {}]},
    )
    moments = detect_all([dataset, network])

    stats = aggregate([dataset, network], moments)

    assert stats.threshold_crossings == 1
    assert stats.emergence_events == 3


def test_threshold_crossings_ignore_moment_id_format():
    moments = detect_all([make_dataset("sim", make_life(1, [0.4, 0.6]))])
    (moment,) = [m for m in moments if m.kind is MomentKind.THRESHOLD]
    renamed = moment.model_copy(update={"id": "custom-id"})

    assert aggregate([], [renamed]).threshold_crossings == 1
