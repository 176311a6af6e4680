"""Tests for schema normalization of simulation exports."""

import contextlib
import io

from karmalens.detectors import detect_moments
from karmalens.normalizer import LIFE_NORMALIZERS, load_dataset, normalize, normalize_network
from karmalens.schemas import SchemaKind, SimulationSource, TerminationReason


MULTI = SimulationSource(id="multi", filename="multi.json", label="Multi")
NESTED = SimulationSource(
    id="nested",
    filename="nested.json",
    label="Nested",
    schema_kind=SchemaKind.NESTED_MULTI_LIFE,
    nested_key="multi_life",
)
SUMMARY = SimulationSource(
    id="summary",
    filename="summary.json",
    label="Summary",
    schema_kind=SchemaKind.SINGLE_LIFE_SUMMARY,
)
NETWORK = SimulationSource(
    id="network",
    filename="network.json",
    label="Network",
    schema_kind=SchemaKind.NETWORK_LOG,
)


def make_raw_life(**overrides):
    life = {
        "t3_history": [0.5, 0.55, 0.6],
        "atp_history": [100, 80, 60],
        "start_tick": 0,
        "end_tick": 2,
        "termination_reason": "natural",
    }
    life.update(overrides)
    return life


def _quiet(func, *args):
    with contextlib.redirect_stdout(io.StringIO()):
        return func(*args)


def test_multi_life_numbers_lives_in_order():
    raw = {"lives": [make_raw_life(), make_raw_life(start_tick=3, end_tick=5)]}

    lives = normalize(raw, MULTI)

    assert [life.life_number for life in lives] == [1, 2]
    assert lives[0].trust_history == (0.5, 0.55, 0.6)
    assert lives[1].start_tick == 3
    assert lives[0].termination_reason is TerminationReason.NATURAL


def test_multi_life_accepts_trust_history_key():
    raw = {"lives": [{"trust_history": [0.2, 0.3], "start_tick": 0, "end_tick": 1}]}

    lives = normalize(raw, MULTI)

    assert lives[0].trust_history == (0.2, 0.3)
    assert lives[0].atp_history == ()


def test_zero_values_are_data_not_missing():
    raw = {"lives": [make_raw_life(start_tick=0, end_tick=0, atp_history=[0, 0])]}

    life = normalize(raw, MULTI)[0]

    assert life.end_tick == 0
    assert life.atp_history == (0.0, 0.0)


def test_missing_histories_default_to_empty():
    raw = {"lives": [{"start_tick": 4}]}

    life = normalize(raw, MULTI)[0]

    assert life.trust_history == ()
    assert life.atp_history == ()
    assert life.end_tick == 4
    assert life.termination_reason is TerminationReason.UNKNOWN


def test_nested_multi_life_reads_named_key():
    raw = {"policy": {"name": "cautious"}, "multi_life": {"lives": [make_raw_life()]}}

    lives = normalize(raw, NESTED)

    assert len(lives) == 1
    assert lives[0].final_trust == 0.6


def test_single_life_summary_synthesizes_two_point_histories():
    raw = {
        "life_summary": {
            "initial_trust": 0.5,
            "final_trust": 0.62,
            "initial_atp": 100,
            "final_atp": 0,
            "ticks_survived": 37,
            "termination_reason": "atp_exhaustion",
        }
    }

    (life,) = normalize(raw, SUMMARY)

    assert life.trust_history == (0.5, 0.62)
    assert life.atp_history == (100.0, 0.0)
    assert life.start_tick == 0
    assert life.end_tick == 37
    assert life.life_state == "dead"
    assert life.termination_reason is TerminationReason.ATP_EXHAUSTION


def test_single_life_summary_defaults():
    (life,) = normalize({"life_summary": {"final_atp": 12}}, SUMMARY)

    assert life.trust_history == (0.5, 0.5)
    assert life.atp_history == (100.0, 12.0)
    assert life.end_tick == 20
    assert life.life_state == "alive"


def test_summary_without_final_atp_is_not_dead():
    (life,) = normalize({"life_summary": {"final_trust": 0.6, "termination_reason": "natural"}}, SUMMARY)

    assert life.atp_history == (100.0, 0.0)
    assert life.life_state == "alive"

    dataset = load_dataset({"life_summary": {"termination_reason": "natural"}}, SUMMARY)
    assert [moment.id for moment in detect_moments(dataset)] == ["summary-atp-crisis-1-1"]


def test_summary_with_exhausted_budget_is_dead():
    (life,) = normalize({"life_summary": {"final_atp": 0}}, SUMMARY)

    assert life.life_state == "dead"


def test_malformed_payloads_return_none_and_log():
    cases = [
        (["not", "a", "mapping"], MULTI),
        ({"episodes": []}, MULTI),
        ({"lives": "nope"}, MULTI),
        ({"lives": [make_raw_life(start_tick=9, end_tick=3)]}, MULTI),
        ({"lives": [make_raw_life(t3_history=["high", "low"])]}, MULTI),
        ({"single_life": {}}, NESTED),
        ({"life_summary": None}, SUMMARY),
    ]

    for raw, source in cases:
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            assert normalize(raw, source) is None
        assert "[!] [Normalize] Skipping" in buf.getvalue()


def test_network_logs_have_no_life_representation():
    assert SchemaKind.NETWORK_LOG not in LIFE_NORMALIZERS
    assert normalize({"num_agents": 3}, NETWORK) is None


def test_normalize_network_parses_events_and_snapshots():
    raw = {
        "num_agents": 4,
        "num_ticks": 50,
        "events": [{"type": "coalition_formed", "tick": 7, "members": [0, 2]}],
        "snapshots": [{"tick": 0}, {"tick": 25}],
    }

    network = normalize_network(raw, NETWORK)

    assert network.num_agents == 4
    assert network.events[0].event_type == "coalition_formed"
    assert len(network.snapshots) == 2


def test_normalize_network_rejects_non_list_events():
    assert _quiet(normalize_network, {"events": {"a": 1}}, NETWORK) is None


def test_load_dataset_copies_registry_metadata():
    source = SimulationSource(id="multi", filename="m.json", label="Multi", narrative_id="story-1")

    dataset = load_dataset({"lives": [make_raw_life()]}, source)

    assert dataset.id == "multi"
    assert dataset.narrative_id == "story-1"
    assert dataset.schema_kind is SchemaKind.MULTI_LIFE
    assert dataset.network is None
    assert len(dataset.lives) == 1


def test_load_dataset_routes_network_exports():
    dataset = load_dataset({"num_agents": 2, "events": [], "snapshots": []}, NETWORK)

    assert dataset.lives == ()
    assert dataset.network.num_agents == 2


def test_load_dataset_returns_none_for_malformed_payload():
    assert _quiet(load_dataset, "garbage", MULTI) is None
    assert _quiet(load_dataset, "garbage", NETWORK) is None
