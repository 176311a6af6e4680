"""Unit tests for the core schema building blocks."""

import pytest
from pydantic import ValidationError

from karmalens.schemas import (
    Dataset,
    LifeRecord,
    Moment,
    MomentCategory,
    MomentKind,
    MomentSeverity,
    NetworkEvent,
    TerminationReason,
)


def test_life_record_accessors_are_bounds_checked():
    life = LifeRecord(life_number=1, trust_history=[0.5, 0.6], atp_history=[])

    assert life.initial_trust == 0.5
    assert life.final_trust == 0.6
    assert life.initial_atp is None
    assert life.final_atp is None


def test_life_record_histories_are_immutable():
    life = LifeRecord(life_number=1, trust_history=[0.5, 0.6])

    assert isinstance(life.trust_history, tuple)
    with pytest.raises(ValidationError):
        life.trust_history = (0.1,)


def test_life_record_rejects_end_before_start():
    with pytest.raises(ValidationError):
        LifeRecord(life_number=1, start_tick=10, end_tick=5)


def test_life_record_requires_positive_life_number():
    with pytest.raises(ValidationError):
        LifeRecord(life_number=0)


def test_termination_reason_parse_maps_unknown_values():
    assert TerminationReason.parse("atp_exhaustion") is TerminationReason.ATP_EXHAUSTION
    assert TerminationReason.parse(" Natural ") is TerminationReason.NATURAL
    assert TerminationReason.parse("eaten_by_grue") is TerminationReason.UNKNOWN
    assert TerminationReason.parse(None) is TerminationReason.UNKNOWN
    assert TerminationReason.parse(42) is TerminationReason.UNKNOWN


def test_network_event_accepts_type_alias():
    event = NetworkEvent.model_validate({"type": "coalition_formed", "tick": 12, "members": ["a", 3]})

    assert event.event_type == "coalition_formed"
    assert event.tick == 12
    assert event.members == ("a", 3)


def test_network_event_null_tick_defaults_to_zero():
    event = NetworkEvent.model_validate({"event_type": "trust_update", "tick": None})
    assert event.tick == 0


def test_dataset_trust_samples_flatten_lives_in_order():
    dataset = Dataset(
        id="sim",
        label="Sim",
        lives=[
            LifeRecord(life_number=1, trust_history=[0.1, 0.2]),
            LifeRecord(life_number=2, trust_history=[0.3]),
        ],
    )

    assert list(dataset.trust_samples()) == [0.1, 0.2, 0.3]


def test_moment_data_keeps_numeric_and_string_evidence():
    moment = Moment(
        id="sim-death-1",
        title="t",
        narrative="n",
        significance="s",
        kind=MomentKind.DEATH,
        category=MomentCategory.CRISIS,
        severity=MomentSeverity.CRITICAL,
        tick=3,
        life_number=1,
        simulation_id="sim",
        data={"final_trust": 0.4, "current_atp": 10, "termination_reason": "atp_exhaustion"},
    )

    assert moment.data["final_trust"] == 0.4
    assert moment.data["current_atp"] == 10
    assert isinstance(moment.data["current_atp"], int)
    assert moment.data["termination_reason"] == "atp_exhaustion"
