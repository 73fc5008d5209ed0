"""Tests for GameStore.apply_turn and life lifecycle."""

import pytest

from otherworld.game.state import BIRTH_TEXT, GameStore
from otherworld.models import (
    AttributeChanges,
    Attributes,
    ChoiceEvent,
    ChoiceOption,
    GamePhase,
    TurnResult,
)


def _playing_store() -> GameStore:
    store = GameStore()
    store.new_life(Attributes(essence=5, qi=5, spirit=5, root_bone=5, merit=4))
    return store


def _choice() -> ChoiceEvent:
    return ChoiceEvent(
        id="c1", title="岔路", description="左还是右？",
        options=[ChoiceOption(id="left", text="向左"), ChoiceOption(id="right", text="向右")],
    )


def test_new_life_seeds_history():
    store = _playing_store()
    state = store.state
    assert state.phase is GamePhase.PLAYING
    assert state.age == 0
    assert len(state.history) == 1
    assert state.history[0].text == BIRTH_TEXT
    assert state.attributes.merit == 4


def test_new_life_bumps_life_id():
    store = GameStore()
    before = store.life_id
    store.new_life(Attributes())
    assert store.life_id == before + 1
    store.reset()
    assert store.life_id == before + 2
    assert store.state.phase is GamePhase.SETUP


def test_apply_turn_advances_age_and_logs():
    store = _playing_store()
    store.apply_turn(TurnResult(log="闭关五年。", age_increment=5, is_dead=False))
    state = store.state
    assert state.age == 5
    assert len(state.history) == 2
    assert state.history[-1].age == 5
    assert state.history[-1].text == "闭关五年。"
    assert state.history[-1].type == "normal"
    assert state.is_dead is False


def test_attribute_deltas_are_additive():
    store = _playing_store()
    store.apply_turn(TurnResult(
        log="x", age_increment=1,
        attribute_changes=AttributeChanges(qi=3, root_bone=-2, spirit=0),
    ))
    attrs = store.state.attributes
    assert attrs.qi == 8
    assert attrs.root_bone == 3
    assert attrs.spirit == 5
    assert attrs.essence == 5


def test_attributes_may_exceed_ten_after_start():
    store = _playing_store()
    store.apply_turn(TurnResult(log="x", age_increment=1, attribute_changes=AttributeChanges(qi=20)))
    assert store.state.attributes.qi == 25


def test_techniques_are_deduplicated_in_order():
    store = _playing_store()
    store.apply_turn(TurnResult(log="a", age_increment=1, new_techniques=["Foundation Sutra", "吐纳术"]))
    store.apply_turn(TurnResult(log="b", age_increment=1, new_techniques=["Foundation Sutra"]))
    assert store.state.techniques == ["Foundation Sutra", "吐纳术"]


def test_artifacts_union():
    store = _playing_store()
    store.apply_turn(TurnResult(log="a", age_increment=1, new_artifacts=["青铜鼎"]))
    store.apply_turn(TurnResult(log="b", age_increment=1, new_artifacts=["青铜鼎", "木剑"]))
    assert store.state.artifacts == ["青铜鼎", "木剑"]


def test_realm_replaced_only_when_non_empty():
    store = _playing_store()
    store.apply_turn(TurnResult(log="a", age_increment=1, realm_update="炼气期一层"))
    store.apply_turn(TurnResult(log="b", age_increment=1, realm_update=""))
    store.apply_turn(TurnResult(log="c", age_increment=1))
    assert store.state.realm == "炼气期一层"


def test_hidden_counters_accumulate():
    store = _playing_store()
    store.apply_turn(TurnResult(log="a", age_increment=1, corruption_change=4, awakening_change=10))
    store.apply_turn(TurnResult(log="b", age_increment=1, corruption_change=-1))
    assert store.state.corruption == 3
    assert store.state.awakening_level == 10


def test_choice_event_sets_pending_choice_and_log_type():
    store = _playing_store()
    store.apply_turn(TurnResult(log="路分两条。", age_increment=1, choice_event=_choice()))
    assert store.state.pending_choice.id == "c1"
    assert store.state.history[-1].type == "choice"

    store.apply_turn(TurnResult(log="你向左走。", age_increment=0))
    assert store.state.pending_choice is None


def test_death_adds_summary_entry_and_ends_life():
    store = _playing_store()
    store.apply_turn(TurnResult(log="雷劫落下。", age_increment=2, is_dead=True, death_reason="天雷"))
    state = store.state
    assert state.is_dead is True
    assert state.death_reason == "天雷"
    assert state.phase is GamePhase.ENDED
    assert len(state.history) == 3
    assert state.history[-2].type == "danger"
    assert state.history[-1].text == "【结局】 天雷"
    assert state.history[-1].type == "danger"
    assert state.history[-1].age == 2


def test_death_without_reason_still_summarised():
    store = _playing_store()
    store.apply_turn(TurnResult(log="x", age_increment=1, is_dead=True))
    assert store.state.history[-1].text.startswith("【结局】")


def test_negative_age_increment_clamped():
    store = _playing_store()
    store.apply_turn(TurnResult(log="a", age_increment=10))
    store.apply_turn(TurnResult(log="b", age_increment=-4))
    assert store.state.age == 10
    assert store.state.history[-1].age == 10


def test_dead_life_is_frozen():
    store = _playing_store()
    store.apply_turn(TurnResult(log="x", age_increment=1, is_dead=True, death_reason="寿尽"))
    with pytest.raises(ValueError):
        store.apply_turn(TurnResult(log="y", age_increment=1))
    assert len(store.state.history) == 3


def test_apply_turn_replaces_state_object():
    """Readers holding the old state never see a partially applied event."""
    store = _playing_store()
    before = store.state
    store.apply_turn(TurnResult(log="x", age_increment=3, new_techniques=["t"]))
    assert before.age == 0
    assert before.techniques == []
    assert len(before.history) == 1
