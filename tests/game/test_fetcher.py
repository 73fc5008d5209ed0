"""Tests for the turn fetcher and world analysis with a mocked LLM."""

import json
from unittest.mock import AsyncMock

from otherworld.game.fetcher import (
    FALLBACK_LOG,
    ILLEGIBLE_MARKER,
    GenerationFailure,
    TurnBatch,
    TurnFetcher,
    parse_batch,
    truncate_batch,
)
from otherworld.llm import LLMError
from otherworld.models import GameState, LogEntry, TurnResult


def _events_json(*events: dict) -> str:
    return json.dumps({"events": list(events)}, ensure_ascii=False)


def _event(log: str, age: int = 1, **extra) -> dict:
    return {"log": log, "ageIncrement": age, "isDead": False, **extra}


CHOICE = {
    "id": "c1", "title": "t", "description": "d",
    "options": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}],
}


# ── parse_batch / truncate_batch ─────────────────────────────


def test_parse_batch_strips_markdown_fences():
    text = "```json\n" + _events_json(_event("a"), _event("b")) + "\n```"
    events = parse_batch(text)
    assert [e.log for e in events] == ["a", "b"]


def test_parse_batch_accepts_bare_array():
    events = parse_batch(json.dumps([_event("a")]))
    assert events[0].log == "a"


def test_truncate_batch_stops_at_choice():
    events = [
        TurnResult(log="a", age_increment=1),
        TurnResult.model_validate(_event("choice", choiceEvent=CHOICE)),
        TurnResult(log="after", age_increment=1),
    ]
    assert [e.log for e in truncate_batch(events)] == ["a", "choice"]


def test_truncate_batch_stops_at_death():
    events = [
        TurnResult(log="dies", age_increment=1, is_dead=True),
        TurnResult(log="ghost", age_increment=1),
    ]
    assert [e.log for e in truncate_batch(events)] == ["dies"]


# ── generate_batch ───────────────────────────────────────────


async def test_generate_batch_success():
    llm = AsyncMock(return_value=_events_json(_event("a", 3), _event("b", 2)))
    result = await TurnFetcher(llm).generate_batch(GameState())
    assert isinstance(result, TurnBatch)
    assert [e.age_increment for e in result.events] == [3, 2]
    assert llm.call_args[0][0] == "turn"


async def test_generate_batch_passes_choice_and_knowledge_into_prompt():
    llm = AsyncMock(return_value=_events_json(_event("resolved", 0)))
    await TurnFetcher(llm).generate_batch(GameState(), "b", "[宇外荒经 Fragment]: 经")
    prompt = llm.call_args[0][1]
    assert 'RESOLVING CHOICE ID "b"' in prompt
    assert "[宇外荒经 Fragment]: 经" in prompt


async def test_generate_batch_tags_llm_failure():
    llm = AsyncMock(side_effect=LLMError("Cannot connect"))
    result = await TurnFetcher(llm).generate_batch(GameState())
    assert isinstance(result, GenerationFailure)
    assert "Cannot connect" in result.reason


async def test_generate_batch_tags_invalid_json():
    result = await TurnFetcher(AsyncMock(return_value="the heavens speak")).generate_batch(GameState())
    assert isinstance(result, GenerationFailure)


async def test_generate_batch_tags_schema_mismatch():
    llm = AsyncMock(return_value=json.dumps({"events": [{"text": "no log field"}]}))
    result = await TurnFetcher(llm).generate_batch(GameState())
    assert isinstance(result, GenerationFailure)


async def test_generate_batch_tags_empty_batch():
    result = await TurnFetcher(AsyncMock(return_value='{"events": []}')).generate_batch(GameState())
    assert isinstance(result, GenerationFailure)


# ── fetch_batch ──────────────────────────────────────────────


async def test_fetch_batch_returns_events():
    llm = AsyncMock(return_value=_events_json(_event("a"), _event("b")))
    events = await TurnFetcher(llm).fetch_batch(GameState())
    assert [e.log for e in events] == ["a", "b"]


async def test_fetch_batch_failure_yields_single_fallback_event():
    llm = AsyncMock(side_effect=LLMError("timed out"))
    events = await TurnFetcher(llm).fetch_batch(GameState())
    assert len(events) == 1
    fallback = events[0]
    assert fallback.log == FALLBACK_LOG
    assert fallback.age_increment == 0
    assert fallback.is_dead is False
    assert fallback.attribute_changes is None
    assert fallback.choice_event is None


async def test_fetch_batch_unexpected_exception_does_not_escape():
    llm = AsyncMock(side_effect=KeyError("boom"))
    events = await TurnFetcher(llm).fetch_batch(GameState())
    assert events[0].log == FALLBACK_LOG


# ── analyze_world ────────────────────────────────────────────


async def test_analyze_world_returns_rewritten_text():
    llm = AsyncMock(return_value="  新经文：气者，黏也。 \n")
    history = [LogEntry(age=0, text="出生"), LogEntry(age=90, text="老死")]
    text = await TurnFetcher(llm).analyze_world(history, "旧经文")
    assert text == "新经文：气者，黏也。"
    assert llm.call_args[0][0] == "analysis"
    assert "[90岁] 老死" in llm.call_args[0][1]


async def test_analyze_world_failure_appends_marker():
    llm = AsyncMock(side_effect=LLMError("down"))
    text = await TurnFetcher(llm).analyze_world([], "旧经文")
    assert text == "旧经文" + ILLEGIBLE_MARKER


async def test_analyze_world_empty_response_keeps_existing():
    text = await TurnFetcher(AsyncMock(return_value="   ")).analyze_world([], "旧经文")
    assert text == "旧经文"
