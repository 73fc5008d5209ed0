"""Turn fetcher — the boundary to the external narrative generator.

generate_batch() returns a tagged result (TurnBatch | GenerationFailure) and
never raises. fetch_batch() turns a failure into a single in-world
"disturbance" event so the scheduler always has something to show.
analyze_world() rewrites the inherited scripture at the end of a life and
falls back to the previous text on failure.
"""

import json
import logging

from pydantic import BaseModel, ValidationError

from otherworld.llm import LLM, LLMError
from otherworld.models import BatchTurnResult, GameState, LogEntry, TurnResult
from otherworld.prompts import (
    ANALYSIS_PROMPT,
    TURN_PROMPT,
    PromptError,
    build_analysis_context,
    build_turn_context,
    render_prompt,
)

logger = logging.getLogger(__name__)

FALLBACK_LOG = "天道紊乱，无法推演未来... (API Error)"
ILLEGIBLE_MARKER = "\n(天书残缺，无法辨认...)"


class TurnBatch(BaseModel):
    events: list[TurnResult]


class GenerationFailure(BaseModel):
    reason: str


def fallback_event() -> TurnResult:
    return TurnResult(log=FALLBACK_LOG, age_increment=0, is_dead=False)


def _strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from LLM output."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def parse_batch(text: str) -> list[TurnResult]:
    """Validate generator output. Raises ValueError on anything malformed."""
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        raise ValueError(f"Generator returned invalid JSON: {e}") from e
    # Accept a bare array as well as {"events": [...]}
    if isinstance(data, list):
        data = {"events": data}
    try:
        batch = BatchTurnResult.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Generator output does not match schema: {e}") from e
    if not batch.events:
        raise ValueError("Generator returned no events")
    return batch.events


def truncate_batch(events: list[TurnResult]) -> list[TurnResult]:
    """Cut the batch after the first event that needs a choice or ends the life."""
    for i, event in enumerate(events):
        if event.choice_event or event.is_dead:
            if i + 1 < len(events):
                logger.warning("Dropping %d events after a choice/death event", len(events) - i - 1)
            return events[: i + 1]
    return events


class TurnFetcher:
    def __init__(self, llm: LLM) -> None:
        self.llm = llm

    async def generate_batch(
        self,
        state: GameState,
        choice_id: str | None = None,
        inherited_knowledge: str = "",
    ) -> TurnBatch | GenerationFailure:
        try:
            prompt = render_prompt(
                TURN_PROMPT, build_turn_context(state, choice_id, inherited_knowledge)
            )
            text = await self.llm("turn", prompt)
            events = parse_batch(text)
        except (LLMError, PromptError, ValueError) as e:
            return GenerationFailure(reason=str(e))
        except Exception as e:
            logger.exception("Unexpected error from turn generator")
            return GenerationFailure(reason=f"{type(e).__name__}: {e}")
        return TurnBatch(events=truncate_batch(events))

    async def fetch_batch(
        self,
        state: GameState,
        choice_id: str | None = None,
        inherited_knowledge: str = "",
    ) -> list[TurnResult]:
        """Return the next events to enqueue. Never raises."""
        result = await self.generate_batch(state, choice_id, inherited_knowledge)
        if isinstance(result, GenerationFailure):
            logger.warning(f"Turn generation failed, using fallback event: {result.reason}")
            return [fallback_event()]
        logger.debug("fetched %d events choice_id=%s", len(result.events), choice_id)
        return result.events

    async def analyze_world(self, history: list[LogEntry], existing_scripture: str) -> str:
        """Rewrite the scripture with lessons from this life. Never raises."""
        try:
            prompt = render_prompt(
                ANALYSIS_PROMPT, build_analysis_context(history, existing_scripture)
            )
            text = await self.llm("analysis", prompt)
        except Exception as e:
            logger.warning(f"World analysis failed: {e}")
            return existing_scripture + ILLEGIBLE_MARKER
        return text.strip() or existing_scripture
