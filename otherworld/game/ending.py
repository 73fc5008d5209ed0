"""Ending / inheritance resolver.

Runs once per life, when the player opens the ending view after death:

  1. Score the final realm and keep the best score ever as the bonus.
  2. Unawakened lives (awakening < 50) have the generator rewrite the
     宇外荒经 scripture from this life's log.
  3. Awakened lives get no generated text; the player edits the 天外异闻箓
     record by hand and commits it before the next life.

The result is cached, so reopening the ending view does not rescore or call
the generator again. reset() starts a new generation; a resolve still running
for an earlier generation is dropped without caching or writing the scripture.
"""

import asyncio
import logging

from otherworld.game.fetcher import TurnFetcher
from otherworld.game.scoring import score_for_realm
from otherworld.models import EndingSummary, GameState
from otherworld.storage import (
    KEY_BONUS_POINTS,
    KEY_RECORD,
    KEY_SCRIPTURE,
    ProgressStore,
    read_bonus_points,
)

logger = logging.getLogger(__name__)

AWAKENING_THRESHOLD = 50


class EndingResolver:
    def __init__(self, progress: ProgressStore, fetcher: TurnFetcher) -> None:
        self.progress = progress
        self.fetcher = fetcher
        self.summary: EndingSummary | None = None
        self._lock = asyncio.Lock()
        self.generation = 0

    def reset(self) -> None:
        self.summary = None
        self.generation += 1

    def _check_current(self, generation: int) -> None:
        if generation != self.generation:
            raise ValueError("The life was replaced before its ending was resolved")

    async def resolve(self, state: GameState) -> EndingSummary:
        if not state.is_dead:
            raise ValueError("The life has not ended yet")

        generation = self.generation
        async with self._lock:
            self._check_current(generation)
            if self.summary is not None:
                return self.summary

            earned = score_for_realm(state.realm)
            best = read_bonus_points(self.progress)
            if earned > best:
                self.progress.set(KEY_BONUS_POINTS, str(earned))
                best = earned
                logger.info("new inheritance record: %d points", earned)

            record = self.progress.get(KEY_RECORD) or ""
            scripture = self.progress.get(KEY_SCRIPTURE) or ""

            if state.awakening_level >= AWAKENING_THRESHOLD:
                mode = "edit"
            else:
                mode = "analyze"
                scripture = await self.fetcher.analyze_world(state.history, scripture)
                if generation != self.generation:
                    logger.info("discarding scripture analysis for a replaced life")
                self._check_current(generation)
                self.progress.set(KEY_SCRIPTURE, scripture)

            self.summary = EndingSummary(
                mode=mode,
                earned_points=earned,
                bonus_points=best,
                scripture_text=scripture,
                record_text=record,
            )
            logger.info("ending resolved mode=%s earned=%d realm=%s", mode, earned, state.realm)
            return self.summary

    def edit_record(self, text: str) -> EndingSummary:
        if self.summary is None or self.summary.mode != "edit":
            raise ValueError("The record can only be edited after an awakened ending")
        self.summary = self.summary.model_copy(update={"record_text": text})
        return self.summary

    def commit_record(self) -> None:
        if self.summary is None or self.summary.mode != "edit":
            raise ValueError("The record can only be committed after an awakened ending")
        self.progress.set(KEY_RECORD, self.summary.record_text)
