"""Game session — one player's allocator, life, scheduler and inheritance.

Implements the user-facing action set: allocate/step, start_life, proceed,
select_choice, toggle_auto, open_ending, edit_record_text, commit_record,
restart. Invalid actions raise ValueError; budget violations during
allocation are not errors and just return False.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from otherworld.game.allocator import Allocator
from otherworld.game.ending import EndingResolver
from otherworld.game.fetcher import TurnFetcher
from otherworld.game.scheduler import DEFAULT_PACING_MS, Scheduler
from otherworld.game.state import GameStore
from otherworld.llm import LLM
from otherworld.models import EndingSummary, GamePhase, GameState
from otherworld.prompts import inherited_knowledge
from otherworld.storage import ProgressStore, load_progress, read_bonus_points

logger = logging.getLogger(__name__)


def _report_loop_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("scheduler loop crashed: %s", exc, exc_info=exc)


class GameSession:
    """Wires the game components together for a single player.

    Args:
        progress:  Cross-life key/value store, read once here and written by
                   the ending resolver.
        llm:       Generator used for both turn batches and world analysis.
        pacing_ms: Delay before each queued event is applied.
        sleep:     Awaitable sleep used for pacing (tests pass a fake).
        autorun:   Start the scheduler loop as a background task on
                   start_life(). Off in tests that drive tick() by hand.
    """

    def __init__(
        self,
        progress: ProgressStore,
        llm: LLM,
        pacing_ms: int = DEFAULT_PACING_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        autorun: bool = True,
    ) -> None:
        self.progress = progress
        self.fetcher = TurnFetcher(llm)
        self.store = GameStore()
        self.inheritance = load_progress(progress)
        self.allocator = Allocator(self.inheritance.bonus_points)
        self.ending = EndingResolver(progress, self.fetcher)
        self.pacing_ms = pacing_ms
        self._sleep = sleep
        self.autorun = autorun
        self.scheduler = self._new_scheduler()
        self._task: asyncio.Task | None = None

    def _new_scheduler(self) -> Scheduler:
        return Scheduler(
            self.store,
            self.fetcher,
            knowledge=self.knowledge,
            pacing_ms=self.pacing_ms,
            sleep=self._sleep,
        )

    def knowledge(self) -> str:
        return inherited_knowledge(self.inheritance.scripture_text, self.inheritance.record_text)

    def set_llm(self, llm: LLM) -> None:
        self.fetcher.llm = llm

    def set_pacing(self, pacing_ms: int) -> None:
        """Change the delay before each event, including for the running life."""
        self.pacing_ms = pacing_ms
        self.scheduler.pacing_ms = pacing_ms

    @property
    def state(self) -> GameState:
        return self.store.state

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _require_setup(self) -> None:
        if self.state.phase is not GamePhase.SETUP:
            raise ValueError("Attributes can only be allocated before a life starts")

    def allocate(self, key: str, value: int) -> bool:
        self._require_setup()
        return self.allocator.set_attribute(key, value)

    def step(self, key: str, delta: int) -> bool:
        """+1 / -1 affordance, clamped to [0, MAX_ATTRIBUTE]."""
        self._require_setup()
        if delta > 0:
            return self.allocator.increase(key)
        if delta < 0:
            return self.allocator.decrease(key)
        return False

    def start_life(self) -> GameState:
        self._require_setup()
        if not self.allocator.can_start:
            raise ValueError(f"{self.allocator.remaining} points left to allocate")

        state = self.store.new_life(self.allocator.attributes)
        self.ending.reset()
        self.scheduler = self._new_scheduler()
        if self.autorun:
            self._task = asyncio.create_task(self.scheduler.run())
            self._task.add_done_callback(_report_loop_exit)
        return state

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------

    async def proceed(self) -> bool:
        if self.state.phase is not GamePhase.PLAYING:
            raise ValueError("No life in progress")
        return await self.scheduler.proceed()

    async def select_choice(self, option_id: str) -> bool:
        choice = self.state.pending_choice
        if choice is None:
            raise ValueError("There is no pending choice")
        if option_id not in {opt.id for opt in choice.options}:
            raise ValueError(f"Unknown option {option_id!r} for choice {choice.id!r}")
        return await self.scheduler.select_choice(option_id)

    def toggle_auto(self) -> bool:
        if self.state.phase is not GamePhase.PLAYING:
            raise ValueError("No life in progress")
        return self.scheduler.toggle_auto()

    # ------------------------------------------------------------------
    # Ending
    # ------------------------------------------------------------------

    async def open_ending(self) -> EndingSummary:
        summary = await self.ending.resolve(self.state)
        self.inheritance.bonus_points = summary.bonus_points
        self.inheritance.scripture_text = summary.scripture_text
        return summary

    def edit_record_text(self, text: str) -> EndingSummary:
        return self.ending.edit_record(text)

    def commit_record(self) -> None:
        self.ending.commit_record()
        self.inheritance.record_text = self.ending.summary.record_text
        self.restart()

    def restart(self) -> None:
        """Throw away the current life and return to attribute allocation."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.scheduler.reset()
        self.store.reset()
        self.ending.reset()
        self.inheritance.bonus_points = read_bonus_points(self.progress)
        self.allocator = Allocator(self.inheritance.bonus_points)
        self.scheduler = self._new_scheduler()
        logger.info("restarted with %d bonus points", self.inheritance.bonus_points)

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Everything a renderer needs, as JSON-ready data."""
        return {
            "phase": self.state.phase.value,
            "state": self.state.model_dump(mode="json", by_alias=True),
            "allocation": {
                "attributes": self.allocator.attributes.model_dump(by_alias=True),
                "remaining": self.allocator.remaining,
                "bonusPoints": self.allocator.bonus_points,
                "canStart": self.allocator.can_start,
            },
            "scheduler": {
                "state": self.scheduler.state.value,
                "auto": self.scheduler.auto,
                "queued": len(self.scheduler.queue),
                "fetching": self.scheduler.fetching,
            },
            "ending": (
                self.ending.summary.model_dump(mode="json", by_alias=True)
                if self.ending.summary else None
            ),
        }
