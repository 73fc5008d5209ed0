"""Event queue and scheduler — the game loop.

Events fetched from the generator are buffered in a FIFO queue and applied
to the GameStore one at a time, with a pacing delay before each so the
narrative reveals at reading speed.

The scheduler's state is one explicit enum, recomputed after every change:

  DEAD               the life has ended; nothing is applied or fetched
  DRAINING           events are queued and will be applied in order
  FETCHING           a generator call is in flight (at most one)
  BLOCKED_ON_CHOICE  the life waits for select_choice()
  IDLE               nothing queued; fetches when auto mode is on, or on proceed()

A fetch requested while another is in flight is dropped, not queued.
Results that arrive after the life has ended or been replaced are discarded.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from enum import Enum

from otherworld.game.fetcher import TurnFetcher
from otherworld.game.state import GameStore
from otherworld.models import TurnResult

logger = logging.getLogger(__name__)

DEFAULT_PACING_MS = 800


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    DRAINING = "DRAINING"
    FETCHING = "FETCHING"
    BLOCKED_ON_CHOICE = "BLOCKED_ON_CHOICE"
    DEAD = "DEAD"


class Scheduler:
    def __init__(
        self,
        store: GameStore,
        fetcher: TurnFetcher,
        knowledge: Callable[[], str] = lambda: "",
        pacing_ms: int = DEFAULT_PACING_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.knowledge = knowledge
        self.pacing_ms = pacing_ms
        self._sleep = sleep
        self.queue: deque[TurnResult] = deque()
        self.auto = False
        self._inflight: object | None = None
        self._wake = asyncio.Event()
        self.state = SchedulerState.IDLE
        self._refresh()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def fetching(self) -> bool:
        return self._inflight is not None

    def _refresh(self) -> SchedulerState:
        game = self.store.state
        if game.is_dead:
            new = SchedulerState.DEAD
        elif self.queue:
            new = SchedulerState.DRAINING
        elif self._inflight is not None:
            new = SchedulerState.FETCHING
        elif game.pending_choice is not None:
            new = SchedulerState.BLOCKED_ON_CHOICE
        else:
            new = SchedulerState.IDLE
        if new is not self.state:
            logger.debug("scheduler %s -> %s", self.state.value, new.value)
            self.state = new
        return new

    def _notify(self) -> None:
        self._refresh()
        self._wake.set()

    def reset(self) -> None:
        """Forget everything queued for the previous life."""
        self.queue.clear()
        self.auto = False
        self._inflight = None
        self._notify()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch(self, choice_id: str | None) -> bool:
        if self._inflight is not None:
            logger.debug("fetch dropped: another fetch is in flight")
            return False
        if self.store.state.is_dead:
            return False

        token = object()
        self._inflight = token
        life_id = self.store.life_id
        snapshot = self.store.state.model_copy(deep=True)
        self._refresh()
        try:
            events = await self.fetcher.fetch_batch(snapshot, choice_id, self.knowledge())
        finally:
            if self._inflight is token:
                self._inflight = None

        if self.store.life_id != life_id or self.store.state.is_dead:
            logger.info("discarding %d events fetched for a finished life", len(events))
            self._notify()
            return False

        self.queue.extend(events)
        self._notify()
        return True

    async def proceed(self) -> bool:
        """Manual advance. Only possible with auto mode off and nothing pending."""
        self._refresh()
        if self.auto or self.state is not SchedulerState.IDLE:
            return False
        return await self._fetch(None)

    async def select_choice(self, option_id: str) -> bool:
        """Resolve the pending choice and switch to auto mode."""
        if self.store.state.is_dead or self.store.state.pending_choice is None:
            logger.debug("select_choice ignored: no pending choice")
            return False
        self.store.clear_pending_choice()
        self.auto = True
        self._notify()
        return await self._fetch(option_id)

    def toggle_auto(self) -> bool:
        self.auto = not self.auto
        self._notify()
        return self.auto

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def tick(self) -> bool:
        """Run one step of the loop. Returns True if anything happened."""
        self._refresh()
        if self.state is SchedulerState.DEAD:
            return False

        if self.queue:
            life_id = self.store.life_id
            await self._sleep(self.pacing_ms / 1000)
            if self.store.life_id != life_id or self.store.state.is_dead or not self.queue:
                return False
            event = self.queue.popleft()
            self.store.apply_turn(event)
            self._refresh()
            return True

        if self.state is SchedulerState.IDLE and self.auto:
            return await self._fetch(None)
        return False

    async def run(self) -> None:
        """Drive tick() until the life ends, sleeping while there is nothing to do."""
        while True:
            self._wake.clear()
            progressed = await self.tick()
            if self.state is SchedulerState.DEAD:
                logger.debug("scheduler loop finished: life ended")
                return
            if not progressed:
                await self._wake.wait()
