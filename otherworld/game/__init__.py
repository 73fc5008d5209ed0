"""Cultivation life game loop.

  1. Allocator — the player spends a point budget on five attributes.
  2. GameStore — holds the life's GameState; apply_turn() folds one event in.
  3. TurnFetcher — asks the LLM for 1–5 events (or a single fallback event).
  4. Scheduler — queues fetched events and applies them one per paced tick;
     stops at pending choices and at death.
  5. EndingResolver — after death, scores the realm, keeps the best score as
     an inheritance bonus, and rewrites (unawakened) or lets the player edit
     (awakened) the text carried into the next life.
  6. GameSession — the player-facing action set over all of the above.
"""

from .allocator import INITIAL_POINTS, MAX_ATTRIBUTE, Allocator  # noqa: F401
from .ending import AWAKENING_THRESHOLD, EndingResolver  # noqa: F401
from .fetcher import GenerationFailure, TurnBatch, TurnFetcher  # noqa: F401
from .scheduler import Scheduler, SchedulerState  # noqa: F401
from .scoring import REALM_POINTS, score_for_realm  # noqa: F401
from .session import GameSession  # noqa: F401
from .state import GameStore  # noqa: F401
