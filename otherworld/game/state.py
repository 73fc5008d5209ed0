"""Game state store — the single owner of the current life's GameState.

apply_turn() is the only way events change a life. It builds the next state
on a deep copy and swaps it in, so callers never observe a half-applied
event.
"""

import logging

from otherworld.models import (
    ATTRIBUTE_KEYS,
    Attributes,
    GamePhase,
    GameState,
    LogEntry,
    TurnResult,
)

logger = logging.getLogger(__name__)

BIRTH_TEXT = "你出生在异界，开启了你的修仙模拟人生。"
UNKNOWN_DEATH = "身死道消"


def _union(existing: list[str], new: list[str] | None) -> list[str]:
    """Order-preserving set union."""
    return list(dict.fromkeys([*existing, *(new or [])]))


class GameStore:
    def __init__(self) -> None:
        self.state = GameState()
        # Bumped whenever the state object is replaced by a new life,
        # so results fetched for an older life can be recognised.
        self.life_id = 0

    def reset(self) -> GameState:
        """Discard the current life and return to SETUP."""
        self.state = GameState()
        self.life_id += 1
        return self.state

    def new_life(self, attributes: Attributes) -> GameState:
        self.state = GameState(
            phase=GamePhase.PLAYING,
            attributes=attributes.model_copy(),
            history=[LogEntry(age=0, text=BIRTH_TEXT, type="normal")],
        )
        self.life_id += 1
        logger.info("new life started life_id=%d attributes=%s", self.life_id, attributes.model_dump())
        return self.state

    def clear_pending_choice(self) -> None:
        self.state.pending_choice = None

    def apply_turn(self, event: TurnResult) -> GameState:
        """Fold one generated event into the current life."""
        prev = self.state
        if prev.is_dead:
            raise ValueError("Cannot apply an event to a life that has ended")

        increment = event.age_increment
        if increment < 0:
            logger.warning("Clamping negative ageIncrement %d to 0", increment)
            increment = 0

        nxt = prev.model_copy(deep=True)
        new_age = prev.age + increment

        if event.choice_event:
            log_type = "choice"
        elif event.is_dead:
            log_type = "danger"
        else:
            log_type = "normal"
        nxt.history.append(LogEntry(age=new_age, text=event.log, type=log_type))

        if event.attribute_changes:
            for key in ATTRIBUTE_KEYS:
                delta = getattr(event.attribute_changes, key)
                if delta:
                    setattr(nxt.attributes, key, getattr(nxt.attributes, key) + delta)

        nxt.techniques = _union(prev.techniques, event.new_techniques)
        nxt.artifacts = _union(prev.artifacts, event.new_artifacts)
        nxt.age = new_age
        if event.realm_update:
            nxt.realm = event.realm_update
        nxt.is_dead = event.is_dead
        nxt.death_reason = event.death_reason
        nxt.pending_choice = event.choice_event
        nxt.corruption += event.corruption_change or 0
        nxt.awakening_level += event.awakening_change or 0

        if nxt.is_dead:
            reason = nxt.death_reason or UNKNOWN_DEATH
            nxt.history.append(LogEntry(age=new_age, text=f"【结局】 {reason}", type="danger"))
            nxt.phase = GamePhase.ENDED
            logger.info("life ended life_id=%d age=%d realm=%s", self.life_id, new_age, nxt.realm)

        self.state = nxt
        return nxt
