"""Core domain models.

Every game component operates on these types. Pydantic is used for
validation and serialisation at every data boundary: the LLM's JSON output
is validated into TurnResult/BatchTurnResult, and the API returns
GameState/EndingSummary dumps.

JSON field names are camelCase (the generator's schema speaks "ageIncrement",
"rootBone", ...); Python attribute names are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GamePhase(str, Enum):
    SETUP = "SETUP"
    PLAYING = "PLAYING"
    ENDED = "ENDED"


ATTRIBUTE_KEYS = ("essence", "qi", "spirit", "root_bone", "merit")


class Attributes(_Model):
    essence: int = 0   # 精 body / health
    qi: int = 0        # 气 energy
    spirit: int = 0    # 神 mind / soul
    root_bone: int = 0  # 根骨 potential
    merit: int = 0     # 功德 luck / karma

    def total(self) -> int:
        return sum(getattr(self, k) for k in ATTRIBUTE_KEYS)


class AttributeChanges(_Model):
    """Partial attribute deltas. Missing keys mean "unchanged"."""

    essence: int | None = None
    qi: int | None = None
    spirit: int | None = None
    root_bone: int | None = None
    merit: int | None = None


LogType = Literal["normal", "important", "danger", "success", "choice"]


class LogEntry(_Model):
    """One line of a life's append-only history."""

    model_config = ConfigDict(frozen=True)

    age: int
    text: str
    type: LogType = "normal"


class ChoiceOption(_Model):
    id: str
    text: str


class ChoiceEvent(_Model):
    id: str
    title: str
    description: str
    options: list[ChoiceOption]


class TurnResult(_Model):
    """One narrative event produced by the turn generator."""

    log: str
    age_increment: int
    attribute_changes: AttributeChanges | None = None
    new_techniques: list[str] | None = None
    new_artifacts: list[str] | None = None
    realm_update: str | None = None
    is_dead: bool = False
    death_reason: str | None = None
    choice_event: ChoiceEvent | None = None
    corruption_change: int | None = None
    awakening_change: int | None = None


class BatchTurnResult(_Model):
    events: list[TurnResult]


class GameState(_Model):
    """The single mutable record describing the current life."""

    phase: GamePhase = GamePhase.SETUP
    age: int = 0
    realm: str = "凡人 (Mortal)"
    attributes: Attributes = Field(default_factory=Attributes)
    techniques: list[str] = Field(default_factory=list)
    artifacts: list[str] = Field(default_factory=list)
    history: list[LogEntry] = Field(default_factory=list)
    is_dead: bool = False
    death_reason: str | None = None
    pending_choice: ChoiceEvent | None = None
    awakening_level: int = 0  # hidden
    corruption: int = 0       # hidden


class PersistedProgress(_Model):
    """Cross-life inheritance: the only state that survives a restart."""

    bonus_points: int = 0
    scripture_text: str = ""
    record_text: str = ""


EndingMode = Literal["analyze", "edit"]


class EndingSummary(_Model):
    """What the ending view shows once a life has been concluded."""

    mode: EndingMode
    earned_points: int
    bonus_points: int
    scripture_text: str = ""
    record_text: str = ""
