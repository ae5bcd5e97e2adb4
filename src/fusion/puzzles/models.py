from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..services.roster import THEMES

ZOOM_START = 3.0
ZOOM_STEP = 0.5
ZOOM_MIN = 1.0


class Slot(str, Enum):
    A = "A"
    B = "B"


class Phase(str, Enum):
    SEEKING_PAIR = "seeking_pair"
    SEEKING_THEME = "seeking_theme"
    WON = "won"


class Puzzle(BaseModel):
    """A published daily puzzle including its answers."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    entity_a: str = Field(
        validation_alias=AliasChoices("entityA", "entity_a"),
        serialization_alias="entityA",
    )
    entity_b: str = Field(
        validation_alias=AliasChoices("entityB", "entity_b"),
        serialization_alias="entityB",
    )
    theme: str
    image_url: str = Field(
        validation_alias=AliasChoices("imageUrl", "image_url"),
        serialization_alias="imageUrl",
    )
    date: dt.date

    @model_validator(mode="after")
    def _check_answers(self) -> "Puzzle":
        if self.entity_a == self.entity_b:
            raise ValueError("A puzzle must fuse two different entities")
        if self.theme not in THEMES:
            raise ValueError(f"Unknown theme: {self.theme}")
        return self

    def answer_for(self, slot: Slot) -> str:
        return self.entity_a if slot is Slot.A else self.entity_b


class PublicPuzzle(BaseModel):
    """What players may see before finishing: the image and its date."""

    available: bool = True
    date: Optional[dt.date] = None
    image_url: Optional[str] = Field(default=None, serialization_alias="imageUrl")


class Solution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity_a: str = Field(
        validation_alias=AliasChoices("entityA", "entity_a"),
        serialization_alias="entityA",
    )
    entity_b: str = Field(
        validation_alias=AliasChoices("entityB", "entity_b"),
        serialization_alias="entityB",
    )
    theme: str


class GuessSession(BaseModel):
    """Per-player progress for one day, owned by the client."""

    model_config = ConfigDict(populate_by_name=True)

    date: Optional[dt.date] = None
    found_slots: Set[Slot] = Field(
        default_factory=set,
        validation_alias=AliasChoices("foundSlots", "found_slots"),
        serialization_alias="foundSlots",
    )
    wrong_guesses: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("wrongGuesses", "wrong_guesses"),
        serialization_alias="wrongGuesses",
    )
    wrong_theme_guesses: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("wrongThemeGuesses", "wrong_theme_guesses"),
        serialization_alias="wrongThemeGuesses",
    )
    attempts: int = Field(default=0, ge=0)
    phase: Phase = Phase.SEEKING_PAIR
    given_up: bool = Field(
        default=False,
        validation_alias=AliasChoices("givenUp", "given_up"),
        serialization_alias="givenUp",
    )
    zoom_level: float = Field(
        default=ZOOM_START,
        validation_alias=AliasChoices("zoomLevel", "zoom_level"),
        serialization_alias="zoomLevel",
    )

    @field_validator("zoom_level")
    @classmethod
    def _clamp_zoom(cls, value: float) -> float:
        return max(ZOOM_MIN, min(ZOOM_START, value))


class GuessResult(BaseModel):
    """Outcome of a single guess as reported to the player."""

    correct: bool
    slot: Optional[Slot] = None
    message: str
    phase: Optional[Phase] = None
    available: bool = True
    already_found: bool = Field(default=False, serialization_alias="alreadyFound")
    duplicate: bool = False


class GuessOutcome(BaseModel):
    result: GuessResult
    session: GuessSession


class GiveUpOutcome(BaseModel):
    solution: Solution
    session: GuessSession


class StatsBucket(BaseModel):
    label: str
    count: int = 0


class AttemptStats(BaseModel):
    date: Optional[dt.date] = None
    distribution: Dict[int, int] = Field(default_factory=dict)
    total: int = 0
    buckets: List[StatsBucket] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    date: dt.date
    entity_a: str = Field(serialization_alias="entityA")
    entity_b: str = Field(serialization_alias="entityB")
    theme: str
    image_url: str = Field(serialization_alias="imageUrl")
    total_solvers: int = Field(default=0, serialization_alias="totalSolvers")
