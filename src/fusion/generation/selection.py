from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Selection(Generic[T]):
    entity_a: T
    entity_b: T
    theme: str


def select_pair_and_theme(
    roster: Sequence[T],
    themes: Sequence[str],
    rng: Optional[random.Random] = None,
) -> Selection[T]:
    """Pick two different roster entries and one theme, all uniformly.

    The second entry is redrawn until it differs from the first.
    """

    if len(roster) < 2:
        raise ValueError("Roster must contain at least two entities")
    if not themes:
        raise ValueError("Theme list is empty")

    rng = rng or random.Random()
    entity_a = rng.choice(roster)
    entity_b = rng.choice(roster)
    while entity_b == entity_a:
        entity_b = rng.choice(roster)
    theme = rng.choice(themes)
    return Selection(entity_a=entity_a, entity_b=entity_b, theme=theme)
