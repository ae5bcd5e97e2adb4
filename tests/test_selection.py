from __future__ import annotations

import random

import pytest

from fusion.generation.selection import select_pair_and_theme
from fusion.services.roster import THEMES, Champion


class ScriptedRandom(random.Random):
    """Returns queued choices in order, to drive the resample loop."""

    def __init__(self, picks: list) -> None:
        super().__init__(0)
        self._picks = list(picks)

    def choice(self, seq):  # type: ignore[override]
        return self._picks.pop(0)


def test_selection_never_repeats_an_entity() -> None:
    roster = [f"champ-{index}" for index in range(5)]
    rng = random.Random(1234)
    for _ in range(500):
        selection = select_pair_and_theme(roster, THEMES, rng)
        assert selection.entity_a != selection.entity_b
        assert selection.theme in THEMES


def test_two_entity_roster_always_yields_that_pair() -> None:
    roster = ["Ahri", "Yone"]
    rng = random.Random(99)
    for _ in range(50):
        selection = select_pair_and_theme(roster, ["Arcane"], rng)
        assert {selection.entity_a, selection.entity_b} == {"Ahri", "Yone"}
        assert selection.theme == "Arcane"


def test_second_pick_is_redrawn_until_distinct() -> None:
    ahri = Champion(id="Ahri", name="Ahri")
    yone = Champion(id="Yone", name="Yone")
    rng = ScriptedRandom([ahri, ahri, ahri, yone, "Coven"])

    selection = select_pair_and_theme([ahri, yone], THEMES, rng)

    assert selection.entity_a == ahri
    assert selection.entity_b == yone
    assert selection.theme == "Coven"


@pytest.mark.parametrize("roster", [[], ["Solo"]])
def test_selection_requires_two_entities(roster) -> None:
    with pytest.raises(ValueError):
        select_pair_and_theme(roster, THEMES)


def test_selection_requires_themes() -> None:
    with pytest.raises(ValueError):
        select_pair_and_theme(["Ahri", "Yone"], [])
