from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from ..core.config import settings
from ..services.cache import CacheBackend, get_cache
from ..services.puzzle_store import load_current_puzzle
from ..services.stats import read_stats, record_completion
from .models import (
    ZOOM_MIN,
    ZOOM_STEP,
    AttemptStats,
    GiveUpOutcome,
    GuessOutcome,
    GuessResult,
    GuessSession,
    Phase,
    PublicPuzzle,
    Puzzle,
    Slot,
    Solution,
)

logger = logging.getLogger(__name__)

NO_PUZZLE_MESSAGE = "No active puzzle"


class GuessError(ValueError):
    """Raised for guesses that can never be evaluated (blank, finished game)."""


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def normalize_guess(value: str) -> str:
    return value.strip().lower()


def _require_guess(guess: str) -> str:
    normalized = normalize_guess(guess)
    if not normalized:
        raise GuessError("Guess cannot be empty")
    return normalized


def _pair_phase(found: set[Slot]) -> Phase:
    return Phase.SEEKING_THEME if found >= {Slot.A, Slot.B} else Phase.SEEKING_PAIR


def unavailable_result() -> GuessResult:
    return GuessResult(correct=False, available=False, message=NO_PUZZLE_MESSAGE)


def evaluate_pair_guess(puzzle: Puzzle, guess: str, found_slots: Iterable[Slot]) -> GuessResult:
    """Score a guess for one of the two fused entities."""

    normalized = _require_guess(guess)
    found = set(found_slots)

    for slot in (Slot.A, Slot.B):
        if slot in found and normalized == normalize_guess(puzzle.answer_for(slot)):
            return GuessResult(
                correct=False,
                already_found=True,
                message="Already found!",
                phase=_pair_phase(found),
            )

    for slot in (Slot.A, Slot.B):
        answer = puzzle.answer_for(slot)
        if slot not in found and normalized == normalize_guess(answer):
            return GuessResult(
                correct=True,
                slot=slot,
                message=f"Correct! It contains {answer}!",
                phase=_pair_phase(found | {slot}),
            )

    return GuessResult(correct=False, message="Incorrect!", phase=_pair_phase(found))


def evaluate_theme_guess(puzzle: Puzzle, guess: str) -> GuessResult:
    normalized = _require_guess(guess)
    if normalized == normalize_guess(puzzle.theme):
        return GuessResult(correct=True, message="YOU WON! Fusion completed.", phase=Phase.WON)
    return GuessResult(correct=False, message="Wrong theme!", phase=Phase.SEEKING_THEME)


def _session_for(puzzle: Puzzle, session: GuessSession) -> GuessSession:
    # progress from another day never carries over
    if session.date == puzzle.date:
        return session
    if session.date is not None:
        logger.debug("Discarding stale session from %s", session.date)
    return GuessSession(date=puzzle.date)


def _wrong_guesses_for_phase(session: GuessSession) -> List[str]:
    if session.phase is Phase.SEEKING_THEME:
        return session.wrong_theme_guesses
    return session.wrong_guesses


def check_duplicate(session: GuessSession, guess: str) -> Optional[GuessOutcome]:
    """Reject guesses already marked wrong in the session's current phase.

    Pair-phase misses never block a theme guess, since a player may have
    typed the theme name while looking for an entity.
    """

    normalized = _require_guess(guess)
    previous_guesses = {normalize_guess(previous) for previous in _wrong_guesses_for_phase(session)}
    if normalized not in previous_guesses:
        return None
    return GuessOutcome(
        result=GuessResult(
            correct=False,
            duplicate=True,
            message="Already guessed!",
            phase=session.phase,
        ),
        session=session,
    )


def apply_guess(puzzle: Puzzle, session: GuessSession, guess: str) -> GuessOutcome:
    """Advance ``session`` by one guess and return the new session.

    Every evaluated guess counts as an attempt, including repeats of an
    entity that was already found. Repeats of a wrong guess in the same
    phase are rejected before evaluation and do not count. Wrong entity
    guesses lower the zoom level by ``ZOOM_STEP`` down to ``ZOOM_MIN``; the
    theme phase has no zoom penalty.
    """

    session = _session_for(puzzle, session)
    normalized = _require_guess(guess)
    if session.phase is Phase.WON:
        raise GuessError("This puzzle is already finished")

    duplicate = check_duplicate(session, guess)
    if duplicate is not None:
        return duplicate

    found = set(session.found_slots)
    wrong_pair = list(session.wrong_guesses)
    wrong_theme = list(session.wrong_theme_guesses)
    zoom = session.zoom_level

    if session.phase is Phase.SEEKING_PAIR:
        result = evaluate_pair_guess(puzzle, guess, found)
        if result.correct and result.slot is not None:
            found.add(result.slot)
        elif not result.already_found:
            wrong_pair.append(normalized)
            zoom = max(ZOOM_MIN, zoom - ZOOM_STEP)
    else:
        result = evaluate_theme_guess(puzzle, guess)
        if not result.correct:
            wrong_theme.append(normalized)

    phase = result.phase or session.phase
    if phase is not Phase.SEEKING_PAIR:
        zoom = ZOOM_MIN

    updated = session.model_copy(
        update={
            "found_slots": found,
            "wrong_guesses": wrong_pair,
            "wrong_theme_guesses": wrong_theme,
            "attempts": session.attempts + 1,
            "phase": phase,
            "zoom_level": zoom,
        }
    )
    return GuessOutcome(result=result, session=updated)


def solution_for(puzzle: Puzzle) -> Solution:
    return Solution(entity_a=puzzle.entity_a, entity_b=puzzle.entity_b, theme=puzzle.theme)


def give_up(puzzle: Puzzle, session: GuessSession) -> GiveUpOutcome:
    session = _session_for(puzzle, session)
    if session.phase is Phase.WON:
        raise GuessError("This puzzle is already finished")
    updated = session.model_copy(
        update={"phase": Phase.WON, "given_up": True, "zoom_level": ZOOM_MIN}
    )
    return GiveUpOutcome(solution=solution_for(puzzle), session=updated)


async def _get_cache() -> CacheBackend:
    return await get_cache(settings.redis_url)


async def load_public_puzzle(cache: Optional[CacheBackend] = None) -> PublicPuzzle:
    puzzle = await load_current_puzzle(cache or await _get_cache())
    if puzzle is None:
        return PublicPuzzle(available=False)
    return PublicPuzzle(date=puzzle.date, image_url=puzzle.image_url)


async def submit_pair_guess(
    guess: str,
    found_slots: Iterable[Slot],
    cache: Optional[CacheBackend] = None,
) -> GuessResult:
    puzzle = await load_current_puzzle(cache or await _get_cache())
    if puzzle is None:
        return unavailable_result()
    return evaluate_pair_guess(puzzle, guess, found_slots)


async def submit_theme_guess(
    guess: str,
    attempts: Optional[int] = None,
    cache: Optional[CacheBackend] = None,
) -> GuessResult:
    cache = cache or await _get_cache()
    puzzle = await load_current_puzzle(cache)
    if puzzle is None:
        return unavailable_result()
    result = evaluate_theme_guess(puzzle, guess)
    if result.correct and attempts is not None:
        await record_completion(puzzle.date, attempts, cache)
    return result


async def submit_guess(
    session: GuessSession,
    guess: str,
    cache: Optional[CacheBackend] = None,
) -> GuessOutcome:
    # stale sessions go through apply_guess, which resets them
    if session.date == utc_today() and session.phase is not Phase.WON:
        duplicate = check_duplicate(session, guess)
        if duplicate is not None:
            return duplicate

    cache = cache or await _get_cache()
    puzzle = await load_current_puzzle(cache)
    if puzzle is None:
        return GuessOutcome(result=unavailable_result(), session=session)

    outcome = apply_guess(puzzle, session, guess)
    if outcome.session.phase is Phase.WON and not outcome.session.given_up:
        await record_completion(puzzle.date, outcome.session.attempts, cache)
    return outcome


async def reveal_solution(cache: Optional[CacheBackend] = None) -> Optional[Solution]:
    puzzle = await load_current_puzzle(cache or await _get_cache())
    if puzzle is None:
        return None
    return solution_for(puzzle)


async def give_up_session(
    session: GuessSession,
    cache: Optional[CacheBackend] = None,
) -> Optional[GiveUpOutcome]:
    puzzle = await load_current_puzzle(cache or await _get_cache())
    if puzzle is None:
        return None
    return give_up(puzzle, session)


async def load_today_stats(cache: Optional[CacheBackend] = None) -> AttemptStats:
    cache = cache or await _get_cache()
    puzzle = await load_current_puzzle(cache)
    if puzzle is None:
        return AttemptStats()
    return await read_stats(puzzle.date, cache)
