from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..puzzles import engine as puzzle_engine
from ..puzzles.engine import GuessError
from ..puzzles.models import (
    AttemptStats,
    GiveUpOutcome,
    GuessOutcome,
    GuessResult,
    GuessSession,
    HistoryEntry,
    PublicPuzzle,
    Slot,
    Solution,
)
from ..services.puzzle_store import load_history

router = APIRouter()


class PairGuessPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guess: str
    found_slots: List[Slot] = Field(
        default_factory=list,
        validation_alias=AliasChoices("foundSlots", "found_slots"),
    )


class ThemeGuessPayload(BaseModel):
    guess: str
    attempts: Optional[int] = Field(default=None, ge=1)


class SessionGuessPayload(BaseModel):
    guess: str
    session: GuessSession = Field(default_factory=GuessSession)


class GiveUpPayload(BaseModel):
    session: GuessSession = Field(default_factory=GuessSession)


@router.get("/today", response_model=PublicPuzzle)
async def get_today_puzzle() -> PublicPuzzle:
    return await puzzle_engine.load_public_puzzle()


@router.post("/guess/pair", response_model=GuessResult)
async def guess_pair(payload: PairGuessPayload) -> GuessResult:
    try:
        return await puzzle_engine.submit_pair_guess(payload.guess, payload.found_slots)
    except GuessError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/guess/theme", response_model=GuessResult)
async def guess_theme(payload: ThemeGuessPayload) -> GuessResult:
    try:
        return await puzzle_engine.submit_theme_guess(payload.guess, payload.attempts)
    except GuessError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/guess", response_model=GuessOutcome)
async def guess(payload: SessionGuessPayload) -> GuessOutcome:
    try:
        return await puzzle_engine.submit_guess(payload.session, payload.guess)
    except GuessError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/give-up", response_model=GiveUpOutcome)
async def give_up(payload: GiveUpPayload) -> GiveUpOutcome:
    try:
        outcome = await puzzle_engine.give_up_session(payload.session)
    except GuessError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if outcome is None:
        raise HTTPException(status_code=404, detail=puzzle_engine.NO_PUZZLE_MESSAGE)
    return outcome


@router.get("/solution", response_model=Solution)
async def get_solution() -> Solution:
    solution = await puzzle_engine.reveal_solution()
    if solution is None:
        raise HTTPException(status_code=404, detail=puzzle_engine.NO_PUZZLE_MESSAGE)
    return solution


@router.get("/stats", response_model=AttemptStats)
async def get_stats() -> AttemptStats:
    return await puzzle_engine.load_today_stats()


@router.get("/history", response_model=List[HistoryEntry])
async def get_history(
    limit: Optional[int] = Query(default=None, ge=1, le=365),
) -> List[HistoryEntry]:
    return await load_history(limit)
