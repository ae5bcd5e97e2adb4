from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..generation.pipeline import generate_daily_puzzle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generate"])


def _matches(candidate: Optional[str], secret: Optional[str]) -> bool:
    if not candidate or not secret:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


def _require_trigger_secret(request: Request) -> None:
    auth_header = request.headers.get("authorization")
    query_secret = request.query_params.get("secret")
    bearer = None
    if auth_header and auth_header.startswith("Bearer "):
        bearer = auth_header[len("Bearer "):]

    if (
        _matches(bearer, settings.cron_secret)
        or _matches(query_secret, settings.cron_secret)
        or _matches(query_secret, settings.admin_secret)
    ):
        return
    raise HTTPException(status_code=401, detail="Unauthorized")


@router.api_route("/generate", methods=["GET", "POST"])
async def trigger_generation(request: Request) -> JSONResponse:
    _require_trigger_secret(request)
    try:
        puzzle = await generate_daily_puzzle()
    except Exception as exc:
        logger.exception("Daily puzzle generation failed")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or exc.__class__.__name__},
        )
    return JSONResponse(
        content={"success": True, "data": puzzle.model_dump(mode="json", by_alias=True)},
    )
