from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.database import register_database
from .routers import generate, health, puzzles
from .services.puzzle_store import load_current_puzzle
from .services.storage import MEDIA_ROUTE


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Fusion Daily API", version="0.1.0")

    origins = settings.cors_origins or ["*"]
    allow_origins = ["*"] if "*" in origins else origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(puzzles.router, prefix="/puzzles", tags=["puzzles"])
    app.include_router(generate.router)

    if settings.storage_backend == "local":
        media_root = Path(settings.storage_local_path)
        media_root.mkdir(parents=True, exist_ok=True)
        app.mount(MEDIA_ROUTE, StaticFiles(directory=media_root), name="media")
        logger.info("Serving generated images from %s", media_root.resolve())

    register_database(app)

    return app


app = create_app()


@app.on_event("startup")
async def report_current_puzzle() -> None:
    try:
        puzzle = await load_current_puzzle()
    except Exception as exc:
        logger.warning("Could not read the current puzzle: %s", exc)
        return
    if puzzle is None:
        logger.warning("No puzzle has been published yet; call /generate to create one")
    else:
        logger.info("Serving puzzle for %s", puzzle.date)
