from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for application models."""


class PuzzleHistory(Base):
    """Append-only record of each day's published puzzle."""

    __tablename__ = "puzzle_history"

    puzzle_date: Mapped[date] = mapped_column(Date, primary_key=True)
    entity_a: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_b: Mapped[str] = mapped_column(String(255), nullable=False)
    theme: Mapped[str] = mapped_column(String(128), nullable=False)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
