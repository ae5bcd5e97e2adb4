from __future__ import annotations


class GenerationError(RuntimeError):
    """Raised when the daily generation run cannot complete."""
