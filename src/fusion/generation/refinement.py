"""Prompt refinement through a multimodal Gemini model.

The model is asked for plain prompt text, but it sometimes answers with a
JSON object instead (either ``{"prompt": ...}`` or a tool-call shaped
``{"action_input": {"prompt": ...}}``). ``parse_refined_text`` unwraps those
shapes and otherwise keeps whatever text came back. Nothing in this module
raises: when the model is unreachable or returns nothing, the original
prompt is used.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from google import genai
from google.genai import types

from .prompts import REFINEMENT_INSTRUCTION

logger = logging.getLogger(__name__)

REFERENCE_IMAGE_MIME = "image/jpeg"


class PromptSource(str, Enum):
    ORIGINAL = "original"
    PLAIN_TEXT = "plain_text"
    ACTION_INPUT = "action_input"
    PROMPT_FIELD = "prompt_field"
    RAW_TEXT = "raw_text"


@dataclass(frozen=True)
class RefinementResult:
    prompt: str
    source: PromptSource

    @property
    def refined(self) -> bool:
        return self.source is not PromptSource.ORIGINAL


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def parse_refined_text(raw: str) -> RefinementResult:
    """Turn the model's text into a prompt, unwrapping JSON-shaped answers."""

    if not raw.strip().startswith("{"):
        return RefinementResult(prompt=raw, source=PromptSource.PLAIN_TEXT)

    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            return RefinementResult(prompt=raw, source=PromptSource.RAW_TEXT)

        action_input = parsed.get("action_input")
        if action_input:
            if isinstance(action_input, str):
                action_input = json.loads(action_input)
            nested = action_input.get("prompt") if isinstance(action_input, dict) else None
            prompt = _non_empty_str(nested)
            if prompt is None:
                return RefinementResult(prompt=raw, source=PromptSource.RAW_TEXT)
            return RefinementResult(prompt=prompt, source=PromptSource.ACTION_INPUT)

        prompt = _non_empty_str(parsed.get("prompt"))
        if prompt is not None:
            return RefinementResult(prompt=prompt, source=PromptSource.PROMPT_FIELD)
    except (ValueError, RecursionError):
        # deeply nested arrays exhaust the json decoder's stack
        pass
    return RefinementResult(prompt=raw, source=PromptSource.RAW_TEXT)


def extract_first_text(response: Any) -> str:
    """Return the first text part of the first candidate, or ``""``."""

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return ""
    text = getattr(parts[0], "text", None)
    return text if isinstance(text, str) else ""


def build_contents(prompt: str, reference_images: Sequence[bytes]) -> list[types.Content]:
    parts = [
        types.Part.from_text(text=REFINEMENT_INSTRUCTION),
        types.Part.from_text(text=prompt),
    ]
    parts.extend(
        types.Part.from_bytes(data=image, mime_type=REFERENCE_IMAGE_MIME)
        for image in reference_images
    )
    return [types.Content(role="user", parts=parts)]


async def refine_prompt(
    prompt: str,
    reference_images: Sequence[bytes],
    *,
    model: str,
    client: Optional[genai.Client] = None,
    api_key: Optional[str] = None,
) -> RefinementResult:
    original = RefinementResult(prompt=prompt, source=PromptSource.ORIGINAL)

    if client is None:
        if not api_key:
            logger.warning("GEMINI_API_KEY is not configured; using the composed prompt")
            return original
        client = genai.Client(api_key=api_key)

    try:
        response = await client.aio.models.generate_content(
            model=model,
            contents=build_contents(prompt, reference_images),
        )
        raw_text = extract_first_text(response)
    except Exception as exc:
        logger.warning("Prompt refinement failed, using the composed prompt: %s", exc)
        return original

    if not raw_text.strip():
        logger.warning("Prompt refinement returned no text; using the composed prompt")
        return original

    try:
        result = parse_refined_text(raw_text)
    except Exception as exc:
        logger.warning("Could not parse refined prompt, keeping raw text: %s", exc)
        result = RefinementResult(prompt=raw_text, source=PromptSource.RAW_TEXT)
    logger.info("Refined prompt (%s): %s", result.source.value, result.prompt)
    return result
