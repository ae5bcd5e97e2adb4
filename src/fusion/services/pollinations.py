from __future__ import annotations

import io
import logging
import random
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from PIL import Image, UnidentifiedImageError

from ..core.config import Settings
from ..core.errors import GenerationError

logger = logging.getLogger(__name__)

IMAGE_PROMPT_MAX_LENGTH = 1000
MAX_SEED = 1_000_000

# characters encodeURIComponent leaves untouched
_URI_COMPONENT_SAFE = "-_.!~*'()"


class ImageSynthesisError(GenerationError):
    """Raised when the image service does not return a usable image."""


def encode_prompt(prompt: str, max_length: int = IMAGE_PROMPT_MAX_LENGTH) -> str:
    return quote(prompt[:max_length], safe=_URI_COMPONENT_SAFE)


def build_image_request(
    prompt: str,
    settings: Settings,
    seed: int,
) -> tuple[str, Dict[str, str], Dict[str, str]]:
    """Return the URL, query parameters and headers for one synthesis call."""

    url = f"{settings.pollinations_base_url.rstrip('/')}/{encode_prompt(prompt)}"
    params: Dict[str, str] = {
        "width": str(settings.image_width),
        "height": str(settings.image_height),
        "quality": "hd",
        "model": settings.pollinations_model,
        "seed": str(seed),
        "nologo": "true",
        "enhance": "false",
    }
    headers: Dict[str, str] = {}
    if settings.pollinations_api_key:
        params["key"] = settings.pollinations_api_key
        headers["Authorization"] = f"Bearer {settings.pollinations_api_key}"
    return url, params, headers


def ensure_png(content: bytes) -> bytes:
    """Decode the returned raster and re-encode it as PNG when needed."""

    try:
        with Image.open(io.BytesIO(content)) as image:
            if image.format == "PNG":
                return content
            output = io.BytesIO()
            image.convert("RGBA" if "A" in image.getbands() else "RGB").save(output, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageSynthesisError("Image service returned an unreadable image") from exc
    return output.getvalue()


async def synthesize_image(
    prompt: str,
    settings: Settings,
    *,
    client: Optional[httpx.AsyncClient] = None,
    seed: Optional[int] = None,
) -> bytes:
    if seed is None:
        seed = random.randrange(MAX_SEED)
    url, params, headers = build_image_request(prompt, settings, seed)

    logger.info("Requesting fusion image (seed=%s, model=%s)", seed, settings.pollinations_model)
    try:
        if client is not None:
            response = await client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as own_client:
                response = await own_client.get(url, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise ImageSynthesisError(f"Image service request failed: {exc}") from exc

    if not response.is_success:
        raise ImageSynthesisError(
            f"Image service failed: {response.status_code} {response.text[:500]}"
        )

    return ensure_png(response.content)
