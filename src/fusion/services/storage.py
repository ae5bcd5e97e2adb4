from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import httpx

from ..core.config import Settings
from ..core.errors import GenerationError

logger = logging.getLogger(__name__)

MEDIA_ROUTE = "/media"


class StorageError(GenerationError):
    """Raised when an object cannot be written to durable storage."""


class ObjectStorage(ABC):
    """Durable, publicly readable object storage."""

    @abstractmethod
    async def put(self, name: str, content: bytes, content_type: str) -> str:
        """Store ``content`` under ``name``, replacing any existing object.

        Returns the public URL of the stored object.
        """

        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    """Writes objects into a directory served by the API under ``/media``."""

    def __init__(self, root: Path, public_base_url: str) -> None:
        self.root = root
        self._public_base_url = public_base_url.rstrip("/")

    def _write(self, target: Path, content: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        # write-then-rename so readers never see a partial image
        partial = target.with_name(f".{target.name}.partial")
        partial.write_bytes(content)
        partial.replace(target)

    async def put(self, name: str, content: bytes, content_type: str) -> str:
        target = self.root / name
        try:
            await asyncio.to_thread(self._write, target, content)
        except OSError as exc:
            raise StorageError(f"Failed to write {target}: {exc}") from exc
        return f"{self._public_base_url}{MEDIA_ROUTE}/{name}"


class BlobObjectStorage(ObjectStorage):
    """Vercel Blob store accessed through its HTTP API."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://blob.vercel-storage.com",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def _send(self, client: httpx.AsyncClient, name: str, content: bytes, headers: Dict[str, str]) -> httpx.Response:
        response = await client.put(f"{self._api_url}/{name}", content=content, headers=headers)
        response.raise_for_status()
        return response

    async def put(self, name: str, content: bytes, content_type: str) -> str:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "x-content-type": content_type,
            "x-add-random-suffix": "0",
            "x-allow-overwrite": "1",
        }
        try:
            if self._client is not None:
                response = await self._send(self._client, name, content, headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._send(client, name, content, headers)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise StorageError(f"Blob upload failed for {name}: {exc}") from exc

        url = payload.get("url") if isinstance(payload, dict) else None
        if not url:
            raise StorageError(f"Blob upload for {name} returned no URL")
        return str(url)


def build_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "blob":
        if not settings.blob_read_write_token:
            raise StorageError("BLOB_READ_WRITE_TOKEN is required for blob storage")
        return BlobObjectStorage(
            settings.blob_read_write_token,
            settings.blob_api_url,
            timeout=settings.http_timeout_seconds,
        )
    return LocalObjectStorage(Path(settings.storage_local_path), settings.public_base_url)
