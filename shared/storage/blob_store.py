"""
Blob storage adapters for uploaded images.

Provides a local filesystem store for development and an HTTP storage proxy
store for deployments. Both return a URL that resolves to the stored bytes.
"""
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from ..errors import StorageWriteError

logger = logging.getLogger(__name__)


class BaseBlobStore(ABC):
    """Abstract base class for blob stores."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under a key.

        Args:
            key: Storage key, e.g. "stories/1700000000000-cat.jpg"
            data: Raw bytes
            content_type: MIME type of the data

        Returns:
            Publicly resolvable URL of the stored object
        """
        pass


class LocalBlobStore(BaseBlobStore):
    """Stores blobs on disk; the API serves the directory as static files."""

    def __init__(self, root_dir: str, public_base_url: str):
        self.root_dir = Path(root_dir).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, key: str) -> Path:
        target = (self.root_dir / key.lstrip("/")).resolve()
        if self.root_dir not in target.parents:
            raise StorageWriteError(f"Invalid storage key: {key}")
        return target

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}") from e

        logger.info(f"[Storage] Stored {len(data)} bytes at {key} ({content_type})")
        return f"{self.public_base_url}/{key.lstrip('/')}"


class HttpBlobStore(BaseBlobStore):
    """Uploads blobs to an HTTP storage proxy."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        filename = key.rsplit("/", 1)[-1]
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.api_url}/v1/storage/upload",
                    params={"path": key},
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    files={"file": (filename, data, content_type)}
                )
        except httpx.HTTPError as e:
            raise StorageWriteError(f"Storage service unavailable: {e}") from e

        if response.status_code >= 400:
            raise StorageWriteError(
                f"Storage upload failed ({response.status_code} {response.reason_phrase}): {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise StorageWriteError(f"Invalid storage response: {e}") from e

        url = payload.get("url") if isinstance(payload, dict) else None

        if not url:
            raise StorageWriteError("Storage response did not include a url")

        logger.info(f"[Storage] Uploaded {len(data)} bytes to {key}")
        return url
