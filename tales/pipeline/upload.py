"""
Image upload step that precedes story generation.
"""
import base64
import binascii
import logging
import time
from typing import Callable

from shared.errors import StorageWriteError
from shared.storage import BaseBlobStore

from ..errors import ImageUploadFailed

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPE = "image/jpeg"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def storage_key(filename: str, epoch_millis: int) -> str:
    """Time-qualified storage key, e.g. stories/1700000000000-cat.jpg."""
    return f"stories/{epoch_millis}-{filename}"


class ImageUploader:
    """Decodes uploaded images and writes them to the blob store."""

    def __init__(self, blob_store: BaseBlobStore, clock: Callable[[], int] = _epoch_millis):
        self.blob_store = blob_store
        self.clock = clock

    async def upload_image(self, image_base64: str, filename: str) -> str:
        """
        Store an uploaded image.

        Returns:
            Durable URL of the stored image

        Raises:
            ImageUploadFailed: Undecodable payload or storage failure
        """
        try:
            data = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error(f"Error uploading image: invalid base64 payload: {e}")
            raise ImageUploadFailed() from e

        key = storage_key(filename, self.clock())
        try:
            url = await self.blob_store.put(key, data, IMAGE_CONTENT_TYPE)
        except StorageWriteError as e:
            logger.error(f"Error uploading image: {e}")
            raise ImageUploadFailed() from e

        logger.info(f"Uploaded image {key}")
        return url
