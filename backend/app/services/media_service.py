"""
Chirpline Backend: Media Storage Service
==========================================

What:  Stores, resolves, and removes tweet media files.
How:   Writes bytes to date-organized directories under the storage root with
       UUID filenames; the database keeps only the relative path.
Who:   Called by TweetService (store, cleanup) and the media route (resolve).
When:  Only after a tweet's attributes have passed validation.

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.png

Filenames never contain user input, so a stored path cannot escape the root.
resolve() still checks, since it receives paths straight from request URLs.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from app.config import settings
from app.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# MIME type -> extension used for the stored file
MEDIA_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}


@dataclass
class MediaUpload:
    """
    An attachment received with a request.

    `data` may stop short of the real upload when the upload is over the
    size limit; `size` then carries the full length so the size rule still
    sees it. Oversized uploads are rejected before `data` is written.
    """

    filename: str
    content_type: str
    data: bytes
    size: Optional[int] = None

    @property
    def byte_size(self) -> int:
        if self.size is None:
            return len(self.data)
        return max(self.size, len(self.data))


class MediaService:
    """Manages the media storage directory."""

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("MediaService initialized with storage_root=%s", self.storage_root)

    def _extension_for(self, upload: MediaUpload) -> str:
        ext = MEDIA_EXTENSIONS.get((upload.content_type or "").lower())
        if ext:
            return ext
        return Path(upload.filename).suffix.lower() or ".bin"

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """
        Create a YYYY/MM/DD/<uuid><ext> path.

        Returns: Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    async def store(self, upload: MediaUpload) -> str:
        """
        Write an upload to disk.

        Returns:
            Path relative to the storage root, as saved on the tweet row.

        Raises:
            FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(self._extension_for(upload))

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(upload.data)
        except OSError as e:
            logger.error("Failed to store media at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded media. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("Media stored: %s (%d bytes)", relative_path, upload.byte_size)
        return relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            ValidationError: the path points outside the storage root.
            NotFoundError: no such file.
        """
        full_path = (self.storage_root / relative_path).resolve()
        if full_path != self.storage_root and self.storage_root not in full_path.parents:
            raise ValidationError(message="Invalid media path", errors={"path": ["is invalid"]})
        if not full_path.is_file():
            raise NotFoundError(resource="Media", resource_id=relative_path)
        return full_path

    async def cleanup_file(self, relative_path: str) -> None:
        """
        Remove a stored file, best effort.

        When: after a tweet delete or media replacement commits, or when a
        write fails after its file was already stored. A failure here is
        logged, never raised.
        """
        try:
            path = (self.storage_root / relative_path).resolve()
            if self.storage_root not in path.parents:
                logger.warning("Refusing to clean up path outside storage: %s", relative_path)
                return
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up media: %s", relative_path)
            else:
                logger.debug("Cleanup: media already gone: %s", relative_path)
        except Exception as e:
            logger.warning("Failed to clean up media %s: %s", relative_path, str(e))


media_service = MediaService()
