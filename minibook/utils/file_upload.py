# minibook/utils/file_upload.py

import logging
import mimetypes
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile

from minibook.core.exceptions import (
    MediaTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from minibook.models.post_media import MEDIA_IMAGE, MEDIA_VIDEO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# media kind -> storage subfolder
MEDIA_FOLDERS = {
    MEDIA_IMAGE: "images",
    MEDIA_VIDEO: "videos",
}


@dataclass(frozen=True)
class StoredMedia:
    kind: str
    url: str
    path: Path
    size: int


class MediaStorage:
    """Stores uploaded post media on disk, partitioned into images/ and videos/."""

    def __init__(
        self,
        base_path: str = "uploads",
        url_prefix: str = "/uploads",
        max_size_bytes: int = 50 * 1024 * 1024,
    ):
        """
        Initialize the media store.

        Args:
            base_path: Directory that holds the images/ and videos/ folders
            url_prefix: Public path the directory is served under
            max_size_bytes: Largest accepted upload
        """
        self.base_path = Path(base_path)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.max_size_bytes = max_size_bytes
        self._ensure_storage_directories()

    def _ensure_storage_directories(self):
        for folder in MEDIA_FOLDERS.values():
            (self.base_path / folder).mkdir(parents=True, exist_ok=True)

    @staticmethod
    def classify(content_type: Optional[str]) -> str:
        """Return 'image' or 'video' for the declared mime type."""
        content_type = (content_type or "").lower()
        if content_type.startswith("image/"):
            return MEDIA_IMAGE
        if content_type.startswith("video/"):
            return MEDIA_VIDEO
        raise UnsupportedMediaTypeError()

    @staticmethod
    def _get_file_extension(filename: Optional[str], content_type: Optional[str]) -> str:
        extension = Path(filename or "").suffix.lower()
        if extension:
            return extension
        return mimetypes.guess_extension(content_type or "") or ""

    @staticmethod
    def generate_filename(extension: str) -> str:
        """post-<epoch millis>-<random 9 digits><ext>"""
        millis = int(time.time() * 1000)
        return f"post-{millis}-{secrets.randbelow(10**9)}{extension}"

    async def save(self, upload: UploadFile) -> StoredMedia:
        """
        Write an uploaded file into the store.

        Raises:
            UnsupportedMediaTypeError: mime type is neither image/* nor video/*
            MediaTooLargeError: file is over the size cap
            ValidationError: file is empty
        """
        kind = self.classify(upload.content_type)
        folder = MEDIA_FOLDERS[kind]
        filename = self.generate_filename(
            self._get_file_extension(upload.filename, upload.content_type)
        )
        file_path = self.base_path / folder / filename

        size = 0
        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_size_bytes:
                        raise MediaTooLargeError(
                            message=f"Maximum size is {self.max_size_bytes // (1024 * 1024)}MB"
                        )
                    f.write(chunk)
            if size == 0:
                raise ValidationError("Empty file uploaded")
        except Exception:
            file_path.unlink(missing_ok=True)
            raise

        url = f"{self.url_prefix}/{folder}/{filename}"
        logger.info(f"Stored {kind} upload {upload.filename!r} as {url} ({size} bytes)")
        return StoredMedia(kind=kind, url=url, path=file_path, size=size)

    def resolve(self, url: str) -> Optional[Path]:
        """Map a stored media url back to its file, or None if it is outside the store."""
        if not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1 :]
        file_path = (self.base_path / relative).resolve()
        if self.base_path.resolve() not in file_path.parents:
            return None
        return file_path

    def delete(self, url: str) -> bool:
        """
        Delete a stored file by its url.

        Returns:
            True if deleted, False otherwise
        """
        file_path = self.resolve(url)
        if file_path is None:
            return False
        try:
            if file_path.is_file():
                file_path.unlink()
                return True
            return False
        except OSError as e:
            logger.warning(f"Could not delete media file {file_path}: {e}")
            return False

    def discard(self, stored: Iterable[StoredMedia]) -> int:
        """Remove files saved earlier in a request that has since failed."""
        removed = 0
        for item in stored:
            try:
                item.path.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning(f"Could not discard media file {item.path}: {e}")
        if removed:
            logger.info(f"Discarded {removed} uploaded file(s)")
        return removed
