"""Local-disk storage for album cover images."""
import logging
import uuid
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from app.exceptions import InvariantError, PayloadTooLargeError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES: frozenset[str] = frozenset(
    {"image/apng", "image/avif", "image/gif", "image/jpeg", "image/png", "image/webp"}
)


class CoverStorage:
    def __init__(self, directory: str | Path, max_bytes: int) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    async def save(self, upload: UploadFile) -> str:
        """
        Validate *upload* and write it to disk under a fresh name.

        Returns the stored file name.  The body is read at most one byte past
        ``max_bytes`` so oversized uploads are rejected without buffering them.
        """
        if upload.content_type not in ALLOWED_IMAGE_TYPES:
            raise InvariantError("Cover must be an image")

        data = await upload.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise PayloadTooLargeError(f"Cover exceeds {self.max_bytes} bytes")

        suffix = Path(upload.filename or "").suffix.lower()
        filename = f"{uuid.uuid4().hex}{suffix}"
        await run_in_threadpool(self._write, filename, data)
        logger.info("Stored cover %s (%d bytes)", filename, len(data))
        return filename

    def _write(self, filename: str, data: bytes) -> None:
        self.ensure_directory()
        (self.directory / filename).write_bytes(data)
