"""Scoped spooling of user uploads to disk."""
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Final
from uuid import uuid4

from fastapi import UploadFile

from labor_rag.errors import UploadTooLargeError

LOGGER = logging.getLogger(__name__)

_FILENAME_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^\w.-]+", re.UNICODE)
_READ_CHUNK_BYTES: Final[int] = 1024 * 1024


@dataclass(slots=True)
class SpooledUpload:
    path: Path
    file_name: str
    content_type: str | None

    async def read_bytes(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


def _sanitize_filename(filename: str) -> str:
    """Return a filesystem-safe filename preserving the extension when possible."""
    sanitized = Path(filename or "upload").name
    sanitized = _FILENAME_SAFE_CHARS_RE.sub("_", sanitized)
    return sanitized.strip("._") or "upload"


@asynccontextmanager
async def temporary_upload(upload: UploadFile, uploads_dir: str | Path, max_bytes: int) -> AsyncIterator[SpooledUpload]:
    """Write *upload* under *uploads_dir* and delete it when the block exits.

    The file is removed whether the block succeeds or raises. Uploads larger
    than *max_bytes* raise :class:`UploadTooLargeError` while spooling.
    """

    directory = Path(uploads_dir)
    directory.mkdir(parents=True, exist_ok=True)
    original_name = Path(upload.filename or "upload").name
    destination = directory / f"{uuid4().hex}-{_sanitize_filename(original_name)}"

    try:
        written = 0
        # Disk I/O stays off the event loop.
        handle = await asyncio.to_thread(destination.open, "wb")
        try:
            while True:
                block = await upload.read(_READ_CHUNK_BYTES)
                if not block:
                    break
                written += len(block)
                if written > max_bytes:
                    raise UploadTooLargeError(
                        f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit",
                        limit_bytes=max_bytes,
                    )
                await asyncio.to_thread(handle.write, block)
        finally:
            await asyncio.to_thread(handle.close)
        LOGGER.debug("Spooled upload %s to %s (%s bytes)", original_name, destination, written)
        yield SpooledUpload(path=destination, file_name=original_name, content_type=upload.content_type)
    finally:
        destination.unlink(missing_ok=True)
        LOGGER.debug("Removed temporary upload %s", destination)
