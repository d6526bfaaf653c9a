"""Stage incoming multipart files on local disk for the blob store."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import UploadFile

READ_CHUNK_SIZE = 64 * 1024


class UploadTooLargeError(ValueError):
    def __init__(self, max_bytes: int) -> None:
        super().__init__(f"File exceeds maximum size of {max_bytes} bytes")
        self.max_bytes = max_bytes


@asynccontextmanager
async def staged_upload(
    upload: UploadFile | None,
    *,
    max_bytes: int,
    directory: str | None = None,
) -> AsyncIterator[Path | None]:
    """Write ``upload`` to a temporary file and remove it on exit.

    Yields ``None`` when no file (or an empty filename) was submitted.
    """
    if upload is None or not upload.filename:
        yield None
        return

    suffix = Path(upload.filename).suffix.lower()
    fd, raw_path = tempfile.mkstemp(suffix=suffix, dir=directory)
    path = Path(raw_path)
    try:
        written = 0
        with os.fdopen(fd, "wb") as file_handle:
            while chunk := await upload.read(READ_CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(max_bytes)
                file_handle.write(chunk)
        if written == 0:
            yield None
        else:
            yield path
    finally:
        path.unlink(missing_ok=True)
