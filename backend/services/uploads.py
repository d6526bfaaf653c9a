"""Upload blobs, bind them to a record, and delete them again if binding fails."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from core import Err, ErrorKind, Ok, Result

from .storage import BlobStore, UploadedBlob

logger = logging.getLogger(__name__)

T = TypeVar("T")

BindFn = Callable[[UploadedBlob], Awaitable[Any]]
BindManyFn = Callable[[dict[str, UploadedBlob]], Awaitable[Any]]


@dataclass(frozen=True)
class BlobSlot:
    """One file taking part in a multi-blob upload."""

    name: str
    local_path: str | Path | None
    folder: str
    required: bool = True


class UploadBindCoordinator:
    """Run upload-then-bind with compensation.

    Steps run strictly in order: input check, upload(s), bind. When any upload
    after the first or the bind step fails, every blob uploaded so far in the
    same call is deleted before the error is returned. Deletion is best
    effort: failures are logged and never replace the reported error.
    """

    def __init__(self, store: BlobStore, *, timeout_seconds: float) -> None:
        self._store = store
        self._timeout_seconds = timeout_seconds

    async def upload_and_bind(
        self,
        local_path: str | Path | None,
        bind: BindFn,
        *,
        folder: str,
    ) -> Result[Any]:
        if not local_path:
            return Err(ErrorKind.MISSING_INPUT, "File is required")

        uploaded = await self._upload(local_path, folder=folder)
        if isinstance(uploaded, Err):
            return uploaded
        blob = uploaded.value
        return await self._bind([blob], lambda: bind(blob))

    async def upload_all_and_bind(
        self,
        slots: Sequence[BlobSlot],
        bind: BindManyFn,
    ) -> Result[Any]:
        for slot in slots:
            if slot.required and not slot.local_path:
                return Err(ErrorKind.MISSING_INPUT, f"{slot.name} file is missing")

        blobs: dict[str, UploadedBlob] = {}
        try:
            for slot in slots:
                if not slot.local_path:
                    continue
                uploaded = await self._upload(slot.local_path, folder=slot.folder)
                if isinstance(uploaded, Err):
                    await self._compensate(list(blobs.values()))
                    return Err(
                        ErrorKind.UPLOAD_FAILED,
                        f"Failed to upload {slot.name}",
                        cause=uploaded.cause,
                    )
                blobs[slot.name] = uploaded.value
        except asyncio.CancelledError:
            await asyncio.shield(self._compensate(list(blobs.values())))
            raise

        return await self._bind(list(blobs.values()), lambda: bind(dict(blobs)))

    async def _upload(self, local_path: str | Path, *, folder: str) -> Result[UploadedBlob]:
        try:
            blob = await asyncio.wait_for(
                self._store.upload(local_path, folder=folder),
                timeout=self._timeout_seconds,
            )
        except Exception as exc:
            logger.warning(
                "Blob upload failed",
                extra={"local_path": str(local_path), "folder": folder},
                exc_info=exc,
            )
            return Err(ErrorKind.UPLOAD_FAILED, "Failed to upload file", cause=exc)
        return Ok(blob)

    async def _bind(
        self,
        blobs: list[UploadedBlob],
        run_bind: Callable[[], Awaitable[Any]],
    ) -> Result[Any]:
        try:
            result = await run_bind()
        except asyncio.CancelledError:
            await asyncio.shield(self._compensate(blobs))
            raise
        except Exception as exc:
            logger.warning(
                "Binding uploaded blobs failed; deleting them",
                extra={"blob_keys": [blob.key for blob in blobs]},
                exc_info=exc,
            )
            await self._compensate(blobs)
            return Err(ErrorKind.BIND_FAILED, "Failed to save uploaded file", cause=exc)

        if isinstance(result, Err):
            await self._compensate(blobs)
            return Err(ErrorKind.BIND_FAILED, result.message, cause=result.cause)
        return Ok(result)

    async def _compensate(self, blobs: list[UploadedBlob]) -> None:
        for blob in blobs:
            try:
                await asyncio.wait_for(
                    self._store.delete(blob.key),
                    timeout=self._timeout_seconds,
                )
            except Exception as cleanup_error:
                logger.warning(
                    "Failed to delete uploaded blob during compensation",
                    extra={"blob_key": blob.key},
                    exc_info=cleanup_error,
                )
