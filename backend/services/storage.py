"""MinIO client utilities and the blob store used for user media."""

from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol, runtime_checkable
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import settings

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadedBlob:
    """Identifier and retrieval URL of an object stored by the blob store."""

    key: str
    url: str


@runtime_checkable
class BlobStore(Protocol):
    async def upload(self, local_path: str | Path, *, folder: str) -> UploadedBlob: ...

    async def delete(self, key: str) -> None: ...


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    endpoint = settings.minio_endpoint
    access_key = settings.minio_access_key
    secret_key = settings.minio_secret_key
    secure = settings.minio_secure

    # Local development runs without TLS; production can override via endpoint/port.
    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def delete_object(object_key: str, client: Minio | None = None) -> None:
    """Delete an object from the configured bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


def public_object_url(object_key: str) -> str:
    """Return the stable URL under which an object is served."""
    normalized_object_key = object_key.strip().lstrip("/")
    if not normalized_object_key:
        raise ValueError("object_key must not be empty")

    base_url = settings.media_public_base_url
    if not base_url:
        scheme = "https" if settings.minio_secure else "http"
        base_url = f"{scheme}://{settings.minio_endpoint}/{settings.minio_bucket}"
    return f"{base_url.rstrip('/')}/{normalized_object_key}"


def build_object_key(folder: str, local_path: Path) -> str:
    normalized_folder = folder.strip().strip("/")
    if not normalized_folder:
        raise ValueError("folder must not be empty")
    return f"{normalized_folder}/{uuid4().hex}{local_path.suffix.lower()}"


def upload_file(
    local_path: str | Path,
    *,
    folder: str,
    client: Minio | None = None,
) -> UploadedBlob:
    """Upload a local file under ``folder`` and return its key and URL."""
    path = Path(local_path)
    if not path.is_file():
        raise FileNotFoundError(f"Upload source does not exist: {path}")

    client = client or get_minio_client()
    ensure_bucket(client)
    object_key = build_object_key(folder, path)
    content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
    client.fput_object(
        settings.minio_bucket,
        object_key,
        str(path),
        content_type=content_type,
    )
    return UploadedBlob(key=object_key, url=public_object_url(object_key))


class MinioBlobStore:
    """Async facade over the blocking MinIO client."""

    def __init__(self, client: Minio | None = None) -> None:
        self._client = client

    async def upload(self, local_path: str | Path, *, folder: str) -> UploadedBlob:
        return await asyncio.to_thread(
            upload_file,
            local_path,
            folder=folder,
            client=self._client,
        )

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(delete_object, key, self._client)
