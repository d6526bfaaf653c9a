"""Business logic services."""

from .staging import UploadTooLargeError, staged_upload
from .storage import (
    BlobStore,
    MinioBlobStore,
    UploadedBlob,
    delete_object,
    ensure_bucket,
    get_minio_client,
    public_object_url,
    upload_file,
)
from .uploads import BlobSlot, UploadBindCoordinator

__all__ = [
    "get_minio_client",
    "ensure_bucket",
    "delete_object",
    "public_object_url",
    "upload_file",
    "BlobStore",
    "MinioBlobStore",
    "UploadedBlob",
    "BlobSlot",
    "UploadBindCoordinator",
    "UploadTooLargeError",
    "staged_upload",
]
