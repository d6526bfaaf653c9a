"""Reconcile stored media objects against the keys users reference."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, cast

from minio import Minio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import settings
from models import User

from .storage import delete_object, get_minio_client

logger = logging.getLogger(__name__)

MEDIA_PREFIXES: tuple[str, ...] = ("avatars/", "covers/")


class StoredObject(Protocol):
    object_name: str | None
    last_modified: datetime | None
    is_dir: bool


@dataclass
class SweepReport:
    scanned: int = 0
    orphaned: list[str] = field(default_factory=list)
    deleted: int = 0
    failed: int = 0


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def find_orphaned_keys(
    objects: Iterable[StoredObject],
    referenced_keys: set[str],
    *,
    older_than: datetime,
) -> list[str]:
    """Return keys nobody references whose last write is before ``older_than``.

    Objects without a modification time are kept; recent objects may belong
    to an upload whose bind step is still running.
    """
    cutoff = ensure_aware(older_than)
    orphaned: list[str] = []
    for obj in objects:
        key = obj.object_name
        if not key or obj.is_dir or key in referenced_keys:
            continue
        if obj.last_modified is None or ensure_aware(obj.last_modified) >= cutoff:
            continue
        orphaned.append(key)
    return orphaned


async def load_referenced_keys(session: AsyncSession) -> set[str]:
    result = await session.execute(
        select(cast(Any, User.avatar_key), cast(Any, User.cover_image_key))
    )
    referenced: set[str] = set()
    for avatar_key, cover_image_key in result.all():
        if avatar_key:
            referenced.add(avatar_key)
        if cover_image_key:
            referenced.add(cover_image_key)
    return referenced


def _list_objects(client: Minio, prefixes: Sequence[str]) -> list[StoredObject]:
    objects: list[StoredObject] = []
    for prefix in prefixes:
        objects.extend(
            client.list_objects(settings.minio_bucket, prefix=prefix, recursive=True)
        )
    return objects


async def sweep_orphaned_blobs(
    session: AsyncSession,
    *,
    client: Minio | None = None,
    prefixes: Sequence[str] = MEDIA_PREFIXES,
    grace_period: timedelta | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> SweepReport:
    """Delete unreferenced media objects older than the grace period."""
    minio_client = client or get_minio_client()
    grace = grace_period or timedelta(minutes=settings.orphan_sweep_grace_minutes)
    cutoff = (now or datetime.now(timezone.utc)) - grace

    objects = await asyncio.to_thread(_list_objects, minio_client, prefixes)
    referenced = await load_referenced_keys(session)
    report = SweepReport(scanned=len(objects))
    report.orphaned = find_orphaned_keys(objects, referenced, older_than=cutoff)

    if dry_run:
        return report

    for key in report.orphaned:
        try:
            await asyncio.to_thread(delete_object, key, minio_client)
        except Exception as exc:
            report.failed += 1
            logger.warning(
                "Failed to delete orphaned blob",
                extra={"blob_key": key},
                exc_info=exc,
            )
            continue
        report.deleted += 1
    return report
