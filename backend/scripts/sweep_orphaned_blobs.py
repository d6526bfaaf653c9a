"""Maintenance script to delete media objects no user references.

Uploads whose bind step failed are deleted at request time on a best-effort
basis; objects left behind by a crash or a failed delete are removed here.

Usage:
    uv run python scripts/sweep_orphaned_blobs.py

Environment overrides:
    ORPHAN_SWEEP_GRACE_MINUTES=60
    ORPHAN_SWEEP_DRY_RUN=false
"""

from __future__ import annotations

import asyncio
import os
import sys
from datetime import timedelta
from pathlib import Path
from time import perf_counter

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core import settings  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from services.blob_sweep import sweep_orphaned_blobs  # noqa: E402

GRACE_MINUTES_ENV = "ORPHAN_SWEEP_GRACE_MINUTES"
DRY_RUN_ENV = "ORPHAN_SWEEP_DRY_RUN"
TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})
FALSY_VALUES = frozenset({"0", "false", "no", "off"})


def _parse_positive_int(raw_value: str | None, *, default: int, label: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{label} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{label} must be positive")
    return parsed


def _parse_bool(raw_value: str | None, *, default: bool, label: str) -> bool:
    if raw_value is None or raw_value.strip() == "":
        return default
    normalized = raw_value.strip().lower()
    if normalized in TRUTHY_VALUES:
        return True
    if normalized in FALSY_VALUES:
        return False
    raise ValueError(f"{label} must be a boolean")


async def run() -> None:
    grace_minutes = _parse_positive_int(
        os.getenv(GRACE_MINUTES_ENV),
        default=settings.orphan_sweep_grace_minutes,
        label=GRACE_MINUTES_ENV,
    )
    dry_run = _parse_bool(os.getenv(DRY_RUN_ENV), default=False, label=DRY_RUN_ENV)

    started_at = perf_counter()
    async with AsyncSessionMaker() as session:
        report = await sweep_orphaned_blobs(
            session,
            grace_period=timedelta(minutes=grace_minutes),
            dry_run=dry_run,
        )

    if dry_run:
        for key in report.orphaned:
            print(f"Would delete orphaned blob {key}")

    elapsed_ms = int((perf_counter() - started_at) * 1000)
    print(
        "Orphaned blob sweep complete: "
        f"scanned={report.scanned}, orphaned={len(report.orphaned)}, "
        f"deleted={report.deleted}, failed={report.failed}, "
        f"dry_run={dry_run}, elapsed_ms={elapsed_ms}"
    )


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
