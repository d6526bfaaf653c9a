"""Classify driver integrity errors raised while writing user records."""

from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"
# SQLite: "UNIQUE constraint failed: users.email, users.username"
_SQLITE_COLUMNS = re.compile(r"unique constraint failed: (?P<columns>[\w., ]+)", re.IGNORECASE)
# PostgreSQL detail: "Key (email)=(a@b.c) already exists."
_POSTGRES_COLUMNS = re.compile(r"key \((?P<columns>[\w, ]+)\)=", re.IGNORECASE)


def _driver_message(error: IntegrityError) -> str:
    return str(getattr(error, "orig", None) or error)


def is_unique_violation(error: IntegrityError) -> bool:
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = _driver_message(error).lower()
    return "duplicate key" in message or "unique constraint" in message


def violated_columns(error: IntegrityError) -> frozenset[str]:
    """Return the bare column names named by a unique violation, if reported."""
    if not is_unique_violation(error):
        return frozenset()

    message = _driver_message(error)
    match = _SQLITE_COLUMNS.search(message) or _POSTGRES_COLUMNS.search(message)
    if match is None:
        return frozenset()
    return frozenset(
        column.strip().rsplit(".", 1)[-1]
        for column in match.group("columns").split(",")
        if column.strip()
    )


__all__ = ["is_unique_violation", "violated_columns"]
