"""Identity normalization and login-user resolution helpers."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import verify_password
from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_username(value: str) -> str:
    return value.strip().lower()


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    username: str,
    normalized_email: str,
    exclude_user_id: str | None = None,
) -> bool:
    lowered_email_column = cast(Any, func.lower(cast(Any, User.email)))
    stmt = select(User).where(
        or_(
            _eq(User.username, username),
            _eq(lowered_email_column, normalized_email),
        )
    )
    if exclude_user_id is not None:
        stmt = stmt.where(cast(ColumnElement[bool], User.id != exclude_user_id))
    existing = await session.execute(stmt.limit(1))
    return existing.scalar_one_or_none() is not None


async def resolve_login_user(
    session: AsyncSession,
    *,
    email: str | None,
    username: str | None,
    password: str,
) -> User | None:
    conditions: list[ColumnElement[bool]] = []
    if email:
        lowered_email_column = cast(Any, func.lower(cast(Any, User.email)))
        conditions.append(_eq(lowered_email_column, normalize_email(email)))
    if username:
        conditions.append(_eq(User.username, normalize_username(username)))
    if not conditions:
        return None

    result = await session.execute(select(User).where(or_(*conditions)).limit(1))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user
