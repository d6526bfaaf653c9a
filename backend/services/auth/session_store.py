"""Persistence of the single live refresh token per user."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import Err, ErrorKind, Ok, Result
from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


class SessionStore:
    """Reads and writes ``users.refresh_token``.

    Writes commit immediately and roll back the unit of work on failure, so a
    token is only considered stored once the commit returned.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def identity_exists(self, identity: str) -> bool:
        result = await self._session.execute(
            select(cast(Any, User.id)).where(_eq(User.id, identity)).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def set_refresh(self, identity: str, token: str) -> Result[None]:
        user = await self._session.get(User, identity)
        if user is None:
            return Err(ErrorKind.IDENTITY_NOT_FOUND, "User not found")

        user.refresh_token = token
        self._session.add(user)
        await self._commit()
        return Ok(None)

    async def get_refresh(self, identity: str) -> str | None:
        result = await self._session.execute(
            select(cast(Any, User.refresh_token)).where(_eq(User.id, identity))
        )
        return result.scalar_one_or_none()

    async def clear_refresh(self, identity: str) -> Result[None]:
        await self._session.execute(
            update(User)
            .where(_eq(User.id, identity))
            .values(refresh_token=None)
            .execution_options(synchronize_session="fetch")
        )
        await self._commit()
        return Ok(None)

    async def _commit(self) -> None:
        # Also roll back when a timeout cancels the commit.
        try:
            await self._session.commit()
        except BaseException:
            await self._session.rollback()
            raise
