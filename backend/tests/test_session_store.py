"""Tests for refresh token persistence on the user record."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core import Err, ErrorKind, Ok
from services.auth import SessionStore


@pytest.mark.asyncio
async def test_set_then_get_returns_same_token(db_session: AsyncSession, make_user) -> None:
    user = await make_user()
    store = SessionStore(db_session)

    assert await store.set_refresh(user.id, "token-1") == Ok(None)
    assert await store.get_refresh(user.id) == "token-1"


@pytest.mark.asyncio
async def test_set_replaces_previous_token(db_session: AsyncSession, make_user) -> None:
    user = await make_user()
    store = SessionStore(db_session)

    await store.set_refresh(user.id, "token-1")
    await store.set_refresh(user.id, "token-2")

    assert await store.get_refresh(user.id) == "token-2"


@pytest.mark.asyncio
async def test_set_for_unknown_identity_fails(db_session: AsyncSession) -> None:
    store = SessionStore(db_session)

    result = await store.set_refresh("missing-user", "token-1")

    assert isinstance(result, Err)
    assert result.kind is ErrorKind.IDENTITY_NOT_FOUND


@pytest.mark.asyncio
async def test_get_without_session_returns_none(db_session: AsyncSession, make_user) -> None:
    user = await make_user()
    store = SessionStore(db_session)

    assert await store.get_refresh(user.id) is None
    assert await store.get_refresh("missing-user") is None


@pytest.mark.asyncio
async def test_clear_is_idempotent(db_session: AsyncSession, make_user) -> None:
    user = await make_user()
    store = SessionStore(db_session)
    await store.set_refresh(user.id, "token-1")

    assert await store.clear_refresh(user.id) == Ok(None)
    assert await store.clear_refresh(user.id) == Ok(None)
    assert await store.clear_refresh("missing-user") == Ok(None)
    assert await store.get_refresh(user.id) is None


@pytest.mark.asyncio
async def test_written_token_is_visible_to_other_sessions(
    db_session: AsyncSession,
    session_maker,
    make_user,
) -> None:
    user = await make_user()
    await SessionStore(db_session).set_refresh(user.id, "token-1")

    async with session_maker() as other_session:
        assert await SessionStore(other_session).get_refresh(user.id) == "token-1"


@pytest.mark.asyncio
async def test_cancelled_commit_rolls_back() -> None:
    session = MagicMock()
    session.get = AsyncMock(return_value=SimpleNamespace(refresh_token=None))
    session.commit = AsyncMock(side_effect=asyncio.CancelledError())
    session.rollback = AsyncMock()

    with pytest.raises(asyncio.CancelledError):
        await SessionStore(session).set_refresh("user-1", "refresh-token")

    session.rollback.assert_awaited_once()
