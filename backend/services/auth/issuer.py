"""Issue, rotate and revoke access/refresh token pairs."""

from __future__ import annotations

import asyncio
import hmac
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

from core import Err, ErrorKind, Ok, Result, TokenCodec, TokenKind

from .locks import KeyedLock
from .session_store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVALID_REFRESH_TOKEN = "Invalid refresh token"
ISSUANCE_FAILED_MESSAGE = "Something went wrong while generating refresh and access tokens"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class CredentialIssuer:
    """Session lifecycle for one identity at a time.

    ``issue_pair`` only returns tokens whose refresh half was committed to the
    store. ``rotate`` accepts a refresh token only when it verifies and is
    byte-equal to the stored one; a successful rotation overwrites the stored
    value, so the presented token is rejected from then on. ``revoke`` clears
    the stored value, which rejects every earlier refresh token.

    Concurrent rotations of the same identity race (last write wins) unless a
    ``KeyedLock`` is supplied, in which case the read-compare-write sequence is
    serialized per identity inside this process.
    """

    def __init__(
        self,
        codec: TokenCodec,
        store: SessionStore,
        *,
        timeout_seconds: float,
        rotation_lock: KeyedLock | None = None,
    ) -> None:
        self._codec = codec
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._rotation_lock = rotation_lock

    async def issue_pair(self, identity: str) -> Result[TokenPair]:
        try:
            exists = await self._call(self._store.identity_exists(identity))
        except Exception as exc:
            logger.exception("User lookup failed during token issuance", extra={"user_id": identity})
            return Err(ErrorKind.ISSUANCE_FAILED, ISSUANCE_FAILED_MESSAGE, cause=exc)
        if not exists:
            return Err(ErrorKind.IDENTITY_NOT_FOUND, "User not found")

        access_token = self._codec.issue_access(identity)
        refresh_token = self._codec.issue_refresh(identity)

        try:
            stored = await self._call(self._store.set_refresh(identity, refresh_token))
        except Exception as exc:
            logger.exception("Failed to persist refresh token", extra={"user_id": identity})
            return Err(ErrorKind.ISSUANCE_FAILED, ISSUANCE_FAILED_MESSAGE, cause=exc)
        if isinstance(stored, Err):
            return stored

        return Ok(TokenPair(access_token=access_token, refresh_token=refresh_token))

    async def rotate(self, presented: str | None) -> Result[TokenPair]:
        if not presented:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Refresh token is required")

        verified = self._codec.verify(presented, TokenKind.REFRESH)
        if isinstance(verified, Err):
            return Err(ErrorKind.INVALID_CREDENTIAL, INVALID_REFRESH_TOKEN, cause=verified.cause)
        identity = verified.value

        async with self._exclusive(identity):
            try:
                stored = await self._call(self._store.get_refresh(identity))
            except Exception as exc:
                logger.exception("Failed to load refresh token", extra={"user_id": identity})
                return Err(ErrorKind.ISSUANCE_FAILED, ISSUANCE_FAILED_MESSAGE, cause=exc)

            if stored is None or not hmac.compare_digest(
                stored.encode("utf-8"),
                presented.encode("utf-8"),
            ):
                logger.warning("Rejected superseded refresh token", extra={"user_id": identity})
                return Err(ErrorKind.REUSE_DETECTED, INVALID_REFRESH_TOKEN)

            return await self.issue_pair(identity)

    async def revoke(self, identity: str) -> Result[None]:
        try:
            return await self._call(self._store.clear_refresh(identity))
        except Exception as exc:
            logger.exception("Failed to clear refresh token", extra={"user_id": identity})
            return Err(ErrorKind.REVOCATION_FAILED, "Failed to log out", cause=exc)

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self._timeout_seconds)

    @asynccontextmanager
    async def _exclusive(self, identity: str) -> AsyncIterator[None]:
        if self._rotation_lock is None:
            yield
            return
        async with self._rotation_lock.hold(identity):
            yield
