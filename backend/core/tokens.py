"""Signed, expiring access and refresh tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Callable
from uuid import uuid4

import jwt

from .config import settings
from .results import Err, ErrorKind, Ok, Result


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Mint and verify JWTs for a subject identity.

    Access and refresh tokens are signed with independent secrets and carry a
    ``type`` claim, so a token of one kind never verifies as the other. Every
    token gets a random ``jti`` which keeps two tokens minted for the same
    subject in the same second distinct.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("token secrets must not be blank")
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: access_ttl,
            TokenKind.REFRESH: refresh_ttl,
        }
        self._algorithm = algorithm
        self._clock = clock

    def ttl(self, kind: TokenKind) -> timedelta:
        return self._ttls[kind]

    def issue_access(self, identity: str) -> str:
        return self._issue(identity, TokenKind.ACCESS)

    def issue_refresh(self, identity: str) -> str:
        return self._issue(identity, TokenKind.REFRESH)

    def _issue(self, identity: str, kind: TokenKind) -> str:
        now = self._clock()
        expires_at = now + self._ttls[kind]
        payload: dict[str, Any] = {
            "sub": str(identity),
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)

    def verify(self, token: str, kind: TokenKind) -> Result[str]:
        if not token:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Token is missing")
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Token expired", cause=exc)
        except jwt.InvalidTokenError as exc:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Invalid token", cause=exc)

        if payload.get("type") != kind.value:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Invalid token")
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            return Err(ErrorKind.INVALID_CREDENTIAL, "Invalid token")
        return Ok(subject)


@lru_cache
def get_token_codec() -> TokenCodec:
    """Return the process-wide codec configured from settings."""
    return TokenCodec(
        access_secret=settings.access_token_secret,
        refresh_secret=settings.refresh_token_secret,
        access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_ttl=timedelta(minutes=settings.refresh_token_expire_minutes),
        algorithm=settings.jwt_algorithm,
    )
