"""HTTP cookie helpers for auth token transport."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Literal

from fastapi import Request, Response

from core import settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"
COOKIE_SECURE = (
    settings.app_env.strip().lower() not in {"local", "test"}
    and not settings.allow_insecure_http_cookies
)
BEARER_PREFIX = "bearer "


def _access_token_ttl() -> timedelta:
    return timedelta(minutes=settings.access_token_expire_minutes)


def _refresh_token_ttl() -> timedelta:
    return timedelta(minutes=settings.refresh_token_expire_minutes)


def _cookie_options() -> dict[str, Any]:
    return {
        "path": COOKIE_PATH,
        "secure": COOKIE_SECURE,
        "httponly": True,
        "samesite": COOKIE_SAMESITE,
    }


def set_token_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Set both token cookies, each expiring with its token."""
    for key, value, ttl in (
        (ACCESS_COOKIE, access_token, _access_token_ttl()),
        (REFRESH_COOKIE, refresh_token, _refresh_token_ttl()),
    ):
        response.set_cookie(
            key=key,
            value=value,
            max_age=int(ttl.total_seconds()),
            **_cookie_options(),
        )


def clear_token_cookies(response: Response) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(key=key, **_cookie_options())


def read_refresh_token(request: Request, body_token: str | None = None) -> str | None:
    """Return the refresh token from the cookie, falling back to the body field."""
    cookie_token = request.cookies.get(REFRESH_COOKIE)
    if cookie_token:
        return cookie_token
    if body_token and body_token.strip():
        return body_token.strip()
    return None


def read_access_token(request: Request) -> str | None:
    """Return the access token from the cookie or an ``Authorization: Bearer`` header."""
    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token:
        return cookie_token
    header = request.headers.get("authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        return token or None
    return None
