"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    read_access_token,
    read_refresh_token,
    set_token_cookies,
)
from .identity_resolution import (
    normalize_email,
    normalize_username,
    registration_conflict_exists,
    resolve_login_user,
)
from .issuer import CredentialIssuer, TokenPair
from .locks import KeyedLock
from .session_store import SessionStore

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "clear_token_cookies",
    "read_access_token",
    "read_refresh_token",
    "set_token_cookies",
    "normalize_email",
    "normalize_username",
    "registration_conflict_exists",
    "resolve_login_user",
    "CredentialIssuer",
    "TokenPair",
    "KeyedLock",
    "SessionStore",
]
