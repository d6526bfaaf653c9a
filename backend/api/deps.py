"""FastAPI dependencies shared by the v1 routers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import Err, TokenCodec, TokenKind, get_token_codec, settings
from db.session import get_session
from models import User
from services import BlobStore, MinioBlobStore, UploadBindCoordinator
from services.auth import CredentialIssuer, KeyedLock, SessionStore, read_access_token

_rotation_lock = KeyedLock()


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_codec() -> TokenCodec:
    return get_token_codec()


@lru_cache
def get_blob_store() -> BlobStore:
    return MinioBlobStore()


def get_upload_coordinator(
    store: BlobStore = Depends(get_blob_store),
) -> UploadBindCoordinator:
    return UploadBindCoordinator(store, timeout_seconds=settings.storage_timeout_seconds)


def get_credential_issuer(
    session: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_codec),
) -> CredentialIssuer:
    return CredentialIssuer(
        codec,
        SessionStore(session),
        timeout_seconds=settings.directory_timeout_seconds,
        rotation_lock=_rotation_lock if settings.rotation_single_flight else None,
    )


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_codec),
) -> User:
    token = read_access_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized request",
        )

    verified = codec.verify(token, TokenKind.ACCESS)
    if isinstance(verified, Err):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        )

    user = await session.get(User, verified.value)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        )
    return user
