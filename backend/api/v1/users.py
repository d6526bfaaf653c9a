"""Endpoints for the authenticated user's own account."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_blob_store, get_current_user, get_db, get_upload_coordinator
from api.envelope import raise_for_error, success_response
from core import Err, hash_password, settings, verify_password
from db.errors import is_unique_violation
from models import User
from services import (
    BlobStore,
    UploadBindCoordinator,
    UploadedBlob,
    UploadTooLargeError,
    staged_upload,
)
from services.auth import normalize_email, registration_conflict_exists

from .schemas import AccountUpdateRequest, PasswordChangeRequest, UserPublic

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

# media kind -> (url column, key column, storage folder)
MEDIA_FIELDS: dict[str, tuple[str, str, str]] = {
    "avatar": ("avatar_url", "avatar_key", "avatars"),
    "cover_image": ("cover_image_url", "cover_image_key", "covers"),
}


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def _replace_media(
    media: str,
    upload: UploadFile | None,
    *,
    current_user: User,
    session: AsyncSession,
    coordinator: UploadBindCoordinator,
    store: BlobStore,
) -> User:
    url_field, key_field, folder = MEDIA_FIELDS[media]
    previous_key: str | None = getattr(current_user, key_field)

    async def bind(blob: UploadedBlob) -> User:
        setattr(current_user, url_field, blob.url)
        setattr(current_user, key_field, blob.key)
        session.add(current_user)
        await _commit(session)
        await session.refresh(current_user)
        return current_user

    try:
        async with staged_upload(
            upload,
            max_bytes=settings.upload_max_bytes,
            directory=settings.upload_staging_dir,
        ) as local_path:
            result = await coordinator.upload_and_bind(local_path, bind, folder=folder)
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=str(exc),
        ) from exc

    if isinstance(result, Err):
        raise_for_error(result)

    new_key = getattr(current_user, key_field)
    if previous_key is not None and previous_key != new_key:
        try:
            await store.delete(previous_key)
        except Exception as cleanup_error:
            logger.warning(
                "Failed to cleanup replaced media object",
                extra={"blob_key": previous_key, "media": media},
                exc_info=cleanup_error,
            )
    return result.value


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)) -> JSONResponse:
    return success_response(
        UserPublic.model_validate(current_user),
        message="Current user details",
    )


@router.patch("/me")
async def update_account_details(
    payload: AccountUpdateRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> JSONResponse:
    full_name = (payload.full_name or "").strip()
    if not full_name or payload.email is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and fullName are required",
        )

    normalized_email = normalize_email(str(payload.email))
    if normalized_email != current_user.email and await registration_conflict_exists(
        session,
        username=current_user.username,
        normalized_email=normalized_email,
        exclude_user_id=current_user.id,
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already in use",
        )

    current_user.full_name = full_name
    current_user.email = normalized_email
    session.add(current_user)
    try:
        await _commit(session)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email is already in use",
            ) from exc
        raise
    await session.refresh(current_user)
    return success_response(
        UserPublic.model_validate(current_user),
        message="Account details updated successfully",
    )


@router.post("/me/password")
async def change_password(
    payload: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> JSONResponse:
    if not verify_password(payload.old_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Old password is incorrect",
        )

    current_user.password_hash = hash_password(payload.new_password)
    session.add(current_user)
    await _commit(session)
    return success_response({}, message="Password changed successfully")


@router.patch("/me/avatar")
async def update_avatar(
    avatar: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    coordinator: UploadBindCoordinator = Depends(get_upload_coordinator),
    store: BlobStore = Depends(get_blob_store),
) -> JSONResponse:
    user = await _replace_media(
        "avatar",
        avatar,
        current_user=current_user,
        session=session,
        coordinator=coordinator,
        store=store,
    )
    return success_response(
        UserPublic.model_validate(user),
        message="Avatar updated successfully",
    )


@router.patch("/me/cover-image")
async def update_cover_image(
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    coordinator: UploadBindCoordinator = Depends(get_upload_coordinator),
    store: BlobStore = Depends(get_blob_store),
) -> JSONResponse:
    user = await _replace_media(
        "cover_image",
        cover_image,
        current_user=current_user,
        session=session,
        coordinator=coordinator,
        store=store,
    )
    return success_response(
        UserPublic.model_validate(user),
        message="Cover image updated successfully",
    )
