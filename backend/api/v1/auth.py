"""Authentication endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_credential_issuer, get_current_user, get_db, get_upload_coordinator
from api.envelope import STATUS_BY_KIND, error_response, raise_for_error, success_response
from core import Err, ErrorKind, Ok, hash_password, needs_rehash, settings
from db.errors import is_unique_violation, violated_columns
from models import User
from services import (
    BlobSlot,
    UploadBindCoordinator,
    UploadedBlob,
    UploadTooLargeError,
    staged_upload,
)
from services.auth import (
    CredentialIssuer,
    clear_token_cookies,
    normalize_email,
    normalize_username,
    read_refresh_token,
    registration_conflict_exists,
    resolve_login_user,
    set_token_cookies,
)

from .schemas import LoginRequest, LoginResponse, RefreshRequest, TokenResponse, UserPublic

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
COVER_FOLDER = "covers"
MAX_USERNAME_LENGTH = 30


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="User with email or username already exists",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    full_name: Annotated[str, Form(alias="fullName")] = "",
    email: Annotated[str, Form()] = "",
    username: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    session: AsyncSession = Depends(get_db),
    coordinator: UploadBindCoordinator = Depends(get_upload_coordinator),
) -> JSONResponse:
    if any(not field.strip() for field in (full_name, email, username, password)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required",
        )

    normalized_email = normalize_email(email)
    normalized_username = normalize_username(username)
    if "@" not in normalized_email or len(normalized_username) > MAX_USERNAME_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email or username",
        )
    if await registration_conflict_exists(
        session,
        username=normalized_username,
        normalized_email=normalized_email,
    ):
        raise _conflict()

    async def create_user(blobs: dict[str, UploadedBlob]) -> User:
        avatar_blob = blobs["avatar"]
        cover_blob = blobs.get("coverImage")
        user = User(
            username=normalized_username,
            email=normalized_email,
            full_name=full_name.strip(),
            password_hash=hash_password(password),
            avatar_url=avatar_blob.url,
            avatar_key=avatar_blob.key,
            cover_image_url=cover_blob.url if cover_blob else None,
            cover_image_key=cover_blob.key if cover_blob else None,
        )
        session.add(user)
        try:
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        await session.refresh(user)
        return user

    try:
        async with staged_upload(
            avatar,
            max_bytes=settings.upload_max_bytes,
            directory=settings.upload_staging_dir,
        ) as avatar_path, staged_upload(
            cover_image,
            max_bytes=settings.upload_max_bytes,
            directory=settings.upload_staging_dir,
        ) as cover_path:
            result = await coordinator.upload_all_and_bind(
                [
                    BlobSlot("avatar", avatar_path, AVATAR_FOLDER),
                    BlobSlot("coverImage", cover_path, COVER_FOLDER, required=False),
                ],
                create_user,
            )
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=str(exc),
        ) from exc

    match result:
        case Ok(value=user):
            return success_response(
                UserPublic.model_validate(user),
                message="User registered successfully",
                status_code=status.HTTP_201_CREATED,
            )
        case Err(kind=ErrorKind.BIND_FAILED, cause=IntegrityError() as cause) if is_unique_violation(cause):
            logger.info(
                "Registration lost a uniqueness race",
                extra={"columns": sorted(violated_columns(cause))},
            )
            raise _conflict()
        case Err(kind=ErrorKind.BIND_FAILED):
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Something went wrong while registering a user and images were deleted",
            )
        case _:
            raise_for_error(result)


@router.post("/login")
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
) -> JSONResponse:
    if not payload.email and not payload.username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email is required",
        )

    user = await resolve_login_user(
        session,
        email=str(payload.email) if payload.email else None,
        username=payload.username,
        password=payload.password,
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
        session.add(user)

    result = await issuer.issue_pair(user.id)
    if isinstance(result, Err):
        raise_for_error(result)
    pair = result.value

    await session.refresh(user)
    response = success_response(
        LoginResponse(
            user=UserPublic.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="User logged in successfully",
    )
    set_token_cookies(response, pair.access_token, pair.refresh_token)
    return response


@router.post("/refresh")
async def refresh_tokens(
    request: Request,
    payload: RefreshRequest | None = Body(default=None),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
) -> JSONResponse:
    presented = read_refresh_token(request, payload.refresh_token if payload else None)

    match await issuer.rotate(presented):
        case Ok(value=pair):
            response = success_response(
                TokenResponse(
                    access_token=pair.access_token,
                    refresh_token=pair.refresh_token,
                ),
                message="Access token refreshed successfully",
            )
            set_token_cookies(response, pair.access_token, pair.refresh_token)
            return response
        case Err(kind=ErrorKind.INVALID_CREDENTIAL | ErrorKind.REUSE_DETECTED) as err:
            # The client has to authenticate again; drop whatever it still holds.
            response = error_response(STATUS_BY_KIND[err.kind], err.message)
            clear_token_cookies(response)
            return response
        case Err() as err:
            raise_for_error(err)


@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
) -> JSONResponse:
    result = await issuer.revoke(current_user.id)
    if isinstance(result, Err):
        raise_for_error(result)

    response = success_response({}, message="User logged out successfully")
    clear_token_cookies(response)
    return response
