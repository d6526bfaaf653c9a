"""Tests for the authenticated user's account endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from auth_helpers import AVATAR_BYTES, COVER_BYTES, PASSWORD, login
from core import verify_password
from core.config import settings


@pytest.mark.asyncio
async def test_get_me_returns_public_fields(async_client: AsyncClient, make_user) -> None:
    user = await make_user("viewer")
    await login(async_client, username="viewer")

    response = await async_client.get("/api/v1/users/me")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["id"] == user.id
    assert data["fullName"] == "Viewer"
    assert "passwordHash" not in data
    assert "refreshToken" not in data
    assert "avatarKey" not in data


@pytest.mark.asyncio
async def test_get_me_accepts_bearer_header(async_client: AsyncClient, make_user) -> None:
    await make_user("bearer")
    access_token = (await login(async_client, username="bearer")).json()["data"]["accessToken"]
    async_client.cookies.clear()

    response = await async_client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {access_token}"},
    )

    assert response.status_code == status.HTTP_200_OK


@pytest.mark.asyncio
async def test_get_me_rejects_invalid_access_token(async_client: AsyncClient) -> None:
    anonymous = await async_client.get("/api/v1/users/me")
    forged = await async_client.get(
        "/api/v1/users/me",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert anonymous.status_code == status.HTTP_401_UNAUTHORIZED
    assert anonymous.json()["message"] == "Unauthorized request"
    assert forged.status_code == status.HTTP_401_UNAUTHORIZED
    assert forged.json()["message"] == "Invalid access token"


@pytest.mark.asyncio
async def test_update_account_details(
    async_client: AsyncClient,
    db_session: AsyncSession,
    make_user,
) -> None:
    user = await make_user("editor")
    await login(async_client, username="editor")

    response = await async_client.patch(
        "/api/v1/users/me",
        json={"fullName": "  New Name ", "email": "Editor.New@Example.com"},
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["fullName"] == "New Name"
    assert data["email"] == "editor.new@example.com"
    await db_session.refresh(user)
    assert user.email == "editor.new@example.com"


@pytest.mark.asyncio
async def test_update_account_requires_both_fields(async_client: AsyncClient, make_user) -> None:
    await make_user("partial")
    await login(async_client, username="partial")

    response = await async_client.patch("/api/v1/users/me", json={"fullName": "Only Name"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Email and fullName are required"


@pytest.mark.asyncio
async def test_update_account_rejects_taken_email(async_client: AsyncClient, make_user) -> None:
    await make_user("owner")
    await make_user("thief")
    await login(async_client, username="thief")

    response = await async_client.patch(
        "/api/v1/users/me",
        json={"fullName": "Thief", "email": "owner@example.com"},
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "Email is already in use"


@pytest.mark.asyncio
async def test_change_password(
    async_client: AsyncClient,
    db_session: AsyncSession,
    make_user,
) -> None:
    user = await make_user("rotator")
    await login(async_client, username="rotator")

    wrong = await async_client.post(
        "/api/v1/users/me/password",
        json={"oldPassword": "not-the-password", "newPassword": "An0therSecret!"},
    )
    assert wrong.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong.json()["message"] == "Old password is incorrect"

    response = await async_client.post(
        "/api/v1/users/me/password",
        json={"oldPassword": PASSWORD, "newPassword": "An0therSecret!"},
    )

    assert response.status_code == status.HTTP_200_OK
    await db_session.refresh(user)
    assert verify_password("An0therSecret!", user.password_hash)
    assert not verify_password(PASSWORD, user.password_hash)


@pytest.mark.asyncio
async def test_update_avatar_replaces_previous_object(
    async_client: AsyncClient,
    db_session: AsyncSession,
    blob_store,
    make_user,
) -> None:
    user = await make_user("painter", avatar_key="avatars/old.png")
    await login(async_client, username="painter")

    response = await async_client.patch(
        "/api/v1/users/me/avatar",
        files={"avatar": ("new.png", AVATAR_BYTES, "image/png")},
    )

    assert response.status_code == status.HTTP_200_OK
    await db_session.refresh(user)
    assert user.avatar_key == "avatars/blob-1.png"
    assert blob_store.objects[user.avatar_key] == AVATAR_BYTES
    assert response.json()["data"]["avatarUrl"] == f"https://media.test/{user.avatar_key}"
    assert blob_store.deleted == ["avatars/old.png"]


@pytest.mark.asyncio
async def test_update_avatar_requires_file(
    async_client: AsyncClient,
    blob_store,
    make_user,
) -> None:
    await make_user("no_file")
    await login(async_client, username="no_file")

    response = await async_client.patch(
        "/api/v1/users/me/avatar",
        files={"avatar": ("empty.png", b"", "image/png")},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "File is required"
    assert blob_store.uploads == []


@pytest.mark.asyncio
async def test_update_avatar_upload_failure_keeps_record(
    async_client: AsyncClient,
    db_session: AsyncSession,
    blob_store,
    make_user,
) -> None:
    user = await make_user("unlucky", avatar_key="avatars/keep.png")
    await login(async_client, username="unlucky")
    blob_store.fail_uploads_for.add("avatars")

    response = await async_client.patch(
        "/api/v1/users/me/avatar",
        files={"avatar": ("new.png", AVATAR_BYTES, "image/png")},
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "Failed to upload file"
    await db_session.refresh(user)
    assert user.avatar_key == "avatars/keep.png"
    assert blob_store.deleted == []


@pytest.mark.asyncio
async def test_update_avatar_rejects_oversized_file(
    async_client: AsyncClient,
    blob_store,
    make_user,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await make_user("big_file")
    await login(async_client, username="big_file")
    monkeypatch.setattr(settings, "upload_max_bytes", 4)

    response = await async_client.patch(
        "/api/v1/users/me/avatar",
        files={"avatar": ("big.png", AVATAR_BYTES, "image/png")},
    )

    assert response.status_code == status.HTTP_413_CONTENT_TOO_LARGE
    assert response.json()["success"] is False
    assert blob_store.uploads == []


@pytest.mark.asyncio
async def test_update_cover_image(
    async_client: AsyncClient,
    db_session: AsyncSession,
    blob_store,
    make_user,
) -> None:
    user = await make_user("landscape")
    await login(async_client, username="landscape")

    response = await async_client.patch(
        "/api/v1/users/me/cover-image",
        files={"coverImage": ("cover.jpg", COVER_BYTES, "image/jpeg")},
    )

    assert response.status_code == status.HTTP_200_OK
    await db_session.refresh(user)
    assert user.cover_image_key == "covers/blob-1.jpg"
    assert response.json()["data"]["coverImageUrl"] == f"https://media.test/{user.cover_image_key}"
    assert blob_store.deleted == []
