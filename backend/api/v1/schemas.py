"""Request and response bodies shared by the v1 routers."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, EmailStr, Field

from api.envelope import CamelModel


class UserPublic(CamelModel):
    id: str
    username: str
    email: EmailStr
    full_name: str
    avatar_url: str | None = None
    cover_image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str


class LoginResponse(TokenResponse):
    user: UserPublic


class LoginRequest(BaseModel):
    email: EmailStr | None = None
    username: str | None = Field(default=None, max_length=30)
    password: str = Field(min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("refreshToken", "refresh_token"),
    )


class AccountUpdateRequest(BaseModel):
    full_name: str | None = Field(
        default=None,
        max_length=80,
        validation_alias=AliasChoices("fullName", "full_name"),
    )
    email: EmailStr | None = None


class PasswordChangeRequest(BaseModel):
    old_password: str = Field(
        min_length=1,
        max_length=128,
        validation_alias=AliasChoices("oldPassword", "old_password"),
    )
    new_password: str = Field(
        min_length=8,
        max_length=128,
        validation_alias=AliasChoices("newPassword", "new_password"),
    )
