# account_api/schemas/user.py
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    """Public view of a user; never carries password or refresh token."""
    id: UUID = Field(serialization_alias="_id")
    username: str
    email: str
    full_name: str = Field(serialization_alias="fullName")
    avatar: str
    cover_image: str = Field("", serialization_alias="coverImage")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field("", alias="oldPassword")
    new_password: str = Field("", alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class UpdateAccountRequest(BaseModel):
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class RegisterForm(BaseModel):
    full_name: str = ""
    email: str = ""
    username: str = ""
    password: str = ""


class TokenPair(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class LoginResult(BaseModel):
    user: UserOut
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")
