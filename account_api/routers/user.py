from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlmodel import Session

from account_api.core.config import Settings, get_settings
from account_api.core.responses import api_response
from account_api.core.tokens import REFRESH_COOKIE_NAME, clear_auth_cookies, set_auth_cookies
from account_api.db.session import get_session
from account_api.dependencies.auth import get_current_user
from account_api.dependencies.providers import get_media_uploader, get_token_manager
from account_api.models.user import User
from account_api.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResult,
    RefreshRequest,
    RegisterForm,
    UpdateAccountRequest,
    UserOut,
)
from account_api.services import users as user_service
from account_api.services.credentials import verify_credentials
from account_api.services.media import MediaUploader
from account_api.services.token_service import TokenManager

logger = logging.getLogger(__name__)

user_router = APIRouter(prefix="/users", tags=["users"])


@user_router.post("/register")
def register(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    uploader: MediaUploader = Depends(get_media_uploader),
):
    form = RegisterForm(full_name=full_name, email=email, username=username, password=password)
    user = user_service.register_user(db, uploader, settings, form, avatar, cover_image)
    return api_response(
        status.HTTP_201_CREATED,
        UserOut.model_validate(user),
        "User registered successfully",
    )


@user_router.post("/login")
def login(
    body: LoginRequest,
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tokens: TokenManager = Depends(get_token_manager),
):
    user = verify_credentials(db, username=body.username, email=body.email, password=body.password)
    pair = tokens.issue(db, user.id)
    db.refresh(user)
    logger.info("user logged in: user_id=%s", user.id)

    result = LoginResult(
        user=UserOut.model_validate(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )
    resp = api_response(status.HTTP_200_OK, result, "User logged in successfully")
    set_auth_cookies(resp, settings, pair.access_token, pair.refresh_token)
    return resp


@user_router.post("/logout")
def logout(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tokens: TokenManager = Depends(get_token_manager),
):
    tokens.invalidate(db, current_user.id)
    logger.info("user logged out: user_id=%s", current_user.id)
    resp = api_response(status.HTTP_200_OK, {}, "User logged out")
    clear_auth_cookies(resp, settings)
    return resp


@user_router.post("/refresh-token")
def refresh_access_token(
    request: Request,
    body: Optional[RefreshRequest] = None,
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    tokens: TokenManager = Depends(get_token_manager),
):
    """Rotate the refresh token (cookie first, JSON body as fallback) and reissue both tokens."""
    presented = request.cookies.get(REFRESH_COOKIE_NAME) or (body.refresh_token if body else None)
    pair = tokens.rotate(db, presented)
    resp = api_response(status.HTTP_200_OK, pair, "Access token refreshed")
    set_auth_cookies(resp, settings, pair.access_token, pair.refresh_token)
    return resp


@user_router.get("/current-user")
def current_user_endpoint(current_user: User = Depends(get_current_user)):
    return api_response(status.HTTP_200_OK, UserOut.model_validate(current_user), "Current user fetched successfully")


@user_router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    user_service.change_password(db, settings, current_user, body.old_password, body.new_password)
    return api_response(status.HTTP_200_OK, {}, "Password changed successfully")


@user_router.patch("/update-account")
def update_account(
    body: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    user = user_service.update_account_details(db, current_user, body.full_name, body.email)
    return api_response(status.HTTP_200_OK, UserOut.model_validate(user), "Account details updated successfully")


@user_router.patch("/avatar")
def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    uploader: MediaUploader = Depends(get_media_uploader),
):
    user = user_service.update_avatar(db, uploader, current_user, avatar)
    return api_response(status.HTTP_200_OK, UserOut.model_validate(user), "Avatar updated successfully")


@user_router.patch("/cover-image")
def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    uploader: MediaUploader = Depends(get_media_uploader),
):
    user = user_service.update_cover_image(db, uploader, current_user, cover_image)
    return api_response(status.HTTP_200_OK, UserOut.model_validate(user), "Cover image updated successfully")
