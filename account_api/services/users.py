from __future__ import annotations

import logging
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from account_api.core.config import Settings
from account_api.core.errors import Conflict, ValidationError
from account_api.core.security import hash_password, password_too_long, verify_password
from account_api.models.user import User
from account_api.schemas.user import RegisterForm
from account_api.services.credentials import find_user_by_identifier, normalize_identifier
from account_api.services.media import MediaUploader

logger = logging.getLogger(__name__)

USER_EXISTS = "User with email or username already exists"


def _check_new_password(password: str) -> None:
    if not password or not password.strip():
        raise ValidationError("Password is required")
    if password_too_long(password):
        raise ValidationError("Password must be at most 72 bytes")


def _commit_user(db: Session, user: User, conflict_message: str) -> User:
    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(conflict_message) from exc
    db.refresh(user)
    return user


def register_user(
    db: Session,
    uploader: MediaUploader,
    settings: Settings,
    form: RegisterForm,
    avatar: Optional[UploadFile],
    cover_image: Optional[UploadFile] = None,
) -> User:
    fields = [form.full_name, form.email, form.username, form.password]
    if any(not (f or "").strip() for f in fields):
        raise ValidationError("All fields are required")
    _check_new_password(form.password)

    username = normalize_identifier(form.username)
    email = normalize_identifier(form.email)
    if find_user_by_identifier(db, username=username, email=email) is not None:
        raise Conflict(USER_EXISTS)

    if avatar is None or not avatar.filename:
        raise ValidationError("Avatar file is required")

    avatar_url = uploader.upload_file(avatar)
    if not avatar_url:
        raise ValidationError("Avatar file is required")
    cover_url = uploader.upload_file(cover_image) or ""

    user = User(
        username=username,
        email=email,
        full_name=form.full_name.strip(),
        avatar=avatar_url,
        cover_image=cover_url,
        password=hash_password(form.password, rounds=settings.bcrypt_rounds),
    )
    user = _commit_user(db, user, USER_EXISTS)
    logger.info("user registered: user_id=%s", user.id)
    return user


def change_password(db: Session, settings: Settings, user: User, old_password: str, new_password: str) -> None:
    if not verify_password(old_password, user.password):
        raise ValidationError("Invalid old password")
    _check_new_password(new_password)

    user.password = hash_password(new_password, rounds=settings.bcrypt_rounds)
    user.touch()
    db.add(user)
    db.commit()
    logger.info("password changed: user_id=%s", user.id)


def update_account_details(db: Session, user: User, full_name: Optional[str], email: Optional[str]) -> User:
    full_name = (full_name or "").strip()
    email = normalize_identifier(email)
    if not full_name or not email:
        raise ValidationError("All fields are required")

    taken = db.exec(select(User).where(User.email == email, User.id != user.id)).first()
    if taken is not None:
        raise Conflict("Email is already in use")

    user.full_name = full_name
    user.email = email
    user.touch()
    return _commit_user(db, user, "Email is already in use")


def update_avatar(db: Session, uploader: MediaUploader, user: User, avatar: Optional[UploadFile]) -> User:
    if avatar is None or not avatar.filename:
        raise ValidationError("Avatar file is missing")
    url = uploader.upload_file(avatar)
    if not url:
        raise ValidationError("Error while uploading avatar")

    user.avatar = url
    user.touch()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_cover_image(db: Session, uploader: MediaUploader, user: User, cover_image: Optional[UploadFile]) -> User:
    if cover_image is None or not cover_image.filename:
        raise ValidationError("Cover image file is missing")
    url = uploader.upload_file(cover_image)
    if not url:
        raise ValidationError("Error while uploading cover image")

    user.cover_image = url
    user.touch()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
