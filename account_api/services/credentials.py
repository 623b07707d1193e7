from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from account_api.core.errors import NotFound, Unauthorized, ValidationError
from account_api.core.security import verify_password
from account_api.models.user import User

logger = logging.getLogger(__name__)


def normalize_identifier(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def find_user_by_identifier(db: Session, *, username: str = "", email: str = "") -> User | None:
    clauses = []
    if username:
        clauses.append(User.username == username)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return None
    return db.exec(select(User).where(or_(*clauses))).first()


def verify_credentials(
    db: Session,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """
    Match username/email + plaintext password against the stored bcrypt hash.
    Read-only: raises NotFound / Unauthorized, returns the user on success.
    """
    username = normalize_identifier(username)
    email = normalize_identifier(email)
    if not username and not email:
        raise ValidationError("username or email is required")
    if not password:
        raise ValidationError("password is required")

    user = find_user_by_identifier(db, username=username, email=email)
    if user is None:
        raise NotFound("User does not exist")

    if not verify_password(password, user.password):
        logger.info("login rejected: bad password for user_id=%s", user.id)
        raise Unauthorized("Invalid user credentials")

    return user
