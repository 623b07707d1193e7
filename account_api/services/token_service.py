from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from jose import JWTError
from jose.exceptions import JOSEError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from account_api.core.config import Settings
from account_api.core.errors import InternalError, NotFound, Unauthorized
from account_api.core.tokens import (
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from account_api.models.user import User
from account_api.schemas.user import TokenPair

logger = logging.getLogger(__name__)

ISSUE_FAILED = "Something went wrong while generating refresh and access token"
STALE_REFRESH = "Refresh token is expired or used"


def _same_token(stored: str | None, presented: str) -> bool:
    if not stored:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))


class TokenManager:
    """
    Access/refresh pair lifecycle. The user row keeps exactly one refresh token:
    issue overwrites it, rotate checks it then overwrites it, invalidate clears it.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def issue(self, db: Session, user_id: UUID, *, expected_refresh_token: str | None = None) -> TokenPair:
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User does not exist")

        try:
            access_token = create_access_token(
                self.settings,
                user_id=user.id,
                email=user.email,
                username=user.username,
                full_name=user.full_name,
            )
            refresh_token = create_refresh_token(self.settings, user_id=user.id)

            # single-column write; the rest of the row is not revalidated
            stmt = update(User).where(User.id == user.id)
            if expected_refresh_token is not None:
                stmt = stmt.where(User.refresh_token == expected_refresh_token)
            stmt = stmt.values(refresh_token=refresh_token, updated_at=datetime.now(tz=timezone.utc))
            result = db.exec(stmt)
            swapped = result.rowcount > 0
            if swapped:
                db.commit()
            else:
                db.rollback()
        except (JOSEError, SQLAlchemyError) as exc:
            db.rollback()
            logger.exception("token issue failed for user_id=%s", user_id)
            raise InternalError(ISSUE_FAILED) from exc

        if not swapped:
            if expected_refresh_token is not None:
                # another renewal with the same token got there first
                logger.warning("refresh rotation lost race for user_id=%s", user_id)
                raise Unauthorized(STALE_REFRESH)
            raise NotFound("User does not exist")

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def rotate(self, db: Session, presented_refresh_token: str | None) -> TokenPair:
        if not presented_refresh_token:
            raise Unauthorized("Unauthorized request")

        try:
            payload = verify_refresh_token(self.settings, presented_refresh_token)
            user_id = UUID(str(payload["sub"]))
        except (JWTError, ValueError):
            logger.info("refresh rejected: token failed verification")
            raise Unauthorized("Invalid or expired refresh token") from None

        user = db.get(User, user_id)
        if user is None:
            logger.info("refresh rejected: unknown user_id=%s", user_id)
            raise Unauthorized("Invalid refresh token")

        if not _same_token(user.refresh_token, presented_refresh_token):
            logger.info("refresh rejected: superseded token for user_id=%s", user_id)
            raise Unauthorized(STALE_REFRESH)

        return self.issue(db, user.id, expected_refresh_token=presented_refresh_token)

    def invalidate(self, db: Session, user_id: UUID) -> None:
        try:
            db.exec(
                update(User)
                .where(User.id == user_id)
                .values(refresh_token=None, updated_at=datetime.now(tz=timezone.utc))
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("refresh token invalidation failed for user_id=%s", user_id)
            raise InternalError() from exc

    def decode_access(self, token: str) -> Dict[str, Any]:
        return verify_access_token(self.settings, token)
