import logging
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlmodel import Session

from account_api.core.errors import Unauthorized
from account_api.core.tokens import ACCESS_COOKIE_NAME
from account_api.db.session import get_session
from account_api.dependencies.providers import get_token_manager
from account_api.models.user import User
from account_api.services.token_service import TokenManager

logger = logging.getLogger(__name__)

# login takes JSON, so the docs only need a plain bearer field
bearer_scheme = HTTPBearer(auto_error=False)


def _extract_jwt(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    # cookie wins over the Authorization header
    cookie = (request.cookies.get(ACCESS_COOKIE_NAME) or "").strip()
    header = (credentials.credentials if credentials else "").strip()
    return cookie or header or None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_session),
    tokens: TokenManager = Depends(get_token_manager),
) -> User:
    """Access-token gate: resolves the caller or raises Unauthorized. Never writes."""
    jwt_token = _extract_jwt(request, credentials)
    if not jwt_token:
        raise Unauthorized("Unauthorized request")

    try:
        payload = tokens.decode_access(jwt_token)
        user_id = UUID(str(payload["sub"]))
    except (JWTError, ValueError):
        raise Unauthorized("Invalid access token") from None

    user = db.get(User, user_id)
    if user is None:
        logger.info("access token for missing user_id=%s", user_id)
        raise Unauthorized("Invalid access token")
    return user
