from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

from fastapi import Response
from jose import JWTError, jwt

from account_api.core.config import Settings

ACCESS_COOKIE_NAME = "accessToken"
REFRESH_COOKIE_NAME = "refreshToken"


# ---- common ----
def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _make_jwt(payload: Dict[str, Any], secret: str, exp: datetime, algorithm: str) -> str:
    to_encode = payload.copy()
    to_encode["iat"] = int(_utcnow().timestamp())
    to_encode["exp"] = int(exp.timestamp())
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def _decode(token: str, secret: str, algorithm: str) -> Dict[str, Any]:
    # jose raises JWTError (ExpiredSignatureError included) on any failure
    return jwt.decode(token, secret, algorithms=[algorithm])


# ---- Access Token ----
def create_access_token(
    settings: Settings,
    *,
    user_id: UUID,
    email: str,
    username: str,
    full_name: str,
    expires_delta: timedelta | None = None,
) -> str:
    payload = {
        "sub": str(user_id),
        "email": email,
        "username": username,
        "fullName": full_name,
        "typ": "access",
    }
    exp = _utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return _make_jwt(payload, settings.access_token_secret, exp, settings.jwt_algorithm)


def verify_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    payload = _decode(token, settings.access_token_secret, settings.jwt_algorithm)
    if payload.get("typ") != "access":
        raise JWTError("Invalid token type")
    if not payload.get("sub"):
        raise JWTError("Missing sub")
    return payload


# ---- Refresh Token ----
def create_refresh_token(
    settings: Settings,
    *,
    user_id: UUID,
    expires_delta: timedelta | None = None,
) -> str:
    # jti keeps two tokens minted within the same second distinct
    payload = {"sub": str(user_id), "jti": uuid4().hex, "typ": "refresh"}
    exp = _utcnow() + (expires_delta or timedelta(days=settings.refresh_token_expire_days))
    return _make_jwt(payload, settings.refresh_token_secret, exp, settings.jwt_algorithm)


def verify_refresh_token(settings: Settings, token: str) -> Dict[str, Any]:
    payload = _decode(token, settings.refresh_token_secret, settings.jwt_algorithm)
    if payload.get("typ") != "refresh":
        raise JWTError("Invalid token type")
    for k in ("sub", "exp"):
        if k not in payload:
            raise JWTError(f"Missing {k}")
    return payload


# ---- Cookies ----
def _cookie_kwargs(settings: Settings) -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite.strip().lower(),
        "path": settings.cookie_path,
    }


def set_auth_cookies(response: Response, settings: Settings, access_token: str, refresh_token: str) -> None:
    opts = _cookie_kwargs(settings)
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=access_token,
        max_age=settings.access_token_max_age,
        **opts,
    )
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.refresh_token_max_age,
        **opts,
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    opts = _cookie_kwargs(settings)
    for key in (ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME):
        response.delete_cookie(key=key, **opts)
