from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from cento_dashboard.core.config import Settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Misconfigured APP_ADMIN_PASSWORD_HASH; refuse the login.
        logger.error("Admin password hash is not a valid bcrypt hash")
        return False


def create_access_token(
    *,
    subject: str,
    scopes: list[str],
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload: dict[str, Any] = {
        "iss": settings.token_issuer,
        "sub": subject,
        "scopes": scopes,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, *, settings: Settings) -> dict[str, Any]:
    """Validate signature, expiry and issuer; raises ``jwt.PyJWTError``."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.algorithm],
        issuer=settings.token_issuer,
        options={"require": ["exp", "sub", "iss"]},
    )
