from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Form, HTTPException, Request, status
from pydantic import ValidationError

from cento_dashboard.schemas.auth import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user"
CSRF_TOKEN_KEY = "csrf_token"


def ensure_csrf_token(request: Request) -> str:
    token = request.session.get(CSRF_TOKEN_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_urlsafe(32)
        request.session[CSRF_TOKEN_KEY] = token
    return token


def csrf_protect(
    request: Request,
    csrf_token: Annotated[str, Form(max_length=128)],
) -> None:
    expected = request.session.get(CSRF_TOKEN_KEY)
    if not isinstance(expected, str) or not secrets.compare_digest(expected, csrf_token):
        logger.warning("Rejected %s %s: CSRF token mismatch", request.method, request.url.path)
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def start_session(request: Request, user: User) -> None:
    # A fresh CSRF token per login; forms rendered before it stop working.
    request.session[SESSION_USER_KEY] = user.model_dump()
    request.session[CSRF_TOKEN_KEY] = secrets.token_urlsafe(32)


def end_session(request: Request) -> None:
    request.session.clear()


def get_session_user(request: Request) -> User | None:
    raw = request.session.get(SESSION_USER_KEY)
    if not isinstance(raw, dict):
        return None
    try:
        return User.model_validate(raw)
    except ValidationError:
        return None


def require_session_user(request: Request) -> User:
    user = get_session_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            headers={"Location": "/ui/login"},
        )
    return user


SessionUser = Annotated[User, Depends(require_session_user)]
