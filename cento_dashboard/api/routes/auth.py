from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from cento_dashboard.api.deps import CurrentUser, authenticate_user, get_settings
from cento_dashboard.core.config import Settings
from cento_dashboard.core.security import create_access_token
from cento_dashboard.schemas.auth import Token, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/token", response_model=Token)
def issue_token(
    response: Response,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Token:
    user = authenticate_user(
        username=form_data.username, password=form_data.password, settings=settings
    )
    if user is None:
        logger.warning("Rejected token request for %r", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    lifetime_seconds = settings.access_token_expire_minutes * 60
    response.headers["Cache-Control"] = "no-store"
    return Token(
        access_token=create_access_token(
            subject=user.username, scopes=user.scopes, settings=settings
        ),
        expires_in=lifetime_seconds,
    )


@router.get("/me", response_model=User)
def whoami(user: CurrentUser) -> User:
    return user
