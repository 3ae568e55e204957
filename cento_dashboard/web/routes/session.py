from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse

from cento_dashboard.api.deps import authenticate_user, get_settings, get_traffic_service
from cento_dashboard.core.config import Settings
from cento_dashboard.services.traffic import TrafficService
from cento_dashboard.web.deps import (
    csrf_protect,
    end_session,
    ensure_csrf_token,
    get_session_user,
    start_session,
)
from cento_dashboard.web.routes.pages import redirect_with_flash, refresh_message
from cento_dashboard.web.templates import templates

router = APIRouter()


@router.get("/")
def ui_index(request: Request):
    if get_session_user(request) is not None:
        return RedirectResponse("/ui/traffic", status_code=303)
    return RedirectResponse("/ui/login", status_code=303)


@router.get("/login")
def login_page(request: Request):
    csrf_token = ensure_csrf_token(request)
    return templates.TemplateResponse(
        request,
        "login.html",
        {"title": "Login", "csrf_token": csrf_token},
    )


@router.post("/login", dependencies=[Depends(csrf_protect)])
def login_submit(
    request: Request,
    username: Annotated[str, Form(min_length=1, max_length=64)],
    password: Annotated[str, Form(min_length=1, max_length=256)],
    settings: Annotated[Settings, Depends(get_settings)],
    traffic_service: Annotated[TrafficService, Depends(get_traffic_service)],
):
    user = authenticate_user(username=username, password=password, settings=settings)
    if not user:
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "title": "Login",
                "csrf_token": ensure_csrf_token(request),
                "error": "Invalid username or password",
            },
            status_code=401,
        )

    start_session(request, user)
    if not settings.fetch_on_login:
        return RedirectResponse("/ui/traffic", status_code=303)

    try:
        message = refresh_message(traffic_service.refresh(force=True))
    except Exception:
        return redirect_with_flash("/ui/traffic", error="Sensor network unavailable.")
    return redirect_with_flash("/ui/traffic", message=message)


@router.get("/logout")
def logout(request: Request):
    end_session(request)
    return RedirectResponse("/ui/login", status_code=303)
