from __future__ import annotations

import logging
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse

from cento_dashboard.api.deps import (
    get_sensor_directory_service,
    get_traffic_cache,
    get_traffic_service,
    get_weather_service,
)
from cento_dashboard.api.routes.traffic import point_read
from cento_dashboard.schemas.traffic import PointTrafficRead
from cento_dashboard.services.sensors import SensorDirectoryService
from cento_dashboard.services.traffic import TrafficCache, TrafficRefreshResult, TrafficService
from cento_dashboard.services.weather import WeatherService
from cento_dashboard.web.deps import SessionUser, csrf_protect, ensure_csrf_token
from cento_dashboard.web.templates import templates

logger = logging.getLogger(__name__)

router = APIRouter()

FlashMessage = Annotated[str | None, Query(max_length=200)]


def refresh_message(result: TrafficRefreshResult) -> str:
    if result.skipped:
        return f"Traffic refresh skipped (try again in {result.retry_after_seconds}s)."
    return (
        f"Traffic refreshed ({result.resolved}/{result.requested} sensors, "
        f"{result.no_data} without data)."
    )


def redirect_with_flash(
    url: str, *, message: str | None = None, error: str | None = None
) -> RedirectResponse:
    query = {k: v for k, v in (("message", message), ("error", error)) if v}
    if query:
        url = f"{url}?{urlencode(query)}"
    return RedirectResponse(url, status_code=303)


def _points(service: TrafficService) -> list[PointTrafficRead]:
    return [point_read(s) for s in service.point_summaries()]


@router.get("/traffic")
def traffic_page(
    request: Request,
    user: SessionUser,
    traffic_service: Annotated[TrafficService, Depends(get_traffic_service)],
    cache: Annotated[TrafficCache | None, Depends(get_traffic_cache)],
    message: FlashMessage = None,
    error: FlashMessage = None,
):
    points: list[PointTrafficRead] = []
    try:
        points = _points(traffic_service)
    except Exception:
        logger.warning("Traffic page rendered without data", exc_info=True)
        error = error or "Sensor network unavailable"
    return templates.TemplateResponse(
        request,
        "traffic.html",
        {
            "title": "Traffic",
            "user": user,
            "csrf_token": ensure_csrf_token(request),
            "points": points,
            "last_update": cache.last_updated() if cache is not None else None,
            "message": message,
            "error": error,
        },
    )


@router.get("/traffic/points.json")
def traffic_points_json(
    _: SessionUser,
    traffic_service: Annotated[TrafficService, Depends(get_traffic_service)],
) -> list[dict[str, object]]:
    try:
        points = _points(traffic_service)
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor network unavailable",
        ) from e
    return [p.model_dump(mode="json") for p in points]


@router.post("/traffic/refresh", dependencies=[Depends(csrf_protect)])
def refresh_traffic(
    _: SessionUser,
    traffic_service: Annotated[TrafficService, Depends(get_traffic_service)],
):
    try:
        result = traffic_service.refresh(force=True)
    except Exception:
        logger.warning("Manual traffic refresh failed", exc_info=True)
        return redirect_with_flash("/ui/traffic", error="Sensor network unavailable.")
    return redirect_with_flash("/ui/traffic", message=refresh_message(result))


@router.get("/weather")
def weather_page(
    request: Request,
    user: SessionUser,
    weather_service: Annotated[WeatherService, Depends(get_weather_service)],
):
    error: str | None = None
    rows = []
    parameters = []
    try:
        rows = weather_service.latest()
        parameters = weather_service.parameters()
    except Exception:
        logger.warning("Weather page rendered without data", exc_info=True)
        error = "Sensor network unavailable"
    return templates.TemplateResponse(
        request,
        "weather.html",
        {
            "title": "Weather",
            "user": user,
            "csrf_token": ensure_csrf_token(request),
            "rows": rows,
            "parameters": parameters,
            "error": error,
        },
    )


@router.get("/sensors")
def sensors_page(
    request: Request,
    user: SessionUser,
    directory: Annotated[SensorDirectoryService, Depends(get_sensor_directory_service)],
):
    return templates.TemplateResponse(
        request,
        "sensors.html",
        {
            "title": "Altri sensori",
            "user": user,
            "csrf_token": ensure_csrf_token(request),
            "entries": directory.latest(),
        },
    )
