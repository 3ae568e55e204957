from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from cento_dashboard.api.deps import WeatherReadUser, WeatherWriteUser, get_weather_service
from cento_dashboard.schemas.weather import (
    MeasureHistoryRead,
    StationReadingRead,
    WeatherParameterRead,
    WeatherRefreshResponse,
)
from cento_dashboard.services.weather import WeatherService

router = APIRouter(prefix="/weather")


def _unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Sensor network unavailable",
    )


@router.post("/refresh", response_model=WeatherRefreshResponse)
def refresh_weather(
    _: WeatherWriteUser,
    service: Annotated[WeatherService, Depends(get_weather_service)],
    force: bool = False,
) -> WeatherRefreshResponse:
    try:
        result = service.refresh(force=force)
    except Exception as e:  # noqa: BLE001
        raise _unavailable() from e
    return WeatherRefreshResponse.model_validate(result.__dict__)


@router.get("/latest", response_model=list[StationReadingRead])
def latest_weather(
    _: WeatherReadUser,
    service: Annotated[WeatherService, Depends(get_weather_service)],
) -> list[StationReadingRead]:
    try:
        rows = service.latest()
    except Exception as e:  # noqa: BLE001
        raise _unavailable() from e
    return [StationReadingRead.model_validate(r.__dict__) for r in rows]


@router.get("/parameters", response_model=list[WeatherParameterRead])
def weather_parameters(
    _: WeatherReadUser,
    service: Annotated[WeatherService, Depends(get_weather_service)],
) -> list[WeatherParameterRead]:
    try:
        grouped = service.parameters()
    except Exception as e:  # noqa: BLE001
        raise _unavailable() from e
    return [WeatherParameterRead.from_model(g) for g in grouped]


@router.get("/measures/{measure_id}/history", response_model=MeasureHistoryRead)
def measure_history(
    _: WeatherReadUser,
    service: Annotated[WeatherService, Depends(get_weather_service)],
    measure_id: Annotated[int, Path(ge=1)],
) -> MeasureHistoryRead:
    try:
        history = service.history(measure_id)
    except Exception as e:  # noqa: BLE001
        raise _unavailable() from e
    if history is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown measure")
    return MeasureHistoryRead.from_model(history)
