from __future__ import annotations

from datetime import timedelta
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes

from cento_dashboard.clients.sensornet import SensornetClient
from cento_dashboard.core.config import Settings
from cento_dashboard.core.security import decode_access_token, verify_password
from cento_dashboard.schemas.auth import User
from cento_dashboard.services.refresh import RefreshLimiter
from cento_dashboard.services.sensors import SensorDirectoryService
from cento_dashboard.services.traffic import TrafficCache, TrafficService
from cento_dashboard.services.weather import WeatherCache, WeatherService

ALL_SCOPES = [
    "traffic:read",
    "traffic:write",
    "weather:read",
    "weather:write",
    "sensors:read",
]

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token",
    scopes={
        "traffic:read": "Read resampled traffic",
        "traffic:write": "Trigger traffic refresh",
        "weather:read": "Read weather station readings",
        "weather:write": "Trigger weather refresh",
        "sensors:read": "Read the last data of nearby sensors",
    },
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def authenticate_user(*, username: str, password: str, settings: Settings) -> User | None:
    if username != settings.admin_username:
        return None
    if not verify_password(password, settings.admin_password_hash):
        return None
    return User(username=username, scopes=list(ALL_SCOPES))


def get_sensornet_client(request: Request) -> SensornetClient:
    return request.app.state.sensornet_client


def _limiter(request: Request, name: str) -> RefreshLimiter | None:
    limiter = getattr(request.app.state, name, None)
    if not isinstance(limiter, RefreshLimiter):
        return None
    return limiter


def get_traffic_refresh_limiter(request: Request) -> RefreshLimiter | None:
    return _limiter(request, "traffic_refresh_limiter")


def get_weather_refresh_limiter(request: Request) -> RefreshLimiter | None:
    return _limiter(request, "weather_refresh_limiter")


def get_traffic_cache(request: Request) -> TrafficCache | None:
    cache = getattr(request.app.state, "traffic_cache", None)
    if not isinstance(cache, TrafficCache):
        return None
    return cache


def get_weather_cache(request: Request) -> WeatherCache | None:
    cache = getattr(request.app.state, "weather_cache", None)
    if not isinstance(cache, WeatherCache):
        return None
    return cache


def build_traffic_service(
    *,
    settings: Settings,
    client: SensornetClient,
    refresh_limiter: RefreshLimiter | None,
    cache: TrafficCache | None,
) -> TrafficService:
    return TrafficService(
        client=client,
        points=settings.traffic_catalog(),
        counter_measure=settings.traffic_counter_measure,
        speed_measure=settings.traffic_speed_measure,
        lookback=timedelta(hours=settings.traffic_lookback_hours),
        step=timedelta(minutes=settings.traffic_grid_minutes),
        max_workers=settings.traffic_max_workers,
        refresh_limiter=refresh_limiter,
        cache=cache,
    )


def get_traffic_service(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[SensornetClient, Depends(get_sensornet_client)],
    limiter: Annotated[RefreshLimiter | None, Depends(get_traffic_refresh_limiter)],
    cache: Annotated[TrafficCache | None, Depends(get_traffic_cache)],
) -> TrafficService:
    return build_traffic_service(
        settings=settings, client=client, refresh_limiter=limiter, cache=cache
    )


def build_weather_service(
    *,
    settings: Settings,
    client: SensornetClient,
    refresh_limiter: RefreshLimiter | None,
    cache: WeatherCache | None,
) -> WeatherService:
    return WeatherService(
        client=client,
        station_ids=settings.weather_station_ids,
        parameters=settings.weather_parameter_catalog(),
        history_lookback=timedelta(hours=settings.weather_history_hours),
        refresh_limiter=refresh_limiter,
        cache=cache,
    )


def get_weather_service(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[SensornetClient, Depends(get_sensornet_client)],
    limiter: Annotated[RefreshLimiter | None, Depends(get_weather_refresh_limiter)],
    cache: Annotated[WeatherCache | None, Depends(get_weather_cache)],
) -> WeatherService:
    return build_weather_service(
        settings=settings, client=client, refresh_limiter=limiter, cache=cache
    )


def get_sensor_directory_service(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[SensornetClient, Depends(get_sensornet_client)],
) -> SensorDirectoryService:
    return SensorDirectoryService(client=client, sensors=settings.other_sensor_catalog())


def get_current_user(
    security_scopes: SecurityScopes,
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    authenticate_value = "Bearer"
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = decode_access_token(token, settings=settings)
    except jwt.PyJWTError as e:  # noqa: BLE001 - normalize to 401
        raise credentials_exception from e

    sub = payload.get("sub")
    token_scopes = payload.get("scopes", [])
    if not isinstance(sub, str) or not isinstance(token_scopes, list):
        raise credentials_exception

    user = User(username=sub, scopes=[str(s) for s in token_scopes])

    for scope in security_scopes.scopes:
        if not user.can(scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
                headers={"WWW-Authenticate": authenticate_value},
            )

    return user


CurrentUser = Annotated[User, Security(get_current_user)]

TrafficReadUser = Annotated[User, Security(get_current_user, scopes=["traffic:read"])]
TrafficWriteUser = Annotated[User, Security(get_current_user, scopes=["traffic:write"])]

WeatherReadUser = Annotated[User, Security(get_current_user, scopes=["weather:read"])]
WeatherWriteUser = Annotated[User, Security(get_current_user, scopes=["weather:write"])]

SensorsReadUser = Annotated[User, Security(get_current_user, scopes=["sensors:read"])]
