from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from cento_dashboard.api.deps import build_traffic_service, build_weather_service
from cento_dashboard.api.router import api_router
from cento_dashboard.clients.sensornet import SensornetClient
from cento_dashboard.core.config import Settings, load_settings
from cento_dashboard.core.logs import configure_logging
from cento_dashboard.services.refresh import PeriodicRefresher, RefreshLimiter
from cento_dashboard.services.traffic import TrafficCache
from cento_dashboard.services.weather import WeatherCache
from cento_dashboard.web.router import ui_router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'self'; style-src 'self' 'unsafe-inline'",
}


def _background_refresher(app: FastAPI, settings: Settings) -> PeriodicRefresher:
    # One cycle recomputes every traffic sensor and then re-reads the stations.
    traffic = build_traffic_service(
        settings=settings,
        client=app.state.sensornet_client,
        refresh_limiter=None,
        cache=app.state.traffic_cache,
    )
    weather = build_weather_service(
        settings=settings,
        client=app.state.sensornet_client,
        refresh_limiter=None,
        cache=app.state.weather_cache,
    )

    def cycle() -> None:
        traffic.tick()
        weather.refresh(force=True)

    return PeriodicRefresher(
        task=cycle,
        interval_seconds=settings.refresh_interval_seconds,
        name="sensornet-refresh",
    )


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    headers = dict(SECURITY_HEADERS)
    if settings.is_production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.sensornet_client = SensornetClient(
            user_agent=settings.sensornet_user_agent,
            timeout_seconds=settings.sensornet_timeout_seconds,
            base_url=str(settings.sensornet_url),
        )
        refresher: PeriodicRefresher | None = None
        if settings.background_refresh_enabled:
            refresher = _background_refresher(app, settings)
            refresher.start()
        app.state.refresher = refresher
        logger.info(
            "Serving %d traffic point(s) and %d weather station(s) from %s",
            len(settings.traffic_points),
            len(settings.weather_station_ids),
            settings.sensornet_url,
        )

        yield
        if refresher is not None:
            refresher.stop()
        app.state.sensornet_client.close()

    docs_enabled = settings.docs_enabled and not settings.is_production
    app = FastAPI(
        title="Cento Sensor Dashboard",
        version="0.1.0",
        debug=settings.debug,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.traffic_cache = TrafficCache()
    app.state.weather_cache = WeatherCache()
    app.state.traffic_refresh_limiter = RefreshLimiter(
        min_interval_seconds=settings.refresh_min_interval_seconds
    )
    app.state.weather_refresh_limiter = RefreshLimiter(
        min_interval_seconds=settings.refresh_min_interval_seconds
    )
    _install_middleware(app, settings)

    @app.get("/", tags=["meta"])
    def root():
        return {"name": "cento-dashboard", "docs": app.docs_url}

    app.include_router(api_router)
    app.include_router(ui_router)

    static_dir = Path(__file__).resolve().parent / "web" / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    return app
