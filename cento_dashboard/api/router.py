from fastapi import APIRouter

from cento_dashboard.api.routes import auth, meta, sensors, traffic, weather

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(traffic.router, tags=["traffic"])
api_router.include_router(weather.router, tags=["weather"])
api_router.include_router(sensors.router, tags=["sensors"])
api_router.include_router(meta.router, tags=["meta"])
