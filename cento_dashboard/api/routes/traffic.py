from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from cento_dashboard.api.deps import TrafficReadUser, TrafficWriteUser, get_traffic_service
from cento_dashboard.models.traffic import PointTraffic, SensorTraffic
from cento_dashboard.schemas.traffic import (
    PointSensorRead,
    PointTrafficRead,
    PointTrafficRowRead,
    SensorTrafficRead,
    SpeedStatsRead,
    TrafficRefreshResponse,
)
from cento_dashboard.services.traffic import TrafficService

router = APIRouter(prefix="/traffic")


def sensor_read(result: SensorTraffic) -> SensorTrafficRead:
    return SensorTrafficRead.model_validate(result, from_attributes=True)


def point_read(summary: PointTraffic) -> PointTrafficRead:
    return PointTrafficRead(
        location=summary.location,
        lat=summary.lat,
        lon=summary.lon,
        total_in=summary.total_in,
        total_out=summary.total_out,
        avg_speed_in=summary.avg_speed_in,
        avg_speed_out=summary.avg_speed_out,
        sensors=[
            PointSensorRead(
                id=s.sensor.id,
                name=s.sensor.name,
                direction=s.sensor.direction,
                flow=s.sensor.flow,
                status=s.traffic.status,
                total_count=s.traffic.total_count,
                speed_stats=(
                    SpeedStatsRead.model_validate(s.traffic.speed_stats, from_attributes=True)
                    if s.traffic.speed_stats is not None
                    else None
                ),
            )
            for s in summary.sensors
        ],
        series=[
            PointTrafficRowRead.model_validate(row, from_attributes=True)
            for row in summary.series
        ],
    )


@router.post("/refresh", response_model=TrafficRefreshResponse)
def refresh_traffic(
    _: TrafficWriteUser,
    service: Annotated[TrafficService, Depends(get_traffic_service)],
    force: bool = False,
) -> TrafficRefreshResponse:
    try:
        result = service.refresh(force=force)
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor network unavailable",
        ) from e
    return TrafficRefreshResponse.model_validate(result.__dict__)


@router.get("/sensors", response_model=list[SensorTrafficRead])
def list_sensors(
    _: TrafficReadUser,
    service: Annotated[TrafficService, Depends(get_traffic_service)],
) -> list[SensorTrafficRead]:
    try:
        rows = service.latest()
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor network unavailable",
        ) from e
    return [sensor_read(r) for r in rows]


@router.get("/sensors/{sensor_id}", response_model=SensorTrafficRead)
def get_sensor(
    _: TrafficReadUser,
    sensor_id: Annotated[int, Path(ge=1)],
    service: Annotated[TrafficService, Depends(get_traffic_service)],
) -> SensorTrafficRead:
    try:
        result = service.sensor(sensor_id)
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor network unavailable",
        ) from e
    if result is None:
        raise HTTPException(status_code=404, detail="Unknown traffic sensor")
    return sensor_read(result)


@router.get("/points", response_model=list[PointTrafficRead])
def list_points(
    _: TrafficReadUser,
    service: Annotated[TrafficService, Depends(get_traffic_service)],
) -> list[PointTrafficRead]:
    try:
        summaries = service.point_summaries()
    except Exception as e:  # noqa: BLE001
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sensor network unavailable",
        ) from e
    return [point_read(s) for s in summaries]
