from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from cento_dashboard.api.deps import SensorsReadUser, get_sensor_directory_service
from cento_dashboard.schemas.weather import SensorReadingsRead
from cento_dashboard.services.sensors import SensorDirectoryService

router = APIRouter(prefix="/sensors")


@router.get("", response_model=list[SensorReadingsRead])
def other_sensors(
    _: SensorsReadUser,
    service: Annotated[SensorDirectoryService, Depends(get_sensor_directory_service)],
) -> list[SensorReadingsRead]:
    return [SensorReadingsRead.from_model(entry) for entry in service.latest()]
