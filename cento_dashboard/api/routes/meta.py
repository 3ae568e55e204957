from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from cento_dashboard.api.deps import get_traffic_cache
from cento_dashboard.services.traffic import TrafficCache

router = APIRouter()


@router.get("/health")
def health(
    cache: Annotated[TrafficCache | None, Depends(get_traffic_cache)],
) -> dict[str, str | None]:
    last = cache.last_updated() if cache is not None else None
    return {
        "status": "ok",
        "traffic_updated_at": last.isoformat() if last is not None else None,
    }
