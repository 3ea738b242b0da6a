import logging
from numbers import Real
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_travel_time_client, limiter, settings
from app.api.schemas import TravelTimeRequest, TravelTimeResponse
from app.core.geo import Coordinates
from app.core.travel_time import TravelTimeClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["travel-time"])


def _coordinates(value: Optional[Dict[str, Any]]) -> Optional[Coordinates]:
    """Coordinates from a {latitude, longitude} object, None when either is not a valid number"""
    if not isinstance(value, dict):
        return None
    lat, lon = value.get("latitude"), value.get("longitude")
    for v in (lat, lon):
        if isinstance(v, bool) or not isinstance(v, Real):
            return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return Coordinates(float(lat), float(lon))


@router.post("/travel-time",
    response_model=TravelTimeResponse,
    responses={
        400: {"description": "Invalid origin or destination coordinates"},
        503: {"description": "Live travel times unavailable"}
    },
    summary="Live travel time between two points",
)
@limiter.limit(settings.RATE_LIMIT_READ)
async def get_travel_time(
    request: Request,
    payload: TravelTimeRequest,
    client: TravelTimeClient = Depends(get_travel_time_client),
):
    origin = _coordinates(payload.origin)
    if origin is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid origin coordinates")
    destination = _coordinates(payload.destination)
    if destination is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid destination coordinates")

    result = await client.fetch(origin, destination, payload.mode)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to fetch travel time. Please check API configuration.",
        )

    return TravelTimeResponse(**result._asdict(), duration_minutes=result.duration_minutes)
