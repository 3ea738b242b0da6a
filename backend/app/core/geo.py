import logging
import math
from collections import namedtuple
from typing import Optional

from geopy.distance import great_circle

from app.core.settings import get_settings

logger = logging.getLogger(__name__)

# Anything with latitude/longitude attributes works as a location; this is the bare form
Coordinates = namedtuple("Coordinates", ["latitude", "longitude"])


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometers between two coordinates.

    Symmetric and zero for identical points. Missing or out-of-range
    coordinates degrade to 0.0 so a bad record never breaks a day's schedule.
    """
    if None in (lat1, lon1, lat2, lon2):
        logger.warning("Missing coordinates, assuming zero distance")
        return 0.0
    try:
        return great_circle((float(lat1), float(lon1)), (float(lat2), float(lon2))).km
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid coordinates ({lat1},{lon1}) -> ({lat2},{lon2}): {e}")
        return 0.0


def estimate_travel_time(distance_km: float, speed_kmh: Optional[float] = None) -> int:
    """Minutes to cover distance_km at a flat average speed. 0 km -> 0, otherwise >= 1."""
    if not distance_km or distance_km <= 0:
        return 0
    speed = speed_kmh or get_settings().AVERAGE_TRAVEL_SPEED_KMH
    return max(1, math.ceil(distance_km * 60 / speed))


def distance_between(origin, destination) -> float:
    """distance() for two location-like objects (None counts as missing)"""
    if origin is None or destination is None:
        return 0.0
    return distance(
        getattr(origin, "latitude", None),
        getattr(origin, "longitude", None),
        getattr(destination, "latitude", None),
        getattr(destination, "longitude", None),
    )


def travel_minutes_between(origin, destination) -> int:
    return estimate_travel_time(distance_between(origin, destination))


def has_coordinates(location) -> bool:
    return (
        location is not None
        and getattr(location, "latitude", None) is not None
        and getattr(location, "longitude", None) is not None
    )
