"""
Live travel times from the Google Maps Distance Matrix API.

Display only: the timeline never depends on these. Every failure (no key,
API error, timeout) yields None and the caller keeps its estimate.
"""

import asyncio
import logging
import math
from collections import namedtuple
from typing import Any, Dict, Hashable, Optional, Tuple
from urllib.parse import quote

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError
from fastapi.concurrency import run_in_threadpool

from app.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

TRAVEL_MODES = ("driving", "walking", "transit", "bicycling")


def seconds_to_minutes(seconds: float) -> int:
    return math.ceil(seconds / 60)


class TravelTimeResult(namedtuple(
    "TravelTimeResult",
    ["distance_meters", "distance_text", "duration_seconds", "duration_text", "mode"],
)):
    __slots__ = ()

    @property
    def duration_minutes(self) -> int:
        return seconds_to_minutes(self.duration_seconds)


def _latlng(location) -> Tuple[float, float]:
    return (location.latitude, location.longitude)


def maps_search_link(latitude: float, longitude: float, name: Optional[str] = None) -> str:
    if name:
        return f"https://www.google.com/maps/search/?api=1&query={quote(name, safe='')}"
    return f"https://www.google.com/maps/search/?api=1&query={latitude},{longitude}"


def maps_directions_link(origin, destination, mode: str = "driving") -> str:
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&origin={origin.latitude},{origin.longitude}"
        f"&destination={destination.latitude},{destination.longitude}"
        f"&travelmode={mode}"
    )


class TravelTimeClient:
    """Thin async wrapper over googlemaps.Client.distance_matrix"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[googlemaps.Client] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.settings.GOOGLE_MAPS_API_KEY)

    def _get_client(self) -> Optional[googlemaps.Client]:
        if self._client is None and self.settings.GOOGLE_MAPS_API_KEY:
            try:
                self._client = googlemaps.Client(key=self.settings.GOOGLE_MAPS_API_KEY)
            except ValueError as e:
                logger.error(f"Invalid Google Maps configuration: {e}")
                return None
        return self._client

    def _lookup(self, origin, destination, mode: str) -> Optional[TravelTimeResult]:
        client = self._get_client()
        if client is None:
            logger.warning("GOOGLE_MAPS_API_KEY not configured, falling back to estimation")
            return None

        params: Dict[str, Any] = {"mode": mode}
        # Traffic-aware durations need a departure time
        if mode in ("driving", "transit"):
            params["departure_time"] = "now"

        try:
            response = client.distance_matrix(_latlng(origin), _latlng(destination), **params)
        except ApiError as e:
            logger.error(f"Distance Matrix API error: {e}")
            return None
        except (TransportError, Timeout) as e:
            logger.error(f"Distance Matrix request failed: {e}")
            return None

        rows = response.get("rows") or []
        elements = rows[0].get("elements") if rows else None
        element = elements[0] if elements else None
        if not element or element.get("status") != "OK":
            logger.warning(f"No route found: {element.get('status') if element else 'UNKNOWN'}")
            return None
        if "distance" not in element or "duration" not in element:
            logger.warning("Missing distance or duration in Distance Matrix response")
            return None

        duration = element.get("duration_in_traffic") or element["duration"]
        return TravelTimeResult(
            distance_meters=element["distance"]["value"],
            distance_text=element["distance"]["text"],
            duration_seconds=duration["value"],
            duration_text=duration["text"],
            mode=mode,
        )

    async def fetch(self, origin, destination, mode: str = "driving") -> Optional[TravelTimeResult]:
        if not self.configured:
            logger.warning("GOOGLE_MAPS_API_KEY not configured, falling back to estimation")
            return None
        return await run_in_threadpool(self._lookup, origin, destination, mode)

    async def fetch_many(
        self,
        origin,
        destinations: Dict[Hashable, Any],
        mode: str = "driving",
    ) -> Dict[Hashable, TravelTimeResult]:
        """
        Look up several destinations from one origin concurrently.

        Lookups that fail or outlive the timeout are left out of the result.
        """
        if not destinations or not self.configured:
            return {}

        semaphore = asyncio.Semaphore(self.settings.TRAVEL_TIME_MAX_CONCURRENT)
        timeout = self.settings.TRAVEL_TIME_TIMEOUT_SECONDS

        async def one(key, destination):
            async with semaphore:
                try:
                    return key, await asyncio.wait_for(self.fetch(origin, destination, mode), timeout)
                except asyncio.TimeoutError:
                    logger.warning(f"Travel time lookup for {key} timed out after {timeout}s")
                    return key, None

        pairs = await asyncio.gather(*(one(k, d) for k, d in destinations.items()))
        return {key: result for key, result in pairs if result is not None}
