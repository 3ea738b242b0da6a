import asyncio
from unittest.mock import Mock

import pytest
from googlemaps.exceptions import ApiError, Timeout

from app.core.geo import Coordinates
from app.core.settings import Settings
from app.core.travel_time import (
    TravelTimeClient,
    TravelTimeResult,
    maps_directions_link,
    maps_search_link,
    seconds_to_minutes,
)

ORIGIN = Coordinates(48.8566, 2.3522)
DESTINATION = Coordinates(48.8606, 2.3376)


def matrix_response(**element):
    element.setdefault("status", "OK")
    return {"rows": [{"elements": [element]}]}


OK_ELEMENT = {
    "distance": {"value": 1200, "text": "1.2 km"},
    "duration": {"value": 420, "text": "7 mins"},
}


def make_client(response=None, side_effect=None, **overrides):
    gmaps = Mock()
    gmaps.distance_matrix.return_value = response
    gmaps.distance_matrix.side_effect = side_effect
    settings = Settings(GOOGLE_MAPS_API_KEY="", **overrides)
    return TravelTimeClient(settings, client=gmaps), gmaps


class TestFetch:
    @pytest.mark.asyncio
    async def test_driving_requests_traffic(self):
        client, gmaps = make_client(matrix_response(**OK_ELEMENT))

        result = await client.fetch(ORIGIN, DESTINATION)

        assert result == TravelTimeResult(1200, "1.2 km", 420, "7 mins", "driving")
        assert result.duration_minutes == 7
        args, kwargs = gmaps.distance_matrix.call_args
        assert args == ((48.8566, 2.3522), (48.8606, 2.3376))
        assert kwargs == {"mode": "driving", "departure_time": "now"}

    @pytest.mark.asyncio
    async def test_traffic_duration_preferred(self):
        element = dict(OK_ELEMENT, duration_in_traffic={"value": 610, "text": "11 mins"})
        client, _ = make_client(matrix_response(**element))

        result = await client.fetch(ORIGIN, DESTINATION)

        assert result.duration_seconds == 610
        assert result.duration_minutes == 11

    @pytest.mark.asyncio
    async def test_walking_has_no_departure_time(self):
        client, gmaps = make_client(matrix_response(**OK_ELEMENT))

        result = await client.fetch(ORIGIN, DESTINATION, "walking")

        assert result.mode == "walking"
        assert gmaps.distance_matrix.call_args.kwargs == {"mode": "walking"}

    @pytest.mark.asyncio
    async def test_no_route(self):
        client, _ = make_client(matrix_response(status="ZERO_RESULTS"))
        assert await client.fetch(ORIGIN, DESTINATION) is None

    @pytest.mark.asyncio
    async def test_incomplete_element(self):
        client, _ = make_client(matrix_response(distance=OK_ELEMENT["distance"]))
        assert await client.fetch(ORIGIN, DESTINATION) is None

    @pytest.mark.asyncio
    async def test_empty_response(self):
        client, _ = make_client({"rows": []})
        assert await client.fetch(ORIGIN, DESTINATION) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ApiError("REQUEST_DENIED", "bad key"), Timeout()])
    async def test_api_failures_yield_none(self, error):
        client, _ = make_client(side_effect=error)
        assert await client.fetch(ORIGIN, DESTINATION) is None

    @pytest.mark.asyncio
    async def test_not_configured(self):
        client = TravelTimeClient(Settings(GOOGLE_MAPS_API_KEY=""))
        assert not client.configured
        assert await client.fetch(ORIGIN, DESTINATION) is None
        assert await client.fetch_many(ORIGIN, {"a": DESTINATION}) == {}


class TestFetchMany:
    @pytest.mark.asyncio
    async def test_results_keyed_by_destination(self):
        client, gmaps = make_client(matrix_response(**OK_ELEMENT))

        results = await client.fetch_many(ORIGIN, {"louvre": DESTINATION, "hotel": ORIGIN})

        assert set(results) == {"louvre", "hotel"}
        assert gmaps.distance_matrix.call_count == 2

    @pytest.mark.asyncio
    async def test_slow_and_failed_lookups_are_dropped(self):
        client, _ = make_client(TRAVEL_TIME_TIMEOUT_SECONDS=0.05)
        ok = TravelTimeResult(1200, "1.2 km", 420, "7 mins", "driving")

        async def fake_fetch(origin, destination, mode="driving"):
            if destination is ORIGIN:
                await asyncio.sleep(1)
            if destination is None:
                return None
            return ok

        client.fetch = fake_fetch
        results = await client.fetch_many(ORIGIN, {"slow": ORIGIN, "fast": DESTINATION, "failed": None})

        assert results == {"fast": ok}

    @pytest.mark.asyncio
    async def test_nothing_to_look_up(self):
        client, gmaps = make_client()
        assert await client.fetch_many(ORIGIN, {}) == {}
        gmaps.distance_matrix.assert_not_called()


def test_seconds_to_minutes():
    assert seconds_to_minutes(60) == 1
    assert seconds_to_minutes(61) == 2
    assert seconds_to_minutes(0) == 0


def test_map_links():
    assert maps_search_link(48.86, 2.33, "Musee du Louvre") == (
        "https://www.google.com/maps/search/?api=1&query=Musee%20du%20Louvre"
    )
    assert maps_search_link(48.86, 2.33).endswith("query=48.86,2.33")
    link = maps_directions_link(ORIGIN, DESTINATION, "walking")
    assert "origin=48.8566,2.3522" in link
    assert "destination=48.8606,2.3376" in link
    assert link.endswith("travelmode=walking")
