"""
Day timeline construction.

Turns a day's flights, the hotel and the persisted time blocks into display
entries with computed start/end times. Consecutive selections are chained:
each one starts when the previous one ends plus the estimated travel time
between them. Pure: no I/O, the caller supplies every record.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import date
from functools import reduce
from typing import Any, Dict, Iterable, List, Optional

from app.core.geo import has_coordinates, travel_minutes_between
from app.core.selection import AttractionSelection, RestaurantSelection, selection_of
from app.core.settings import get_settings
from app.core.timing import (
    calculate_activity_end,
    calculate_first_activity_start,
    calculate_next_activity_start,
    get_default_duration,
    normalize_time_string,
)
from app.db.models import BLOCK_ORDER, BlockType

logger = logging.getLogger(__name__)

PLACEHOLDER_TIME = "00:00"


@dataclass
class TimelineEntry:
    id: str
    type: str  # flight | hotel_checkin | activity | restaurant
    start_time: str
    end_time: str
    title: str
    subtitle: Optional[str] = None
    travel_time_from_previous: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DayTimeline:
    entries: List[TimelineEntry]
    warnings: List[str] = field(default_factory=list)


# Accumulator threaded through the block fold
_ChainState = namedtuple("_ChainState", ["current_time", "previous", "entries", "warnings"])


def _record_data(record) -> Dict[str, Any]:
    if hasattr(record, "model_dump"):
        return record.model_dump(mode="json")
    if hasattr(record, "_asdict"):
        return dict(record._asdict())
    return dict(vars(record))


def _on_day(record, day: date) -> bool:
    record_day = getattr(record, "date", None)
    return record_day is None or record_day == day


def _flight_entry(flight) -> TimelineEntry:
    carrier = " ".join(part for part in (flight.airline, flight.flight_number) if part)
    return TimelineEntry(
        id=f"flight-{flight.id}",
        type="flight",
        start_time=normalize_time_string(flight.departure_time),
        end_time=normalize_time_string(flight.arrival_time),
        title=carrier or "Flight",
        subtitle=f"{flight.departure_airport} → {flight.arrival_airport}",
        data=_record_data(flight),
    )


def _hotel_entries(hotel, day: date) -> List[TimelineEntry]:
    if hotel is None:
        return []
    settings = get_settings()

    if hotel.check_in_date == day:
        start = normalize_time_string(settings.HOTEL_CHECKIN_TIME)
        return [TimelineEntry(
            id=f"hotel-{hotel.id}",
            type="hotel_checkin",
            start_time=start,
            end_time=calculate_activity_end(start, settings.HOTEL_CHECKIN_DURATION_MINUTES),
            title=f"Check in: {hotel.name}",
            subtitle=hotel.address or None,
            data=_record_data(hotel),
        )]

    if hotel.check_in_date < day < hotel.check_out_date:
        # Mid-stay reminder, no slot of its own
        return [TimelineEntry(
            id=f"hotel-{hotel.id}",
            type="hotel_checkin",
            start_time=PLACEHOLDER_TIME,
            end_time=PLACEHOLDER_TIME,
            title=f"Staying at {hotel.name}",
            subtitle=hotel.address or None,
            data={**_record_data(hotel), "informational": True},
        )]
    return []


def _first_start(flights: List[Any], hotel, day: date) -> str:
    last_arrival = flights[-1].arrival_time if flights else None
    checkin = None
    if hotel is not None and hotel.check_in_date == day:
        checkin = get_settings().HOTEL_CHECKIN_TIME
    return calculate_first_activity_start(last_arrival, checkin)


def _block_order(block) -> int:
    return BLOCK_ORDER[BlockType(block.block_type)]


def _chain_step(attractions: Dict[str, Any], restaurants: Dict[str, Any]):
    def step(state: _ChainState, block) -> _ChainState:
        selection = selection_of(block)
        if isinstance(selection, AttractionSelection):
            item, kind, label = attractions.get(str(selection.id)), "activity", "Attraction"
        elif isinstance(selection, RestaurantSelection):
            item, kind, label = restaurants.get(str(selection.id)), "restaurant", "Restaurant"
        else:
            return state

        if item is None:
            message = f"{label} {selection.id} selected in block {block.id} was not found"
            logger.warning(message)
            return state._replace(warnings=state.warnings + (message,))

        if state.previous is None:
            travel = 0
            start = state.current_time
        else:
            travel = travel_minutes_between(state.previous, item)
            start = calculate_next_activity_start(state.current_time, travel)

        duration = getattr(item, "duration_minutes", None) or get_default_duration(
            "restaurant" if kind == "restaurant" else "activity"
        )
        end = calculate_activity_end(start, duration)

        if kind == "restaurant":
            subtitle = getattr(item, "cuisine_type", None)
        else:
            subtitle = getattr(item, "category", None)

        entry = TimelineEntry(
            id=f"block-{block.id}",
            type=kind,
            start_time=start,
            end_time=end,
            title=item.name,
            subtitle=subtitle,
            travel_time_from_previous=travel,
            data=_record_data(item),
        )
        return _ChainState(end, item, state.entries + (entry,), state.warnings)

    return step


def build_day_timeline(
    day: date,
    flights: Iterable[Any],
    hotel,
    blocks: Iterable[Any],
    attractions: Iterable[Any],
    restaurants: Iterable[Any],
    origin=None,
) -> DayTimeline:
    """
    Build the ordered timeline for one day.

    Flights are listed by departure; a check-in entry goes on the hotel's
    check-in day and an informational one on every day strictly inside the
    stay. Filled blocks are chained in block-type order starting from the
    first-activity start. The first selection travels from the hotel, or from
    the trip origin when the hotel has no coordinates; with neither it starts
    exactly at the first-activity start with zero travel. Selections missing
    from the catalog are skipped and reported in warnings. Entries are sorted
    by start time, so placeholder 00:00 entries come first.
    """
    day_flights = sorted(
        (f for f in flights if _on_day(f, day)),
        key=lambda f: normalize_time_string(f.departure_time),
    )
    day_blocks = sorted((b for b in blocks if _on_day(b, day)), key=_block_order)

    if has_coordinates(hotel):
        start_location = hotel
    elif has_coordinates(origin):
        start_location = origin
    else:
        start_location = None

    initial = _ChainState(_first_start(day_flights, hotel, day), start_location, (), ())
    chained = reduce(
        _chain_step(
            {str(a.id): a for a in attractions},
            {str(r.id): r for r in restaurants},
        ),
        day_blocks,
        initial,
    )

    entries: List[TimelineEntry] = [_flight_entry(f) for f in day_flights]
    entries.extend(_hotel_entries(hotel, day))
    entries.extend(chained.entries)
    entries.sort(key=lambda e: e.start_time)
    return DayTimeline(entries=entries, warnings=list(chained.warnings))

