"""
Time-of-day arithmetic for the timeline.

Every value handled here is a wall-clock time in a single day, rendered as
"HH:MM". Inputs arrive in several shapes ("HH:MM", "HH:MM:SS" from TIME
columns, full timestamps, datetime.time objects, None). Anything that does not
parse to a valid 24-hour time falls back to the configured default (09:00)
instead of raising, so one malformed record cannot break a day's render.
Additions wrap past midnight.
"""

import logging
import re
from datetime import datetime, time as TimeOfDay
from typing import Literal, Optional, Union

from app.core.settings import get_settings

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

TimeInput = Union[str, TimeOfDay, datetime, None]

_STRICT_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")
_EMBEDDED_TIME = re.compile(r"(\d{2}):(\d{2})(?::(\d{2}))?")


def _valid(hours: int, minutes: int, seconds: int = 0) -> bool:
    return 0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60


def _match_to_minutes(match) -> Optional[int]:
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3)) if match.group(3) else 0
    if not _valid(hours, minutes, seconds):
        return None
    return hours * 60 + minutes


def parse_time_of_day(value: TimeInput) -> Optional[int]:
    """Minutes since midnight, or None when value is not a valid time of day"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.hour * 60 + value.minute
    if isinstance(value, TimeOfDay):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    strict = _STRICT_TIME.match(text)
    if strict:
        return _match_to_minutes(strict)

    # timestamps: take the first embedded HH:MM[:SS]
    embedded = _EMBEDDED_TIME.search(text)
    if embedded:
        return _match_to_minutes(embedded)
    return None


def format_minutes(total_minutes: int) -> str:
    """Minutes since midnight -> "HH:MM", wrapping into a single day"""
    wrapped = total_minutes % MINUTES_PER_DAY
    return f"{wrapped // 60:02d}:{wrapped % 60:02d}"


def _minutes_or_default(value: TimeInput) -> int:
    parsed = parse_time_of_day(value)
    if parsed is None:
        default = get_settings().DEFAULT_TIME
        if value not in (None, ""):
            logger.warning(f"Invalid time format: {value!r}, defaulting to {default}")
        return parse_time_of_day(default)
    return parsed


def normalize_time_string(value: TimeInput) -> str:
    """Normalize any supported time representation to "HH:MM" (09:00 on failure). Idempotent."""
    return format_minutes(_minutes_or_default(value))


def calculate_activity_end(start_time: TimeInput, duration_minutes: int) -> str:
    return format_minutes(_minutes_or_default(start_time) + int(duration_minutes))


def calculate_next_activity_start(previous_end_time: TimeInput, travel_minutes: int) -> str:
    return format_minutes(_minutes_or_default(previous_end_time) + int(travel_minutes or 0))


def calculate_first_activity_start(
    flight_arrival_time: TimeInput,
    hotel_checkin_time: TimeInput,
) -> str:
    """
    Earliest start for the day's first activity.

    A known flight arrival allows activities from arrival + 90 minutes, a known
    hotel check-in from check-in + 30 minutes; when both are known the later
    one wins. With neither, the check-in rule is applied to the default time
    (09:00 -> 09:30). Candidates are compared before wrapping so a late
    arrival that spills past midnight still counts as the later one.
    """
    settings = get_settings()
    candidates = []
    if flight_arrival_time:
        candidates.append(_minutes_or_default(flight_arrival_time) + settings.FLIGHT_ARRIVAL_BUFFER_MINUTES)
    if hotel_checkin_time:
        candidates.append(_minutes_or_default(hotel_checkin_time) + settings.HOTEL_SETTLE_IN_MINUTES)
    if not candidates:
        candidates.append(_minutes_or_default(settings.DEFAULT_TIME) + settings.HOTEL_SETTLE_IN_MINUTES)
    return format_minutes(max(candidates))


def get_default_duration(kind: Literal["restaurant", "activity"]) -> int:
    """Default minutes spent at a point of interest without an explicit duration"""
    settings = get_settings()
    if kind == "restaurant":
        return settings.RESTAURANT_DEFAULT_DURATION
    return settings.ACTIVITY_DEFAULT_DURATION


def is_open_at(at: TimeInput, opening_time: TimeInput, closing_time: TimeInput) -> bool:
    """
    Whether a place is open at a time of day. Inclusive at both ends; missing
    or unreadable hours count as always open. Closing before opening means the
    place stays open past midnight.
    """
    opens = parse_time_of_day(opening_time)
    closes = parse_time_of_day(closing_time)
    if opens is None or closes is None:
        return True

    t = _minutes_or_default(at)
    if opens <= closes:
        return opens <= t <= closes
    return t >= opens or t <= closes


def format_time(value: TimeInput) -> str:
    """12-hour display form ("14:30" -> "2:30 PM"). Unparseable input is returned unchanged."""
    if value is None or value == "":
        return ""
    minutes = parse_time_of_day(value)
    if minutes is None:
        logger.warning(f"Unable to format time: {value!r}")
        return str(value)
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    return f"{hours % 12 or 12}:{mins:02d} {suffix}"
