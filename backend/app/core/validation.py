"""
Structural checks for a proposed itinerary.

Rules run in a fixed order and the first violation wins:

1. every entry dated inside the city's date range (inclusive)
2. no attraction, then no restaurant, assigned to more than one block
3. activities spread over enough days when enough attractions were available
4. the first day has an activity when attractions were available
5. each entry uses a block type the daily template has, each selection fits
   its block type and each slot is assigned once

A rejected proposal must not be persisted at all.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Collection, Iterable, Optional, Sequence, Union

from app.core.proposal import ProposedBlock
from app.core.settings import Settings, get_settings
from app.db.models import BlockType

logger = logging.getLogger(__name__)

PREFIX = "Itinerary validation failed: "

DateInput = Union[date, str]


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


VALID = ValidationResult(valid=True)


def _fail(message: str) -> ValidationResult:
    logger.info(f"Rejected itinerary: {message}")
    return ValidationResult(valid=False, error=PREFIX + message)


def _as_date(value: DateInput) -> date:
    return value if isinstance(value, date) else date.fromisoformat(str(value))


def _check_date_range(entries, start: date, end: date) -> Optional[ValidationResult]:
    for entry in entries:
        if not start <= entry.date <= end:
            return _fail(
                f"Block dated {entry.date.isoformat()} is outside city date range "
                f"({start.isoformat()} to {end.isoformat()})"
            )
    return None


def _check_duplicates(entries) -> Optional[ValidationResult]:
    for label, attr in (("Attraction", "attraction_id"), ("Restaurant", "restaurant_id")):
        seen = set()
        for entry in entries:
            item_id = getattr(entry, attr)
            if not item_id:
                continue
            if item_id in seen:
                return _fail(f"{label} {item_id} is assigned to multiple time blocks")
            seen.add(item_id)
    return None


def _check_distribution(entries, num_days: int, available: int, settings: Settings) -> Optional[ValidationResult]:
    active_days = {entry.date for entry in entries if entry.has_selection}
    enough_material = (
        available >= settings.DISTRIBUTION_MIN_ATTRACTIONS
        and available >= num_days * settings.DISTRIBUTION_MATERIAL_RATIO
    )
    if enough_material and len(active_days) < num_days * settings.DISTRIBUTION_MIN_ACTIVE_DAY_RATIO:
        return _fail(
            f"Poor activity distribution - only {len(active_days)} of {num_days} days have activities"
        )
    return None


def _check_first_day(entries, start: date, available: int) -> Optional[ValidationResult]:
    if available == 0:
        return None
    if any(entry.date == start and entry.has_selection for entry in entries):
        return None
    return _fail(f"First day ({start.isoformat()}) has no activities, but attractions are available")


def _check_block_fit(entries, block_types: Collection[BlockType]) -> Optional[ValidationResult]:
    assigned_slots = set()
    for entry in entries:
        try:
            block_type = BlockType(entry.block_type)
        except ValueError:
            return _fail(f"Block dated {entry.date.isoformat()} has unknown block type '{entry.block_type}'")
        if block_type not in block_types:
            return _fail(f"The {block_type.value} block is not part of this itinerary's daily template")

        slot = (entry.date, block_type)
        if slot in assigned_slots:
            return _fail(f"The {block_type.value} block on {entry.date.isoformat()} is assigned more than once")
        assigned_slots.add(slot)

        if entry.attraction_id and entry.restaurant_id:
            return _fail(
                f"The {block_type.value} block on {entry.date.isoformat()} has both an attraction and a restaurant"
            )
        if entry.restaurant_id and not block_type.is_meal:
            return _fail(f"Restaurant {entry.restaurant_id} cannot be placed in a {block_type.value} block")
        if entry.attraction_id and block_type.is_meal:
            return _fail(f"Attraction {entry.attraction_id} cannot be placed in a {block_type.value} block")
    return None


def validate_itinerary(
    entries: Sequence[ProposedBlock],
    start_date: DateInput,
    end_date: DateInput,
    selectable_attraction_ids: Iterable[str],
    settings: Optional[Settings] = None,
    block_types: Collection[BlockType] = tuple(BlockType),
) -> ValidationResult:
    """
    Accept or reject a proposal, naming the first rule it breaks.

    An empty proposal is accepted. So is one whose entries are all empty:
    the distribution and first-day rules only apply once something is
    selected.
    """
    settings = settings or get_settings()
    start, end = _as_date(start_date), _as_date(end_date)
    available = len(set(selectable_attraction_ids))
    num_days = (end - start).days + 1

    failure = _check_date_range(entries, start, end) or _check_duplicates(entries)
    if failure:
        return failure

    if any(entry.has_selection for entry in entries):
        failure = (
            _check_distribution(entries, num_days, available, settings)
            or _check_first_day(entries, start, available)
        )
        if failure:
            return failure

    return _check_block_fit(entries, block_types) or VALID
