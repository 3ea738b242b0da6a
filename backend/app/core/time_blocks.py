"""
Fixed daily block template.

Nominal slot times are what gets persisted on a block; the displayed times
come from the timeline builder and are expected to differ.
"""

from collections import namedtuple
from datetime import date, time as TimeOfDay, timedelta
from typing import Iterator, List

from app.db.models import BlockType

# (block_type, start, end) for one slot
Slot = namedtuple("Slot", ["block_type", "start_time", "end_time"])

# Template entry: a slot on a concrete day
TemplateBlock = namedtuple("TemplateBlock", ["date", "block_type", "start_time", "end_time"])

DAILY_SLOTS = (
    Slot(BlockType.MORNING, TimeOfDay(9, 0), TimeOfDay(12, 0)),
    Slot(BlockType.LUNCH, TimeOfDay(12, 0), TimeOfDay(13, 30)),
    Slot(BlockType.AFTERNOON, TimeOfDay(13, 30), TimeOfDay(17, 0)),
    Slot(BlockType.DINNER, TimeOfDay(18, 0), TimeOfDay(20, 0)),
)

# Single-city flow only
EVENING_SLOT = Slot(BlockType.EVENING, TimeOfDay(20, 0), TimeOfDay(23, 0))


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """Every calendar day from start_date to end_date, inclusive"""
    day = start_date
    while day <= end_date:
        yield day
        day += timedelta(days=1)


def generate_template(start_date: date, end_date: date, include_evening: bool = False) -> List[TemplateBlock]:
    """
    Emit the canonical slot sequence for every day of a city's date range.

    An inverted range yields no blocks.
    """
    slots = DAILY_SLOTS + (EVENING_SLOT,) if include_evening else DAILY_SLOTS
    return [
        TemplateBlock(day, slot.block_type, slot.start_time, slot.end_time)
        for day in iter_days(start_date, end_date)
        for slot in slots
    ]


def slot_for(block_type) -> Slot:
    block_type = BlockType(block_type)
    for slot in DAILY_SLOTS + (EVENING_SLOT,):
        if slot.block_type == block_type:
            return slot
    raise ValueError(f"Unknown block type: {block_type}")
