from datetime import date, time

import pytest

from app.core.time_blocks import generate_template, iter_days, slot_for
from app.db.models import BlockType


def test_one_day_template():
    blocks = generate_template(date(2026, 3, 15), date(2026, 3, 15))

    assert [b.block_type for b in blocks] == [
        BlockType.MORNING, BlockType.LUNCH, BlockType.AFTERNOON, BlockType.DINNER,
    ]
    assert [(b.start_time, b.end_time) for b in blocks] == [
        (time(9, 0), time(12, 0)),
        (time(12, 0), time(13, 30)),
        (time(13, 30), time(17, 0)),
        (time(18, 0), time(20, 0)),
    ]


def test_every_day_of_the_range_is_covered():
    blocks = generate_template(date(2026, 3, 30), date(2026, 4, 2))

    assert len(blocks) == 16
    assert sorted({b.date for b in blocks}) == list(iter_days(date(2026, 3, 30), date(2026, 4, 2)))


def test_evening_only_on_request():
    plain = generate_template(date(2026, 3, 15), date(2026, 3, 16))
    with_evening = generate_template(date(2026, 3, 15), date(2026, 3, 16), include_evening=True)

    assert BlockType.EVENING not in {b.block_type for b in plain}
    assert len(with_evening) == 10
    assert with_evening[4].block_type == BlockType.EVENING
    assert with_evening[4].start_time == time(20, 0)


def test_inverted_range_is_empty():
    assert generate_template(date(2026, 3, 16), date(2026, 3, 15)) == []


def test_slot_for():
    assert slot_for("dinner").start_time == time(18, 0)
    assert slot_for(BlockType.EVENING).end_time == time(23, 0)
    with pytest.raises(ValueError):
        slot_for("brunch")


def test_meal_blocks():
    assert BlockType.LUNCH.is_meal and BlockType.DINNER.is_meal
    assert not BlockType.MORNING.is_meal
    assert not BlockType.EVENING.is_meal
