from datetime import date

from app.core.proposal import ProposedBlock
from app.core.settings import Settings
from app.core.validation import PREFIX, validate_itinerary
from app.db.models import BlockType

START, END = "2026-03-15", "2026-03-17"
AVAILABLE = ["a1", "a2", "a3"]


def entry(day, block_type, attraction_id=None, restaurant_id=None):
    return ProposedBlock(date=day, block_type=block_type, attraction_id=attraction_id, restaurant_id=restaurant_id)


class TestOrderedRules:
    def test_outside_date_range(self):
        result = validate_itinerary(
            [entry("2026-03-14", "morning", "a1")], "2026-03-15", "2026-03-18", AVAILABLE
        )
        assert not result.valid
        assert result.error.startswith(PREFIX)
        assert "outside city date range" in result.error
        assert "2026-03-14" in result.error

    def test_range_is_inclusive(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-16", "morning", "a2"),
            entry("2026-03-17", "morning", "a3"),
        ]
        assert validate_itinerary(entries, START, END, AVAILABLE).valid

    def test_duplicate_attraction(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-16", "afternoon", "a1"),
        ]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert not result.valid
        assert "assigned to multiple time blocks" in result.error
        assert "a1" in result.error

    def test_duplicate_restaurant(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-15", "lunch", restaurant_id="r1"),
            entry("2026-03-16", "dinner", restaurant_id="r1"),
        ]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert not result.valid
        assert "Restaurant r1 is assigned to multiple time blocks" in result.error

    def test_poor_distribution(self):
        entries = [
            entry("2026-03-17", "morning", "a1"),
            entry("2026-03-17", "afternoon", "a2"),
        ]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert not result.valid
        assert "Poor activity distribution" in result.error
        assert "1 of 3 days" in result.error

    def test_sparse_proposal_with_little_material(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-15", "afternoon", "a2"),
        ]
        assert validate_itinerary(entries, "2026-03-15", "2026-03-19", ["a1", "a2"]).valid

    def test_first_day_without_activities(self):
        entries = [
            entry("2026-03-16", "morning", "a1"),
            entry("2026-03-17", "morning", "a2"),
        ]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert not result.valid
        assert "First day (2026-03-15) has no activities" in result.error

    def test_first_day_rule_on_single_day_range(self):
        entries = [entry("2026-03-15", "lunch", restaurant_id="r1")]
        assert validate_itinerary(entries, "2026-03-15", "2026-03-15", ["a1"]).valid

    def test_first_day_rule_skipped_without_attractions(self):
        entries = [entry("2026-03-16", "lunch", restaurant_id="r1")]
        assert validate_itinerary(entries, START, END, []).valid

    def test_first_violation_wins(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-16", "morning", "a1"),
            entry("2026-03-20", "morning", "a2"),
        ]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert "outside city date range" in result.error
        assert "multiple" not in result.error


class TestEdgeCases:
    def test_empty_proposal(self):
        assert validate_itinerary([], START, END, AVAILABLE).valid
        assert validate_itinerary([], START, START, []).valid

    def test_all_null_entries(self):
        entries = [entry("2026-03-15", "morning"), entry("2026-03-16", "lunch")]
        result = validate_itinerary(entries, START, END, AVAILABLE)
        assert result.valid
        assert result.error is None

    def test_date_objects_accepted(self):
        entries = [entry("2026-03-15", "morning", "a1")]
        assert validate_itinerary(entries, date(2026, 3, 15), date(2026, 3, 15), ["a1"]).valid

    def test_duplicate_selectable_ids_count_once(self):
        # two distinct attractions, so a sparse plan is fine
        entries = [entry("2026-03-15", "morning", "a1")]
        assert validate_itinerary(entries, START, END, ["a1", "a1", "a2", "a2"]).valid

    def test_thresholds_are_configurable(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-15", "afternoon", "a2"),
        ]
        assert not validate_itinerary(entries, START, END, AVAILABLE).valid

        lenient = Settings(DISTRIBUTION_MIN_ACTIVE_DAY_RATIO=0.3)
        assert validate_itinerary(entries, START, END, AVAILABLE, settings=lenient).valid


class TestBlockFit:
    def test_restaurant_in_activity_block(self):
        result = validate_itinerary(
            [entry("2026-03-15", "morning", restaurant_id="r1")], START, START, []
        )
        assert not result.valid
        assert "cannot be placed in a morning block" in result.error

    def test_attraction_in_meal_block(self):
        result = validate_itinerary([entry("2026-03-15", "dinner", "a1")], START, START, ["a1"])
        assert "cannot be placed in a dinner block" in result.error

    def test_unknown_block_type(self):
        result = validate_itinerary([entry("2026-03-15", "brunch", "a1")], START, START, ["a1"])
        assert "unknown block type 'brunch'" in result.error

    def test_slot_assigned_twice(self):
        entries = [
            entry("2026-03-15", "morning", "a1"),
            entry("2026-03-15", "morning", "a2"),
        ]
        result = validate_itinerary(entries, START, START, ["a1", "a2"])
        assert "assigned more than once" in result.error

    def test_both_ids(self):
        result = validate_itinerary(
            [entry("2026-03-15", "lunch", "a1", "r1")], START, START, ["a1"]
        )
        assert "has both an attraction and a restaurant" in result.error

    def test_block_type_outside_the_daily_template(self):
        entries = [entry("2026-03-15", "morning", "a1"), entry("2026-03-15", "evening", "a2")]
        daily = [BlockType.MORNING, BlockType.LUNCH, BlockType.AFTERNOON, BlockType.DINNER]

        result = validate_itinerary(entries, START, START, ["a1", "a2"], block_types=daily)

        assert not result.valid
        assert "evening block is not part of this itinerary's daily template" in result.error

    def test_evening_allowed_by_default(self):
        entries = [entry("2026-03-15", "morning", "a1"), entry("2026-03-15", "evening", "a2")]
        assert validate_itinerary(entries, START, START, ["a1", "a2"]).valid
