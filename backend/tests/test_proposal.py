import json
from datetime import date

from app.core.proposal import (
    ParsedProposal,
    ProposalError,
    ProposedBlock,
    build_prompt,
    parse_proposal,
    strip_code_fences,
)
from app.core.time_blocks import generate_template

DOCUMENT = {
    "itinerary": [
        {"date": "2026-03-15", "blockType": "morning", "attractionId": "a1", "restaurantId": None},
        {"date": "2026-03-15", "blockType": "lunch", "attractionId": None, "restaurantId": "r1"},
    ],
    "summary": "Start with the Louvre, lunch nearby",
}


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_inside_prose(self):
        text = 'Here is your plan:\n```json\n{"a": 1}\n```\nEnjoy!'
        assert strip_code_fences(text) == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1}\n') == '{"a": 1}'

    def test_none(self):
        assert strip_code_fences(None) == ""


class TestParseProposal:
    def test_fenced_document(self):
        result = parse_proposal(f"```json\n{json.dumps(DOCUMENT)}\n```")

        assert isinstance(result, ParsedProposal)
        assert result.ok
        assert result.summary == DOCUMENT["summary"]
        assert result.entries[0] == ProposedBlock(date=date(2026, 3, 15), block_type="morning", attraction_id="a1")
        assert result.entries[1].restaurant_id == "r1"
        assert not result.entries[1].attraction_id

    def test_plain_document(self):
        result = parse_proposal(json.dumps(DOCUMENT))
        assert result.ok
        assert len(result.entries) == 2

    def test_missing_summary_defaults_to_empty(self):
        result = parse_proposal(json.dumps({"itinerary": []}))
        assert result.ok
        assert result.entries == []
        assert result.summary == ""

    def test_invalid_json(self):
        result = parse_proposal("Sorry, I cannot help with that.")
        assert isinstance(result, ProposalError)
        assert not result.ok
        assert "not valid JSON" in result.message
        assert result.raw == "Sorry, I cannot help with that."

    def test_wrong_shape(self):
        result = parse_proposal(json.dumps({"plan": []}))
        assert not result.ok
        assert "itinerary" in result.message

    def test_bad_date(self):
        bad = {"itinerary": [{"date": "March 15", "blockType": "morning"}]}
        result = parse_proposal(json.dumps(bad))
        assert not result.ok
        assert "itinerary.0.date" in result.message

    def test_empty(self):
        assert not parse_proposal("").ok
        assert not parse_proposal("```json\n```").ok


def test_has_selection():
    assert ProposedBlock(date="2026-03-15", blockType="morning", attractionId="a1").has_selection
    assert not ProposedBlock(date="2026-03-15", blockType="morning").has_selection


def test_build_prompt(paris):
    template = generate_template(paris.city.start_date, paris.city.end_date)
    prompt = build_prompt(paris.city, paris.hotel, template, paris.attractions, paris.restaurants)

    assert "Dates: 2026-03-15 to 2026-03-17" in prompt
    assert "Hotel location: 48.8566, 2.3522" in prompt
    assert str(paris.louvre.id) in prompt
    assert str(paris.procope.id) in prompt
    assert '"blockType": "dinner"' in prompt
    assert '"startTime": "13:30"' in prompt


def test_build_prompt_without_hotel(paris):
    prompt = build_prompt(paris.city, None, [], [], [])
    assert "Hotel location: Not specified" in prompt
