"""
Boundary for itineraries proposed by the text-generation service.

The payload is untrusted: it may be wrapped in markdown fences or prose and
may not match the expected shape. parse_proposal() is the only place that
looks at the raw text; everything downstream receives ProposedBlock objects.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.time_blocks import TemplateBlock

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


class ProposedBlock(BaseModel):
    """One (date, block type, selection) assignment of a proposal"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: date
    block_type: str = Field(alias="blockType")
    attraction_id: Optional[str] = Field(default=None, alias="attractionId")
    restaurant_id: Optional[str] = Field(default=None, alias="restaurantId")

    @property
    def has_selection(self) -> bool:
        return bool(self.attraction_id or self.restaurant_id)


class ProposalDocument(BaseModel):
    itinerary: List[ProposedBlock]
    summary: str = ""


@dataclass(frozen=True)
class ParsedProposal:
    entries: List[ProposedBlock]
    summary: str
    ok: bool = True


@dataclass(frozen=True)
class ProposalError:
    message: str
    raw: str
    ok: bool = False


ProposalResult = Union[ParsedProposal, ProposalError]


def strip_code_fences(text: str) -> str:
    """Return the content of the first fenced block, or the trimmed text when there is none"""
    trimmed = (text or "").strip()
    match = _CODE_FENCE.search(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def parse_proposal(text: str) -> ProposalResult:
    """Strip fences, decode JSON and check the document shape. Never raises."""
    body = strip_code_fences(text)
    if not body:
        return ProposalError("Proposal is empty", raw=text or "")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Proposal is not valid JSON: {e}")
        return ProposalError(f"Proposal is not valid JSON: {e.msg}", raw=text)

    try:
        document = ProposalDocument.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Proposal has unexpected shape: {e.error_count()} errors")
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return ProposalError(f"Proposal has unexpected shape at '{location}': {first['msg']}", raw=text)

    return ParsedProposal(entries=list(document.itinerary), summary=document.summary)


def _poi_payload(record, fields: Sequence[str]) -> dict:
    result = {}
    for name in fields:
        value = getattr(record, name, None)
        result[name] = value if isinstance(value, (int, float, str, type(None))) else str(value)
    return result


def build_prompt(
    city,
    hotel,
    template: Iterable[TemplateBlock],
    attractions: Iterable[Any],
    restaurants: Iterable[Any],
) -> str:
    """Instruction text asking the proposer to fill the city's time blocks"""
    start, end = city.start_date.isoformat(), city.end_date.isoformat()
    if hotel is not None and hotel.latitude is not None and hotel.longitude is not None:
        hotel_line = f"{hotel.latitude}, {hotel.longitude}"
    else:
        hotel_line = "Not specified"

    slots = [
        {
            "date": block.date.isoformat(),
            "blockType": block.block_type.value,
            "startTime": block.start_time.strftime("%H:%M"),
            "endTime": block.end_time.strftime("%H:%M"),
        }
        for block in template
    ]
    attraction_rows = [
        _poi_payload(a, ("id", "name", "latitude", "longitude", "opening_time",
                         "closing_time", "duration_minutes", "category"))
        for a in attractions
    ]
    restaurant_rows = [
        _poi_payload(r, ("id", "name", "latitude", "longitude", "opening_time",
                         "closing_time", "cuisine_type", "price_level"))
        for r in restaurants
    ]

    return f"""You are a travel planning assistant. Create an itinerary for {city.name} using the selected attractions and restaurants.

City: {city.name}
Dates: {start} to {end} (only use dates within this range)
Hotel location: {hotel_line}

Available time blocks:
{json.dumps(slots, indent=2)}

Selected attractions (for morning and afternoon blocks):
{json.dumps(attraction_rows, indent=2)}

Available restaurants (for lunch and dinner blocks):
{json.dumps(restaurant_rows, indent=2)}

Plan with these in mind:
1. Opening hours of each place
2. Keep consecutive places close to each other
3. Lunch around 12:00-13:30 and dinner around 18:00-20:00
4. Spread activities evenly over all days and start on {start}
5. Vary cuisines and price levels across meals

Return only a JSON object of this shape:
{{
  "itinerary": [
    {{"date": "YYYY-MM-DD", "blockType": "morning|lunch|afternoon|dinner", "attractionId": "uuid or null", "restaurantId": "uuid or null"}}
  ],
  "summary": "Brief explanation of the itinerary logic"
}}

Rules that will be checked:
- Every date must be between {start} and {end} inclusive
- Morning and afternoon blocks take attractionId only; lunch and dinner take restaurantId only
- Each attraction and restaurant may appear at most once
- The first day ({start}) must have at least one activity
- Leave a block null when nothing suitable is available"""
