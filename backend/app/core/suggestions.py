import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.geo import Coordinates, distance_between, estimate_travel_time, has_coordinates
from app.core.selection import AttractionSelection, RestaurantSelection, selection_of
from app.core.timing import is_open_at, normalize_time_string
from app.db.models import BLOCK_ORDER, BlockType

logger = logging.getLogger(__name__)

# Live travel times are only looked up for the closest few
LIVE_LOOKUP_LIMIT = 10


@dataclass(frozen=True)
class Suggestion:
    id: Any
    name: str
    type: str  # attraction | restaurant
    latitude: float
    longitude: float
    distance_km: float
    travel_time_minutes: int
    origin_name: str
    is_open: bool
    travel_time_text: Optional[str] = None
    description: str = ""
    image_url: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    category: Optional[str] = None
    cuisine_type: Optional[str] = None
    price_level: Optional[int] = None


@dataclass(frozen=True)
class SuggestionOrigin:
    name: str
    location: Coordinates


def _previous_block(block, day_blocks: Sequence[Any]):
    earlier = [
        b for b in day_blocks
        if b.id != block.id and BLOCK_ORDER[BlockType(b.block_type)] < BLOCK_ORDER[BlockType(block.block_type)]
    ]
    if not earlier:
        return None
    return max(earlier, key=lambda b: BLOCK_ORDER[BlockType(b.block_type)])


def _lookup(selection, attractions: Dict[str, Any], restaurants: Dict[str, Any]):
    if isinstance(selection, AttractionSelection):
        return attractions.get(str(selection.id))
    if isinstance(selection, RestaurantSelection):
        return restaurants.get(str(selection.id))
    return None


def suggestion_origin(block, day_blocks, hotel, attractions: Dict[str, Any], restaurants: Dict[str, Any]) -> Optional[SuggestionOrigin]:
    """
    Where the traveler comes from: the previous block's selection, else the
    hotel. None without a located hotel, even when a previous selection exists.
    """
    if not has_coordinates(hotel):
        return None
    previous = _previous_block(block, day_blocks)
    if previous is not None:
        item = _lookup(selection_of(previous), attractions, restaurants)
        if item is not None:
            return SuggestionOrigin(item.name, Coordinates(item.latitude, item.longitude))
    return SuggestionOrigin(hotel.name, Coordinates(hotel.latitude, hotel.longitude))


def _taken_ids(block, day_blocks) -> set:
    taken = set()
    for other in day_blocks:
        if other.id == block.id:
            continue
        selection = selection_of(other)
        if isinstance(selection, (AttractionSelection, RestaurantSelection)):
            taken.add(str(selection.id))
    return taken


def suggest_for_block(
    block,
    day_blocks: Sequence[Any],
    hotel,
    attractions: Iterable[Any],
    restaurants: Iterable[Any],
) -> Tuple[List[Suggestion], Optional[SuggestionOrigin]]:
    """
    Rank candidate places for a block by distance from where the traveler
    will be coming from. Meal blocks get restaurants, other blocks attractions.
    Places already chosen elsewhere on the same day are left out.
    Without a hotel there is nothing to measure from and no suggestions.
    """
    attraction_map = {str(a.id): a for a in attractions}
    restaurant_map = {str(r.id): r for r in restaurants}

    origin = suggestion_origin(block, day_blocks, hotel, attraction_map, restaurant_map)
    if origin is None:
        logger.info(f"No hotel for block {block.id}, skipping suggestions")
        return [], None

    block_type = BlockType(block.block_type)
    candidates = restaurant_map if block_type.is_meal else attraction_map
    kind = "restaurant" if block_type.is_meal else "attraction"
    taken = _taken_ids(block, day_blocks)
    block_start = normalize_time_string(block.start_time)

    suggestions = []
    for item_id, item in candidates.items():
        if item_id in taken:
            continue
        km = distance_between(origin.location, item)
        suggestions.append(Suggestion(
            id=item.id,
            name=item.name,
            type=kind,
            latitude=item.latitude,
            longitude=item.longitude,
            distance_km=km,
            travel_time_minutes=estimate_travel_time(km),
            origin_name=origin.name,
            is_open=is_open_at(block_start, item.opening_time, item.closing_time),
            description=getattr(item, "description", "") or "",
            image_url=getattr(item, "image_url", None),
            opening_time=normalize_time_string(item.opening_time) if item.opening_time else None,
            closing_time=normalize_time_string(item.closing_time) if item.closing_time else None,
            category=getattr(item, "category", None),
            cuisine_type=getattr(item, "cuisine_type", None),
            price_level=getattr(item, "price_level", None),
        ))

    suggestions.sort(key=lambda s: s.distance_km)
    return suggestions, origin


def apply_live_times(suggestions: List[Suggestion], live: Dict[Any, Any]) -> List[Suggestion]:
    """Replace estimates with live results where a lookup succeeded; order is kept"""
    updated = []
    for suggestion in suggestions:
        result = live.get(suggestion.id)
        if result is None:
            updated.append(suggestion)
            continue
        updated.append(replace(
            suggestion,
            travel_time_minutes=result.duration_minutes,
            travel_time_text=result.duration_text,
        ))
    return updated
