"""
What a time block holds: one attraction, one restaurant, or nothing.

Persisted blocks keep the choice in two nullable columns; everything above the
database works with the variant below so a block can never hold both.
"""

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from app.core.errors import BlockSelectionError
from app.db.models import BlockType


@dataclass(frozen=True)
class AttractionSelection:
    id: UUID
    kind: str = "attraction"


@dataclass(frozen=True)
class RestaurantSelection:
    id: UUID
    kind: str = "restaurant"


@dataclass(frozen=True)
class EmptySelection:
    kind: str = "empty"


Selection = Union[AttractionSelection, RestaurantSelection, EmptySelection]

EMPTY = EmptySelection()


def selection_from_ids(attraction_id=None, restaurant_id=None) -> Selection:
    if attraction_id is not None and restaurant_id is not None:
        raise BlockSelectionError("A time block can hold an attraction or a restaurant, not both")
    if attraction_id is not None:
        return AttractionSelection(id=attraction_id)
    if restaurant_id is not None:
        return RestaurantSelection(id=restaurant_id)
    return EMPTY


def selection_of(block) -> Selection:
    """Read a block's persisted columns into a Selection"""
    return selection_from_ids(block.selected_attraction_id, block.selected_restaurant_id)


def check_fits(block_type, selection: Selection) -> None:
    """Raise BlockSelectionError if selection cannot go into a block of block_type"""
    block_type = BlockType(block_type)
    if isinstance(selection, RestaurantSelection) and not block_type.is_meal:
        raise BlockSelectionError(
            f"Restaurant {selection.id} cannot be placed in a {block_type.value} block"
        )
    if isinstance(selection, AttractionSelection) and block_type.is_meal:
        raise BlockSelectionError(
            f"Attraction {selection.id} cannot be placed in a {block_type.value} block"
        )


def apply_selection(block, selection: Selection):
    """Write selection onto block's columns. Clearing is always allowed."""
    check_fits(block.block_type, selection)
    block.selected_attraction_id = selection.id if isinstance(selection, AttractionSelection) else None
    block.selected_restaurant_id = selection.id if isinstance(selection, RestaurantSelection) else None
    return block
