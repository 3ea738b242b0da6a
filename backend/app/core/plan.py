"""Turn an accepted proposal into the full set of blocks for a new plan version"""

import logging
from collections import namedtuple
from typing import Collection, Iterable, List, Sequence
from uuid import UUID

from app.core.errors import ItineraryValidationError
from app.core.proposal import ProposedBlock
from app.core.selection import EMPTY, AttractionSelection, RestaurantSelection, Selection
from app.core.time_blocks import TemplateBlock, slot_for
from app.core.validation import PREFIX
from app.db.models import BlockType

logger = logging.getLogger(__name__)

# A block ready to insert once the plan version exists
BlockDraft = namedtuple("BlockDraft", ["date", "block_type", "start_time", "end_time", "selection"])


def _resolve(raw_id: str, label: str, known_ids: Collection[str]) -> UUID:
    if str(raw_id) not in known_ids:
        raise ItineraryValidationError(f"{PREFIX}{label} {raw_id} is not available for this city")
    try:
        return UUID(str(raw_id))
    except ValueError:
        raise ItineraryValidationError(f"{PREFIX}{label} id {raw_id!r} is not a valid identifier")


def _selection_for(entry: ProposedBlock, attraction_ids: Collection[str], restaurant_ids: Collection[str]) -> Selection:
    if entry.attraction_id:
        return AttractionSelection(id=_resolve(entry.attraction_id, "Attraction", attraction_ids))
    if entry.restaurant_id:
        return RestaurantSelection(id=_resolve(entry.restaurant_id, "Restaurant", restaurant_ids))
    return EMPTY


def assemble_time_blocks(
    template: Sequence[TemplateBlock],
    entries: Iterable[ProposedBlock],
    attraction_ids: Iterable,
    restaurant_ids: Iterable,
) -> List[BlockDraft]:
    """
    One draft per proposed entry, timed from its template slot (or the block
    type's nominal slot when the template lacks it), then an empty draft for
    every template slot the proposal left out.

    Raises ItineraryValidationError when an entry points at a place outside
    the given catalog.
    """
    slots = {(block.date, block.block_type): block for block in template}
    known_attractions = {str(i) for i in attraction_ids}
    known_restaurants = {str(i) for i in restaurant_ids}

    drafts = []
    covered = set()
    for entry in entries:
        block_type = BlockType(entry.block_type)
        slot = slots.get((entry.date, block_type)) or slot_for(block_type)
        drafts.append(BlockDraft(
            date=entry.date,
            block_type=block_type,
            start_time=slot.start_time,
            end_time=slot.end_time,
            selection=_selection_for(entry, known_attractions, known_restaurants),
        ))
        covered.add((entry.date, block_type))

    missing = [block for block in template if (block.date, block.block_type) not in covered]
    drafts.extend(
        BlockDraft(block.date, block.block_type, block.start_time, block.end_time, EMPTY)
        for block in missing
    )
    logger.debug(f"Assembled {len(drafts)} blocks ({len(missing)} left empty)")
    return drafts
