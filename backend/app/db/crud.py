"""
Data access for trips, catalogs, plan versions and time blocks
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import VersionConflictError
from app.core.plan import BlockDraft
from app.core.selection import AttractionSelection, RestaurantSelection, Selection, apply_selection
from app.core.versions import next_version_number
from app.db.models import (
    BLOCK_ORDER, Trip, TripCity, Flight, Hotel, Attraction, Restaurant, PlanVersion, TimeBlock
)

logger = logging.getLogger(__name__)

# ===== TRIP READS =====

async def get_trip(session: AsyncSession, trip_id: UUID) -> Optional[Trip]:
    result = await session.execute(select(Trip).where(Trip.id == trip_id))
    return result.scalar_one_or_none()


async def get_trip_city(session: AsyncSession, trip_id: UUID, city_id: UUID) -> Optional[TripCity]:
    """City of a trip, None when it belongs to another trip"""
    result = await session.execute(
        select(TripCity).where(TripCity.id == city_id, TripCity.trip_id == trip_id)
    )
    return result.scalar_one_or_none()


async def get_hotel_for_city(session: AsyncSession, trip_id: UUID, city_id: Optional[UUID]) -> Optional[Hotel]:
    """The city's hotel, falling back to the trip's first hotel when none is tied to the city"""
    if city_id is not None:
        result = await session.execute(
            select(Hotel)
            .where(Hotel.trip_id == trip_id, Hotel.city_id == city_id)
            .order_by(Hotel.check_in_date)
        )
        hotel = result.scalars().first()
        if hotel is not None:
            return hotel

    result = await session.execute(
        select(Hotel).where(Hotel.trip_id == trip_id).order_by(Hotel.check_in_date)
    )
    return result.scalars().first()


async def get_hotel_for_day(session: AsyncSession, trip_id: UUID, day: date) -> Optional[Hotel]:
    """Hotel whose stay covers day (check-in inclusive)"""
    result = await session.execute(
        select(Hotel)
        .where(Hotel.trip_id == trip_id, Hotel.check_in_date <= day, Hotel.check_out_date >= day)
        .order_by(Hotel.check_in_date.desc())
    )
    return result.scalars().first()


async def get_flights(session: AsyncSession, trip_id: UUID, day: Optional[date] = None) -> List[Flight]:
    query = select(Flight).where(Flight.trip_id == trip_id)
    if day is not None:
        query = query.where(Flight.date == day)
    result = await session.execute(query.order_by(Flight.date, Flight.departure_time))
    return list(result.scalars().all())


# ===== CATALOG READS =====

async def get_attractions(
    session: AsyncSession,
    trip_id: UUID,
    city_id: Optional[UUID] = None,
    ids: Optional[Iterable[UUID]] = None,
) -> List[Attraction]:
    query = select(Attraction).where(Attraction.trip_id == trip_id)
    if city_id is not None:
        query = query.where(Attraction.city_id == city_id)
    if ids is not None:
        query = query.where(Attraction.id.in_(list(ids)))
    result = await session.execute(query.order_by(Attraction.name))
    return list(result.scalars().all())


async def get_restaurants(
    session: AsyncSession,
    trip_id: UUID,
    city_id: Optional[UUID] = None,
) -> List[Restaurant]:
    query = select(Restaurant).where(Restaurant.trip_id == trip_id)
    if city_id is not None:
        query = query.where(Restaurant.city_id == city_id)
    result = await session.execute(query.order_by(Restaurant.name))
    return list(result.scalars().all())


async def get_restaurant(session: AsyncSession, trip_id: UUID, restaurant_id: UUID) -> Optional[Restaurant]:
    result = await session.execute(
        select(Restaurant).where(Restaurant.id == restaurant_id, Restaurant.trip_id == trip_id)
    )
    return result.scalar_one_or_none()


# ===== PLAN VERSIONS =====

async def list_plan_versions(session: AsyncSession, trip_id: UUID) -> List[PlanVersion]:
    """A trip's history, oldest first"""
    result = await session.execute(
        select(PlanVersion)
        .where(PlanVersion.trip_id == trip_id)
        .order_by(PlanVersion.version_number)
    )
    return list(result.scalars().all())


async def get_plan_version(session: AsyncSession, version_id: UUID) -> Optional[PlanVersion]:
    result = await session.execute(select(PlanVersion).where(PlanVersion.id == version_id))
    return result.scalar_one_or_none()


async def create_plan_version(
    session: AsyncSession,
    trip_id: UUID,
    plan_data: Dict[str, Any],
    created_by: UUID,
) -> PlanVersion:
    """
    Claim the next version number for a trip and flush the new row.

    Does not commit. A concurrent writer that claimed the same number
    surfaces as VersionConflictError.
    """
    current_max = await session.scalar(
        select(func.max(PlanVersion.version_number)).where(PlanVersion.trip_id == trip_id)
    )
    version = PlanVersion(
        trip_id=trip_id,
        version_number=next_version_number([current_max]),
        plan_data=plan_data,
        created_by=created_by,
    )
    session.add(version)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"Version number collision for trip {trip_id}: {e.orig}")
        raise VersionConflictError(trip_id, version.version_number) from e
    return version


async def bulk_insert_time_blocks(
    session: AsyncSession,
    version: PlanVersion,
    city_id: Optional[UUID],
    drafts: Sequence[BlockDraft],
) -> List[TimeBlock]:
    """Add one block per draft to the session under version. Does not commit."""
    blocks = []
    for draft in drafts:
        block = TimeBlock(
            trip_id=version.trip_id,
            city_id=city_id,
            plan_version_id=version.id,
            date=draft.date,
            block_type=draft.block_type,
            start_time=draft.start_time,
            end_time=draft.end_time,
        )
        apply_selection(block, draft.selection)
        blocks.append(block)
    session.add_all(blocks)
    await session.flush()
    return blocks


async def save_plan(
    session: AsyncSession,
    trip_id: UUID,
    city_id: Optional[UUID],
    plan_data: Dict[str, Any],
    created_by: UUID,
    drafts: Sequence[BlockDraft],
) -> PlanVersion:
    """Create the next plan version and all of its blocks in one transaction"""
    try:
        version = await create_plan_version(session, trip_id, plan_data, created_by)
        await bulk_insert_time_blocks(session, version, city_id, drafts)
        await session.commit()
    except VersionConflictError:
        raise
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"Plan for trip {trip_id} conflicted on commit: {e.orig}")
        raise VersionConflictError(trip_id) from e
    except Exception as e:
        await session.rollback()
        logger.error(f"Error saving plan for trip {trip_id}: {e}")
        raise

    await session.refresh(version)
    logger.info(f"Created plan version {version.version_number} for trip {trip_id} with {len(drafts)} blocks")
    return version


# ===== TIME BLOCKS =====

async def get_time_blocks(
    session: AsyncSession,
    version_id: UUID,
    day: Optional[date] = None,
    city_id: Optional[UUID] = None,
) -> List[TimeBlock]:
    """Blocks of a version ordered by date, then by their place in the day"""
    query = select(TimeBlock).where(TimeBlock.plan_version_id == version_id)
    if day is not None:
        query = query.where(TimeBlock.date == day)
    if city_id is not None:
        query = query.where(TimeBlock.city_id == city_id)
    result = await session.execute(query)
    return sorted(result.scalars().all(), key=lambda b: (b.date, BLOCK_ORDER[b.block_type]))


async def get_time_block(session: AsyncSession, block_id: UUID) -> Optional[TimeBlock]:
    result = await session.execute(select(TimeBlock).where(TimeBlock.id == block_id))
    return result.scalar_one_or_none()


async def update_time_block_selection(
    session: AsyncSession,
    block: TimeBlock,
    selection: Selection,
) -> TimeBlock:
    """Select or clear one block in place. BlockSelectionError leaves it untouched."""
    block_id = block.id
    apply_selection(block, selection)
    try:
        session.add(block)
        await session.commit()
        await session.refresh(block)
    except Exception as e:
        await session.rollback()
        logger.error(f"Error updating time block {block_id}: {e}")
        raise

    kind = "cleared" if not isinstance(selection, (AttractionSelection, RestaurantSelection)) else selection.kind
    logger.info(f"Time block {block_id} {kind}")
    return block
