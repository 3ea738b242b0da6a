import asyncio
from dataclasses import asdict
import logging
import time
import weakref
from contextlib import asynccontextmanager
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user_id, get_proposer, get_travel_time_client, limiter, settings
from app.api.schemas import (
    AcceptItineraryRequest,
    GenerateItineraryRequest,
    GenerateItineraryResponse,
    PlanVersionRead,
    SuggestionRead,
    SuggestionsResponse,
    TimeBlockRead,
    TimeBlockUpdate,
    TimelineEntryRead,
    TimelineResponse,
)
from app.core.errors import ItineraryValidationError, PlannerError, ProposalParseError
from app.core.geo import Coordinates
from app.core.plan import assemble_time_blocks
from app.core.proposal import ProposedBlock, build_prompt, parse_proposal
from app.core.proposer import ItineraryProposer
from app.core.selection import selection_from_ids
from app.core.suggestions import LIVE_LOOKUP_LIMIT, apply_live_times, suggest_for_block
from app.core.time_blocks import DAILY_SLOTS, generate_template
from app.core.timeline import DayTimeline, build_day_timeline
from app.core.travel_time import TravelTimeClient, maps_directions_link, maps_search_link
from app.core.validation import validate_itinerary
from app.core.versions import Direction, generated_plan_data, navigate
from app.db import crud
from app.db.models import PlanVersion, Restaurant, TimeBlock, Trip, TripCity
from app.db.session import get_db_session

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["itineraries"])

# Regenerations of one trip run one at a time within this process; an entry
# lives only while some request holds or awaits its lock
_TRIP_LOCKS: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()


def _trip_lock(trip_id: UUID) -> asyncio.Lock:
    return _TRIP_LOCKS.setdefault(trip_id, asyncio.Lock())


@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info(f"{operation} completed in {duration:.2f}s")


class ItineraryService:
    """Loads records, runs the scheduling engine and persists its results"""

    def __init__(
        self,
        session: AsyncSession,
        proposer: Optional[ItineraryProposer] = None,
        travel_times: Optional[TravelTimeClient] = None,
    ):
        self.session = session
        self.proposer = proposer
        self.travel_times = travel_times

    async def load_trip(self, trip_id: UUID, user_id: UUID) -> Trip:
        trip = await crud.get_trip(self.session, trip_id)
        if not trip:
            raise HTTPException(status_code=404, detail="Trip not found")
        if trip.user_id != user_id:
            raise HTTPException(status_code=403, detail="Not authorized to access this trip")
        return trip

    async def load_city(self, trip: Trip, city_id: UUID) -> TripCity:
        city = await crud.get_trip_city(self.session, trip.id, city_id)
        if not city:
            raise HTTPException(status_code=404, detail="City not found")
        return city

    async def load_version(self, trip: Trip, version_id: UUID) -> PlanVersion:
        version = await crud.get_plan_version(self.session, version_id)
        if not version or version.trip_id != trip.id:
            raise HTTPException(status_code=404, detail="Plan version not found")
        return version

    async def load_block(self, block_id: UUID, user_id: UUID) -> Tuple[Trip, TimeBlock]:
        block = await crud.get_time_block(self.session, block_id)
        if not block:
            raise HTTPException(status_code=404, detail="Time block not found")
        trip = await self.load_trip(block.trip_id, user_id)
        return trip, block

    async def generate(
        self,
        trip: Trip,
        city: TripCity,
        selected_attraction_ids: Sequence[UUID],
        user_id: UUID,
    ) -> Tuple[PlanVersion, str, int]:
        """Ask the proposer for an itinerary, then check and store it"""
        attractions = await crud.get_attractions(self.session, trip.id, ids=selected_attraction_ids)
        restaurants = await crud.get_restaurants(self.session, trip.id, city.id)
        hotel = await crud.get_hotel_for_city(self.session, trip.id, city.id)
        template = generate_template(city.start_date, city.end_date)

        prompt = build_prompt(city, hotel, template, attractions, restaurants)
        raw = await self.proposer.propose(prompt)

        parsed = parse_proposal(raw)
        if not parsed.ok:
            raise ProposalParseError(parsed.message)

        return await self.accept(
            trip, city, parsed.entries, parsed.summary,
            [a.id for a in attractions], restaurants, user_id,
        )

    async def accept(
        self,
        trip: Trip,
        city: TripCity,
        entries: List[ProposedBlock],
        summary: str,
        selectable_attraction_ids: Iterable[UUID],
        restaurants: List[Restaurant],
        user_id: UUID,
        source: str = "ai_generated_itinerary",
    ) -> Tuple[PlanVersion, str, int]:
        """Validate a proposal and, only if it passes, store it as the next plan version"""
        selectable = [str(i) for i in selectable_attraction_ids]
        result = validate_itinerary(
            entries, city.start_date, city.end_date, selectable,
            block_types=[slot.block_type for slot in DAILY_SLOTS],
        )
        if not result.valid:
            raise ItineraryValidationError(result.error)

        template = generate_template(city.start_date, city.end_date)
        drafts = assemble_time_blocks(template, entries, selectable, [r.id for r in restaurants])

        async with _trip_lock(trip.id):
            version = await crud.save_plan(
                self.session, trip.id, city.id, generated_plan_data(summary, source), user_id, drafts
            )
        return version, summary, len(drafts)

    async def day_timeline(self, trip: Trip, version: PlanVersion, day: date) -> DayTimeline:
        blocks = await crud.get_time_blocks(self.session, version.id, day=day)
        flights = await crud.get_flights(self.session, trip.id, day=day)
        hotel = await crud.get_hotel_for_day(self.session, trip.id, day)
        attractions = await crud.get_attractions(self.session, trip.id)
        restaurants = await crud.get_restaurants(self.session, trip.id)

        origin = None
        if trip.origin_latitude is not None and trip.origin_longitude is not None:
            origin = Coordinates(trip.origin_latitude, trip.origin_longitude)

        timeline = build_day_timeline(day, flights, hotel, blocks, attractions, restaurants, origin=origin)
        if timeline.warnings:
            logger.warning(f"Timeline for {day} of version {version.id} skipped {len(timeline.warnings)} selections")
        return timeline

    async def update_block(self, trip: Trip, block: TimeBlock, payload: TimeBlockUpdate) -> TimeBlock:
        if payload.attraction_id is not None:
            if not await crud.get_attractions(self.session, trip.id, ids=[payload.attraction_id]):
                raise HTTPException(status_code=404, detail="Attraction not found")
        if payload.restaurant_id is not None:
            if not await crud.get_restaurant(self.session, trip.id, payload.restaurant_id):
                raise HTTPException(status_code=404, detail="Restaurant not found")

        selection = selection_from_ids(payload.attraction_id, payload.restaurant_id)
        return await crud.update_time_block_selection(self.session, block, selection)

    async def block_suggestions(self, trip: Trip, block: TimeBlock) -> SuggestionsResponse:
        day_blocks = await crud.get_time_blocks(
            self.session, block.plan_version_id, day=block.date, city_id=block.city_id
        )
        hotel = await crud.get_hotel_for_city(self.session, trip.id, block.city_id)
        attractions = await crud.get_attractions(self.session, trip.id, block.city_id)
        restaurants = await crud.get_restaurants(self.session, trip.id, block.city_id)

        suggestions, origin = suggest_for_block(block, day_blocks, hotel, attractions, restaurants)

        if suggestions and self.travel_times is not None and self.travel_times.configured:
            top = suggestions[:LIVE_LOOKUP_LIMIT]
            live = await self.travel_times.fetch_many(origin.location, {s.id: s for s in top})
            suggestions = apply_live_times(top, live) + suggestions[LIVE_LOOKUP_LIMIT:]

        return SuggestionsResponse(
            block_id=block.id,
            origin_name=origin.name if origin else None,
            suggestions=[
                SuggestionRead(
                    **asdict(s),
                    maps_link=maps_search_link(s.latitude, s.longitude, s.name),
                    directions_link=maps_directions_link(origin.location, s),
                )
                for s in suggestions
            ],
        )


@router.post("/trips/{trip_id}/cities/{city_id}/itinerary",
    response_model=GenerateItineraryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Trip or city not found"},
        409: {"description": "Concurrent regeneration claimed the same version; retry"},
        422: {"description": "Proposal could not be parsed or failed validation"},
        429: {"description": "Rate limit exceeded"},
        503: {"description": "Itinerary generation unavailable"}
    },
    summary="Generate a city itinerary",
    description="Asks the proposer for an itinerary, validates it and stores it as the next plan version"
)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate_itinerary(
    request: Request,
    trip_id: UUID,
    city_id: UUID,
    payload: GenerateItineraryRequest,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    proposer: ItineraryProposer = Depends(get_proposer),
):
    async with performance_timer("itinerary_generation"):
        try:
            service = ItineraryService(session, proposer=proposer)
            trip = await service.load_trip(trip_id, user_id)
            city = await service.load_city(trip, city_id)
            version, summary, count = await service.generate(
                trip, city, payload.selected_attraction_ids, user_id
            )
        except (HTTPException, PlannerError):
            raise
        except Exception as e:
            logger.error(f"Unexpected error in itinerary generation: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate itinerary")

    logger.info(f"Generated plan version {version.version_number} for trip {trip_id}")
    return GenerateItineraryResponse(
        version_id=version.id,
        version_number=version.version_number,
        summary=summary,
        blocks_created=count,
    )


@router.post("/trips/{trip_id}/cities/{city_id}/itinerary/accept",
    response_model=GenerateItineraryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a supplied itinerary",
    description="Runs a caller-supplied proposal through the same validation and versioning as a generated one"
)
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def accept_itinerary(
    request: Request,
    trip_id: UUID,
    city_id: UUID,
    payload: AcceptItineraryRequest,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    service = ItineraryService(session)
    trip = await service.load_trip(trip_id, user_id)
    city = await service.load_city(trip, city_id)

    if payload.selected_attraction_ids is None:
        selectable = [a.id for a in await crud.get_attractions(session, trip.id, city.id)]
    else:
        selectable = payload.selected_attraction_ids
    restaurants = await crud.get_restaurants(session, trip.id, city.id)

    version, summary, count = await service.accept(
        trip, city, payload.itinerary, payload.summary, selectable, restaurants, user_id,
        source="accepted_itinerary",
    )
    return GenerateItineraryResponse(
        version_id=version.id,
        version_number=version.version_number,
        summary=summary,
        blocks_created=count,
    )


@router.get("/trips/{trip_id}/versions", response_model=List[PlanVersionRead])
@limiter.limit(settings.RATE_LIMIT_READ)
async def list_versions(
    request: Request,
    trip_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """A trip's plan history, oldest first"""
    trip = await ItineraryService(session).load_trip(trip_id, user_id)
    return await crud.list_plan_versions(session, trip.id)


@router.get("/trips/{trip_id}/versions/{version_id}/navigate", response_model=PlanVersionRead)
@limiter.limit(settings.RATE_LIMIT_READ)
async def navigate_version(
    request: Request,
    trip_id: UUID,
    version_id: UUID,
    direction: Direction = Query(..., description="prev or next"),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Neighbouring version; at either end the current one is returned"""
    service = ItineraryService(session)
    trip = await service.load_trip(trip_id, user_id)
    current = await service.load_version(trip, version_id)
    target = navigate(current, await crud.list_plan_versions(session, trip.id), direction)
    if target is None:
        raise HTTPException(status_code=404, detail="Plan version not found")
    return target


@router.get("/trips/{trip_id}/versions/{version_id}/timeline", response_model=TimelineResponse)
@limiter.limit(settings.RATE_LIMIT_READ)
async def get_day_timeline(
    request: Request,
    trip_id: UUID,
    version_id: UUID,
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    service = ItineraryService(session)
    trip = await service.load_trip(trip_id, user_id)
    version = await service.load_version(trip, version_id)
    timeline = await service.day_timeline(trip, version, day)
    return TimelineResponse(
        version_id=version.id,
        date=day,
        entries=[TimelineEntryRead.model_validate(entry, from_attributes=True) for entry in timeline.entries],
        warnings=timeline.warnings,
    )


@router.patch("/time-blocks/{block_id}", response_model=TimeBlockRead)
@limiter.limit(settings.RATE_LIMIT_UPDATE)
async def update_time_block(
    request: Request,
    block_id: UUID,
    payload: TimeBlockUpdate,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Select a place for a block or clear it"""
    service = ItineraryService(session)
    trip, block = await service.load_block(block_id, user_id)
    return await service.update_block(trip, block, payload)


@router.get("/time-blocks/{block_id}/suggestions", response_model=SuggestionsResponse)
@limiter.limit(settings.RATE_LIMIT_READ)
async def get_block_suggestions(
    request: Request,
    block_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
    travel_times: TravelTimeClient = Depends(get_travel_time_client),
):
    service = ItineraryService(session, travel_times=travel_times)
    trip, block = await service.load_block(block_id, user_id)
    return await service.block_suggestions(trip, block)
