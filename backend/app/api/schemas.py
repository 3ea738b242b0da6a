from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
from uuid import UUID
from datetime import date, datetime, time as TimeOfDay

from app.core.proposal import ProposedBlock
from app.db.models import BlockType

# ===== PLAN GENERATION SCHEMAS =====

class GenerateItineraryRequest(BaseModel):
    selected_attraction_ids: List[UUID] = Field(
        default_factory=list,
        description="Attractions the proposer may place; restaurants come from the whole city",
    )

    @field_validator('selected_attraction_ids')
    @classmethod
    def validate_selection_size(cls, v):
        if len(v) > 100:
            raise ValueError("Too many attractions selected (max 100)")
        return list(dict.fromkeys(v))


class AcceptItineraryRequest(BaseModel):
    """A ready-made proposal, checked exactly like a generated one"""
    itinerary: List[ProposedBlock]
    summary: str = Field(default="", max_length=2000)
    selected_attraction_ids: Optional[List[UUID]] = Field(
        default=None,
        description="Defaults to every attraction of the city",
    )


class GenerateItineraryResponse(BaseModel):
    success: bool = True
    version_id: UUID
    version_number: int
    summary: str
    blocks_created: int

# ===== PLAN VERSION SCHEMAS =====

class PlanVersionRead(BaseModel):
    id: UUID
    trip_id: UUID
    version_number: int
    plan_data: Dict[str, Any]
    created_by: UUID
    created_at: datetime

    class Config:
        from_attributes = True

# ===== TIME BLOCK SCHEMAS =====

class TimeBlockRead(BaseModel):
    id: UUID
    trip_id: UUID
    city_id: Optional[UUID] = None
    plan_version_id: UUID
    date: date
    block_type: BlockType
    start_time: TimeOfDay
    end_time: TimeOfDay
    selected_attraction_id: Optional[UUID] = None
    selected_restaurant_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class TimeBlockUpdate(BaseModel):
    """Select an attraction or a restaurant; send neither to clear the block"""
    attraction_id: Optional[UUID] = None
    restaurant_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_single_selection(self):
        if self.attraction_id is not None and self.restaurant_id is not None:
            raise ValueError("Select an attraction or a restaurant, not both")
        return self

# ===== TIMELINE SCHEMAS =====

class TimelineEntryRead(BaseModel):
    id: str
    type: Literal["flight", "hotel_checkin", "activity", "restaurant"]
    start_time: str = Field(serialization_alias="startTime")
    end_time: str = Field(serialization_alias="endTime")
    title: str
    subtitle: Optional[str] = None
    travel_time_from_previous: Optional[int] = Field(default=None, serialization_alias="travelTimeFromPrevious", ge=0)
    data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class TimelineResponse(BaseModel):
    version_id: UUID
    date: date
    entries: List[TimelineEntryRead]
    warnings: List[str] = Field(default_factory=list)

# ===== SUGGESTION SCHEMAS =====

class SuggestionRead(BaseModel):
    id: UUID
    name: str
    type: Literal["attraction", "restaurant"]
    latitude: float
    longitude: float
    distance_km: float
    travel_time_minutes: int
    travel_time_text: Optional[str] = None
    origin_name: str
    is_open: bool
    description: str = ""
    image_url: Optional[str] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    category: Optional[str] = None
    cuisine_type: Optional[str] = None
    price_level: Optional[int] = None
    maps_link: str
    directions_link: str


class SuggestionsResponse(BaseModel):
    block_id: UUID
    origin_name: Optional[str] = None
    suggestions: List[SuggestionRead]

# ===== TRAVEL TIME SCHEMAS =====

TravelMode = Literal["driving", "walking", "transit", "bicycling"]


class TravelTimeRequest(BaseModel):
    # Coordinates are checked by the route so malformed ones get a 400
    origin: Optional[Dict[str, Any]] = None
    destination: Optional[Dict[str, Any]] = None
    mode: TravelMode = "driving"


class TravelTimeResponse(BaseModel):
    distance_meters: int = Field(serialization_alias="distanceMeters")
    distance_text: str = Field(serialization_alias="distanceText")
    duration_seconds: int = Field(serialization_alias="durationSeconds")
    duration_text: str = Field(serialization_alias="durationText")
    duration_minutes: int = Field(serialization_alias="durationMinutes")
    mode: TravelMode
