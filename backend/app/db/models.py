import uuid
from datetime import date, datetime, time as TimeOfDay, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID as PyUUID

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, UniqueConstraint
from sqlalchemy import Enum as SAEnum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class BlockType(str, Enum):
    MORNING = "morning"
    LUNCH = "lunch"
    AFTERNOON = "afternoon"
    DINNER = "dinner"
    EVENING = "evening"

    @property
    def is_meal(self) -> bool:
        """Meal blocks hold restaurants, every other block holds attractions"""
        return self in (BlockType.LUNCH, BlockType.DINNER)


# Chronological order of blocks within a day
BLOCK_ORDER = {block: index for index, block in enumerate(BlockType)}


# Base model with common audit fields
class BaseModel(SQLModel):
    """Base model with common audit fields"""

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
        sa_column_kwargs={"onupdate": utcnow},
    )


# Models
class Trip(BaseModel, table=True):
    __tablename__ = "trips"

    __table_args__ = (
        Index('idx_trips_user_id', 'user_id'),
        CheckConstraint('start_date <= end_date', name='check_trip_date_range'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: PyUUID = Field(nullable=False, description="Owner of this trip")
    destination: str = Field(max_length=200, description="Display name of the trip")
    start_date: date = Field(description="First day of the trip")
    end_date: date = Field(description="Last day of the trip")
    origin_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    origin_longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class TripCity(BaseModel, table=True):
    __tablename__ = "trip_cities"

    __table_args__ = (
        Index('idx_trip_cities_trip_id', 'trip_id'),
        CheckConstraint('start_date <= end_date', name='check_city_date_range'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    name: str = Field(max_length=200)
    start_date: date = Field(description="First day in this city (inclusive)")
    end_date: date = Field(description="Last day in this city (inclusive)")
    order_index: int = Field(default=0, description="Position of the city within the trip")


class Flight(BaseModel, table=True):
    __tablename__ = "flights"

    __table_args__ = (
        Index('idx_flights_trip_date', 'trip_id', 'date'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    date: date
    departure_airport: str = Field(max_length=100)
    arrival_airport: str = Field(max_length=100)
    departure_time: TimeOfDay
    arrival_time: TimeOfDay
    flight_number: Optional[str] = Field(default=None, max_length=20)
    airline: Optional[str] = Field(default=None, max_length=100)


class Hotel(BaseModel, table=True):
    __tablename__ = "hotels"

    __table_args__ = (
        Index('idx_hotels_trip_id', 'trip_id'),
        Index('idx_hotels_city_id', 'city_id'),
        CheckConstraint('check_in_date <= check_out_date', name='check_hotel_stay'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    city_id: Optional[PyUUID] = Field(default=None, foreign_key="trip_cities.id")
    name: str = Field(max_length=200)
    address: str = Field(default="", max_length=500)
    check_in_date: date
    check_out_date: date
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class Attraction(BaseModel, table=True):
    __tablename__ = "attractions"

    __table_args__ = (
        Index('idx_attractions_trip_id', 'trip_id'),
        Index('idx_attractions_city_id', 'city_id'),
        CheckConstraint('duration_minutes IS NULL OR duration_minutes > 0', name='check_positive_duration'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    city_id: Optional[PyUUID] = Field(default=None, foreign_key="trip_cities.id")
    name: str = Field(max_length=200)
    description: str = Field(default="")
    image_url: Optional[str] = Field(default=None)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    opening_time: Optional[TimeOfDay] = None
    closing_time: Optional[TimeOfDay] = None
    duration_minutes: Optional[int] = Field(default=None, description="Minutes spent on site")
    category: str = Field(default="general", max_length=50)
    is_kid_friendly: bool = Field(default=False)


class Restaurant(BaseModel, table=True):
    __tablename__ = "restaurants"

    __table_args__ = (
        Index('idx_restaurants_trip_id', 'trip_id'),
        Index('idx_restaurants_city_id', 'city_id'),
        CheckConstraint('price_level BETWEEN 1 AND 4', name='check_price_level'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    city_id: Optional[PyUUID] = Field(default=None, foreign_key="trip_cities.id")
    name: str = Field(max_length=200)
    description: str = Field(default="")
    image_url: Optional[str] = Field(default=None)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    opening_time: Optional[TimeOfDay] = None
    closing_time: Optional[TimeOfDay] = None
    cuisine_type: str = Field(default="general", max_length=50)
    price_level: int = Field(default=2, ge=1, le=4)
    is_kid_friendly: bool = Field(default=False)


class PlanVersion(BaseModel, table=True):
    """Immutable, sequentially numbered snapshot of a trip's schedule"""

    __tablename__ = "plan_versions"

    __table_args__ = (
        UniqueConstraint('trip_id', 'version_number', name='uq_plan_versions_trip_version'),
        CheckConstraint('version_number >= 1', name='check_version_number_positive'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False, index=True)
    version_number: int = Field(nullable=False, description="1-based, never reused")
    plan_data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Summary and metadata of the generation that produced this version",
    )
    created_by: PyUUID = Field(nullable=False)


class TimeBlock(BaseModel, table=True):
    __tablename__ = "time_blocks"

    __table_args__ = (
        Index('idx_time_blocks_version_date', 'plan_version_id', 'date'),
        Index('idx_time_blocks_trip_id', 'trip_id'),
        CheckConstraint(
            'selected_attraction_id IS NULL OR selected_restaurant_id IS NULL',
            name='check_single_selection',
        ),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    trip_id: PyUUID = Field(foreign_key="trips.id", nullable=False)
    city_id: Optional[PyUUID] = Field(default=None, foreign_key="trip_cities.id")
    plan_version_id: PyUUID = Field(foreign_key="plan_versions.id", nullable=False)
    date: date
    block_type: BlockType = Field(
        sa_column=Column(
            SAEnum(BlockType, name="blocktype", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
        ),
    )
    start_time: TimeOfDay = Field(description="Nominal slot start, not the computed display time")
    end_time: TimeOfDay = Field(description="Nominal slot end")
    selected_attraction_id: Optional[PyUUID] = Field(default=None, foreign_key="attractions.id")
    selected_restaurant_id: Optional[PyUUID] = Field(default=None, foreign_key="restaurants.id")
