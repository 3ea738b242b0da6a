"""
Shared fixtures: an in-memory database and a small Paris trip to plan.
"""

import uuid
from datetime import date, time
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.db.base  # noqa: F401
from app.db.models import Attraction, Flight, Hotel, Restaurant, Trip, TripCity

START = date(2026, 3, 15)
END = date(2026, 3, 17)


@pytest.fixture
def paris():
    """Unsaved records for a three-day Paris trip"""
    user_id = uuid.uuid4()
    trip = Trip(user_id=user_id, destination="Paris", start_date=START, end_date=END)
    city = TripCity(trip_id=trip.id, name="Paris", start_date=START, end_date=END)
    hotel = Hotel(
        trip_id=trip.id, city_id=city.id, name="Hotel Lutetia", address="45 Bd Raspail",
        check_in_date=START, check_out_date=END, latitude=48.8566, longitude=2.3522,
    )
    flight = Flight(
        trip_id=trip.id, date=START, departure_airport="LHR", arrival_airport="CDG",
        departure_time=time(7, 0), arrival_time=time(10, 0), flight_number="1234", airline="AF",
    )
    louvre = Attraction(
        trip_id=trip.id, city_id=city.id, name="Louvre", latitude=48.8606, longitude=2.3376,
        opening_time=time(9, 0), closing_time=time(18, 0), duration_minutes=180, category="museum",
    )
    eiffel = Attraction(
        trip_id=trip.id, city_id=city.id, name="Eiffel Tower", latitude=48.8584, longitude=2.2945,
        duration_minutes=120, category="landmark",
    )
    sacre_coeur = Attraction(
        trip_id=trip.id, city_id=city.id, name="Sacre-Coeur", latitude=48.8867, longitude=2.3431,
        opening_time=time(6, 0), closing_time=time(10, 0), category="church",
    )
    procope = Restaurant(
        trip_id=trip.id, city_id=city.id, name="Le Procope", latitude=48.8530, longitude=2.3388,
        cuisine_type="french", price_level=3,
    )
    janou = Restaurant(
        trip_id=trip.id, city_id=city.id, name="Chez Janou", latitude=48.8570, longitude=2.3650,
        cuisine_type="provencal", price_level=2,
    )
    return SimpleNamespace(
        user_id=user_id,
        trip=trip,
        city=city,
        hotel=hotel,
        flight=flight,
        louvre=louvre,
        eiffel=eiffel,
        sacre_coeur=sacre_coeur,
        procope=procope,
        janou=janou,
        attractions=[louvre, eiffel, sacre_coeur],
        restaurants=[procope, janou],
    )


def all_records(trip_data):
    return [
        trip_data.trip, trip_data.city, trip_data.hotel, trip_data.flight,
        *trip_data.attractions, *trip_data.restaurants,
    ]


@pytest_asyncio.fixture
async def db_session():
    """AsyncSession on a fresh in-memory SQLite database"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_session(db_session, paris):
    db_session.add_all(all_records(paris))
    await db_session.commit()
    return db_session
