"""
Database base configuration
Imports all models to ensure they're registered with SQLModel metadata
"""

from sqlmodel import SQLModel

# Import all models so they're registered with SQLModel.metadata
from app.db.models import (
    Trip,
    TripCity,
    Flight,
    Hotel,
    Attraction,
    Restaurant,
    PlanVersion,
    TimeBlock,
)

# Export Base for use in migrations
Base = SQLModel.metadata

__all__ = [
    "Base",
    "SQLModel",
    "Trip",
    "TripCity",
    "Flight",
    "Hotel",
    "Attraction",
    "Restaurant",
    "PlanVersion",
    "TimeBlock",
]
