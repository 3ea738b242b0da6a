from functools import lru_cache
from pathlib import Path
from typing import Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DB_URL: str = "postgresql://postgres:password@db:5432/tripplanner"
    DB_ECHO: bool = False  # Set to True for SQL query logging in development

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Time arithmetic
    DEFAULT_TIME: str = "09:00"  # fallback for any unparseable time
    FLIGHT_ARRIVAL_BUFFER_MINUTES: int = 90  # customs, baggage, transfer
    HOTEL_SETTLE_IN_MINUTES: int = 30
    HOTEL_CHECKIN_TIME: str = "15:00"
    HOTEL_CHECKIN_DURATION_MINUTES: int = 30

    # Durations
    RESTAURANT_DEFAULT_DURATION: int = 90
    ACTIVITY_DEFAULT_DURATION: int = 120

    # Travel-time estimate
    AVERAGE_TRAVEL_SPEED_KMH: float = 40.0

    # Itinerary validation thresholds
    DISTRIBUTION_MIN_ATTRACTIONS: int = 3
    DISTRIBUTION_MATERIAL_RATIO: float = 1.0  # available attractions >= days * ratio
    DISTRIBUTION_MIN_ACTIVE_DAY_RATIO: float = 0.5  # active days below days * ratio is poor

    # External collaborators
    GOOGLE_MAPS_API_KEY: str = ""
    TRAVEL_TIME_TIMEOUT_SECONDS: float = 5.0
    TRAVEL_TIME_MAX_CONCURRENT: int = 10
    GEMINI_API_KEY: str = ""
    PROPOSER_MODEL: str = "gemini-2.0-flash"

    # Rate Limiting
    ENABLE_RATE_LIMITING: bool = True
    RATE_LIMIT_GENERATE: str = "5/minute"
    RATE_LIMIT_READ: str = "60/minute"
    RATE_LIMIT_UPDATE: str = "30/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "app.log"

    # CORS
    ALLOWED_ORIGINS: Union[list, str] = ["http://localhost:3000", "http://localhost:3001"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator('DISTRIBUTION_MATERIAL_RATIO', 'DISTRIBUTION_MIN_ACTIVE_DAY_RATIO')
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if v < 0:
            raise ValueError('Ratios must be non-negative')
        return v

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parents[3] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings instance"""
    return Settings()
