"""
Shared request dependencies: caller identity, rate limiter and external clients
"""

import logging
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.proposer import GeminiProposer, ItineraryProposer
from app.core.settings import get_settings
from app.core.travel_time import TravelTimeClient

logger = logging.getLogger(__name__)

settings = get_settings()

limiter = Limiter(key_func=get_remote_address, enabled=settings.ENABLE_RATE_LIMITING)


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> UUID:
    """Caller identity as established by the upstream auth layer"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        logger.warning(f"Rejected malformed X-User-Id header: {x_user_id!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )


@lru_cache
def get_proposer() -> ItineraryProposer:
    return GeminiProposer(settings)


@lru_cache
def get_travel_time_client() -> TravelTimeClient:
    return TravelTimeClient(settings)
