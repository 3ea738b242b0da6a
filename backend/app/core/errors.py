"""
Exception hierarchy for the scheduling engine and its orchestration layer.

Soft failures (unparseable times, missing coordinates, unresolved selections)
never raise; they are defaulted and logged where they happen.
"""

from typing import Optional


class PlannerError(Exception):
    """Base class for all planner errors"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProposalParseError(PlannerError):
    """The proposer's payload is not a usable itinerary document"""

    status_code = 422


class ItineraryValidationError(PlannerError):
    """A proposed itinerary broke one of the structural rules"""

    status_code = 422


class BlockSelectionError(PlannerError):
    """A selection kind does not fit the block it was applied to"""

    status_code = 422


class VersionConflictError(PlannerError):
    """Two writers claimed the same plan version number. Safe to retry."""

    status_code = 409
    retryable = True

    def __init__(self, trip_id, version_number: Optional[int] = None):
        detail = f"Plan version {version_number} for trip {trip_id} was created concurrently"
        super().__init__(f"{detail}; retry the request")
        self.trip_id = trip_id
        self.version_number = version_number


class ProposerUnavailableError(PlannerError):
    """The generative proposer is not configured or did not answer"""

    status_code = 503
