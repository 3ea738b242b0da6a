"""Plan version ledger: numbering and linear history navigation"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence, TypeVar

V = TypeVar("V")


class Direction(str, Enum):
    PREV = "prev"
    NEXT = "next"


def next_version_number(existing_numbers: Iterable[Optional[int]]) -> int:
    """previous max + 1, or 1 for a trip without versions"""
    numbers = [n for n in existing_numbers if n is not None]
    return max(numbers) + 1 if numbers else 1


def navigate(current: Optional[V], versions: Sequence[V], direction) -> Optional[V]:
    """
    Step one version back or forward in a trip's history.

    Returns None when current is None or not part of versions. At either end
    of the history the current version comes back unchanged, so repeated
    clicks at a boundary are no-ops.
    """
    if current is None:
        return None

    ordered = sorted(versions, key=lambda v: v.version_number)
    ids = [v.id for v in ordered]
    if current.id not in ids:
        return None

    step = -1 if Direction(direction) == Direction.PREV else 1
    target = ids.index(current.id) + step
    if 0 <= target < len(ordered):
        return ordered[target]
    return current


def generated_plan_data(summary: str, source: str = "ai_generated_itinerary") -> Dict[str, Any]:
    return {
        "type": source,
        "summary": summary,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
