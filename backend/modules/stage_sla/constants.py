"""Constants and helpers shared by the stage-time calculations"""

import enum
from typing import Optional


class SlaState(str, enum.Enum):
    """SLA classification of a work item"""
    ON_TRACK = "on_track"
    BEHIND_SCHEDULE = "behind_schedule"
    OVERDUE = "overdue"
    SUSPENDED = "suspended"


def normalize_stage(stage: Optional[str]) -> str:
    """
    Normalizes a stage name for consistent comparison.

    Examples:
        "In Review" -> "in review"
        "  Awaiting  client " -> "awaiting client"
    """
    if not stage:
        return ""
    return " ".join(stage.split()).casefold()


def same_stage(a: Optional[str], b: Optional[str]) -> bool:
    """True when both names refer to the same (non-empty) stage"""
    na = normalize_stage(a)
    return bool(na) and na == normalize_stage(b)


def has_limit(limit: Optional[float]) -> bool:
    """A limit of None or 0 means unlimited"""
    return limit is not None and limit > 0


def threshold_exceeded(elapsed_hours: Optional[float], limit: Optional[float]) -> bool:
    """
    Single predicate for every "has this used up its allotted time" check.

    Inclusive: reaching the limit exactly counts as exceeded.
    """
    if elapsed_hours is None or not has_limit(limit):
        return False
    return elapsed_hours >= limit
