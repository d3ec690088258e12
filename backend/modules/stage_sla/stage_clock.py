"""
Time spent in the current visit to a stage ("instance time")
- The visit starts at the most recent chronology entry into the stage
- With no such entry, the item has been in the stage since creation
- Chronology order is never trusted; entries are sorted here
"""
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from pydantic import ValidationError

from .calculator import BusinessCalendar, InstantLike, get_calendar, to_instant
from .clock import resolve_clock
from .constants import has_limit, same_stage
from .exceptions import MissingReferencePoint, StageTimingError
from .schemas import ChronologyEntry, coerce_chronology

logger = logging.getLogger("stage_sla.stage_clock")


def sort_chronology(entries: Iterable[ChronologyEntry], descending: bool = True) -> List[ChronologyEntry]:
    """Sorts entries by timestamp (most recent first by default)"""
    return sorted(entries, key=lambda e: e.timestamp, reverse=descending)


def instance_start(
    chronology: Optional[Iterable[Any]],
    target_stage: str,
    fallback_created_at: Optional[InstantLike] = None,
) -> Optional[datetime]:
    """
    Instant at which the current visit to `target_stage` began

    Args:
        chronology: Stage transitions of the item, in any order
        target_stage: Stage being timed
        fallback_created_at: Creation instant of the item

    Returns:
        Start of the visit in UTC, or None when there is no reference point

    Raises:
        InvalidInput / ValidationError: on malformed timestamps
    """
    for entry in sort_chronology(coerce_chronology(chronology)):
        if same_stage(entry.to_stage, target_stage):
            return entry.timestamp

    if fallback_created_at is None or fallback_created_at == "":
        return None
    return to_instant(fallback_created_at)


def current_instance_hours(
    chronology: Optional[Iterable[Any]],
    target_stage: str,
    fallback_created_at: Optional[InstantLike] = None,
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> Optional[float]:
    """
    Business hours since the item last entered `target_stage`

    Args:
        chronology: Stage transitions of the item, in any order
        target_stage: Stage being timed
        fallback_created_at: Creation instant, used when no entry into the stage exists
        clock: Source of "now" (system clock when omitted)
        calendar: Business calendar (shared calendar when omitted)

    Returns:
        Hours in stage; 0.0 when there is no reference point yet;
        None when the data could not be read (timing unavailable)
    """
    calendar = calendar or get_calendar()
    now = resolve_clock(clock)

    try:
        start = instance_start(chronology, target_stage, fallback_created_at)
        if start is None:
            raise MissingReferencePoint(target_stage)
        return calendar.business_hours(start, now())
    except MissingReferencePoint as e:
        logger.debug(f"{e}; reporting 0 hours")
        return 0.0
    except (StageTimingError, ValidationError) as e:
        logger.warning(f"Could not compute time in stage '{target_stage}': {e}")
        return None


def stage_deadline(
    chronology: Optional[Iterable[Any]],
    target_stage: str,
    fallback_created_at: Optional[InstantLike],
    max_instance_time: Optional[float],
    calendar: Optional[BusinessCalendar] = None,
) -> Optional[datetime]:
    """
    Instant at which the current visit uses up its allotted business hours

    Returns None when the stage has no limit, when there is no reference
    point, or when the chronology could not be read.
    """
    if not has_limit(max_instance_time):
        return None
    calendar = calendar or get_calendar()

    try:
        start = instance_start(chronology, target_stage, fallback_created_at)
        if start is None:
            return None
        return calendar.add_business_hours(start, max_instance_time)
    except (StageTimingError, ValidationError) as e:
        logger.warning(f"Could not project deadline for stage '{target_stage}': {e}")
        return None
