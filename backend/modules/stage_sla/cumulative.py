"""
Cumulative time in a stage across every visit
- Closed visits: the duration recorded when the item left the stage (minutes)
- Open visit: current instance time, when the item is still in the stage
"""
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from .calculator import BusinessCalendar, InstantLike, get_calendar, to_instant
from .clock import resolve_clock
from .config import settings
from .constants import same_stage
from .schemas import coerce_chronology
from .stage_clock import current_instance_hours, sort_chronology

logger = logging.getLogger("stage_sla.cumulative")


def total_stage_hours(
    chronology: Optional[Iterable[Any]],
    target_stage: str,
    fallback_created_at: Optional[InstantLike] = None,
    current_stage: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> Optional[float]:
    """
    Business hours spent in `target_stage` over all visits

    Closed visits are taken from the recorded per-visit duration and are not
    re-derived from timestamps.

    Args:
        chronology: Stage transitions of the item, in any order
        target_stage: Stage being totalled
        fallback_created_at: Creation instant of the item
        current_stage: Stage the item is in now
        clock: Source of "now"
        calendar: Business calendar

    Returns:
        Total hours rounded once, or None when the data could not be read
    """
    calendar = calendar or get_calendar()

    try:
        entries = coerce_chronology(chronology)
    except ValidationError as e:
        logger.warning(f"Could not read chronology for stage '{target_stage}': {e}")
        return None

    total = 0.0

    if same_stage(current_stage, target_stage):
        open_visit = current_instance_hours(
            entries, target_stage, fallback_created_at, clock=clock, calendar=calendar
        )
        if open_visit is None:
            return None
        total += open_visit

    for entry in entries:
        if not same_stage(entry.from_stage, target_stage):
            continue
        closed_visit = entry.business_hours_in_previous_stage
        if closed_visit:
            total += closed_visit

    return round(total, calendar.round_digits)


def closing_visit_minutes(
    chronology: Optional[Iterable[Any]],
    fallback_created_at: Optional[InstantLike] = None,
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> int:
    """
    Business minutes of the visit being closed by a stage change

    The visit runs from the most recent chronology entry (or creation, for an
    item that never moved) until now. This is the value recorded as
    business_hours_in_previous_stage on the new transition.

    Raises:
        InvalidInput / ValidationError: on malformed timestamps
    """
    calendar = calendar or get_calendar()
    now = resolve_clock(clock)()

    entries = sort_chronology(coerce_chronology(chronology))
    if entries:
        start = entries[0].timestamp
    elif fallback_created_at is not None and fallback_created_at != "":
        start = to_instant(fallback_created_at)
    else:
        return 0

    hours = calendar.business_hours(start, now)
    return int(round(hours * settings.STORED_UNITS_PER_HOUR))
