"""
Stage-time metrics for boards and dashboards
- Stage timer: current visit against maxInstanceTime
- Workload summary: on track / behind schedule / overdue / suspended / late counts
- Business-day counting between two dates
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional, Tuple

from .calculator import BusinessCalendar, InstantLike, get_calendar, to_instant
from .classifier import classify
from .clock import FixedClock, resolve_clock
from .constants import SlaState, has_limit, threshold_exceeded
from .schemas import StageThresholds, StageTimer, WorkItemTimingContext, WorkloadSummary
from .stage_clock import current_instance_hours

logger = logging.getLogger("stage_sla.metrics")


def _as_date(value, calendar: BusinessCalendar) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_instant(value, calendar.tz).astimezone(calendar.tz).date()


def count_business_days(
    start: InstantLike,
    end: InstantLike,
    calendar: Optional[BusinessCalendar] = None,
) -> int:
    """
    Number of business days from start's day to end's day, both inclusive

    Args:
        start: First day (date or instant)
        end: Last day (date or instant)

    Returns:
        Count of non-weekend days; 0 when end is before start
    """
    calendar = calendar or get_calendar()
    current = _as_date(start, calendar)
    last = _as_date(end, calendar)

    count = 0
    while current <= last:
        if current.weekday() not in calendar.weekend_days:
            count += 1
        current += timedelta(days=1)
    return count


def stage_timer(
    context: WorkItemTimingContext,
    thresholds: Optional[StageThresholds] = None,
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> StageTimer:
    """Current visit against the stage limit, for list columns"""
    thresholds = thresholds or StageThresholds()
    current = current_instance_hours(
        context.chronology, context.current_stage, context.created_at,
        clock=clock, calendar=calendar,
    )

    if not has_limit(thresholds.max_instance_time):
        return StageTimer(
            has_limit=False, remaining_hours=0.0, is_overdue=False,
            max_hours=0.0, current_hours=current,
        )

    max_hours = thresholds.max_instance_time
    remaining = None
    if current is not None:
        remaining = round(max_hours - current, (calendar or get_calendar()).round_digits)
    return StageTimer(
        has_limit=True,
        remaining_hours=remaining,
        is_overdue=threshold_exceeded(current, max_hours),
        max_hours=max_hours,
        current_hours=current,
    )


def summarize_workload(
    items: Iterable[Tuple[WorkItemTimingContext, Optional[StageThresholds]]],
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> WorkloadSummary:
    """
    Counts SLA states over a set of work items

    "late" counts active, non-suspended items whose due date has passed,
    independently of the state precedence.

    Args:
        items: (context, thresholds of its current stage) pairs

    Returns:
        WorkloadSummary evaluated at a single instant
    """
    now = resolve_clock(clock)()
    frozen = FixedClock(now)

    stats = {
        "total": 0,
        SlaState.ON_TRACK.value: 0,
        SlaState.BEHIND_SCHEDULE.value: 0,
        SlaState.OVERDUE.value: 0,
        SlaState.SUSPENDED.value: 0,
        "late": 0,
        "timing_unavailable": 0,
    }

    for context, thresholds in items:
        status = classify(context, thresholds, clock=frozen, calendar=calendar)
        stats["total"] += 1
        stats[status.state.value] += 1
        if not status.timing_available:
            stats["timing_unavailable"] += 1
        if (
            context.due_date is not None
            and now > context.due_date
            and not context.is_suspended
            and not context.is_completed
        ):
            stats["late"] += 1

    logger.debug(
        f"Workload summary: {stats['total']} items, "
        f"{stats['behind_schedule']} behind schedule, {stats['late']} late"
    )
    return WorkloadSummary(evaluated_at=now, **stats)
