"""
SLA classification of a work item
Rules, first match wins:
1. Suspended (benched) items: no time math
2. Completed items: frozen verdict against the due date
3. Active items past their due date: overdue
4. Current visit at or past maxInstanceTime: behind schedule
5. Otherwise: on track
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .calculator import BusinessCalendar, get_calendar
from .clock import FixedClock, resolve_clock
from .constants import SlaState, has_limit, threshold_exceeded
from .cumulative import total_stage_hours
from .schemas import SLAStatus, StageThresholds, WorkItemTimingContext
from .stage_clock import current_instance_hours, stage_deadline

logger = logging.getLogger("stage_sla.classifier")


def effective_completion_time(context: WorkItemTimingContext) -> Optional[datetime]:
    """
    When a completed item actually left the workflow

    The last chronology entry that records a real stage change wins; then the
    item's last update; then the completion instant itself.
    """
    changes = [e for e in context.chronology if e.to_stage]
    if changes:
        return max(changes, key=lambda e: e.timestamp).timestamp
    return context.last_updated_at or context.completion_instant


def classify(
    context: WorkItemTimingContext,
    thresholds: Optional[StageThresholds] = None,
    clock: Optional[Callable[[], datetime]] = None,
    calendar: Optional[BusinessCalendar] = None,
) -> SLAStatus:
    """
    Classifies a work item against its current stage's thresholds

    Args:
        context: Timing inputs for the item
        thresholds: Thresholds of the item's current stage (unlimited when omitted)
        clock: Source of "now"; read once per classification
        calendar: Business calendar

    Returns:
        A fresh SLAStatus
    """
    calendar = calendar or get_calendar()
    thresholds = thresholds or StageThresholds()
    now = resolve_clock(clock)()
    frozen = FixedClock(now)

    max_instance = thresholds.max_instance_time if has_limit(thresholds.max_instance_time) else None
    max_total = thresholds.max_total_time if has_limit(thresholds.max_total_time) else None
    limits = {"max_instance_time": max_instance, "max_total_time": max_total, "evaluated_at": now}

    # ==================== 1. Suspended ====================
    if context.is_suspended:
        return SLAStatus(state=SlaState.SUSPENDED, **limits)

    # ==================== 2. Completed ====================
    if context.is_completed:
        completed_at = effective_completion_time(context)
        late = (
            context.due_date is not None
            and completed_at is not None
            and completed_at > context.due_date
        )
        return SLAStatus(
            state=SlaState.OVERDUE if late else SlaState.ON_TRACK,
            is_overdue=late,
            **limits,
        )

    # ==================== Active ====================
    instance = current_instance_hours(
        context.chronology, context.current_stage, context.created_at,
        clock=frozen, calendar=calendar,
    )
    cumulative = total_stage_hours(
        context.chronology, context.current_stage, context.created_at,
        current_stage=context.current_stage, clock=frozen, calendar=calendar,
    )
    deadline = stage_deadline(
        context.chronology, context.current_stage, context.created_at,
        max_instance, calendar=calendar,
    )

    remaining = None
    if max_instance is not None and instance is not None:
        remaining = round(max_instance - instance, calendar.round_digits)

    common = dict(
        instance_hours=instance,
        cumulative_hours=cumulative,
        total_time_exceeded=threshold_exceeded(cumulative, max_total),
        stage_deadline=deadline,
        timing_available=instance is not None,
        **limits,
    )

    if instance is None:
        logger.warning(f"Timing unavailable for item in stage '{context.current_stage}'")

    # ==================== 3. Past due date ====================
    if context.due_date is not None and now > context.due_date:
        late_hours = calendar.business_hours(context.due_date, now)
        return SLAStatus(
            state=SlaState.OVERDUE,
            is_overdue=True,
            remaining_or_overdue_hours=round(0.0 - late_hours, calendar.round_digits),
            **common,
        )

    # ==================== 4. Behind schedule ====================
    if threshold_exceeded(instance, max_instance):
        return SLAStatus(
            state=SlaState.BEHIND_SCHEDULE,
            is_overdue=True,
            remaining_or_overdue_hours=remaining,
            **common,
        )

    # ==================== 5. On track ====================
    return SLAStatus(
        state=SlaState.ON_TRACK,
        remaining_or_overdue_hours=remaining,
        **common,
    )
