"""
Stage-time / SLA module
- Business time: every hour Monday to Friday, weekends count zero
- Instance time: since the most recent entry into the current stage
- Cumulative time: recorded closed visits + the open visit
- Threshold checks are inclusive (reaching the limit counts as exceeded)
"""
from .calculator import (
    BusinessCalendar,
    add_business_hours,
    business_hours,
    is_weekend,
    next_business_day,
)
from .classifier import classify
from .clock import Clock, FixedClock, SystemClock
from .constants import SlaState
from .cumulative import closing_visit_minutes, total_stage_hours
from .exceptions import InvalidInput, MissingReferencePoint, StageTimingError
from .schemas import ChronologyEntry, SLAStatus, StageThresholds, WorkItemTimingContext
from .stage_clock import current_instance_hours, instance_start, stage_deadline

__all__ = [
    "BusinessCalendar", "add_business_hours", "business_hours", "is_weekend", "next_business_day",
    "classify", "Clock", "FixedClock", "SystemClock", "SlaState",
    "closing_visit_minutes", "total_stage_hours",
    "InvalidInput", "MissingReferencePoint", "StageTimingError",
    "ChronologyEntry", "SLAStatus", "StageThresholds", "WorkItemTimingContext",
    "current_instance_hours", "instance_start", "stage_deadline",
]
__version__ = "1.0.0"
