"""
Pydantic schemas for the data the stage-time engine reads and returns
Input field names follow the workflow feed (camelCase); snake_case is also accepted
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .calculator import to_instant
from .config import settings
from .constants import SlaState
from .exceptions import InvalidInput


def _instant_or_none(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return to_instant(value)
    except InvalidInput as e:
        raise ValueError(str(e)) from e


# ==================== Chronology ====================
class ChronologyEntry(BaseModel):
    """One transition of a work item between stages"""
    model_config = ConfigDict(frozen=True)

    from_stage: Optional[str] = Field(
        None, validation_alias=AliasChoices("from_stage", "fromStatus", "fromStage", "from_status")
    )
    to_stage: Optional[str] = Field(
        None, validation_alias=AliasChoices("to_stage", "toStatus", "toStage", "to_status")
    )
    timestamp: datetime
    # Stored in minutes, recorded when the item left from_stage
    business_minutes_in_previous_stage: Optional[float] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices(
            "business_minutes_in_previous_stage",
            "businessHoursInPreviousStage",
            "business_hours_in_previous_stage",
        ),
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v):
        instant = _instant_or_none(v)
        if instant is None:
            raise ValueError("timestamp is required")
        return instant

    @property
    def business_hours_in_previous_stage(self) -> Optional[float]:
        """Recorded closed-visit duration converted to hours"""
        if self.business_minutes_in_previous_stage is None:
            return None
        return self.business_minutes_in_previous_stage / settings.STORED_UNITS_PER_HOUR


def coerce_chronology(entries: Optional[Iterable[Any]]) -> List[ChronologyEntry]:
    """
    Validates a raw chronology feed

    Entries whose timestamp is missing are skipped; entries with a malformed
    timestamp raise pydantic.ValidationError.
    """
    result: List[ChronologyEntry] = []
    for entry in entries or []:
        if isinstance(entry, ChronologyEntry):
            result.append(entry)
            continue
        if isinstance(entry, dict):
            if entry.get("timestamp") is None:
                continue
            result.append(ChronologyEntry.model_validate(entry))
        else:
            if getattr(entry, "timestamp", None) is None:
                continue
            result.append(ChronologyEntry.model_validate(entry, from_attributes=True))
    return result


# ==================== Stage Configuration ====================
class StageThresholds(BaseModel):
    """Per-stage business-hour budgets (None or 0 = unlimited)"""
    model_config = ConfigDict(frozen=True)

    max_instance_time: Optional[float] = Field(
        None, ge=0, validation_alias=AliasChoices("max_instance_time", "maxInstanceTime")
    )
    max_total_time: Optional[float] = Field(
        None, ge=0, validation_alias=AliasChoices("max_total_time", "maxTotalTime")
    )


# ==================== Work Item ====================
class WorkItemTimingContext(BaseModel):
    """Everything the engine needs to time one work item"""
    model_config = ConfigDict(frozen=True)

    created_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    current_stage: str = Field(
        ..., validation_alias=AliasChoices("current_stage", "currentStatus", "currentStage")
    )
    chronology: List[ChronologyEntry] = Field(default_factory=list)
    due_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("due_date", "dueDate")
    )
    is_suspended: bool = Field(
        False, validation_alias=AliasChoices("is_suspended", "isBenched", "isSuspended")
    )
    completion_status: Optional[str] = Field(
        None, validation_alias=AliasChoices("completion_status", "completionStatus")
    )
    completion_instant: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("completion_instant", "completedAt", "completionInstant"),
    )
    last_updated_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("last_updated_at", "updatedAt")
    )

    @field_validator("created_at", "due_date", "completion_instant", "last_updated_at", mode="before")
    @classmethod
    def validate_instants(cls, v):
        return _instant_or_none(v)

    @field_validator("chronology", mode="before")
    @classmethod
    def validate_chronology(cls, v):
        return coerce_chronology(v)

    @field_validator("is_suspended", mode="before")
    @classmethod
    def validate_suspended(cls, v):
        return bool(v)

    @property
    def is_completed(self) -> bool:
        return bool(self.completion_status) or self.completion_instant is not None


# ==================== Results ====================
class SLAStatus(BaseModel):
    """Computed SLA classification; never persisted"""
    model_config = ConfigDict(frozen=True)

    state: SlaState
    # Positive = time remaining, negative = past the limit
    remaining_or_overdue_hours: Optional[float] = None
    is_overdue: bool = False

    instance_hours: Optional[float] = None
    cumulative_hours: Optional[float] = None

    max_instance_time: Optional[float] = None
    max_total_time: Optional[float] = None
    total_time_exceeded: bool = False
    stage_deadline: Optional[datetime] = None

    # False when the stage clock could not be read (bad chronology data)
    timing_available: bool = True
    evaluated_at: datetime


class StageTimer(BaseModel):
    """Time-in-stage gauge for list columns"""
    has_limit: bool
    remaining_hours: Optional[float]
    is_overdue: bool
    max_hours: float
    current_hours: Optional[float]


class WorkloadSummary(BaseModel):
    """Counts over a set of work items, for dashboards"""
    total: int = 0
    on_track: int = 0
    behind_schedule: int = 0
    overdue: int = 0
    suspended: int = 0
    late: int = 0
    timing_unavailable: int = 0
    evaluated_at: datetime
