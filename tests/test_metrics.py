"""Tests for board and dashboard metrics."""

from datetime import date, datetime, timezone

from modules.stage_sla.clock import FixedClock
from modules.stage_sla.metrics import count_business_days, stage_timer, summarize_workload
from modules.stage_sla.schemas import StageThresholds, WorkItemTimingContext


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def context(**kwargs):
    data = {"created_at": utc(2024, 1, 1, 9, 0), "current_stage": "Bookkeeping"}
    data.update(kwargs)
    return WorkItemTimingContext(**data)


class TestCountBusinessDays:
    """Tests for count_business_days."""

    def test_full_week(self):
        assert count_business_days(date(2024, 1, 1), date(2024, 1, 7)) == 5

    def test_same_day(self):
        assert count_business_days(date(2024, 1, 3), date(2024, 1, 3)) == 1
        assert count_business_days(date(2024, 1, 6), date(2024, 1, 6)) == 0

    def test_across_weekend_with_instants(self):
        assert count_business_days(utc(2024, 1, 5, 18, 0), "2024-01-08T08:00:00Z") == 2

    def test_end_before_start(self):
        assert count_business_days(date(2024, 1, 8), date(2024, 1, 1)) == 0


class TestStageTimer:
    """Tests for stage_timer."""

    def test_without_limit(self, clock):
        timer = stage_timer(context(), clock=clock)
        assert not timer.has_limit
        assert timer.max_hours == 0.0
        assert timer.remaining_hours == 0.0
        assert timer.current_hours == 48.0

    def test_within_limit(self):
        clock = FixedClock(utc(2024, 1, 1, 15, 0))
        timer = stage_timer(context(), StageThresholds(max_instance_time=8), clock=clock)
        assert timer.has_limit
        assert timer.current_hours == 6.0
        assert timer.remaining_hours == 2.0
        assert not timer.is_overdue

    def test_past_limit(self, clock):
        timer = stage_timer(context(), StageThresholds(max_instance_time=40), clock=clock)
        assert timer.remaining_hours == -8.0
        assert timer.is_overdue

    def test_unknown_current_time_leaves_remaining_unknown(self, clock):
        ctx = WorkItemTimingContext.model_construct(
            created_at="not a date",
            current_stage="Bookkeeping",
            chronology=[],
        )
        timer = stage_timer(ctx, StageThresholds(max_instance_time=8), clock=clock)
        assert timer.has_limit
        assert timer.current_hours is None
        assert timer.remaining_hours is None
        assert not timer.is_overdue


class TestSummarizeWorkload:
    """Tests for summarize_workload."""

    def test_counts_each_state(self, clock):
        limits = StageThresholds(max_instance_time=40)
        items = [
            (context(), limits),                                            # behind schedule
            (context(created_at=utc(2024, 1, 3, 8, 0)), limits),            # on track
            (context(due_date=utc(2024, 1, 2, 17, 0)), None),               # overdue, late
            (context(is_suspended=True, due_date=utc(2024, 1, 2)), limits),  # suspended
            (context(completion_status="completed_successfully",
                     last_updated_at=utc(2024, 1, 2, 12, 0),
                     due_date=utc(2024, 1, 2, 17, 0)), limits),              # on track
        ]
        summary = summarize_workload(items, clock=clock)
        assert summary.total == 5
        assert summary.on_track == 2
        assert summary.behind_schedule == 1
        assert summary.overdue == 1
        assert summary.suspended == 1
        assert summary.late == 1
        assert summary.timing_unavailable == 0
        assert summary.evaluated_at == utc(2024, 1, 3, 9, 0)

    def test_empty(self, clock):
        summary = summarize_workload([], clock=clock)
        assert summary.total == 0
        assert summary.late == 0
