"""Business layer for stage timing"""
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.db import SessionLocal
from .calculator import BusinessCalendar, get_calendar
from .classifier import classify
from .clock import FixedClock, resolve_clock
from .constants import SlaState, same_stage
from .exceptions import StageTimingError
from .metrics import summarize_workload
from .models import Project, ProjectChronology
from .repository import StageTimingRepository
from .schemas import SLAStatus, StageThresholds, WorkloadSummary
from .stage_clock import stage_deadline

logger = logging.getLogger("stage_sla.service")


def _thresholds_for(stages: Dict[str, StageThresholds], stage: str) -> StageThresholds:
    for name, thresholds in stages.items():
        if same_stage(name, stage):
            return thresholds
    return StageThresholds()


class StageTimingService:
    def __init__(
        self,
        db: Session = None,
        clock: Optional[Callable[[], datetime]] = None,
        calendar: Optional[BusinessCalendar] = None,
    ):
        self.db = db or SessionLocal()
        self.repo = StageTimingRepository(self.db)
        self.clock = resolve_clock(clock)
        self.calendar = calendar or get_calendar()

    def _thresholds(self, project: Project) -> StageThresholds:
        stages = self.repo.get_stage_thresholds(project.project_type_id)
        return _thresholds_for(stages, project.current_status)

    def project_sla(self, project_id: str) -> Optional[SLAStatus]:
        project = self.repo.get_project(project_id)
        if not project:
            return None
        now = self.clock()
        try:
            return classify(
                self.repo.build_context(project),
                self._thresholds(project),
                clock=FixedClock(now),
                calendar=self.calendar,
            )
        except (StageTimingError, ValidationError) as e:
            logger.error(f"Error computing SLA for project {project_id}: {e}")
            return SLAStatus(state=SlaState.ON_TRACK, timing_available=False, evaluated_at=now)

    def project_stage_deadline(self, project_id: str) -> Optional[datetime]:
        project = self.repo.get_project(project_id)
        if not project:
            return None
        try:
            context = self.repo.build_context(project)
        except ValidationError as e:
            logger.error(f"Error reading project {project_id}: {e}")
            return None
        return stage_deadline(
            context.chronology,
            context.current_stage,
            context.created_at,
            self._thresholds(project).max_instance_time,
            calendar=self.calendar,
        )

    def change_stage(
        self,
        project_id: str,
        new_stage: str,
        change_reason: Optional[str] = None,
    ) -> Optional[ProjectChronology]:
        project = self.repo.get_project(project_id)
        if not project:
            return None
        row = self.repo.record_stage_change(
            project, new_stage, self.clock(), change_reason=change_reason, calendar=self.calendar
        )
        self.db.commit()
        return row

    def workload_summary(self, project_type_id: Optional[str] = None) -> WorkloadSummary:
        now = self.clock()
        items = []
        thresholds_by_type: Dict[str, Dict[str, StageThresholds]] = {}
        for project in self.repo.list_active_projects(project_type_id):
            try:
                context = self.repo.build_context(project)
            except ValidationError as e:
                logger.warning(f"Skipping project {project.id} with unreadable timing data: {e}")
                continue
            if project.project_type_id not in thresholds_by_type:
                thresholds_by_type[project.project_type_id] = self.repo.get_stage_thresholds(
                    project.project_type_id
                )
            items.append((context, _thresholds_for(thresholds_by_type[project.project_type_id], context.current_stage)))
        return summarize_workload(items, clock=FixedClock(now), calendar=self.calendar)
