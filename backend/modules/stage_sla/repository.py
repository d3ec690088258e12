"""Repository for the workflow data read by the stage-time module"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload

from .calculator import BusinessCalendar, to_instant
from .cumulative import closing_visit_minutes
from .exceptions import StageTimingError
from .models import KanbanStage, Project, ProjectChronology
from .schemas import ChronologyEntry, StageThresholds, WorkItemTimingContext

logger = logging.getLogger("stage_sla.repository")


def _naive_utc(instant: datetime) -> datetime:
    """Columns store naive UTC"""
    return to_instant(instant).astimezone(timezone.utc).replace(tzinfo=None)


class StageTimingRepository:
    """Reads timing inputs and appends stage transitions"""

    def __init__(self, db: Session):
        self.db = db

    # ========== Projects ==========

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.db.query(Project).options(
            selectinload(Project.chronology)
        ).filter(Project.id == project_id).first()

    def list_active_projects(self, project_type_id: Optional[str] = None) -> List[Project]:
        """Projects without a completion status"""
        query = self.db.query(Project).options(
            selectinload(Project.chronology)
        ).filter(Project.completion_status.is_(None))
        if project_type_id:
            query = query.filter(Project.project_type_id == project_type_id)
        return query.all()

    # ========== Stages ==========

    def get_stage_thresholds(self, project_type_id: str) -> Dict[str, StageThresholds]:
        """Thresholds keyed by stage name for one project type"""
        stages = self.db.query(KanbanStage).filter(
            KanbanStage.project_type_id == project_type_id
        ).order_by(KanbanStage.order).all()
        return {
            s.name: StageThresholds(
                max_instance_time=s.max_instance_time,
                max_total_time=s.max_total_time,
            )
            for s in stages
        }

    # ========== Timing Context ==========

    @staticmethod
    def to_entry(row: ProjectChronology) -> ChronologyEntry:
        return ChronologyEntry(
            from_stage=row.from_status,
            to_stage=row.to_status,
            timestamp=row.timestamp,
            business_minutes_in_previous_stage=row.business_hours_in_previous_stage,
        )

    def build_context(self, project: Project) -> WorkItemTimingContext:
        """Builds the timing context of a project (rows without timestamp are skipped)"""
        return WorkItemTimingContext(
            created_at=project.created_at,
            current_stage=project.current_status,
            chronology=[self.to_entry(r) for r in project.chronology if r.timestamp is not None],
            due_date=project.due_date,
            is_suspended=bool(project.is_benched),
            completion_status=project.completion_status,
            last_updated_at=project.updated_at,
        )

    # ========== Stage Changes ==========

    def record_stage_change(
        self,
        project: Project,
        new_stage: str,
        now: datetime,
        change_reason: Optional[str] = None,
        calendar: Optional[BusinessCalendar] = None,
    ) -> ProjectChronology:
        """
        Appends a transition row and moves the project to `new_stage`

        The closed visit's business minutes are recorded on the new row.
        When the existing chronology cannot be read the duration is stored
        as unknown (NULL) rather than 0.
        """
        history = [r for r in project.chronology if r.timestamp is not None]
        last = max(history, key=lambda r: r.timestamp) if history else None
        visit_start = last.timestamp if last else project.created_at

        business_minutes: Optional[int]
        try:
            business_minutes = closing_visit_minutes(
                [self.to_entry(r) for r in history],
                project.created_at,
                clock=lambda: to_instant(now),
                calendar=calendar,
            )
        except (StageTimingError, ValidationError) as e:
            logger.warning(f"Business time of previous stage unknown for project {project.id}: {e}")
            business_minutes = None

        wall_minutes = 0
        if visit_start is not None:
            elapsed = to_instant(now) - to_instant(visit_start)
            wall_minutes = max(0, int(elapsed.total_seconds() // 60))

        row = ProjectChronology(
            from_status=project.current_status,
            to_status=new_stage,
            change_reason=change_reason,
            timestamp=_naive_utc(now),
            time_in_previous_stage=wall_minutes,
            business_hours_in_previous_stage=business_minutes,
        )
        project.chronology.append(row)
        project.current_status = new_stage
        project.updated_at = _naive_utc(now)
        self.db.flush()

        logger.info(
            f"Project {project.id}: '{row.from_status}' -> '{new_stage}' "
            f"({business_minutes} business minutes in previous stage)"
        )
        return row
