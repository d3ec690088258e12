"""
Database mappings of the workflow tables read by the stage-time module
Uses the shared Base (core.db). The workflow engine owns these tables;
this module reads them and appends chronology rows on stage changes.
"""
from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Project(Base):
    """A work item moving through a project type's kanban stages"""
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_type_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_status: Mapped[str] = mapped_column(String(200), nullable=False, default="No Latest Action")
    due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completion_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_benched: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    chronology: Mapped[list["ProjectChronology"]] = relationship(
        "ProjectChronology", back_populates="project", order_by="ProjectChronology.timestamp.desc()"
    )


class ProjectChronology(Base):
    """Append-only log of stage transitions"""
    __tablename__ = "project_chronology"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    from_status: Mapped[str | None] = mapped_column(String(200), nullable=True)
    to_status: Mapped[str] = mapped_column(String(200), nullable=False)
    change_reason: Mapped[str | None] = mapped_column(String(200), nullable=True)
    timestamp: Mapped[datetime | None] = mapped_column(DateTime, default=datetime.utcnow)
    # Wall-clock minutes in the previous stage
    time_in_previous_stage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Business minutes in the previous stage (the column name says hours; the unit is minutes)
    business_hours_in_previous_stage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    project: Mapped["Project"] = relationship("Project", back_populates="chronology")


class KanbanStage(Base):
    """Stage configuration per project type; limits are business hours"""
    __tablename__ = "kanban_stages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_type_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_instance_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_total_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    can_be_final_stage: Mapped[bool] = mapped_column(Boolean, default=False)
