import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import JSON, Date, DateTime, Enum as SAEnum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from medsched.db.base import Base


class ActivityKind(str, Enum):
    large_lecture = "large_lecture"
    pbl = "pbl"
    practicum = "practicum"
    journal_reading = "journal_reading"
    special_agenda = "special_agenda"
    plenary_seminar = "plenary_seminar"


class CohortType(str, Enum):
    large_group = "large_group"
    large_group_intersession = "large_group_intersession"
    small_group = "small_group"
    small_group_intersession = "small_group_intersession"


class ScheduleEntry(Base):
    __tablename__ = "schedule_entries"
    __table_args__ = (
        Index("ix_schedule_entries_date_kind", "date", "kind"),
        Index("ix_schedule_entries_room_date", "room_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind: Mapped[ActivityKind] = mapped_column(SAEnum(ActivityKind, name="activity_kind"), nullable=False)
    course_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)
    session_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pbl_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    room_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    instructor_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    coordinator_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    cohort_type: Mapped[CohortType | None] = mapped_column(SAEnum(CohortType, name="cohort_type"), nullable=True)
    cohort_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    topic: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
    deleted_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
