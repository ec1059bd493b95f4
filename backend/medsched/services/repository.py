"""SQLAlchemy-backed persistence port for the scheduling engine.

Every read the engine needs goes through :class:`ScheduleRepository`, so the
detector, validator and explainer never touch a session directly. Driver and
ORM failures surface as :class:`InfrastructureError`, which the engine never
catches.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from functools import wraps
import logging

from sqlalchemy import or_, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medsched.core.exceptions import InfrastructureError
from medsched.models.cohort import LargeGroup, LargeGroupIntersession, SmallGroup, SmallGroupIntersession
from medsched.models.course import Course
from medsched.models.room import Room
from medsched.models.schedule import ActivityKind, ScheduleEntry
from medsched.models.user import User

logger = logging.getLogger(__name__)

ADVISORY_LOCK_NAMESPACE = 7341


def _storage_guard(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.exception("Schedule storage failure in %s", method.__name__)
            raise InfrastructureError() from exc

    return wrapper


class ScheduleRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    @_storage_guard
    def get_course(self, code: str) -> Course | None:
        return self.db.execute(select(Course).where(Course.code == code)).scalar_one_or_none()

    @_storage_guard
    def get_room(self, room_id: str) -> Room | None:
        return self.db.get(Room, room_id)

    @_storage_guard
    def get_entry(self, entry_id: str) -> ScheduleEntry | None:
        entry = self.db.get(ScheduleEntry, entry_id)
        if entry is None or entry.deleted_at is not None:
            return None
        return entry

    @_storage_guard
    def users_by_ids(self, user_ids: Iterable[str]) -> dict[str, User]:
        requested = [item for item in dict.fromkeys(user_ids) if item]
        if not requested:
            return {}
        rows = self.db.execute(select(User).where(User.id.in_(requested))).scalars()
        return {row.id: row for row in rows}

    @_storage_guard
    def entries_on(
        self,
        day: date,
        kind: ActivityKind,
        *,
        semesters: set[str] | None = None,
        exclude_id: str | None = None,
    ) -> list[tuple[ScheduleEntry, str | None]]:
        """Live entries of one kind on one date, each paired with its course semester."""
        query = (
            select(ScheduleEntry, Course.semester)
            .join(Course, Course.code == ScheduleEntry.course_code, isouter=True)
            .where(
                ScheduleEntry.date == day,
                ScheduleEntry.kind == kind,
                ScheduleEntry.deleted_at.is_(None),
            )
            .order_by(ScheduleEntry.start_time, ScheduleEntry.id)
        )
        if semesters is not None:
            query = query.where(or_(Course.semester.in_(sorted(semesters)), Course.semester.is_(None)))
        if exclude_id:
            query = query.where(ScheduleEntry.id != exclude_id)
        return [(entry, semester) for entry, semester in self.db.execute(query).all()]

    @_storage_guard
    def list_entries(
        self,
        kind: ActivityKind,
        *,
        course_code: str | None = None,
        day: date | None = None,
    ) -> list[ScheduleEntry]:
        query = select(ScheduleEntry).where(
            ScheduleEntry.kind == kind,
            ScheduleEntry.deleted_at.is_(None),
        )
        if course_code:
            query = query.where(ScheduleEntry.course_code == course_code)
        if day:
            query = query.where(ScheduleEntry.date == day)
        query = query.order_by(ScheduleEntry.date, ScheduleEntry.start_time, ScheduleEntry.id)
        return list(self.db.execute(query).scalars())

    @_storage_guard
    def get_large_group(self, group_id: str) -> LargeGroup | None:
        return self.db.get(LargeGroup, group_id)

    @_storage_guard
    def large_group_members(self, semester: str) -> list[str]:
        return list(
            self.db.execute(select(LargeGroup.student_id).where(LargeGroup.semester == semester)).scalars()
        )

    @_storage_guard
    def get_small_group(self, group_id: str) -> SmallGroup | None:
        return self.db.get(SmallGroup, group_id)

    @_storage_guard
    def small_group_members(self, name: str, semester: str) -> list[str]:
        return list(
            self.db.execute(
                select(SmallGroup.student_id).where(SmallGroup.name == name, SmallGroup.semester == semester)
            ).scalars()
        )

    @_storage_guard
    def small_groups_with_students(self, semester: str, student_ids: Iterable[str]) -> list[SmallGroup]:
        requested = list(dict.fromkeys(student_ids))
        if not requested:
            return []
        return list(
            self.db.execute(
                select(SmallGroup)
                .where(SmallGroup.semester == semester, SmallGroup.student_id.in_(requested))
                .order_by(SmallGroup.name, SmallGroup.id)
            ).scalars()
        )

    @_storage_guard
    def get_large_group_intersession(self, group_id: str) -> LargeGroupIntersession | None:
        return self.db.get(LargeGroupIntersession, group_id)

    @_storage_guard
    def get_small_group_intersession(self, group_id: str) -> SmallGroupIntersession | None:
        return self.db.get(SmallGroupIntersession, group_id)

    @_storage_guard
    def all_small_groups_intersession(self) -> list[SmallGroupIntersession]:
        return list(
            self.db.execute(
                select(SmallGroupIntersession).order_by(SmallGroupIntersession.name, SmallGroupIntersession.id)
            ).scalars()
        )

    @_storage_guard
    def lock_dates(self, days: Iterable[date]) -> None:
        """Serialize mutations per date for the rest of the current transaction."""
        if self.db.get_bind().dialect.name != "postgresql":
            # SQLite takes a database-wide write lock on the first write.
            return
        for day in sorted(set(days)):
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
                {"namespace": ADVISORY_LOCK_NAMESPACE, "key": day.toordinal()},
            )

    @_storage_guard
    def add(self, entry: ScheduleEntry) -> ScheduleEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    @_storage_guard
    def flush(self) -> None:
        self.db.flush()
