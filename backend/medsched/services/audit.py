from __future__ import annotations

from sqlalchemy.orm import Session

from medsched.models.activity_log import ActivityLog
from medsched.models.schedule import ScheduleEntry
from medsched.models.user import User


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    activity_kind: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    record = ActivityLog(
        user_id=user.id if user is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        activity_kind=activity_kind,
        details=details or {},
    )
    db.add(record)
    return record


def log_schedule_activity(db: Session, *, user: User | None, action: str, entry: ScheduleEntry) -> ActivityLog:
    return log_activity(
        db,
        user=user,
        action=action,
        entity_type="schedule_entry",
        entity_id=entry.id,
        activity_kind=entry.kind.value,
        details={
            "course_code": entry.course_code,
            "date": entry.date.isoformat(),
            "start_time": entry.start_time,
            "end_time": entry.end_time,
            "room_id": entry.room_id,
        },
    )
