from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from medsched.api.deps import get_current_user, get_db, require_schedule_editor
from medsched.models.schedule import ActivityKind
from medsched.models.user import User
from medsched.schemas.schedule import (
    BatchValidationOutcome,
    ScheduleEntryIn,
    ScheduleEntryOut,
    ScheduleImportRequest,
    ValidationOutcome,
)
from medsched.services.audit import log_activity, log_schedule_activity
from medsched.services.notifications import notify_schedule_assigned
from medsched.services.repository import ScheduleRepository
from medsched.services.scheduling import MutationContext, ScheduleMutationService

router = APIRouter()


def _service(db: Session, current_user: User) -> ScheduleMutationService:
    return ScheduleMutationService(db, MutationContext(actor_id=current_user.id))


@router.get("/{kind}", response_model=list[ScheduleEntryOut])
def list_schedule_entries(
    kind: ActivityKind,
    course_code: str | None = Query(default=None, max_length=50),
    on: date | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ScheduleEntryOut]:
    entries = ScheduleRepository(db).list_entries(kind, course_code=course_code, day=on)
    return [ScheduleEntryOut.model_validate(entry) for entry in entries]


@router.post("/{kind}", response_model=ScheduleEntryOut, status_code=status.HTTP_201_CREATED)
def create_schedule_entry(
    kind: ActivityKind,
    payload: ScheduleEntryIn,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> ScheduleEntryOut:
    result = _service(db, current_user).create(kind, payload)
    log_schedule_activity(db, user=current_user, action="schedule.create", entry=result.entry)
    notify_schedule_assigned(db, result, actor=current_user, action="created")
    db.commit()
    db.refresh(result.entry)
    return ScheduleEntryOut.model_validate(result.entry)


@router.post("/{kind}/validate", response_model=ValidationOutcome)
def validate_schedule_entry(
    kind: ActivityKind,
    payload: ScheduleEntryIn,
    ignore_id: str | None = Query(default=None),
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> ValidationOutcome:
    return _service(db, current_user).validate(kind, payload, ignore_id=ignore_id)


@router.post("/{kind}/import", response_model=list[ScheduleEntryOut], status_code=status.HTTP_201_CREATED)
def import_schedule_entries(
    kind: ActivityKind,
    payload: ScheduleImportRequest,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> list[ScheduleEntryOut]:
    results = _service(db, current_user).import_batch(kind, payload.course_code, payload.rows)
    log_activity(
        db,
        user=current_user,
        action="schedule.import",
        entity_type="schedule_entry",
        activity_kind=kind.value,
        details={"course_code": payload.course_code, "count": len(results)},
    )
    for result in results:
        notify_schedule_assigned(db, result, actor=current_user, action="created")
    db.commit()
    return [ScheduleEntryOut.model_validate(result.entry) for result in results]


@router.post("/{kind}/import/validate", response_model=BatchValidationOutcome)
def preview_schedule_import(
    kind: ActivityKind,
    payload: ScheduleImportRequest,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> BatchValidationOutcome:
    return _service(db, current_user).validate_batch(kind, payload.course_code, payload.rows)


@router.put("/{kind}/{entry_id}", response_model=ScheduleEntryOut)
def update_schedule_entry(
    kind: ActivityKind,
    entry_id: str,
    payload: ScheduleEntryIn,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> ScheduleEntryOut:
    result = _service(db, current_user).update(kind, entry_id, payload)
    log_schedule_activity(db, user=current_user, action="schedule.update", entry=result.entry)
    notify_schedule_assigned(db, result, actor=current_user, action="updated")
    db.commit()
    db.refresh(result.entry)
    return ScheduleEntryOut.model_validate(result.entry)


@router.delete("/{kind}/{entry_id}")
def delete_schedule_entry(
    kind: ActivityKind,
    entry_id: str,
    current_user: User = Depends(require_schedule_editor),
    db: Session = Depends(get_db),
) -> dict:
    entry = _service(db, current_user).delete(kind, entry_id)
    log_schedule_activity(db, user=current_user, action="schedule.delete", entry=entry)
    db.commit()
    return {"success": True}
