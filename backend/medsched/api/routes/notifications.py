from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from medsched.api.deps import get_current_user, get_db
from medsched.models.notification import Notification
from medsched.models.user import User
from medsched.schemas.notification import NotificationOut

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
def list_my_notifications(
    unread_only: bool = Query(default=False),
    schedule_entry_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    """Schedule notices for the signed-in user, newest first."""
    stmt = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    if schedule_entry_id:
        stmt = stmt.where(Notification.schedule_entry_id == schedule_entry_id)
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id).limit(limit)
    return list(db.execute(stmt).scalars())


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_as_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationOut:
    record = db.get(Notification, notification_id)
    # Another user's notice is reported as missing rather than forbidden.
    if record is None or record.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if not record.is_read:
        record.is_read = True
        db.commit()
        db.refresh(record)
    return record
