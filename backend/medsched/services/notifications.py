from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from medsched.core.config import get_settings
from medsched.models.notification import Notification, NotificationType
from medsched.models.user import User, UserRole
from medsched.services.activity_kinds import get_descriptor
from medsched.services.email import EmailDeliveryError, email_configured, send_email
from medsched.services.intervals import display_time
from medsched.services.scheduling import MutationResult

logger = logging.getLogger(__name__)


def _send_notification_email(recipient: User, *, title: str, message: str) -> None:
    if not recipient.email:
        return
    try:
        send_email(
            to_email=recipient.email,
            subject=f"MedSched: {title}",
            text_content=f"{title}\n\n{message}",
        )
    except EmailDeliveryError:
        logger.warning("Notification email delivery failed for %s", recipient.email, exc_info=True)


def create_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    schedule_entry_id: str | None = None,
    created_by_id: str | None = None,
    recipient: User | None = None,
    deliver_email: bool = False,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        schedule_entry_id=schedule_entry_id,
        created_by_id=created_by_id,
    )
    db.add(record)
    db.flush()

    if deliver_email and recipient is not None:
        _send_notification_email(recipient, title=title, message=message)
    return record


def notify_users(
    db: Session,
    *,
    user_ids: list[str] | set[str] | tuple[str, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    schedule_entry_id: str | None = None,
    exclude_user_id: str | None = None,
    created_by_id: str | None = None,
    email_roles: tuple[UserRole, ...] = (),
) -> list[Notification]:
    requested_ids = [item for item in dict.fromkeys(user_ids) if item and item != exclude_user_id]
    if not requested_ids:
        return []

    recipients = db.execute(
        select(User).where(
            User.id.in_(requested_ids),
            User.is_active.is_(True),
        )
    ).scalars()
    return [
        create_notification(
            db,
            user_id=recipient.id,
            title=title,
            message=message,
            notification_type=notification_type,
            schedule_entry_id=schedule_entry_id,
            created_by_id=created_by_id,
            recipient=recipient,
            deliver_email=recipient.role in email_roles,
        )
        for recipient in recipients
    ]


def notify_schedule_assigned(
    db: Session,
    result: MutationResult,
    *,
    actor: User | None,
    action: str = "created",
) -> list[Notification]:
    """In-app notices for everyone on an accepted entry; instructors may also get email."""
    entry = result.entry
    label = get_descriptor(entry.kind).label
    verb = "diperbarui" if action == "updated" else "ditambahkan"
    title = f"{label} {verb}"
    message = (
        f"{label} {entry.course_code} pada tanggal {entry.date.strftime('%d/%m/%Y')} "
        f"jam {display_time(entry.start_time)}-{display_time(entry.end_time)} telah {verb}."
    )
    settings = get_settings()
    email_roles: tuple[UserRole, ...] = ()
    if settings.notify_by_email and email_configured(settings):
        email_roles = (UserRole.lecturer,)

    records = notify_users(
        db,
        user_ids=result.instructor_ids + result.student_ids,
        title=title,
        message=message,
        notification_type=NotificationType.schedule,
        schedule_entry_id=entry.id,
        exclude_user_id=actor.id if actor is not None else None,
        created_by_id=actor.id if actor is not None else None,
        email_roles=email_roles,
    )
    logger.info("Sent %d notifications for %s entry %s", len(records), entry.kind.value, entry.id)
    return records
