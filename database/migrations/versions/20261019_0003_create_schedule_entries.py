"""create schedule entries, notifications and activity logs

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


activity_kind_enum = sa.Enum(
    "large_lecture",
    "pbl",
    "practicum",
    "journal_reading",
    "special_agenda",
    "plenary_seminar",
    name="activity_kind",
)
cohort_type_enum = sa.Enum(
    "large_group",
    "large_group_intersession",
    "small_group",
    "small_group_intersession",
    name="cohort_type",
)
notification_type_enum = sa.Enum("schedule", "system", name="notification_type")


def upgrade() -> None:
    op.create_table(
        "schedule_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("kind", activity_kind_enum, nullable=False),
        sa.Column("course_code", sa.String(length=50), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=8), nullable=False),
        sa.Column("end_time", sa.String(length=8), nullable=False),
        sa.Column("session_count", sa.Integer(), nullable=True),
        sa.Column("pbl_type", sa.String(length=10), nullable=True),
        sa.Column("room_id", sa.String(length=36), nullable=True),
        sa.Column("instructor_ids", sa.JSON(), nullable=False),
        sa.Column("coordinator_ids", sa.JSON(), nullable=False),
        sa.Column("cohort_type", cohort_type_enum, nullable=True),
        sa.Column("cohort_ids", sa.JSON(), nullable=False),
        sa.Column("topic", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_schedule_entries_course_code", "schedule_entries", ["course_code"])
    op.create_index("ix_schedule_entries_date_kind", "schedule_entries", ["date", "kind"])
    op.create_index("ix_schedule_entries_room_date", "schedule_entries", ["room_id", "date"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", notification_type_enum, nullable=False),
        sa.Column("schedule_entry_id", sa.String(length=36), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_unread", "notifications", ["user_id", "is_read"])
    op.create_index("ix_notifications_schedule_entry_id", "notifications", ["schedule_entry_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("activity_kind", sa.String(length=30), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_entity", "activity_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity", table_name="activity_logs")
    op.drop_index("ix_activity_logs_user_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_notifications_schedule_entry_id", table_name="notifications")
    op.drop_index("ix_notifications_user_unread", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_schedule_entries_room_date", table_name="schedule_entries")
    op.drop_index("ix_schedule_entries_date_kind", table_name="schedule_entries")
    op.drop_index("ix_schedule_entries_course_code", table_name="schedule_entries")
    op.drop_table("schedule_entries")
    bind = op.get_bind()
    notification_type_enum.drop(bind, checkfirst=True)
    cohort_type_enum.drop(bind, checkfirst=True)
    activity_kind_enum.drop(bind, checkfirst=True)
