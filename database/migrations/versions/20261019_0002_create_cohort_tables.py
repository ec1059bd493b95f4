"""create large and small group tables

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "large_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("semester", sa.String(length=20), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("semester", "student_id", name="uq_large_groups_semester_student"),
    )
    op.create_index("ix_large_groups_semester", "large_groups", ["semester"])
    op.create_index("ix_large_groups_student_id", "large_groups", ["student_id"])

    op.create_table(
        "small_groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("semester", sa.String(length=20), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("name", "semester", "student_id", name="uq_small_groups_name_semester_student"),
    )
    op.create_index("ix_small_groups_semester", "small_groups", ["semester"])
    op.create_index("ix_small_groups_student_id", "small_groups", ["student_id"])

    for table_name in ("large_groups_intersession", "small_groups_intersession"):
        op.create_table(
            table_name,
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("student_ids", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )


def downgrade() -> None:
    op.drop_table("small_groups_intersession")
    op.drop_table("large_groups_intersession")
    op.drop_index("ix_small_groups_student_id", table_name="small_groups")
    op.drop_index("ix_small_groups_semester", table_name="small_groups")
    op.drop_table("small_groups")
    op.drop_index("ix_large_groups_student_id", table_name="large_groups")
    op.drop_index("ix_large_groups_semester", table_name="large_groups")
    op.drop_table("large_groups")
