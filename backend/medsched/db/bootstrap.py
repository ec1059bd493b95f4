from __future__ import annotations

import logging

from sqlalchemy import inspect

import medsched.models  # noqa: F401
from medsched.core.config import get_settings
from medsched.db.base import Base
from medsched.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "schedule_entries": {
        "id",
        "kind",
        "course_code",
        "date",
        "start_time",
        "end_time",
        "room_id",
        "instructor_ids",
        "coordinator_ids",
        "cohort_type",
        "cohort_ids",
        "deleted_at",
    },
    "rooms": {"id", "name", "capacity"},
    "courses": {"id", "code", "semester", "start_date", "end_date"},
    "users": {"id", "name", "role", "is_active"},
    "large_groups": {"id", "semester", "student_id"},
    "large_groups_intersession": {"id", "name", "student_ids"},
    "small_groups": {"id", "name", "semester", "student_id"},
    "small_groups_intersession": {"id", "name", "student_ids"},
}


def find_schema_gaps(connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_runtime_schema() -> None:
    settings = get_settings()
    try:
        if settings.auto_create_schema:
            Base.metadata.create_all(bind=engine)
        with engine.connect() as connection:
            missing_tables, missing_columns = find_schema_gaps(connection)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema bootstrap failed")
        raise RuntimeError("Runtime schema bootstrap failed") from exc

    if missing_tables:
        raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")
    if missing_columns:
        flattened = [f"{table}.{column}" for table, columns in missing_columns.items() for column in columns]
        raise RuntimeError(f"Missing required columns: {', '.join(flattened)}")
    logger.info("Schema check passed for %d tables", len(REQUIRED_COLUMNS))
