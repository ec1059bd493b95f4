from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from medsched.core.config import get_settings
from medsched.db.bootstrap import find_schema_gaps
from medsched.db.session import engine
from medsched.services.email import email_configured

router = APIRouter()
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_report() -> dict:
    report: dict = {"ok": False, "schema_ok": False, "missing_tables": [], "missing_columns": {}, "error": None}
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            missing_tables, missing_columns = find_schema_gaps(connection)
    except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
        logger.warning("Readiness probe could not reach the database", exc_info=True)
        report["error"] = str(exc)
        return report

    report.update(
        ok=True,
        schema_ok=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
    )
    return report


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    """Ready once the database answers and every table the engine queries is in place."""
    settings = get_settings()
    database = _database_report()
    ready = database["ok"] and database["schema_ok"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "degraded",
            "timestamp": _now(),
            "database": database,
            "smtp": {"configured": email_configured(settings), "notify_by_email": settings.notify_by_email},
        },
    )
