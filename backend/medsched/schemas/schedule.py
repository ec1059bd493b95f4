import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from medsched.models.schedule import ActivityKind, CohortType
from medsched.services.intervals import normalize_time, parse_time_to_minutes


class CohortRefIn(BaseModel):
    type: CohortType
    ids: list[str] = Field(min_length=1, max_length=50)

    @field_validator("ids")
    @classmethod
    def strip_ids(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("At least one cohort id is required")
        return list(dict.fromkeys(cleaned))


class ScheduleEntryIn(BaseModel):
    course_code: str = Field(min_length=1, max_length=50)
    date: dt.date
    start_time: str
    end_time: str
    room_id: str | None = None
    instructor_ids: list[str] = Field(default_factory=list, max_length=50)
    coordinator_ids: list[str] = Field(default_factory=list, max_length=5)
    cohort: CohortRefIn | None = None
    session_count: int | None = Field(default=None, ge=1, le=6)
    pbl_type: Literal["PBL 1", "PBL 2"] | None = None
    topic: str | None = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_time_format(cls, value: str | dt.time) -> str:
        return normalize_time(value)

    @field_validator("room_id")
    @classmethod
    def blank_room_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("instructor_ids", "coordinator_ids")
    @classmethod
    def dedupe_ids(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(item.strip() for item in value if item and item.strip()))

    @model_validator(mode="after")
    def validate_order(self) -> "ScheduleEntryIn":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleImportRow(ScheduleEntryIn):
    course_code: str | None = Field(default=None, max_length=50)


class ScheduleImportRequest(BaseModel):
    course_code: str = Field(min_length=1, max_length=50)
    rows: list[ScheduleImportRow] = Field(min_length=1)


class CohortRefOut(BaseModel):
    type: CohortType
    ids: list[str]


class ScheduleEntryOut(BaseModel):
    id: str
    kind: ActivityKind
    course_code: str
    date: dt.date
    start_time: str
    end_time: str
    session_count: int | None = None
    pbl_type: str | None = None
    room_id: str | None = None
    instructor_ids: list[str]
    coordinator_ids: list[str]
    cohort: CohortRefOut | None = None
    topic: str | None = None
    created_by_id: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def collect_cohort(cls, data):
        if isinstance(data, dict) or not hasattr(data, "cohort_type"):
            return data
        cohort = None
        if data.cohort_type is not None:
            cohort = {"type": data.cohort_type, "ids": list(data.cohort_ids or [])}
        return {
            "id": data.id,
            "kind": data.kind,
            "course_code": data.course_code,
            "date": data.date,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "session_count": data.session_count,
            "pbl_type": data.pbl_type,
            "room_id": data.room_id,
            "instructor_ids": list(data.instructor_ids or []),
            "coordinator_ids": list(data.coordinator_ids or []),
            "cohort": cohort,
            "topic": data.topic,
            "created_by_id": data.created_by_id,
            "created_at": data.created_at,
            "updated_at": data.updated_at,
        }


class ValidationOutcome(BaseModel):
    status: Literal["accepted", "rejected"]
    reason: str | None = None
    kind: str | None = None
    details: dict = Field(default_factory=dict)

    @classmethod
    def accepted(cls) -> "ValidationOutcome":
        return cls(status="accepted")

    @classmethod
    def rejected(cls, reason: str, kind: str, details: dict | None = None) -> "ValidationOutcome":
        return cls(status="rejected", reason=reason, kind=kind, details=details or {})


class BatchValidationOutcome(BaseModel):
    status: Literal["accepted", "rejected"]
    row_count: int
    errors: list[dict] = Field(default_factory=list)
