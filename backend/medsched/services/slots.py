from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from medsched.models.course import INTERSESSION_SEMESTER
from medsched.models.schedule import ActivityKind, ScheduleEntry
from medsched.services.cohorts import CohortRef
from medsched.services.intervals import intervals_overlap, normalize_time


@dataclass(frozen=True)
class ScheduleSlot:
    """A normalized view of one schedule entry, stored or proposed.

    The conflict detector, capacity validator and explainer all work on slots
    so that a candidate and an existing row are compared the same way.
    """

    kind: ActivityKind
    course_code: str
    date: date
    start_time: str
    end_time: str
    semester: str | None = None
    room_id: str | None = None
    instructor_ids: tuple[str, ...] = ()
    coordinator_ids: tuple[str, ...] = ()
    cohorts: tuple[CohortRef, ...] = ()
    session_count: int | None = None
    pbl_type: str | None = None
    topic: str | None = None
    entry_id: str | None = field(default=None, compare=False)

    @property
    def is_intersession(self) -> bool:
        return self.semester == INTERSESSION_SEMESTER

    @property
    def people(self) -> frozenset[str]:
        return frozenset(self.instructor_ids) | frozenset(self.coordinator_ids)

    def overlaps(self, other: "ScheduleSlot") -> bool:
        return intervals_overlap(
            self.date, self.start_time, self.end_time, other.date, other.start_time, other.end_time
        )

    @classmethod
    def from_entry(cls, entry: ScheduleEntry, semester: str | None = None) -> "ScheduleSlot":
        return cls(
            kind=ActivityKind(entry.kind),
            course_code=entry.course_code,
            date=entry.date,
            start_time=normalize_time(entry.start_time),
            end_time=normalize_time(entry.end_time),
            semester=semester,
            room_id=entry.room_id,
            instructor_ids=tuple(entry.instructor_ids or ()),
            coordinator_ids=tuple(entry.coordinator_ids or ()),
            cohorts=CohortRef.many(entry.cohort_type, entry.cohort_ids),
            session_count=entry.session_count,
            pbl_type=entry.pbl_type,
            topic=entry.topic,
            entry_id=entry.id,
        )
