"""Find the first existing schedule entry a candidate collides with.

Two entries collide when they share a date, their times overlap under the
half-open rule, and at least one resource dimension is shared: the same room,
a common instructor or coordinator, or cohorts with at least one student in
common. The activity kind itself is never a dimension, so a lecture can clash
with a PBL session as readily as with another lecture.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date
import logging

from medsched.models.course import INTERSESSION_SEMESTER
from medsched.models.schedule import ActivityKind
from medsched.services.activity_kinds import DETECTION_ORDER, Dimension, shared_dimensions
from medsched.services.cohorts import CohortResolver
from medsched.services.repository import ScheduleRepository
from medsched.services.slots import ScheduleSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conflict:
    kind: ActivityKind
    entry_id: str | None
    date: date
    start_time: str
    end_time: str
    dimensions: frozenset[Dimension]
    existing: ScheduleSlot

    def as_details(self) -> dict:
        return {
            "kind": self.kind.value,
            "entry_id": self.entry_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "dimensions": sorted(item.value for item in self.dimensions),
        }


class ConflictDetector:
    def __init__(self, repository: ScheduleRepository, resolver: CohortResolver) -> None:
        self.repository = repository
        self.resolver = resolver

    def pair_conflicts(self, a: ScheduleSlot, b: ScheduleSlot) -> set[Dimension]:
        """Dimensions on which ``a`` and ``b`` collide; empty when they do not."""
        if not a.overlaps(b):
            return set()
        dimensions = shared_dimensions(a.kind, b.kind)
        matched: set[Dimension] = set()
        if Dimension.room in dimensions and a.room_id and a.room_id == b.room_id:
            matched.add(Dimension.room)
        if Dimension.instructor in dimensions and not a.people.isdisjoint(b.people):
            matched.add(Dimension.instructor)
        if Dimension.cohort in dimensions and self.resolver.any_overlap(a.cohorts, b.cohorts):
            matched.add(Dimension.cohort)
        return matched

    def semester_scope(self, candidate: ScheduleSlot) -> set[str] | None:
        """Semesters whose entries can clash with ``candidate``; ``None`` means every semester."""
        if candidate.semester is None or candidate.is_intersession:
            return None
        return {candidate.semester, INTERSESSION_SEMESTER}

    def iter_conflicts(self, candidate: ScheduleSlot, ignore_id: str | None = None) -> Iterator[Conflict]:
        semesters = self.semester_scope(candidate)
        for kind in DETECTION_ORDER:
            rows = self.repository.entries_on(candidate.date, kind, semesters=semesters, exclude_id=ignore_id)
            for entry, semester in rows:
                existing = ScheduleSlot.from_entry(entry, semester)
                matched = self.pair_conflicts(candidate, existing)
                if matched:
                    yield Conflict(
                        kind=kind,
                        entry_id=existing.entry_id,
                        date=existing.date,
                        start_time=existing.start_time,
                        end_time=existing.end_time,
                        dimensions=frozenset(matched),
                        existing=existing,
                    )

    def find_conflict(self, candidate: ScheduleSlot, ignore_id: str | None = None) -> Conflict | None:
        conflict = next(self.iter_conflicts(candidate, ignore_id=ignore_id), None)
        if conflict is not None:
            logger.debug(
                "Candidate %s %s %s-%s collides with %s %s on %s",
                candidate.kind.value,
                candidate.date,
                candidate.start_time,
                candidate.end_time,
                conflict.kind.value,
                conflict.entry_id,
                ", ".join(sorted(item.value for item in conflict.dimensions)),
            )
        return conflict
