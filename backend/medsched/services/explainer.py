from __future__ import annotations

from medsched.services.activity_kinds import Dimension, get_descriptor, shared_dimensions
from medsched.services.cohorts import CohortRef, CohortResolver
from medsched.services.conflict_service import Conflict
from medsched.services.intervals import display_time
from medsched.services.repository import ScheduleRepository
from medsched.services.slots import ScheduleSlot


class ConflictExplainer:
    """Turns a detected collision into the fragments shown to schedulers.

    Each dimension is re-tested on its own because a pair may clash on several
    at once. Names that no longer resolve fall back to raw ids.
    """

    def __init__(self, repository: ScheduleRepository, resolver: CohortResolver) -> None:
        self.repository = repository
        self.resolver = resolver

    def explain(self, candidate: ScheduleSlot, existing: ScheduleSlot) -> list[str]:
        dimensions = shared_dimensions(candidate.kind, existing.kind)
        fragments: list[str] = []

        if Dimension.instructor in dimensions:
            shared = sorted(candidate.people & existing.people)
            if shared:
                users = self.repository.users_by_ids(shared)
                names = [users[item].name if item in users else item for item in shared]
                fragments.append(f"Dosen: {', '.join(names)}")

        if Dimension.room in dimensions and candidate.room_id and candidate.room_id == existing.room_id:
            room = self.repository.get_room(candidate.room_id)
            fragments.append(f"Ruangan: {room.name if room is not None else candidate.room_id}")

        if Dimension.cohort in dimensions:
            common = self.resolver.members_of_all(candidate.cohorts) & self.resolver.members_of_all(existing.cohorts)
            if common:
                left, right = self._cohort_labels(candidate.cohorts, existing.cohorts)
                fragments.append(f"Kelompok: {left} vs {right} ({len(common)} Mahasiswa)")

        if not fragments:
            fragments = self._identifying_fields(existing)
        return fragments

    def message(self, conflict: Conflict, fragments: list[str], *, subject: str | None = None) -> str:
        subject = subject or get_descriptor(conflict.kind).label
        return (
            f"Jadwal bentrok dengan {subject} pada tanggal {conflict.date.strftime('%d/%m/%Y')} "
            f"jam {display_time(conflict.start_time)}-{display_time(conflict.end_time)}. "
            f"Bentrok: ({', '.join(fragments)})"
        )

    def _cohort_labels(
        self, candidate_refs: tuple[CohortRef, ...], existing_refs: tuple[CohortRef, ...]
    ) -> tuple[str, str]:
        """Name only the groups that share students with the other side.

        A large group meeting a practicum is reported against just the small
        groups carved from it.
        """
        left = [ref for ref in candidate_refs if self._touches(ref, existing_refs)] or list(candidate_refs)
        right = [ref for ref in existing_refs if self._touches(ref, candidate_refs)] or list(existing_refs)
        return ", ".join(self._names(left)), ", ".join(self._names(right))

    def _touches(self, ref: CohortRef, others: tuple[CohortRef, ...]) -> bool:
        return any(self.resolver.overlaps(ref, other) for other in others)

    def _names(self, refs: list[CohortRef]) -> list[str]:
        return [self.resolver.describe(ref) or ref.id for ref in refs]

    @staticmethod
    def _identifying_fields(existing: ScheduleSlot) -> list[str]:
        fields = [f"Mata Kuliah: {existing.course_code}"]
        if existing.room_id:
            fields.append(f"Ruangan: {existing.room_id}")
        if existing.people:
            fields.append(f"Dosen: {', '.join(sorted(existing.people))}")
        if existing.cohorts:
            fields.append(f"Kelompok: {', '.join(ref.id for ref in existing.cohorts)}")
        if existing.entry_id:
            fields.append(f"ID Jadwal: {existing.entry_id}")
        return fields
