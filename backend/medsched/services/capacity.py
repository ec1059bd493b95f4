from __future__ import annotations

from dataclasses import dataclass

from medsched.core.exceptions import CapacityExceededError, ReferenceNotFoundError
from medsched.services.activity_kinds import InstructorPolicy, get_descriptor
from medsched.services.cohorts import CohortResolver
from medsched.services.repository import ScheduleRepository
from medsched.services.slots import ScheduleSlot


@dataclass(frozen=True)
class CapacityCheck:
    room_id: str | None
    capacity: int | None
    required: int
    checked: bool = True


def instructor_headcount(candidate: ScheduleSlot) -> int:
    policy = get_descriptor(candidate.kind).instructor_policy_for(candidate.is_intersession)
    if policy == InstructorPolicy.none:
        return 0
    if policy == InstructorPolicy.single:
        return 1
    return len(candidate.people)


class CapacityValidator:
    """Checks that the assigned room can seat the cohort plus its instructors."""

    def __init__(self, repository: ScheduleRepository, resolver: CohortResolver) -> None:
        self.repository = repository
        self.resolver = resolver

    def required_seats(self, candidate: ScheduleSlot) -> int:
        if not candidate.cohorts:
            return 1
        return len(self.resolver.members_of_all(candidate.cohorts)) + instructor_headcount(candidate)

    def validate(self, candidate: ScheduleSlot) -> CapacityCheck:
        for ref in candidate.cohorts:
            if not self.resolver.exists(ref):
                raise ReferenceNotFoundError("cohort", ref.id, "Kelompok mahasiswa tidak ditemukan")
        if not candidate.room_id:
            return CapacityCheck(room_id=None, capacity=None, required=0, checked=False)

        room = self.repository.get_room(candidate.room_id)
        if room is None:
            raise ReferenceNotFoundError("room", candidate.room_id, "Ruangan tidak ditemukan")

        required = self.required_seats(candidate)
        if required > room.capacity:
            raise CapacityExceededError(
                room_id=room.id,
                room_name=room.name,
                capacity=room.capacity,
                required=required,
            )
        return CapacityCheck(room_id=room.id, capacity=room.capacity, required=required)
