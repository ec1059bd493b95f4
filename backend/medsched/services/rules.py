"""Per-kind scheduling rules checked before capacity and conflicts."""

from __future__ import annotations

from medsched.core.exceptions import ReferenceNotFoundError, ScheduleRuleError
from medsched.models.course import Course
from medsched.models.schedule import ActivityKind
from medsched.models.user import UserRole
from medsched.services.activity_kinds import COHORT_TYPE_LABELS, InstructorPolicy, get_descriptor
from medsched.services.repository import ScheduleRepository
from medsched.services.slots import ScheduleSlot

MIN_SESSION_COUNT = 1
MAX_SESSION_COUNT = 6


def _format_date(value) -> str:
    return value.strftime("%d/%m/%Y")


def check_course_window(slot: ScheduleSlot, course: Course) -> None:
    if course.start_date is None or course.end_date is None:
        return
    if not course.start_date <= slot.date <= course.end_date:
        raise ScheduleRuleError(
            "Tanggal jadwal harus berada dalam rentang tanggal mata kuliah "
            f"({_format_date(course.start_date)} - {_format_date(course.end_date)})",
            details={"field": "date"},
        )


def check_cohorts(slot: ScheduleSlot, course: Course) -> None:
    if not slot.cohorts:
        return
    descriptor = get_descriptor(slot.kind)
    expected = descriptor.cohort_type_for(course.is_intersession)
    actual = {ref.type for ref in slot.cohorts}
    if actual != {expected}:
        raise ScheduleRuleError(
            f"{descriptor.label} untuk mata kuliah ini harus menggunakan {COHORT_TYPE_LABELS[expected]}",
            details={"field": "cohort", "expected": expected.value},
        )
    if len(slot.cohorts) > 1 and not descriptor.allows_multiple_cohorts:
        raise ScheduleRuleError(
            f"{descriptor.label} hanya dapat menggunakan satu kelompok",
            details={"field": "cohort"},
        )


def check_instructors(slot: ScheduleSlot, repository: ScheduleRepository) -> None:
    descriptor = get_descriptor(slot.kind)
    policy = descriptor.instructor_policy_for(slot.is_intersession)
    count = len(slot.instructor_ids)

    if policy == InstructorPolicy.none and (count or slot.coordinator_ids):
        raise ScheduleRuleError(f"{descriptor.label} tidak menggunakan dosen", details={"field": "instructor_ids"})
    if policy == InstructorPolicy.single and count != 1:
        raise ScheduleRuleError(
            f"{descriptor.label} harus memiliki tepat satu dosen", details={"field": "instructor_ids"}
        )
    if policy == InstructorPolicy.many and count < 1:
        raise ScheduleRuleError(
            f"{descriptor.label} harus memiliki minimal satu dosen", details={"field": "instructor_ids"}
        )

    if len(slot.coordinator_ids) > descriptor.max_coordinators:
        if descriptor.max_coordinators == 0:
            message = f"{descriptor.label} tidak menggunakan koordinator"
        else:
            message = f"{descriptor.label} hanya dapat memiliki {descriptor.max_coordinators} koordinator"
        raise ScheduleRuleError(message, details={"field": "coordinator_ids"})
    doubled = set(slot.coordinator_ids) & set(slot.instructor_ids)
    if doubled:
        raise ScheduleRuleError(
            "Koordinator tidak boleh sekaligus menjadi dosen pengampu",
            details={"field": "coordinator_ids", "ids": sorted(doubled)},
        )

    if not slot.people:
        return
    users = repository.users_by_ids(slot.people)
    for user_id in list(dict.fromkeys(slot.instructor_ids + slot.coordinator_ids)):
        user = users.get(user_id)
        if user is None or user.role != UserRole.lecturer or not user.is_active:
            raise ReferenceNotFoundError("instructor", user_id, "Dosen tidak ditemukan")


def check_room_and_sessions(slot: ScheduleSlot) -> None:
    descriptor = get_descriptor(slot.kind)
    if slot.pbl_type is not None and slot.kind != ActivityKind.pbl:
        raise ScheduleRuleError(
            f"Tipe PBL hanya berlaku untuk Jadwal PBL, bukan {descriptor.label}", details={"field": "pbl_type"}
        )
    if descriptor.room_required and not slot.room_id:
        raise ScheduleRuleError("Ruangan wajib diisi", details={"field": "room_id"})
    if slot.session_count is not None and not MIN_SESSION_COUNT <= slot.session_count <= MAX_SESSION_COUNT:
        raise ScheduleRuleError(
            f"Jumlah sesi harus antara {MIN_SESSION_COUNT} dan {MAX_SESSION_COUNT}",
            details={"field": "session_count"},
        )


def check_scheduling_rules(slot: ScheduleSlot, course: Course, repository: ScheduleRepository) -> None:
    check_room_and_sessions(slot)
    check_course_window(slot, course)
    check_cohorts(slot, course)
    check_instructors(slot, repository)
