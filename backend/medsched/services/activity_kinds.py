from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from medsched.models.schedule import ActivityKind, CohortType


class Dimension(str, Enum):
    instructor = "instructor"
    room = "room"
    cohort = "cohort"


class InstructorPolicy(str, Enum):
    none = "none"
    single = "single"
    many = "many"


class CohortGranularity(str, Enum):
    large = "large"
    small = "small"


LARGE_COHORT_TYPES = (CohortType.large_group, CohortType.large_group_intersession)
SMALL_COHORT_TYPES = (CohortType.small_group, CohortType.small_group_intersession)
INTERSESSION_COHORT_TYPES = (CohortType.large_group_intersession, CohortType.small_group_intersession)


@dataclass(frozen=True)
class ActivityKindDescriptor:
    kind: ActivityKind
    label: str
    dimensions: frozenset[Dimension]
    granularity: CohortGranularity
    instructor_policy: InstructorPolicy
    intersession_instructor_policy: InstructorPolicy
    allows_multiple_cohorts: bool = False
    max_coordinators: int = 0
    room_required: bool = True

    def instructor_policy_for(self, intersession: bool) -> InstructorPolicy:
        return self.intersession_instructor_policy if intersession else self.instructor_policy

    def cohort_type_for(self, intersession: bool) -> CohortType:
        if self.granularity == CohortGranularity.large:
            return CohortType.large_group_intersession if intersession else CohortType.large_group
        return CohortType.small_group_intersession if intersession else CohortType.small_group


ALL_DIMENSIONS = frozenset({Dimension.instructor, Dimension.room, Dimension.cohort})

ACTIVITY_KINDS: dict[ActivityKind, ActivityKindDescriptor] = {
    ActivityKind.large_lecture: ActivityKindDescriptor(
        kind=ActivityKind.large_lecture,
        label="Jadwal Kuliah Besar",
        dimensions=ALL_DIMENSIONS,
        granularity=CohortGranularity.large,
        instructor_policy=InstructorPolicy.single,
        intersession_instructor_policy=InstructorPolicy.many,
    ),
    ActivityKind.pbl: ActivityKindDescriptor(
        kind=ActivityKind.pbl,
        label="Jadwal PBL",
        dimensions=ALL_DIMENSIONS,
        granularity=CohortGranularity.small,
        instructor_policy=InstructorPolicy.single,
        intersession_instructor_policy=InstructorPolicy.many,
    ),
    ActivityKind.practicum: ActivityKindDescriptor(
        kind=ActivityKind.practicum,
        label="Jadwal Praktikum",
        dimensions=ALL_DIMENSIONS,
        granularity=CohortGranularity.small,
        instructor_policy=InstructorPolicy.many,
        intersession_instructor_policy=InstructorPolicy.many,
        allows_multiple_cohorts=True,
    ),
    ActivityKind.journal_reading: ActivityKindDescriptor(
        kind=ActivityKind.journal_reading,
        label="Jadwal Jurnal Reading",
        dimensions=ALL_DIMENSIONS,
        granularity=CohortGranularity.small,
        instructor_policy=InstructorPolicy.single,
        intersession_instructor_policy=InstructorPolicy.many,
    ),
    ActivityKind.special_agenda: ActivityKindDescriptor(
        kind=ActivityKind.special_agenda,
        label="Jadwal Agenda Khusus",
        dimensions=frozenset({Dimension.room, Dimension.cohort}),
        granularity=CohortGranularity.large,
        instructor_policy=InstructorPolicy.none,
        intersession_instructor_policy=InstructorPolicy.none,
        room_required=False,
    ),
    ActivityKind.plenary_seminar: ActivityKindDescriptor(
        kind=ActivityKind.plenary_seminar,
        label="Jadwal Seminar Pleno",
        dimensions=ALL_DIMENSIONS,
        granularity=CohortGranularity.large,
        instructor_policy=InstructorPolicy.many,
        intersession_instructor_policy=InstructorPolicy.many,
        max_coordinators=1,
        room_required=False,
    ),
}

# Order in which existing entries are scanned; decides which clash is reported first.
DETECTION_ORDER: tuple[ActivityKind, ...] = (
    ActivityKind.large_lecture,
    ActivityKind.pbl,
    ActivityKind.practicum,
    ActivityKind.journal_reading,
    ActivityKind.special_agenda,
    ActivityKind.plenary_seminar,
)


def get_descriptor(kind: ActivityKind | str) -> ActivityKindDescriptor:
    return ACTIVITY_KINDS[ActivityKind(kind)]


def shared_dimensions(kind_a: ActivityKind, kind_b: ActivityKind) -> frozenset[Dimension]:
    return get_descriptor(kind_a).dimensions & get_descriptor(kind_b).dimensions


COHORT_TYPE_LABELS: dict[CohortType, str] = {
    CohortType.large_group: "Kelompok Besar",
    CohortType.large_group_intersession: "Kelompok Besar Antara",
    CohortType.small_group: "Kelompok Kecil",
    CohortType.small_group_intersession: "Kelompok Kecil Antara",
}


# PBL 2 sessions run one meeting longer than PBL 1.
PBL_SESSION_DEFAULTS = {"PBL 1": 2, "PBL 2": 3}


def default_session_count(kind: ActivityKind, pbl_type: str | None) -> int | None:
    if kind != ActivityKind.pbl:
        return None
    return PBL_SESSION_DEFAULTS.get(pbl_type, PBL_SESSION_DEFAULTS["PBL 1"])
