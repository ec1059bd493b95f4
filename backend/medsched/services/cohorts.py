"""Resolve cohort references into student sets.

Regular groups are stored one row per student, so a reference is simply any
row id: a large group resolves to every student of that row's semester and a
small group to every student sharing its name and semester. Intersession
groups carry their roster inline. Small groups are never linked to a large
group by key; shared members are the only evidence that one was carved out of
the other.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from medsched.models.schedule import CohortType
from medsched.services.repository import ScheduleRepository


@dataclass(frozen=True)
class CohortRef:
    type: CohortType
    id: str

    @classmethod
    def many(cls, cohort_type: CohortType | str | None, ids: Iterable[str] | None) -> tuple["CohortRef", ...]:
        if cohort_type is None:
            return ()
        resolved_type = CohortType(cohort_type)
        return tuple(cls(type=resolved_type, id=item) for item in dict.fromkeys(ids or ()) if item)


class CohortResolver:
    def __init__(self, repository: ScheduleRepository) -> None:
        self.repository = repository
        self._rows: dict[CohortRef, object | None] = {}
        self._members: dict[CohortRef, frozenset[str]] = {}

    def _row(self, ref: CohortRef):
        if ref not in self._rows:
            if ref.type == CohortType.large_group:
                row = self.repository.get_large_group(ref.id)
            elif ref.type == CohortType.large_group_intersession:
                row = self.repository.get_large_group_intersession(ref.id)
            elif ref.type == CohortType.small_group:
                row = self.repository.get_small_group(ref.id)
            else:
                row = self.repository.get_small_group_intersession(ref.id)
            self._rows[ref] = row
        return self._rows[ref]

    def exists(self, ref: CohortRef) -> bool:
        return self._row(ref) is not None

    def members_of(self, ref: CohortRef | None) -> frozenset[str]:
        """Student ids behind ``ref``; dangling or missing references give an empty set."""
        if ref is None:
            return frozenset()
        cached = self._members.get(ref)
        if cached is not None:
            return cached

        row = self._row(ref)
        if row is None:
            members: frozenset[str] = frozenset()
        elif ref.type == CohortType.large_group:
            members = frozenset(self.repository.large_group_members(row.semester))
        elif ref.type == CohortType.small_group:
            members = frozenset(self.repository.small_group_members(row.name, row.semester))
        else:
            members = frozenset(item for item in (row.student_ids or []) if item)
        self._members[ref] = members
        return members

    def members_of_all(self, refs: Iterable[CohortRef]) -> frozenset[str]:
        members: set[str] = set()
        for ref in refs:
            members |= self.members_of(ref)
        return frozenset(members)

    def overlaps(self, a: CohortRef | None, b: CohortRef | None) -> bool:
        if a is None or b is None:
            return False
        if a == b:
            return bool(self.members_of(a))
        return not self.members_of(a).isdisjoint(self.members_of(b))

    def any_overlap(self, refs_a: Iterable[CohortRef], refs_b: Iterable[CohortRef]) -> bool:
        return not self.members_of_all(refs_a).isdisjoint(self.members_of_all(refs_b))

    def small_groups_of(self, large_ref: CohortRef) -> list[CohortRef]:
        """Small groups of the same family whose members were drawn from ``large_ref``."""
        members = self.members_of(large_ref)
        if not members:
            return []

        if large_ref.type == CohortType.large_group:
            row = self._row(large_ref)
            refs: dict[tuple[str, str], CohortRef] = {}
            for group in self.repository.small_groups_with_students(row.semester, members):
                key = (group.name, group.semester)
                if key not in refs:
                    refs[key] = CohortRef(CohortType.small_group, group.id)
            return list(refs.values())

        if large_ref.type == CohortType.large_group_intersession:
            result = []
            for group in self.repository.all_small_groups_intersession():
                if not members.isdisjoint(group.student_ids or []):
                    ref = CohortRef(CohortType.small_group_intersession, group.id)
                    self._rows.setdefault(ref, group)
                    result.append(ref)
            return result

        return []

    def describe(self, ref: CohortRef) -> str | None:
        row = self._row(ref)
        if row is None:
            return None
        if ref.type == CohortType.large_group:
            return f"Kelompok Besar Semester {row.semester}"
        if ref.type == CohortType.large_group_intersession:
            return f"Kelompok Besar Antara {row.name}"
        if ref.type == CohortType.small_group:
            return f"Kelompok Kecil {row.name}"
        return f"Kelompok Kecil Antara {row.name}"
