from pydantic import BaseModel

from medsched.models.schedule import CohortType


class CohortSummary(BaseModel):
    type: CohortType
    id: str
    name: str | None = None
    member_count: int


class CohortMembersOut(CohortSummary):
    student_ids: list[str]


class SmallGroupsOut(BaseModel):
    large_group: CohortSummary
    small_groups: list[CohortSummary]
