from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from medsched.api.deps import get_current_user, get_db
from medsched.core.exceptions import ResourceNotFoundError
from medsched.models.schedule import CohortType
from medsched.models.user import User
from medsched.schemas.cohort import CohortMembersOut, CohortSummary, SmallGroupsOut
from medsched.services.activity_kinds import LARGE_COHORT_TYPES
from medsched.services.cohorts import CohortRef, CohortResolver
from medsched.services.repository import ScheduleRepository

router = APIRouter()


def _summary(resolver: CohortResolver, ref: CohortRef) -> CohortSummary:
    return CohortSummary(
        type=ref.type,
        id=ref.id,
        name=resolver.describe(ref),
        member_count=len(resolver.members_of(ref)),
    )


def _existing_ref(resolver: CohortResolver, cohort_type: CohortType, cohort_id: str) -> CohortRef:
    ref = CohortRef(type=cohort_type, id=cohort_id)
    if not resolver.exists(ref):
        raise ResourceNotFoundError("Cohort", cohort_id)
    return ref


@router.get("/members", response_model=CohortMembersOut)
def cohort_members(
    cohort_type: CohortType = Query(alias="type"),
    cohort_id: str = Query(alias="id", min_length=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CohortMembersOut:
    resolver = CohortResolver(ScheduleRepository(db))
    ref = _existing_ref(resolver, cohort_type, cohort_id)
    summary = _summary(resolver, ref)
    return CohortMembersOut(**summary.model_dump(), student_ids=sorted(resolver.members_of(ref)))


@router.get("/large-groups/{group_id}/small-groups", response_model=SmallGroupsOut)
def small_groups_of_large_group(
    group_id: str,
    cohort_type: CohortType = Query(default=CohortType.large_group, alias="type"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SmallGroupsOut:
    if cohort_type not in LARGE_COHORT_TYPES:
        raise ResourceNotFoundError("Large group", group_id)
    resolver = CohortResolver(ScheduleRepository(db))
    ref = _existing_ref(resolver, cohort_type, group_id)
    return SmallGroupsOut(
        large_group=_summary(resolver, ref),
        small_groups=[_summary(resolver, item) for item in resolver.small_groups_of(ref)],
    )
