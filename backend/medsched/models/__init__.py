from medsched.models.activity_log import ActivityLog  # noqa: F401
from medsched.models.cohort import (  # noqa: F401
    LargeGroup,
    LargeGroupIntersession,
    SmallGroup,
    SmallGroupIntersession,
)
from medsched.models.course import INTERSESSION_SEMESTER, Course  # noqa: F401
from medsched.models.notification import Notification, NotificationType  # noqa: F401
from medsched.models.room import Room  # noqa: F401
from medsched.models.schedule import ActivityKind, CohortType, ScheduleEntry  # noqa: F401
from medsched.models.user import User, UserRole  # noqa: F401
