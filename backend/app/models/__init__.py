"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from app.models.capacity import PartnershipCapacityConfig, TeamCapacityConfig  # noqa: F401
from app.models.duty_assignment import DutyAssignment  # noqa: F401
from app.models.holiday import Holiday, HolidayImportStatus  # noqa: F401
from app.models.partnership import PlanningPartnership  # noqa: F401
from app.models.schedule import ScheduleEntry  # noqa: F401
from app.models.team import Profile, Team, TeamMember  # noqa: F401

__all__ = [
    "DutyAssignment",
    "Holiday",
    "HolidayImportStatus",
    "PartnershipCapacityConfig",
    "PlanningPartnership",
    "Profile",
    "ScheduleEntry",
    "Team",
    "TeamCapacityConfig",
    "TeamMember",
]
