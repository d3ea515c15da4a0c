import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

DutyType = Literal["weekend", "lateshift", "earlyshift"]


class DutyAssignmentCreate(BaseModel):
    team_id: uuid.UUID
    date: date
    duty_type: DutyType
    notes: str | None = None


class DutyAssignmentUpdate(BaseModel):
    """Partial update. Only the fields present in the body are written."""

    user_id: uuid.UUID | None = None
    responsibility_region: str | None = None
    is_substitute: bool | None = None


class DutyAssignmentResponse(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    date: date
    duty_type: str
    user_id: uuid.UUID | None = None
    is_substitute: bool
    responsibility_region: str | None = None
    notes: str | None = None
    week_number: int
    year: int
    created_by: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class DutySlotResponse(BaseModel):
    """All assignments sharing one (date, duty_type) slot."""

    date: date
    duty_type: str
    assignments: list[DutyAssignmentResponse]


class CandidateResponse(BaseModel):
    user_id: uuid.UUID
    team_id: uuid.UUID
    shift_type: str
    first_name: str
    last_name: str
    initials: str | None = None


class TeamMemberResponse(BaseModel):
    user_id: uuid.UUID
    team_id: uuid.UUID
    first_name: str
    last_name: str
    initials: str | None = None


class RosterEntryResponse(BaseModel):
    date: date
    team_id: uuid.UUID
    duty_type: str
    user_id: uuid.UUID
    source: Literal["manual", "schedule"]
    is_substitute: bool = False
    responsibility_region: str | None = None
    initials: str | None = None
    first_name: str | None = None
    last_name: str | None = None
