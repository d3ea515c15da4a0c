import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CapacityConfigUpsert(BaseModel):
    min_staff_required: int = Field(1, ge=1)
    max_staff_allowed: int | None = Field(None, ge=1)
    applies_to_weekends: bool = False
    notes: str | None = None

    @model_validator(mode="after")
    def _max_not_below_min(self):
        if self.max_staff_allowed is not None and self.max_staff_allowed < self.min_staff_required:
            raise ValueError("max_staff_allowed must be >= min_staff_required")
        return self


class TeamCapacityResponse(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    min_staff_required: int
    max_staff_allowed: int | None = None
    applies_to_weekends: bool
    notes: str | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PartnershipCapacityResponse(BaseModel):
    id: uuid.UUID
    partnership_id: uuid.UUID
    min_staff_required: int
    max_staff_allowed: int | None = None
    applies_to_weekends: bool
    notes: str | None = None
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)
