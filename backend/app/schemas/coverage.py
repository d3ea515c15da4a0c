import uuid
from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class CapacityPolicy(BaseModel):
    """Staffing policy applied to one scope (team or partnership)."""

    min_staff_required: int = Field(1, ge=1)
    max_staff_allowed: int | None = None
    applies_to_weekends: bool = False
    is_default: bool = False


class CoverageScope(BaseModel):
    """A set of teams whose staffing is summed against one policy."""

    kind: Literal["team", "partnership"]
    id: uuid.UUID
    name: str
    team_ids: list[uuid.UUID]


class CoverageGap(BaseModel):
    scope_id: uuid.UUID
    scope_name: str
    date: date
    kind: Literal["understaffed", "overstaffed"]
    required: int
    actual: int
    deficit: int
    excess: int = 0
    is_weekend: bool
    is_holiday: bool


class CoverageDay(BaseModel):
    date: date
    required: int
    actual: int
    is_weekend: bool
    is_holiday: bool
    excluded: bool
    status: Literal["covered", "understaffed", "overstaffed", "excluded"]


class CoverageAnalysis(BaseModel):
    scope: CoverageScope
    policy: CapacityPolicy
    start_date: date
    end_date: date
    coverage_percentage: int
    covered_days: int
    total_days: int
    threshold: int
    below_threshold: bool
    gaps: list[CoverageGap]
    days: list[CoverageDay]


class AbsenceImpactRequest(BaseModel):
    team_id: uuid.UUID
    user_id: uuid.UUID
    dates: list[date] = Field(min_length=1)


class ImpactWarning(BaseModel):
    date: date
    current_staff: int
    remaining_staff: int
    required_staff: int
    percentage: int
    is_critical: bool


class AbsenceImpact(BaseModel):
    scope: CoverageScope
    has_impact: bool
    has_critical_impact: bool
    warnings: list[ImpactWarning]
