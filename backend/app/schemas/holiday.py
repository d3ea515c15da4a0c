import uuid
from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class HolidayImportRequest(BaseModel):
    country_code: str = Field(min_length=2, max_length=2)
    year: int
    regions: list[str] = Field(default_factory=list)


class ProviderResult(BaseModel):
    """What the holiday provider reports for one (country, year, region)."""

    imported: int = 0
    existing: int = 0


# ---------------------------------------------------------------------------
# Job state: one variant per status, each with only the fields valid for it
# ---------------------------------------------------------------------------


class _JobBase(BaseModel):
    id: uuid.UUID
    country_code: str
    year: int
    region_code: str | None = None
    started_at: datetime


class PendingImport(_JobBase):
    status: Literal["pending"] = "pending"


class CompletedImport(_JobBase):
    status: Literal["completed"] = "completed"
    imported_count: int
    completed_at: datetime


class FailedImport(_JobBase):
    status: Literal["failed"] = "failed"
    error_message: str
    completed_at: datetime


ImportJob = Annotated[
    PendingImport | CompletedImport | FailedImport,
    Field(discriminator="status"),
]


class RegionOutcome(BaseModel):
    region_code: str | None = None
    outcome: Literal["imported", "conflict", "error"]
    imported: int = 0
    existing: int = 0
    error_message: str | None = None


class ImportSummary(BaseModel):
    country_code: str
    year: int
    imported: int
    existing: int
    in_progress: int
    failed: int
    regions: list[RegionOutcome]


class AggregateStatus(BaseModel):
    country_code: str
    year: int
    status: Literal["pending", "completed", "none"]


class PendingCheck(BaseModel):
    any_pending: bool
    poll_interval_seconds: int


class HolidayDisplay(BaseModel):
    """Consolidated holiday: regional rows sharing (date, name) are merged."""

    date: date
    name: str
    country_code: str
    year: int
    is_public: bool
    regions: list[str] | None = None


class HolidayDeleteResult(BaseModel):
    country_code: str
    year: int
    deleted: int
