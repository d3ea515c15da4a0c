"""Holidays router.

Imports public holidays from the external provider per country, year and
region, exposes the import job states for polling, and lists the stored
holidays consolidated for display.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.dependencies import get_current_user, get_holiday_provider, require_planner
from app.core.exceptions import HolidayProviderError, ImportInProgressError
from app.core.rate_limit import limiter
from app.database import get_db
from app.schemas.holiday import (
    AggregateStatus,
    HolidayDeleteResult,
    HolidayDisplay,
    HolidayImportRequest,
    ImportJob,
    ImportSummary,
    PendingCheck,
)
from app.services import holiday_import_service
from app.services.holiday_provider import HolidayProvider

router = APIRouter(tags=["Holidays"])


@router.post("/holiday-imports", response_model=ImportSummary)
@limiter.limit(settings.HOLIDAY_IMPORT_RATE_LIMIT)
async def start_import(
    request: Request,
    body: HolidayImportRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    provider: Annotated[HolidayProvider, Depends(get_holiday_provider)],
    current_user=Depends(require_planner),
):
    """Import one country and year, nationally or for each listed region.

    Regions are imported independently. The request fails as a whole only
    when no region could be imported: 409 when every region already has a
    pending import, 502 when every attempt failed at the provider.
    """
    summary = await holiday_import_service.import_regions(
        db,
        provider,
        body.country_code,
        body.year,
        body.regions,
        created_by=current_user.user_id,
    )

    outcomes = [region.outcome for region in summary.regions]
    if all(outcome == "conflict" for outcome in outcomes):
        raise ImportInProgressError(
            f"Import already in progress for {summary.country_code} {summary.year}"
        )
    if all(outcome == "error" for outcome in outcomes):
        raise HolidayProviderError(summary.regions[0].error_message or "Holiday import failed")
    return summary


@router.get("/holiday-imports", response_model=list[ImportJob])
async def list_imports(
    db: Annotated[AsyncSession, Depends(get_db)],
    country_code: str | None = Query(None, min_length=2, max_length=2),
    year: int | None = Query(None),
    current_user=Depends(get_current_user),
):
    """Import jobs, newest first. Stuck jobs are reclaimed before listing."""
    jobs = await holiday_import_service.list_statuses(db, country_code, year)
    return [holiday_import_service.to_job(job) for job in jobs]


@router.get("/holiday-imports/pending", response_model=PendingCheck)
async def check_pending(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(get_current_user),
):
    """Whether any import is still running; pollers stop once this is false."""
    return PendingCheck(
        any_pending=await holiday_import_service.any_pending(db),
        poll_interval_seconds=settings.HOLIDAY_POLL_INTERVAL_SECONDS,
    )


@router.get("/holiday-imports/summary", response_model=AggregateStatus)
async def import_summary(
    db: Annotated[AsyncSession, Depends(get_db)],
    country_code: str = Query(..., min_length=2, max_length=2),
    year: int = Query(...),
    current_user=Depends(get_current_user),
):
    aggregate = await holiday_import_service.aggregate_status(db, country_code, year)
    return AggregateStatus(country_code=country_code.upper(), year=year, status=aggregate)


@router.post("/holiday-imports/{job_id}/reset", response_model=ImportJob)
async def reset_import(
    job_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Mark a pending import as failed so it can be started again."""
    job = await holiday_import_service.reset_import(db, job_id)
    return holiday_import_service.to_job(job)


@router.get("/holidays", response_model=list[HolidayDisplay])
async def list_holidays(
    db: Annotated[AsyncSession, Depends(get_db)],
    country_code: str | None = Query(None, min_length=2, max_length=2),
    year: int | None = Query(None),
    current_user=Depends(get_current_user),
):
    """Public holidays with regional variants merged into one entry."""
    return await holiday_import_service.list_holidays(db, country_code, year)


@router.delete("/holidays", response_model=HolidayDeleteResult)
async def delete_holidays(
    db: Annotated[AsyncSession, Depends(get_db)],
    country_code: str = Query(..., min_length=2, max_length=2),
    year: int = Query(...),
    current_user=Depends(require_planner),
):
    deleted = await holiday_import_service.delete_holidays(db, country_code, year)
    return HolidayDeleteResult(country_code=country_code.upper(), year=year, deleted=deleted)
