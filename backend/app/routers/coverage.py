"""Coverage router.

Staffing coverage of a team or a planning partnership over a date range,
and the what-if impact of one person's absence.
"""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.core.exceptions import InvalidRequestError
from app.database import get_db
from app.schemas.coverage import AbsenceImpact, AbsenceImpactRequest, CoverageAnalysis
from app.services import coverage_service
from app.services.week_dates import resolve_week_dates

router = APIRouter(prefix="/coverage", tags=["Coverage"])


def _resolve_range(
    start_date: date | None,
    end_date: date | None,
    week: int | None,
    year: int | None,
) -> tuple[date, date]:
    """Accept either an explicit range or an ISO week, not both."""
    if week is not None or year is not None:
        if start_date is not None or end_date is not None:
            raise InvalidRequestError("Pass either start_date/end_date or week/year")
        if week is None or year is None:
            raise InvalidRequestError("week and year must be given together")
        dates = resolve_week_dates(week, year)
        return dates[0], dates[-1]

    if start_date is None or end_date is None:
        raise InvalidRequestError("start_date and end_date are required")
    return start_date, end_date


@router.get("/teams/{team_id}", response_model=CoverageAnalysis)
async def team_coverage(
    team_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    week: int | None = Query(None),
    year: int | None = Query(None),
    threshold: int | None = Query(None, ge=0, le=100),
    current_user=Depends(get_current_user),
):
    """Coverage of a single team against its own capacity policy."""
    start, end = _resolve_range(start_date, end_date, week, year)
    scope = await coverage_service.load_team_scope(db, team_id)
    return await coverage_service.analyze_coverage(db, scope, start, end, threshold)


@router.get("/partnerships/{partnership_id}", response_model=CoverageAnalysis)
async def partnership_coverage(
    partnership_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    week: int | None = Query(None),
    year: int | None = Query(None),
    threshold: int | None = Query(None, ge=0, le=100),
    current_user=Depends(get_current_user),
):
    """Coverage of all partner teams summed against the shared policy."""
    start, end = _resolve_range(start_date, end_date, week, year)
    scope = await coverage_service.load_partnership_scope(db, partnership_id)
    return await coverage_service.analyze_coverage(db, scope, start, end, threshold)


@router.post("/impact", response_model=AbsenceImpact)
async def absence_impact(
    body: AbsenceImpactRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(get_current_user),
):
    """Warn when taking ``user_id`` off ``dates`` would leave the scope short."""
    return await coverage_service.analyze_absence_impact(
        db, body.team_id, body.user_id, body.dates,
    )
