"""Weeks router.

Resolves ISO-8601 weeks to calendar dates for the week pickers.
"""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user
from app.schemas.week import WeekResponse
from app.services.week_dates import resolve_week_dates

router = APIRouter(prefix="/weeks", tags=["Weeks"])


@router.get("/{year}/{week}", response_model=WeekResponse)
async def get_week(
    year: int,
    week: int,
    current_user=Depends(get_current_user),
):
    """Dates of an ISO week, Monday first, plus its workdays."""
    dates = resolve_week_dates(week, year)
    return WeekResponse(year=year, week=week, dates=dates, workdays=dates[:5])
