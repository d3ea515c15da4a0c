"""Duty Assignments router.

Endpoints for planning weekend, late shift and early shift duties per team
and ISO week. Reads are open to every authenticated user, writes require
the admin or planner role.
"""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, require_planner
from app.database import get_db
from app.models.duty_assignment import DUTY_TYPES
from app.schemas.duty_assignment import (
    CandidateResponse,
    DutyAssignmentCreate,
    DutyAssignmentResponse,
    DutyAssignmentUpdate,
    DutySlotResponse,
    DutyType,
    RosterEntryResponse,
    TeamMemberResponse,
)
from app.services import duty_service

router = APIRouter(prefix="/duty-assignments", tags=["Duty Assignments"])

# Body field -> field name understood by duty_service.update_assignment
_PATCH_FIELDS = {
    "user_id": "user",
    "responsibility_region": "region",
    "is_substitute": "is_substitute",
}


@router.get("", response_model=list[DutySlotResponse])
async def list_assignments(
    db: Annotated[AsyncSession, Depends(get_db)],
    team_ids: Annotated[list[uuid.UUID], Query(min_length=1)],
    week: int = Query(..., description="ISO week number (1-53)"),
    year: int = Query(..., description="ISO week-numbering year"),
    current_user=Depends(get_current_user),
):
    """Assignments of one week grouped by date and duty type."""
    return await duty_service.list_assignments(db, team_ids, week, year)


@router.post("", response_model=DutyAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    body: DutyAssignmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Create an empty duty slot. The holder is set afterwards via PATCH."""
    return await duty_service.add_assignment(
        db,
        team_id=body.team_id,
        day=body.date,
        duty_type=body.duty_type,
        created_by=current_user.user_id,
        notes=body.notes,
    )


@router.get("/candidates", response_model=list[CandidateResponse])
async def list_candidates(
    db: Annotated[AsyncSession, Depends(get_db)],
    team_ids: Annotated[list[uuid.UUID], Query(min_length=1)],
    day: date = Query(..., alias="date"),
    duty_type: DutyType = Query(...),
    current_user=Depends(get_current_user),
):
    """People scheduled on a date with a shift matching the duty type."""
    return await duty_service.list_scheduled_candidates(db, team_ids, day, duty_type)


@router.get("/members", response_model=list[TeamMemberResponse])
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    team_ids: Annotated[list[uuid.UUID], Query(min_length=1)],
    current_user=Depends(get_current_user),
):
    """Members of the given teams, for manual assignment pickers."""
    return await duty_service.list_team_members(db, team_ids)


@router.get("/roster", response_model=list[RosterEntryResponse])
async def get_roster(
    db: Annotated[AsyncSession, Depends(get_db)],
    team_ids: Annotated[list[uuid.UUID], Query(min_length=1)],
    week: int = Query(...),
    year: int = Query(...),
    duty_types: Annotated[list[DutyType] | None, Query()] = None,
    current_user=Depends(get_current_user),
):
    """Who holds which duty each day, manual assignments first."""
    return await duty_service.build_weekly_roster(
        db, team_ids, week, year, duty_types or DUTY_TYPES,
    )


@router.patch("/{assignment_id}", response_model=DutyAssignmentResponse)
async def update_assignment(
    assignment_id: uuid.UUID,
    body: DutyAssignmentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Write the fields present in the body. ``null`` clears a field."""
    assignment = None
    for attribute, value in body.model_dump(exclude_unset=True).items():
        assignment = await duty_service.update_assignment(
            db, assignment_id, _PATCH_FIELDS[attribute], value,
        )
    if assignment is None:
        assignment = await duty_service.get_assignment(db, assignment_id)
    return assignment


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Remove a duty assignment."""
    await duty_service.remove_assignment(db, assignment_id)
