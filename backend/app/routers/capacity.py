"""Capacity router.

Staffing policies (minimum, optional maximum, weekend handling) per team
and per planning partnership. Writes require the admin or planner role.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, require_planner
from app.database import get_db
from app.schemas.capacity import (
    CapacityConfigUpsert,
    PartnershipCapacityResponse,
    TeamCapacityResponse,
)
from app.services import capacity_service

router = APIRouter(prefix="/capacity", tags=["Capacity"])


@router.get("/teams/{team_id}", response_model=TeamCapacityResponse)
async def get_team_capacity(
    team_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(get_current_user),
):
    config = await capacity_service.get_team_capacity(db, team_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No capacity config for this team",
        )
    return config


@router.put("/teams/{team_id}", response_model=TeamCapacityResponse)
async def save_team_capacity(
    team_id: uuid.UUID,
    body: CapacityConfigUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Create or replace the team's capacity policy."""
    return await capacity_service.save_team_capacity(
        db,
        team_id,
        min_staff_required=body.min_staff_required,
        max_staff_allowed=body.max_staff_allowed,
        applies_to_weekends=body.applies_to_weekends,
        notes=body.notes,
        created_by=current_user.user_id,
    )


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team_capacity(
    team_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Remove the policy; coverage falls back to the default minimum."""
    await capacity_service.delete_team_capacity(db, team_id)


@router.get("/partnerships/{partnership_id}", response_model=PartnershipCapacityResponse)
async def get_partnership_capacity(
    partnership_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(get_current_user),
):
    config = await capacity_service.get_partnership_capacity(db, partnership_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No capacity config for this partnership",
        )
    return config


@router.put("/partnerships/{partnership_id}", response_model=PartnershipCapacityResponse)
async def save_partnership_capacity(
    partnership_id: uuid.UUID,
    body: CapacityConfigUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    """Create or replace the shared policy of a partnership."""
    return await capacity_service.save_partnership_capacity(
        db,
        partnership_id,
        min_staff_required=body.min_staff_required,
        max_staff_allowed=body.max_staff_allowed,
        applies_to_weekends=body.applies_to_weekends,
        notes=body.notes,
        created_by=current_user.user_id,
    )


@router.delete("/partnerships/{partnership_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_partnership_capacity(
    partnership_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user=Depends(require_planner),
):
    await capacity_service.delete_partnership_capacity(db, partnership_id)
