"""Capacity Service.

One staffing policy per team and one per planning partnership. Saving is
an upsert on the owner id.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidRequestError, NotFoundError
from app.models.capacity import PartnershipCapacityConfig, TeamCapacityConfig
from app.models.partnership import PlanningPartnership
from app.models.team import Team

logger = logging.getLogger(__name__)


def _validate(min_staff_required: int, max_staff_allowed: int | None) -> None:
    if min_staff_required < 1:
        raise InvalidRequestError("min_staff_required must be at least 1")
    if max_staff_allowed is not None and max_staff_allowed < min_staff_required:
        raise InvalidRequestError("max_staff_allowed must be >= min_staff_required")


async def get_team_capacity(db: AsyncSession, team_id: uuid.UUID) -> TeamCapacityConfig | None:
    result = await db.execute(
        select(TeamCapacityConfig).where(TeamCapacityConfig.team_id == team_id)
    )
    return result.scalar_one_or_none()


async def get_partnership_capacity(
    db: AsyncSession, partnership_id: uuid.UUID,
) -> PartnershipCapacityConfig | None:
    result = await db.execute(
        select(PartnershipCapacityConfig).where(
            PartnershipCapacityConfig.partnership_id == partnership_id
        )
    )
    return result.scalar_one_or_none()


async def save_team_capacity(
    db: AsyncSession,
    team_id: uuid.UUID,
    min_staff_required: int,
    max_staff_allowed: int | None = None,
    applies_to_weekends: bool = False,
    notes: str | None = None,
    created_by: uuid.UUID | None = None,
) -> TeamCapacityConfig:
    """Create or replace the capacity policy of a team."""
    _validate(min_staff_required, max_staff_allowed)
    if await db.get(Team, team_id) is None:
        raise NotFoundError("Team not found")

    config = await get_team_capacity(db, team_id)
    if config is None:
        config = TeamCapacityConfig(team_id=team_id, created_by=created_by)
        db.add(config)

    config.min_staff_required = min_staff_required
    config.max_staff_allowed = max_staff_allowed
    config.applies_to_weekends = applies_to_weekends
    config.notes = notes
    await db.flush()
    await db.refresh(config)

    logger.info("Team capacity saved: team=%s min=%d max=%s", team_id, min_staff_required, max_staff_allowed)
    return config


async def save_partnership_capacity(
    db: AsyncSession,
    partnership_id: uuid.UUID,
    min_staff_required: int,
    max_staff_allowed: int | None = None,
    applies_to_weekends: bool = False,
    notes: str | None = None,
    created_by: uuid.UUID | None = None,
) -> PartnershipCapacityConfig:
    """Create or replace the shared capacity policy of a partnership."""
    _validate(min_staff_required, max_staff_allowed)
    if await db.get(PlanningPartnership, partnership_id) is None:
        raise NotFoundError("Partnership not found")

    config = await get_partnership_capacity(db, partnership_id)
    if config is None:
        config = PartnershipCapacityConfig(partnership_id=partnership_id, created_by=created_by)
        db.add(config)

    config.min_staff_required = min_staff_required
    config.max_staff_allowed = max_staff_allowed
    config.applies_to_weekends = applies_to_weekends
    config.notes = notes
    await db.flush()
    await db.refresh(config)

    logger.info(
        "Partnership capacity saved: partnership=%s min=%d max=%s",
        partnership_id, min_staff_required, max_staff_allowed,
    )
    return config


async def delete_team_capacity(db: AsyncSession, team_id: uuid.UUID) -> None:
    config = await get_team_capacity(db, team_id)
    if config is None:
        raise NotFoundError("No capacity config for this team")
    await db.delete(config)
    await db.flush()


async def delete_partnership_capacity(db: AsyncSession, partnership_id: uuid.UUID) -> None:
    config = await get_partnership_capacity(db, partnership_id)
    if config is None:
        raise NotFoundError("No capacity config for this partnership")
    await db.delete(config)
    await db.flush()
