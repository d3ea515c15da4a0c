"""Duty Assignment Service.

CRUD and query layer over duty assignments (weekend, late shift and early
shift on-call slots) keyed by (team, date, duty type). Several rows may
share a key to model a primary holder plus backups.

Edits are last-write-wins: two planners editing the same slot silently
overwrite each other.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidRequestError, NotFoundError
from app.models.duty_assignment import DUTY_TYPES, DutyAssignment
from app.models.schedule import ScheduleEntry
from app.models.team import Profile, Team, TeamMember
from app.services.week_dates import iso_week_of, resolve_week_dates

logger = logging.getLogger(__name__)

# Schedule shift types that make someone a likely holder of a duty type
DUTY_SHIFT_TYPES: dict[str, tuple[str, ...]] = {
    "weekend": ("normal", "weekend"),
    "lateshift": ("late",),
    "earlyshift": ("early",),
}

# Public field names accepted by update_assignment -> model attribute
UPDATABLE_FIELDS = {
    "user": "user_id",
    "region": "responsibility_region",
    "is_substitute": "is_substitute",
}


def _require_teams(team_ids) -> list[uuid.UUID]:
    team_ids = list(dict.fromkeys(team_ids))
    if not team_ids:
        raise InvalidRequestError("At least one team is required")
    return team_ids


def _require_duty_type(duty_type: str) -> str:
    if duty_type not in DUTY_TYPES:
        raise InvalidRequestError(
            f"Invalid duty type {duty_type!r}. Allowed: {', '.join(DUTY_TYPES)}"
        )
    return duty_type


async def get_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> DutyAssignment:
    result = await db.execute(
        select(DutyAssignment).where(DutyAssignment.id == assignment_id)
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("Duty assignment not found")
    return assignment


async def list_assignments(
    db: AsyncSession,
    team_ids,
    iso_week: int,
    year: int,
) -> list[dict]:
    """List the assignments of one ISO week grouped by (date, duty_type).

    Passing the member teams of a partnership returns the union of their
    assignments.
    """
    team_ids = _require_teams(team_ids)
    week = resolve_week_dates(iso_week, year)

    result = await db.execute(
        select(DutyAssignment)
        .where(
            DutyAssignment.team_id.in_(team_ids),
            DutyAssignment.date >= week[0],
            DutyAssignment.date <= week[-1],
        )
        .order_by(DutyAssignment.date, DutyAssignment.duty_type, DutyAssignment.created_at)
    )

    groups: dict[tuple[date, str], list[DutyAssignment]] = defaultdict(list)
    for assignment in result.scalars().all():
        groups[(assignment.date, assignment.duty_type)].append(assignment)

    return [
        {"date": slot_date, "duty_type": duty_type, "assignments": rows}
        for (slot_date, duty_type), rows in groups.items()
    ]


async def add_assignment(
    db: AsyncSession,
    team_id: uuid.UUID,
    day: date,
    duty_type: str,
    created_by: uuid.UUID | None = None,
    notes: str | None = None,
) -> DutyAssignment:
    """Create an empty duty slot (no user yet) for a team, date and duty type."""
    _require_duty_type(duty_type)

    team = await db.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")

    iso_year, iso_week = iso_week_of(day)
    assignment = DutyAssignment(
        team_id=team_id,
        date=day,
        duty_type=duty_type,
        user_id=None,
        is_substitute=False,
        notes=notes,
        week_number=iso_week,
        year=iso_year,
        created_by=created_by,
    )
    db.add(assignment)
    await db.flush()
    await db.refresh(assignment)

    logger.info("Duty slot added: team=%s date=%s type=%s", team_id, day, duty_type)
    return assignment


async def update_assignment(
    db: AsyncSession,
    assignment_id: uuid.UUID,
    field: str,
    value,
) -> DutyAssignment:
    """Write a single field of an assignment.

    ``field`` is one of ``user``, ``region`` or ``is_substitute``. Only the
    existence of the assignment is checked.
    """
    attribute = UPDATABLE_FIELDS.get(field)
    if attribute is None:
        raise InvalidRequestError(
            f"Field {field!r} cannot be updated. Allowed: {', '.join(UPDATABLE_FIELDS)}"
        )

    assignment = await get_assignment(db, assignment_id)
    if attribute == "is_substitute":
        value = bool(value)
    setattr(assignment, attribute, value)
    await db.flush()
    await db.refresh(assignment)
    return assignment


async def remove_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> None:
    """Delete an assignment."""
    assignment = await get_assignment(db, assignment_id)
    await db.delete(assignment)
    await db.flush()
    logger.info("Duty slot removed: %s", assignment_id)


async def list_scheduled_candidates(
    db: AsyncSession,
    team_ids,
    day: date,
    duty_type: str,
) -> list[dict]:
    """Users already scheduled on ``day`` for a shift that matches the duty type."""
    team_ids = _require_teams(team_ids)
    shift_types = DUTY_SHIFT_TYPES[_require_duty_type(duty_type)]

    result = await db.execute(
        select(ScheduleEntry, Profile)
        .join(Profile, Profile.user_id == ScheduleEntry.user_id)
        .where(
            ScheduleEntry.team_id.in_(team_ids),
            ScheduleEntry.date == day,
            ScheduleEntry.shift_type.in_(shift_types),
            ScheduleEntry.is_scheduled(),
        )
        .order_by(Profile.last_name, Profile.first_name)
    )

    return [
        {
            "user_id": entry.user_id,
            "team_id": entry.team_id,
            "shift_type": entry.shift_type,
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "initials": profile.initials,
        }
        for entry, profile in result.all()
    ]


async def list_team_members(db: AsyncSession, team_ids) -> list[dict]:
    """Members of the given teams with their display names."""
    team_ids = _require_teams(team_ids)
    result = await db.execute(
        select(TeamMember.team_id, Profile)
        .join(Profile, Profile.user_id == TeamMember.user_id)
        .where(TeamMember.team_id.in_(team_ids))
        .order_by(Profile.last_name, Profile.first_name)
    )
    return [
        {
            "user_id": profile.user_id,
            "team_id": team_id,
            "first_name": profile.first_name,
            "last_name": profile.last_name,
            "initials": profile.initials,
        }
        for team_id, profile in result.all()
    ]


async def build_weekly_roster(
    db: AsyncSession,
    team_ids,
    iso_week: int,
    year: int,
    duty_types=DUTY_TYPES,
) -> list[dict]:
    """Who holds which duty on each day of a week.

    Manual assignments win: if any row exists for (date, team, duty type),
    only those rows with a user are reported. Otherwise every scheduled
    person with a matching shift is reported with ``source="schedule"``.
    Weekend duty only exists on Saturday and Sunday.
    """
    team_ids = _require_teams(team_ids)
    for duty_type in duty_types:
        _require_duty_type(duty_type)
    week = resolve_week_dates(iso_week, year)

    manual_result = await db.execute(
        select(DutyAssignment)
        .where(
            DutyAssignment.team_id.in_(team_ids),
            DutyAssignment.date >= week[0],
            DutyAssignment.date <= week[-1],
        )
        .order_by(DutyAssignment.created_at)
    )
    manual: dict[tuple, list[DutyAssignment]] = defaultdict(list)
    for assignment in manual_result.scalars().all():
        manual[(assignment.date, assignment.team_id, assignment.duty_type)].append(assignment)

    schedule_result = await db.execute(
        select(ScheduleEntry).where(
            ScheduleEntry.team_id.in_(team_ids),
            ScheduleEntry.date >= week[0],
            ScheduleEntry.date <= week[-1],
            ScheduleEntry.is_scheduled(),
        )
    )
    scheduled: dict[tuple, list[ScheduleEntry]] = defaultdict(list)
    for entry in schedule_result.scalars().all():
        scheduled[(entry.date, entry.team_id)].append(entry)

    roster: list[dict] = []
    for day in week:
        is_weekend = day.weekday() >= 5
        for team_id in team_ids:
            for duty_type in duty_types:
                if duty_type == "weekend" and not is_weekend:
                    continue

                key = (day, team_id, duty_type)
                if key in manual:
                    for assignment in manual[key]:
                        if assignment.user_id is None:
                            continue
                        roster.append({
                            "date": day,
                            "team_id": team_id,
                            "duty_type": duty_type,
                            "user_id": assignment.user_id,
                            "source": "manual",
                            "is_substitute": assignment.is_substitute,
                            "responsibility_region": assignment.responsibility_region,
                        })
                    continue

                for entry in scheduled[(day, team_id)]:
                    if entry.shift_type not in DUTY_SHIFT_TYPES[duty_type]:
                        continue
                    roster.append({
                        "date": day,
                        "team_id": team_id,
                        "duty_type": duty_type,
                        "user_id": entry.user_id,
                        "source": "schedule",
                        "is_substitute": False,
                        "responsibility_region": None,
                    })

    user_ids = {item["user_id"] for item in roster}
    if user_ids:
        profiles = (await db.execute(
            select(Profile).where(Profile.user_id.in_(user_ids))
        )).scalars().all()
        by_id = {p.user_id: p for p in profiles}
        for item in roster:
            profile = by_id.get(item["user_id"])
            item["initials"] = profile.initials if profile else None
            item["first_name"] = profile.first_name if profile else None
            item["last_name"] = profile.last_name if profile else None

    return roster
