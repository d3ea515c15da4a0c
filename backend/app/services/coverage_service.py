"""Coverage Service.

Compares daily staffing of a scope (one team, or all teams of a planning
partnership summed together) against its capacity policy and reports
coverage percentage, gaps and per-day details.

Day rules:
- Weekends are excluded from the required days unless the policy
  ``applies_to_weekends``.
- Holidays for the scope's location are always excluded; staffing on a
  holiday is a bonus, not a requirement.
- A required day is covered when staffed >= min. Staffing above max is
  reported as an informational ``overstaffed`` gap and still counts as
  covered.
"""

import logging
import math
import uuid
from collections.abc import Iterable
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidRequestError, NotFoundError
from app.models.capacity import PartnershipCapacityConfig, TeamCapacityConfig
from app.models.holiday import Holiday
from app.models.partnership import PlanningPartnership
from app.models.schedule import ScheduleEntry
from app.models.team import Profile, Team, TeamMember
from app.schemas.coverage import (
    AbsenceImpact,
    CapacityPolicy,
    CoverageAnalysis,
    CoverageDay,
    CoverageGap,
    CoverageScope,
    ImpactWarning,
)
from app.services.week_dates import date_range

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> int:
    """Percentage rounded half-up."""
    return math.floor(part * 100 / whole + 0.5)


def default_policy() -> CapacityPolicy:
    return CapacityPolicy(
        min_staff_required=settings.DEFAULT_MIN_STAFF_REQUIRED,
        is_default=True,
    )


# ---------------------------------------------------------------------------
# Pure evaluation
# ---------------------------------------------------------------------------


def evaluate_coverage(
    scope: CoverageScope,
    policy: CapacityPolicy,
    start: date,
    end: date,
    staffing: dict[date, int],
    holidays: Iterable[date] = (),
    threshold: int | None = None,
) -> CoverageAnalysis:
    """Evaluate coverage for ``start``..``end`` from precomputed staffing counts.

    ``staffing`` maps a date to the number of distinct scheduled people in
    the scope; missing dates count as zero.
    """
    if threshold is None:
        threshold = settings.COVERAGE_THRESHOLD_PERCENT
    holiday_dates = set(holidays)

    gaps: list[CoverageGap] = []
    days: list[CoverageDay] = []
    total_days = 0
    covered_days = 0

    for day in date_range(start, end):
        actual = staffing.get(day, 0)
        is_weekend = day.weekday() >= 5
        is_holiday = day in holiday_dates
        excluded = is_holiday or (is_weekend and not policy.applies_to_weekends)
        required = policy.min_staff_required

        if excluded:
            days.append(CoverageDay(
                date=day, required=0, actual=actual, is_weekend=is_weekend,
                is_holiday=is_holiday, excluded=True, status="excluded",
            ))
            continue

        total_days += 1
        status = "covered"
        if actual >= required:
            covered_days += 1
            if policy.max_staff_allowed is not None and actual > policy.max_staff_allowed:
                status = "overstaffed"
                gaps.append(CoverageGap(
                    scope_id=scope.id, scope_name=scope.name, date=day,
                    kind="overstaffed", required=required, actual=actual,
                    deficit=0, excess=actual - policy.max_staff_allowed,
                    is_weekend=is_weekend, is_holiday=is_holiday,
                ))
        else:
            status = "understaffed"
            gaps.append(CoverageGap(
                scope_id=scope.id, scope_name=scope.name, date=day,
                kind="understaffed", required=required, actual=actual,
                deficit=max(0, required - actual),
                is_weekend=is_weekend, is_holiday=is_holiday,
            ))

        days.append(CoverageDay(
            date=day, required=required, actual=actual, is_weekend=is_weekend,
            is_holiday=is_holiday, excluded=False, status=status,
        ))

    # An empty range is vacuously fully covered
    percentage = _percent(covered_days, total_days) if total_days else 100

    return CoverageAnalysis(
        scope=scope,
        policy=policy,
        start_date=start,
        end_date=end,
        coverage_percentage=percentage,
        covered_days=covered_days,
        total_days=total_days,
        threshold=threshold,
        below_threshold=percentage < threshold,
        gaps=gaps,
        days=days,
    )


# ---------------------------------------------------------------------------
# Loading scopes, policies, staffing and holidays
# ---------------------------------------------------------------------------


async def load_team_scope(db: AsyncSession, team_id: uuid.UUID) -> CoverageScope:
    team = await db.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")
    return CoverageScope(kind="team", id=team.id, name=team.name, team_ids=[team.id])


async def load_partnership_scope(
    db: AsyncSession, partnership_id: uuid.UUID,
) -> CoverageScope:
    partnership = await db.get(PlanningPartnership, partnership_id)
    if partnership is None:
        raise NotFoundError("Partnership not found")
    return CoverageScope(
        kind="partnership",
        id=partnership.id,
        name=partnership.partnership_name,
        team_ids=list(partnership.team_ids),
    )


async def enclosing_scope(db: AsyncSession, team_id: uuid.UUID) -> CoverageScope:
    """The partnership a team plans with, or the team alone."""
    partnerships = (await db.execute(
        select(PlanningPartnership).order_by(PlanningPartnership.created_at)
    )).scalars().all()
    for partnership in partnerships:
        if team_id in partnership.team_ids:
            return CoverageScope(
                kind="partnership",
                id=partnership.id,
                name=partnership.partnership_name,
                team_ids=list(partnership.team_ids),
            )
    return await load_team_scope(db, team_id)


async def load_policy(db: AsyncSession, scope: CoverageScope) -> CapacityPolicy:
    """Capacity policy of a scope, or the default (min 1) when none is saved."""
    if scope.kind == "team":
        stmt = select(TeamCapacityConfig).where(TeamCapacityConfig.team_id == scope.id)
    else:
        stmt = select(PartnershipCapacityConfig).where(
            PartnershipCapacityConfig.partnership_id == scope.id
        )
    config = (await db.execute(stmt)).scalar_one_or_none()
    if config is None:
        return default_policy()
    return CapacityPolicy(
        min_staff_required=config.min_staff_required,
        max_staff_allowed=config.max_staff_allowed,
        applies_to_weekends=config.applies_to_weekends,
    )


async def count_staffing(
    db: AsyncSession,
    team_ids: list[uuid.UUID],
    start: date,
    end: date,
) -> dict[date, int]:
    """Distinct scheduled people per date across all ``team_ids``."""
    result = await db.execute(
        select(ScheduleEntry.date, func.count(ScheduleEntry.user_id.distinct()))
        .where(
            ScheduleEntry.team_id.in_(team_ids),
            ScheduleEntry.date >= start,
            ScheduleEntry.date <= end,
            ScheduleEntry.is_scheduled(),
        )
        .group_by(ScheduleEntry.date)
    )
    return {day: count for day, count in result.all()}


async def load_scope_holidays(
    db: AsyncSession,
    team_ids: list[uuid.UUID],
    start: date,
    end: date,
) -> set[date]:
    """Dates in range that are public holidays where the scope's members live.

    A centrally managed holiday applies to a member location when the
    country matches and the holiday is national or for the member's region.
    """
    locations = (await db.execute(
        select(Profile.country_code, Profile.region_code)
        .join(TeamMember, TeamMember.user_id == Profile.user_id)
        .where(
            TeamMember.team_id.in_(team_ids),
            Profile.country_code.is_not(None),
        )
        .distinct()
    )).all()
    if not locations:
        return set()

    countries = {country for country, _ in locations}
    holidays = (await db.execute(
        select(Holiday).where(
            Holiday.user_id.is_(None),
            Holiday.is_public.is_(True),
            Holiday.country_code.in_(countries),
            Holiday.date >= start,
            Holiday.date <= end,
        )
    )).scalars().all()

    matched: set[date] = set()
    for holiday in holidays:
        for country, region in locations:
            if holiday.country_code != country:
                continue
            if holiday.region_code is None or holiday.region_code == region:
                matched.add(holiday.date)
                break
    return matched


async def analyze_coverage(
    db: AsyncSession,
    scope: CoverageScope,
    start: date,
    end: date,
    threshold: int | None = None,
) -> CoverageAnalysis:
    """Coverage of a team or partnership scope over an inclusive date range."""
    if end < start:
        raise InvalidRequestError("end_date must not be before start_date")
    span = (end - start).days + 1
    if span > settings.COVERAGE_MAX_RANGE_DAYS:
        raise InvalidRequestError(
            f"Date range spans {span} days, at most {settings.COVERAGE_MAX_RANGE_DAYS} allowed"
        )

    policy = await load_policy(db, scope)
    staffing = await count_staffing(db, scope.team_ids, start, end)
    holidays = await load_scope_holidays(db, scope.team_ids, start, end)

    analysis = evaluate_coverage(scope, policy, start, end, staffing, holidays, threshold)
    if analysis.below_threshold:
        logger.info(
            "Coverage below threshold: %s %s %s..%s = %d%% (< %d%%)",
            scope.kind, scope.name, start, end,
            analysis.coverage_percentage, analysis.threshold,
        )
    return analysis


# ---------------------------------------------------------------------------
# What-if: one person absent
# ---------------------------------------------------------------------------


async def analyze_absence_impact(
    db: AsyncSession,
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    dates: list[date],
) -> AbsenceImpact:
    """Staffing effect of ``user_id`` being absent on ``dates``.

    Uses the partnership the team belongs to, if any. A date produces a
    warning when the user is scheduled there and their absence leaves the
    scope at or below the minimum; below the minimum is critical.
    """
    scope = await enclosing_scope(db, team_id)
    policy = await load_policy(db, scope)
    days = sorted(set(dates))
    holidays = await load_scope_holidays(db, scope.team_ids, days[0], days[-1])

    rows = (await db.execute(
        select(ScheduleEntry.date, ScheduleEntry.user_id).where(
            ScheduleEntry.team_id.in_(scope.team_ids),
            ScheduleEntry.date.in_(days),
            ScheduleEntry.is_scheduled(),
        )
    )).all()
    present: dict[date, set[uuid.UUID]] = {day: set() for day in days}
    for day, scheduled_user in rows:
        present[day].add(scheduled_user)

    warnings: list[ImpactWarning] = []
    required = policy.min_staff_required
    for day in days:
        if day in holidays or (day.weekday() >= 5 and not policy.applies_to_weekends):
            continue
        if user_id not in present[day]:
            continue

        current = len(present[day])
        remaining = current - 1
        if remaining > required:
            continue
        warnings.append(ImpactWarning(
            date=day,
            current_staff=current,
            remaining_staff=remaining,
            required_staff=required,
            percentage=_percent(remaining, required),
            is_critical=remaining < required,
        ))

    return AbsenceImpact(
        scope=scope,
        has_impact=bool(warnings),
        has_critical_impact=any(w.is_critical for w in warnings),
        warnings=warnings,
    )
