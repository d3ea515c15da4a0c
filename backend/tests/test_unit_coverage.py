"""Coverage analysis: pure evaluation plus database-backed scopes."""

import os
import uuid
from datetime import date, timedelta

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from app.core.exceptions import InvalidRequestError, NotFoundError
from app.schemas.coverage import CapacityPolicy, CoverageScope
from app.services import capacity_service, coverage_service
from app.services.coverage_service import evaluate_coverage

MONDAY = date(2024, 1, 8)
FRIDAY = date(2024, 1, 12)
SUNDAY = date(2024, 1, 14)


def _scope(name: str = "Support") -> CoverageScope:
    team_id = uuid.uuid4()
    return CoverageScope(kind="team", id=team_id, name=name, team_ids=[team_id])


def _week(counts: list[int], start: date = MONDAY) -> dict[date, int]:
    return {start + timedelta(days=i): count for i, count in enumerate(counts)}


# ── Pure evaluation ─────────────────────────────────────────────────────────


class TestEvaluateCoverage:
    def test_partial_week(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=2),
            MONDAY, FRIDAY, _week([2, 1, 2, 2, 0]),
        )
        assert result.total_days == 5
        assert result.covered_days == 3
        assert result.coverage_percentage == 60
        assert [(g.date, g.deficit) for g in result.gaps] == [
            (date(2024, 1, 9), 1),
            (date(2024, 1, 12), 2),
        ]
        assert all(g.kind == "understaffed" for g in result.gaps)

    def test_gaps_carry_scope_identity(self):
        scope = _scope("Network Ops")
        result = evaluate_coverage(
            scope, CapacityPolicy(min_staff_required=1), MONDAY, MONDAY, {},
        )
        gap = result.gaps[0]
        assert gap.scope_id == scope.id
        assert gap.scope_name == "Network Ops"
        assert gap.required == 1
        assert gap.actual == 0

    def test_weekends_excluded_by_default(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1),
            MONDAY, SUNDAY, _week([1, 1, 1, 1, 1, 0, 0]),
        )
        assert result.total_days == 5
        assert result.coverage_percentage == 100
        assert result.gaps == []
        weekend_days = [d for d in result.days if d.is_weekend]
        assert len(weekend_days) == 2
        assert all(d.excluded and d.status == "excluded" for d in weekend_days)

    def test_weekends_counted_when_policy_applies(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1, applies_to_weekends=True),
            MONDAY, SUNDAY, _week([1, 1, 1, 1, 1, 0, 1]),
        )
        assert result.total_days == 7
        assert result.covered_days == 6
        assert result.coverage_percentage == 86
        assert result.gaps[0].is_weekend is True

    def test_holidays_excluded(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=2),
            MONDAY, FRIDAY, _week([2, 2, 0, 2, 2]),
            holidays=[date(2024, 1, 10)],
        )
        assert result.total_days == 4
        assert result.coverage_percentage == 100
        holiday = next(d for d in result.days if d.date == date(2024, 1, 10))
        assert holiday.is_holiday and holiday.excluded

    def test_overstaffing_reported_but_covered(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1, max_staff_allowed=2),
            MONDAY, MONDAY, _week([4]),
        )
        assert result.coverage_percentage == 100
        assert len(result.gaps) == 1
        assert result.gaps[0].kind == "overstaffed"
        assert result.gaps[0].excess == 2
        assert result.gaps[0].deficit == 0

    def test_percentage_rounds_half_up(self):
        # 1 of 8 days covered = 12.5 %
        start = date(2024, 1, 1)
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1, applies_to_weekends=True),
            start, start + timedelta(days=7), {start: 1},
        )
        assert result.coverage_percentage == 13

    def test_two_thirds(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1),
            MONDAY, date(2024, 1, 10), _week([1, 1, 0]),
        )
        assert result.coverage_percentage == 67

    def test_range_without_required_days_is_fully_covered(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=3),
            date(2024, 1, 13), SUNDAY, {},
        )
        assert result.total_days == 0
        assert result.coverage_percentage == 100
        assert result.below_threshold is False

    def test_threshold(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=2),
            MONDAY, FRIDAY, _week([2, 1, 2, 2, 0]), threshold=60,
        )
        assert result.threshold == 60
        assert result.below_threshold is False

        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=2),
            MONDAY, FRIDAY, _week([2, 1, 2, 2, 0]),
        )
        assert result.threshold == 90
        assert result.below_threshold is True

    def test_gaps_ordered_by_date(self):
        result = evaluate_coverage(
            _scope(), CapacityPolicy(min_staff_required=1, max_staff_allowed=1),
            MONDAY, FRIDAY, _week([0, 3, 0, 2, 0]),
        )
        dates = [g.date for g in result.gaps]
        assert dates == sorted(dates)
        assert len(dates) == 5


# ── Database-backed scopes ──────────────────────────────────────────────────


class TestAnalyzeCoverage:
    async def test_team_uses_default_policy_without_config(self, db_session, factory):
        alice = await factory.profile("Alice", "A")
        team = await factory.team("Support", [alice])
        await factory.schedule(team, alice, MONDAY)

        scope = await coverage_service.load_team_scope(db_session, team.id)
        result = await coverage_service.analyze_coverage(db_session, scope, MONDAY, FRIDAY)

        assert result.policy.is_default is True
        assert result.policy.min_staff_required == 1
        assert result.covered_days == 1
        assert result.coverage_percentage == 20

    async def test_only_scheduled_work_counts(self, db_session, factory):
        alice = await factory.profile("Alice", "A")
        bob = await factory.profile("Bob", "B")
        team = await factory.team("Support", [alice, bob])
        await factory.schedule(team, alice, MONDAY)
        await factory.schedule(team, bob, MONDAY, activity_type="vacation")
        await capacity_service.save_team_capacity(db_session, team.id, min_staff_required=2)

        scope = await coverage_service.load_team_scope(db_session, team.id)
        result = await coverage_service.analyze_coverage(db_session, scope, MONDAY, MONDAY)

        assert result.days[0].actual == 1
        assert result.gaps[0].deficit == 1

    async def test_partnership_sums_member_teams(self, db_session, factory):
        people = [await factory.profile(f"P{i}", "X") for i in range(3)]
        team_a = await factory.team("A", people[:2])
        team_b = await factory.team("B", people[2:])
        partnership = await factory.partnership("A+B", [team_a, team_b])
        await capacity_service.save_partnership_capacity(
            db_session, partnership.id, min_staff_required=3,
        )
        await factory.schedule(team_a, people[0], MONDAY)
        await factory.schedule(team_a, people[1], MONDAY)
        await factory.schedule(team_b, people[2], MONDAY)

        scope = await coverage_service.load_partnership_scope(db_session, partnership.id)
        result = await coverage_service.analyze_coverage(db_session, scope, MONDAY, MONDAY)

        assert scope.team_ids == [team_a.id, team_b.id]
        assert result.policy.min_staff_required == 3
        assert result.days[0].actual == 3
        assert result.coverage_percentage == 100

    async def test_regional_holiday_applies_only_to_matching_members(self, db_session, factory):
        holiday_day = MONDAY
        alice = await factory.profile("Alice", "A", region_code="BW")
        team = await factory.team("Stuttgart", [alice])
        other = await factory.profile("Bob", "B", region_code="HH")
        other_team = await factory.team("Hamburg", [other])
        await factory.holiday(holiday_day, "Regionaler Feiertag", region_code="BW")

        bw = await coverage_service.analyze_coverage(
            db_session, await coverage_service.load_team_scope(db_session, team.id),
            holiday_day, holiday_day,
        )
        hh = await coverage_service.analyze_coverage(
            db_session, await coverage_service.load_team_scope(db_session, other_team.id),
            holiday_day, holiday_day,
        )
        assert bw.days[0].is_holiday is True
        assert bw.total_days == 0
        assert hh.days[0].is_holiday is False
        assert hh.total_days == 1

    async def test_end_before_start_rejected(self, db_session, factory):
        team = await factory.team()
        scope = await coverage_service.load_team_scope(db_session, team.id)
        with pytest.raises(InvalidRequestError):
            await coverage_service.analyze_coverage(db_session, scope, FRIDAY, MONDAY)

    async def test_unknown_scope(self, db_session):
        with pytest.raises(NotFoundError):
            await coverage_service.load_team_scope(db_session, uuid.uuid4())
        with pytest.raises(NotFoundError):
            await coverage_service.load_partnership_scope(db_session, uuid.uuid4())


class TestAbsenceImpact:
    async def _team_with(self, factory, db_session, scheduled: int, min_staff: int):
        people = [await factory.profile(f"P{i}", "X") for i in range(scheduled)]
        team = await factory.team("Support", people)
        for person in people:
            await factory.schedule(team, person, MONDAY)
        await capacity_service.save_team_capacity(db_session, team.id, min_staff_required=min_staff)
        return team, people

    async def test_reaching_minimum_is_a_warning(self, db_session, factory):
        team, people = await self._team_with(factory, db_session, scheduled=3, min_staff=2)
        impact = await coverage_service.analyze_absence_impact(
            db_session, team.id, people[0].user_id, [MONDAY],
        )
        assert impact.has_impact is True
        assert impact.has_critical_impact is False
        warning = impact.warnings[0]
        assert (warning.current_staff, warning.remaining_staff, warning.required_staff) == (3, 2, 2)
        assert warning.percentage == 100

    async def test_dropping_below_minimum_is_critical(self, db_session, factory):
        team, people = await self._team_with(factory, db_session, scheduled=2, min_staff=2)
        impact = await coverage_service.analyze_absence_impact(
            db_session, team.id, people[0].user_id, [MONDAY],
        )
        assert impact.has_critical_impact is True
        assert impact.warnings[0].percentage == 50

    async def test_comfortable_staffing_has_no_impact(self, db_session, factory):
        team, people = await self._team_with(factory, db_session, scheduled=4, min_staff=2)
        impact = await coverage_service.analyze_absence_impact(
            db_session, team.id, people[0].user_id, [MONDAY],
        )
        assert impact.has_impact is False
        assert impact.warnings == []

    async def test_unscheduled_dates_are_ignored(self, db_session, factory):
        team, people = await self._team_with(factory, db_session, scheduled=1, min_staff=1)
        impact = await coverage_service.analyze_absence_impact(
            db_session, team.id, people[0].user_id, [FRIDAY],
        )
        assert impact.has_impact is False

    async def test_uses_enclosing_partnership(self, db_session, factory):
        alice = await factory.profile("Alice", "A")
        bob = await factory.profile("Bob", "B")
        team_a = await factory.team("A", [alice])
        team_b = await factory.team("B", [bob])
        partnership = await factory.partnership("A+B", [team_a, team_b])
        await factory.schedule(team_a, alice, MONDAY)
        await factory.schedule(team_b, bob, MONDAY)

        impact = await coverage_service.analyze_absence_impact(
            db_session, team_a.id, alice.user_id, [MONDAY],
        )
        assert impact.scope.kind == "partnership"
        assert impact.scope.id == partnership.id
        # Bob still covers the default minimum of one
        assert impact.warnings[0].remaining_staff == 1
        assert impact.has_critical_impact is False
