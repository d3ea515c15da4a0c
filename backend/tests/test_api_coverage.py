"""Coverage endpoints."""

import uuid
from datetime import date

from app.services import capacity_service

BASE = "/api/v1/coverage"
MONDAY = date(2024, 1, 8)


class TestTeamCoverage:
    async def test_by_week(self, client, planner, factory, db_session):
        people = [await factory.profile(f"P{i}", "X") for i in range(2)]
        team = await factory.team("Support", people)
        await capacity_service.save_team_capacity(db_session, team.id, min_staff_required=2)
        for person in people:
            await factory.schedule(team, person, MONDAY)

        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "week": 2, "year": 2024,
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["start_date"] == "2024-01-08"
        assert body["end_date"] == "2024-01-14"
        assert body["total_days"] == 5
        assert body["covered_days"] == 1
        assert body["coverage_percentage"] == 20
        assert body["below_threshold"] is True
        assert len(body["gaps"]) == 4

    async def test_by_range_with_threshold(self, client, planner, factory):
        alice = await factory.profile()
        team = await factory.team("Support", [alice])
        await factory.schedule(team, alice, MONDAY)

        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "start_date": "2024-01-08", "end_date": "2024-01-09", "threshold": 50,
        })
        body = resp.json()
        assert body["coverage_percentage"] == 50
        assert body["threshold"] == 50
        assert body["below_threshold"] is False

    async def test_range_and_week_are_exclusive(self, client, planner, factory):
        team = await factory.team()
        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "start_date": "2024-01-08", "end_date": "2024-01-09", "week": 2, "year": 2024,
        })
        assert resp.status_code == 422

    async def test_range_required(self, client, planner, factory):
        team = await factory.team()
        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"])
        assert resp.status_code == 422

    async def test_range_longer_than_a_year_rejected(self, client, planner, factory):
        team = await factory.team()
        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "start_date": "2000-01-01", "end_date": "2024-12-31",
        })
        assert resp.status_code == 422
        assert "at most 366" in resp.json()["detail"]

    async def test_full_leap_year_allowed(self, client, planner, factory):
        team = await factory.team()
        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "start_date": "2024-01-01", "end_date": "2024-12-31",
        })
        assert resp.status_code == 200

    async def test_week_year_out_of_range(self, client, planner, factory):
        team = await factory.team()
        resp = await client.get(f"{BASE}/teams/{team.id}", headers=planner["headers"], params={
            "week": 1, "year": 10000,
        })
        assert resp.status_code == 422

    async def test_unknown_team(self, client, planner):
        resp = await client.get(f"{BASE}/teams/{uuid.uuid4()}", headers=planner["headers"], params={
            "week": 2, "year": 2024,
        })
        assert resp.status_code == 404


class TestPartnershipCoverage:
    async def test_sums_teams(self, client, member, factory):
        a, b = await factory.profile("A", "A"), await factory.profile("B", "B")
        team_a = await factory.team("A", [a])
        team_b = await factory.team("B", [b])
        partnership = await factory.partnership("A+B", [team_a, team_b])
        await factory.schedule(team_a, a, MONDAY)
        await factory.schedule(team_b, b, MONDAY)

        resp = await client.get(f"{BASE}/partnerships/{partnership.id}", headers=member["headers"], params={
            "start_date": "2024-01-08", "end_date": "2024-01-08",
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["scope"]["kind"] == "partnership"
        assert body["policy"]["is_default"] is True
        assert body["days"][0]["actual"] == 2


class TestAbsenceImpact:
    async def test_warns_when_minimum_reached(self, client, member, factory, db_session):
        people = [await factory.profile(f"P{i}", "X") for i in range(2)]
        team = await factory.team("Support", people)
        await capacity_service.save_team_capacity(db_session, team.id, min_staff_required=2)
        for person in people:
            await factory.schedule(team, person, MONDAY)

        resp = await client.post(f"{BASE}/impact", headers=member["headers"], json={
            "team_id": str(team.id),
            "user_id": str(people[0].user_id),
            "dates": ["2024-01-08", "2024-01-09"],
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["has_critical_impact"] is True
        assert [w["date"] for w in body["warnings"]] == ["2024-01-08"]

    async def test_dates_required(self, client, member, factory):
        team = await factory.team()
        resp = await client.post(f"{BASE}/impact", headers=member["headers"], json={
            "team_id": str(team.id), "user_id": str(uuid.uuid4()), "dates": [],
        })
        assert resp.status_code == 422
