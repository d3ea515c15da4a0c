"""Shared fixtures for the duty roster backend tests.

Uses SQLite (aiosqlite) by default, no PostgreSQL required.
Set TEST_DATABASE_URL to override (e.g. for CI with real PostgreSQL).
"""

import os
import uuid
from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from app.core.exceptions import HolidayProviderError  # noqa: E402
from app.database import Base  # noqa: E402
from app.schemas.holiday import ProviderResult  # noqa: E402

# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

_engine_kwargs = {}
if TEST_DATABASE_URL.startswith("sqlite"):
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }

_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs)
_TestSession = async_sessionmaker(
    bind=_engine, class_=AsyncSession, expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop tables
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="session", autouse=True)
async def _setup_tables():
    import app.models  # noqa: F401  populate Base.metadata

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await _engine.dispose()


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from app.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# Per-test session. The import service commits, so rows are deleted
# afterwards instead of rolled back.
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session():
    async with _TestSession() as session:
        yield session
        await session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()


# ---------------------------------------------------------------------------
# Fake holiday provider
# ---------------------------------------------------------------------------

class FakeHolidayProvider:
    """Records calls; returns canned results or raises per region.

    ``results`` and ``errors`` are keyed by region code (``None`` for a
    national import).
    """

    def __init__(self):
        self.calls: list[tuple[str, int, str | None]] = []
        self.results: dict[str | None, ProviderResult] = {}
        self.errors: dict[str | None, Exception] = {}

    async def import_holidays(self, db, country_code, year, region_code):
        self.calls.append((country_code, year, region_code))
        if region_code in self.errors:
            raise self.errors[region_code]
        return self.results.get(region_code, ProviderResult(imported=3, existing=0))

    def fail(self, region_code: str | None, message: str = "Failed to fetch holidays: Service Unavailable (503)"):
        self.errors[region_code] = HolidayProviderError(message)


@pytest.fixture()
def fake_provider():
    return FakeHolidayProvider()


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(db_session: AsyncSession, fake_provider: FakeHolidayProvider):
    from app.core.dependencies import get_holiday_provider
    from app.database import get_db
    from app.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_holiday_provider] = lambda: fake_provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------

class Factory:
    """Small builders for rows the services only read."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def profile(
        self,
        first_name: str = "Erika",
        last_name: str = "Muster",
        role: str = "teammember",
        country_code: str | None = "DE",
        region_code: str | None = None,
    ):
        from app.models.team import Profile

        profile = Profile(
            user_id=uuid.uuid4(),
            first_name=first_name,
            last_name=last_name,
            initials=(first_name[:1] + last_name[:1]).upper(),
            role=role,
            country_code=country_code,
            region_code=region_code,
        )
        self.db.add(profile)
        await self.db.flush()
        return profile

    async def team(self, name: str = "Support", members=()):
        from app.models.team import Team, TeamMember

        team = Team(name=name)
        self.db.add(team)
        await self.db.flush()
        for profile in members:
            self.db.add(TeamMember(team_id=team.id, user_id=profile.user_id))
        await self.db.flush()
        return team

    async def partnership(self, name: str, teams):
        from app.models.partnership import PlanningPartnership

        partnership = PlanningPartnership(
            partnership_name=name, team_ids=[team.id for team in teams],
        )
        self.db.add(partnership)
        await self.db.flush()
        return partnership

    async def schedule(
        self,
        team,
        profile,
        day: date,
        shift_type: str = "normal",
        availability_status: str = "available",
        activity_type: str = "work",
    ):
        from app.models.schedule import ScheduleEntry

        entry = ScheduleEntry(
            team_id=team.id,
            user_id=profile.user_id,
            date=day,
            shift_type=shift_type,
            availability_status=availability_status,
            activity_type=activity_type,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def holiday(self, day: date, name: str, country_code: str = "DE", region_code: str | None = None):
        from app.models.holiday import Holiday

        holiday = Holiday(
            country_code=country_code,
            year=day.year,
            date=day,
            name=name,
            region_code=region_code,
            is_public=True,
        )
        self.db.add(holiday)
        await self.db.flush()
        return holiday


@pytest.fixture()
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


# ---------------------------------------------------------------------------
# Convenience: authenticated users
# ---------------------------------------------------------------------------

def _auth_headers(profile) -> dict[str, str]:
    from app.core.security import create_access_token

    token = create_access_token({"sub": str(profile.user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def planner(factory: Factory):
    """A planner profile and its bearer headers. Keys: profile, headers."""
    profile = await factory.profile("Paula", "Planer", role="planner")
    return {"profile": profile, "headers": _auth_headers(profile)}


@pytest_asyncio.fixture()
async def member(factory: Factory):
    """A plain team member (read-only) and its bearer headers."""
    profile = await factory.profile("Tom", "Mitglied", role="teammember")
    return {"profile": profile, "headers": _auth_headers(profile)}
