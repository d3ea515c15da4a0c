"""Nager.Date provider: HTTP handling, filtering and idempotent upsert."""

import os

import httpx
import pytest
from sqlalchemy import func, select

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from app.core.exceptions import HolidayProviderError
from app.models.holiday import Holiday
from app.services import holiday_provider
from app.services.holiday_provider import NagerDateProvider, prepare_holidays

GERMANY_2026 = [
    {"date": "2026-01-01", "localName": "Neujahr", "name": "New Year's Day",
     "global": True, "counties": None, "types": ["Public"]},
    {"date": "2026-01-06", "localName": "Heilige Drei Könige", "name": "Epiphany",
     "global": False, "counties": ["DE-BW", "DE-BY", "DE-ST"], "types": ["Public"]},
    {"date": "2026-06-04", "localName": "Fronleichnam", "name": "Corpus Christi",
     "global": False, "counties": ["DE-BW", "DE-BY", "DE-HE", "DE-NW", "DE-RP", "DE-SL"],
     "types": ["Public"]},
    {"date": "2026-10-31", "localName": "Reformationstag", "name": "Reformation Day",
     "global": False, "counties": None, "types": ["Public"]},
    {"date": "2026-02-14", "localName": "Valentinstag", "name": "Valentine's Day",
     "global": False, "counties": None, "types": ["Observance"]},
]


@pytest.fixture()
def mock_http(monkeypatch):
    """Route the provider's httpx client through a MockTransport handler."""
    real_client = httpx.AsyncClient

    def install(handler):
        monkeypatch.setattr(
            holiday_provider.httpx, "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

    return install


@pytest.fixture()
def germany(monkeypatch):
    async def _fetch(country_code, year):
        return GERMANY_2026

    monkeypatch.setattr(holiday_provider, "fetch_public_holidays", _fetch)


# ── HTTP ─────────────────────────────────────────────────────────────────────


class TestFetchPublicHolidays:
    async def test_requests_country_and_year(self, mock_http):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=GERMANY_2026[:1])

        mock_http(handler)
        holidays = await holiday_provider.fetch_public_holidays("DE", 2026)

        assert seen == ["/api/v3/PublicHolidays/2026/DE"]
        assert holidays[0]["localName"] == "Neujahr"

    async def test_http_error_message(self, mock_http):
        mock_http(lambda request: httpx.Response(503))
        with pytest.raises(HolidayProviderError) as exc_info:
            await holiday_provider.fetch_public_holidays("DE", 2026)
        assert exc_info.value.message == "Failed to fetch holidays: Service Unavailable (503)"

    async def test_transport_error(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        mock_http(handler)
        with pytest.raises(HolidayProviderError):
            await holiday_provider.fetch_public_holidays("DE", 2026)

    async def test_no_content_means_no_holidays(self, mock_http):
        mock_http(lambda request: httpx.Response(204))
        assert await holiday_provider.fetch_public_holidays("DE", 2040) == []


# ── Filtering ────────────────────────────────────────────────────────────────


class TestPrepareHolidays:
    def test_national_import_keeps_only_global(self):
        rows = prepare_holidays(GERMANY_2026, "DE", 2026, None)
        assert [(r["name"], r["region_code"]) for r in rows] == [("Neujahr", None)]

    def test_region_from_counties(self):
        rows = prepare_holidays(GERMANY_2026, "DE", 2026, "BW")
        assert [(r["name"], r["region_code"]) for r in rows] == [
            ("Neujahr", None),
            ("Heilige Drei Könige", "BW"),
            ("Fronleichnam", "BW"),
        ]

    def test_german_fallback_without_counties(self):
        rows = prepare_holidays(GERMANY_2026, "DE", 2026, "HH")
        assert [(r["name"], r["region_code"]) for r in rows] == [
            ("Neujahr", None),
            ("Reformationstag", "HH"),
        ]

    def test_observances_dropped(self):
        raw = [
            {"date": "2026-12-24", "localName": "Julafton", "global": True, "types": ["Public"]},
            {"date": "2026-12-25", "localName": "Juldagen", "global": True, "types": ["Public"]},
        ]
        rows = prepare_holidays(raw, "SE", 2026, None)
        assert [r["name"] for r in rows] == ["Juldagen"]

    def test_rows_are_centrally_managed(self):
        row = prepare_holidays(GERMANY_2026, "DE", 2026, None)[0]
        assert row["user_id"] is None
        assert row["is_public"] is True
        assert row["year"] == 2026


# ── Upsert ───────────────────────────────────────────────────────────────────


class TestNagerDateProvider:
    async def _count(self, db_session) -> int:
        return (await db_session.execute(select(func.count(Holiday.id)))).scalar_one()

    async def test_import_is_idempotent(self, db_session, germany):
        provider = NagerDateProvider()

        first = await provider.import_holidays(db_session, "DE", 2026, "BW")
        second = await provider.import_holidays(db_session, "DE", 2026, "BW")

        assert (first.imported, first.existing) == (3, 0)
        assert (second.imported, second.existing) == (0, 3)
        assert await self._count(db_session) == 3

    async def test_second_region_reuses_national_rows(self, db_session, germany):
        provider = NagerDateProvider()
        await provider.import_holidays(db_session, "DE", 2026, "BW")

        result = await provider.import_holidays(db_session, "DE", 2026, "BY")

        assert (result.imported, result.existing) == (2, 1)
        regions = (await db_session.execute(
            select(Holiday.region_code).where(Holiday.name == "Fronleichnam")
        )).scalars().all()
        assert sorted(regions) == ["BW", "BY"]
