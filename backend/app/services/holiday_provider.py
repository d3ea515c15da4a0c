"""Holiday Provider.

Fetches public holidays from the Nager.Date API and upserts them as
centrally managed ``Holiday`` rows. An import for the same
(country, year, region) is idempotent: rows that already exist are
counted as ``existing`` and never duplicated.
"""

import logging
from datetime import date
from typing import Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import HolidayProviderError
from app.models.holiday import Holiday
from app.schemas.holiday import ProviderResult

logger = logging.getLogger(__name__)

SUPPORTED_COUNTRIES: dict[str, str] = {
    "DE": "Germany",
    "AT": "Austria",
    "BE": "Belgium",
    "BG": "Bulgaria",
    "HR": "Croatia",
    "CY": "Cyprus",
    "CZ": "Czech Republic",
    "DK": "Denmark",
    "EE": "Estonia",
    "FI": "Finland",
    "FR": "France",
    "GR": "Greece",
    "HU": "Hungary",
    "IE": "Ireland",
    "IT": "Italy",
    "LV": "Latvia",
    "LT": "Lithuania",
    "LU": "Luxembourg",
    "MT": "Malta",
    "NL": "Netherlands",
    "PL": "Poland",
    "PT": "Portugal",
    "RO": "Romania",
    "SK": "Slovakia",
    "SI": "Slovenia",
    "ES": "Spain",
    "SE": "Sweden",
    "CH": "Switzerland",
    "NO": "Norway",
    "IS": "Iceland",
    "GB": "United Kingdom",
    "US": "United States",
    "CA": "Canada",
    "AU": "Australia",
    "JP": "Japan",
}

# Countries whose sub-national holidays can be imported per region
SUPPORTED_REGIONS: dict[str, dict[str, str]] = {
    "DE": {
        "BW": "Baden-Württemberg",
        "BY": "Bavaria (Bayern)",
        "BE": "Berlin",
        "BB": "Brandenburg",
        "HB": "Bremen",
        "HH": "Hamburg",
        "HE": "Hesse (Hessen)",
        "MV": "Mecklenburg-Vorpommern",
        "NI": "Lower Saxony (Niedersachsen)",
        "NW": "North Rhine-Westphalia (Nordrhein-Westfalen)",
        "RP": "Rhineland-Palatinate (Rheinland-Pfalz)",
        "SL": "Saarland",
        "SN": "Saxony (Sachsen)",
        "ST": "Saxony-Anhalt (Sachsen-Anhalt)",
        "SH": "Schleswig-Holstein",
        "TH": "Thuringia (Thüringen)",
    },
}

# German state -> local names of its state-only holidays. Used when the
# provider entry carries no ``counties`` list.
GERMAN_REGIONAL_HOLIDAYS: dict[str, list[str]] = {
    "BW": ["Heilige Drei Könige", "Fronleichnam", "Allerheiligen"],
    "BY": ["Heilige Drei Könige", "Fronleichnam", "Mariä Himmelfahrt", "Allerheiligen"],
    "BE": ["Internationaler Frauentag"],
    "BB": ["Reformationstag"],
    "HB": ["Reformationstag"],
    "HH": ["Reformationstag"],
    "HE": ["Fronleichnam"],
    "MV": ["Reformationstag"],
    "NI": ["Reformationstag"],
    "NW": ["Fronleichnam", "Allerheiligen"],
    "RP": ["Fronleichnam", "Allerheiligen"],
    "SL": ["Fronleichnam", "Mariä Himmelfahrt", "Allerheiligen"],
    "SN": ["Reformationstag", "Buß- und Bettag"],
    "ST": ["Heilige Drei Könige", "Reformationstag"],
    "SH": ["Reformationstag"],
    "TH": ["Weltkindertag", "Reformationstag"],
}

# Observances the provider lists that are not official days off
EXCLUDED_OBSERVANCES: dict[str, list[str]] = {
    "SE": ["Julafton"],
    "US": ["Columbus Day"],
    "GB": ["Boxing Day"],
}


class HolidayProvider(Protocol):
    """Opaque, idempotent upsert of one (country, year, region) holiday set."""

    async def import_holidays(
        self,
        db: AsyncSession,
        country_code: str,
        year: int,
        region_code: str | None,
    ) -> ProviderResult: ...


async def fetch_public_holidays(country_code: str, year: int) -> list[dict]:
    """Fetch public holidays from the Nager.Date API.

    Returns:
        List of holiday dicts from the API (empty when the provider has
        no data for that year).

    Raises:
        HolidayProviderError: On HTTP or transport failure.
    """
    url = f"{settings.HOLIDAY_API_BASE_URL}/PublicHolidays/{year}/{country_code}"

    try:
        async with httpx.AsyncClient(timeout=settings.HOLIDAY_API_TIMEOUT_SECONDS) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise HolidayProviderError(
            f"Failed to fetch holidays: {exc.response.reason_phrase} ({exc.response.status_code})"
        ) from exc
    except httpx.HTTPError as exc:
        raise HolidayProviderError(f"Failed to fetch holidays: {exc}") from exc

    if response.status_code == httpx.codes.NO_CONTENT or not response.content:
        return []
    return response.json()


def _holiday_name(holiday: dict) -> str:
    return holiday.get("localName") or holiday.get("name") or "Holiday"


def _region_for(holiday: dict, country_code: str, region_code: str | None) -> tuple[bool, str | None]:
    """Decide whether a provider entry belongs to this import and its region.

    Returns ``(keep, region_code)``; national holidays get ``None``.
    """
    if holiday.get("global", True):
        return True, None
    if region_code is None:
        return False, None

    counties = holiday.get("counties") or []
    if counties:
        return f"{country_code}-{region_code}" in counties, region_code

    if country_code == "DE":
        name = _holiday_name(holiday)
        regional = GERMAN_REGIONAL_HOLIDAYS.get(region_code, [])
        if any(candidate in name for candidate in regional):
            return True, region_code
    return False, None


def prepare_holidays(
    raw: list[dict],
    country_code: str,
    year: int,
    region_code: str | None,
) -> list[dict]:
    """Filter provider entries to official holidays and map them to row values."""
    excluded = EXCLUDED_OBSERVANCES.get(country_code, [])
    prepared: dict[tuple, dict] = {}

    for holiday in raw:
        date_str = holiday.get("date")
        if not date_str:
            continue

        name = _holiday_name(holiday)
        if any(observance in name for observance in excluded):
            continue
        is_public = bool(holiday.get("global")) or "Public" in (holiday.get("types") or [])
        if not is_public:
            continue

        keep, holiday_region = _region_for(holiday, country_code, region_code)
        if not keep:
            continue

        holiday_date = date.fromisoformat(date_str)
        key = (holiday_date, name, holiday_region)
        prepared.setdefault(key, {
            "country_code": country_code,
            "year": year,
            "date": holiday_date,
            "name": name,
            "region_code": holiday_region,
            "is_public": True,
            "user_id": None,
        })

    return list(prepared.values())


async def upsert_holidays(
    db: AsyncSession,
    rows: list[dict],
    country_code: str,
    year: int,
) -> ProviderResult:
    """Insert rows not yet stored; count the rest as existing.

    Identity of a centrally managed holiday is (date, name, region_code)
    within its country and year.
    """
    result = await db.execute(
        select(Holiday.date, Holiday.name, Holiday.region_code).where(
            Holiday.country_code == country_code,
            Holiday.year == year,
            Holiday.user_id.is_(None),
        )
    )
    existing_keys = {tuple(row) for row in result.all()}

    imported = 0
    existing = 0
    for row in rows:
        key = (row["date"], row["name"], row["region_code"])
        if key in existing_keys:
            existing += 1
            continue
        db.add(Holiday(**row))
        existing_keys.add(key)
        imported += 1

    await db.flush()
    return ProviderResult(imported=imported, existing=existing)


class NagerDateProvider:
    """Holiday provider backed by https://date.nager.at."""

    async def import_holidays(
        self,
        db: AsyncSession,
        country_code: str,
        year: int,
        region_code: str | None,
    ) -> ProviderResult:
        raw = await fetch_public_holidays(country_code, year)
        rows = prepare_holidays(raw, country_code, year, region_code)
        result = await upsert_holidays(db, rows, country_code, year)
        logger.info(
            "Holidays %s/%d/%s: %d fetched, %d imported, %d existing",
            country_code, year, region_code or "national",
            len(raw), result.imported, result.existing,
        )
        return result
