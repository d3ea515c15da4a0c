"""ISO-8601 week arithmetic.

Week 1 is the week that contains January 4th, weeks start on Monday.
Week 1 can begin in the previous December and week 52/53 can run into
the following January.
"""

from datetime import date, timedelta

from app.core.exceptions import InvalidRequestError

MAX_ISO_WEEK = 53

# Week 53 of 9999 would run past date.max
MIN_YEAR = 1
MAX_YEAR = 9998


def week_start(iso_week: int, year: int) -> date:
    """Return the Monday of ``iso_week`` in ``year``."""
    if not 1 <= iso_week <= MAX_ISO_WEEK:
        raise InvalidRequestError(f"ISO week must be between 1 and {MAX_ISO_WEEK}, got {iso_week}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidRequestError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")

    jan4 = date(year, 1, 4)
    # isoweekday: Monday=1 .. Sunday=7
    week1_monday = jan4 - timedelta(days=jan4.isoweekday() - 1)
    return week1_monday + timedelta(weeks=iso_week - 1)


def resolve_week_dates(iso_week: int, year: int) -> list[date]:
    """Return the seven dates of an ISO week, Monday through Sunday."""
    monday = week_start(iso_week, year)
    return [monday + timedelta(days=offset) for offset in range(7)]


def resolve_workdays(iso_week: int, year: int) -> list[date]:
    """Return Monday through Friday of an ISO week."""
    return resolve_week_dates(iso_week, year)[:5]


def iso_week_of(day: date) -> tuple[int, int]:
    """Return ``(iso_year, iso_week)`` for a date.

    The ISO year differs from the calendar year around New Year,
    e.g. 2024-12-30 belongs to week 1 of 2025.
    """
    iso_year, iso_week, _ = day.isocalendar()
    return iso_year, iso_week


def date_range(start: date, end: date):
    """Yield all dates between start and end (inclusive)."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)
