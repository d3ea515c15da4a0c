"""Holiday Import Service.

Drives holiday imports per (country, year, region) through a small state
machine kept in ``holiday_import_status``:

    absent -> pending -> completed | failed

Completed and failed jobs may be imported again. At most one pending job
exists per identity: a second request while one is pending is a conflict.
The guard is optimistic (read, then write); a race that slips through is
harmless because the provider upsert is idempotent.

The provider call cannot be cancelled. A pending job older than
``HOLIDAY_IMPORT_TIMEOUT_MINUTES`` is reclaimed to failed by the periodic
sweep and on every status read, so a crashed worker never blocks a retry.
An attempt may only close the job it opened (same ``started_at``); an
outcome that arrives after the job was taken over is discarded.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    HolidayProviderError,
    ImportInProgressError,
    InvalidRequestError,
    NotFoundError,
)
from app.models.holiday import Holiday, HolidayImportStatus
from app.schemas.holiday import (
    CompletedImport,
    FailedImport,
    HolidayDisplay,
    ImportSummary,
    PendingImport,
    ProviderResult,
    RegionOutcome,
)
from app.services.holiday_provider import SUPPORTED_COUNTRIES, SUPPORTED_REGIONS, HolidayProvider

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Import timed out — reset for retry"
MANUAL_RESET_MESSAGE = "Manually reset by admin"

MIN_IMPORT_YEAR = 2020
MAX_IMPORT_YEAR = 2100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def import_timeout() -> timedelta:
    return timedelta(minutes=settings.HOLIDAY_IMPORT_TIMEOUT_MINUTES)


def is_stale(job: HolidayImportStatus, now: datetime | None = None) -> bool:
    """True when a pending job has outlived the import timeout."""
    now = now or _utcnow()
    return job.status == "pending" and now - _as_utc(job.started_at) > import_timeout()


def to_job(row: HolidayImportStatus) -> PendingImport | CompletedImport | FailedImport:
    """Convert a status row to the variant matching its state."""
    common = {
        "id": row.id,
        "country_code": row.country_code,
        "year": row.year,
        "region_code": row.region_code,
        "started_at": _as_utc(row.started_at),
    }
    if row.status == "pending":
        return PendingImport(**common)
    completed_at = _as_utc(row.completed_at or row.started_at)
    if row.status == "completed":
        return CompletedImport(**common, imported_count=row.imported_count, completed_at=completed_at)
    return FailedImport(
        **common,
        error_message=row.error_message or "Unknown error",
        completed_at=completed_at,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_request(
    country_code: str,
    year: int,
    regions: list[str | None],
) -> tuple[str, list[str | None]]:
    """Normalise and validate an import request.

    Returns the upper-cased country code and the region list (``[None]``
    for a national import).
    """
    country_code = (country_code or "").strip().upper()
    if country_code not in SUPPORTED_COUNTRIES:
        raise InvalidRequestError(f"Unsupported country code {country_code!r}")
    if not MIN_IMPORT_YEAR <= year <= MAX_IMPORT_YEAR:
        raise InvalidRequestError(
            f"Year must be between {MIN_IMPORT_YEAR} and {MAX_IMPORT_YEAR}, got {year}"
        )

    normalised = [region.strip().upper() for region in regions if region]
    if not normalised:
        return country_code, [None]

    known = SUPPORTED_REGIONS.get(country_code)
    if known is None:
        raise InvalidRequestError(f"{country_code} has no regional holidays")
    unknown = [region for region in normalised if region not in known]
    if unknown:
        raise InvalidRequestError(f"Unknown region(s) for {country_code}: {', '.join(unknown)}")
    return country_code, list(dict.fromkeys(normalised))


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


async def _find_job(
    db: AsyncSession,
    country_code: str,
    year: int,
    region_code: str | None,
) -> HolidayImportStatus | None:
    region_clause = (
        HolidayImportStatus.region_code.is_(None)
        if region_code is None
        else HolidayImportStatus.region_code == region_code
    )
    result = await db.execute(
        select(HolidayImportStatus).where(
            HolidayImportStatus.country_code == country_code,
            HolidayImportStatus.year == year,
            region_clause,
        )
    )
    return result.scalar_one_or_none()


async def request_import(
    db: AsyncSession,
    country_code: str,
    year: int,
    region_code: str | None = None,
    created_by: uuid.UUID | None = None,
    now: datetime | None = None,
) -> HolidayImportStatus:
    """Open a pending job for an identity and commit it.

    Raises:
        ImportInProgressError: If a pending job younger than the timeout
            already exists for the identity.
    """
    now = now or _utcnow()
    region_label = region_code or "national"

    job = await _find_job(db, country_code, year, region_code)
    if job is not None and job.status == "pending" and not is_stale(job, now):
        raise ImportInProgressError(
            f"Import already in progress for {country_code} {year} ({region_label})"
        )

    if job is None:
        job = HolidayImportStatus(
            country_code=country_code,
            year=year,
            region_code=region_code,
        )
        db.add(job)

    job.status = "pending"
    job.imported_count = 0
    job.started_at = now
    job.completed_at = None
    job.error_message = None
    job.created_by = created_by

    try:
        await db.commit()
    except IntegrityError as exc:
        # Another request created the same identity between our read and write
        await db.rollback()
        raise ImportInProgressError(
            f"Import already in progress for {country_code} {year} ({region_label})"
        ) from exc

    logger.info("Holiday import started: %s/%d/%s", country_code, year, region_label)
    return job


async def _finish(
    db: AsyncSession,
    job: HolidayImportStatus,
    status: str,
    imported_count: int = 0,
    error_message: str | None = None,
    now: datetime | None = None,
) -> HolidayImportStatus:
    job.status = status
    job.imported_count = imported_count
    job.error_message = error_message
    job.completed_at = now or _utcnow()
    await db.flush()
    return job


async def _record_outcome(
    db: AsyncSession,
    job_id: uuid.UUID,
    started_at: datetime,
    status: str,
    imported_count: int = 0,
    error_message: str | None = None,
) -> bool:
    """Store the outcome of a provider call and commit.

    Only the attempt that opened the job may close it: the row must still be
    pending with the same ``started_at``. Returns False when the job was
    reclaimed, reset or retried in the meantime; the outcome is discarded.
    """
    result = await db.execute(
        update(HolidayImportStatus)
        .where(
            HolidayImportStatus.id == job_id,
            HolidayImportStatus.status == "pending",
            HolidayImportStatus.started_at == started_at,
        )
        .values(
            status=status,
            imported_count=imported_count,
            error_message=error_message,
            completed_at=_utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def run_import(
    db: AsyncSession,
    job: HolidayImportStatus,
    provider: HolidayProvider,
) -> ProviderResult:
    """Execute the provider call for a pending job and record the outcome.

    Provider errors are stored on the job with their message verbatim and
    re-raised. Nothing is retried automatically. If the job timed out and
    was taken over while the provider call ran, the late outcome is not
    written; the upserted holidays are kept.
    """
    job_id, started_at = job.id, job.started_at
    identity = (job.country_code, job.year, job.region_code)
    label = "%s/%d/%s" % (identity[0], identity[1], identity[2] or "national")
    try:
        result = await provider.import_holidays(db, *identity)
    except Exception as exc:
        await db.rollback()
        message = exc.message if isinstance(exc, HolidayProviderError) else str(exc)
        recorded = await _record_outcome(db, job_id, started_at, "failed", error_message=message)
        await db.refresh(job)
        if recorded:
            logger.warning("Holiday import failed: %s: %s", label, message)
        else:
            logger.warning("Holiday import failed after it was taken over, outcome discarded: %s: %s", label, message)
        raise

    recorded = await _record_outcome(db, job_id, started_at, "completed", imported_count=result.imported)
    await db.refresh(job)
    if recorded:
        logger.info(
            "Holiday import completed: %s imported=%d existing=%d",
            label, result.imported, result.existing,
        )
    else:
        logger.warning(
            "Holiday import finished after it was taken over, outcome discarded: %s imported=%d",
            label, result.imported,
        )
    return result


async def import_regions(
    db: AsyncSession,
    provider: HolidayProvider,
    country_code: str,
    year: int,
    regions: list[str | None] | None = None,
    created_by: uuid.UUID | None = None,
) -> ImportSummary:
    """Import one country/year for each requested region (national if none).

    Each region succeeds, conflicts or fails on its own; one region's
    failure neither blocks nor rolls back the others.
    """
    country_code, region_list = validate_request(country_code, year, regions or [])

    outcomes: list[RegionOutcome] = []
    for region_code in region_list:
        try:
            job = await request_import(db, country_code, year, region_code, created_by)
        except ImportInProgressError:
            outcomes.append(RegionOutcome(region_code=region_code, outcome="conflict"))
            continue

        try:
            result = await run_import(db, job, provider)
        except Exception as exc:
            if not isinstance(exc, HolidayProviderError):
                logger.exception("Unexpected error importing %s/%d/%s", country_code, year, region_code)
            message = exc.message if isinstance(exc, HolidayProviderError) else str(exc)
            outcomes.append(RegionOutcome(
                region_code=region_code, outcome="error", error_message=message,
            ))
            continue

        outcomes.append(RegionOutcome(
            region_code=region_code,
            outcome="imported",
            imported=result.imported,
            existing=result.existing,
        ))

    return ImportSummary(
        country_code=country_code,
        year=year,
        imported=sum(o.imported for o in outcomes),
        existing=sum(o.existing for o in outcomes),
        in_progress=sum(1 for o in outcomes if o.outcome == "conflict"),
        failed=sum(1 for o in outcomes if o.outcome == "error"),
        regions=outcomes,
    )


async def reclaim_stuck_imports(db: AsyncSession, now: datetime | None = None) -> int:
    """Fail every pending job older than the import timeout.

    Returns the number of reclaimed jobs. The caller commits.
    """
    now = now or _utcnow()
    result = await db.execute(
        select(HolidayImportStatus).where(HolidayImportStatus.status == "pending")
    )

    reclaimed = 0
    for job in result.scalars().all():
        if not is_stale(job, now):
            continue
        await _finish(db, job, "failed", error_message=TIMEOUT_MESSAGE, now=now)
        reclaimed += 1
        logger.warning(
            "Holiday import timed out: %s/%d/%s (started %s)",
            job.country_code, job.year, job.region_code or "national", job.started_at,
        )
    return reclaimed


async def reset_import(
    db: AsyncSession,
    job_id: uuid.UUID,
    now: datetime | None = None,
) -> HolidayImportStatus:
    """Force a pending job to failed so it can be retried right away."""
    job = await db.get(HolidayImportStatus, job_id)
    if job is None:
        raise NotFoundError("Import status not found")
    if job.status != "pending":
        raise InvalidRequestError(f"Only pending imports can be reset (status: {job.status})")

    await _finish(db, job, "failed", error_message=MANUAL_RESET_MESSAGE, now=now)
    logger.info(
        "Holiday import reset by admin: %s/%d/%s",
        job.country_code, job.year, job.region_code or "national",
    )
    return job


# ---------------------------------------------------------------------------
# Status reads (each one reclaims stuck jobs first)
# ---------------------------------------------------------------------------


async def list_statuses(
    db: AsyncSession,
    country_code: str | None = None,
    year: int | None = None,
    now: datetime | None = None,
) -> list[HolidayImportStatus]:
    await reclaim_stuck_imports(db, now)

    query = select(HolidayImportStatus)
    if country_code is not None:
        query = query.where(HolidayImportStatus.country_code == country_code.upper())
    if year is not None:
        query = query.where(HolidayImportStatus.year == year)
    result = await db.execute(query.order_by(HolidayImportStatus.started_at.desc()))
    return list(result.scalars().all())


async def any_pending(db: AsyncSession, now: datetime | None = None) -> bool:
    """Cheap check used by pollers to decide whether to keep polling."""
    await reclaim_stuck_imports(db, now)
    result = await db.execute(
        select(exists().where(HolidayImportStatus.status == "pending"))
    )
    return bool(result.scalar())


async def aggregate_status(
    db: AsyncSession,
    country_code: str,
    year: int,
    now: datetime | None = None,
) -> str:
    """``pending`` if any job is pending, ``completed`` if any finished, else ``none``."""
    statuses = {job.status for job in await list_statuses(db, country_code, year, now)}
    if "pending" in statuses:
        return "pending"
    if statuses & {"completed", "failed"}:
        return "completed"
    return "none"


# ---------------------------------------------------------------------------
# Holiday display
# ---------------------------------------------------------------------------


def consolidate_holidays(holidays: list[Holiday]) -> list[HolidayDisplay]:
    """Merge regional rows sharing (country, year, date, name).

    National rows (no region) are never merged with regional ones: a
    national holiday applies everywhere, which is not the same as a list
    of regions.
    """
    consolidated: dict[tuple, HolidayDisplay] = {}
    for holiday in holidays:
        is_national = holiday.region_code is None
        key = (holiday.country_code, holiday.year, holiday.date, holiday.name, is_national)
        display = consolidated.get(key)
        if display is None:
            consolidated[key] = HolidayDisplay(
                date=holiday.date,
                name=holiday.name,
                country_code=holiday.country_code,
                year=holiday.year,
                is_public=holiday.is_public,
                regions=None if is_national else [holiday.region_code],
            )
        elif not is_national and holiday.region_code not in display.regions:
            display.regions.append(holiday.region_code)

    for display in consolidated.values():
        if display.regions:
            display.regions.sort()

    return sorted(
        consolidated.values(),
        key=lambda d: (d.country_code, d.date, d.name, d.regions is not None),
    )


async def list_holidays(
    db: AsyncSession,
    country_code: str | None = None,
    year: int | None = None,
) -> list[HolidayDisplay]:
    """Centrally managed public holidays, consolidated for display."""
    query = select(Holiday).where(Holiday.user_id.is_(None), Holiday.is_public.is_(True))
    if country_code is not None:
        query = query.where(Holiday.country_code == country_code.upper())
    if year is not None:
        query = query.where(Holiday.year == year)
    result = await db.execute(query.order_by(Holiday.date))
    return consolidate_holidays(list(result.scalars().all()))


async def delete_holidays(db: AsyncSession, country_code: str, year: int) -> int:
    """Delete the centrally managed holidays of a country and year."""
    result = await db.execute(
        delete(Holiday).where(
            Holiday.country_code == country_code.upper(),
            Holiday.year == year,
            Holiday.user_id.is_(None),
        )
    )
    logger.info("Deleted %d holidays for %s %d", result.rowcount, country_code, year)
    return result.rowcount
