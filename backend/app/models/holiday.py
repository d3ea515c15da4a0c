import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

IMPORT_STATUSES = ("pending", "completed", "failed")


class Holiday(Base):
    """A public holiday. ``user_id`` is NULL for centrally managed rows."""

    __tablename__ = "holidays"
    __table_args__ = (
        Index("ix_holidays_country_year", "country_code", "year"),
        Index("ix_holidays_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    region_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Holiday(date={self.date}, name={self.name!r}, region={self.region_code!r})>"


class HolidayImportStatus(Base):
    """Import job record, one per (country_code, year, region_code)."""

    __tablename__ = "holiday_import_status"
    __table_args__ = (
        UniqueConstraint(
            "country_code", "year", "region_code",
            name="uq_holiday_import_status_identity",
            postgresql_nulls_not_distinct=True,
        ),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="ck_holiday_import_status_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    region_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    imported_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<HolidayImportStatus({self.country_code}/{self.year}/"
            f"{self.region_code or 'national'}, status={self.status!r})>"
        )
