import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, and_, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

SCHEDULED_AVAILABILITY = "available"
SCHEDULED_ACTIVITY = "work"


class ScheduleEntry(Base):
    """One person's planned day. Owned by the planning screens, read-only here."""

    __tablename__ = "schedule_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_schedule_entries_user_date"),
        Index("ix_schedule_entries_team_date", "team_id", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    shift_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="normal",
    )  # 'normal' | 'early' | 'late' | 'weekend'
    availability_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="available",
    )  # 'available' | 'unavailable'
    activity_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="work",
    )  # 'work' | 'vacation' | 'sick' | 'training' | ...
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @classmethod
    def is_scheduled(cls):
        """SQL clause selecting entries that count as a person being on shift."""
        return and_(
            cls.availability_status == SCHEDULED_AVAILABILITY,
            cls.activity_type == SCHEDULED_ACTIVITY,
        )

    def __repr__(self) -> str:
        return f"<ScheduleEntry(user_id={self.user_id}, date={self.date}, shift={self.shift_type!r})>"
