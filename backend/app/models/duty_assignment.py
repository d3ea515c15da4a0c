import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

DUTY_TYPES = ("weekend", "lateshift", "earlyshift")


class DutyAssignment(Base):
    """One duty slot. Several rows may share (team_id, date, duty_type)."""

    __tablename__ = "duty_assignments"
    __table_args__ = (
        CheckConstraint(
            "duty_type IN ('weekend', 'lateshift', 'earlyshift')",
            name="ck_duty_assignments_duty_type",
        ),
        CheckConstraint("week_number BETWEEN 1 AND 53", name="ck_duty_assignments_week"),
        Index("ix_duty_assignments_week", "year", "week_number", "team_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    duty_type: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True
    )
    is_substitute: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    responsibility_region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<DutyAssignment(id={self.id}, date={self.date}, "
            f"duty_type={self.duty_type!r}, user_id={self.user_id})>"
        )
