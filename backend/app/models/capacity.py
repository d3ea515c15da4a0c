import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class _CapacityColumns:
    """Staffing policy columns shared by team and partnership configs."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    min_staff_required: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_staff_allowed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    applies_to_weekends: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class TeamCapacityConfig(_CapacityColumns, Base):
    __tablename__ = "team_capacity_config"

    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    def __repr__(self) -> str:
        return f"<TeamCapacityConfig(team_id={self.team_id}, min={self.min_staff_required})>"


class PartnershipCapacityConfig(_CapacityColumns, Base):
    __tablename__ = "partnership_capacity_config"

    partnership_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("team_planning_partners.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    def __repr__(self) -> str:
        return (
            f"<PartnershipCapacityConfig(partnership_id={self.partnership_id}, "
            f"min={self.min_staff_required})>"
        )
