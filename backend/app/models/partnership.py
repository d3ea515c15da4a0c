import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.types import UUIDArray


class PlanningPartnership(Base):
    """A named group of teams that plan and are staffed together."""

    __tablename__ = "team_planning_partners"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    partnership_name: Mapped[str] = mapped_column(String(200), nullable=False)
    team_ids: Mapped[list[uuid.UUID]] = mapped_column(UUIDArray(), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<PlanningPartnership(id={self.id}, name={self.partnership_name!r})>"
