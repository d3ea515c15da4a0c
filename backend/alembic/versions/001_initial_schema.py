"""Initial schema: teams, schedules, duty assignments, capacity, holidays.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"), primary_key=True,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("initials", sa.String(10), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="teammember"),
        sa.Column("country_code", sa.String(2), nullable=True),
        sa.Column("region_code", sa.String(10), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── teams ─────────────────────────────────────────────────────────
    op.create_table(
        "teams",
        _id_column(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── team_members ──────────────────────────────────────────────────
    op.create_table(
        "team_members",
        _id_column(),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    # ── team_planning_partners ────────────────────────────────────────
    op.create_table(
        "team_planning_partners",
        _id_column(),
        sa.Column("partnership_name", sa.String(200), nullable=False),
        sa.Column("team_ids", postgresql.ARRAY(postgresql.UUID(as_uuid=True)), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("cardinality(team_ids) >= 2", name="ck_team_planning_partners_min_teams"),
    )

    # ── schedule_entries ──────────────────────────────────────────────
    op.create_table(
        "schedule_entries",
        _id_column(),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("shift_type", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("availability_status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("activity_type", sa.String(30), nullable=False, server_default="work"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "date", name="uq_schedule_entries_user_date"),
    )

    # ── duty_assignments ──────────────────────────────────────────────
    op.create_table(
        "duty_assignments",
        _id_column(),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("duty_type", sa.String(20), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_substitute", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("responsibility_region", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "duty_type IN ('weekend', 'lateshift', 'earlyshift')",
            name="ck_duty_assignments_duty_type",
        ),
        sa.CheckConstraint("week_number BETWEEN 1 AND 53", name="ck_duty_assignments_week"),
    )

    # ── capacity configs ──────────────────────────────────────────────
    op.create_table(
        "team_capacity_config",
        _id_column(),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("min_staff_required", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_staff_allowed", sa.Integer(), nullable=True),
        sa.Column("applies_to_weekends", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "partnership_capacity_config",
        _id_column(),
        sa.Column("partnership_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("team_planning_partners.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("min_staff_required", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_staff_allowed", sa.Integer(), nullable=True),
        sa.Column("applies_to_weekends", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )

    # ── holidays ──────────────────────────────────────────────────────
    op.create_table(
        "holidays",
        _id_column(),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("region_code", sa.String(10), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── holiday_import_status ─────────────────────────────────────────
    op.create_table(
        "holiday_import_status",
        _id_column(),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("region_code", sa.String(10), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("imported_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.UniqueConstraint(
            "country_code", "year", "region_code",
            name="uq_holiday_import_status_identity",
            postgresql_nulls_not_distinct=True,
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="ck_holiday_import_status_status",
        ),
    )

    # ── Indexes ───────────────────────────────────────────────────────
    op.create_index("ix_schedule_entries_team_date", "schedule_entries", ["team_id", "date"])
    op.create_index("ix_duty_assignments_week", "duty_assignments", ["year", "week_number", "team_id"])
    op.create_index("ix_holidays_country_year", "holidays", ["country_code", "year"])
    op.create_index("ix_holidays_date", "holidays", ["date"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index("ix_holidays_date", table_name="holidays")
    op.drop_index("ix_holidays_country_year", table_name="holidays")
    op.drop_index("ix_duty_assignments_week", table_name="duty_assignments")
    op.drop_index("ix_schedule_entries_team_date", table_name="schedule_entries")
    op.drop_table("holiday_import_status")
    op.drop_table("holidays")
    op.drop_table("partnership_capacity_config")
    op.drop_table("team_capacity_config")
    op.drop_table("duty_assignments")
    op.drop_table("schedule_entries")
    op.drop_table("team_planning_partners")
    op.drop_table("team_members")
    op.drop_table("teams")
    op.drop_table("profiles")
