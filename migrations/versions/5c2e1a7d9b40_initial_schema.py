"""initial schema

Revision ID: 5c2e1a7d9b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e1a7d9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_SESSION = "ended_at IS NULL"
OPEN_WINDOW_SESSION = "ended_at IS NULL AND window_id IS NOT NULL"


def upgrade() -> None:
    """Create queue, session, archive and bookkeeping tables."""
    op.create_table(
        "app_user",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "service_window",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("number"),
    )
    op.create_table(
        "day_counter",
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("service_date"),
    )
    op.create_table(
        "ticket",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("window_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("called_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("served_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("called_by", sa.String(length=36), nullable=True),
        sa.Column("served_by", sa.String(length=36), nullable=True),
        sa.Column("completed_by", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["window_id"], ["service_window.id"]),
        sa.ForeignKeyConstraint(["called_by"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["served_by"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["completed_by"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("service_date", "number", name="uq_ticket_service_date_number"),
    )
    op.create_index("ix_ticket_status", "ticket", ["status"])
    op.create_index("ix_ticket_service_date", "ticket", ["service_date"])

    op.create_table(
        "worker_session",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("mode", sa.String(length=10), nullable=False),
        sa.Column("window_id", sa.String(length=36), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"]),
        sa.ForeignKeyConstraint(["window_id"], ["service_window.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_worker_session_open_window",
        "worker_session",
        ["window_id"],
        unique=True,
        sqlite_where=sa.text(OPEN_WINDOW_SESSION),
        postgresql_where=sa.text(OPEN_WINDOW_SESSION),
    )
    op.create_index(
        "uq_worker_session_open_user",
        "worker_session",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text(OPEN_SESSION),
        postgresql_where=sa.text(OPEN_SESSION),
    )

    op.create_table(
        "ticket_fact",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("ticket_id", sa.String(length=36), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("final_status", sa.String(length=10), nullable=False),
        sa.Column("window_number", sa.Integer(), nullable=True),
        sa.Column("operator_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("called_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("served_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("skipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("wait_to_call_sec", sa.Integer(), nullable=True),
        sa.Column("call_to_serve_sec", sa.Integer(), nullable=True),
        sa.Column("serve_to_complete_sec", sa.Integer(), nullable=True),
        sa.Column("total_lead_time_sec", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ticket_id"),
    )
    op.create_index("ix_ticket_fact_service_date", "ticket_fact", ["service_date"])

    op.create_table(
        "operator_daily_aggregate",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("operator_id", sa.String(length=36), nullable=False),
        sa.Column("served_count", sa.Integer(), nullable=False),
        sa.Column("handled_count", sa.Integer(), nullable=False),
        sa.Column("avg_wait_to_call_sec", sa.Float(), nullable=True),
        sa.Column("avg_serve_to_complete_sec", sa.Float(), nullable=True),
        sa.Column("avg_total_lead_time_sec", sa.Float(), nullable=True),
        sa.Column("window_min", sa.Integer(), nullable=True),
        sa.Column("window_max", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("service_date", "operator_id", name="uq_operator_daily_aggregate"),
    )
    op.create_index(
        "ix_operator_daily_aggregate_service_date",
        "operator_daily_aggregate",
        ["service_date"],
    )

    op.create_table(
        "service_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("start_number_default", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "system_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("last_rollover_date", sa.Date(), nullable=True),
        sa.Column("last_rollover_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_rollover_trigger", sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("system_state")
    op.drop_table("service_settings")
    op.drop_index("ix_operator_daily_aggregate_service_date", table_name="operator_daily_aggregate")
    op.drop_table("operator_daily_aggregate")
    op.drop_index("ix_ticket_fact_service_date", table_name="ticket_fact")
    op.drop_table("ticket_fact")
    op.drop_index("uq_worker_session_open_user", table_name="worker_session")
    op.drop_index("uq_worker_session_open_window", table_name="worker_session")
    op.drop_table("worker_session")
    op.drop_index("ix_ticket_service_date", table_name="ticket")
    op.drop_index("ix_ticket_status", table_name="ticket")
    op.drop_table("ticket")
    op.drop_table("day_counter")
    op.drop_table("service_window")
    op.drop_table("app_user")
