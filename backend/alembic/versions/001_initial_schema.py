"""Initial schema: events and registrations with capacity-related indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(100), nullable=False),
        sa.Column("venue", sa.String(255), nullable=True),
        # capacity <= 0 means unlimited
        sa.Column("capacity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_created_at", "events", ["created_at"])
    # Listing and reminder lookups: active events ordered by start date
    op.create_index("ix_events_active_start", "events", ["is_active", "start_date"])

    # Registrations table
    op.create_table(
        "registrations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(100), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("gender", sa.String(50), nullable=False),
        sa.Column("profession", sa.String(200), nullable=False),
        sa.Column("phone_number", sa.String(15), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("location_preference", sa.String(50), nullable=False),
        sa.Column("needs_directions", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("notes", sa.String(200), nullable=True),
        sa.Column("ticket_number", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("ticket_number", name="uq_registrations_ticket_number"),
        sa.CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_registration_status"),
    )
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])
    op.create_index("ix_registrations_email", "registrations", ["email"])
    op.create_index("ix_registrations_created_at", "registrations", ["created_at"])
    # ONE ACTIVE REGISTRATION PER EMAIL PER EVENT.
    # Partial index: cancelled rows are kept for audit and must not block a
    # fresh registration with the same email.
    op.create_index(
        "uq_registrations_event_email_confirmed",
        "registrations",
        ["event_id", "email"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
        sqlite_where=sa.text("status = 'confirmed'"),
    )


def downgrade() -> None:
    op.drop_table("registrations")
    op.drop_table("events")
