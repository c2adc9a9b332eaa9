"""Closeout schema

Revision ID: 000_closeout_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = "000_closeout_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table in insp.get_table_names()


def upgrade() -> None:
    """Create closeout tables. Skips tables that already exist."""

    # Events table (owned by the event service, created here for standalone use)
    if not _table_exists("events"):
        op.create_table(
            "events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("currency", sa.String(10), nullable=True),
            sa.Column(
                "closeout_step",
                sa.Enum("open", "confirming", "reviewing_payouts", "closed", name="closeoutstep"),
                nullable=False,
                server_default="open",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )

    # Promoter commission assignments
    if not _table_exists("event_promoters"):
        op.create_table(
            "event_promoters",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
            sa.Column("promoter_id", sa.Integer(), nullable=False),
            sa.Column("promoter_name", sa.String(255), nullable=True),
            sa.Column(
                "commission_type",
                sa.Enum("per_head", "fixed_fee", "hybrid", name="commissiontype"),
                nullable=False,
                server_default="per_head",
            ),
            sa.Column("per_head_rate", sa.Numeric(14, 2), nullable=True),
            sa.Column("per_head_min", sa.Integer(), nullable=True),
            sa.Column("per_head_max", sa.Integer(), nullable=True),
            sa.Column("fixed_fee", sa.Numeric(14, 2), nullable=True),
            sa.Column("minimum_guests", sa.Integer(), nullable=True),
            sa.Column("below_minimum_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("bonus_threshold", sa.Integer(), nullable=True),
            sa.Column("bonus_amount", sa.Numeric(14, 2), nullable=True),
            sa.Column("bonus_tiers", sa.JSON(), nullable=True),
            sa.Column("currency", sa.String(10), nullable=True),
            sa.Column("manual_checkins_override", sa.Integer(), nullable=True),
            sa.Column("manual_checkins_reason", sa.Text(), nullable=True),
            sa.Column("checkins_override_by", sa.String(100), nullable=True),
            sa.Column("checkins_override_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("manual_adjustment_amount", sa.Numeric(14, 2), nullable=True),
            sa.Column("manual_adjustment_reason", sa.Text(), nullable=True),
            sa.Column("adjustment_by", sa.String(100), nullable=True),
            sa.Column("adjustment_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("event_id", "promoter_id", name="uq_event_promoter"),
        )
        op.create_index("ix_event_promoters_event_id", "event_promoters", ["event_id"])
        op.create_index("ix_event_promoters_promoter_id", "event_promoters", ["promoter_id"])

    # Check-ins (written by the door flow)
    if not _table_exists("checkins"):
        op.create_table(
            "checkins",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
            sa.Column("registration_id", sa.Integer(), nullable=False),
            sa.Column("promoter_id", sa.Integer(), nullable=True),
            sa.Column("checked_in_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("undone", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("undone_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_checkins_event_id", "checkins", ["event_id"])
        op.create_index("ix_checkins_registration_id", "checkins", ["registration_id"])
        op.create_index("ix_checkins_promoter_id", "checkins", ["promoter_id"])

    # Closure records: one per event, enforced by the unique constraint
    if not _table_exists("event_closures"):
        op.create_table(
            "event_closures",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
            sa.Column("closed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("closed_by", sa.String(100), nullable=True),
            sa.Column("currency", sa.String(10), nullable=False),
            sa.Column("total_checkins", sa.Integer(), nullable=False),
            sa.Column("total_payout", sa.Numeric(18, 6), nullable=False),
            sa.Column("total_revenue", sa.Numeric(14, 2), nullable=True),
            sa.Column("closeout_notes", sa.Text(), nullable=True),
            sa.UniqueConstraint("event_id", name="uq_event_closure_event"),
        )
        op.create_index("ix_event_closures_event_id", "event_closures", ["event_id"])

    # Frozen payout lines
    if not _table_exists("payout_lines"):
        op.create_table(
            "payout_lines",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "closure_id",
                sa.Integer(),
                sa.ForeignKey("event_closures.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("promoter_id", sa.Integer(), nullable=False),
            sa.Column("promoter_name", sa.String(255), nullable=True),
            sa.Column("actual_checkins_count", sa.Integer(), nullable=False),
            sa.Column("manual_checkins_override", sa.Integer(), nullable=True),
            sa.Column("manual_checkins_reason", sa.Text(), nullable=True),
            sa.Column("effective_checkins_count", sa.Integer(), nullable=False),
            sa.Column("calculated_payout", sa.Numeric(18, 6), nullable=True),
            sa.Column("manual_adjustment_amount", sa.Numeric(14, 2), nullable=True),
            sa.Column("manual_adjustment_reason", sa.Text(), nullable=True),
            sa.Column("final_payout", sa.Numeric(18, 6), nullable=True),
            sa.Column("breakdown", sa.JSON(), nullable=True),
            sa.Column("configuration_error", sa.Text(), nullable=True),
            sa.Column(
                "payment_status",
                sa.Enum("pending_payment", "on_hold", name="paymentstatus"),
                nullable=False,
                server_default="pending_payment",
            ),
            sa.UniqueConstraint("closure_id", "promoter_id", name="uq_payout_line_promoter"),
        )
        op.create_index("ix_payout_lines_closure_id", "payout_lines", ["closure_id"])
        op.create_index("ix_payout_lines_promoter_id", "payout_lines", ["promoter_id"])

    # Audit trail
    if not _table_exists("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("actor_id", sa.String(100), nullable=True),
            sa.Column(
                "action",
                sa.Enum(
                    "set_checkin_override",
                    "clear_checkin_override",
                    "set_payout_adjustment",
                    "clear_payout_adjustment",
                    "change_closeout_step",
                    "finalize_closeout",
                    name="auditaction",
                ),
                nullable=False,
            ),
            sa.Column("event_id", sa.Integer(), nullable=False),
            sa.Column("target_type", sa.String(50), nullable=True),
            sa.Column("target_id", sa.Integer(), nullable=True),
            sa.Column("action_metadata", sa.JSON(), nullable=True),
            sa.Column("ip_address", sa.String(45), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
        op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
        op.create_index("ix_audit_logs_event_id", "audit_logs", ["event_id"])
        op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Transactional outbox
    if not _table_exists("outbox_events"):
        op.create_table(
            "outbox_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("event_type", sa.String(100), nullable=False),
            sa.Column("event_id", sa.Integer(), nullable=True),
            sa.Column("payload", sa.JSON(), nullable=False),
            sa.Column(
                "status",
                sa.Enum("pending", "sent", "failed", name="outboxstatus"),
                nullable=False,
                server_default="pending",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"])
        op.create_index("ix_outbox_events_event_id", "outbox_events", ["event_id"])
        op.create_index("ix_outbox_events_status", "outbox_events", ["status"])


def downgrade() -> None:
    """Drop closeout tables in reverse dependency order."""
    for table in (
        "outbox_events",
        "audit_logs",
        "payout_lines",
        "event_closures",
        "checkins",
        "event_promoters",
        "events",
    ):
        if _table_exists(table):
            op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in ("outboxstatus", "auditaction", "paymentstatus", "commissiontype", "closeoutstep"):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
