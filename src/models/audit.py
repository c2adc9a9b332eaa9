"""
AuditLog model for tracking closeout actions.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, JSON, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""
    SET_CHECKIN_OVERRIDE = "set_checkin_override"
    CLEAR_CHECKIN_OVERRIDE = "clear_checkin_override"
    SET_PAYOUT_ADJUSTMENT = "set_payout_adjustment"
    CLEAR_PAYOUT_ADJUSTMENT = "clear_payout_adjustment"
    CHANGE_CLOSEOUT_STEP = "change_closeout_step"
    FINALIZE_CLOSEOUT = "finalize_closeout"


class AuditLog(Base):
    """
    Audit log for closeout mutations.

    Every override, adjustment and finalize is recorded here in the same
    transaction as the change itself.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    actor_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Operator id from the verified token",
    )
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(
            AuditAction,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    event_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )
    target_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Type of entity affected (event, promoter, closure)",
    )
    target_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="ID of the affected entity",
    )
    action_metadata: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Before/after values and reasons",
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),
        nullable=True,
        comment="IPv4 or IPv6 address",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, event_id={self.event_id}, action={self.action})>"
