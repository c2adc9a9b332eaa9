"""
Ledger models for finalized event closeouts.

An EventClosure and its PayoutLines are written once, in the finalize
transaction, and never updated afterwards.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base

if TYPE_CHECKING:
    from src.models.event import Event


class PaymentStatus(str, Enum):
    """Initial payment state of a frozen payout line."""
    PENDING_PAYMENT = "pending_payment"  # Amount owed, transfer happens elsewhere
    ON_HOLD = "on_hold"                  # Frozen with a configuration error


class EventClosure(Base):
    """
    The closure record of an event.

    The unique constraint on event_id makes the store reject a second
    closure even if two finalize calls race past the application checks.
    """

    __tablename__ = "event_closures"
    __table_args__ = (
        UniqueConstraint("event_id", name="uq_event_closure_event"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id"),
        nullable=False,
        index=True,
    )
    closed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    closed_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Operator id that finalized the closeout",
    )
    currency: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )
    total_checkins: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    total_payout: Mapped[Decimal] = mapped_column(
        Numeric(18, 6),
        nullable=False,
    )
    total_revenue: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    closeout_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    event: Mapped["Event"] = relationship(
        "Event",
        back_populates="closure",
    )
    lines: Mapped[List["PayoutLine"]] = relationship(
        "PayoutLine",
        back_populates="closure",
        order_by="PayoutLine.promoter_id",
    )

    def __repr__(self) -> str:
        return (
            f"<EventClosure(id={self.id}, event_id={self.event_id}, "
            f"total_payout={self.total_payout})>"
        )


class PayoutLine(Base):
    """Frozen copy of one promoter's closeout line."""

    __tablename__ = "payout_lines"
    __table_args__ = (
        UniqueConstraint("closure_id", "promoter_id", name="uq_payout_line_promoter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    closure_id: Mapped[int] = mapped_column(
        ForeignKey("event_closures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    promoter_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )
    promoter_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    actual_checkins_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    manual_checkins_override: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    manual_checkins_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    effective_checkins_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    calculated_payout: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 6),
        nullable=True,
        comment="NULL when the commission terms could not be evaluated",
    )
    manual_adjustment_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    manual_adjustment_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    final_payout: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 6),
        nullable=True,
        comment="May be negative when an adjustment corrects an overpayment",
    )
    breakdown: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Itemized payout breakdown at finalize time",
    )
    configuration_error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLAlchemyEnum(
            PaymentStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PaymentStatus.PENDING_PAYMENT,
        nullable=False,
    )

    # Relationships
    closure: Mapped["EventClosure"] = relationship(
        "EventClosure",
        back_populates="lines",
    )

    def __repr__(self) -> str:
        return (
            f"<PayoutLine(closure_id={self.closure_id}, promoter_id={self.promoter_id}, "
            f"final_payout={self.final_payout})>"
        )
