"""
EventPromoter model: a promoter's commission terms for one event.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.event import Event


class CommissionType(str, Enum):
    """Which calculator components a commission model uses."""
    PER_HEAD = "per_head"
    FIXED_FEE = "fixed_fee"
    HYBRID = "hybrid"


class EventPromoter(Base, TimestampMixin):
    """
    Commission assignment of one promoter to one event.

    Besides the commission terms this row carries the two operator-set
    pairs used during closeout. Each pair is written as a unit:
    - manual_checkins_override + manual_checkins_reason
    - manual_adjustment_amount + manual_adjustment_reason
    """

    __tablename__ = "event_promoters"
    __table_args__ = (
        UniqueConstraint("event_id", "promoter_id", name="uq_event_promoter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    promoter_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Promoter id owned by the promoter directory",
    )
    promoter_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Commission terms
    commission_type: Mapped[CommissionType] = mapped_column(
        SQLAlchemyEnum(
            CommissionType,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CommissionType.PER_HEAD,
        nullable=False,
    )
    per_head_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    per_head_min: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    per_head_max: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    fixed_fee: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    minimum_guests: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    below_minimum_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Percent of fixed_fee paid when below minimum_guests",
    )
    bonus_threshold: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    bonus_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    bonus_tiers: Mapped[Optional[list]] = mapped_column(
        JSON,
        nullable=True,
        comment='[{"threshold": 10, "amount": "5", "type": "repeatable"}]',
    )
    currency: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="Currency tag of the terms; must match the event when set",
    )

    # Closeout: check-in override
    manual_checkins_override: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    manual_checkins_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    checkins_override_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    checkins_override_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Closeout: payout adjustment
    manual_adjustment_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
    )
    manual_adjustment_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    adjustment_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    adjustment_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    event: Mapped["Event"] = relationship(
        "Event",
        back_populates="promoters",
    )

    def __repr__(self) -> str:
        return (
            f"<EventPromoter(event_id={self.event_id}, "
            f"promoter_id={self.promoter_id}, type={self.commission_type})>"
        )
