"""
Event model as seen by the closeout core.

Venue/event CRUD lives elsewhere; closeout reads the currency tag and
only ever writes closeout_step.
"""

from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.ledger import EventClosure
    from src.models.promoter import EventPromoter


class CloseoutStep(str, Enum):
    """Closeout workflow position of an event."""
    OPEN = "open"                              # Check-ins still live
    CONFIRMING = "confirming"                  # Operator reviewing counts
    REVIEWING_PAYOUTS = "reviewing_payouts"    # Operator reviewing amounts
    CLOSED = "closed"                          # Terminal, derived from closure


class Event(Base, TimestampMixin):
    """
    An event whose promoters are paid out at closeout.

    The presence of an EventClosure row is the only signal that the event
    is closed; closeout_step never stores CLOSED.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    currency: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="Opaque currency tag shared by every payout of the event",
    )
    closeout_step: Mapped[CloseoutStep] = mapped_column(
        SQLAlchemyEnum(
            CloseoutStep,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=CloseoutStep.OPEN,
        nullable=False,
    )

    # Relationships
    promoters: Mapped[List["EventPromoter"]] = relationship(
        "EventPromoter",
        back_populates="event",
    )
    closure: Mapped[Optional["EventClosure"]] = relationship(
        "EventClosure",
        back_populates="event",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name='{self.name}', step={self.closeout_step})>"
