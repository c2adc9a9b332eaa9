"""
OutboxEvent model for domain events leaving the closeout core.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, JSON, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class OutboxStatus(str, Enum):
    """Delivery status of an outbox event."""
    PENDING = "pending"  # Waiting for the relay
    SENT = "sent"        # Picked up by the relay
    FAILED = "failed"    # Relay gave up


class OutboxEvent(Base):
    """
    Transactional outbox row.

    Written in the same transaction as the change it announces; the relay
    that delivers notifications (emails, statements) runs elsewhere.
    """

    __tablename__ = "outbox_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    event_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Event the message is about, if any",
    )
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )
    status: Mapped[OutboxStatus] = mapped_column(
        SQLAlchemyEnum(
            OutboxStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=OutboxStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<OutboxEvent(id={self.id}, type={self.event_type}, status={self.status})>"
