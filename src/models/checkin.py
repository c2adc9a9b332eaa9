"""
CheckinRecord model for door check-ins attributed to promoters.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class CheckinRecord(Base):
    """
    A verified arrival of a registered attendee.

    Rows are written by the door scanning flow and never deleted. A reversed
    scan flips `undone`; undone rows stay for audit and never count.
    """

    __tablename__ = "checkins"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    registration_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )
    promoter_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Referral promoter of the registration, if any",
    )
    checked_in_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    undone: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    undone_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CheckinRecord(id={self.id}, registration_id={self.registration_id}, "
            f"undone={self.undone})>"
        )
