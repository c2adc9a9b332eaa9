"""
Database models for the closeout service.

All models are exported here for convenient imports:
    from src.models import Event, EventPromoter, EventClosure, etc.
"""

from src.models.audit import AuditAction, AuditLog
from src.models.base import Base, TimestampMixin
from src.models.checkin import CheckinRecord
from src.models.event import CloseoutStep, Event
from src.models.ledger import EventClosure, PaymentStatus, PayoutLine
from src.models.outbox import OutboxEvent, OutboxStatus
from src.models.promoter import CommissionType, EventPromoter

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Event
    "Event",
    "CloseoutStep",
    # Promoter
    "EventPromoter",
    "CommissionType",
    # Check-in
    "CheckinRecord",
    # Ledger
    "EventClosure",
    "PayoutLine",
    "PaymentStatus",
    # Audit
    "AuditLog",
    "AuditAction",
    # Outbox
    "OutboxEvent",
    "OutboxStatus",
]
