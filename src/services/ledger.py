"""
Payout ledger writer.

Turns a live closeout summary into the immutable EventClosure and its
PayoutLines. Called only from finalize, inside its transaction; nothing
here commits.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.models import EventClosure, OutboxEvent, PaymentStatus, PayoutLine
from src.schemas.closeout import (
    CloseoutSummary,
    ClosureRecordResponse,
    PromoterCloseoutLine,
)
from src.schemas.commission import PayoutBreakdown

logger = logging.getLogger(__name__)

EVENT_CLOSED = "event_closed"


def payout_line_from_summary(line: PromoterCloseoutLine) -> PayoutLine:
    """Frozen ledger row for one summary line."""
    return PayoutLine(
        promoter_id=line.promoter_id,
        promoter_name=line.promoter_name,
        actual_checkins_count=line.actual_checkins_count,
        manual_checkins_override=line.manual_checkins_override,
        manual_checkins_reason=line.manual_checkins_reason,
        effective_checkins_count=line.effective_checkins_count,
        calculated_payout=line.calculated_payout,
        manual_adjustment_amount=line.manual_adjustment_amount,
        manual_adjustment_reason=line.manual_adjustment_reason,
        final_payout=line.final_payout,
        breakdown=line.breakdown.model_dump(mode="json") if line.breakdown else None,
        configuration_error=line.error,
        payment_status=PaymentStatus.ON_HOLD if line.error else PaymentStatus.PENDING_PAYMENT,
    )


def line_from_payout_line(row: PayoutLine) -> PromoterCloseoutLine:
    """Summary line rebuilt from a frozen ledger row."""
    return PromoterCloseoutLine(
        promoter_id=row.promoter_id,
        promoter_name=row.promoter_name,
        actual_checkins_count=row.actual_checkins_count,
        manual_checkins_override=row.manual_checkins_override,
        manual_checkins_reason=row.manual_checkins_reason,
        effective_checkins_count=row.effective_checkins_count,
        breakdown=PayoutBreakdown.model_validate(row.breakdown) if row.breakdown else None,
        calculated_payout=row.calculated_payout,
        manual_adjustment_amount=row.manual_adjustment_amount,
        manual_adjustment_reason=row.manual_adjustment_reason,
        final_payout=row.final_payout,
        error=row.configuration_error,
        payment_status=row.payment_status,
    )


def closure_to_response(closure: EventClosure) -> ClosureRecordResponse:
    return ClosureRecordResponse(
        id=closure.id,
        event_id=closure.event_id,
        closed_at=closure.closed_at,
        closed_by=closure.closed_by,
        currency=closure.currency,
        total_checkins=closure.total_checkins,
        total_payout=closure.total_payout,
        total_revenue=closure.total_revenue,
        closeout_notes=closure.closeout_notes,
        lines=[line_from_payout_line(row) for row in closure.lines],
    )


async def write_closure(
    db: AsyncSession,
    summary: CloseoutSummary,
    total_revenue: Optional[Decimal] = None,
    closeout_notes: Optional[str] = None,
    closed_by: Optional[str] = None,
) -> EventClosure:
    """Stage the closure, its payout lines and the event_closed outbox row.

    Flushes so the store's unique constraint on the event is checked
    before the caller commits.

    Raises:
        sqlalchemy.exc.IntegrityError: If another closure exists for the event
    """
    closure = EventClosure(
        event_id=summary.event_id,
        closed_at=datetime.now(timezone.utc),
        closed_by=closed_by,
        currency=summary.currency,
        total_checkins=summary.total_checkins,
        total_payout=summary.total_payout,
        total_revenue=total_revenue,
        closeout_notes=closeout_notes,
        lines=[payout_line_from_summary(line) for line in summary.promoters],
    )
    db.add(closure)
    await db.flush()

    db.add(
        OutboxEvent(
            event_type=EVENT_CLOSED,
            event_id=summary.event_id,
            payload={
                "event_id": summary.event_id,
                "closure_id": closure.id,
                "promoter_count": len(summary.promoters),
                "currency": summary.currency,
            },
        )
    )

    logger.info(
        f"Staged closure for event {summary.event_id}: "
        f"{len(summary.promoters)} payout lines, {summary.total_checkins} check-ins"
    )
    return closure
