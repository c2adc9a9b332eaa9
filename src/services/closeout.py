"""
Closeout state machine and mutating entry points.

States: OPEN -> CONFIRMING -> REVIEWING_PAYOUTS -> CLOSED.

The first three are workflow labels an operator may move between in any
direction. CLOSED is entered only through finalize_closeout and is
terminal: once a closure exists every mutation below is rejected with
ClosedEventError. Each mutation calls ensure_event_open first, which
locks the event row so it cannot interleave with a finalize in flight.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import AuditAction, CloseoutStep, Event, EventClosure
from src.schemas.closeout import PromoterCloseoutLine
from src.services.aggregator import (
    apply_payout_adjustment,
    build_live_summary,
    build_promoter_line,
    check_currency,
)
from src.services.exceptions import (
    AlreadyClosedError,
    ClosedEventError,
    ValidationError,
)
from src.services.ledger import write_closure
from src.services.reconciliation import apply_checkin_override
from src.services.sources import (
    event_currency,
    get_assignment,
    get_closure,
    get_event,
    is_closed,
    list_checkins,
)
from src.utils.audit import log_action

logger = logging.getLogger(__name__)

OPEN_STEPS = (
    CloseoutStep.OPEN,
    CloseoutStep.CONFIRMING,
    CloseoutStep.REVIEWING_PAYOUTS,
)


async def ensure_event_open(db: AsyncSession, event_id: int) -> Event:
    """Lock the event row and reject the call if the event is closed.

    Every mutating entry point goes through here first.

    Raises:
        EventNotFoundError: If the event does not exist
        ClosedEventError: If a closure exists
    """
    event = await get_event(db, event_id, for_update=True)
    if await is_closed(db, event_id):
        logger.warning(f"Rejected change to closed event {event_id}")
        raise ClosedEventError(event_id)
    return event


async def set_checkin_override(
    db: AsyncSession,
    event_id: int,
    promoter_id: int,
    count: Optional[int],
    reason: Optional[str],
    actor_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> PromoterCloseoutLine:
    """Set or clear a promoter's check-in override.

    A count needs a reason; a None count clears both.

    Raises:
        ClosedEventError: If the event is closed
        ValidationError: On a count without reason or a negative count
        PromoterNotAssignedError: If the promoter is not on the event
        InconsistentCurrencyError: If the promoter row has another currency
    """
    event = await ensure_event_open(db, event_id)
    assignment = await get_assignment(db, event_id, promoter_id, for_update=True)
    check_currency(event_id, event_currency(event), [assignment])

    previous = apply_checkin_override(assignment, count, reason, actor_id)

    await log_action(
        db=db,
        event_id=event_id,
        action=(
            AuditAction.SET_CHECKIN_OVERRIDE
            if assignment.manual_checkins_override is not None
            else AuditAction.CLEAR_CHECKIN_OVERRIDE
        ),
        actor_id=actor_id,
        target_type="promoter",
        target_id=promoter_id,
        action_metadata={
            "previous": previous,
            "count": assignment.manual_checkins_override,
            "reason": assignment.manual_checkins_reason,
        },
        ip_address=ip_address,
    )
    await db.commit()

    checkins = await list_checkins(db, event_id, promoter_id)
    return build_promoter_line(assignment, checkins)


async def set_payout_adjustment(
    db: AsyncSession,
    event_id: int,
    promoter_id: int,
    amount: Optional[Decimal],
    reason: Optional[str],
    actor_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> PromoterCloseoutLine:
    """Set or clear a promoter's payout adjustment.

    A non-zero amount needs a reason; None or zero clears both.

    Raises:
        ClosedEventError: If the event is closed
        ValidationError: On an amount without reason or with more than 2 decimals
        PromoterNotAssignedError: If the promoter is not on the event
        InconsistentCurrencyError: If the promoter row has another currency
    """
    event = await ensure_event_open(db, event_id)
    assignment = await get_assignment(db, event_id, promoter_id, for_update=True)
    check_currency(event_id, event_currency(event), [assignment])

    previous = apply_payout_adjustment(assignment, amount, reason, actor_id)

    await log_action(
        db=db,
        event_id=event_id,
        action=(
            AuditAction.SET_PAYOUT_ADJUSTMENT
            if assignment.manual_adjustment_amount is not None
            else AuditAction.CLEAR_PAYOUT_ADJUSTMENT
        ),
        actor_id=actor_id,
        target_type="promoter",
        target_id=promoter_id,
        action_metadata={
            "previous": previous,
            "amount": assignment.manual_adjustment_amount,
            "reason": assignment.manual_adjustment_reason,
        },
        ip_address=ip_address,
    )
    await db.commit()

    checkins = await list_checkins(db, event_id, promoter_id)
    return build_promoter_line(assignment, checkins)


async def set_closeout_step(
    db: AsyncSession,
    event_id: int,
    step: CloseoutStep,
    actor_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> CloseoutStep:
    """Move an open event between workflow steps, in any direction.

    Raises:
        ClosedEventError: If the event is closed
        ValidationError: If asked to move to CLOSED (finalize does that)
    """
    event = await ensure_event_open(db, event_id)

    if step not in OPEN_STEPS:
        raise ValidationError("events are closed through finalize")

    previous = event.closeout_step
    event.closeout_step = step

    await log_action(
        db=db,
        event_id=event_id,
        action=AuditAction.CHANGE_CLOSEOUT_STEP,
        actor_id=actor_id,
        target_type="event",
        target_id=event_id,
        action_metadata={"previous": previous.value, "step": step.value},
        ip_address=ip_address,
    )
    await db.commit()

    logger.info(f"Event {event_id} closeout step {previous.value} -> {step.value}")
    return step


async def finalize_closeout(
    db: AsyncSession,
    event_id: int,
    total_revenue: Optional[Decimal] = None,
    closeout_notes: Optional[str] = None,
    actor_id: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> EventClosure:
    """Close an event: freeze every promoter line into the payout ledger.

    Runs as one transaction. Either the closure, all payout lines, the
    outbox row and the audit entry are committed together, or nothing is.

    Raises:
        AlreadyClosedError: If the event already has a closure, carrying it.
            A finalize that loses a race gets the winner's closure.
        EventNotFoundError: If the event does not exist
        InconsistentCurrencyError: If commission rows disagree on currency
    """
    event = await get_event(db, event_id, for_update=True)

    existing = await get_closure(db, event_id)
    if existing is not None:
        logger.info(f"Finalize requested for already closed event {event_id}")
        raise AlreadyClosedError(event_id, existing)

    summary = await build_live_summary(db, event)

    try:
        closure = await write_closure(
            db,
            summary,
            total_revenue=total_revenue,
            closeout_notes=closeout_notes,
            closed_by=actor_id,
        )
        await log_action(
            db=db,
            event_id=event_id,
            action=AuditAction.FINALIZE_CLOSEOUT,
            actor_id=actor_id,
            target_type="closure",
            target_id=closure.id,
            action_metadata={
                "total_checkins": summary.total_checkins,
                "total_payout": summary.total_payout,
                "total_revenue": total_revenue,
                "promoter_count": len(summary.promoters),
                "flagged_promoters": [
                    line.promoter_id for line in summary.promoters if line.error
                ],
            },
            ip_address=ip_address,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_closure(db, event_id)
        if existing is None:
            raise
        logger.warning(f"Concurrent finalize for event {event_id} lost the race")
        raise AlreadyClosedError(event_id, existing)

    logger.info(
        f"Event {event_id} closed: {len(summary.promoters)} promoters, "
        f"{summary.total_checkins} check-ins, flagged={summary.has_errors}"
    )
    return await get_closure(db, event_id)


async def get_closure_record(db: AsyncSession, event_id: int) -> Optional[EventClosure]:
    """The closure of an event, or None while it is open.

    Raises:
        EventNotFoundError: If the event does not exist
    """
    await get_event(db, event_id)
    return await get_closure(db, event_id)
