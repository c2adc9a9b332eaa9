"""
Closeout aggregation.

Builds the per-event summary: one line per assigned promoter (no-shows
included with zero check-ins) plus event totals. Summaries are rebuilt
from the store on every call. Once an event is closed the summary comes
from the frozen payout lines instead.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models import CloseoutStep, Event, EventClosure, EventPromoter
from src.schemas.closeout import CloseoutSummary, PromoterCloseoutLine
from src.schemas.commission import CommissionModel
from src.services.commission import ZERO, calculate_payout
from src.services.exceptions import (
    ConfigurationError,
    InconsistentCurrencyError,
    ValidationError,
)
from src.services.ledger import line_from_payout_line
from src.services.reconciliation import CheckinLike, reconcile
from src.services.sources import (
    event_currency,
    get_closure,
    get_event,
    list_assignments,
    list_checkins,
)

logger = logging.getLogger(__name__)


def _configuration_message(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "commission"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def build_promoter_line(
    assignment: EventPromoter,
    checkins: Iterable[CheckinLike],
) -> PromoterCloseoutLine:
    """Closeout line for one promoter.

    Commission terms that fail validation or are ambiguous for their type
    produce a line with `error` set and no payout figures, so one bad
    configuration does not hide the other promoters.
    """
    counts = reconcile(
        checkins,
        assignment.promoter_id,
        override=assignment.manual_checkins_override,
        reason=assignment.manual_checkins_reason,
    )

    line = PromoterCloseoutLine(
        promoter_id=assignment.promoter_id,
        promoter_name=assignment.promoter_name,
        actual_checkins_count=counts.actual,
        manual_checkins_override=counts.override,
        manual_checkins_reason=counts.reason,
        effective_checkins_count=counts.effective,
        manual_adjustment_amount=assignment.manual_adjustment_amount,
        manual_adjustment_reason=assignment.manual_adjustment_reason,
    )

    try:
        model = CommissionModel.model_validate(assignment)
        breakdown = calculate_payout(
            model,
            counts.effective,
            assignment.manual_adjustment_amount,
        )
    except PydanticValidationError as exc:
        line.error = f"Invalid commission terms: {_configuration_message(exc)}"
    except ConfigurationError as exc:
        line.error = exc.message
    else:
        line.breakdown = breakdown
        line.calculated_payout = breakdown.calculated_payout
        line.final_payout = breakdown.final_payout
        return line

    logger.warning(
        f"Event {assignment.event_id} promoter {assignment.promoter_id} "
        f"flagged: {line.error}"
    )
    return line


def check_currency(
    event_id: int,
    currency: str,
    assignments: Sequence[EventPromoter],
) -> None:
    """Every commission row of an event must carry the event's currency.

    Raises:
        InconsistentCurrencyError: On the first mismatching row
    """
    for assignment in assignments:
        if assignment.currency and assignment.currency != currency:
            raise InconsistentCurrencyError(event_id, currency, assignment.currency)


def build_summary(
    event: Event,
    assignments: Sequence[EventPromoter],
    checkins: Sequence[CheckinLike],
    currency: Optional[str] = None,
) -> CloseoutSummary:
    """Live summary of an open event from its assignments and check-ins."""
    currency = currency or event_currency(event)
    check_currency(event.id, currency, assignments)

    lines = [build_promoter_line(assignment, checkins) for assignment in assignments]
    total_checkins, total_payout = _totals(lines)

    return CloseoutSummary(
        event_id=event.id,
        event_name=event.name,
        status=event.closeout_step,
        currency=currency,
        promoters=lines,
        total_checkins=total_checkins,
        total_payout=total_payout,
        has_errors=any(line.error for line in lines),
    )


def summary_from_closure(event: Event, closure: EventClosure) -> CloseoutSummary:
    """Summary of a closed event, read back from its frozen payout lines."""
    lines = [line_from_payout_line(row) for row in closure.lines]
    return CloseoutSummary(
        event_id=event.id,
        event_name=event.name,
        status=CloseoutStep.CLOSED,
        currency=closure.currency,
        promoters=lines,
        total_checkins=closure.total_checkins,
        total_payout=closure.total_payout,
        has_errors=any(line.error for line in lines),
        closure_id=closure.id,
        closed_at=closure.closed_at,
    )


def _totals(lines: List[PromoterCloseoutLine]) -> Tuple[int, Decimal]:
    total_checkins = sum(line.effective_checkins_count for line in lines)
    total_payout = sum(
        (line.final_payout for line in lines if line.final_payout is not None),
        ZERO,
    )
    return total_checkins, total_payout


async def build_live_summary(db: AsyncSession, event: Event) -> CloseoutSummary:
    """Read assignments and check-ins for an open event and summarize them."""
    assignments = await list_assignments(db, event.id)
    checkins = await list_checkins(db, event.id)
    return build_summary(event, assignments, checkins)


async def summarize(db: AsyncSession, event_id: int) -> CloseoutSummary:
    """Closeout summary of an event. Read-only; safe to call at any time.

    Raises:
        EventNotFoundError: If the event does not exist
        InconsistentCurrencyError: If commission rows disagree on currency
    """
    event = await get_event(db, event_id)
    closure = await get_closure(db, event_id)
    if closure is not None:
        return summary_from_closure(event, closure)
    return await build_live_summary(db, event)


def validate_adjustment(
    amount: Optional[Decimal],
    reason: Optional[str],
) -> Tuple[Optional[Decimal], Optional[str]]:
    """Normalize an adjustment request into an (amount, reason) pair.

    None or zero clears the adjustment together with its reason; any other
    amount, positive or negative, needs a non-empty reason.

    Raises:
        ValidationError: On a missing reason or more than two decimal places
    """
    if amount is None or amount == ZERO:
        return None, None

    if amount.normalize().as_tuple().exponent < -2:
        raise ValidationError("amount must have at most 2 decimal places")

    cleaned = reason.strip() if reason else ""
    if not cleaned:
        raise ValidationError("reason required")

    return amount, cleaned


def apply_payout_adjustment(
    assignment: EventPromoter,
    amount: Optional[Decimal],
    reason: Optional[str],
    actor_id: Optional[str] = None,
) -> dict:
    """Write a validated adjustment pair onto the assignment row.

    Returns:
        Previous values, for the audit trail
    """
    amount, reason = validate_adjustment(amount, reason)

    previous = {
        "amount": assignment.manual_adjustment_amount,
        "reason": assignment.manual_adjustment_reason,
    }

    assignment.manual_adjustment_amount = amount
    assignment.manual_adjustment_reason = reason
    assignment.adjustment_by = actor_id
    assignment.adjustment_at = datetime.now(timezone.utc)

    logger.info(
        f"Payout adjustment for event {assignment.event_id} "
        f"promoter {assignment.promoter_id}: {previous['amount']} -> {amount}"
    )
    return previous
