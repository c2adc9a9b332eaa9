"""
Check-in reconciliation.

The actual count of a promoter is always recomputed from check-in
records; an override is operator metadata stored next to the commission
row and never touches the records themselves.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, Tuple

from src.models import EventPromoter
from src.services.exceptions import ValidationError

logger = logging.getLogger(__name__)


class CheckinLike(Protocol):
    promoter_id: Optional[int]
    undone: bool


@dataclass(frozen=True)
class ReconciledCount:
    actual: int
    effective: int
    override: Optional[int] = None
    reason: Optional[str] = None


def count_actual_checkins(records: Iterable[CheckinLike], promoter_id: int) -> int:
    """Number of non-undone check-ins attributed to a promoter."""
    return sum(
        1 for record in records
        if record.promoter_id == promoter_id and not record.undone
    )


def reconcile(
    records: Iterable[CheckinLike],
    promoter_id: int,
    override: Optional[int] = None,
    reason: Optional[str] = None,
) -> ReconciledCount:
    """Actual and effective check-in counts for one promoter.

    The override wins when set, otherwise the actual count is used.
    """
    actual = count_actual_checkins(records, promoter_id)
    effective = override if override is not None else actual
    return ReconciledCount(
        actual=actual,
        effective=effective,
        override=override,
        reason=reason if override is not None else None,
    )


def validate_override(
    count: Optional[int],
    reason: Optional[str],
) -> Tuple[Optional[int], Optional[str]]:
    """Normalize an override request into a (count, reason) pair.

    A None count clears the override, and the reason with it. A count
    needs a non-empty reason.

    Raises:
        ValidationError: On a negative count or a missing reason
    """
    if count is None:
        return None, None

    if count < 0:
        raise ValidationError("override count cannot be negative")

    cleaned = reason.strip() if reason else ""
    if not cleaned:
        raise ValidationError("reason required")

    return count, cleaned


def apply_checkin_override(
    assignment: EventPromoter,
    count: Optional[int],
    reason: Optional[str],
    actor_id: Optional[str] = None,
) -> dict:
    """Write a validated override pair onto the assignment row.

    Both fields are assigned together so the row never holds a count
    without a reason or the other way round.

    Returns:
        Previous values, for the audit trail
    """
    count, reason = validate_override(count, reason)

    previous = {
        "count": assignment.manual_checkins_override,
        "reason": assignment.manual_checkins_reason,
    }

    assignment.manual_checkins_override = count
    assignment.manual_checkins_reason = reason
    assignment.checkins_override_by = actor_id
    assignment.checkins_override_at = datetime.now(timezone.utc)

    logger.info(
        f"Check-in override for event {assignment.event_id} "
        f"promoter {assignment.promoter_id}: {previous['count']} -> {count}"
    )
    return previous
