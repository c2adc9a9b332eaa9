"""
Tests for the closeout state machine.

Covers:
- Override and adjustment entry points with audit entries
- Step changes
- Atomic, idempotent finalize and post-close immutability
- Money precision of the frozen ledger
"""

import os
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.models import (
    AuditAction,
    AuditLog,
    CheckinRecord,
    CloseoutStep,
    CommissionType,
    EventClosure,
    EventPromoter,
    OutboxEvent,
    PaymentStatus,
    PayoutLine,
)
from src.services import closeout as closeout_service
from src.services.aggregator import summarize
from src.services.closeout import (
    finalize_closeout,
    get_closure_record,
    set_checkin_override,
    set_closeout_step,
    set_payout_adjustment,
)
from src.services.exceptions import (
    AlreadyClosedError,
    ClosedEventError,
    EventNotFoundError,
    InconsistentCurrencyError,
    PromoterNotAssignedError,
    ValidationError,
)
from src.services.sources import get_assignment

OPERATOR_ID = "op-1"


async def _count(db, model):
    return await db.scalar(select(func.count()).select_from(model))


async def _audit_actions(db, event_id):
    result = await db.execute(
        select(AuditLog.action).where(AuditLog.event_id == event_id).order_by(AuditLog.id)
    )
    return list(result.scalars().all())


# ── overrides ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_override_set_and_clear(db_session, closeout_event):
    event_id = closeout_event.id
    promoter_id = closeout_event.fixed_fee

    line = await set_checkin_override(
        db_session, event_id, promoter_id, 22, "door miscount", actor_id=OPERATOR_ID
    )
    assert line.actual_checkins_count == 8
    assert line.effective_checkins_count == 22
    assert line.final_payout == Decimal("500")

    line = await set_checkin_override(db_session, event_id, promoter_id, None, None)
    assert line.effective_checkins_count == 8
    assert line.manual_checkins_reason is None
    assert line.final_payout == Decimal("250")

    assignment = await get_assignment(db_session, event_id, promoter_id)
    assert assignment.manual_checkins_override is None
    assert assignment.manual_checkins_reason is None

    assert await _audit_actions(db_session, event_id) == [
        AuditAction.SET_CHECKIN_OVERRIDE,
        AuditAction.CLEAR_CHECKIN_OVERRIDE,
    ]


@pytest.mark.asyncio
async def test_override_without_reason_rejected(db_session, closeout_event):
    with pytest.raises(ValidationError, match="reason required"):
        await set_checkin_override(
            db_session, closeout_event.id, closeout_event.per_head, 5, None
        )
    await db_session.rollback()

    assignment = await get_assignment(db_session, closeout_event.id, closeout_event.per_head)
    assert assignment.manual_checkins_override is None
    assert await _count(db_session, AuditLog) == 0


@pytest.mark.asyncio
async def test_override_unknown_promoter(db_session, closeout_event):
    with pytest.raises(PromoterNotAssignedError):
        await set_checkin_override(db_session, closeout_event.id, 404, 1, "x")


@pytest.mark.asyncio
async def test_override_unknown_event(db_session):
    with pytest.raises(EventNotFoundError):
        await set_checkin_override(db_session, 999, 1, 1, "x")


# ── adjustments ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_adjustment_set_and_clear(db_session, closeout_event):
    event_id = closeout_event.id

    line = await set_payout_adjustment(
        db_session,
        event_id,
        closeout_event.per_head,
        Decimal("-20"),
        "advance paid in cash",
        actor_id=OPERATOR_ID,
    )
    assert line.calculated_payout == Decimal("120")
    assert line.final_payout == Decimal("100")

    line = await set_payout_adjustment(
        db_session, event_id, closeout_event.per_head, Decimal("0"), None
    )
    assert line.manual_adjustment_amount is None
    assert line.manual_adjustment_reason is None
    assert line.final_payout == Decimal("120")

    result = await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.SET_PAYOUT_ADJUSTMENT)
    )
    entry = result.scalar_one()
    assert entry.actor_id == OPERATOR_ID
    assert entry.target_id == closeout_event.per_head
    assert entry.action_metadata["amount"] == "-20"
    assert entry.action_metadata["reason"] == "advance paid in cash"


@pytest.mark.asyncio
async def test_adjustment_without_reason_rejected(db_session, closeout_event):
    with pytest.raises(ValidationError):
        await set_payout_adjustment(
            db_session, closeout_event.id, closeout_event.per_head, Decimal("15"), "  "
        )


# ── steps ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_steps_move_freely(db_session, closeout_event):
    event_id = closeout_event.id

    assert await set_closeout_step(db_session, event_id, CloseoutStep.REVIEWING_PAYOUTS) == (
        CloseoutStep.REVIEWING_PAYOUTS
    )
    assert await set_closeout_step(db_session, event_id, CloseoutStep.CONFIRMING) == (
        CloseoutStep.CONFIRMING
    )

    summary = await summarize(db_session, event_id)
    assert summary.status == CloseoutStep.CONFIRMING


@pytest.mark.asyncio
async def test_step_cannot_enter_closed(db_session, closeout_event):
    with pytest.raises(ValidationError):
        await set_closeout_step(db_session, closeout_event.id, CloseoutStep.CLOSED)


# ── finalize ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_finalize_freezes_lines(db_session, closeout_event):
    event_id = closeout_event.id
    await set_payout_adjustment(
        db_session, event_id, closeout_event.per_head, Decimal("-20"), "advance"
    )

    closure = await finalize_closeout(
        db_session,
        event_id,
        total_revenue=Decimal("15000.00"),
        closeout_notes="Smooth night",
        actor_id=OPERATOR_ID,
    )

    assert closure.event_id == event_id
    assert closure.closed_by == OPERATOR_ID
    assert closure.currency == "IDR"
    assert closure.total_checkins == 20
    assert closure.total_payout == Decimal("350")
    assert closure.total_revenue == Decimal("15000.00")
    assert closure.closeout_notes == "Smooth night"
    assert closure.closed_at is not None

    lines = {line.promoter_id: line for line in closure.lines}
    assert set(lines) == {1, 2, 3}
    assert lines[closeout_event.per_head].final_payout == Decimal("100")
    assert lines[closeout_event.per_head].manual_adjustment_reason == "advance"
    assert lines[closeout_event.no_show].effective_checkins_count == 0
    assert all(line.payment_status == PaymentStatus.PENDING_PAYMENT for line in closure.lines)
    assert lines[closeout_event.fixed_fee].breakdown["items"][0]["kind"] == "fixed_fee"

    assert await _count(db_session, EventClosure) == 1
    assert await _count(db_session, PayoutLine) == 3

    outbox = (await db_session.execute(select(OutboxEvent))).scalar_one()
    assert outbox.event_type == "event_closed"
    assert outbox.payload["closure_id"] == closure.id
    assert outbox.payload["promoter_count"] == 3

    assert (await _audit_actions(db_session, event_id))[-1] == AuditAction.FINALIZE_CLOSEOUT


@pytest.mark.asyncio
async def test_finalize_scenario_negative_adjustment(db_session, closeout_event):
    # 10 check-ins at 5 = 50, corrected by -20
    await set_checkin_override(
        db_session, closeout_event.id, closeout_event.no_show, 10, "paper guest list"
    )
    await set_payout_adjustment(
        db_session, closeout_event.id, closeout_event.no_show, Decimal("-20"), "overpaid"
    )

    closure = await finalize_closeout(db_session, closeout_event.id)

    line = next(line for line in closure.lines if line.promoter_id == closeout_event.no_show)
    assert line.calculated_payout == Decimal("50")
    assert line.final_payout == Decimal("30")
    assert line.manual_checkins_override == 10
    assert line.manual_checkins_reason == "paper guest list"


@pytest.mark.asyncio
async def test_finalize_twice_returns_existing_closure(db_session, closeout_event):
    first = await finalize_closeout(db_session, closeout_event.id, total_revenue=Decimal("100"))

    with pytest.raises(AlreadyClosedError) as exc_info:
        await finalize_closeout(db_session, closeout_event.id, total_revenue=Decimal("999"))

    existing = exc_info.value.closure
    assert existing.id == first.id
    assert existing.total_revenue == Decimal("100")
    assert existing.total_payout == first.total_payout
    assert await _count(db_session, EventClosure) == 1
    assert await _count(db_session, PayoutLine) == 3
    assert await _count(db_session, OutboxEvent) == 1


@pytest.mark.asyncio
async def test_finalize_losing_race_reports_winner(db_session, closeout_event, monkeypatch):
    """The store's unique constraint decides a race the pre-check missed."""
    winner = await finalize_closeout(db_session, closeout_event.id)
    winner_id = winner.id

    real_get_closure = closeout_service.get_closure
    calls = []

    async def stale_get_closure(db, event_id):
        calls.append(event_id)
        if len(calls) == 1:
            return None
        return await real_get_closure(db, event_id)

    monkeypatch.setattr(closeout_service, "get_closure", stale_get_closure)

    with pytest.raises(AlreadyClosedError) as exc_info:
        await finalize_closeout(db_session, closeout_event.id)

    assert exc_info.value.closure.id == winner_id
    assert await _count(db_session, EventClosure) == 1
    assert await _count(db_session, PayoutLine) == 3


@pytest.mark.asyncio
async def test_finalize_with_flagged_line(db_session, closeout_event):
    assignment = await get_assignment(db_session, closeout_event.id, closeout_event.no_show)
    assignment.per_head_rate = None
    await db_session.commit()

    closure = await finalize_closeout(db_session, closeout_event.id)

    flagged = next(line for line in closure.lines if line.promoter_id == closeout_event.no_show)
    assert flagged.configuration_error is not None
    assert flagged.final_payout is None
    assert flagged.payment_status == PaymentStatus.ON_HOLD
    assert closure.total_payout == Decimal("370")


@pytest.mark.asyncio
async def test_finalize_unknown_event(db_session):
    with pytest.raises(EventNotFoundError):
        await finalize_closeout(db_session, 999)


# ── after close ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_mutations_rejected_after_close(db_session, closeout_event):
    event_id = closeout_event.id
    await finalize_closeout(db_session, event_id)

    with pytest.raises(ClosedEventError):
        await set_checkin_override(db_session, event_id, closeout_event.per_head, 1, "late")
    with pytest.raises(ClosedEventError):
        await set_checkin_override(db_session, event_id, closeout_event.per_head, 5, None)
    with pytest.raises(ClosedEventError):
        await set_payout_adjustment(
            db_session, event_id, closeout_event.per_head, Decimal("5"), "tip"
        )
    with pytest.raises(ClosedEventError):
        await set_closeout_step(db_session, event_id, CloseoutStep.OPEN)


@pytest.mark.asyncio
async def test_summary_frozen_after_close(db_session, closeout_event):
    event_id = closeout_event.id
    closure = await finalize_closeout(db_session, event_id)

    # A late scan arrives after closing
    db_session.add(
        CheckinRecord(event_id=event_id, registration_id=900, promoter_id=closeout_event.per_head)
    )
    await db_session.commit()

    summary = await summarize(db_session, event_id)
    assert summary.status == CloseoutStep.CLOSED
    assert summary.closure_id == closure.id
    assert summary.total_checkins == closure.total_checkins
    assert summary.total_payout == closure.total_payout

    lines = {line.promoter_id: line for line in summary.promoters}
    for row in closure.lines:
        assert lines[row.promoter_id].effective_checkins_count == row.effective_checkins_count
        assert lines[row.promoter_id].final_payout == row.final_payout
    assert lines[closeout_event.per_head].actual_checkins_count == 12


@pytest.mark.asyncio
async def test_closure_record_lookup(db_session, closeout_event):
    assert await get_closure_record(db_session, closeout_event.id) is None

    closure = await finalize_closeout(db_session, closeout_event.id)

    found = await get_closure_record(db_session, closeout_event.id)
    assert found.id == closure.id


# ── money precision ───────────────────────────────────────


@pytest.mark.asyncio
async def test_frozen_payouts_match_breakdown(db_session, closeout_event):
    event_id = closeout_event.id
    assignment = await get_assignment(db_session, event_id, closeout_event.per_head)
    assignment.bonus_tiers = [{"threshold": 1, "amount": "0.15", "type": "repeatable"}]
    await db_session.commit()
    await set_payout_adjustment(
        db_session, event_id, closeout_event.per_head, Decimal("-0.05"), "rounding"
    )

    live = await summarize(db_session, event_id)
    closure = await finalize_closeout(db_session, event_id)
    frozen = await summarize(db_session, event_id)

    assert closure.total_payout == live.total_payout == Decimal("371.75")
    assert frozen.total_payout == live.total_payout
    for line in frozen.promoters:
        assert line.calculated_payout == line.breakdown.calculated_payout
        assert line.final_payout == line.breakdown.final_payout


@pytest.mark.asyncio
async def test_bonus_amount_beyond_cents_flags_line(db_session, closeout_event):
    event_id = closeout_event.id
    assignment = await get_assignment(db_session, event_id, closeout_event.per_head)
    assignment.bonus_tiers = [{"threshold": 1, "amount": "0.1234567", "type": "repeatable"}]
    await db_session.commit()

    summary = await summarize(db_session, event_id)

    line = next(item for item in summary.promoters if item.promoter_id == closeout_event.per_head)
    assert line.error.startswith("Invalid commission terms")
    assert line.final_payout is None


@pytest.mark.asyncio
async def test_adjustment_beyond_cents_rejected(db_session, closeout_event):
    with pytest.raises(ValidationError):
        await set_payout_adjustment(
            db_session, closeout_event.id, closeout_event.per_head, Decimal("0.001"), "tip"
        )

    assignment = await get_assignment(db_session, closeout_event.id, closeout_event.per_head)
    assert assignment.manual_adjustment_amount is None


# ── store failures ────────────────────────────────────────


@pytest.mark.asyncio
async def test_finalize_write_failure_is_not_reported_as_closed(
    db_session, closeout_event, monkeypatch
):
    async def failing_write_closure(db, summary, **kwargs):
        raise IntegrityError("INSERT INTO payout_lines", {}, Exception("NOT NULL failed"))

    monkeypatch.setattr(closeout_service, "write_closure", failing_write_closure)

    with pytest.raises(IntegrityError):
        await finalize_closeout(db_session, closeout_event.id)

    assert await get_closure_record(db_session, closeout_event.id) is None
    assert await _count(db_session, EventClosure) == 0


@pytest.mark.asyncio
async def test_mutation_on_mismatched_currency_row(db_session, closeout_event):
    db_session.add(
        EventPromoter(
            event_id=closeout_event.id,
            promoter_id=9,
            commission_type=CommissionType.PER_HEAD,
            per_head_rate=Decimal("1"),
            currency="USD",
        )
    )
    await db_session.commit()

    with pytest.raises(InconsistentCurrencyError):
        await set_checkin_override(db_session, closeout_event.id, 9, 4, "door count")
    with pytest.raises(InconsistentCurrencyError):
        await set_payout_adjustment(db_session, closeout_event.id, 9, Decimal("5"), "tip")

    assignment = await get_assignment(db_session, closeout_event.id, 9)
    assert assignment.manual_checkins_override is None
    assert assignment.manual_adjustment_amount is None
