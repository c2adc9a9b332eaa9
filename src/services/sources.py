"""
Data-store reads used by the closeout core.

These are the only places the core suspends on I/O for reads. Nothing
here is cached: every call sees the latest committed check-ins and
operator edits.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.config import settings
from src.models import CheckinRecord, Event, EventClosure, EventPromoter
from src.services.exceptions import EventNotFoundError, PromoterNotAssignedError


async def get_event(
    db: AsyncSession,
    event_id: int,
    for_update: bool = False,
) -> Event:
    """Load an event, optionally locking its row for the transaction.

    Raises:
        EventNotFoundError: If the event does not exist
    """
    query = select(Event).where(Event.id == event_id)
    if for_update:
        # SQLite ignores FOR UPDATE; PostgreSQL serializes closeout writers here
        query = query.with_for_update()

    result = await db.execute(query)
    event = result.scalar_one_or_none()
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def event_currency(event: Event) -> str:
    """Currency tag of an event, falling back to the configured default."""
    return event.currency or settings.default_currency


async def list_assignments(db: AsyncSession, event_id: int) -> List[EventPromoter]:
    """All promoter commission assignments of an event, by promoter id."""
    result = await db.execute(
        select(EventPromoter)
        .where(EventPromoter.event_id == event_id)
        .order_by(EventPromoter.promoter_id)
    )
    return list(result.scalars().all())


async def get_assignment(
    db: AsyncSession,
    event_id: int,
    promoter_id: int,
    for_update: bool = False,
) -> EventPromoter:
    """Load one promoter's assignment.

    Raises:
        PromoterNotAssignedError: If the promoter is not on the event
    """
    query = select(EventPromoter).where(
        EventPromoter.event_id == event_id,
        EventPromoter.promoter_id == promoter_id,
    )
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise PromoterNotAssignedError(event_id, promoter_id)
    return assignment


async def list_checkins(
    db: AsyncSession,
    event_id: int,
    promoter_id: Optional[int] = None,
) -> List[CheckinRecord]:
    """Check-in records of an event, including undone ones."""
    query = select(CheckinRecord).where(CheckinRecord.event_id == event_id)
    if promoter_id is not None:
        query = query.where(CheckinRecord.promoter_id == promoter_id)

    result = await db.execute(query.order_by(CheckinRecord.checked_in_at))
    return list(result.scalars().all())


async def is_closed(db: AsyncSession, event_id: int) -> bool:
    """Whether a closure exists for the event. The closure row is the only source of truth."""
    closure_id = await db.scalar(
        select(EventClosure.id).where(EventClosure.event_id == event_id)
    )
    return closure_id is not None


async def get_closure(db: AsyncSession, event_id: int) -> Optional[EventClosure]:
    """The closure of an event with its payout lines, or None while open."""
    result = await db.execute(
        select(EventClosure)
        .options(selectinload(EventClosure.lines))
        .where(EventClosure.event_id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
