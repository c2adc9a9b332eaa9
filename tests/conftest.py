"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.models import Base, CheckinRecord, CommissionType, Event, EventPromoter


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OPERATOR_ID = "op-1"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine.

    StaticPool keeps a single in-memory database shared by every session.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


def add_checkins(session, event_id, promoter_id, count, undone=0, start=1):
    """Stage `count` live and `undone` reversed check-ins for a promoter."""
    for i in range(count + undone):
        session.add(
            CheckinRecord(
                event_id=event_id,
                registration_id=start + i,
                promoter_id=promoter_id,
                undone=i >= count,
            )
        )


@pytest_asyncio.fixture
async def closeout_event(db_session):
    """
    An open event with three promoters:

    - 1: per head, 10 per check-in, 12 check-ins (+2 undone)
    - 2: fixed fee 500, minimum 20 guests at 50%, 8 check-ins
    - 3: per head, 5 per check-in, no check-ins (no-show)
    """
    event = Event(name="Friday Night", currency="IDR")
    db_session.add(event)
    await db_session.flush()

    db_session.add_all([
        EventPromoter(
            event_id=event.id,
            promoter_id=1,
            promoter_name="Ayu",
            commission_type=CommissionType.PER_HEAD,
            per_head_rate=Decimal("10"),
            currency="IDR",
        ),
        EventPromoter(
            event_id=event.id,
            promoter_id=2,
            promoter_name="Budi",
            commission_type=CommissionType.FIXED_FEE,
            fixed_fee=Decimal("500"),
            minimum_guests=20,
            below_minimum_percent=Decimal("50"),
        ),
        EventPromoter(
            event_id=event.id,
            promoter_id=3,
            promoter_name="Citra",
            commission_type=CommissionType.PER_HEAD,
            per_head_rate=Decimal("5"),
        ),
    ])
    add_checkins(db_session, event.id, promoter_id=1, count=12, undone=2, start=1)
    add_checkins(db_session, event.id, promoter_id=2, count=8, start=100)
    # Walk-in without a promoter
    db_session.add(CheckinRecord(event_id=event.id, registration_id=500, promoter_id=None))

    await db_session.commit()
    return SimpleNamespace(id=event.id, per_head=1, fixed_fee=2, no_show=3)


@pytest.fixture
def operator():
    from src.auth.dependencies import Operator

    return Operator(operator_id=OPERATOR_ID, role="organizer")


@pytest_asyncio.fixture
async def client(session_factory, operator):
    """HTTP client against the app with the test database and an organizer."""
    from src.auth.dependencies import require_closeout_operator
    from src.db import get_db
    from src.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_closeout_operator] = lambda: operator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
