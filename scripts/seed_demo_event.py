"""
Seed a demo event for closeout testing.

Usage:
    python scripts/seed_demo_event.py

Or with custom DATABASE_URL:
    DATABASE_URL="postgresql://..." python scripts/seed_demo_event.py

This script creates:
- One open event
- Promoters covering per-head, fixed-fee and hybrid commission terms
- Check-ins attributed to them (a few undone)
- An operator token for calling the closeout API
"""

import asyncio
import os
import random
import sys
from decimal import Decimal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.auth.jwt import create_access_token
from src.db import get_db_context
from src.models import CheckinRecord, CommissionType, Event, EventPromoter


# ===== DEMO DATA =====

DEMO_PROMOTERS = [
    {
        "promoter_id": 101,
        "promoter_name": "Ayu",
        "commission_type": CommissionType.PER_HEAD,
        "per_head_rate": Decimal("10.00"),
        "per_head_max": 40,
        "bonus_tiers": [
            {"threshold": 10, "amount": "50", "type": "one_time", "label": "First ten"},
            {"threshold": 10, "amount": "5", "type": "repeatable"},
        ],
        "checkins": 24,
    },
    {
        "promoter_id": 102,
        "promoter_name": "Budi",
        "commission_type": CommissionType.FIXED_FEE,
        "fixed_fee": Decimal("500.00"),
        "minimum_guests": 20,
        "below_minimum_percent": Decimal("50"),
        "checkins": 12,
    },
    {
        "promoter_id": 103,
        "promoter_name": "Citra",
        "commission_type": CommissionType.HYBRID,
        "per_head_rate": Decimal("5.00"),
        "fixed_fee": Decimal("200.00"),
        "bonus_threshold": 15,
        "bonus_amount": Decimal("100.00"),
        "checkins": 18,
    },
    {
        "promoter_id": 104,
        "promoter_name": "Dewi (no-show)",
        "commission_type": CommissionType.PER_HEAD,
        "per_head_rate": Decimal("8.00"),
        "per_head_min": 5,
        "checkins": 0,
    },
]

UNDONE_PER_PROMOTER = 2


async def seed():
    async with get_db_context() as db:
        event = Event(name="Demo Night", currency="IDR")
        db.add(event)
        await db.flush()
        print(f"Created event {event.id}: {event.name}")

        registration_id = 1
        for data in DEMO_PROMOTERS:
            data = dict(data)
            checkins = data.pop("checkins")
            db.add(EventPromoter(event_id=event.id, currency="IDR", **data))

            for i in range(checkins + (UNDONE_PER_PROMOTER if checkins else 0)):
                db.add(
                    CheckinRecord(
                        event_id=event.id,
                        registration_id=registration_id,
                        promoter_id=data["promoter_id"],
                        undone=i >= checkins,
                    )
                )
                registration_id += 1

            print(f"  - {data['promoter_name']}: {checkins} check-ins")

        # Walk-ins without a promoter never count for anyone
        for _ in range(random.randint(3, 8)):
            db.add(CheckinRecord(event_id=event.id, registration_id=registration_id))
            registration_id += 1

    token = create_access_token(operator_id="demo-organizer", role="organizer")
    print(f"\nCloseout summary: GET /api/events/{event.id}/closeout")
    print(f"Operator token: {token}")


if __name__ == "__main__":
    asyncio.run(seed())
