"""Quick database check script.

Usage:
    DATABASE_URL="postgresql://..." python scripts/check_db.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import create_async_engine

from src.config import settings
from src.models import Base


async def check():
    print(f"Connecting to {settings.database_url.split('@')[-1]}...")

    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.connect() as conn:
        existing = await conn.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )

        tables = sorted(Base.metadata.tables.values(), key=lambda t: t.name)
        print(f"\nCloseout tables: {len(tables)}")
        for table in tables:
            if table.name not in existing:
                print(f"  - {table.name}: MISSING (run alembic upgrade head)")
                continue
            count = await conn.scalar(select(func.count()).select_from(table))
            print(f"  - {table.name}: {count} rows")

    await engine.dispose()
    print("\nDatabase connection OK!")


if __name__ == "__main__":
    asyncio.run(check())
