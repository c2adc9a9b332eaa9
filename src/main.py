"""
Event Closeout Service

Main FastAPI application with:
- Per-event closeout summaries and promoter payout breakdowns
- Check-in overrides and payout adjustments with audit trail
- Atomic finalize into an immutable payout ledger
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api import api_router
from src.config import settings
from src.db import engine

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Schema is managed by Alembic; nothing is created at startup.
    Shutdown disposes the engine's connections.
    """
    logger.info(
        f"Starting closeout service (default currency {settings.default_currency}, "
        f"operator roles {settings.closeout_operator_roles})"
    )

    yield

    # Shutdown
    logger.info("Shutting down closeout service...")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="Event Closeout",
    description="Event closeout and promoter payout service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# Include routers
app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
