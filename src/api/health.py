"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import get_db
from src.models import EventClosure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns 200 if the service is running.
    """
    return {"status": "healthy", "service": "closeout"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check with database connectivity.

    Also probes the closure table so a missing migration shows up as not
    ready. Returns 503 when the database cannot be used.
    """
    try:
        await db.execute(text("SELECT 1"))
        await db.execute(select(EventClosure.id).limit(1))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": f"error: {e.__class__.__name__}"},
        )

    return {
        "status": "ready",
        "database": "connected",
    }


@router.get("/live")
async def liveness_check():
    """
    Liveness check.

    Returns 200 if the process is alive.
    """
    return {"status": "alive"}
