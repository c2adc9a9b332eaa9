"""Event closeout API endpoints."""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import Operator, require_closeout_operator
from src.db import get_db
from src.models import AuditAction, AuditLog
from src.schemas.closeout import (
    AuditEntryResponse,
    AuditListResponse,
    CheckinOverrideRequest,
    CloseoutStepRequest,
    CloseoutStepResponse,
    CloseoutSummary,
    ClosureRecordResponse,
    FinalizeRequest,
    FinalizeResponse,
    PayoutAdjustmentRequest,
    PromoterCloseoutLine,
)
from src.services import closeout as closeout_service
from src.services.aggregator import summarize
from src.services.exceptions import (
    AlreadyClosedError,
    ClosedEventError,
    CloseoutError,
    EventNotFoundError,
    InconsistentCurrencyError,
    PromoterNotAssignedError,
    ValidationError,
)
from src.services.export import export_filename, summary_to_csv
from src.services.ledger import closure_to_response
from src.services.sources import get_closure, get_event
from src.utils.audit import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events/{event_id}/closeout", tags=["Closeout"])


def to_http_error(exc: CloseoutError) -> HTTPException:
    """Map a closeout error to its HTTP response."""
    if isinstance(exc, (EventNotFoundError, PromoterNotAssignedError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (ClosedEventError, AlreadyClosedError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, InconsistentCurrencyError):
        logger.error(f"Currency inconsistency: {exc.message}")
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.message)


@router.get("", response_model=CloseoutSummary)
async def get_closeout_summary(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """Closeout summary: live while open, frozen once closed."""
    try:
        return await summarize(db, event_id)
    except CloseoutError as exc:
        raise to_http_error(exc) from exc


@router.put(
    "/promoters/{promoter_id}/checkin-override",
    response_model=PromoterCloseoutLine,
)
async def set_checkin_override(
    request: Request,
    event_id: int,
    promoter_id: int,
    data: CheckinOverrideRequest,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """Set or clear a promoter's check-in override."""
    try:
        return await closeout_service.set_checkin_override(
            db,
            event_id,
            promoter_id,
            count=data.count,
            reason=data.reason,
            actor_id=operator.operator_id,
            ip_address=get_client_ip(request),
        )
    except CloseoutError as exc:
        raise to_http_error(exc) from exc


@router.put(
    "/promoters/{promoter_id}/adjustment",
    response_model=PromoterCloseoutLine,
)
async def set_payout_adjustment(
    request: Request,
    event_id: int,
    promoter_id: int,
    data: PayoutAdjustmentRequest,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """Set or clear a promoter's payout adjustment."""
    try:
        return await closeout_service.set_payout_adjustment(
            db,
            event_id,
            promoter_id,
            amount=data.amount,
            reason=data.reason,
            actor_id=operator.operator_id,
            ip_address=get_client_ip(request),
        )
    except CloseoutError as exc:
        raise to_http_error(exc) from exc


@router.put("/step", response_model=CloseoutStepResponse)
async def set_closeout_step(
    request: Request,
    event_id: int,
    data: CloseoutStepRequest,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """Move an open event to another closeout step."""
    try:
        step = await closeout_service.set_closeout_step(
            db,
            event_id,
            data.step,
            actor_id=operator.operator_id,
            ip_address=get_client_ip(request),
        )
    except CloseoutError as exc:
        raise to_http_error(exc) from exc

    return CloseoutStepResponse(event_id=event_id, status=step)


@router.post("/finalize", response_model=FinalizeResponse)
async def finalize_closeout(
    request: Request,
    event_id: int,
    data: Optional[FinalizeRequest] = None,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """
    Close the event and freeze its payouts.

    Calling this again returns the existing closure with already_closed set.
    """
    data = data or FinalizeRequest()
    try:
        closure = await closeout_service.finalize_closeout(
            db,
            event_id,
            total_revenue=data.total_revenue,
            closeout_notes=data.closeout_notes,
            actor_id=operator.operator_id,
            ip_address=get_client_ip(request),
        )
    except AlreadyClosedError as exc:
        closure = exc.closure or await get_closure(db, event_id)
        if closure is None:
            raise to_http_error(exc) from exc
        return FinalizeResponse(closure=closure_to_response(closure), already_closed=True)
    except CloseoutError as exc:
        raise to_http_error(exc) from exc

    return FinalizeResponse(closure=closure_to_response(closure))


@router.get("/closure", response_model=ClosureRecordResponse)
async def get_closure_record(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """The frozen closure record. 404 while the event is open."""
    try:
        closure = await closeout_service.get_closure_record(db, event_id)
    except CloseoutError as exc:
        raise to_http_error(exc) from exc

    if closure is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event is not closed",
        )
    return closure_to_response(closure)


@router.get("/export.csv")
async def export_closeout_csv(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
):
    """Closeout lines as CSV."""
    try:
        summary = await summarize(db, event_id)
    except CloseoutError as exc:
        raise to_http_error(exc) from exc

    return Response(
        content=summary_to_csv(summary),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(summary)}"',
        },
    )


@router.get("/audit", response_model=AuditListResponse)
async def list_closeout_audit(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(require_closeout_operator),
    action: Optional[AuditAction] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
):
    """Audit trail of an event's closeout, newest first."""
    try:
        await get_event(db, event_id)
    except CloseoutError as exc:
        raise to_http_error(exc) from exc

    query = select(AuditLog).where(AuditLog.event_id == event_id)
    if action:
        query = query.where(AuditLog.action == action)

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total = await db.scalar(count_query)

    # Apply sorting and pagination
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.offset((page - 1) * per_page).limit(per_page)

    result = await db.execute(query)
    logs = result.scalars().all()

    return AuditListResponse(
        items=[AuditEntryResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        per_page=per_page,
        pages=math.ceil(total / per_page) if total else 0,
    )
