"""
Closeout request/response schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from src.models.audit import AuditAction
from src.models.event import CloseoutStep
from src.models.ledger import PaymentStatus
from src.schemas.commission import PayoutBreakdown


class PromoterCloseoutLine(BaseModel):
    """
    One promoter's closeout line.

    calculated_payout and final_payout are None when `error` is set: the
    commission terms could not be evaluated and the line is flagged rather
    than blocking the rest of the summary.
    """

    promoter_id: int
    promoter_name: Optional[str] = None

    actual_checkins_count: int
    manual_checkins_override: Optional[int] = None
    manual_checkins_reason: Optional[str] = None
    effective_checkins_count: int

    breakdown: Optional[PayoutBreakdown] = None
    calculated_payout: Optional[Decimal] = None
    manual_adjustment_amount: Optional[Decimal] = None
    manual_adjustment_reason: Optional[str] = None
    final_payout: Optional[Decimal] = None

    error: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None


class CloseoutSummary(BaseModel):
    """Per-event closeout summary, live before closure and frozen after."""

    event_id: int
    event_name: Optional[str] = None
    status: CloseoutStep
    currency: str
    promoters: List[PromoterCloseoutLine] = Field(default_factory=list)
    total_checkins: int = 0
    total_payout: Decimal = Decimal("0")
    has_errors: bool = False

    # Set once closed
    closure_id: Optional[int] = None
    closed_at: Optional[datetime] = None


class ClosureRecordResponse(BaseModel):
    """The immutable closure of an event."""

    id: int
    event_id: int
    closed_at: datetime
    closed_by: Optional[str] = None
    currency: str
    total_checkins: int
    total_payout: Decimal
    total_revenue: Optional[Decimal] = None
    closeout_notes: Optional[str] = None
    lines: List[PromoterCloseoutLine] = Field(default_factory=list)


class CheckinOverrideRequest(BaseModel):
    """Set (count + reason) or clear (count = null) a check-in override."""

    count: Optional[int] = Field(None, ge=0)
    reason: Optional[str] = Field(None, max_length=1000)


class PayoutAdjustmentRequest(BaseModel):
    """Set (amount + reason) or clear (amount = null) a payout adjustment."""

    amount: Optional[Decimal] = Field(None, max_digits=14, decimal_places=2)
    reason: Optional[str] = Field(None, max_length=1000)


class CloseoutStepRequest(BaseModel):
    step: CloseoutStep


class CloseoutStepResponse(BaseModel):
    event_id: int
    status: CloseoutStep


class FinalizeRequest(BaseModel):
    total_revenue: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    closeout_notes: Optional[str] = Field(None, max_length=5000)


class FinalizeResponse(BaseModel):
    """
    Result of a finalize call.

    already_closed is True when the event had been closed before this call;
    closure is then the existing record, unchanged.
    """

    closure: ClosureRecordResponse
    already_closed: bool = False


class AuditEntryResponse(BaseModel):
    id: int
    actor_id: Optional[str]
    action: AuditAction
    target_type: Optional[str]
    target_id: Optional[int]
    action_metadata: Optional[dict]
    ip_address: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditListResponse(BaseModel):
    items: List[AuditEntryResponse]
    total: int
    page: int
    per_page: int
    pages: int
