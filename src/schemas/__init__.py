"""Pydantic schemas for request/response validation."""

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
from src.schemas.commission import (
    BonusKind,
    BonusTier,
    BonusTierType,
    CommissionModel,
    LineItemKind,
    PayoutBreakdown,
    PayoutLineItem,
)

__all__ = [
    # Commission
    "CommissionModel",
    "BonusTier",
    "BonusTierType",
    "BonusKind",
    "LineItemKind",
    "PayoutLineItem",
    "PayoutBreakdown",
    # Closeout
    "PromoterCloseoutLine",
    "CloseoutSummary",
    "ClosureRecordResponse",
    "CheckinOverrideRequest",
    "PayoutAdjustmentRequest",
    "CloseoutStepRequest",
    "CloseoutStepResponse",
    "FinalizeRequest",
    "FinalizeResponse",
    "AuditEntryResponse",
    "AuditListResponse",
]
