"""
Commission terms and payout breakdown schemas.

CommissionModel is the validated form of an event_promoters row. It is
built once where commission data enters the core; the calculator trusts
it and never re-validates.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.promoter import CommissionType


class BonusTierType(str, Enum):
    """How often a bonus tier pays."""
    ONE_TIME = "one_time"      # Once, when the threshold is reached
    REPEATABLE = "repeatable"  # Every `threshold` guests


class BonusTier(BaseModel):
    """One entry of a tiered bonus schedule."""

    model_config = ConfigDict(frozen=True)

    threshold: int = Field(..., gt=0)
    amount: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)
    type: BonusTierType = BonusTierType.ONE_TIME
    label: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="before")
    @classmethod
    def accept_repeatable_flag(cls, data: Any) -> Any:
        """Older rows store `repeatable: bool` instead of `type`."""
        if isinstance(data, dict) and "type" not in data and "repeatable" in data:
            data = dict(data)
            repeatable = data.pop("repeatable")
            data["type"] = (
                BonusTierType.REPEATABLE if repeatable else BonusTierType.ONE_TIME
            )
        return data


class CommissionModel(BaseModel):
    """
    One promoter's commission terms for one event.

    Optional fields left as None disable their component. Money and
    percentages are Decimals; nothing here is rounded.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    commission_type: CommissionType = CommissionType.PER_HEAD

    per_head_rate: Optional[Decimal] = Field(None, ge=0)
    per_head_min: Optional[int] = Field(None, ge=0)
    per_head_max: Optional[int] = Field(None, ge=0)

    fixed_fee: Optional[Decimal] = Field(None, ge=0)
    minimum_guests: Optional[int] = Field(None, ge=0)
    below_minimum_percent: Optional[Decimal] = Field(None, ge=0, le=100)

    bonus_threshold: Optional[int] = Field(None, ge=0)
    bonus_amount: Optional[Decimal] = Field(None, ge=0)
    bonus_tiers: Tuple[BonusTier, ...] = ()

    currency: Optional[str] = Field(None, max_length=10)

    @field_validator("bonus_tiers", mode="before")
    @classmethod
    def none_means_no_tiers(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("bonus_tiers")
    @classmethod
    def sort_tiers(cls, v: Tuple[BonusTier, ...]) -> Tuple[BonusTier, ...]:
        return tuple(sorted(v, key=lambda tier: tier.threshold))

    @model_validator(mode="after")
    def check_per_head_bounds(self) -> "CommissionModel":
        if (
            self.per_head_min is not None
            and self.per_head_max is not None
            and self.per_head_min > self.per_head_max
        ):
            raise ValueError("per_head_min must not exceed per_head_max")
        return self


class LineItemKind(str, Enum):
    """Component of a payout breakdown."""
    PER_HEAD = "per_head"
    FIXED_FEE = "fixed_fee"
    BONUS = "bonus"


class BonusKind(str, Enum):
    LEGACY = "legacy"
    ONE_TIME = "one_time"
    REPEATABLE = "repeatable"


class PayoutLineItem(BaseModel):
    """A labeled amount emitted by one calculator step."""

    kind: LineItemKind
    label: str
    amount: Decimal

    # Per-head details
    rate: Optional[Decimal] = None
    counted: Optional[int] = None

    # Fixed fee details
    full_amount: Optional[Decimal] = None
    percent_applied: Optional[Decimal] = None

    # Bonus details
    bonus_kind: Optional[BonusKind] = None
    threshold: Optional[int] = None
    unit_amount: Optional[Decimal] = None
    times_earned: Optional[int] = None

    note: Optional[str] = None


class PayoutBreakdown(BaseModel):
    """Itemized result of the payout calculator."""

    effective_checkins_count: int
    items: List[PayoutLineItem] = Field(default_factory=list)

    per_head_amount: Decimal = Decimal("0")
    per_head_counted: int = 0
    fixed_fee_amount: Decimal = Decimal("0")
    fixed_fee_percent_applied: Optional[Decimal] = None
    bonus_amount: Decimal = Decimal("0")

    calculated_payout: Decimal = Decimal("0")
    manual_adjustment: Decimal = Decimal("0")
    final_payout: Decimal = Decimal("0")
