"""
Promoter payout calculation.

Steps, always in this order:
1. Per-head: check-ins x rate, count limited by per_head_min/per_head_max
2. Fixed fee: full fee, or below_minimum_percent of it under minimum_guests
3. Bonuses: tiered schedule if configured, otherwise the single legacy bonus
4. calculated_payout = sum of all items
5. final_payout = calculated_payout + manual adjustment (may go negative)

All arithmetic is Decimal and nothing is rounded here; rounding belongs
to presentation (see src.utils.formatting).
"""

from decimal import Decimal
from typing import List, Optional

from src.models.promoter import CommissionType
from src.schemas.commission import (
    BonusKind,
    BonusTierType,
    CommissionModel,
    LineItemKind,
    PayoutBreakdown,
    PayoutLineItem,
)
from src.services.exceptions import ConfigurationError, ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

PER_HEAD_TYPES = (CommissionType.PER_HEAD, CommissionType.HYBRID)
FIXED_FEE_TYPES = (CommissionType.FIXED_FEE, CommissionType.HYBRID)

NOTE_BELOW_MINIMUM = "below minimum threshold"
NOTE_CAPPED = "capped at maximum"


def check_required_fields(model: CommissionModel) -> None:
    """Raise ConfigurationError when the declared type has nothing to pay on.

    A per_head model without any per_head_rate (or a fixed_fee model without
    fixed_fee) is ambiguous: it may be meant as zero or may be a forgotten
    field, so it is not silently treated as zero.
    """
    if model.commission_type == CommissionType.PER_HEAD and model.per_head_rate is None:
        raise ConfigurationError("per_head commission has no per_head_rate")

    if model.commission_type == CommissionType.FIXED_FEE and model.fixed_fee is None:
        raise ConfigurationError("fixed_fee commission has no fixed_fee")

    if (
        model.commission_type == CommissionType.HYBRID
        and model.per_head_rate is None
        and model.fixed_fee is None
    ):
        raise ConfigurationError("hybrid commission has neither per_head_rate nor fixed_fee")


def _per_head_item(model: CommissionModel, count: int) -> Optional[PayoutLineItem]:
    if model.commission_type not in PER_HEAD_TYPES or model.per_head_rate is None:
        return None

    counted = count
    note = None
    if model.per_head_min is not None and count < model.per_head_min:
        # Under the minimum nothing is paid per head
        counted = 0
        note = NOTE_BELOW_MINIMUM
    elif model.per_head_max is not None and count > model.per_head_max:
        counted = model.per_head_max
        note = NOTE_CAPPED

    return PayoutLineItem(
        kind=LineItemKind.PER_HEAD,
        label=f"{counted} check-ins x {model.per_head_rate}",
        amount=model.per_head_rate * counted,
        rate=model.per_head_rate,
        counted=counted,
        note=note,
    )


def _fixed_fee_item(model: CommissionModel, count: int) -> Optional[PayoutLineItem]:
    if model.commission_type not in FIXED_FEE_TYPES or model.fixed_fee is None:
        return None

    if model.minimum_guests is not None and count < model.minimum_guests:
        percent = model.below_minimum_percent if model.below_minimum_percent is not None else ZERO
        amount = model.fixed_fee * percent / HUNDRED
        note = f"below minimum of {model.minimum_guests} guests"
    else:
        percent = HUNDRED
        amount = model.fixed_fee
        note = None

    return PayoutLineItem(
        kind=LineItemKind.FIXED_FEE,
        label="Fixed fee",
        amount=amount,
        full_amount=model.fixed_fee,
        percent_applied=percent,
        note=note,
    )


def _bonus_items(model: CommissionModel, count: int) -> List[PayoutLineItem]:
    items: List[PayoutLineItem] = []

    if model.bonus_tiers:
        for tier in sorted(model.bonus_tiers, key=lambda t: t.threshold):
            if tier.type == BonusTierType.REPEATABLE:
                times_earned = count // tier.threshold
                if times_earned > 0:
                    items.append(
                        PayoutLineItem(
                            kind=LineItemKind.BONUS,
                            label=tier.label or f"Every {tier.threshold} guests",
                            amount=tier.amount * times_earned,
                            bonus_kind=BonusKind.REPEATABLE,
                            threshold=tier.threshold,
                            unit_amount=tier.amount,
                            times_earned=times_earned,
                        )
                    )
            elif count >= tier.threshold:
                items.append(
                    PayoutLineItem(
                        kind=LineItemKind.BONUS,
                        label=tier.label or f"{tier.threshold}+ guests",
                        amount=tier.amount,
                        bonus_kind=BonusKind.ONE_TIME,
                        threshold=tier.threshold,
                        unit_amount=tier.amount,
                    )
                )
        return items

    # Single legacy bonus only applies when no tiers are configured
    if (
        model.bonus_threshold is not None
        and model.bonus_amount is not None
        and count >= model.bonus_threshold
    ):
        items.append(
            PayoutLineItem(
                kind=LineItemKind.BONUS,
                label=f"{model.bonus_threshold}+ guests",
                amount=model.bonus_amount,
                bonus_kind=BonusKind.LEGACY,
                threshold=model.bonus_threshold,
                unit_amount=model.bonus_amount,
            )
        )
    return items


def calculate_payout(
    model: CommissionModel,
    effective_count: int,
    manual_adjustment: Optional[Decimal] = None,
) -> PayoutBreakdown:
    """Calculate a promoter's payout for an effective check-in count.

    Args:
        model: Validated commission terms
        effective_count: Override count if set, otherwise actual check-ins
        manual_adjustment: Signed operator adjustment, None for none

    Returns:
        Itemized PayoutBreakdown

    Raises:
        ConfigurationError: If the terms are ambiguous for their type
        ValidationError: If effective_count is negative
    """
    if effective_count < 0:
        raise ValidationError("effective check-in count cannot be negative")

    check_required_fields(model)

    per_head = _per_head_item(model, effective_count)
    fixed_fee = _fixed_fee_item(model, effective_count)
    bonuses = _bonus_items(model, effective_count)

    items = [item for item in (per_head, fixed_fee) if item is not None] + bonuses

    calculated = sum((item.amount for item in items), ZERO)
    adjustment = manual_adjustment if manual_adjustment is not None else ZERO

    return PayoutBreakdown(
        effective_checkins_count=effective_count,
        items=items,
        per_head_amount=per_head.amount if per_head else ZERO,
        per_head_counted=per_head.counted if per_head else 0,
        fixed_fee_amount=fixed_fee.amount if fixed_fee else ZERO,
        fixed_fee_percent_applied=fixed_fee.percent_applied if fixed_fee else None,
        bonus_amount=sum((item.amount for item in bonuses), ZERO),
        calculated_payout=calculated,
        manual_adjustment=adjustment,
        final_payout=calculated + adjustment,
    )
