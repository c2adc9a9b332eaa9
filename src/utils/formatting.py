"""
Presentation helpers for payout figures.

The calculator keeps full Decimal precision; rounding to two places
happens here and nowhere else.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from src.schemas.commission import LineItemKind, PayoutBreakdown, PayoutLineItem

CENT = Decimal("0.01")


def format_money(amount: Optional[Decimal], currency: Optional[str] = None) -> str:
    """
    Format an amount for display.

    Examples:
        Decimal("1234.5") -> "1,234.50"
        Decimal("-20"), "IDR" -> "-20.00 IDR"
    """
    if amount is None:
        return "-"
    text = f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
    return f"{text} {currency}" if currency else text


def _describe_item(item: PayoutLineItem) -> str:
    if item.kind == LineItemKind.PER_HEAD:
        text = f"{item.counted} check-ins x {format_money(item.rate)} = {format_money(item.amount)}"
    elif item.kind == LineItemKind.FIXED_FEE:
        text = f"Fixed fee: {format_money(item.amount)}"
        if item.percent_applied is not None and item.percent_applied != Decimal("100"):
            text += f" ({item.percent_applied.normalize():f}% of {format_money(item.full_amount)})"
    elif item.times_earned:
        text = f"{item.label}: {item.times_earned} x {format_money(item.unit_amount)} = {format_money(item.amount)}"
    else:
        text = f"Bonus {item.label}: {format_money(item.amount)}"

    if item.note:
        text += f" [{item.note}]"
    return text


def describe_breakdown(breakdown: PayoutBreakdown, currency: Optional[str] = None) -> str:
    """One-line human-readable explanation of a payout."""
    if not breakdown.items:
        text = f"No commission earned = {format_money(breakdown.calculated_payout)}"
    else:
        text = " + ".join(_describe_item(item) for item in breakdown.items)

    if breakdown.manual_adjustment:
        sign = "+" if breakdown.manual_adjustment > 0 else "-"
        text += f" {sign} adjustment {format_money(abs(breakdown.manual_adjustment))}"
        text += f" = {format_money(breakdown.final_payout)}"

    if currency:
        text += f" {currency}"
    return text
