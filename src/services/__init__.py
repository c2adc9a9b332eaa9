"""Business logic services."""

from src.services.aggregator import build_summary, summarize
from src.services.closeout import (
    finalize_closeout,
    get_closure_record,
    set_checkin_override,
    set_closeout_step,
    set_payout_adjustment,
)
from src.services.commission import calculate_payout

__all__ = [
    "calculate_payout",
    "build_summary",
    "summarize",
    "set_checkin_override",
    "set_payout_adjustment",
    "set_closeout_step",
    "finalize_closeout",
    "get_closure_record",
]
