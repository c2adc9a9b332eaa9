"""
CSV export of a closeout summary.
"""

import csv
import io
from typing import List

from src.schemas.closeout import CloseoutSummary, PromoterCloseoutLine
from src.utils.formatting import describe_breakdown

CSV_COLUMNS = [
    "promoter_id",
    "promoter_name",
    "actual_checkins",
    "checkins_override",
    "override_reason",
    "effective_checkins",
    "calculated_payout",
    "adjustment",
    "adjustment_reason",
    "final_payout",
    "currency",
    "payment_status",
    "error",
    "explanation",
]


def _row(line: PromoterCloseoutLine, currency: str) -> List[str]:
    def text(value) -> str:
        return "" if value is None else str(value)

    return [
        text(line.promoter_id),
        text(line.promoter_name),
        text(line.actual_checkins_count),
        text(line.manual_checkins_override),
        text(line.manual_checkins_reason),
        text(line.effective_checkins_count),
        text(line.calculated_payout),
        text(line.manual_adjustment_amount),
        text(line.manual_adjustment_reason),
        text(line.final_payout),
        currency,
        line.payment_status.value if line.payment_status else "",
        text(line.error),
        describe_breakdown(line.breakdown) if line.breakdown else "",
    ]


def summary_to_csv(summary: CloseoutSummary) -> str:
    """Render one row per promoter line. Amounts keep full precision."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for line in summary.promoters:
        writer.writerow(_row(line, summary.currency))
    return buffer.getvalue()


def export_filename(summary: CloseoutSummary) -> str:
    suffix = "closed" if summary.closure_id else summary.status.value
    return f"event_{summary.event_id}_closeout_{suffix}.csv"
