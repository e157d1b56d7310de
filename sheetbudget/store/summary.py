"""Monthly income/spending summary computed by the workbook (Dontedit!D6:F130)."""

from datetime import date, datetime
from typing import Any, Optional

from sheetbudget.models.records import format_month, is_blank, parse_amount
from sheetbudget.models.results import MonthlyTotal
from sheetbudget.services.storage.interface import SheetBackend
from sheetbudget.store.ledger import CONTROL_SHEET

SUMMARY_FIRST_ROW = 6
SUMMARY_LAST_ROW = 130
SUMMARY_COL = 4  # D

# D8 in this column holds the last-active stamp, not a month
MONTH_LABEL_FORMATS = ("%b %Y", "%B %Y")


def _amount_or_zero(value) -> float:
    try:
        return parse_amount(value)
    except ValueError:
        return 0.0


def parse_month_label(value: Any) -> Optional[date]:
    """``Jul 2025`` or ``July 2025`` as the first of the month, else None."""
    if is_blank(value) or not isinstance(value, str):
        return None
    text = value.strip()
    for fmt in MONTH_LABEL_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def read_monthly_summary(backend: SheetBackend) -> list[MonthlyTotal]:
    """Months in sheet order; cells that are not month labels are skipped."""
    backend.require_sheet(CONTROL_SHEET)
    rows = backend.read_range(
        CONTROL_SHEET,
        SUMMARY_FIRST_ROW,
        SUMMARY_COL,
        SUMMARY_LAST_ROW - SUMMARY_FIRST_ROW + 1,
        3,
    )
    totals = []
    for label, income, spending in rows:
        month = parse_month_label(label)
        if month is None:
            continue
        totals.append(MonthlyTotal(
            month=format_month(month),
            income=_amount_or_zero(income),
            spending=_amount_or_zero(spending),
        ))
    return totals
