"""
Shared fixtures: an in-memory budget workbook laid out like the real template.

No test talks to Google; the in-memory backend stands in for a spreadsheet.
"""

from datetime import date, datetime, timezone

import pytest

from sheetbudget.services.storage import InMemorySheetBackend
from sheetbudget.store import TimestampLedger

FIXED_NOW = datetime(2025, 7, 15, 12, 0, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2025, 7, 15)


def _sheet_with_header(header_row: int, first_col: int, headers: list[str]) -> list[list]:
    rows = [[] for _ in range(header_row)]
    rows[header_row - 1] = [""] * (first_col - 1) + headers
    return rows


def build_workbook(categories=None) -> InMemorySheetBackend:
    """A blank budget workbook with headers and a few categories."""
    if categories is None:
        categories = [
            [True, "Food 🍕", 1, "0"],
            [True, "Rent 🏠", 2, "1"],
            [False, "Travel ✈️", 3, "2"],
        ]
    control = [[] for _ in range(9)]
    for row in categories:
        control.append([""] * 11 + list(row))

    return InMemorySheetBackend(
        sheets={
            "Expenses": _sheet_with_header(
                4, 4, ["ID", "Date", "Amount", "Category", "Name", "Label", "Notes", "Account"]
            ),
            "Income": _sheet_with_header(
                4, 4, ["ID", "Date", "Amount", "Name", "Account", "Source", "Notes"]
            ),
            "Recurring": _sheet_with_header(
                5, 3, ["ID", "Start", "Name", "Category", "Type", "Frequency",
                       "Amount", "Account", "End", "Owner", "Notes", "Source"]
            ),
            "Net Worth": _sheet_with_header(
                36, 3, ["ID", "Month", "Asset", "Type", "Name", "Amount", "Change", "Change $", "Notes"]
            ),
            "Dontedit": control,
        },
        named_ranges={f"zategory{n}": ("Dontedit", 9 + n, 13) for n in range(1, 31)},
        title="Budget 2025",
    )


@pytest.fixture
def workbook() -> InMemorySheetBackend:
    return build_workbook()


@pytest.fixture
def ledger(workbook) -> TimestampLedger:
    return TimestampLedger(workbook, clock=lambda: FIXED_NOW)


def expense(id="", amount=12.5, category="Food 🍕", day="07/01/2025", **extra) -> dict:
    data = {"id": id, "date": day, "amount": amount, "category": category, "name": "Lunch"}
    data.update(extra)
    return data


def template_workbook() -> InMemorySheetBackend:
    """Like the real template: every unused category slot holds an unticked checkbox."""
    return build_workbook([[True, "Food 🍕", 1, "0"]] + [[False, "", "", ""]] * 29)
