"""Tests for data health checks, ID repair and the monthly summary."""

import pytest

from sheetbudget.services.storage import InMemorySheetBackend
from sheetbudget.store import check_data_health, fix_missing_ids, read_monthly_summary
from sheetbudget.store.ids import is_numeric_id, new_record_id


def _expense_row(record_id, name="x"):
    return [record_id, "1-Jul-2025", 10, "Food 🍕", name, "", "", "Other"]


@pytest.fixture
def messy(workbook):
    """Expenses with a missing, a numeric and a duplicated ID; income sharing an ID."""
    workbook.write_range("Expenses", 5, 4, [
        _expense_row("ex-1"),
        _expense_row(""),
        _expense_row(17),
        _expense_row("ex-1"),
        ["ex-only-id", "", "", "", "", "", "", ""],
    ])
    workbook.write_range("Income", 5, 4, [["ex-1", "1-Jul-2025", 100, "", "", "", ""]])
    return workbook


class TestIds:
    def test_new_record_id_shape(self):
        record_id = new_record_id("rec-")
        prefix, millis, suffix = record_id.split("-")
        assert prefix == "rec"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_is_numeric_id(self):
        assert is_numeric_id("123")
        assert is_numeric_id(45.0)
        assert not is_numeric_id("ex-123")
        assert not is_numeric_id("")


class TestDataHealth:
    def test_counts(self, messy):
        report = check_data_health(messy)

        # The row holding only an ID has no data and is not counted
        assert report.total_rows == 5
        assert report.missing_ids == 1
        assert report.numeric_ids == 1
        assert report.duplicate_ids == 2
        assert report.duplicates == ["ex-1"]
        assert report.needs_repair

        by_sheet = {s.sheet: s for s in report.sheets}
        assert by_sheet["Expenses"].total_rows == 4
        assert by_sheet["Income"].duplicate_ids == 1

    def test_missing_sheets_are_skipped(self):
        backend = InMemorySheetBackend(sheets={"Expenses": []})
        report = check_data_health(backend)
        assert [s.sheet for s in report.sheets] == ["Expenses"]
        assert not report.needs_repair


class TestFixMissingIds:
    def test_repairs_missing_and_numeric(self, messy, ledger):
        report = fix_missing_ids(messy, ledger)

        assert report.fixed_count == 2
        assert report.per_sheet == {"Expenses": 2}
        assert messy.read_cell("Expenses", 6, 4).startswith("ex-")
        assert messy.read_cell("Expenses", 7, 4).startswith("ex-")
        assert messy.read_cell("Expenses", 5, 4) == "ex-1"
        assert messy.read_cell("Dontedit", 9, 10) == "2025-07-15T12:00:00.000Z"

        after = check_data_health(messy)
        assert after.missing_ids == 0 and after.numeric_ids == 0

    def test_nothing_to_fix_touches_nothing(self, workbook, ledger):
        workbook.write_log.clear()

        report = fix_missing_ids(workbook, ledger)

        assert report.fixed_count == 0
        assert workbook.write_log == []


class TestMonthlySummary:
    def test_reads_months_and_skips_blanks(self, workbook):
        workbook.write_range("Dontedit", 6, 4, [
            ["Jan 2025", 4000, 3100.5],
            ["", "", ""],
            ["Total", 1, 1],
            ["Feb 2025", "", "n/a"],
        ])

        months = read_monthly_summary(workbook)

        assert [m.month for m in months] == ["Jan 2025", "Feb 2025"]
        assert months[0].income == 4000 and months[0].spending == 3100.5
        assert months[1].income == 0 and months[1].spending == 0

    def test_last_active_stamp_is_not_a_month(self, workbook, ledger):
        ledger.touch_last_active()
        assert read_monthly_summary(workbook) == []

    def test_full_month_names(self, workbook):
        workbook.write_range("Dontedit", 6, 4, [["July 2025", 10, 5], ["2025-07-01", 1, 1]])
        assert [m.month for m in read_monthly_summary(workbook)] == ["Jul 2025"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
