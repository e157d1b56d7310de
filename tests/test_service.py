"""
Tests for BudgetService, the public operation surface.

Every call must return an OperationResult; none may raise.
"""

import pytest

from conftest import FIXED_NOW, FIXED_TODAY, build_workbook, expense
from sheetbudget.config import TrialSettings
from sheetbudget.connection import ConnectionManager, ProfileStore
from sheetbudget.license import EmailObfuscator, TrialLedger
from sheetbudget.orchestrator import BudgetService
from sheetbudget.services.storage import InMemorySheetBackend

SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789_-xy"


@pytest.fixture
def tracking():
    return InMemorySheetBackend(sheets={"Users": [[], ["Email", "Start", "End", "Last seen"]]})


@pytest.fixture
def service(tmp_path, workbook, tracking) -> BudgetService:
    def open_backend(spreadsheet_id):
        return workbook

    settings = TrialSettings(tracking_sheet_id="tracking", encryption_key="secret")
    connection = ConnectionManager(open_backend, ProfileStore(str(tmp_path / "profile.json")))
    connection.set_sheet_url(SHEET_ID)
    return BudgetService(
        connection,
        trial_ledger_factory=lambda: TrialLedger(
            tracking, EmailObfuscator("secret"), settings, clock=lambda: FIXED_NOW
        ),
        user_email="user@example.com",
        clock=lambda: FIXED_NOW,
        today=lambda: FIXED_TODAY,
    )


class TestRecords:
    def test_save_then_get_expenses(self, service, workbook):
        saved = service.save_expenses([expense("a"), expense("b", category="Rent")])

        assert saved.success
        assert saved.data["inserted"] == 2
        assert workbook.raw_cell("Expenses", 6, 7) == "=zategory2"

        result = service.get_expenses()
        assert result.success
        assert [e["id"] for e in result.data["expenses"]] == ["a", "b"]
        assert result.data["expenses"][1]["category"] == "Rent 🏠"
        assert result.data["diagnostics"]["processed_rows"] == 2

    def test_expense_month_filter(self, service):
        service.save_expenses([expense("jul"), expense("jun", day="06/30/2025")])

        result = service.get_expenses(month=6, year=2025)

        assert [e["id"] for e in result.data["expenses"]] == ["jun"]

    def test_unknown_category_fails_batch(self, service, workbook):
        result = service.save_expenses([expense("a", category="Unicorns")])

        assert not result.success
        assert result.error_code == "NOT_FOUND"
        assert workbook.last_row("Expenses") == 4

    def test_clear_expense(self, service):
        service.save_expenses([expense("a")])

        assert service.clear_expense("a").success
        missing = service.clear_expense("a")
        assert not missing.success
        assert missing.error_code == "NOT_FOUND"

    def test_ambiguous_clear(self, service):
        service.save_expenses([expense("a", name="Coffee 1"), expense("b", name="Coffee 2")])
        result = service.clear_expense("Coffee")
        assert result.error_code == "AMBIGUOUS"

    def test_income_recurring_and_net_worth(self, service):
        assert service.save_income([{"amount": 2500, "name": "Salary"}]).success
        assert service.save_recurring([
            {"name": "Salary", "category": "Income 💵", "amount": 2500},
            {"name": "Rent", "category": "Rent 🏠", "amount": 1200, "frequency": "Monthly"},
        ]).success
        assert service.save_net_worth([
            {"id": "nw-1", "date": "Jul 2025", "asset": "Loan", "name": "Car", "amount": -3000},
        ]).success

        assert len(service.get_income().data["income"]) == 1
        recurring = service.get_recurring().data["recurring"]
        assert [r["category"] for r in recurring] == ["Income 💵", "Rent 🏠"]
        assert service.get_net_worth().data["entries"][0]["amount"] == -3000
        assert service.clear_net_worth("nw-1").success


class TestCategories:
    def test_get_categories(self, service):
        result = service.get_categories()
        assert [c["fullName"] for c in result.data["categories"]] == ["Food 🍕", "Rent 🏠", "Travel ✈️"]

    def test_rename_and_duplicate(self, service):
        assert service.rename_category("0", "Groceries", "🛒").data["fullName"] == "Groceries 🛒"
        duplicate = service.rename_category("1", "groceries", "🥦")
        assert duplicate.error_code == "VALIDATION_ERROR"

    def test_status_order_and_clear(self, service):
        assert service.set_category_active("Travel ✈️", True).data["active"] is True
        assert service.update_category_display_order([{"id": "1", "displayOrder": 5}]).data == {"updated": 1}
        assert service.save_categories([{"fullName": "Pets 🐶"}]).data["inserted"] == 1
        assert service.clear_category("3").success
        assert service.clear_category("3").error_code == "NOT_FOUND"


class TestDocuments:
    def test_settings_round_trip(self, service, workbook):
        assert service.get_settings().data == {"settings": {}, "version": 1}
        assert service.save_settings({"currency": "EUR"}).success
        assert service.get_settings().data["settings"] == {"currency": "EUR"}
        assert workbook.read_cell("Dontedit", 8, 10) == "2025-07-15T12:00:00.000Z"

    def test_corrupt_settings(self, service, workbook):
        workbook.write_cell("Dontedit", 8, 11, "{broken")
        result = service.get_settings()
        assert result.error_code == "PARSE_ERROR"

    def test_budget_carry_forward(self, service):
        service.save_budget({"budgets": {"2025-06": {"Food 🍕": 300}}})
        budget = service.get_budget().data
        assert budget["budgets"]["2025-07"] == {"Food 🍕": 300}
        assert budget["version"] == 1

    def test_goals(self, service):
        assert service.save_net_worth_goals([{"target": 100000}]).success
        assert service.get_net_worth_goals().data == {"goals": [{"target": 100000}]}

    def test_invalid_goals_are_a_validation_error(self, service):
        assert service.save_net_worth_goals("not a list").error_code == "VALIDATION_ERROR"


class TestLedgerAndIntegrity:
    def test_timestamps_and_last_active(self, service, workbook):
        service.save_income([{"amount": 10}])
        stamps = service.get_timestamps().data
        assert stamps["income"] == "2025-07-15T12:00:00.000Z"
        assert service.touch_last_active().data == {"last_active": "2025-07-15T12:00:00.000Z"}

    def test_monthly_summary(self, service, workbook):
        workbook.write_range("Dontedit", 6, 4, [["Jun 2025", 100, 50]])
        assert service.get_monthly_summary().data == {
            "months": [{"month": "Jun 2025", "income": 100.0, "spending": 50.0}]
        }

    def test_health_and_repair(self, service, workbook):
        workbook.write_range("Expenses", 5, 4, [["", "1-Jul-2025", 5, "Food 🍕", "", "", "", ""]])

        health = service.check_data_health().data
        assert health["missing_ids"] == 1 and health["needs_repair"]

        repaired = service.fix_missing_ids().data
        assert repaired["fixed_count"] == 1
        assert service.get_expenses().data["diagnostics"]["processed_rows"] == 1


class TestTrialAndConnection:
    def test_trial_status_for_configured_user(self, service):
        result = service.check_trial_status()
        assert result.success
        assert result.data["status"] == "trial"
        assert result.data["days_left"] == 30

    def test_trial_not_configured(self, tmp_path, workbook):
        connection = ConnectionManager(lambda _: workbook, ProfileStore(str(tmp_path / "p.json")))
        result = BudgetService(connection).check_trial_status("a@example.com")
        assert result.error_code == "NOT_CONFIGURED"

    def test_connecting_records_first_use(self, service, tracking):
        assert service.connect_spreadsheet(SHEET_ID).success
        assert tracking.read_cell("Users", 3, 1).startswith("user")

    def test_not_connected(self, tmp_path):
        connection = ConnectionManager(lambda _: build_workbook(), ProfileStore(str(tmp_path / "none.json")))
        result = BudgetService(connection).get_expenses()
        assert not result.success
        assert result.error_code == "NOT_CONFIGURED"

    def test_disconnect(self, service):
        assert service.disconnect().data == {"disconnected": True}
        assert service.get_income().error_code == "NOT_CONFIGURED"

    def test_test_connection(self, service):
        result = service.test_connection()
        assert result.data["title"] == "Budget 2025"
        assert result.data["missing_sheets"] == []

    def test_bad_url(self, service):
        assert service.set_sheet_url("nonsense").error_code == "VALIDATION_ERROR"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
