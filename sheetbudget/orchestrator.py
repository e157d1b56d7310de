"""
Main Orchestrator for sheetbudget

This module ties the stores together behind one synchronous service,
``BudgetService``, whose every public method returns an OperationResult.

DESIGN DECISION: The service is the error boundary.
- Stores raise typed StorageError subclasses and never catch them
- The service converts every failure into a failed OperationResult
  carrying a stable error code, so callers never see an exception
- Every call is audited (operation, duration, outcome)

Stores are built per call from the connected workbook, so there is no
state shared between calls other than the connection itself.
"""

from datetime import date, datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError

from sheetbudget.audit import AuditLogger, configure_logging, get_logger
from sheetbudget.config import Settings, get_settings
from sheetbudget.connection import ConnectionManager, ConnectionProfile, ProfileStore
from sheetbudget.license import EmailObfuscator, TrialLedger
from sheetbudget.models.documents import NetWorthGoalsDocument, SettingsDocument
from sheetbudget.models.records import Expense
from sheetbudget.models.results import ClearStatus, OperationResult
from sheetbudget.services.storage import (
    GoogleSheetsClient,
    NotConfiguredError,
    NotFoundError,
    SheetBackend,
    StorageError,
)
from sheetbudget.store import (
    EXPENSE_LAYOUT,
    INCOME_LAYOUT,
    NET_WORTH_LAYOUT,
    RECURRING_LAYOUT,
    BudgetStore,
    CategoryLookup,
    CategoryStore,
    GoalsStore,
    RecordStore,
    SettingsStore,
    TableLayout,
    TimestampLedger,
    check_data_health,
    fix_missing_ids,
    read_monthly_summary,
)
from sheetbudget.store.ledger import utc_now

logger = get_logger(__name__)


def _dump(record) -> dict:
    return record.model_dump(mode="json", by_alias=True)


class BudgetService:
    """
    Public operation surface.

    Args:
        connection: Opens the connected budget workbook
        trial_ledger_factory: Builds the trial ledger on first use; None
            when trial tracking is not configured
        user_email: Default address for trial checks
        clock: Current instant (injectable for tests)
        today: Current date (injectable for tests)
    """

    def __init__(
        self,
        connection: ConnectionManager,
        trial_ledger_factory: Optional[Callable[[], TrialLedger]] = None,
        user_email: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.connection = connection
        self._trial_ledger_factory = trial_ledger_factory
        self._trial_ledger: Optional[TrialLedger] = None
        self.user_email = user_email
        self._audit = audit_logger or AuditLogger(user=user_email)
        self.clock = clock or utc_now
        self.today = today or date.today
        if self.connection.on_connect is None:
            self.connection.on_connect = self._record_first_use_quietly

    # =========================================================================
    # PLUMBING
    # =========================================================================

    def _run(self, operation: str, action: Callable[[], Any], **details: Any) -> OperationResult:
        """Run an action, converting every failure into a failed result."""
        started = self._audit.start()
        try:
            data = action()
        except StorageError as e:
            self._audit.operation_failed(operation, started, e.code, str(e))
            return OperationResult.fail(e.code, str(e))
        except ValidationError as e:
            message = "; ".join(err["msg"] for err in e.errors())
            self._audit.operation_failed(operation, started, "VALIDATION_ERROR", message)
            return OperationResult.fail("VALIDATION_ERROR", message)
        except Exception as e:
            logger.exception("operation_crashed", operation=operation)
            self._audit.operation_failed(operation, started, "INTERNAL_ERROR", str(e))
            return OperationResult.fail("INTERNAL_ERROR", f"Unexpected error: {e}")
        self._audit.operation_succeeded(operation, started, **details)
        return OperationResult.ok(data)

    def _backend(self) -> SheetBackend:
        return self.connection.backend()

    def _ledger(self, backend: SheetBackend) -> TimestampLedger:
        return TimestampLedger(backend, self.clock)

    def _table(self, layout: TableLayout) -> RecordStore:
        backend = self._backend()
        return RecordStore(backend, layout, self._ledger(backend))

    def _categories(self) -> CategoryStore:
        backend = self._backend()
        return CategoryStore(backend, self._ledger(backend))

    def _read(self, layout: TableLayout, key: str, keep: Optional[Callable[[Any], bool]] = None) -> dict:
        records, diagnostics = self._table(layout).read_all()
        if keep is not None:
            records = [r for r in records if keep(r)]
        return {key: [_dump(r) for r in records], "diagnostics": diagnostics.model_dump()}

    def _save(self, layout: TableLayout, records: list, with_categories: bool = False) -> dict:
        table = self._table(layout)
        resolver = None
        if with_categories:
            resolver = CategoryLookup(CategoryStore(table.backend)).formula_for
        return table.upsert_batch(records, resolver).model_dump()

    def _clear(self, layout: TableLayout, record_id: str) -> dict:
        outcome = self._table(layout).clear_by_id(record_id)
        if outcome.status is ClearStatus.NOT_FOUND:
            raise NotFoundError(f'No {layout.name} record with ID "{outcome.record_id}"')
        return outcome.model_dump(mode="json")

    # =========================================================================
    # CONNECTION
    # =========================================================================

    def set_sheet_url(self, url: str) -> OperationResult:
        return self._run("set_sheet_url", lambda: self.connection.set_sheet_url(url).model_dump(mode="json"))

    def verify_sheet_url(self, url: str) -> OperationResult:
        return self._run("verify_sheet_url", lambda: self.connection.verify_sheet_url(url).model_dump(mode="json"))

    def connect_spreadsheet(self, spreadsheet_id: str) -> OperationResult:
        return self._run(
            "connect_spreadsheet",
            lambda: self.connection.connect_spreadsheet(spreadsheet_id).model_dump(mode="json"),
        )

    def disconnect(self) -> OperationResult:
        return self._run("disconnect", lambda: {"disconnected": self.connection.disconnect()})

    def test_connection(self, url: Optional[str] = None) -> OperationResult:
        return self._run("test_connection", lambda: self.connection.test_connection(url))

    # =========================================================================
    # RECORDS
    # =========================================================================

    def get_expenses(self, month: Optional[int] = None, year: Optional[int] = None) -> OperationResult:
        """Expenses, optionally limited to a month (1-12) and/or year."""
        def keep(expense: Expense) -> bool:
            if year is not None and expense.date.year != year:
                return False
            return month is None or expense.date.month == month

        return self._run("get_expenses", lambda: self._read(EXPENSE_LAYOUT, "expenses", keep))

    def save_expenses(self, expenses: list) -> OperationResult:
        return self._run("save_expenses", lambda: self._save(EXPENSE_LAYOUT, expenses, with_categories=True))

    def clear_expense(self, expense_id: str) -> OperationResult:
        return self._run("clear_expense", lambda: self._clear(EXPENSE_LAYOUT, expense_id), record_id=expense_id)

    def get_income(self) -> OperationResult:
        return self._run("get_income", lambda: self._read(INCOME_LAYOUT, "income"))

    def save_income(self, income: list) -> OperationResult:
        return self._run("save_income", lambda: self._save(INCOME_LAYOUT, income))

    def clear_income(self, income_id: str) -> OperationResult:
        return self._run("clear_income", lambda: self._clear(INCOME_LAYOUT, income_id), record_id=income_id)

    def get_recurring(self) -> OperationResult:
        return self._run("get_recurring", lambda: self._read(RECURRING_LAYOUT, "recurring"))

    def save_recurring(self, items: list) -> OperationResult:
        return self._run("save_recurring", lambda: self._save(RECURRING_LAYOUT, items, with_categories=True))

    def clear_recurring(self, item_id: str) -> OperationResult:
        return self._run("clear_recurring", lambda: self._clear(RECURRING_LAYOUT, item_id), record_id=item_id)

    def get_net_worth(self) -> OperationResult:
        return self._run("get_net_worth", lambda: self._read(NET_WORTH_LAYOUT, "entries"))

    def save_net_worth(self, entries: list) -> OperationResult:
        return self._run("save_net_worth", lambda: self._save(NET_WORTH_LAYOUT, entries))

    def clear_net_worth(self, entry_id: str) -> OperationResult:
        return self._run("clear_net_worth", lambda: self._clear(NET_WORTH_LAYOUT, entry_id), record_id=entry_id)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def get_categories(self) -> OperationResult:
        def action():
            store = self._categories()
            return {"categories": [store.payload(c) for c in store.read_all()]}

        return self._run("get_categories", action)

    def save_categories(self, categories: list) -> OperationResult:
        return self._run("save_categories", lambda: self._categories().save(categories).model_dump())

    def clear_category(self, category_id: str) -> OperationResult:
        def action():
            outcome = self._categories().clear(category_id)
            if outcome.status is ClearStatus.NOT_FOUND:
                raise NotFoundError(f'No category with ID "{outcome.record_id}"')
            return outcome.model_dump(mode="json")

        return self._run("clear_category", action, record_id=category_id)

    def set_category_active(self, full_name: str, active: bool) -> OperationResult:
        return self._run(
            "set_category_active",
            lambda: _dump(self._categories().set_active(full_name, active)),
            full_name=full_name,
            active=active,
        )

    def rename_category(self, category_id: str, name: str, emoji: str) -> OperationResult:
        def action():
            store = self._categories()
            return store.payload(store.rename(category_id, name, emoji))

        return self._run("rename_category", action, category_id=category_id)

    def update_category_display_order(self, updates: list) -> OperationResult:
        return self._run(
            "update_category_display_order",
            lambda: {"updated": self._categories().update_display_order(updates)},
        )

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def get_settings(self) -> OperationResult:
        def action():
            backend = self._backend()
            return SettingsStore(backend, self._ledger(backend)).load().to_stored()

        return self._run("get_settings", action)

    def save_settings(self, settings: dict) -> OperationResult:
        """Replace the stored settings map wholesale."""
        def action():
            backend = self._backend()
            document = SettingsDocument(settings=settings)
            return SettingsStore(backend, self._ledger(backend)).save(document).to_stored()

        return self._run("save_settings", action)

    def touch_last_active(self) -> OperationResult:
        return self._run(
            "touch_last_active",
            lambda: {"last_active": self._ledger(self._backend()).touch_last_active()},
        )

    def get_budget(self) -> OperationResult:
        def action():
            backend = self._backend()
            return BudgetStore(backend, self._ledger(backend), self.today).load().to_stored()

        return self._run("get_budget", action)

    def save_budget(self, budget: dict) -> OperationResult:
        def action():
            backend = self._backend()
            return BudgetStore(backend, self._ledger(backend), self.today).save(budget).to_stored()

        return self._run("save_budget", action)

    def get_net_worth_goals(self) -> OperationResult:
        def action():
            backend = self._backend()
            return {"goals": GoalsStore(backend, self._ledger(backend)).load().goals}

        return self._run("get_net_worth_goals", action)

    def save_net_worth_goals(self, goals: list) -> OperationResult:
        def action():
            backend = self._backend()
            document = NetWorthGoalsDocument(goals=goals)
            return {"goals": GoalsStore(backend, self._ledger(backend)).save(document).goals}

        return self._run("save_net_worth_goals", action)

    # =========================================================================
    # TIMESTAMPS, SUMMARY, INTEGRITY
    # =========================================================================

    def get_timestamps(self) -> OperationResult:
        return self._run("get_timestamps", lambda: self._ledger(self._backend()).read_all())

    def get_monthly_summary(self) -> OperationResult:
        return self._run(
            "get_monthly_summary",
            lambda: {"months": [m.model_dump() for m in read_monthly_summary(self._backend())]},
        )

    def check_data_health(self) -> OperationResult:
        def action():
            report = check_data_health(self._backend())
            return {**report.model_dump(), "needs_repair": report.needs_repair}

        return self._run("check_data_health", action)

    def fix_missing_ids(self) -> OperationResult:
        def action():
            backend = self._backend()
            return fix_missing_ids(backend, self._ledger(backend)).model_dump()

        return self._run("fix_missing_ids", action)

    # =========================================================================
    # TRIAL
    # =========================================================================

    def _trial(self) -> TrialLedger:
        if self._trial_ledger_factory is None:
            raise NotConfiguredError("Trial tracking is not configured")
        if self._trial_ledger is None:
            self._trial_ledger = self._trial_ledger_factory()
        return self._trial_ledger

    def _email(self, email: Optional[str]) -> str:
        email = (email or self.user_email or "").strip()
        if not email:
            raise NotConfiguredError("No user email available for the trial check")
        return email

    def check_trial_status(self, email: Optional[str] = None) -> OperationResult:
        return self._run(
            "check_trial_status",
            lambda: self._trial().check(self._email(email)).model_dump(mode="json"),
        )

    def record_first_use(self, email: Optional[str] = None) -> OperationResult:
        return self._run(
            "record_first_use",
            lambda: self._trial().record_first_use(self._email(email)).model_dump(mode="json"),
        )

    def _record_first_use_quietly(self, profile: ConnectionProfile) -> None:
        if self._trial_ledger_factory is None or not self.user_email:
            return
        try:
            self._trial().record_first_use(self.user_email)
        except StorageError as e:
            logger.warning("first_use_not_recorded", spreadsheet_id=profile.spreadsheet_id, error=str(e))


def create_budget_service(settings: Optional[Settings] = None) -> BudgetService:
    """
    Factory function to create the service against Google Sheets.

    Trial tracking is enabled only when TRIAL_TRACKING_SHEET_ID and
    TRIAL_ENCRYPTION_KEY are both set.
    """
    settings = settings or get_settings()
    app = settings.app
    configure_logging(app.log_level, app.log_json)

    client = GoogleSheetsClient(settings.google_sheets)
    connection = ConnectionManager(client.backend, ProfileStore(app.profile_path))

    trial = settings.trial
    trial_ledger_factory = None
    if trial.is_configured:
        def trial_ledger_factory() -> TrialLedger:
            return TrialLedger(
                client.backend(trial.tracking_sheet_id),
                EmailObfuscator(trial.encryption_key),
                trial,
            )
    else:
        logger.info("trial_tracking_disabled")

    return BudgetService(
        connection,
        trial_ledger_factory=trial_ledger_factory,
        user_email=app.user_email,
    )
