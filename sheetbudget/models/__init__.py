"""
Data Models Package

This package contains all Pydantic models used by sheetbudget.
Every record read from or written to the workbook conforms to these schemas.
"""

from sheetbudget.models.records import (
    INCOME_CATEGORY,
    Category,
    Expense,
    Income,
    NetWorthEntry,
    RecurringItem,
    SheetRecord,
    format_day,
    format_month,
    is_blank,
    parse_amount,
    parse_sheet_date,
    split_category_name,
)
from sheetbudget.models.documents import (
    BudgetDocument,
    NetWorthGoalsDocument,
    SettingsDocument,
    VersionedDocument,
)
from sheetbudget.models.results import (
    ClearOutcome,
    ClearStatus,
    DataHealthReport,
    MonthlyTotal,
    OperationResult,
    RepairReport,
    ScanDiagnostics,
    SheetHealth,
    TrialState,
    TrialStatus,
    UpsertSummary,
)

__all__ = [
    # Records
    "INCOME_CATEGORY",
    "Category",
    "Expense",
    "Income",
    "NetWorthEntry",
    "RecurringItem",
    "SheetRecord",
    "format_day",
    "format_month",
    "is_blank",
    "parse_amount",
    "parse_sheet_date",
    "split_category_name",
    # Documents
    "BudgetDocument",
    "NetWorthGoalsDocument",
    "SettingsDocument",
    "VersionedDocument",
    # Results
    "ClearOutcome",
    "ClearStatus",
    "DataHealthReport",
    "MonthlyTotal",
    "OperationResult",
    "RepairReport",
    "ScanDiagnostics",
    "SheetHealth",
    "TrialState",
    "TrialStatus",
    "UpsertSummary",
]
