"""
Sheet-backed record store.

Tables of records, per-dataset timestamps and JSON documents, all kept in
one budget workbook reached through a SheetBackend.
"""

from sheetbudget.store.blobs import BudgetStore, DocumentStore, GoalsStore, JsonBlobCell, SettingsStore
from sheetbudget.store.categories import CategoryLookup, CategoryStore, category_formula
from sheetbudget.store.codec import ColumnKind, ColumnSpec, RowCodec
from sheetbudget.store.ids import is_numeric_id, new_record_id
from sheetbudget.store.integrity import check_data_health, fix_missing_ids
from sheetbudget.store.layouts import (
    CATEGORY_LAYOUT,
    EXPENSE_LAYOUT,
    INCOME_LAYOUT,
    NET_WORTH_LAYOUT,
    RECURRING_LAYOUT,
    TRANSACTION_LAYOUTS,
    TableLayout,
)
from sheetbudget.store.ledger import CONTROL_SHEET, Dataset, TimestampLedger
from sheetbudget.store.summary import read_monthly_summary
from sheetbudget.store.table import RawRow, RecordStore

__all__ = [
    # Tables
    "RawRow",
    "RecordStore",
    "TableLayout",
    "CATEGORY_LAYOUT",
    "EXPENSE_LAYOUT",
    "INCOME_LAYOUT",
    "NET_WORTH_LAYOUT",
    "RECURRING_LAYOUT",
    "TRANSACTION_LAYOUTS",
    # Codec
    "ColumnKind",
    "ColumnSpec",
    "RowCodec",
    # IDs and integrity
    "is_numeric_id",
    "new_record_id",
    "check_data_health",
    "fix_missing_ids",
    # Categories
    "CategoryLookup",
    "CategoryStore",
    "category_formula",
    # Ledger and documents
    "CONTROL_SHEET",
    "Dataset",
    "TimestampLedger",
    "BudgetStore",
    "DocumentStore",
    "GoalsStore",
    "JsonBlobCell",
    "SettingsStore",
    "read_monthly_summary",
]
