"""
Workbook layouts: where each entity lives and how its columns are typed.

These describe the budget workbook template and are fixed; changing one
means the sheet template changed.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sheetbudget.models.records import (
    INCOME_CATEGORY,
    Category,
    Expense,
    Income,
    NetWorthEntry,
    RecurringItem,
)
from sheetbudget.store.codec import ColumnKind, ColumnSpec, RowCodec
from sheetbudget.store.ledger import CONTROL_SHEET, Dataset


@dataclass(frozen=True)
class TableLayout:
    """
    A contiguous row range holding one entity type.

    ``capacity`` is set for fixed-size tables, which never grow past
    ``start_row + capacity - 1``. ``id_prefix`` of None means IDs are
    the slot index.
    """
    name: str
    sheet: str
    start_row: int
    start_col: int
    codec: RowCodec
    datasets: tuple[Dataset, ...]
    id_prefix: Optional[str] = None
    capacity: Optional[int] = None

    @property
    def width(self) -> int:
        return self.codec.width

    @property
    def id_col(self) -> int:
        return self.start_col + self.codec.id_offset

    def col_of(self, field_name: str) -> int:
        return self.start_col + self.codec.offset_of(field_name)

    @property
    def end_row(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return self.start_row + self.capacity - 1


_TEXT = ColumnKind.TEXT
_NUMBER = ColumnKind.NUMBER
_DAY = ColumnKind.DAY


EXPENSE_LAYOUT = TableLayout(
    name="expenses",
    sheet="Expenses",
    start_row=5,
    start_col=4,  # D
    codec=RowCodec(Expense, (
        ColumnSpec("id"),
        ColumnSpec("date", _DAY),
        ColumnSpec("amount", _NUMBER, default=0),
        ColumnSpec("category", ColumnKind.CATEGORY),
        ColumnSpec("name"),
        ColumnSpec("label"),
        ColumnSpec("notes"),
        ColumnSpec("account", default="Other"),
    )),
    datasets=(Dataset.MASTER_DATA, Dataset.BUDGET),
    id_prefix="ex-",
)

INCOME_LAYOUT = TableLayout(
    name="income",
    sheet="Income",
    start_row=5,
    start_col=4,  # D
    codec=RowCodec(Income, (
        ColumnSpec("id"),
        ColumnSpec("date", _DAY, default=date.today),
        ColumnSpec("amount", _NUMBER, default=0),
        ColumnSpec("name"),
        ColumnSpec("account", default="Other"),
        ColumnSpec("source", default="Other"),
        ColumnSpec("notes"),
    )),
    datasets=(Dataset.MASTER_DATA, Dataset.INCOME),
    id_prefix="inc-",
)

RECURRING_LAYOUT = TableLayout(
    name="recurring",
    sheet="Recurring",
    start_row=6,
    start_col=3,  # C
    codec=RowCodec(RecurringItem, (
        ColumnSpec("id"),
        ColumnSpec("start_date", _DAY),
        ColumnSpec("name"),
        ColumnSpec("category", ColumnKind.CATEGORY, literals=(INCOME_CATEGORY,)),
        ColumnSpec("type", default="TRUE"),
        ColumnSpec("frequency", default="Monthly"),
        ColumnSpec("amount", _NUMBER, default=0),
        ColumnSpec("account", default="Other"),
        ColumnSpec("end_date", _DAY),
        ColumnSpec("owner", ColumnKind.BLANK),
        ColumnSpec("notes"),
        ColumnSpec("source"),
    )),
    datasets=(Dataset.MASTER_DATA, Dataset.RECURRING),
    id_prefix="rec-",
)

NET_WORTH_LAYOUT = TableLayout(
    name="net_worth",
    sheet="Net Worth",
    start_row=37,
    start_col=3,  # C
    codec=RowCodec(NetWorthEntry, (
        ColumnSpec("id"),
        ColumnSpec("date", ColumnKind.MONTH),
        ColumnSpec("asset"),
        ColumnSpec("type"),
        ColumnSpec("name"),
        ColumnSpec("amount", _NUMBER, default=0),
        ColumnSpec("change"),
        ColumnSpec("change_amount", _NUMBER, default=0),
        ColumnSpec("notes"),
    )),
    datasets=(Dataset.NET_WORTH,),
    id_prefix="net-",
)

CATEGORY_LAYOUT = TableLayout(
    name="categories",
    sheet=CONTROL_SHEET,
    start_row=10,
    start_col=12,  # L
    codec=RowCodec(Category, (
        ColumnSpec("active", ColumnKind.BOOL, default=True),
        ColumnSpec("full_name"),
        ColumnSpec("display_order", _NUMBER),
        ColumnSpec("id"),
    ), require_id=False, key_field="full_name"),
    datasets=(Dataset.CATEGORIES,),
    capacity=30,
)

# Tables scanned by the data integrity checks
TRANSACTION_LAYOUTS = (EXPENSE_LAYOUT, INCOME_LAYOUT, RECURRING_LAYOUT, NET_WORTH_LAYOUT)
