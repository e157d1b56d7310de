"""
Record Models for sheetbudget

These models define the strict schemas for every entity kept in the budget
workbook. They are designed to:
1. Enforce type safety at runtime
2. Reject rows/payloads with unusable amounts before anything is written
3. Accept the camelCase payloads sent by the web client
4. Keep the physical row position out of the record's identity

DESIGN DECISION: A record is identified by its stable ``id`` only.
``row_index`` is a cache of where the record was last seen in the sheet;
it is excluded from serialisation and never used to find a record.
"""

import math
import re
import datetime as dt
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel


INCOME_CATEGORY = "Income 💵"

# Formats the workbook and the web client use for dates, tried in order
_DAY_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d-%b-%Y", "%d-%B-%Y", "%d %b %Y", "%b %d, %Y")
_MONTH_FORMATS = ("%b %Y", "%B %Y", "%Y-%m")

_EMOJI_PATTERN = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF☀-⛿✀-➿⬀-⯿"
    "\U0001F900-\U0001F9FF\U0001FA70-\U0001FAFF]"
)


# =============================================================================
# VALUE HELPERS
# =============================================================================

def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings (0 and False are values)."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_amount(value: Any) -> float:
    """
    Parse a cell or payload value into a finite float.

    Raises:
        ValueError: If the value is blank, non-numeric, or not finite
    """
    if isinstance(value, bool) or is_blank(value):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            raise ValueError(f"Not a number: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"Amount must be finite: {value!r}")
    return number


def parse_sheet_date(value: Any, month_only: bool = False) -> Optional[dt.date]:
    """
    Parse a date as displayed by the sheet or sent by the client.

    Accepts date/datetime objects, ISO strings (with or without a time part),
    ``MM/DD/YYYY``, ``1-Jul-2025`` and, for month-granular values,
    ``Jul 2025``. Month values resolve to the first of the month.

    Raises:
        ValueError: If a non-blank value cannot be parsed
    """
    if is_blank(value):
        return None
    if isinstance(value, dt.datetime):
        parsed = value.date()
    elif isinstance(value, dt.date):
        parsed = value
    else:
        text = str(value).strip()
        if "T" in text:
            text = text.split("T", 1)[0]
        parsed = None
        formats = _MONTH_FORMATS + _DAY_FORMATS if month_only else _DAY_FORMATS + _MONTH_FORMATS
        for fmt in formats:
            try:
                parsed = dt.datetime.strptime(text, fmt).date()
                break
            except ValueError:
                continue
        if parsed is None:
            raise ValueError(f"Unrecognised date: {value!r}")
    return parsed.replace(day=1) if month_only else parsed


def format_day(value: dt.date) -> str:
    """Format as ``1-Jul-2025``: unambiguous and timezone-safe."""
    return f"{value.day}-{value.strftime('%b')}-{value.year}"


def format_month(value: dt.date) -> str:
    """Format as ``Jul 2025``."""
    return value.strftime("%b %Y")


def normalise_id(value: Any) -> str:
    """Turn an ID cell (string or number) into its string form."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def split_category_name(full_name: str) -> tuple[str, str]:
    """Split ``"Food 🍕"`` into ``("Food", "🍕")``; no emoji gives ``(full_name, "")``."""
    parts = full_name.strip().split(" ")
    if len(parts) >= 2 and _EMOJI_PATTERN.search(parts[-1]):
        return " ".join(parts[:-1]), parts[-1]
    return full_name.strip(), ""


# =============================================================================
# BASE RECORD
# =============================================================================

class SheetRecord(BaseModel):
    """
    Base class for a row-backed record.

    Subclasses list their fields in sheet column order; the matching
    column layout lives in ``sheetbudget.store.layouts``.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default="",
        validation_alias=AliasChoices("id", "transactionId", "assetId"),
        description="Stable ID; blank means the server assigns one on save",
    )
    row_index: Optional[int] = Field(
        default=None,
        exclude=True,
        description="Physical sheet row this record was read from (cache only)",
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return normalise_id(v)


def _positive(v: Any) -> float:
    amount = parse_amount(v)
    if amount <= 0:
        raise ValueError("Amount must be greater than zero")
    return amount


def _default_account(v: Any) -> str:
    return "Other" if is_blank(v) else str(v)


def _text(v: Any) -> str:
    return "" if v is None else str(v)


# =============================================================================
# ENTITIES
# =============================================================================

class Expense(SheetRecord):
    """A single spending transaction (Expenses!D:K)."""

    date: dt.date
    amount: float
    category: str = Field(..., min_length=1)
    name: str = Field(
        default="",
        validation_alias=AliasChoices("name", "description"),
    )
    label: str = ""
    notes: str = ""
    account: str = "Other"

    @field_validator("amount", mode="before")
    @classmethod
    def positive_amount(cls, v: Any) -> float:
        return _positive(v)

    @field_validator("account", mode="before")
    @classmethod
    def default_account(cls, v: Any) -> str:
        return _default_account(v)

    @field_validator("category", "name", "label", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> dt.date:
        parsed = parse_sheet_date(v)
        if parsed is None:
            raise ValueError("Expense date is required")
        return parsed


class Income(SheetRecord):
    """An income transaction (Income!D:J)."""

    date: Optional[dt.date] = None
    amount: float
    name: str = Field(
        default="",
        validation_alias=AliasChoices("name", "description"),
    )
    account: str = "Other"
    source: str = "Other"
    notes: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def positive_amount(cls, v: Any) -> float:
        return _positive(v)

    @field_validator("account", mode="before")
    @classmethod
    def default_account(cls, v: Any) -> str:
        return _default_account(v)

    @field_validator("name", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("source", mode="before")
    @classmethod
    def default_source(cls, v: Any) -> str:
        return "Other" if is_blank(v) else str(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[dt.date]:
        return parse_sheet_date(v)

    @computed_field
    @property
    def category(self) -> str:
        return INCOME_CATEGORY


class RecurringItem(SheetRecord):
    """A scheduled bill or income (Recurring!C:N)."""

    start_date: Optional[dt.date] = None
    name: str = Field(..., min_length=1)
    category: str = ""
    type: str = "TRUE"
    frequency: str = "Monthly"
    amount: float
    account: str = "Other"
    end_date: Optional[dt.date] = None
    owner: str = ""
    notes: str = ""
    source: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def positive_amount(cls, v: Any) -> float:
        return _positive(v)

    @field_validator("account", mode="before")
    @classmethod
    def default_account(cls, v: Any) -> str:
        return _default_account(v)

    @field_validator("name", "category", "owner", "notes", "source", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> str:
        if isinstance(v, bool):
            return "TRUE" if v else "FALSE"
        return "TRUE" if is_blank(v) else str(v)

    @field_validator("frequency", mode="before")
    @classmethod
    def default_frequency(cls, v: Any) -> str:
        return "Monthly" if is_blank(v) else str(v)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Optional[dt.date]:
        return parse_sheet_date(v)


class NetWorthEntry(SheetRecord):
    """
    A monthly asset or liability balance (Net Worth!C:K).

    Unlike transactions, the amount only has to be finite: liabilities
    and zero balances are legitimate entries.
    """

    date: dt.date
    asset: str = Field(..., min_length=1)
    type: str = ""
    name: str = Field(..., min_length=1)
    amount: float
    change: str = ""
    change_amount: float = 0.0
    notes: str = ""

    @field_validator("asset", "type", "name", "change", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("amount", mode="before")
    @classmethod
    def finite_amount(cls, v: Any) -> float:
        return parse_amount(v)

    @field_validator("change_amount", mode="before")
    @classmethod
    def lenient_change(cls, v: Any) -> float:
        try:
            return parse_amount(v)
        except ValueError:
            return 0.0

    @field_validator("date", mode="before")
    @classmethod
    def parse_month(cls, v: Any) -> dt.date:
        parsed = parse_sheet_date(v, month_only=True)
        if parsed is None:
            raise ValueError("Net worth date is required")
        return parsed


class Category(SheetRecord):
    """A spending category (Dontedit!L10:O39)."""

    active: bool = True
    full_name: str = Field(..., min_length=1)
    display_order: Optional[int] = None

    @field_validator("full_name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return _text(v)

    @field_validator("active", mode="before")
    @classmethod
    def coerce_active(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().upper() == "TRUE"
        return bool(v)

    @field_validator("display_order", mode="before")
    @classmethod
    def coerce_order(cls, v: Any) -> Optional[int]:
        if is_blank(v):
            return None
        return int(parse_amount(v))

    @computed_field
    @property
    def name(self) -> str:
        return split_category_name(self.full_name)[0]

    @computed_field
    @property
    def emoji(self) -> str:
        return split_category_name(self.full_name)[1]
