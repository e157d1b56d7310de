"""
Result and report models returned by the store and the service layer.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class OperationResult(BaseModel):
    """
    Uniform envelope returned by every BudgetService method.

    Exactly one of ``data`` (on success) or ``error``/``error_code``
    (on failure) is meaningful.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error_code: str, error: str) -> "OperationResult":
        return cls(success=False, error_code=error_code, error=error)


class ScanDiagnostics(BaseModel):
    """What a read_all scan saw."""
    sheet: str
    range: str
    total_rows: int = 0
    processed_rows: int = 0
    skipped_rows: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_rows == 0


class UpsertSummary(BaseModel):
    """Outcome of an upsert_batch call."""
    updated: int = 0
    inserted: int = 0
    dropped: int = 0
    slots: dict[str, int] = Field(
        default_factory=dict,
        description="Record ID -> physical row written",
    )


class ClearStatus(str, Enum):
    CLEARED = "cleared"
    NOT_FOUND = "not_found"


class ClearOutcome(BaseModel):
    status: ClearStatus
    record_id: str
    row_index: Optional[int] = None
    matched_by: Optional[str] = Field(
        default=None,
        description="'id' for an exact ID match, 'substring' for the fallback scan",
    )


class SheetHealth(BaseModel):
    sheet: str
    total_rows: int = 0
    missing_ids: int = 0
    numeric_ids: int = 0
    duplicate_ids: int = 0


class DataHealthReport(BaseModel):
    total_rows: int = 0
    missing_ids: int = 0
    numeric_ids: int = 0
    duplicate_ids: int = 0
    sheets: list[SheetHealth] = Field(default_factory=list)
    duplicates: list[str] = Field(default_factory=list)

    @property
    def needs_repair(self) -> bool:
        return bool(self.missing_ids or self.numeric_ids)


class RepairReport(BaseModel):
    fixed_count: int = 0
    per_sheet: dict[str, int] = Field(default_factory=dict)


class TrialState(str, Enum):
    TRIAL = "trial"
    EXPIRED = "expired"
    PAID = "paid"
    ERROR = "error"


class TrialStatus(BaseModel):
    status: TrialState
    days_left: Optional[int] = None
    trial_end: Optional[datetime] = None
    is_new_user: bool = False
    message: Optional[str] = None


class MonthlyTotal(BaseModel):
    month: str
    income: float = 0.0
    spending: float = 0.0
