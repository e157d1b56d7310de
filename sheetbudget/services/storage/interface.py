"""
Abstract Sheet Backend Interface

DESIGN DECISION: Every store in this package talks to a spreadsheet through
this small interface instead of calling gspread directly.
This allows us to:
1. Run every record/ledger/blob operation against an in-memory sheet in tests
2. Keep row arithmetic (start rows, column spans, holes) out of the API client
3. Map API failures onto one error taxonomy in one place

Rows and columns are 1-based, exactly as the spreadsheet numbers them.
"""

from abc import ABC, abstractmethod
from typing import Any


class SheetBackend(ABC):
    """
    Abstract interface for a single spreadsheet (a workbook of named sheets).

    Any backend (Google Sheets, in-memory, ...) must implement these methods.
    """

    @abstractmethod
    def has_sheet(self, sheet: str) -> bool:
        """Return True if a worksheet with this name exists."""
        pass

    @abstractmethod
    def last_row(self, sheet: str) -> int:
        """
        Return the last row that holds any content in the worksheet.

        This is the host's own notion of "last used row", not a stored
        record count. An empty sheet returns 0.

        Raises:
            NotFoundError: If the worksheet does not exist
        """
        pass

    @abstractmethod
    def read_range(
        self,
        sheet: str,
        row: int,
        col: int,
        num_rows: int,
        num_cols: int,
    ) -> list[list[Any]]:
        """
        Read a rectangular block of cells.

        The result always has ``num_rows`` rows of ``num_cols`` cells;
        missing cells are returned as empty strings. Numbers are returned
        as numbers, dates as their displayed text, and formulas as their
        computed value.

        Raises:
            NotFoundError: If the worksheet does not exist
        """
        pass

    @abstractmethod
    def write_range(
        self,
        sheet: str,
        row: int,
        col: int,
        values: list[list[Any]],
    ) -> None:
        """
        Write a rectangular block of cells starting at (row, col).

        Values are entered as a user would type them, so a string
        starting with "=" becomes a formula.

        Raises:
            NotFoundError: If the worksheet does not exist
        """
        pass

    @abstractmethod
    def clear_range(
        self,
        sheet: str,
        row: int,
        col: int,
        num_rows: int,
        num_cols: int,
    ) -> None:
        """
        Clear the contents (not formatting) of a rectangular block.

        Raises:
            NotFoundError: If the worksheet does not exist
        """
        pass

    @property
    def title(self) -> str:
        """Human-readable name of the workbook, if the backend knows one."""
        return ""

    def read_cell(self, sheet: str, row: int, col: int) -> Any:
        """Read a single cell."""
        return self.read_range(sheet, row, col, 1, 1)[0][0]

    def write_cell(self, sheet: str, row: int, col: int, value: Any) -> None:
        """Write a single cell."""
        self.write_range(sheet, row, col, [[value]])

    def require_sheet(self, sheet: str) -> None:
        """Raise NotFoundError if the worksheet is missing."""
        if not self.has_sheet(sheet):
            raise NotFoundError(f'Sheet "{sheet}" not found')


class StorageError(Exception):
    """Base exception for storage operations."""

    code = "STORAGE_ERROR"


class NotConfiguredError(StorageError):
    """No backing spreadsheet has been connected yet."""

    code = "NOT_CONFIGURED"


class NotFoundError(StorageError):
    """Spreadsheet, worksheet or record not found."""

    code = "NOT_FOUND"


class AmbiguousMatchError(NotFoundError):
    """A lookup matched more than one row and no single record could be chosen."""

    code = "AMBIGUOUS"


class ParseError(StorageError):
    """A persisted JSON document could not be parsed."""

    code = "PARSE_ERROR"


class RecordValidationError(StorageError):
    """Input failed validation (unparseable or non-positive amount, bad name, ...)."""

    code = "VALIDATION_ERROR"


class AccessDeniedError(StorageError):
    """Permission failure opening the backing spreadsheet."""

    code = "ACCESS_DENIED"


class CapacityError(StorageError):
    """A fixed-size table has no room for the requested inserts."""

    code = "CAPACITY_EXCEEDED"
