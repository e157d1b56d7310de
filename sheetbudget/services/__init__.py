"""Services package."""

from sheetbudget.services.storage import (
    AccessDeniedError,
    AmbiguousMatchError,
    CapacityError,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemorySheetBackend,
    NotConfiguredError,
    NotFoundError,
    ParseError,
    RecordValidationError,
    SheetBackend,
    StorageError,
)

__all__ = [
    "AccessDeniedError",
    "AmbiguousMatchError",
    "CapacityError",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemorySheetBackend",
    "NotConfiguredError",
    "NotFoundError",
    "ParseError",
    "RecordValidationError",
    "SheetBackend",
    "StorageError",
]
