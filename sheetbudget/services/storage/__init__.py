"""
Storage Services Package

Provides the abstract sheet interface and its implementations.
Google Sheets is the production backend; the in-memory backend stands in
for it in tests.
"""

from sheetbudget.services.storage.interface import (
    AccessDeniedError,
    AmbiguousMatchError,
    CapacityError,
    NotConfiguredError,
    NotFoundError,
    ParseError,
    RecordValidationError,
    SheetBackend,
    StorageError,
)
from sheetbudget.services.storage.memory import InMemorySheetBackend
from sheetbudget.services.storage.google_sheets import (
    GoogleSheetsBackend,
    GoogleSheetsClient,
)

__all__ = [
    # Interface
    "SheetBackend",
    # Exceptions
    "AccessDeniedError",
    "AmbiguousMatchError",
    "CapacityError",
    "NotConfiguredError",
    "NotFoundError",
    "ParseError",
    "RecordValidationError",
    "StorageError",
    # Implementations
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemorySheetBackend",
]
