"""
JSON documents stored in single control-sheet cells.

Each document is read, migrated to the current schema version and
replaced wholesale on save. There is no optimistic concurrency: the
last writer wins.
"""

import json
from datetime import date
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from sheetbudget.audit import get_logger
from sheetbudget.models.documents import (
    BudgetDocument,
    NetWorthGoalsDocument,
    SettingsDocument,
    VersionedDocument,
)
from sheetbudget.services.storage.interface import ParseError, SheetBackend
from sheetbudget.store.ledger import CONTROL_SHEET, Dataset, TimestampLedger

logger = get_logger(__name__)


class JsonBlobCell:
    """One cell holding a JSON value."""

    def __init__(self, backend: SheetBackend, row: int, col: int, sheet: str = CONTROL_SHEET):
        self.backend = backend
        self.sheet = sheet
        self.row = row
        self.col = col

    def read(self) -> Optional[Any]:
        """
        Parsed cell content, or None for an empty cell.

        Raises:
            NotFoundError: Missing control sheet
            ParseError: The cell does not hold valid JSON
        """
        self.backend.require_sheet(self.sheet)
        value = self.backend.read_cell(self.sheet, self.row, self.col)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        try:
            return json.loads(value)
        except (TypeError, json.JSONDecodeError) as e:
            raise ParseError(f"Invalid JSON in {self.sheet}!R{self.row}C{self.col}: {e}")

    def write(self, data: Any) -> None:
        self.backend.require_sheet(self.sheet)
        self.backend.write_cell(self.sheet, self.row, self.col, json.dumps(data, ensure_ascii=False))


class DocumentStore:
    """
    A versioned document in one cell.

    Subclasses set ``document_class``, the cell position and the datasets
    touched on save.
    """

    document_class: type[VersionedDocument] = VersionedDocument
    row: int = 0
    col: int = 0
    datasets: tuple[Dataset, ...] = ()

    def __init__(self, backend: SheetBackend, ledger: Optional[TimestampLedger] = None):
        self.cell = JsonBlobCell(backend, self.row, self.col)
        self.ledger = ledger

    def _parse(self, raw: Any) -> VersionedDocument:
        try:
            return self.document_class.from_stored(raw)
        except (ValueError, ValidationError) as e:
            raise ParseError(f"Stored {self.document_class.__name__} is unusable: {e}")

    def load(self) -> VersionedDocument:
        """
        Read and migrate the document. An empty cell is initialised with an
        empty current-version document.

        Raises:
            ParseError: Malformed JSON, or a schema/version that cannot be migrated
        """
        raw = self.cell.read()
        if raw is None:
            document = self.document_class()
            self.cell.write(document.to_stored())
            logger.info("document_initialised", document=self.document_class.__name__)
            return document
        return self._parse(raw)

    def save(self, document: Union[VersionedDocument, dict]) -> VersionedDocument:
        """
        Replace the stored document.

        Raises:
            ParseError: The given dict cannot be read as this document type
        """
        if not isinstance(document, self.document_class):
            document = self._parse(document)
        self.cell.write(document.to_stored())
        if self.ledger is not None and self.datasets:
            self.ledger.touch_quietly(*self.datasets)
        logger.info("document_saved", document=self.document_class.__name__)
        return document


class SettingsStore(DocumentStore):
    document_class = SettingsDocument
    row, col = 8, 11  # K8
    datasets = (Dataset.SETTINGS,)


class GoalsStore(DocumentStore):
    document_class = NetWorthGoalsDocument
    row, col = 6, 11  # K6
    datasets = (Dataset.NET_WORTH,)


class BudgetStore(DocumentStore):
    """Budget document; an empty current month inherits last month's amounts."""

    document_class = BudgetDocument
    row, col = 10, 11  # K10
    datasets = (Dataset.BUDGET,)

    def __init__(
        self,
        backend: SheetBackend,
        ledger: Optional[TimestampLedger] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        super().__init__(backend, ledger)
        self.today = today or date.today

    def load(self) -> BudgetDocument:
        document = super().load()
        if document.carry_forward(self.today()):
            self.cell.write(document.to_stored())
            logger.info("budget_carried_forward", month=self.today().strftime("%Y-%m"))
        return document
