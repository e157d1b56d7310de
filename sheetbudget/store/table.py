"""
Record Store

A table of records kept in a contiguous row range of one worksheet.

DESIGN DECISION: Records are located by stable ID, never by row number.
1. Upserts map ID -> slot by scanning the ID column on every call
2. Deleting clears a record's column span and leaves a hole
3. Inserts fill holes first (in sheet order), then append after the
   host-reported last used row
4. The table never shrinks, so rows the user added by hand elsewhere
   on the sheet are never shifted

A slot is a hole only when it holds nothing (an unticked checkbox counts
as nothing), or for the category table when its name is blank. This
deliberately departs from treating every slot without an ID as free:
rows with content but no ID are neither matched nor overwritten, and
``fix_missing_ids`` gives them IDs instead.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from gspread.utils import rowcol_to_a1
from pydantic import ValidationError

from sheetbudget.audit import get_logger
from sheetbudget.models.records import SheetRecord, is_blank, normalise_id
from sheetbudget.models.results import (
    ClearOutcome,
    ClearStatus,
    ScanDiagnostics,
    UpsertSummary,
)
from sheetbudget.services.storage.interface import (
    AmbiguousMatchError,
    CapacityError,
    RecordValidationError,
    SheetBackend,
)
from sheetbudget.store.codec import CategoryResolver
from sheetbudget.store.ids import new_record_id
from sheetbudget.store.layouts import TableLayout
from sheetbudget.store.ledger import TimestampLedger

logger = get_logger(__name__)


@dataclass
class RawRow:
    """One scanned slot: its sheet row and its raw cells."""
    row_index: int
    cells: list[Any]


class RecordStore:
    """
    Read/upsert/clear for one TableLayout.

    Args:
        backend: The connected workbook
        layout: Which rows/columns hold the records
        ledger: If given, touched for the layout's datasets after each mutation
    """

    def __init__(
        self,
        backend: SheetBackend,
        layout: TableLayout,
        ledger: Optional[TimestampLedger] = None,
    ):
        self.backend = backend
        self.layout = layout
        self.ledger = ledger

    # =========================================================================
    # SCANNING
    # =========================================================================

    def _scan_end(self) -> int:
        if self.layout.end_row is not None:
            return self.layout.end_row
        return self.backend.last_row(self.layout.sheet)

    def scan(self, end: Optional[int] = None) -> list[RawRow]:
        """
        Read every slot from the start row to the end of the table.

        Args:
            end: Last row to read, if the caller already knows it

        Raises:
            NotFoundError: If the worksheet is missing
        """
        layout = self.layout
        self.backend.require_sheet(layout.sheet)
        if end is None:
            end = self._scan_end()
        count = end - layout.start_row + 1
        if count <= 0:
            return []
        rows = self.backend.read_range(layout.sheet, layout.start_row, layout.start_col, count, layout.width)
        return [RawRow(layout.start_row + i, cells) for i, cells in enumerate(rows)]

    def is_vacant(self, raw: RawRow) -> bool:
        return self.layout.codec.is_vacant(raw.cells)

    def _a1_span(self, end: int) -> str:
        start = rowcol_to_a1(self.layout.start_row, self.layout.start_col)
        stop = rowcol_to_a1(max(end, self.layout.start_row), self.layout.start_col + self.layout.width - 1)
        return f"{self.layout.sheet}!{start}:{stop}"

    def read_all(self) -> tuple[list[SheetRecord], ScanDiagnostics]:
        """Decode every usable row. Unusable rows are counted, never raised."""
        rows = self.scan()
        records = []
        for raw in rows:
            record = self.layout.codec.decode(raw.cells, raw.row_index)
            if record is not None:
                records.append(record)

        end = rows[-1].row_index if rows else self.layout.start_row
        diagnostics = ScanDiagnostics(
            sheet=self.layout.sheet,
            range=self._a1_span(end),
            total_rows=len(rows),
            processed_rows=len(records),
            skipped_rows=len(rows) - len(records),
        )
        logger.debug("table_scanned", table=self.layout.name, **diagnostics.model_dump(exclude={"sheet"}))
        return records, diagnostics

    # =========================================================================
    # UPSERT
    # =========================================================================

    def _validate(self, items: Iterable[Union[SheetRecord, dict]]) -> tuple[list[SheetRecord], int]:
        model = self.layout.codec.model
        valid, dropped = [], 0
        for item in items:
            if isinstance(item, model):
                valid.append(item)
                continue
            try:
                valid.append(model.model_validate(item))
            except ValidationError as e:
                dropped += 1
                logger.debug("record_dropped", table=self.layout.name, reason=e.errors()[0]["msg"])
        return valid, dropped

    def _new_id(self, row_index: int, used: set[str]) -> str:
        if self.layout.id_prefix is not None:
            return new_record_id(self.layout.id_prefix)
        # Slot index, or the next number no occupied slot uses
        number = row_index - self.layout.start_row
        while str(number) in used:
            number += 1
        return str(number)

    def upsert_batch(
        self,
        items: Iterable[Union[SheetRecord, dict]],
        resolve_category: Optional[CategoryResolver] = None,
    ) -> UpsertSummary:
        """
        Insert or update records by stable ID.

        Every slot is chosen and every row encoded before the first write,
        so an unknown category or a full fixed-size table fails the whole
        batch without touching the sheet.

        Raises:
            NotFoundError: Missing worksheet or unknown category
            CapacityError: A fixed-size table has too few holes
        """
        records, dropped = self._validate(items)
        layout = self.layout

        id_slots: dict[str, int] = {}
        holes: list[int] = []
        last_used = layout.start_row - 1
        end = self._scan_end()
        for raw in self.scan(end):
            if self.is_vacant(raw):
                holes.append(raw.row_index)
                continue
            last_used = raw.row_index
            record_id = normalise_id(raw.cells[layout.codec.id_offset])
            if record_id:
                id_slots.setdefault(record_id, raw.row_index)

        if layout.capacity is None:
            next_append = max(end, last_used) + 1
        else:
            next_append = None

        used_ids = set(id_slots) | {record.id for record in records if record.id}
        # Plan: (row, record, is_insert)
        planned: list[tuple[int, SheetRecord, bool]] = []
        batch_slots: dict[str, int] = {}
        hole_iter = iter(holes)
        for record in records:
            if record.id and record.id in batch_slots:
                planned.append((batch_slots[record.id], record, False))
                continue
            if record.id and record.id in id_slots:
                row, is_insert = id_slots[record.id], False
            else:
                row = next(hole_iter, None)
                if row is None:
                    if next_append is None:
                        raise CapacityError(
                            f"{layout.name} table is full ({layout.capacity} slots)"
                        )
                    row = next_append
                    next_append += 1
                is_insert = True
            if not record.id:
                record = record.model_copy(update={"id": self._new_id(row, used_ids)})
                used_ids.add(record.id)
            batch_slots[record.id] = row
            planned.append((row, record, is_insert))

        encoded = [
            (row, layout.codec.encode(record, resolve_category), record, is_insert)
            for row, record, is_insert in planned
        ]

        summary = UpsertSummary(dropped=dropped)
        for row, values, record, is_insert in encoded:
            self.backend.write_range(layout.sheet, row, layout.start_col, [values])
            record.row_index = row
            summary.slots[record.id] = row
            if is_insert:
                summary.inserted += 1
            else:
                summary.updated += 1

        if encoded:
            self._touch()
        logger.info(
            "records_upserted",
            table=layout.name,
            updated=summary.updated,
            inserted=summary.inserted,
            dropped=summary.dropped,
        )
        return summary

    # =========================================================================
    # CLEAR
    # =========================================================================

    def find_row(self, record_id: str) -> tuple[Optional[int], Optional[str]]:
        """
        Locate a record's row.

        Exact, case-insensitive ID match first (first match wins). Tables
        with generated IDs then fall back to a substring scan of the row's
        text cells, which must match exactly one row. Slot-indexed tables
        match exactly only, since a short number would hit unrelated cells.

        Returns:
            (row_index, "id" | "substring"), or (None, None) if not found

        Raises:
            AmbiguousMatchError: The substring scan matched several rows
        """
        target = record_id.strip().lower()
        rows = [raw for raw in self.scan() if not self.is_vacant(raw)]
        id_offset = self.layout.codec.id_offset

        for raw in rows:
            if normalise_id(raw.cells[id_offset]).lower() == target:
                return raw.row_index, "id"

        if self.layout.id_prefix is None:
            return None, None

        matches = [
            raw.row_index for raw in rows
            if any(isinstance(cell, str) and target in cell.lower() for cell in raw.cells)
        ]
        if len(matches) > 1:
            raise AmbiguousMatchError(
                f'"{record_id}" matches {len(matches)} rows in {self.layout.sheet}; '
                "refusing to guess which to clear"
            )
        if matches:
            return matches[0], "substring"
        return None, None

    def clear_by_id(self, record_id: str) -> ClearOutcome:
        """
        Blank a record's column span, leaving a reusable hole.

        Raises:
            RecordValidationError: Blank ID
            AmbiguousMatchError: See find_row
        """
        if is_blank(record_id):
            raise RecordValidationError("A record ID is required")
        record_id = str(record_id).strip()

        row, matched_by = self.find_row(record_id)
        if row is None:
            logger.info("record_not_found", table=self.layout.name, record_id=record_id)
            return ClearOutcome(status=ClearStatus.NOT_FOUND, record_id=record_id)

        self.backend.clear_range(self.layout.sheet, row, self.layout.start_col, 1, self.layout.width)
        self._touch()
        logger.info(
            "record_cleared",
            table=self.layout.name,
            record_id=record_id,
            row=row,
            matched_by=matched_by,
        )
        return ClearOutcome(
            status=ClearStatus.CLEARED,
            record_id=record_id,
            row_index=row,
            matched_by=matched_by,
        )

    def _touch(self) -> None:
        if self.ledger is not None:
            self.ledger.touch_quietly(*self.layout.datasets)
