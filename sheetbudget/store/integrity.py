"""
Data integrity checks for the transaction tables.

Rows typed in by hand, or created before stable IDs existed, can lack an
ID or carry a bare row number as one. Such rows cannot be updated or
cleared reliably; ``fix_missing_ids`` gives them fresh stable IDs.

A row "has data" when any cell of its span other than the ID is non-blank.
"""

from collections import Counter
from typing import Optional

from sheetbudget.audit import get_logger
from sheetbudget.models.records import is_blank, normalise_id
from sheetbudget.models.results import DataHealthReport, RepairReport, SheetHealth
from sheetbudget.services.storage.interface import SheetBackend
from sheetbudget.store.ids import is_numeric_id, new_record_id
from sheetbudget.store.layouts import TRANSACTION_LAYOUTS
from sheetbudget.store.ledger import Dataset, TimestampLedger
from sheetbudget.store.table import RawRow, RecordStore

logger = get_logger(__name__)


def _data_rows(store: RecordStore) -> list[RawRow]:
    id_offset = store.layout.codec.id_offset
    return [
        raw for raw in store.scan()
        if any(not is_blank(cell) for i, cell in enumerate(raw.cells) if i != id_offset)
    ]


def _present_stores(backend: SheetBackend) -> list[RecordStore]:
    stores = []
    for layout in TRANSACTION_LAYOUTS:
        if backend.has_sheet(layout.sheet):
            stores.append(RecordStore(backend, layout))
        else:
            logger.info("integrity_sheet_missing", sheet=layout.sheet)
    return stores


def check_data_health(backend: SheetBackend) -> DataHealthReport:
    """Count missing, numeric and duplicated IDs across every transaction table."""
    report = DataHealthReport()
    seen: Counter = Counter()

    for store in _present_stores(backend):
        id_offset = store.layout.codec.id_offset
        sheet = SheetHealth(sheet=store.layout.sheet)
        for raw in _data_rows(store):
            sheet.total_rows += 1
            record_id = normalise_id(raw.cells[id_offset])
            if not record_id:
                sheet.missing_ids += 1
                continue
            if is_numeric_id(record_id):
                sheet.numeric_ids += 1
            if seen[record_id]:
                sheet.duplicate_ids += 1
            seen[record_id] += 1
        report.sheets.append(sheet)

    report.total_rows = sum(s.total_rows for s in report.sheets)
    report.missing_ids = sum(s.missing_ids for s in report.sheets)
    report.numeric_ids = sum(s.numeric_ids for s in report.sheets)
    report.duplicate_ids = sum(s.duplicate_ids for s in report.sheets)
    report.duplicates = sorted(record_id for record_id, count in seen.items() if count > 1)
    logger.info(
        "data_health_checked",
        total_rows=report.total_rows,
        missing_ids=report.missing_ids,
        numeric_ids=report.numeric_ids,
        duplicate_ids=report.duplicate_ids,
    )
    return report


def fix_missing_ids(backend: SheetBackend, ledger: Optional[TimestampLedger] = None) -> RepairReport:
    """
    Give every data row with a missing or purely numeric ID a fresh stable ID.

    Timestamps are touched only if something changed.
    """
    report = RepairReport()
    touched: list[Dataset] = []

    for store in _present_stores(backend):
        layout = store.layout
        fixed = 0
        for raw in _data_rows(store):
            record_id = normalise_id(raw.cells[layout.codec.id_offset])
            if record_id and not is_numeric_id(record_id):
                continue
            backend.write_cell(layout.sheet, raw.row_index, layout.id_col, new_record_id(layout.id_prefix))
            fixed += 1
        if fixed:
            report.per_sheet[layout.sheet] = fixed
            report.fixed_count += fixed
            touched.extend(layout.datasets)

    if touched and ledger is not None:
        ledger.touch_quietly(Dataset.MASTER_DATA, *touched)
    logger.info("missing_ids_fixed", fixed_count=report.fixed_count, per_sheet=report.per_sheet)
    return report
