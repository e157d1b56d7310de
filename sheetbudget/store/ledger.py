"""
Timestamp Ledger

One "last modified" instant per logical dataset, kept in the control sheet.
Clients compare these against their cached copies to decide what to refetch.

DESIGN DECISION: Timestamps are advisory.
1. A mutation touches the datasets it affects after its writes succeed
2. A failed touch is logged and never fails the mutation itself
3. A dataset that was never touched reads as "now", forcing a refetch
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from sheetbudget.audit import get_logger
from sheetbudget.services.storage.interface import SheetBackend, StorageError

logger = get_logger(__name__)

CONTROL_SHEET = "Dontedit"


class Dataset(str, Enum):
    NET_WORTH = "netWorth"
    RECURRING = "recurring"
    SETTINGS = "settings"
    MASTER_DATA = "masterData"
    BUDGET = "budget"
    CATEGORIES = "categories"
    INCOME = "income"


# Dontedit!J6:J12, in enum order
TIMESTAMP_COL = 10
TIMESTAMP_ROWS = {dataset: 6 + i for i, dataset in enumerate(Dataset)}
LAST_ACTIVE_CELL = (8, 4)  # D8


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_instant(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. ``2025-07-01T09:30:00.000Z``."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TimestampLedger:
    """
    Reads and writes the per-dataset timestamps.

    Args:
        backend: The connected workbook
        clock: Returns the current instant (injectable for tests)
    """

    def __init__(self, backend: SheetBackend, clock: Optional[Callable[[], datetime]] = None):
        self.backend = backend
        self.clock = clock or utc_now

    def touch(self, *datasets: Dataset) -> str:
        """Stamp each dataset with the current instant and return it."""
        self.backend.require_sheet(CONTROL_SHEET)
        stamp = iso_instant(self.clock())
        for dataset in dict.fromkeys(datasets):
            self.backend.write_cell(CONTROL_SHEET, TIMESTAMP_ROWS[dataset], TIMESTAMP_COL, stamp)
        return stamp

    def touch_quietly(self, *datasets: Dataset) -> Optional[str]:
        """touch(), logging instead of raising on failure."""
        try:
            return self.touch(*datasets)
        except StorageError as e:
            logger.warning(
                "timestamp_touch_failed",
                datasets=[d.value for d in datasets],
                error=str(e),
            )
            return None

    def read_all(self) -> dict[str, str]:
        """Every dataset's timestamp; never-touched datasets read as now."""
        self.backend.require_sheet(CONTROL_SHEET)
        first = min(TIMESTAMP_ROWS.values())
        cells = self.backend.read_range(CONTROL_SHEET, first, TIMESTAMP_COL, len(TIMESTAMP_ROWS), 1)
        now = iso_instant(self.clock())
        result = {}
        for dataset, row in TIMESTAMP_ROWS.items():
            value = cells[row - first][0]
            result[dataset.value] = str(value) if value not in ("", None) else now
        return result

    def touch_last_active(self) -> str:
        self.backend.require_sheet(CONTROL_SHEET)
        stamp = iso_instant(self.clock())
        self.backend.write_cell(CONTROL_SHEET, *LAST_ACTIVE_CELL, stamp)
        return stamp
