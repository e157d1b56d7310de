"""
Trial/License Ledger

A separate tracking spreadsheet records, per user, when their trial began
and ends. Columns A:D of a bounded row window hold:

    obfuscated email | trial start | trial end | last seen

A blank trial end means the user has paid. Entries are only ever appended
or have their last-seen refreshed.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sheetbudget.audit import get_logger
from sheetbudget.config import TrialSettings
from sheetbudget.license.obfuscation import EmailObfuscator
from sheetbudget.models.records import is_blank
from sheetbudget.models.results import TrialState, TrialStatus
from sheetbudget.services.storage.interface import SheetBackend
from sheetbudget.store.ledger import iso_instant, utc_now

logger = get_logger(__name__)

COL_EMAIL = 1
COL_START = 2
COL_END = 3
COL_LAST_SEEN = 4
WIDTH = 4
DAY_SECONDS = 24 * 60 * 60


def parse_instant(value: Any) -> datetime:
    """
    Parse a stored instant; naive values are taken as UTC.

    Raises:
        ValueError: Unparseable value
    """
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def derive_status(trial_end: Any, now: datetime) -> TrialStatus:
    """
    Status for a ledger entry.

    No end date means paid. Otherwise the days left are the whole days
    remaining, rounded up; zero means expired.
    """
    if is_blank(trial_end):
        return TrialStatus(status=TrialState.PAID)
    try:
        end = parse_instant(trial_end)
    except ValueError:
        return TrialStatus(status=TrialState.ERROR, message=f"Unreadable trial end date: {trial_end!r}")

    days_left = max(0, math.ceil((end - now).total_seconds() / DAY_SECONDS))
    return TrialStatus(
        status=TrialState.TRIAL if days_left > 0 else TrialState.EXPIRED,
        days_left=days_left,
        trial_end=end,
    )


class TrialLedger:
    """
    Look up and register users in the trial tracking spreadsheet.

    Args:
        backend: The tracking spreadsheet (not the user's budget workbook)
        obfuscator: Encrypts addresses with the configured secret
        settings: Window bounds, sheet name and trial length
        clock: Returns the current instant
    """

    def __init__(
        self,
        backend: SheetBackend,
        obfuscator: EmailObfuscator,
        settings: TrialSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.backend = backend
        self.obfuscator = obfuscator
        self.settings = settings
        self.clock = clock or utc_now

    def _window(self) -> list[list[Any]]:
        self.backend.require_sheet(self.settings.sheet_name)
        return self.backend.read_range(
            self.settings.sheet_name,
            self.settings.first_row,
            COL_EMAIL,
            self.settings.last_row - self.settings.first_row + 1,
            WIDTH,
        )

    def _find(self, rows: list[list[Any]], email: str) -> Optional[int]:
        for offset, row in enumerate(rows):
            if self.obfuscator.matches(str(row[COL_EMAIL - 1]), email):
                return offset
        return None

    def check(self, email: str) -> TrialStatus:
        """
        Status for an address, registering it on first sight.

        Refreshes last-seen for known users.
        """
        rows = self._window()
        offset = self._find(rows, email)
        if offset is None:
            return self._register(rows, email)

        now = self.clock()
        row = self.settings.first_row + offset
        self.backend.write_cell(self.settings.sheet_name, row, COL_LAST_SEEN, iso_instant(now))
        return derive_status(rows[offset][COL_END - 1], now)

    def record_first_use(self, email: str) -> TrialStatus:
        """
        Register an address on first connection.

        A known address is handled like a status check, so its last-seen
        instant is refreshed.
        """
        return self.check(email)

    def _register(self, rows: list[list[Any]], email: str) -> TrialStatus:
        free = next((i for i, row in enumerate(rows) if is_blank(row[COL_EMAIL - 1])), None)
        if free is None:
            logger.warning("trial_ledger_full", last_row=self.settings.last_row)
            return TrialStatus(status=TrialState.ERROR, message="Trial ledger is full")

        now = self.clock()
        end = now + timedelta(days=self.settings.trial_days)
        row = self.settings.first_row + free
        self.backend.write_range(self.settings.sheet_name, row, COL_EMAIL, [[
            self.obfuscator.obfuscate(email),
            iso_instant(now),
            iso_instant(end),
            iso_instant(now),
        ]])
        logger.info("trial_started", row=row, trial_days=self.settings.trial_days)
        status = derive_status(iso_instant(end), now)
        status.is_new_user = True
        return status
