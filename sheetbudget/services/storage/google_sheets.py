"""
Google Sheets Storage Implementation

DESIGN DECISION: The user's own budget spreadsheet is the database because:
1. Users can view and edit their data directly in Sheets
2. No database setup required
3. Built-in backup and version history (Google's infrastructure)

TRADEOFFS:
- No transactions: a batch is one write per row, so a failure mid-batch
  leaves the rows already written in place
- No locking: concurrent writers can overwrite each other (last write wins)
- Every read is an API call, so callers scan a table once per operation

Only opening a spreadsheet is retried (GOOGLE_SHEETS_OPEN_RETRY_ATTEMPTS);
data reads and writes are never retried, so a failed write is reported
instead of silently repeated.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.utils import DateTimeOption, ValueInputOption, ValueRenderOption, rowcol_to_a1
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from sheetbudget.audit import get_logger
from sheetbudget.config import GoogleSheetsSettings, get_settings
from sheetbudget.services.storage.interface import (
    AccessDeniedError,
    NotConfiguredError,
    NotFoundError,
    SheetBackend,
    StorageError,
)

logger = get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


def _status_code(error: gspread.exceptions.APIError) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def _is_transient(error: BaseException) -> bool:
    """Rate limits and server errors are worth another attempt; nothing else is."""
    if isinstance(error, gspread.exceptions.APIError):
        code = _status_code(error)
        return code == 429 or (code is not None and code >= 500)
    return False


def translate_api_error(error: gspread.exceptions.APIError, action: str) -> StorageError:
    """Map a Sheets API failure onto the storage error taxonomy."""
    code = _status_code(error)
    if code == 403:
        return AccessDeniedError(f"Permission denied while trying to {action}")
    if code == 404:
        return NotFoundError(f"Not found while trying to {action}")
    return StorageError(f"Google Sheets API error while trying to {action}: {error}")


@contextmanager
def api_errors(action: str) -> Iterator[None]:
    try:
        yield
    except gspread.exceptions.APIError as e:
        raise translate_api_error(e, action) from e


def a1_range(row: int, col: int, num_rows: int, num_cols: int) -> str:
    start = rowcol_to_a1(row, col)
    end = rowcol_to_a1(row + num_rows - 1, col + num_cols - 1)
    return f"{start}:{end}"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and opening spreadsheets.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._settings = settings or get_settings().google_sheets

    def connect(self) -> gspread.Client:
        """
        Authorise with the service account credentials.

        Raises:
            NotConfiguredError: Credentials file missing or unreadable
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
            except FileNotFoundError:
                raise NotConfiguredError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except (ValueError, GoogleAuthError) as e:
                raise NotConfiguredError(f"Invalid Google credentials: {e}")
            self._client = gspread.authorize(credentials)
        return self._client

    def open_spreadsheet(self, spreadsheet_id: str) -> gspread.Spreadsheet:
        """
        Open a spreadsheet by ID, retrying transient failures if configured.

        Raises:
            NotFoundError: No such spreadsheet
            AccessDeniedError: The service account has no access
        """
        client = self.connect()
        opener = retry(
            stop=stop_after_attempt(self._settings.open_retry_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )(client.open_by_key)
        try:
            spreadsheet = opener(spreadsheet_id)
        except gspread.SpreadsheetNotFound:
            raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")
        except gspread.exceptions.APIError as e:
            raise translate_api_error(e, f"open spreadsheet {spreadsheet_id}") from e
        logger.info("spreadsheet_opened", spreadsheet_id=spreadsheet_id, title=spreadsheet.title)
        return spreadsheet

    def backend(self, spreadsheet_id: str) -> "GoogleSheetsBackend":
        return GoogleSheetsBackend(self.open_spreadsheet(spreadsheet_id))


class GoogleSheetsBackend(SheetBackend):
    """
    SheetBackend over one opened gspread Spreadsheet.

    Values are read unformatted (numbers stay numbers) with dates rendered
    as their displayed text, and written USER_ENTERED so "=name" strings
    become formulas.
    """

    def __init__(self, spreadsheet: gspread.Spreadsheet):
        self._spreadsheet = spreadsheet
        self._worksheets: dict[str, gspread.Worksheet] = {}

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet.id

    @property
    def title(self) -> str:
        return self._spreadsheet.title

    def _worksheet(self, sheet: str) -> gspread.Worksheet:
        if sheet not in self._worksheets:
            try:
                with api_errors(f'open sheet "{sheet}"'):
                    self._worksheets[sheet] = self._spreadsheet.worksheet(sheet)
            except gspread.WorksheetNotFound:
                raise NotFoundError(f'Sheet "{sheet}" not found')
        return self._worksheets[sheet]

    def has_sheet(self, sheet: str) -> bool:
        try:
            self._worksheet(sheet)
        except NotFoundError:
            return False
        return True

    def last_row(self, sheet: str) -> int:
        worksheet = self._worksheet(sheet)
        with api_errors(f'read "{sheet}"'):
            return len(worksheet.get_all_values())

    def read_range(self, sheet, row, col, num_rows, num_cols) -> list[list[Any]]:
        worksheet = self._worksheet(sheet)
        with api_errors(f'read "{sheet}"'):
            values = worksheet.get_values(
                a1_range(row, col, num_rows, num_cols),
                value_render_option=ValueRenderOption.unformatted,
                date_time_render_option=DateTimeOption.formatted_string,
            )
        # The API trims trailing empty rows and cells
        padded = [list(r) + [""] * (num_cols - len(r)) for r in values[:num_rows]]
        padded.extend([[""] * num_cols for _ in range(num_rows - len(padded))])
        return padded

    def write_range(self, sheet, row, col, values) -> None:
        worksheet = self._worksheet(sheet)
        width = max((len(v) for v in values), default=0)
        if not width:
            return
        with api_errors(f'write "{sheet}"'):
            worksheet.update(
                range_name=a1_range(row, col, len(values), width),
                values=values,
                value_input_option=ValueInputOption.user_entered,
            )

    def clear_range(self, sheet, row, col, num_rows, num_cols) -> None:
        worksheet = self._worksheet(sheet)
        with api_errors(f'clear "{sheet}"'):
            worksheet.batch_clear([a1_range(row, col, num_rows, num_cols)])
