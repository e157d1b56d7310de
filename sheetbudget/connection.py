"""
Connection management: which budget spreadsheet this instance talks to.

The connected spreadsheet is remembered in a small JSON profile file so
that the connection survives restarts.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from sheetbudget.audit import get_logger
from sheetbudget.services.storage.interface import (
    NotConfiguredError,
    ParseError,
    RecordValidationError,
    SheetBackend,
)
from sheetbudget.store.layouts import TRANSACTION_LAYOUTS
from sheetbudget.store.ledger import CONTROL_SHEET, utc_now

logger = get_logger(__name__)

_SPREADSHEET_PATH = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_BARE_ID = re.compile(r"[a-zA-Z0-9_-]{20,}")
_GID = re.compile(r"[#?&]gid=(\d+)")

REQUIRED_SHEETS = tuple(layout.sheet for layout in TRANSACTION_LAYOUTS) + (CONTROL_SHEET,)


class SheetLocation(BaseModel):
    spreadsheet_id: str
    gid: Optional[int] = None

    @property
    def url(self) -> str:
        url = f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit"
        return f"{url}#gid={self.gid}" if self.gid is not None else url


def parse_sheet_url(url: str) -> SheetLocation:
    """
    Extract the spreadsheet ID (and tab gid, if present) from a sheet URL.
    A bare spreadsheet ID is accepted as well.

    Raises:
        RecordValidationError: Not a spreadsheet URL or ID
    """
    text = (url or "").strip()
    match = _SPREADSHEET_PATH.search(text)
    if match:
        spreadsheet_id = match.group(1)
    elif _BARE_ID.fullmatch(text):
        spreadsheet_id = text
    else:
        raise RecordValidationError(f"Not a Google Sheets URL: {url!r}")
    gid = _GID.search(text)
    return SheetLocation(spreadsheet_id=spreadsheet_id, gid=int(gid.group(1)) if gid else None)


class ConnectionProfile(BaseModel):
    """The remembered connection."""
    spreadsheet_id: str
    sheet_url: str
    gid: Optional[int] = None
    title: str = ""
    verified: bool = False
    connected_at: datetime = Field(default_factory=utc_now)


class ProfileStore:
    """Reads and writes the profile JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[ConnectionProfile]:
        """
        Raises:
            ParseError: The file exists but is not a valid profile
        """
        if not self.path.exists():
            return None
        try:
            return ConnectionProfile.model_validate(json.loads(self.path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ParseError(f"Connection profile {self.path} is unreadable: {e}")

    def save(self, profile: ConnectionProfile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(profile.model_dump_json(indent=2), encoding="utf-8")

    def clear(self) -> bool:
        if self.path.exists():
            self.path.unlink()
            return True
        return False


class ConnectionManager:
    """
    Opens and remembers the user's budget spreadsheet.

    Args:
        open_backend: Opens a spreadsheet by ID (e.g. GoogleSheetsClient.backend)
        profiles: Where the connection is remembered
        on_connect: Called after a successful connection (e.g. to record
            first use in the trial ledger)
    """

    def __init__(
        self,
        open_backend: Callable[[str], SheetBackend],
        profiles: ProfileStore,
        on_connect: Optional[Callable[[ConnectionProfile], None]] = None,
    ):
        self._open_backend = open_backend
        self.profiles = profiles
        self.on_connect = on_connect
        self._backend: Optional[SheetBackend] = None
        self._backend_id: Optional[str] = None

    def set_sheet_url(self, url: str) -> ConnectionProfile:
        """Remember a URL without opening it."""
        location = parse_sheet_url(url)
        profile = ConnectionProfile(
            spreadsheet_id=location.spreadsheet_id,
            sheet_url=url.strip(),
            gid=location.gid,
        )
        self.profiles.save(profile)
        self._backend = None
        logger.info("sheet_url_set", spreadsheet_id=profile.spreadsheet_id)
        return profile

    def _open(self, location: SheetLocation, sheet_url: str) -> ConnectionProfile:
        backend = self._open_backend(location.spreadsheet_id)
        profile = ConnectionProfile(
            spreadsheet_id=location.spreadsheet_id,
            sheet_url=sheet_url,
            gid=location.gid,
            title=backend.title,
            verified=True,
        )
        self.profiles.save(profile)
        self._backend = backend
        self._backend_id = location.spreadsheet_id
        logger.info("spreadsheet_connected", spreadsheet_id=profile.spreadsheet_id, title=profile.title)
        if self.on_connect is not None:
            self.on_connect(profile)
        return profile

    def verify_sheet_url(self, url: str) -> ConnectionProfile:
        """Open the spreadsheet behind a URL and remember it."""
        return self._open(parse_sheet_url(url), url.strip())

    def connect_spreadsheet(self, spreadsheet_id: str) -> ConnectionProfile:
        """Connect to a spreadsheet chosen by ID (e.g. from a file picker)."""
        location = parse_sheet_url(spreadsheet_id)
        return self._open(location, location.url)

    def disconnect(self) -> bool:
        self._backend = None
        self._backend_id = None
        removed = self.profiles.clear()
        logger.info("spreadsheet_disconnected", had_profile=removed)
        return removed

    def test_connection(self, url: Optional[str] = None) -> dict:
        """
        Open a spreadsheet (the given URL, or the remembered one) without
        saving anything, and report which required sheets are missing.
        """
        if url:
            spreadsheet_id = parse_sheet_url(url).spreadsheet_id
        else:
            spreadsheet_id = self._require_profile().spreadsheet_id
        backend = self._open_backend(spreadsheet_id)
        missing = [sheet for sheet in REQUIRED_SHEETS if not backend.has_sheet(sheet)]
        return {
            "spreadsheet_id": spreadsheet_id,
            "title": backend.title,
            "missing_sheets": missing,
        }

    def _require_profile(self) -> ConnectionProfile:
        profile = self.profiles.load()
        if profile is None:
            raise NotConfiguredError("No spreadsheet connected. Set a sheet URL first.")
        return profile

    def backend(self) -> SheetBackend:
        """
        The connected workbook, opened on first use.

        Raises:
            NotConfiguredError: Nothing connected yet
        """
        profile = self._require_profile()
        if self._backend is None or self._backend_id != profile.spreadsheet_id:
            self._backend = self._open_backend(profile.spreadsheet_id)
            self._backend_id = profile.spreadsheet_id
        return self._backend
