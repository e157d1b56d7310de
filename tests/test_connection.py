"""Tests for sheet URL parsing and the connection manager."""

import pytest

from conftest import build_workbook
from sheetbudget.connection import ConnectionManager, ProfileStore, parse_sheet_url
from sheetbudget.services.storage import NotConfiguredError, NotFoundError, ParseError, RecordValidationError

SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz0123456789_-xy"
URL = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit#gid=123"


class _Opener:
    """Stands in for GoogleSheetsClient.backend."""

    def __init__(self, workbooks):
        self.workbooks = workbooks
        self.opened = []

    def __call__(self, spreadsheet_id):
        self.opened.append(spreadsheet_id)
        if spreadsheet_id not in self.workbooks:
            raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")
        return self.workbooks[spreadsheet_id]


@pytest.fixture
def opener():
    return _Opener({SHEET_ID: build_workbook()})


@pytest.fixture
def manager(tmp_path, opener) -> ConnectionManager:
    return ConnectionManager(opener, ProfileStore(str(tmp_path / "profile.json")))


class TestParseSheetUrl:
    def test_full_url(self):
        location = parse_sheet_url(URL)
        assert location.spreadsheet_id == SHEET_ID
        assert location.gid == 123

    def test_bare_id(self):
        location = parse_sheet_url(SHEET_ID)
        assert location.gid is None
        assert location.url == f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit"

    @pytest.mark.parametrize("url", ["", "https://example.com/doc", "short"])
    def test_rejects_non_sheet_urls(self, url):
        with pytest.raises(RecordValidationError):
            parse_sheet_url(url)


class TestConnectionManager:
    def test_backend_requires_connection(self, manager):
        with pytest.raises(NotConfiguredError):
            manager.backend()

    def test_verify_saves_profile_and_opens(self, manager, opener, tmp_path):
        connected = []
        manager.on_connect = connected.append

        profile = manager.verify_sheet_url(URL)

        assert profile.verified
        assert profile.title == "Budget 2025"
        assert connected == [profile]
        assert manager.profiles.load().spreadsheet_id == SHEET_ID
        assert manager.backend() is opener.workbooks[SHEET_ID]
        assert opener.opened == [SHEET_ID]

    def test_set_sheet_url_does_not_open(self, manager, opener):
        profile = manager.set_sheet_url(URL)
        assert not profile.verified
        assert opener.opened == []

    def test_backend_opened_lazily_from_profile(self, manager, opener):
        manager.set_sheet_url(URL)
        manager.backend()
        manager.backend()
        assert opener.opened == [SHEET_ID]

    def test_unknown_spreadsheet(self, manager):
        with pytest.raises(NotFoundError):
            manager.connect_spreadsheet("1ZZZZZZZZZZZZZZZZZZZZZZZZZ")
        assert manager.profiles.load() is None

    def test_disconnect(self, manager):
        manager.connect_spreadsheet(SHEET_ID)
        assert manager.disconnect() is True
        with pytest.raises(NotConfiguredError):
            manager.backend()

    def test_test_connection_reports_missing_sheets(self, manager, opener):
        opener.workbooks[SHEET_ID] = build_workbook()
        del opener.workbooks[SHEET_ID]._sheets["Income"]

        report = manager.test_connection(URL)

        assert report["missing_sheets"] == ["Income"]
        assert manager.profiles.load() is None

    def test_corrupt_profile(self, manager):
        manager.profiles.path.write_text("{oops", encoding="utf-8")
        with pytest.raises(ParseError):
            manager.backend()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
