"""Tests for the trial/license ledger."""

from datetime import timedelta

import pytest

from conftest import FIXED_NOW
from sheetbudget.config import TrialSettings
from sheetbudget.license import EmailObfuscator, TrialLedger, derive_status
from sheetbudget.models import TrialState
from sheetbudget.services.storage import InMemorySheetBackend, NotFoundError
from sheetbudget.store.ledger import iso_instant


@pytest.fixture(scope="module")
def obfuscator() -> EmailObfuscator:
    return EmailObfuscator("test-secret")


@pytest.fixture
def settings() -> TrialSettings:
    return TrialSettings(tracking_sheet_id="tracking", encryption_key="test-secret", first_row=3, last_row=6)


@pytest.fixture
def tracking() -> InMemorySheetBackend:
    return InMemorySheetBackend(sheets={"Users": [[], ["Email", "Start", "End", "Last seen"]]})


@pytest.fixture
def trial_ledger(tracking, obfuscator, settings) -> TrialLedger:
    return TrialLedger(tracking, obfuscator, settings, clock=lambda: FIXED_NOW)


class TestDeriveStatus:
    def test_trial_with_days_left(self):
        status = derive_status(iso_instant(FIXED_NOW + timedelta(days=5)), FIXED_NOW)
        assert status.status is TrialState.TRIAL
        assert status.days_left == 5

    def test_partial_day_rounds_up(self):
        status = derive_status(iso_instant(FIXED_NOW + timedelta(hours=3)), FIXED_NOW)
        assert status.days_left == 1

    def test_expired(self):
        status = derive_status(iso_instant(FIXED_NOW - timedelta(days=1)), FIXED_NOW)
        assert status.status is TrialState.EXPIRED
        assert status.days_left == 0

    def test_no_end_date_is_paid(self):
        assert derive_status("", FIXED_NOW).status is TrialState.PAID

    def test_unparseable_end_date_is_error(self):
        assert derive_status("next tuesday", FIXED_NOW).status is TrialState.ERROR


class TestObfuscation:
    def test_keeps_prefix_and_hides_rest(self, obfuscator):
        stored = obfuscator.obfuscate("Alice@Example.com")
        assert stored.startswith("alic")
        assert "example" not in stored
        assert obfuscator.reveal(stored) == "alice@example.com"

    def test_matches_is_case_insensitive(self, obfuscator):
        stored = obfuscator.obfuscate("alice@example.com")
        assert obfuscator.matches(stored, " ALICE@example.com ")
        assert not obfuscator.matches(stored, "alicia@example.com")

    def test_other_secret_cannot_match(self, obfuscator):
        stored = obfuscator.obfuscate("alice@example.com")
        assert not EmailObfuscator("another-secret").matches(stored, "alice@example.com")

    def test_secret_required(self):
        with pytest.raises(ValueError):
            EmailObfuscator("")


class TestTrialLedger:
    def test_first_use_registers_thirty_day_trial(self, trial_ledger, tracking, obfuscator):
        status = trial_ledger.check("bob@example.com")

        assert status.is_new_user
        assert status.status is TrialState.TRIAL
        assert status.days_left == 30
        row = tracking.read_range("Users", 3, 1, 1, 4)[0]
        assert obfuscator.matches(row[0], "bob@example.com")
        assert row[1] == "2025-07-15T12:00:00.000Z"
        assert row[2] == "2025-08-14T12:00:00.000Z"

    def test_known_user_refreshes_last_seen(self, trial_ledger, tracking):
        trial_ledger.check("bob@example.com")
        later = FIXED_NOW + timedelta(days=10)
        trial_ledger.clock = lambda: later

        status = trial_ledger.check("BOB@example.com")

        assert not status.is_new_user
        assert status.days_left == 20
        assert tracking.read_cell("Users", 3, 4) == iso_instant(later)
        assert tracking.read_cell("Users", 4, 1) == ""

    def test_paid_user(self, trial_ledger, tracking, obfuscator):
        tracking.write_range("Users", 3, 1, [[obfuscator.obfuscate("paid@example.com"), "2024-01-01T00:00:00Z", "", ""]])
        assert trial_ledger.check("paid@example.com").status is TrialState.PAID

    def test_record_first_use_is_idempotent(self, trial_ledger, tracking):
        trial_ledger.record_first_use("carol@example.com")
        status = trial_ledger.record_first_use("carol@example.com")

        assert not status.is_new_user
        assert tracking.read_cell("Users", 4, 1) == ""

    def test_record_first_use_refreshes_last_seen_for_known_user(self, trial_ledger, tracking):
        trial_ledger.record_first_use("carol@example.com")
        later = FIXED_NOW + timedelta(days=3)
        trial_ledger.clock = lambda: later

        trial_ledger.record_first_use("carol@example.com")

        assert tracking.read_cell("Users", 3, 4) == iso_instant(later)
        assert tracking.read_cell("Users", 3, 2) == iso_instant(FIXED_NOW)

    def test_new_users_take_first_empty_row(self, trial_ledger, tracking):
        tracking.write_range("Users", 3, 1, [["zzzzgAAAA-not-a-token", "", "", ""]])
        trial_ledger.check("dave@example.com")
        assert tracking.read_cell("Users", 4, 1).startswith("dave")

    def test_full_window_reports_error(self, trial_ledger, tracking):
        tracking.write_range("Users", 3, 1, [[f"user{n}", "", "", ""] for n in range(4)])

        status = trial_ledger.check("erin@example.com")

        assert status.status is TrialState.ERROR
        assert tracking.read_cell("Users", 7, 1) == ""

    def test_missing_sheet(self, obfuscator, settings):
        ledger = TrialLedger(InMemorySheetBackend(), obfuscator, settings)
        with pytest.raises(NotFoundError):
            ledger.check("a@example.com")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
