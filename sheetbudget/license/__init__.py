"""Trial/license tracking."""

from sheetbudget.license.obfuscation import EmailObfuscator, derive_key, normalise_email
from sheetbudget.license.trial import TrialLedger, derive_status, parse_instant

__all__ = [
    "EmailObfuscator",
    "TrialLedger",
    "derive_key",
    "derive_status",
    "normalise_email",
    "parse_instant",
]
