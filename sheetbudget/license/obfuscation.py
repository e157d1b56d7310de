"""
Email obfuscation for the trial ledger.

The ledger is a shared spreadsheet, so addresses are never stored in the
clear. Each entry is the first four characters of the address (so a human
can eyeball the ledger) followed by a Fernet token of the full address.
Fernet tokens are randomised, so lookups decrypt and compare rather than
re-encrypting.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sheetbudget.audit import get_logger

logger = get_logger(__name__)

KDF_SALT = b"sheetbudget.trial-ledger.v1"
PREFIX_LENGTH = 4


def derive_key(secret: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=390_000,
        backend=default_backend(),
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


def normalise_email(email: str) -> str:
    return (email or "").strip().lower()


class EmailObfuscator:
    """Reversible obfuscation keyed by the configured secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("An encryption secret is required")
        self._fernet = Fernet(derive_key(secret))

    def obfuscate(self, email: str) -> str:
        email = normalise_email(email)
        token = self._fernet.encrypt(email.encode("utf-8")).decode("ascii")
        return email[:PREFIX_LENGTH] + token

    def reveal(self, stored: str, prefix_length: int = PREFIX_LENGTH) -> str:
        """
        Recover the address from a stored entry.

        Raises:
            InvalidToken: Wrong secret or corrupted entry
        """
        return self._fernet.decrypt(stored[prefix_length:].encode("ascii")).decode("utf-8")

    def matches(self, stored: str, email: str) -> bool:
        """True if the stored entry is this (normalised) address."""
        email = normalise_email(email)
        prefix = email[:PREFIX_LENGTH]
        if not stored or not stored.startswith(prefix):
            return False
        try:
            return self.reveal(stored, len(prefix)) == email
        except InvalidToken:
            logger.debug("ledger_entry_unreadable", prefix=stored[:PREFIX_LENGTH])
            return False
