"""Stable record ID generation and checks."""

import random
import re
import string
import time
from typing import Any

from sheetbudget.models.records import normalise_id

_ALPHABET = string.digits + string.ascii_lowercase
_NUMERIC_ID = re.compile(r"\d+")


def new_record_id(prefix: str) -> str:
    """Return ``<prefix><epoch-ms>-<9 base36 chars>``, e.g. ``ex-1719830400000-k3j9x0a1b``."""
    suffix = "".join(random.choices(_ALPHABET, k=9))
    return f"{prefix}{int(time.time() * 1000)}-{suffix}"


def is_numeric_id(value: Any) -> bool:
    """True for IDs made only of digits (left over from row-number keyed data)."""
    return bool(_NUMERIC_ID.fullmatch(normalise_id(value)))
