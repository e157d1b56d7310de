"""
Versioned JSON documents stored in single control cells.

DESIGN DECISION: Every document carries an integer ``version`` and is
upgraded through an explicit chain of migrations on read:
1. Documents written before versioning existed are version 0
2. Each migration upgrades exactly one version
3. Documents newer than this code understands are rejected, never guessed at
"""

import datetime as dt
from typing import Any, Callable, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class VersionedDocument(BaseModel):
    """Base for a JSON document with an explicit schema version."""

    model_config = ConfigDict(extra="allow")

    SCHEMA_VERSION: ClassVar[int] = 1
    MIGRATIONS: ClassVar[dict[int, Callable[[Any], dict]]] = {}

    version: int = Field(default=1, ge=0)

    @classmethod
    def stored_version(cls, raw: Any) -> int:
        if isinstance(raw, dict) and isinstance(raw.get("version"), int):
            return raw["version"]
        return 0

    @classmethod
    def from_stored(cls, raw: Any) -> "VersionedDocument":
        """
        Upgrade a parsed cell value to the current schema.

        Raises:
            ValueError: If the stored version is newer than SCHEMA_VERSION
                or no migration exists for it
        """
        version = cls.stored_version(raw)
        if version > cls.SCHEMA_VERSION:
            raise ValueError(
                f"{cls.__name__} version {version} is newer than supported "
                f"version {cls.SCHEMA_VERSION}"
            )
        data = raw
        while version < cls.SCHEMA_VERSION:
            migrate = cls.MIGRATIONS.get(version)
            if migrate is None:
                raise ValueError(f"No migration for {cls.__name__} version {version}")
            data = migrate(data)
            version += 1
        document = cls.model_validate(data)
        document.version = cls.SCHEMA_VERSION
        return document

    def to_stored(self) -> dict:
        return self.model_dump(mode="json")


# =============================================================================
# SETTINGS (Dontedit!K8)
# =============================================================================

def _settings_v0_to_v1(raw: Any) -> dict:
    # Unversioned cells held either {"settings": {...}} or the bare settings map
    if isinstance(raw, dict) and isinstance(raw.get("settings"), dict):
        return {"settings": raw["settings"], "version": 1}
    return {"settings": raw if isinstance(raw, dict) else {}, "version": 1}


class SettingsDocument(VersionedDocument):
    """User preferences; the inner map is opaque to the store."""

    MIGRATIONS: ClassVar[dict[int, Callable[[Any], dict]]] = {0: _settings_v0_to_v1}

    settings: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# BUDGET (Dontedit!K10)
# =============================================================================

def _budget_v0_to_v1(raw: Any) -> dict:
    data = dict(raw) if isinstance(raw, dict) else {}
    data.setdefault("categories", [])
    data.setdefault("budgets", {})
    data["version"] = 1
    return data


def month_key(day: dt.date) -> str:
    """Budget month key, e.g. ``2025-07``."""
    return f"{day.year:04d}-{day.month:02d}"


def previous_month_key(day: dt.date) -> str:
    first = day.replace(day=1)
    return month_key(first - dt.timedelta(days=1))


class BudgetDocument(VersionedDocument):
    """
    Monthly budget amounts keyed by ``YYYY-MM``.

    Unknown top-level keys are preserved on round-trip.
    """

    MIGRATIONS: ClassVar[dict[int, Callable[[Any], dict]]] = {0: _budget_v0_to_v1}

    categories: list[Any] = Field(default_factory=list)
    budgets: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def carry_forward(self, today: dt.date) -> bool:
        """
        Copy last month's budget into the current month when the current
        month has none. Returns True if anything was copied.
        """
        current = month_key(today)
        if self.budgets.get(current):
            return False
        previous = self.budgets.get(previous_month_key(today))
        if not previous:
            return False
        self.budgets[current] = dict(previous)
        return True


# =============================================================================
# NET WORTH GOALS (Dontedit!K6)
# =============================================================================

def _goals_v0_to_v1(raw: Any) -> dict:
    if isinstance(raw, list):
        return {"goals": raw, "version": 1}
    if isinstance(raw, dict):
        return {"goals": raw.get("goals") or [], "version": 1}
    return {"goals": [], "version": 1}


class NetWorthGoalsDocument(VersionedDocument):
    """Net worth goals; legacy cells hold a bare list."""

    MIGRATIONS: ClassVar[dict[int, Callable[[Any], dict]]] = {0: _goals_v0_to_v1}

    goals: list[dict[str, Any]] = Field(default_factory=list)
