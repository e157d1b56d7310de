"""
Categories

The category table is a fixed block of 30 slots in the control sheet. Each
slot ``n`` is exposed to the rest of the workbook as the named range
``zategory{n+1}``; expense and recurring rows reference their category
through that name so a rename shows up everywhere at once.
"""

from typing import Any, Iterable, Optional, Union

from sheetbudget.audit import get_logger
from sheetbudget.models.records import Category, INCOME_CATEGORY, is_blank, split_category_name
from sheetbudget.models.results import ClearOutcome, UpsertSummary
from sheetbudget.services.storage.interface import (
    NotFoundError,
    RecordValidationError,
    SheetBackend,
)
from sheetbudget.store.layouts import CATEGORY_LAYOUT
from sheetbudget.store.ledger import TimestampLedger
from sheetbudget.store.table import RecordStore

logger = get_logger(__name__)

NAMED_RANGE_PREFIX = "zategory"


def category_formula(category: Category) -> str:
    """The cell formula that references a category by its slot, e.g. ``=zategory3``."""
    slot = category.row_index - CATEGORY_LAYOUT.start_row
    return f"={NAMED_RANGE_PREFIX}{slot + 1}"


class CategoryStore:
    """Read and maintain the category table."""

    def __init__(self, backend: SheetBackend, ledger: Optional[TimestampLedger] = None):
        self.backend = backend
        self.ledger = ledger
        self.table = RecordStore(backend, CATEGORY_LAYOUT, ledger)

    def read_all(self) -> list[Category]:
        """
        Read every category in slot order.

        Categories without a stable ID are given one (their slot index, or
        the next unused number if that is taken) and the ID is written back.
        Display order defaults to slot + 1.
        """
        layout = CATEGORY_LAYOUT
        rows = self.table.scan()
        decoded = [
            (raw, layout.codec.decode(raw.cells, raw.row_index))
            for raw in rows
        ]
        decoded = [(raw, category) for raw, category in decoded if category is not None]

        used = {category.id for _, category in decoded if category.id}
        categories = []
        for raw, category in decoded:
            slot = raw.row_index - layout.start_row
            if not category.id:
                new_id = str(slot)
                while new_id in used:
                    new_id = str(int(new_id) + 1)
                used.add(new_id)
                self.backend.write_cell(layout.sheet, raw.row_index, layout.id_col, new_id)
                logger.info("category_id_assigned", full_name=category.full_name, category_id=new_id)
                category.id = new_id
            if category.display_order is None:
                category.display_order = slot + 1
            categories.append(category)
        return categories

    def payload(self, category: Category) -> dict[str, Any]:
        """Client-facing representation, including the reference formula."""
        data = category.model_dump(by_alias=True)
        data["formula"] = category_formula(category)
        return data

    def save(self, items: Iterable[Union[Category, dict]]) -> UpsertSummary:
        """
        Upsert categories.

        Raises:
            CapacityError: Not enough free slots; nothing is written
        """
        return self.table.upsert_batch(items)

    def clear(self, category_id: str) -> ClearOutcome:
        return self.table.clear_by_id(category_id)

    def _touch(self) -> None:
        if self.ledger is not None:
            self.ledger.touch_quietly(*CATEGORY_LAYOUT.datasets)

    def _by_id(self, categories: list[Category], category_id: str) -> Category:
        for category in categories:
            if category.id == str(category_id).strip():
                return category
        raise NotFoundError(f'Category "{category_id}" not found')

    def set_active(self, full_name: str, active: bool) -> Category:
        """
        Raises:
            NotFoundError: No category with this full name
        """
        for category in self.read_all():
            if category.full_name == full_name.strip():
                self.backend.write_cell(
                    CATEGORY_LAYOUT.sheet,
                    category.row_index,
                    CATEGORY_LAYOUT.col_of("active"),
                    bool(active),
                )
                category.active = bool(active)
                self._touch()
                logger.info("category_status_changed", full_name=category.full_name, active=category.active)
                return category
        raise NotFoundError(f'Category "{full_name}" not found')

    def rename(self, category_id: str, name: str, emoji: str) -> Category:
        """
        Give a category a new name and emoji.

        Raises:
            RecordValidationError: Blank name/emoji, or the name is taken
            NotFoundError: Unknown category ID
        """
        name = (name or "").strip()
        emoji = (emoji or "").strip()
        if not name:
            raise RecordValidationError("Category name is required")
        if not emoji:
            raise RecordValidationError("Category emoji is required")

        categories = self.read_all()
        target = self._by_id(categories, category_id)
        full_name = f"{name} {emoji}"
        for other in categories:
            if other.id == target.id:
                continue
            if other.full_name == full_name or other.name.lower() == name.lower():
                raise RecordValidationError(f'A category named "{other.full_name}" already exists')

        self.backend.write_cell(
            CATEGORY_LAYOUT.sheet,
            target.row_index,
            CATEGORY_LAYOUT.col_of("full_name"),
            full_name,
        )
        old_name = target.full_name
        target.full_name = full_name
        self._touch()
        logger.info("category_renamed", category_id=target.id, old=old_name, new=full_name)
        return target

    def update_display_order(self, updates: Iterable[dict]) -> int:
        """
        Apply ``[{"id": ..., "display_order": ...}]``; unknown IDs are ignored.

        Returns:
            Number of categories updated
        """
        by_id = {category.id: category for category in self.read_all()}
        updated = 0
        for update in updates:
            category = by_id.get(str(update.get("id", "")).strip())
            order = update.get("display_order", update.get("displayOrder"))
            if category is None or is_blank(order):
                continue
            self.backend.write_cell(
                CATEGORY_LAYOUT.sheet,
                category.row_index,
                CATEGORY_LAYOUT.col_of("display_order"),
                int(order),
            )
            updated += 1
        if updated:
            self._touch()
        logger.info("category_order_updated", updated=updated)
        return updated


class CategoryLookup:
    """
    Read-through cache of categories by name, for one request or batch.

    Loads the category table on first use; call invalidate() after
    anything that changes categories.
    """

    def __init__(self, store: CategoryStore):
        self._store = store
        self._categories: Optional[list[Category]] = None

    def _load(self) -> list[Category]:
        if self._categories is None:
            self._categories = self._store.read_all()
        return self._categories

    def invalidate(self) -> None:
        self._categories = None

    def get(self, name: str) -> Optional[Category]:
        """Find by full name, then by bare name (case-insensitive)."""
        wanted = (name or "").strip()
        categories = self._load()
        for category in categories:
            if category.full_name == wanted:
                return category
        bare = split_category_name(wanted)[0].lower()
        for category in categories:
            if category.name.lower() == bare or category.full_name.lower() == wanted.lower():
                return category
        return None

    def formula_for(self, name: str) -> str:
        """
        Resolve a category name to its reference formula.

        Raises:
            NotFoundError: Unknown category
        """
        if name == INCOME_CATEGORY:
            return name
        category = self.get(name)
        if category is None:
            raise NotFoundError(f'Category "{name}" not found')
        return category_formula(category)
