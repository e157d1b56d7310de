"""Tests for the category table and lookup."""

import pytest

from conftest import build_workbook, template_workbook
from sheetbudget.models import ClearStatus
from sheetbudget.services.storage import CapacityError, NotFoundError, RecordValidationError
from sheetbudget.store import CATEGORY_LAYOUT, CategoryLookup, CategoryStore, category_formula


@pytest.fixture
def categories(workbook, ledger) -> CategoryStore:
    return CategoryStore(workbook, ledger)


class TestReadAll:
    def test_reads_in_slot_order_with_parsed_names(self, categories):
        result = categories.read_all()

        assert [c.full_name for c in result] == ["Food 🍕", "Rent 🏠", "Travel ✈️"]
        assert result[0].name == "Food"
        assert result[0].emoji == "🍕"
        assert result[2].active is False
        assert category_formula(result[1]) == "=zategory2"

    def test_missing_ids_are_assigned_and_written_back(self):
        workbook = build_workbook([[True, "Food 🍕", "", ""], [True, "Rent 🏠", "", "0"]])
        store = CategoryStore(workbook)

        result = store.read_all()

        assert [c.id for c in result] == ["1", "0"]
        assert workbook.read_cell("Dontedit", 10, 15) == "1"

    def test_display_order_defaults_to_slot(self):
        workbook = build_workbook([[True, "Food 🍕", "", "0"], [True, "Rent 🏠", "", "1"]])
        result = CategoryStore(workbook).read_all()
        assert [c.display_order for c in result] == [1, 2]

    def test_payload_includes_formula(self, categories):
        payload = categories.payload(categories.read_all()[0])
        assert payload["fullName"] == "Food 🍕"
        assert payload["formula"] == "=zategory1"
        assert "row_index" not in payload


class TestMutations:
    def test_save_new_category_fills_free_slot(self, workbook, categories):
        summary = categories.save([{"fullName": "Gifts 🎁"}])

        assert summary.inserted == 1
        assert summary.slots == {"3": 13}
        assert workbook.read_cell("Dontedit", 13, 13) == "Gifts 🎁"

    def test_unticked_checkbox_slots_are_free(self):
        workbook = template_workbook()
        store = CategoryStore(workbook)

        summary = store.save([{"fullName": "Gym 💪"}])

        assert summary.slots == {"1": 11}
        assert [c.full_name for c in store.read_all()] == ["Food 🍕", "Gym 💪"]

    def test_template_fills_every_free_slot_then_refuses(self):
        store = CategoryStore(template_workbook())

        summary = store.save([{"fullName": f"Cat {n} 🏷️"} for n in range(29)])
        assert summary.inserted == 29

        with pytest.raises(CapacityError):
            store.save([{"fullName": "One more ➕"}])

    def test_generated_ids_skip_ids_in_use(self):
        """A new category never reuses an ID held by another slot."""
        workbook = build_workbook([[True, "Food 🍕", 1, "2"]])
        store = CategoryStore(workbook)

        store.save([{"fullName": "Gym 💪"}, {"fullName": "Pets 🐶"}])

        ids = [c.id for c in store.read_all()]
        assert ids == ["2", "1", "3"]
        assert len(set(ids)) == len(ids)

    def test_clearing_unknown_id_ignores_numeric_cells(self, workbook, categories):
        """Travel's display order is 3; clearing ID "3" must not touch it."""
        workbook.write_log.clear()

        outcome = categories.clear("3")

        assert outcome.status is ClearStatus.NOT_FOUND
        assert workbook.write_log == []
        assert [c.full_name for c in categories.read_all()] == ["Food 🍕", "Rent 🏠", "Travel ✈️"]

    def test_capacity_is_checked_before_writing(self, workbook, categories):
        workbook.write_log.clear()
        too_many = [{"fullName": f"Cat {n} 🏷️"} for n in range(28)]

        with pytest.raises(CapacityError):
            categories.save(too_many)

        assert workbook.write_log == []

    def test_set_active(self, workbook, categories):
        category = categories.set_active("Travel ✈️", True)

        assert category.active is True
        assert workbook.read_cell("Dontedit", 12, 12) is True
        assert workbook.read_cell("Dontedit", 11, 10) == "2025-07-15T12:00:00.000Z"

    def test_set_active_unknown(self, categories):
        with pytest.raises(NotFoundError):
            categories.set_active("Nope", True)

    def test_rename(self, workbook, categories):
        renamed = categories.rename("0", "Groceries", "🛒")

        assert renamed.full_name == "Groceries 🛒"
        assert workbook.read_cell("Dontedit", 10, 13) == "Groceries 🛒"

    @pytest.mark.parametrize("name,emoji", [("", "🛒"), ("Groceries", ""), ("  ", " ")])
    def test_rename_requires_name_and_emoji(self, categories, name, emoji):
        with pytest.raises(RecordValidationError):
            categories.rename("0", name, emoji)

    def test_rename_rejects_duplicate_name(self, categories):
        """Names are unique case-insensitively, whatever the emoji."""
        with pytest.raises(RecordValidationError):
            categories.rename("0", "rent", "🍕")

    def test_rename_unknown_id(self, categories):
        with pytest.raises(NotFoundError):
            categories.rename("99", "New", "✨")

    def test_update_display_order(self, workbook, categories):
        updated = categories.update_display_order([
            {"id": "0", "displayOrder": 3},
            {"id": "2", "display_order": 1},
            {"id": "missing", "displayOrder": 9},
        ])

        assert updated == 2
        assert workbook.read_cell("Dontedit", 10, 14) == 3
        assert workbook.read_cell("Dontedit", 12, 14) == 1

    def test_clear_frees_slot(self, workbook, categories):
        categories.clear("1")
        assert workbook.read_range("Dontedit", 11, CATEGORY_LAYOUT.start_col, 1, 4) == [[""] * 4]
        assert [c.id for c in categories.read_all()] == ["0", "2"]


class TestCategoryLookup:
    def test_resolves_full_and_bare_names(self, categories):
        lookup = CategoryLookup(categories)
        assert lookup.formula_for("Rent 🏠") == "=zategory2"
        assert lookup.formula_for("food") == "=zategory1"
        assert lookup.formula_for("Income 💵") == "Income 💵"

    def test_unknown_category(self, categories):
        with pytest.raises(NotFoundError):
            CategoryLookup(categories).formula_for("Unicorns")

    def test_loads_once_until_invalidated(self, workbook, categories):
        lookup = CategoryLookup(categories)
        assert lookup.get("Gifts") is None

        categories.save([{"fullName": "Gifts 🎁"}])
        assert lookup.get("Gifts") is None

        lookup.invalidate()
        assert lookup.get("Gifts").full_name == "Gifts 🎁"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
