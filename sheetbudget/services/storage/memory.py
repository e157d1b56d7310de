"""
In-memory Sheet Backend

Holds each worksheet as a grid of cells. Used by the test suite and for
working offline against a snapshot of a workbook.

Formulas of the form ``=someName`` are resolved through ``named_ranges`` on
read, mirroring what Google Sheets returns for a computed cell. Any other
formula is returned as its literal text.
"""

from typing import Any, Optional

from sheetbudget.services.storage.interface import NotFoundError, SheetBackend


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class InMemorySheetBackend(SheetBackend):
    """
    A workbook kept in Python lists.

    Args:
        sheets: Mapping of sheet name to rows (row 1 first). Sheets can be
            sparse; rows and cells are padded on demand.
        named_ranges: Mapping of range name to (sheet, row, col).
    """

    def __init__(
        self,
        sheets: Optional[dict[str, list[list[Any]]]] = None,
        named_ranges: Optional[dict[str, tuple[str, int, int]]] = None,
        title: str = "In-memory workbook",
    ):
        self._title = title
        self._sheets: dict[str, list[list[Any]]] = {
            name: [list(row) for row in rows]
            for name, rows in (sheets or {}).items()
        }
        self.named_ranges: dict[str, tuple[str, int, int]] = dict(named_ranges or {})
        # (sheet, row, col, num_rows, num_cols) of every write, in order
        self.write_log: list[tuple[str, int, int, int, int]] = []

    @property
    def title(self) -> str:
        return self._title

    def add_sheet(self, name: str) -> None:
        self._sheets.setdefault(name, [])

    def _grid(self, sheet: str) -> list[list[Any]]:
        try:
            return self._sheets[sheet]
        except KeyError:
            raise NotFoundError(f'Sheet "{sheet}" not found')

    def _raw(self, sheet: str, row: int, col: int) -> Any:
        grid = self._grid(sheet)
        if row - 1 >= len(grid):
            return ""
        cells = grid[row - 1]
        if col - 1 >= len(cells):
            return ""
        value = cells[col - 1]
        return "" if value is None else value

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("="):
            target = self.named_ranges.get(value[1:].strip())
            if target is not None:
                return self._raw(*target)
        return value

    def has_sheet(self, sheet: str) -> bool:
        return sheet in self._sheets

    def last_row(self, sheet: str) -> int:
        grid = self._grid(sheet)
        for index in range(len(grid), 0, -1):
            if any(not _is_blank(cell) for cell in grid[index - 1]):
                return index
        return 0

    def read_range(self, sheet, row, col, num_rows, num_cols):
        self._grid(sheet)
        return [
            [self._resolve(self._raw(sheet, r, c)) for c in range(col, col + num_cols)]
            for r in range(row, row + num_rows)
        ]

    def write_range(self, sheet, row, col, values):
        grid = self._grid(sheet)
        for offset, row_values in enumerate(values):
            r = row - 1 + offset
            while len(grid) <= r:
                grid.append([])
            cells = grid[r]
            needed = col - 1 + len(row_values)
            if len(cells) < needed:
                cells.extend([""] * (needed - len(cells)))
            for c, value in enumerate(row_values):
                cells[col - 1 + c] = value
        width = max((len(v) for v in values), default=0)
        self.write_log.append((sheet, row, col, len(values), width))

    def clear_range(self, sheet, row, col, num_rows, num_cols):
        self.write_range(sheet, row, col, [[""] * num_cols for _ in range(num_rows)])

    def raw_cell(self, sheet: str, row: int, col: int) -> Any:
        """Return what is stored in a cell, without formula resolution."""
        return self._raw(sheet, row, col)
