"""
Row Codec

Maps a fixed run of adjacent sheet columns onto a record model and back.

DESIGN DECISION: The codec is tolerant on read and strict on write.
1. Reading a row that is blank, lacks a required field, or holds a
   non-numeric/non-finite amount yields None; the caller counts it as skipped
2. Writing always produces exactly ``width`` cells aligned to the layout,
   with "" (or the column default) for absent optional values
3. All type checks are delegated to the pydantic record models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import ValidationError

from sheetbudget.audit import get_logger
from sheetbudget.models.records import (
    SheetRecord,
    format_day,
    format_month,
    is_blank,
)

logger = get_logger(__name__)

# Resolves a category name to the value written in its place (a formula)
CategoryResolver = Callable[[str], str]


class ColumnKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DAY = "day"
    MONTH = "month"
    BOOL = "bool"
    CATEGORY = "category"
    BLANK = "blank"  # always written empty


@dataclass(frozen=True)
class ColumnSpec:
    """One sheet column and the record field it carries."""
    name: str
    kind: ColumnKind = ColumnKind.TEXT
    default: Any = ""
    # Category values written verbatim instead of as a formula reference
    literals: tuple[str, ...] = ()

    def blank_value(self) -> Any:
        return self.default() if callable(self.default) else self.default


@dataclass(frozen=True)
class RowCodec:
    """
    Decode/encode rows for one record model.

    Args:
        model: The SheetRecord subclass rows decode into
        columns: Column specs in sheet order
        require_id: If True, a row with a blank ID decodes to None
        key_field: If set, a slot is vacant whenever this field is blank,
            whatever the other columns hold
    """
    model: type[SheetRecord]
    columns: tuple[ColumnSpec, ...]
    require_id: bool = True
    key_field: Optional[str] = None
    _offsets: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._offsets.update({spec.name: i for i, spec in enumerate(self.columns)})

    @property
    def width(self) -> int:
        return len(self.columns)

    def offset_of(self, field_name: str) -> int:
        """0-based position of a field within the row."""
        return self._offsets[field_name]

    @property
    def id_offset(self) -> int:
        return self.offset_of("id")

    def is_blank_row(self, raw_row: list[Any]) -> bool:
        # An unticked checkbox reads as False
        return all(
            is_blank(cell) or (spec.kind is ColumnKind.BOOL and cell is False)
            for spec, cell in zip(self.columns, raw_row)
        )

    def is_vacant(self, raw_row: list[Any]) -> bool:
        """True if the slot holds no record and can take a new one."""
        if self.key_field is not None:
            return is_blank(raw_row[self.offset_of(self.key_field)])
        return self.is_blank_row(raw_row)

    def decode(self, raw_row: list[Any], row_index: Optional[int] = None) -> Optional[SheetRecord]:
        """Turn raw cells into a record, or None if the row is unusable."""
        if self.is_blank_row(raw_row):
            return None

        values: dict[str, Any] = {}
        for spec, cell in zip(self.columns, raw_row):
            if spec.kind is ColumnKind.BLANK or is_blank(cell):
                continue
            values[spec.name] = cell

        if self.require_id and "id" not in values:
            logger.debug("row_skipped", model=self.model.__name__, row=row_index, reason="missing id")
            return None

        try:
            record = self.model.model_validate(values)
        except ValidationError as e:
            logger.debug(
                "row_skipped",
                model=self.model.__name__,
                row=row_index,
                reason=e.errors()[0]["msg"],
            )
            return None
        record.row_index = row_index
        return record

    def encode(
        self,
        record: SheetRecord,
        resolve_category: Optional[CategoryResolver] = None,
    ) -> list[Any]:
        """
        Turn a record into exactly ``width`` cells.

        Raises:
            NotFoundError: From ``resolve_category`` if a category is unknown
        """
        row = []
        for spec in self.columns:
            value = getattr(record, spec.name, None)
            row.append(self._encode_value(spec, value, resolve_category))
        return row

    @staticmethod
    def _encode_value(
        spec: ColumnSpec,
        value: Any,
        resolve_category: Optional[CategoryResolver],
    ) -> Any:
        if spec.kind is ColumnKind.BLANK:
            return ""
        if value is None or (isinstance(value, str) and value == ""):
            value = spec.blank_value()
            if is_blank(value):
                return ""
        if spec.kind is ColumnKind.DAY:
            return format_day(value)
        if spec.kind is ColumnKind.MONTH:
            return format_month(value)
        if spec.kind is ColumnKind.CATEGORY:
            if value in spec.literals or resolve_category is None:
                return value
            return resolve_category(value)
        return value
