"""SpreadsheetAccessor: read-only, typed view over an openpyxl workbook.

Resolves merged ranges to their top-left anchor cell and exposes strict
coercion helpers that raise ``CellTypeError`` instead of guessing.  Each
parse gets its own accessor; accessors are never shared.
"""

from __future__ import annotations

import io
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Union

import openpyxl
from openpyxl.worksheet.worksheet import Worksheet

from ingestkit_forecast.errors import CellTypeError, MissingSheetError, WorkbookError
from ingestkit_forecast.position import (
    Anchored,
    CellOffset,
    Coordinate,
    SheetCellPosition,
    resolve,
)

logger = logging.getLogger("ingestkit_forecast")

CellValue = Union[str, int, float, bool, datetime, date, time, timedelta, None]

_BOOL_TEXT = {"true": True, "false": False}


def describe(value: Any) -> str:
    """Name the spreadsheet type of a cell value for error messages."""
    if value is None:
        return "empty"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    if isinstance(value, time):
        return "time"
    if isinstance(value, timedelta):
        return "duration"
    if isinstance(value, str):
        return "text"
    return type(value).__name__


def _raw(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)[:200]


class SpreadsheetAccessor:
    """Coordinate and anchor-relative lookups over a parsed workbook."""

    def __init__(self, workbook: openpyxl.Workbook) -> None:
        self._workbook = workbook
        self._merged: dict[str, dict[tuple[int, int], tuple[int, int]]] = {}

    @classmethod
    def from_bytes(cls, data: bytes) -> SpreadsheetAccessor:
        """Parse ``.xlsx`` bytes.

        Opens the workbook with ``data_only=True`` to read cached formula
        results and ``read_only=False`` to access merged cell information.

        Raises:
            WorkbookError: If the bytes are not a readable workbook.
        """
        try:
            workbook = openpyxl.load_workbook(
                io.BytesIO(data), read_only=False, data_only=True
            )
        except Exception as exc:
            raise WorkbookError(f"Failed to open forecast workbook: {exc}") from exc
        logger.debug(
            "forecast.workbook.opened",
            extra={"sheets": len(workbook.sheetnames), "size_bytes": len(data)},
        )
        return cls(workbook)

    def close(self) -> None:
        self._workbook.close()

    def __enter__(self) -> SpreadsheetAccessor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Raw lookups
    # ------------------------------------------------------------------

    @property
    def sheet_names(self) -> list[str]:
        return list(self._workbook.sheetnames)

    def has_sheet(self, name: str) -> bool:
        return name in self._workbook.sheetnames

    def _sheet(self, position: SheetCellPosition) -> Worksheet:
        if position.sheet not in self._workbook.sheetnames:
            raise MissingSheetError(position.sheet, position.address)
        return self._workbook[position.sheet]

    def _merged_index(self, ws: Worksheet) -> dict[tuple[int, int], tuple[int, int]]:
        """Map every 1-based (row, column) inside a merged range to its anchor."""
        index = self._merged.get(ws.title)
        if index is None:
            index = {}
            for merged_range in ws.merged_cells.ranges:
                anchor = (merged_range.min_row, merged_range.min_col)
                for row in range(merged_range.min_row, merged_range.max_row + 1):
                    for column in range(merged_range.min_col, merged_range.max_col + 1):
                        index[(row, column)] = anchor
            self._merged[ws.title] = index
        return index

    def in_bounds(self, position: SheetCellPosition) -> bool:
        """True if ``position`` lies inside the sheet's used range."""
        if not self.has_sheet(position.sheet):
            return False
        ws = self._workbook[position.sheet]
        return position.position.row < ws.max_row and position.position.column < ws.max_column

    def cell(self, position: Coordinate) -> CellValue:
        """Value at ``position``; merged cells read from their anchor.

        Empty and whitespace-only cells are returned as ``None``.

        Raises:
            MissingSheetError: If the sheet does not exist.
        """
        position = resolve(position)
        ws = self._sheet(position)
        row = position.position.row + 1
        column = position.position.column + 1
        row, column = self._merged_index(ws).get((row, column), (row, column))
        if row > ws.max_row or column > ws.max_column:
            return None
        value = ws.cell(row=row, column=column).value
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def cell_relative(self, anchor: SheetCellPosition, offset: CellOffset) -> CellValue:
        return self.cell(Anchored(anchor=anchor, offset=offset))

    # ------------------------------------------------------------------
    # Typed coercion
    # ------------------------------------------------------------------

    def _type_error(self, position: SheetCellPosition, expected: str, value: Any) -> CellTypeError:
        return CellTypeError(
            sheet=position.sheet,
            address=position.address,
            expected=expected,
            found=describe(value),
            raw_value=_raw(value),
        )

    def as_text(self, position: SheetCellPosition) -> str | None:
        """Text value; numbers widen to their plain decimal form."""
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, bool):
            raise self._type_error(position, "text", value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else str(value)
        raise self._type_error(position, "text", value)

    def as_number(self, position: SheetCellPosition) -> float | int | None:
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        raise self._type_error(position, "number", value)

    def as_date(self, position: SheetCellPosition) -> date | None:
        """Date value; date-times narrow to their date."""
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        raise self._type_error(position, "date", value)

    def as_datetime(self, position: SheetCellPosition) -> datetime | None:
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
        raise self._type_error(position, "date-time", value)

    def as_time(self, position: SheetCellPosition) -> time | None:
        """Time of day; date-times narrow to their time."""
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.time()
        if isinstance(value, time):
            return value
        raise self._type_error(position, "time", value)

    def as_bool(self, position: SheetCellPosition) -> bool | None:
        """Checkbox value; ``TRUE``/``FALSE`` text from exports is accepted."""
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _BOOL_TEXT:
            return _BOOL_TEXT[value.strip().lower()]
        raise self._type_error(position, "boolean", value)

    def as_duration(self, position: SheetCellPosition) -> timedelta | None:
        """Duration; plain numbers are hours."""
        value = self.cell(position)
        if value is None:
            return None
        if isinstance(value, timedelta):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return timedelta(hours=value)
        raise self._type_error(position, "duration", value)
