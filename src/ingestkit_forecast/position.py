"""Spreadsheet coordinates.

A1-style strings are parsed here, at the schema boundary, into typed
positions.  Rows and columns are zero-based internally; ``str()`` renders
them back to the A1 form users see in their spreadsheet tool.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

_A1_RE = re.compile(r"^([A-Za-z]+)([0-9]+)$")


def column_index(letters: str) -> int:
    """Convert column letters to a zero-based index (``A`` -> 0, ``AA`` -> 26)."""
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_letters(index: int) -> str:
    """Convert a zero-based column index to letters (26 -> ``AA``)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def parse_a1(value: str) -> tuple[int, int]:
    """Parse ``"B2"`` into ``(row, column)`` = ``(1, 1)``."""
    match = _A1_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid cell position {value!r}, expected e.g. 'B2'")
    row = int(match.group(2))
    if row < 1:
        raise ValueError(f"Invalid cell position {value!r}, rows start at 1")
    return row - 1, column_index(match.group(1))


class CellPosition(BaseModel):
    """Zero-based row/column of a cell."""

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=0)
    column: int = Field(ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_a1(cls, data: Any) -> Any:
        if isinstance(data, str):
            row, column = parse_a1(data)
            return {"row": row, "column": column}
        return data

    @model_serializer
    def _to_a1(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"{column_letters(self.column)}{self.row + 1}"

    def offset(self, offset: CellOffset) -> CellPosition:
        return CellPosition(row=self.row + offset.rows, column=self.column + offset.columns)


class CellOffset(BaseModel):
    """Relative offset from an anchor cell.

    Accepts an A1 string read relative to ``A1`` (``"C2"`` is one row down
    and two columns right), a ``[rows, columns]`` pair, or a mapping.
    """

    model_config = ConfigDict(frozen=True)

    rows: int = 0
    columns: int = 0

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, str):
            row, column = parse_a1(data)
            return {"rows": row, "columns": column}
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"Offset must be [rows, columns], got {data!r}")
            return {"rows": data[0], "columns": data[1]}
        return data

    def scaled(self, factor: int) -> CellOffset:
        return CellOffset(rows=self.rows * factor, columns=self.columns * factor)

    def __add__(self, other: CellOffset) -> CellOffset:
        return CellOffset(rows=self.rows + other.rows, columns=self.columns + other.columns)

    @property
    def is_zero(self) -> bool:
        return self.rows == 0 and self.columns == 0


class SheetCellPosition(BaseModel):
    """A cell on a named sheet, written ``Sheet!A1`` in schema documents."""

    model_config = ConfigDict(frozen=True)

    sheet: str = Field(min_length=1)
    position: CellPosition

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            parts = data.split("!")
            if len(parts) != 2 or not parts[0]:
                raise ValueError(
                    f"Invalid sheet cell position {data!r}, expected e.g. 'Form!B2'"
                )
            return {"sheet": parts[0], "position": parts[1]}
        return data

    @model_serializer
    def _to_string(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"{self.sheet}!{self.position}"

    @property
    def address(self) -> str:
        return str(self.position)

    def offset(self, offset: CellOffset) -> SheetCellPosition:
        return SheetCellPosition(sheet=self.sheet, position=self.position.offset(offset))


class Anchored(BaseModel):
    """A coordinate expressed as an anchor cell plus an offset."""

    model_config = ConfigDict(frozen=True)

    anchor: SheetCellPosition
    offset: CellOffset = CellOffset()

    def resolve(self) -> SheetCellPosition:
        return self.anchor.offset(self.offset)


Coordinate = SheetCellPosition | Anchored


def resolve(coordinate: Coordinate) -> SheetCellPosition:
    """Resolve either coordinate variant to an absolute cell."""
    if isinstance(coordinate, Anchored):
        return coordinate.resolve()
    return coordinate
