"""Scalar and enum extractors.

Each function reads one cell and either returns a typed value or raises
``FieldExtractionError``.  Empty cells return ``None`` unless the field is
required, in which case ``E_FIELD_MISSING_VALUE`` is raised.  Callers run
these through ``ErrorCollector.capture`` so a bad cell never aborts the
parse.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from typing import TypeVar

from ingestkit_forecast.errors import (
    CellTypeError,
    FieldError,
    FieldErrorKind,
    FieldExtractionError,
    ForecastErrorCode,
)
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.workbook import SpreadsheetAccessor

T = TypeVar("T")
V = TypeVar("V")


def normalize_label(label: str) -> str:
    """Collapse internal whitespace and case-fold a spreadsheet label."""
    return " ".join(label.split()).casefold()


def missing_value(position: SheetCellPosition, expected: str) -> FieldExtractionError:
    return FieldExtractionError(
        FieldError(
            code=ForecastErrorCode.E_FIELD_MISSING_VALUE,
            kind=FieldErrorKind.MISSING_VALUE,
            message=f"Missing {expected} at {position}",
            stage="extraction",
            field="",
            sheet=position.sheet,
            address=position.address,
            expected=expected,
            found="empty",
        )
    )


def _required(value: V | None, position: SheetCellPosition, expected: str, required: bool) -> V | None:
    if value is None and required:
        raise missing_value(position, expected)
    return value


def extract_text(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> str | None:
    return _required(accessor.as_text(position), position, "text", required)


def extract_number(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> float | int | None:
    return _required(accessor.as_number(position), position, "number", required)


def extract_integer(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> int | None:
    """Whole number; ``3.0`` is accepted, ``3.5`` is a type error."""
    value = accessor.as_number(position)
    if value is None:
        return _required(None, position, "whole number", required)
    if isinstance(value, float):
        if not value.is_integer():
            raise CellTypeError(
                sheet=position.sheet,
                address=position.address,
                expected="whole number",
                found="number",
                raw_value=str(value),
            )
        return int(value)
    return value


def extract_date(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> date | None:
    return _required(accessor.as_date(position), position, "date", required)


def extract_datetime(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> datetime | None:
    return _required(accessor.as_datetime(position), position, "date-time", required)


def extract_time(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> time | None:
    return _required(accessor.as_time(position), position, "time", required)


def extract_duration(
    accessor: SpreadsheetAccessor, position: SheetCellPosition, *, required: bool = True
) -> timedelta | None:
    return _required(accessor.as_duration(position), position, "duration", required)


def extract_flag(accessor: SpreadsheetAccessor, position: SheetCellPosition) -> bool:
    """Checkbox cell; an empty cell is unchecked."""
    return bool(accessor.as_bool(position))


def lookup_term(terms: Mapping[str, T], label: str, *, strict: bool = False) -> T | None:
    """Map a spreadsheet label to its canonical value, or ``None`` if unknown.

    Exact matches win.  Unless ``strict`` is set, labels are also compared
    after collapsing whitespace and case-folding, since editors routinely
    add stray spaces.
    """
    if label in terms:
        return terms[label]
    if strict:
        return None
    wanted = normalize_label(label)
    for key, value in terms.items():
        if normalize_label(key) == wanted:
            return value
    return None


def unknown_term(
    position: SheetCellPosition, term_name: str, label: str
) -> FieldExtractionError:
    return FieldExtractionError(
        FieldError(
            code=ForecastErrorCode.E_FIELD_UNKNOWN_TERM,
            kind=FieldErrorKind.UNKNOWN_TERM,
            message=f"Unknown {term_name} {label!r} at {position}",
            stage="extraction",
            field="",
            sheet=position.sheet,
            address=position.address,
            expected=term_name,
            found="text",
            raw_value=label,
        )
    )


def extract_term(
    accessor: SpreadsheetAccessor,
    position: SheetCellPosition,
    terms: Mapping[str, T],
    *,
    term_name: str,
    required: bool = True,
    strict: bool = False,
) -> T | None:
    """Read a label and map it through a term dictionary."""
    label = accessor.as_text(position)
    if label is None:
        return _required(None, position, term_name, required)
    value = lookup_term(terms, label, strict=strict)
    if value is None:
        raise unknown_term(position, term_name, label)
    return value
