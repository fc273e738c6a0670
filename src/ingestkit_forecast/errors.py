"""Normalized error codes and structured error models for ingestkit-forecast.

Fatal problems (unreadable workbook, missing or unsupported template
version, broken schema documents) are raised as ``ForecastIngestException``
subclasses.  Problems with individual cells are collected as ``FieldError``
data and returned together, so a single parse reports every malformed cell.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ForecastErrorCode(str, Enum):
    """Normalized error codes for the forecast spreadsheet parser.

    ``E_`` codes are errors and ``W_`` codes are warnings.  Every member's
    name equals its string value for stable metrics and alerting.
    """

    # Workbook errors (3)
    E_FORECAST_WORKBOOK_CORRUPT = "E_FORECAST_WORKBOOK_CORRUPT"
    E_FORECAST_WORKBOOK_EMPTY = "E_FORECAST_WORKBOOK_EMPTY"
    E_FORECAST_FILE_TOO_LARGE = "E_FORECAST_FILE_TOO_LARGE"

    # Version errors (2)
    E_FORECAST_VERSION_MISSING = "E_FORECAST_VERSION_MISSING"
    E_FORECAST_VERSION_UNSUPPORTED = "E_FORECAST_VERSION_UNSUPPORTED"

    # Schema errors (3)
    E_FORECAST_SCHEMA_INVALID = "E_FORECAST_SCHEMA_INVALID"
    E_FORECAST_SCHEMA_OVERLAP = "E_FORECAST_SCHEMA_OVERLAP"
    E_FORECAST_SCHEMA_NOT_FOUND = "E_FORECAST_SCHEMA_NOT_FOUND"

    # Field errors (6)
    E_FIELD_CELL_TYPE = "E_FIELD_CELL_TYPE"
    E_FIELD_UNKNOWN_TERM = "E_FIELD_UNKNOWN_TERM"
    E_FIELD_MISSING_VALUE = "E_FIELD_MISSING_VALUE"
    E_FIELD_MISSING_BOUNDARY = "E_FIELD_MISSING_BOUNDARY"
    E_FIELD_MISSING_SHEET = "E_FIELD_MISSING_SHEET"
    E_FIELD_INVALID_FORMAT = "E_FIELD_INVALID_FORMAT"

    # Structural invariants (5)
    E_INVARIANT_BAND_PARTITION = "E_INVARIANT_BAND_PARTITION"
    E_INVARIANT_HAZARD_RATING_MISSING = "E_INVARIANT_HAZARD_RATING_MISSING"
    E_INVARIANT_SIZE_OUT_OF_RANGE = "E_INVARIANT_SIZE_OUT_OF_RANGE"
    E_INVARIANT_ASPECTS_EMPTY = "E_INVARIANT_ASPECTS_EMPTY"
    E_INVARIANT_PROBLEM_NO_ELEVATION = "E_INVARIANT_PROBLEM_NO_ELEVATION"

    # Warnings (non-fatal) (1)
    W_PROBLEM_NO_ELEVATION = "W_PROBLEM_NO_ELEVATION"


class FieldErrorKind(str, Enum):
    """Broad category of a field-level problem."""

    CELL_TYPE = "cell_type"
    UNKNOWN_TERM = "unknown_term"
    MISSING_VALUE = "missing_value"
    MISSING_BOUNDARY = "missing_boundary"
    MISSING_SHEET = "missing_sheet"
    INVALID_FORMAT = "invalid_format"
    INVARIANT = "invariant"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ForecastIngestError(BaseModel):
    """Structured error with code, message, and pipeline context.

    Note: This is a Pydantic model (data structure), not a Python Exception.
    To raise errors, use ``ForecastIngestException`` which wraps this model
    and can be used with ``raise``/``except``.
    """

    code: ForecastErrorCode
    message: str
    stage: str | None = None
    recoverable: bool = False


class FieldError(ForecastIngestError):
    """A problem with one field of the spreadsheet.

    ``field`` is a human-readable path such as
    ``avalanche_problems[2].sensitivity``; ``sheet`` and ``address`` point at
    the offending cell when there is one, so the error list can be shown
    straight back to whoever edited the spreadsheet.
    """

    kind: FieldErrorKind
    field: str
    sheet: str | None = None
    address: str | None = Field(
        default=None,
        description="A1-style cell address, e.g. 'B12'.",
    )
    expected: str | None = None
    found: str | None = None
    raw_value: str | None = Field(
        default=None,
        description="String form of the offending cell value, if any.",
    )
    severity: Severity = Severity.ERROR
    recoverable: bool = True

    @property
    def location(self) -> str | None:
        if self.sheet is None or self.address is None:
            return None
        return f"{self.sheet}!{self.address}"


# ---------------------------------------------------------------------------
# Raisable exceptions
# ---------------------------------------------------------------------------


class ForecastIngestException(Exception):
    """Raisable exception wrapping a ForecastIngestError data model.

    Carries the structured ``ForecastIngestError`` as the ``.error``
    attribute for inspection and serialization.
    """

    def __init__(self, **kwargs: object) -> None:
        self.error = ForecastIngestError(**kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @property
    def code(self) -> ForecastErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class WorkbookError(ForecastIngestException):
    """The workbook bytes could not be read as a spreadsheet."""

    def __init__(
        self,
        message: str,
        code: ForecastErrorCode = ForecastErrorCode.E_FORECAST_WORKBOOK_CORRUPT,
    ) -> None:
        super().__init__(code=code, message=message, stage="workbook")


class MissingVersionError(ForecastIngestException):
    """No parsable template version was found in the spreadsheet."""

    def __init__(self, message: str, searched: list[str] | None = None) -> None:
        super().__init__(
            code=ForecastErrorCode.E_FORECAST_VERSION_MISSING,
            message=message,
            stage="version",
        )
        self.searched = searched or []


class UnsupportedVersionError(ForecastIngestException):
    """No loaded schema covers the spreadsheet's template version."""

    def __init__(self, found: str, supported_ranges: list[str]) -> None:
        supported = ", ".join(supported_ranges) or "none"
        super().__init__(
            code=ForecastErrorCode.E_FORECAST_VERSION_UNSUPPORTED,
            message=(
                f"Template version {found} is not supported "
                f"(supported: {supported})"
            ),
            stage="version",
        )
        self.found = found
        self.supported_ranges = supported_ranges


class SchemaLoadError(ForecastIngestException):
    """One or more schema documents are invalid.

    All problems found while loading are kept in ``errors`` so a broken
    configuration can be fixed in one go.
    """

    def __init__(
        self,
        errors: list[str],
        code: ForecastErrorCode = ForecastErrorCode.E_FORECAST_SCHEMA_INVALID,
    ) -> None:
        message = "Invalid forecast schema: " + "; ".join(errors)
        super().__init__(code=code, message=message, stage="schema_load")
        self.errors = errors


class FieldExtractionError(Exception):
    """Raised by accessors and scalar extractors for a single bad field.

    Never escapes the builder: the error collector turns it into a
    ``FieldError`` entry and carries on.
    """

    def __init__(self, error: FieldError) -> None:
        self.error = error
        super().__init__(error.message)


class CellTypeError(FieldExtractionError):
    """A cell holds a value of the wrong type."""

    def __init__(
        self,
        sheet: str,
        address: str,
        expected: str,
        found: str,
        raw_value: str | None = None,
        field: str = "",
    ) -> None:
        super().__init__(
            FieldError(
                code=ForecastErrorCode.E_FIELD_CELL_TYPE,
                kind=FieldErrorKind.CELL_TYPE,
                message=f"Expected {expected} at {sheet}!{address}, found {found}",
                stage="extraction",
                field=field,
                sheet=sheet,
                address=address,
                expected=expected,
                found=found,
                raw_value=raw_value,
            )
        )


class MissingSheetError(FieldExtractionError):
    """The workbook does not contain a sheet the schema refers to."""

    def __init__(self, sheet: str, address: str | None = None, field: str = "") -> None:
        super().__init__(
            FieldError(
                code=ForecastErrorCode.E_FIELD_MISSING_SHEET,
                kind=FieldErrorKind.MISSING_SHEET,
                message=f"The spreadsheet does not contain the sheet '{sheet}'",
                stage="extraction",
                field=field,
                sheet=sheet,
                address=address,
            )
        )
