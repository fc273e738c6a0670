"""ingestkit-forecast -- Schema-driven avalanche forecast spreadsheet parser.

Public API exports for schema loading, parsing, and the forecast model.
"""

from ingestkit_forecast.builder import ForecastBuilder
from ingestkit_forecast.config import EmptyProblemPolicy, ForecastParserConfig
from ingestkit_forecast.errors import (
    CellTypeError,
    FieldError,
    FieldErrorKind,
    FieldExtractionError,
    ForecastErrorCode,
    ForecastIngestError,
    ForecastIngestException,
    MissingSheetError,
    MissingVersionError,
    SchemaLoadError,
    Severity,
    UnsupportedVersionError,
    WorkbookError,
)
from ingestkit_forecast.models import (
    OVERALL,
    Aspect,
    AvalancheProblem,
    Confidence,
    Distribution,
    ElevationRange,
    Forecast,
    Forecaster,
    ForecastParseResult,
    HazardRating,
    HazardRatingValue,
    ParseStage,
    Probability,
    ProblemKind,
    Sensitivity,
    TimeOfDay,
    Trend,
)
from ingestkit_forecast.parser import (
    ForecastSpreadsheetParser,
    create_default_parser,
    parse_forecast,
)
from ingestkit_forecast.position import CellOffset, CellPosition, SheetCellPosition
from ingestkit_forecast.registry import SchemaRegistry
from ingestkit_forecast.schema import ForecastSchema
from ingestkit_forecast.security import WorkbookScanner
from ingestkit_forecast.version import TemplateVersion, VersionRange
from ingestkit_forecast.workbook import SpreadsheetAccessor

__all__: list[str] = [
    # Errors and config
    "ForecastErrorCode",
    "ForecastIngestError",
    "ForecastIngestException",
    "FieldError",
    "FieldErrorKind",
    "Severity",
    "WorkbookError",
    "MissingVersionError",
    "UnsupportedVersionError",
    "SchemaLoadError",
    "FieldExtractionError",
    "CellTypeError",
    "MissingSheetError",
    "ForecastParserConfig",
    "EmptyProblemPolicy",
    # Enums
    "HazardRatingValue",
    "Trend",
    "Confidence",
    "ProblemKind",
    "Sensitivity",
    "Distribution",
    "TimeOfDay",
    "Aspect",
    "Probability",
    "ParseStage",
    # Forecast model
    "OVERALL",
    "Forecast",
    "Forecaster",
    "ElevationRange",
    "HazardRating",
    "AvalancheProblem",
    "ForecastParseResult",
    # Coordinates and versions
    "CellPosition",
    "CellOffset",
    "SheetCellPosition",
    "TemplateVersion",
    "VersionRange",
    # Schema and pipeline
    "ForecastSchema",
    "SchemaRegistry",
    "SpreadsheetAccessor",
    "WorkbookScanner",
    "ForecastBuilder",
    "ForecastSpreadsheetParser",
    "create_default_parser",
    "parse_forecast",
]
