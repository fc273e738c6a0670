"""ForecastSpreadsheetParser: version gate and entry point.

A parse moves through ``ParseStage`` states::

    unparsed -> version_read -> schema_resolved -> parsed | rejected

Reading the version and resolving its schema are fatal steps: without a
schema nothing can be extracted, so ``MissingVersionError`` and
``UnsupportedVersionError`` are raised.  Field problems found by the
builder are returned as data on a ``rejected`` result.
"""

from __future__ import annotations

import logging
import time

from ingestkit_forecast.builder import ForecastBuilder
from ingestkit_forecast.config import ForecastParserConfig
from ingestkit_forecast.errors import (
    FieldExtractionError,
    ForecastIngestException,
    MissingVersionError,
    WorkbookError,
)
from ingestkit_forecast.models import ForecastParseResult, ParseStage
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.registry import SchemaRegistry
from ingestkit_forecast.security import WorkbookScanner
from ingestkit_forecast.version import TemplateVersion
from ingestkit_forecast.workbook import SpreadsheetAccessor

logger = logging.getLogger("ingestkit_forecast")


class ForecastSpreadsheetParser:
    """Parses forecast workbooks against a shared, read-only schema registry.

    One parser may be used from several threads; every call to ``parse``
    opens its own ``SpreadsheetAccessor``.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        config: ForecastParserConfig | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or ForecastParserConfig()
        self._scanner = WorkbookScanner(self._config)
        self._builder = ForecastBuilder(self._config)

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def parse(self, data: bytes) -> ForecastParseResult:
        """Parse workbook bytes into a forecast or a list of field errors.

        Raises:
            WorkbookError: The bytes are not a readable workbook.
            MissingVersionError: No template version cell could be read.
            UnsupportedVersionError: No schema covers the template version.
        """
        t0 = time.monotonic()
        stage = ParseStage.UNPARSED
        try:
            scan_errors = self._scanner.scan(data)
            if scan_errors:
                first = scan_errors[0]
                raise WorkbookError(first.message, code=first.code)

            with SpreadsheetAccessor.from_bytes(data) as accessor:
                version = self.read_version(accessor)
                stage = ParseStage.VERSION_READ
                logger.info(
                    "forecast.parse.version_read",
                    extra={"template_version": str(version)},
                )

                schema = self._registry.resolve(version)
                stage = ParseStage.SCHEMA_RESOLVED
                logger.info(
                    "forecast.parse.schema_resolved",
                    extra={
                        "template_version": str(version),
                        "schema_name": schema.name,
                        "version_range": str(schema.version_range),
                    },
                )

                result = self._builder.build(accessor, schema, version)
        except ForecastIngestException as exc:
            logger.warning(
                "forecast.parse.failed",
                extra={
                    "error_code": exc.code.value,
                    "stage": stage.value,
                    "duration_ms": _elapsed_ms(t0),
                },
            )
            raise

        logger.info(
            "forecast.parse.%s",
            result.stage.value,
            extra={
                "template_version": result.template_version,
                "schema_name": result.schema_name,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
                "duration_ms": _elapsed_ms(t0),
            },
        )
        return result

    def read_version(self, accessor: SpreadsheetAccessor) -> TemplateVersion:
        """Read the template version from the first cell that holds one.

        ``config.version_cell`` is tried alone when set; otherwise every
        schema's version cell is tried, newest schema first.  Numbers are
        not versions: a spreadsheet tool stores ``0.3`` typed without an
        apostrophe as a float.
        """
        if self._config.version_cell is not None:
            candidates = [self._config.version_cell]
        else:
            candidates = self._registry.version_positions()

        for position in candidates:
            version = self._version_at(accessor, position)
            if version is not None:
                return version

        searched = [str(position) for position in candidates]
        raise MissingVersionError(
            "No template version found in the spreadsheet "
            f"(searched {', '.join(searched) or 'no cells'})",
            searched=searched,
        )

    def _version_at(
        self, accessor: SpreadsheetAccessor, position: SheetCellPosition
    ) -> TemplateVersion | None:
        try:
            value = accessor.cell(position)
        except FieldExtractionError:
            return None
        if not isinstance(value, str):
            if value is not None:
                logger.debug(
                    "forecast.parse.version_not_text",
                    extra={"cell": str(position), "found": type(value).__name__},
                )
            return None
        try:
            return TemplateVersion.parse(value)
        except ValueError:
            extra = {"cell": str(position)}
            if self._config.log_sample_data:
                extra["raw_value"] = value[:50]
            logger.debug("forecast.parse.version_unparsable", extra=extra)
            return None


def _elapsed_ms(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)


def create_default_parser(config: ForecastParserConfig | None = None) -> ForecastSpreadsheetParser:
    """Parser over ``config.schema_dir``, or the bundled schemas when unset."""
    config = config or ForecastParserConfig()
    if config.schema_dir is not None:
        registry = SchemaRegistry.from_directory(config.schema_dir)
    else:
        registry = SchemaRegistry.default()
    return ForecastSpreadsheetParser(registry, config)


def parse_forecast(
    data: bytes,
    registry: SchemaRegistry,
    config: ForecastParserConfig | None = None,
) -> ForecastParseResult:
    """Parse workbook bytes with ``registry``; see ``ForecastSpreadsheetParser.parse``."""
    return ForecastSpreadsheetParser(registry, config).parse(data)
