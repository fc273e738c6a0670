"""Byte-level checks on workbook input before it reaches openpyxl.

Rejects oversized, empty, and non-OOXML payloads with a clear error
instead of a zipfile traceback from deep inside the workbook loader.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ingestkit_forecast.errors import ForecastErrorCode, ForecastIngestError

if TYPE_CHECKING:
    from ingestkit_forecast.config import ForecastParserConfig

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_XLSX_MAGIC = b"PK\x03\x04"  # ZIP/OOXML container


# ---------------------------------------------------------------------------
# WorkbookScanner
# ---------------------------------------------------------------------------


class WorkbookScanner:
    """Validates size, emptiness, and magic bytes of workbook bytes.

    All checks are fail-fast: the first fatal error stops further checks.
    """

    def __init__(self, config: ForecastParserConfig) -> None:
        self._config = config

    def scan(self, data: bytes) -> list[ForecastIngestError]:
        """Run all checks on ``data``.

        Returns a list of errors (empty if all checks pass).
        """
        errors: list[ForecastIngestError] = []

        # 1. Size
        max_bytes = self._config.max_file_size_mb * 1024 * 1024
        if len(data) > max_bytes:
            errors.append(
                ForecastIngestError(
                    code=ForecastErrorCode.E_FORECAST_FILE_TOO_LARGE,
                    message=(
                        f"Workbook size {len(data)} bytes exceeds limit of "
                        f"{self._config.max_file_size_mb} MB"
                    ),
                    stage="security",
                )
            )
            return errors

        # 2. Empty payload
        if not data:
            errors.append(
                ForecastIngestError(
                    code=ForecastErrorCode.E_FORECAST_WORKBOOK_EMPTY,
                    message="Workbook is empty (0 bytes)",
                    stage="security",
                )
            )
            return errors

        # 3. Magic bytes
        if data[: len(_XLSX_MAGIC)] != _XLSX_MAGIC:
            errors.append(
                ForecastIngestError(
                    code=ForecastErrorCode.E_FORECAST_WORKBOOK_CORRUPT,
                    message=(
                        "Not an .xlsx workbook. "
                        f"Expected {_XLSX_MAGIC!r}, got {data[:len(_XLSX_MAGIC)]!r}"
                    ),
                    stage="security",
                )
            )
            return errors

        return errors
