"""Tests for WorkbookScanner byte-level checks."""

from __future__ import annotations

import pytest

from ingestkit_forecast.config import ForecastParserConfig
from ingestkit_forecast.errors import ForecastErrorCode
from ingestkit_forecast.security import WorkbookScanner


@pytest.mark.unit
class TestWorkbookScanner:
    """Tests for workbook-level security scanning."""

    def test_valid_workbook_passes(self, sample_config, gudauri_bytes: bytes) -> None:
        assert WorkbookScanner(sample_config).scan(gudauri_bytes) == []

    def test_empty(self, sample_config) -> None:
        [error] = WorkbookScanner(sample_config).scan(b"")
        assert error.code is ForecastErrorCode.E_FORECAST_WORKBOOK_EMPTY
        assert error.stage == "security"

    def test_wrong_magic(self, sample_config) -> None:
        [error] = WorkbookScanner(sample_config).scan(b"%PDF-1.7\n")
        assert error.code is ForecastErrorCode.E_FORECAST_WORKBOOK_CORRUPT
        assert "%PDF" in error.message

    def test_legacy_xls_rejected(self, sample_config) -> None:
        ole2 = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 32
        [error] = WorkbookScanner(sample_config).scan(ole2)
        assert error.code is ForecastErrorCode.E_FORECAST_WORKBOOK_CORRUPT

    def test_size_checked_first(self) -> None:
        scanner = WorkbookScanner(ForecastParserConfig(max_file_size_mb=1))
        [error] = scanner.scan(b"x" * (1024 * 1024 + 1))
        assert error.code is ForecastErrorCode.E_FORECAST_FILE_TOO_LARGE

    def test_size_at_limit_passes(self) -> None:
        scanner = WorkbookScanner(ForecastParserConfig(max_file_size_mb=1))
        data = b"PK\x03\x04" + b"\x00" * (1024 * 1024 - 4)
        assert scanner.scan(data) == []
