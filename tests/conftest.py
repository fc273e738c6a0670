"""Shared test fixtures for ingestkit-forecast tests.

Provides an in-memory ``.xlsx`` builder (real openpyxl workbooks, no files
on disk), the cell contents of a complete Gudauri 0.3.3 forecast, and the
bundled schema registry.
"""

from __future__ import annotations

import copy
import io
import json
from collections.abc import Callable
from datetime import date, time
from importlib import resources
from typing import Any

import openpyxl
import pytest

from ingestkit_forecast.config import ForecastParserConfig
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.registry import SchemaRegistry
from ingestkit_forecast.schema import ForecastSchema
from ingestkit_forecast.version import TemplateVersion
from ingestkit_forecast.workbook import SpreadsheetAccessor

WorkbookFactory = Callable[..., bytes]


# ---------------------------------------------------------------------------
# Workbook builder
# ---------------------------------------------------------------------------


def _build_workbook(
    cells: dict[str, Any],
    sheet: str = "Form",
    merged: list[str] | None = None,
    extra_sheets: dict[str, dict[str, Any]] | None = None,
) -> bytes:
    """Write ``{address: value}`` into a fresh workbook and return its bytes.

    Values are written before ``merged`` ranges are merged, so only the
    top-left cell of each range keeps its value.
    """
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet
    for address, value in cells.items():
        ws[address] = value
    for cell_range in merged or []:
        ws.merge_cells(cell_range)
    for name, sheet_cells in (extra_sheets or {}).items():
        extra = wb.create_sheet(name)
        for address, value in sheet_cells.items():
            extra[address] = value
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def make_workbook() -> WorkbookFactory:
    """Factory fixture: ``make_workbook(cells, sheet=..., merged=[...])``."""
    return _build_workbook


@pytest.fixture()
def make_accessor(make_workbook: WorkbookFactory):
    """Factory fixture returning a ``SpreadsheetAccessor`` over built cells."""
    opened: list[SpreadsheetAccessor] = []

    def _make(cells: dict[str, Any], **kwargs: Any) -> SpreadsheetAccessor:
        accessor = SpreadsheetAccessor.from_bytes(make_workbook(cells, **kwargs))
        opened.append(accessor)
        return accessor

    yield _make
    for accessor in opened:
        accessor.close()


def pos(text: str) -> SheetCellPosition:
    return SheetCellPosition.model_validate(text)


@pytest.fixture()
def cell() -> Callable[[str], SheetCellPosition]:
    """Parse a ``Sheet!A1`` string into a position."""
    return pos


# ---------------------------------------------------------------------------
# Gudauri 0.3.3 forecast
# ---------------------------------------------------------------------------

GUDAURI_0_3_3: dict[str, Any] = {
    # metadata
    "A1": "Template version",
    "B1": "0.3.3",
    "A2": "Language",
    "B2": "English",
    "A3": "Area",
    "B3": "Gudauri",
    "A4": "Forecaster",
    "B4": "Duty Forecaster",
    "B5": "Gudauri Avalanche Centre",
    "A6": "Issued",
    "B6": date(2024, 2, 14),
    "C6": time(17, 0),
    "A7": "Valid for (hours)",
    "B7": 24,
    # elevation bands
    "A10": "High Alpine",
    "C10": 2600,
    "A11": "Alpine",
    "C11": 2000,
    "D11": 2600,
    "A12": "Sub Alpine",
    "D12": 2000,
    # hazard ratings
    "A15": "Overall",
    "B15": "Moderate 2",
    "C15": "No Change",
    "D15": "Moderate",
    "A16": "High Alpine",
    "B16": "Moderate 2",
    "A17": "Alpine",
    "B17": "Moderate 2",
    "A18": "Sub Alpine",
    "B18": "Low 1",
    # avalanche problem 1
    "B21": True,
    "B22": "Loose Wet",
    "B23": "Reactive",
    "B24": "Specific",
    "B25": 2,
    "B26": "Afternoon",
    "B27": "Deteriorating",
    "B28": "Moderate",
    "B29": False,
    "B30": True,
    "C30": "E, SE, S",
    "B31": True,
    "C31": "SE,S,SW",
    "E21": True,
    "E22": "Wet loose avalanches on sun-exposed slopes after midday.",
    "F21": False,
    # avalanche problem 2
    "B33": True,
    "B34": "Deep Slab",
    "B35": "Stubborn",
    "B36": "Isolated",
    "B37": 3,
    "B38": "All Day",
    "B39": "No Change",
    "B40": "Low",
    "B41": True,
    "C41": "N, NE, E, NW",
    "B42": True,
    "C42": "11000001",
    "B43": False,
    "E33": True,
    "E34": "A deep persistent weak layer remains near the ground.",
    # avalanche problem 3
    "B45": True,
    "B46": "Wind Slab",
    "B47": "Touchy",
    "B48": "Widespread",
    "B49": 2,
    "B51": "Improving",
    "B53": True,
    "C53": "N,NE,E,SE,S,SW,W,NW",
    "B54": True,
    "C54": "NE, E",
    "B55": False,
    # avalanche problem 4 (unused)
    "B57": False,
    # multi-language text
    "B70": "Several natural wet loose releases on southerly aspects.",
    "C70": True,
    "B71": "რამდენიმე ბუნებრივი ზვავი სამხრეთ ფერდობებზე.",
    "C71": True,
    "B73": "Hazard unchanged since yesterday.",
    "C73": True,
    "B74": "Untranslated draft",
    "C74": False,
    "B76": "Clear skies, freezing level rising to 2800m.",
    "C76": True,
    "B79": "Moderate avalanche danger at all elevations.",
    "C79": True,
    "B80": "ზომიერი ზვავსაშიშროება ყველა სიმაღლეზე.",
    "C80": True,
}


@pytest.fixture()
def gudauri_cells() -> dict[str, Any]:
    """Cell contents of a valid 0.3.3 Gudauri forecast (a fresh copy per test)."""
    return dict(GUDAURI_0_3_3)


@pytest.fixture()
def gudauri_bytes(make_workbook: WorkbookFactory, gudauri_cells: dict[str, Any]) -> bytes:
    return make_workbook(gudauri_cells)


# ---------------------------------------------------------------------------
# Schemas and config
# ---------------------------------------------------------------------------


def _bundled_document(name: str) -> dict[str, Any]:
    text = (resources.files("ingestkit_forecast") / "schemas" / name).read_text(encoding="utf-8")
    return json.loads(text)


@pytest.fixture(scope="session")
def bundled_document() -> dict[str, Any]:
    return _bundled_document("0.3.0.json")


@pytest.fixture()
def schema_document(bundled_document: dict[str, Any]) -> dict[str, Any]:
    """The bundled 0.3 schema document as a mutable dict."""
    return copy.deepcopy(bundled_document)


@pytest.fixture(scope="session")
def registry() -> SchemaRegistry:
    return SchemaRegistry.default()


@pytest.fixture()
def gudauri_schema(registry: SchemaRegistry) -> ForecastSchema:
    return registry.resolve(TemplateVersion.parse("0.3.3"))


@pytest.fixture()
def sample_config() -> ForecastParserConfig:
    """Return a ForecastParserConfig with all defaults."""
    return ForecastParserConfig()
