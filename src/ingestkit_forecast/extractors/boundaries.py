"""Elevation band boundary extractor.

Bounds come either from per-band ``upper``/``lower`` cells or from a single
list cell such as ``2000m, 2600m``.  Bands whose bounds extracted cleanly
are returned; every problem is recorded on the collector under
``elevation_bands.<band_id>``.
"""

from __future__ import annotations

import re

from ingestkit_forecast.errors import (
    CellTypeError,
    FieldError,
    FieldErrorKind,
    ForecastErrorCode,
)
from ingestkit_forecast.extractors._collector import ErrorCollector
from ingestkit_forecast.models import ElevationRange
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.schema import ElevationBandBoundaries, ElevationBandSpec
from ingestkit_forecast.workbook import SpreadsheetAccessor, describe

_METRES_RE = re.compile(r"^(-?\d+(?:\.0+)?)\s*m?$", re.IGNORECASE)


def _parse_metres(text: str) -> int | None:
    match = _METRES_RE.match(text.strip())
    if match is None:
        return None
    return int(float(match.group(1)))


def read_elevation(accessor: SpreadsheetAccessor, position: SheetCellPosition) -> int | None:
    """Elevation in metres from a number or ``2000m``-style text; empty is ``None``."""
    value = accessor.cell(position)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if float(value).is_integer():
            return int(value)
    elif isinstance(value, str):
        metres = _parse_metres(value)
        if metres is not None:
            return metres
    raise CellTypeError(
        sheet=position.sheet,
        address=position.address,
        expected="elevation in metres",
        found=describe(value),
        raw_value=str(value)[:200],
    )


def _missing_boundary(band_id: str, position: SheetCellPosition | None) -> FieldError:
    return FieldError(
        code=ForecastErrorCode.E_FIELD_MISSING_BOUNDARY,
        kind=FieldErrorKind.MISSING_BOUNDARY,
        message=f"Elevation band {band_id!r} has neither an upper nor a lower bound",
        stage="extraction",
        field=f"elevation_bands.{band_id}",
        sheet=position.sheet if position is not None else None,
        address=position.address if position is not None else None,
        expected="upper or lower bound",
        found="empty",
    )


def extract_band_cells(
    accessor: SpreadsheetAccessor,
    bands: list[ElevationBandSpec],
    collector: ErrorCollector,
) -> dict[str, ElevationRange]:
    """Bounds read from each band's own ``upper``/``lower`` cells."""
    ranges: dict[str, ElevationRange] = {}
    for band in bands:
        path = f"elevation_bands.{band.id}"
        lower = upper = None
        if band.lower is not None:
            lower = collector.capture(f"{path}.lower", read_elevation, accessor, band.lower)
        if band.upper is not None:
            upper = collector.capture(f"{path}.upper", read_elevation, accessor, band.upper)
        if collector.failed(path):
            continue
        if lower is None and upper is None:
            collector.add(_missing_boundary(band.id, band.lower or band.upper))
            continue
        ranges[band.id] = ElevationRange(lower=lower, upper=upper)
    return ranges


def extract_boundary_list(
    accessor: SpreadsheetAccessor,
    bands: list[ElevationBandSpec],
    boundaries: ElevationBandBoundaries,
    collector: ErrorCollector,
) -> dict[str, ElevationRange]:
    """Bounds read from one comma-separated list cell.

    The list is written low to high and holds ``len(bands) - 1`` values.
    Bands are declared high to low unless ``boundaries.reverse`` is set.
    """
    position = boundaries.position
    path = "elevation_bands"
    text = collector.capture(path, accessor.as_text, position)
    if collector.failed(path):
        return {}
    if text is None:
        for band in bands:
            collector.add(_missing_boundary(band.id, position))
        return {}

    parts = [part for part in re.split(r"[,;]", text) if part.strip()]
    values = [_parse_metres(part) for part in parts]
    if any(value is None for value in values) or len(values) != len(bands) - 1:
        collector.add(
            FieldError(
                code=ForecastErrorCode.E_FIELD_INVALID_FORMAT,
                kind=FieldErrorKind.INVALID_FORMAT,
                message=(
                    f"Expected {len(bands) - 1} comma separated elevations "
                    f"at {position}, found {text!r}"
                ),
                stage="extraction",
                field=path,
                sheet=position.sheet,
                address=position.address,
                expected=f"{len(bands) - 1} elevations, e.g. '2000m, 2600m'",
                found="text",
                raw_value=text[:200],
            )
        )
        return {}

    low_to_high = list(bands) if boundaries.reverse else list(reversed(bands))
    edges: list[int | None] = [None, *values, None]
    ranges = {
        band.id: ElevationRange(lower=edges[i], upper=edges[i + 1])
        for i, band in enumerate(low_to_high)
    }
    return {band.id: ranges[band.id] for band in bands}


def extract_boundaries(
    accessor: SpreadsheetAccessor,
    bands: list[ElevationBandSpec],
    boundaries: ElevationBandBoundaries | None,
    collector: ErrorCollector,
) -> dict[str, ElevationRange]:
    if boundaries is not None:
        return extract_boundary_list(accessor, bands, boundaries, collector)
    return extract_band_cells(accessor, bands, collector)
