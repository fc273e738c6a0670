"""Tests for field extractors -- scalar, multi-language, repeated records, boundaries."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from ingestkit_forecast.errors import (
    FieldErrorKind,
    FieldExtractionError,
    ForecastErrorCode,
)
from ingestkit_forecast.extractors import (
    ErrorCollector,
    extract_aspects,
    extract_boundaries,
    extract_datetime,
    extract_duration,
    extract_flag,
    extract_integer,
    extract_problems,
    extract_term,
    extract_text,
    extract_translations,
    lookup_term,
    parse_aspects,
    read_elevation,
)
from ingestkit_forecast.models import (
    ASPECT_ORDER,
    Aspect,
    ElevationRange,
    HazardRatingValue,
    ProblemKind,
    Sensitivity,
)
from ingestkit_forecast.schema import (
    ElevationBandBoundaries,
    ElevationBandSpec,
    ForecastSchema,
    TranslationCells,
)

HAZARD_TERMS = {"Low 1": HazardRatingValue.LOW, "Moderate 2": HazardRatingValue.MODERATE}


# ---------------------------------------------------------------------------
# Scalar extractors
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestScalarExtractors:
    def test_required_text_missing(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        with pytest.raises(FieldExtractionError) as exc_info:
            extract_text(accessor, cell("Form!B4"))
        error = exc_info.value.error
        assert error.code is ForecastErrorCode.E_FIELD_MISSING_VALUE
        assert error.kind is FieldErrorKind.MISSING_VALUE
        assert error.location == "Form!B4"

    def test_optional_text_missing(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        assert extract_text(accessor, cell("Form!B4"), required=False) is None

    def test_integer(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": 3, "A2": 3.0, "A3": 3.5})
        assert extract_integer(accessor, cell("Form!A1")) == 3
        assert extract_integer(accessor, cell("Form!A2")) == 3
        with pytest.raises(FieldExtractionError) as exc_info:
            extract_integer(accessor, cell("Form!A3"))
        assert exc_info.value.error.expected == "whole number"

    def test_duration(self, make_accessor, cell) -> None:
        accessor = make_accessor({"B7": 24})
        assert extract_duration(accessor, cell("Form!B7")) == timedelta(hours=24)

    def test_missing_datetime_names_date_time(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        with pytest.raises(FieldExtractionError) as exc_info:
            extract_datetime(accessor, cell("Form!B6"))
        assert exc_info.value.error.expected == "date-time"

    def test_flag_empty_is_unchecked(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": True, "A3": "x"})
        assert extract_flag(accessor, cell("Form!A1")) is True
        assert extract_flag(accessor, cell("Form!A2")) is False


@pytest.mark.unit
class TestTermLookup:
    def test_exact(self) -> None:
        assert lookup_term(HAZARD_TERMS, "Low 1") is HazardRatingValue.LOW

    @pytest.mark.parametrize("label", ["low 1", "  Low   1 ", "LOW 1"])
    def test_normalised(self, label: str) -> None:
        assert lookup_term(HAZARD_TERMS, label) is HazardRatingValue.LOW

    def test_strict_disables_normalisation(self) -> None:
        assert lookup_term(HAZARD_TERMS, "low 1", strict=True) is None
        assert lookup_term(HAZARD_TERMS, "Low 1", strict=True) is HazardRatingValue.LOW

    def test_unknown_label_is_reported_with_raw_value(self, make_accessor, cell) -> None:
        accessor = make_accessor({"B15": "Medium"})
        with pytest.raises(FieldExtractionError) as exc_info:
            extract_term(accessor, cell("Form!B15"), HAZARD_TERMS, term_name="hazard rating")
        error = exc_info.value.error
        assert error.code is ForecastErrorCode.E_FIELD_UNKNOWN_TERM
        assert error.kind is FieldErrorKind.UNKNOWN_TERM
        assert error.raw_value == "Medium"
        assert error.address == "B15"

    def test_numeric_label_widens(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": 2})
        terms = {"2": HazardRatingValue.MODERATE}
        assert extract_term(accessor, cell("Form!A1"), terms, term_name="hazard rating") is HazardRatingValue.MODERATE

    def test_optional_term_empty(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        assert extract_term(accessor, cell("Form!A2"), HAZARD_TERMS, term_name="trend", required=False) is None


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestErrorCollector:
    def test_capture_records_path_and_continues(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        collector = ErrorCollector()
        assert collector.capture("forecaster.name", extract_text, accessor, cell("Form!B4")) is None
        assert collector.capture("area", extract_text, accessor, cell("Form!A1")) == "x"
        assert [error.field for error in collector.errors] == ["forecaster.name"]
        assert collector.has_errors
        assert collector.failed("forecaster")
        assert collector.failed("forecaster.name")
        assert not collector.failed("forecast")
        assert not collector.failed("area")


# ---------------------------------------------------------------------------
# Multi-language text
# ---------------------------------------------------------------------------

TRANSLATIONS = {
    "en-UK": TranslationCells.model_validate({"value": "B1", "enabled": "C1"}),
    "ka-GE": TranslationCells.model_validate({"value": "B2", "enabled": "C2"}),
}


@pytest.mark.unit
class TestTranslations:
    def test_disabled_language_omitted(self, make_accessor, cell) -> None:
        accessor = make_accessor(
            {"B70": "Wind slabs on lee slopes.", "C70": True, "B71": "ქარის ფილა", "C71": False}
        )
        collector = ErrorCollector()
        texts = extract_translations(accessor, TRANSLATIONS, cell("Form!A70"), "weather_forecast", collector)
        assert texts == {"en-UK": "Wind slabs on lee slopes."}
        assert not collector.has_errors

    def test_blank_value_omitted_even_if_enabled(self, make_accessor, cell) -> None:
        accessor = make_accessor({"B70": "Text", "C70": True, "B71": "   ", "C71": True})
        texts = extract_translations(accessor, TRANSLATIONS, cell("Form!A70"), "x", ErrorCollector())
        assert texts == {"en-UK": "Text"}

    def test_no_enabled_flag_means_value_decides(self, make_accessor, cell) -> None:
        accessor = make_accessor({"B1": "Only English"})
        translations = {"en-UK": TranslationCells.model_validate({"value": "B1"})}
        texts = extract_translations(accessor, translations, cell("Form!A1"), "x", ErrorCollector())
        assert texts == {"en-UK": "Only English"}

    def test_absent_block_is_empty(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        assert extract_translations(accessor, None, cell("Form!A1"), "x", ErrorCollector()) == {}

    def test_bad_enabled_flag_is_reported(self, make_accessor, cell) -> None:
        accessor = make_accessor({"B70": "Text", "C70": "maybe"})
        collector = ErrorCollector()
        texts = extract_translations(accessor, TRANSLATIONS, cell("Form!A70"), "description", collector)
        assert texts == {}
        assert [error.field for error in collector.errors] == ["description.en-UK"]
        assert collector.errors[0].code is ForecastErrorCode.E_FIELD_CELL_TYPE


# ---------------------------------------------------------------------------
# Aspects
# ---------------------------------------------------------------------------

ASPECT_TERMS = {aspect.value.upper(): aspect for aspect in Aspect}


@pytest.mark.unit
class TestAspects:
    def test_labels_in_compass_order(self) -> None:
        assert parse_aspects("S, N, NW, N", ASPECT_TERMS) == [Aspect.N, Aspect.S, Aspect.NW]

    def test_flag_string(self) -> None:
        assert parse_aspects("11000001", ASPECT_TERMS) == [Aspect.N, Aspect.NE, Aspect.NW]
        assert parse_aspects("11111111", ASPECT_TERMS) == list(ASPECT_ORDER)
        assert parse_aspects("00000000", ASPECT_TERMS) == []

    def test_unknown_label(self) -> None:
        assert parse_aspects("N, NNE", ASPECT_TERMS) is None

    def test_numeric_flags_keep_leading_zeros(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": 1000001})
        assert extract_aspects(accessor, cell("Form!A1"), ASPECT_TERMS) == [Aspect.NE, Aspect.NW]

    def test_empty_cell_is_no_aspects(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "x"})
        assert extract_aspects(accessor, cell("Form!A2"), ASPECT_TERMS) == []

    def test_unknown_label_raises_unknown_term(self, make_accessor, cell) -> None:
        accessor = make_accessor({"A1": "North"})
        with pytest.raises(FieldExtractionError) as exc_info:
            extract_aspects(accessor, cell("Form!A1"), ASPECT_TERMS)
        assert exc_info.value.error.code is ForecastErrorCode.E_FIELD_UNKNOWN_TERM
        assert exc_info.value.error.raw_value == "North"


# ---------------------------------------------------------------------------
# Repeated records
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRepeatedProblems:
    def test_three_of_four_blocks(self, make_accessor, gudauri_cells: dict[str, Any], gudauri_schema: ForecastSchema) -> None:
        accessor = make_accessor(gudauri_cells)
        collector = ErrorCollector()
        drafts = extract_problems(
            accessor, gudauri_schema.avalanche_problems, gudauri_schema.terms, collector
        )
        assert not collector.has_errors
        assert [draft.index for draft in drafts] == [0, 1, 2]
        assert [draft.kind for draft in drafts] == [
            ProblemKind.LOOSE_WET,
            ProblemKind.DEEP_SLAB,
            ProblemKind.WIND_SLAB,
        ]
        assert [draft.size for draft in drafts] == [2, 3, 2]
        assert drafts[0].aspect_elevation == {
            "alpine": [Aspect.E, Aspect.SE, Aspect.S],
            "sub-alpine": [Aspect.SE, Aspect.S, Aspect.SW],
        }
        assert drafts[0].description == {
            "en-UK": "Wet loose avalanches on sun-exposed slopes after midday."
        }

    def test_iteration_stops_past_used_range(self, make_accessor, gudauri_cells: dict[str, Any], gudauri_schema: ForecastSchema) -> None:
        cells = {address: value for address, value in gudauri_cells.items() if int(address[1:]) < 45}
        accessor = make_accessor(cells)
        collector = ErrorCollector()
        drafts = extract_problems(
            accessor, gudauri_schema.avalanche_problems, gudauri_schema.terms, collector
        )
        assert len(drafts) == 2
        assert not collector.has_errors

    def test_field_paths_are_indexed(self, make_accessor, gudauri_cells: dict[str, Any], gudauri_schema: ForecastSchema) -> None:
        gudauri_cells["B47"] = "Twitchy"
        accessor = make_accessor(gudauri_cells)
        collector = ErrorCollector()
        drafts = extract_problems(
            accessor, gudauri_schema.avalanche_problems, gudauri_schema.terms, collector
        )
        assert len(drafts) == 3
        assert drafts[2].sensitivity is None
        assert drafts[1].sensitivity is Sensitivity.STUBBORN
        assert [error.field for error in collector.errors] == ["avalanche_problems[2].sensitivity"]
        assert collector.errors[0].location == "Form!B47"

    def test_missing_sheet_reported_once(self, make_accessor, gudauri_schema: ForecastSchema) -> None:
        accessor = make_accessor({"A1": "x"}, sheet="Other")
        collector = ErrorCollector()
        assert extract_problems(
            accessor, gudauri_schema.avalanche_problems, gudauri_schema.terms, collector
        ) == []
        assert len(collector.errors) == 1
        assert collector.errors[0].code is ForecastErrorCode.E_FIELD_MISSING_SHEET


# ---------------------------------------------------------------------------
# Boundaries
# ---------------------------------------------------------------------------

BANDS = [
    ElevationBandSpec.model_validate({"id": "high-alpine", "lower": "Form!C10"}),
    ElevationBandSpec.model_validate({"id": "alpine", "lower": "Form!C11", "upper": "Form!D11"}),
    ElevationBandSpec.model_validate({"id": "sub-alpine", "upper": "Form!D12"}),
]
LIST_BANDS = [ElevationBandSpec(id=band_id) for band_id in ("high-alpine", "alpine", "sub-alpine")]


@pytest.mark.unit
class TestBoundaries:
    def test_band_cells(self, make_accessor) -> None:
        accessor = make_accessor({"C10": 2600, "C11": 2000, "D11": "2600m", "D12": 2000})
        collector = ErrorCollector()
        ranges = extract_boundaries(accessor, BANDS, None, collector)
        assert ranges == {
            "high-alpine": ElevationRange(lower=2600),
            "alpine": ElevationRange(lower=2000, upper=2600),
            "sub-alpine": ElevationRange(upper=2000),
        }
        assert not collector.has_errors

    def test_band_without_bounds_is_missing_boundary(self, make_accessor) -> None:
        accessor = make_accessor({"C10": 2600, "D12": 2000})
        collector = ErrorCollector()
        ranges = extract_boundaries(accessor, BANDS, None, collector)
        assert set(ranges) == {"high-alpine", "sub-alpine"}
        assert len(collector.errors) == 1
        error = collector.errors[0]
        assert error.code is ForecastErrorCode.E_FIELD_MISSING_BOUNDARY
        assert error.field == "elevation_bands.alpine"

    def test_non_numeric_bound(self, make_accessor, cell) -> None:
        accessor = make_accessor({"C10": "high"})
        with pytest.raises(FieldExtractionError):
            read_elevation(accessor, cell("Form!C10"))

    def test_list_cell_high_to_low(self, make_accessor) -> None:
        accessor = make_accessor({"B8": "2000m, 2600m"})
        boundaries = ElevationBandBoundaries.model_validate({"position": "Form!B8"})
        ranges = extract_boundaries(accessor, LIST_BANDS, boundaries, ErrorCollector())
        assert ranges == {
            "high-alpine": ElevationRange(lower=2600),
            "alpine": ElevationRange(lower=2000, upper=2600),
            "sub-alpine": ElevationRange(upper=2000),
        }

    def test_list_cell_reversed(self, make_accessor) -> None:
        accessor = make_accessor({"B8": "2000,2600"})
        boundaries = ElevationBandBoundaries.model_validate({"position": "Form!B8", "reverse": True})
        ranges = extract_boundaries(accessor, LIST_BANDS, boundaries, ErrorCollector())
        assert ranges["high-alpine"] == ElevationRange(upper=2000)
        assert ranges["sub-alpine"] == ElevationRange(lower=2600)

    def test_list_cell_wrong_count(self, make_accessor) -> None:
        accessor = make_accessor({"B8": "2000m"})
        boundaries = ElevationBandBoundaries.model_validate({"position": "Form!B8"})
        collector = ErrorCollector()
        assert extract_boundaries(accessor, LIST_BANDS, boundaries, collector) == {}
        assert [error.code for error in collector.errors] == [ForecastErrorCode.E_FIELD_INVALID_FORMAT]
