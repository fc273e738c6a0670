"""ForecastBuilder: drives every extractor against one schema.

Every field is extracted even after earlier fields fail, then the
structural invariants in ``validation`` run on whatever extracted cleanly.
The result carries either a complete ``Forecast`` or the full error list,
never both.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, time

from ingestkit_forecast.config import ForecastParserConfig
from ingestkit_forecast.extractors import (
    ErrorCollector,
    ProblemDraft,
    extract_boundaries,
    extract_date,
    extract_datetime,
    extract_duration,
    extract_problems,
    extract_term,
    extract_text,
    extract_time,
    extract_translations,
)
from ingestkit_forecast.models import (
    AvalancheProblem,
    Forecast,
    Forecaster,
    ForecastParseResult,
    HazardRating,
    ParseStage,
)
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.schema import ForecastSchema, HazardRatingInput
from ingestkit_forecast.validation import (
    check_band_partition,
    check_hazard_ratings,
    check_problems,
)
from ingestkit_forecast.version import TemplateVersion
from ingestkit_forecast.workbook import SpreadsheetAccessor

logger = logging.getLogger("ingestkit_forecast")


class ForecastBuilder:
    """Assembles a ``Forecast`` from a spreadsheet and its resolved schema."""

    def __init__(self, config: ForecastParserConfig | None = None) -> None:
        self._config = config or ForecastParserConfig()

    def build(
        self,
        accessor: SpreadsheetAccessor,
        schema: ForecastSchema,
        template_version: TemplateVersion,
    ) -> ForecastParseResult:
        collector = ErrorCollector()
        strict = self._config.strict_terms

        # -- metadata ---------------------------------------------------------
        language = None
        if schema.language is not None:
            language = collector.capture(
                "language",
                extract_term,
                accessor,
                schema.language.position,
                schema.language.map,
                term_name="language",
                required=False,
                strict=strict,
            )
        area = collector.capture(
            "area",
            extract_term,
            accessor,
            schema.area.position,
            schema.area.map,
            term_name="area",
            strict=strict,
        )
        forecaster_name = collector.capture(
            "forecaster.name", extract_text, accessor, schema.forecaster.name
        )
        organisation = None
        if schema.forecaster.organisation is not None:
            organisation = collector.capture(
                "forecaster.organisation",
                extract_text,
                accessor,
                schema.forecaster.organisation,
                required=False,
            )
        issued = self._issue_time(accessor, schema, area, collector)
        valid_for = collector.capture("valid_for", extract_duration, accessor, schema.valid_for)

        # -- elevation bands and ratings ---------------------------------------
        bands = extract_boundaries(
            accessor, schema.elevation_bands, schema.elevation_band_boundaries, collector
        )
        ratings = {
            key: rating
            for key, spec in schema.hazard_ratings.items()
            if (rating := self._hazard_rating(accessor, schema, key, spec, collector)) is not None
        }

        # -- repeated blocks and free text -------------------------------------
        drafts = extract_problems(
            accessor, schema.avalanche_problems, schema.terms, collector, strict=strict
        )
        texts = {
            name: (
                extract_translations(accessor, block.translations, block.root, name, collector)
                if block is not None
                else {}
            )
            for name, block in schema.text_blocks().items()
        }

        # -- invariants ------------------------------------------------------------
        check_band_partition(schema.band_ids, bands, collector)
        check_hazard_ratings(schema.hazard_ratings, ratings, collector)
        kept = check_problems(
            drafts, schema.avalanche_problems, self._config.problem_policy, collector
        )

        common = {
            "template_version": str(template_version),
            "schema_name": schema.name,
            "warnings": collector.warnings,
        }
        if collector.has_errors:
            self._log_rejected(schema, collector)
            return ForecastParseResult(
                stage=ParseStage.REJECTED, errors=collector.errors, **common
            )

        forecast = Forecast(
            template_version=str(template_version),
            area=area,
            language=language,
            forecaster=Forecaster(name=forecaster_name, organisation=organisation),
            time=issued,
            valid_for=valid_for,
            elevation_bands={band_id: bands[band_id] for band_id in schema.band_ids},
            hazard_ratings=ratings,
            avalanche_problems=[_to_problem(draft) for draft in kept],
            **texts,
        )
        logger.info(
            "forecast.build.complete",
            extra={
                "schema_name": schema.name,
                "template_version": str(template_version),
                "avalanche_problems": len(forecast.avalanche_problems),
                "warning_count": len(collector.warnings),
            },
        )
        return ForecastParseResult(stage=ParseStage.PARSED, forecast=forecast, **common)

    # ------------------------------------------------------------------
    # Field groups
    # ------------------------------------------------------------------

    def _issue_time(
        self,
        accessor: SpreadsheetAccessor,
        schema: ForecastSchema,
        area: str | None,
        collector: ErrorCollector,
    ) -> datetime | None:
        """Issue date and time, localised to the area's time zone."""
        section = schema.time
        if section.time is None:
            issued = collector.capture("time", extract_datetime, accessor, section.date)
        else:
            day: date | None = collector.capture("time.date", extract_date, accessor, section.date)
            clock: time | None = collector.capture("time.time", extract_time, accessor, section.time)
            issued = datetime.combine(day, clock) if day is not None and clock is not None else None
        if issued is None or area is None:
            return None
        zone = schema.area_definitions[area].zone
        if issued.tzinfo is None:
            return issued.replace(tzinfo=zone)
        return issued.astimezone(zone)

    def _hazard_rating(
        self,
        accessor: SpreadsheetAccessor,
        schema: ForecastSchema,
        key: str,
        spec: HazardRatingInput,
        collector: ErrorCollector,
    ) -> HazardRating | None:
        path = f"hazard_ratings.{key}"
        terms = schema.terms

        def read(name: str, offset, dictionary: Mapping, term_name: str):
            if offset is None:
                return None
            position: SheetCellPosition = spec.root.offset(offset)
            return collector.capture(
                f"{path}.{name}",
                extract_term,
                accessor,
                position,
                dictionary,
                term_name=term_name,
                required=False,
                strict=self._config.strict_terms,
            )

        value = read("value", spec.value, terms.hazard_rating, "hazard rating")
        trend = read("trend", spec.trend, terms.trend, "trend")
        confidence = read("confidence", spec.confidence, terms.confidence, "confidence")
        if value is None or collector.failed(path):
            return None
        return HazardRating(value=value, trend=trend, confidence=confidence)

    def _log_rejected(self, schema: ForecastSchema, collector: ErrorCollector) -> None:
        extra: dict[str, object] = {
            "schema_name": schema.name,
            "error_count": len(collector.errors),
            "error_codes": sorted({error.code.value for error in collector.errors}),
        }
        if self._config.log_sample_data:
            extra["raw_values"] = [
                error.raw_value for error in collector.errors if error.raw_value is not None
            ]
        logger.info("forecast.build.rejected", extra=extra)


def _to_problem(draft: ProblemDraft) -> AvalancheProblem:
    return AvalancheProblem(
        kind=draft.kind,
        aspect_elevation=draft.aspect_elevation,
        sensitivity=draft.sensitivity,
        distribution=draft.distribution,
        size=draft.size,
        time_of_day=draft.time_of_day,
        trend=draft.trend,
        confidence=draft.confidence,
        description=draft.description,
    )
