"""Declarative schema documents describing where forecast fields live.

A schema maps every semantic field of a ``Forecast`` to spreadsheet
coordinates for one range of template versions.  Documents are JSON; this
module validates their structure (pydantic) and their internal consistency
(band references, language tags, area definitions, time zones) so that a
broken document fails at load time instead of on a user's spreadsheet.
"""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ingestkit_forecast.models import (
    OVERALL,
    Aspect,
    Confidence,
    Distribution,
    HazardRatingValue,
    ProblemKind,
    Sensitivity,
    TimeOfDay,
    Trend,
)
from ingestkit_forecast.position import CellOffset, SheetCellPosition
from ingestkit_forecast.version import VersionRange

_LANGUAGE_TAG_RE = re.compile(r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})*$")


class _SchemaModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


class LanguageSection(_SchemaModel):
    """Cell holding the spreadsheet's primary language, by display name."""

    position: SheetCellPosition
    map: dict[str, str] = Field(
        description="Language name as shown in the spreadsheet -> language tag.",
    )


class AreaSection(_SchemaModel):
    position: SheetCellPosition
    map: dict[str, str] = Field(
        description="Area name as shown in the spreadsheet -> area identifier.",
    )


class AreaDefinition(_SchemaModel):
    time_zone: str

    @field_validator("time_zone")
    @classmethod
    def _valid_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(
                f"Unable to find time zone {value!r} in the IANA database"
            ) from exc
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)


class ForecasterSection(_SchemaModel):
    name: SheetCellPosition
    organisation: SheetCellPosition | None = None


class TimeSection(_SchemaModel):
    """Issue date and time of day.

    ``time`` may be omitted when the date cell already holds a date-time.
    """

    date: SheetCellPosition
    time: SheetCellPosition | None = None


class ElevationBandSpec(_SchemaModel):
    id: str = Field(min_length=1)
    upper: SheetCellPosition | None = None
    lower: SheetCellPosition | None = None


class ElevationBandBoundaries(_SchemaModel):
    """A single cell listing the boundaries between bands, e.g. ``2000m, 2600m``.

    Bands are listed from high to low unless ``reverse`` is set.
    """

    position: SheetCellPosition
    reverse: bool = False


class HazardRatingInput(_SchemaModel):
    """Hazard rating block: offsets are relative to ``root``."""

    root: SheetCellPosition
    value: CellOffset
    trend: CellOffset | None = None
    confidence: CellOffset | None = None


class TranslationCells(_SchemaModel):
    value: CellOffset
    enabled: CellOffset | None = None


class TranslationBlock(_SchemaModel):
    """Multi-language text: per-language value/enabled cells relative to ``root``."""

    root: SheetCellPosition
    translations: dict[str, TranslationCells]


class RelativeTranslationBlock(_SchemaModel):
    """Multi-language text inside a repeated block, relative to the block anchor."""

    offset: CellOffset = CellOffset()
    translations: dict[str, TranslationCells]


class AspectElevationCells(_SchemaModel):
    enabled: CellOffset
    aspects: CellOffset


_PROBLEM_CELLS = (
    "enabled",
    "kind",
    "sensitivity",
    "distribution",
    "size",
    "time_of_day",
    "trend",
    "confidence",
)


def _translation_cells(
    path: str, translation: TranslationCells, base: CellOffset
) -> dict[str, CellOffset]:
    cells = {f"{path}.value": base + translation.value}
    if translation.enabled is not None:
        cells[f"{path}.enabled"] = base + translation.enabled
    return cells


def _outside_sheet(root: SheetCellPosition, offset: CellOffset) -> bool:
    return (
        root.position.row + offset.rows < 0
        or root.position.column + offset.columns < 0
    )


class AvalancheProblemsSection(_SchemaModel):
    """Repeated avalanche problem blocks at ``root + i * stride``."""

    root: SheetCellPosition
    stride: CellOffset
    max_count: int = Field(ge=1, le=20)
    enabled: CellOffset
    kind: CellOffset
    sensitivity: CellOffset
    distribution: CellOffset
    size: CellOffset
    time_of_day: CellOffset | None = None
    trend: CellOffset | None = None
    confidence: CellOffset | None = None
    aspect_elevation: dict[str, AspectElevationCells]
    description: RelativeTranslationBlock | None = None

    @field_validator("stride")
    @classmethod
    def _non_zero_stride(cls, value: CellOffset) -> CellOffset:
        if value.is_zero:
            raise ValueError("stride must move to a new cell")
        return value

    def anchor(self, index: int) -> SheetCellPosition:
        return self.root.offset(self.stride.scaled(index))

    def block_cells(self) -> dict[str, CellOffset]:
        """Every cell of one block, relative to the block anchor."""
        cells = {
            name: offset
            for name in _PROBLEM_CELLS
            if (offset := getattr(self, name)) is not None
        }
        for band_id, band in self.aspect_elevation.items():
            cells[f"aspect_elevation.{band_id}.enabled"] = band.enabled
            cells[f"aspect_elevation.{band_id}.aspects"] = band.aspects
        if self.description is not None:
            for tag, translation in self.description.translations.items():
                cells.update(
                    _translation_cells(
                        f"description.{tag}", translation, self.description.offset
                    )
                )
        return cells


def _default_aspect_terms() -> dict[str, Aspect]:
    terms = {aspect.value.upper(): aspect for aspect in Aspect}
    terms.update({aspect.value: aspect for aspect in Aspect})
    return terms


class Terms(_SchemaModel):
    """Spreadsheet labels mapped to canonical enum tags."""

    hazard_rating: dict[str, HazardRatingValue]
    trend: dict[str, Trend] = {}
    confidence: dict[str, Confidence] = {}
    avalanche_problem_kind: dict[str, ProblemKind]
    sensitivity: dict[str, Sensitivity]
    distribution: dict[str, Distribution]
    time_of_day: dict[str, TimeOfDay] = {}
    aspect: dict[str, Aspect] = Field(default_factory=_default_aspect_terms)


# ---------------------------------------------------------------------------
# Schema document
# ---------------------------------------------------------------------------

_TEXT_BLOCKS = ("recent_observations", "forecast_changes", "weather_forecast", "description")


class ForecastSchema(_SchemaModel):
    """One schema document, immutable once loaded."""

    name: str = Field(min_length=1)
    template_versions: str = Field(
        description="Supported template versions: '0.3.3', '^0.3.0' or '>=0.3.0,<0.4.0'.",
    )
    template_version: SheetCellPosition
    language: LanguageSection | None = None
    languages: list[str] | None = None
    area: AreaSection
    area_definitions: dict[str, AreaDefinition]
    forecaster: ForecasterSection
    time: TimeSection
    valid_for: SheetCellPosition
    elevation_bands: list[ElevationBandSpec] = Field(min_length=1)
    elevation_band_boundaries: ElevationBandBoundaries | None = None
    hazard_ratings: dict[str, HazardRatingInput]
    avalanche_problems: AvalancheProblemsSection | None = None
    recent_observations: TranslationBlock | None = None
    forecast_changes: TranslationBlock | None = None
    weather_forecast: TranslationBlock | None = None
    description: TranslationBlock | None = None
    terms: Terms

    @field_validator("template_versions")
    @classmethod
    def _valid_range(cls, value: str) -> str:
        VersionRange.parse(value)
        return value

    @model_validator(mode="after")
    def _check_references(self) -> ForecastSchema:
        problems: list[str] = []
        band_ids = self.band_ids

        if len(set(band_ids)) != len(band_ids):
            problems.append(f"elevation band ids must be unique, got {band_ids}")

        for key in self.hazard_ratings:
            if key != OVERALL and key not in band_ids:
                problems.append(
                    f"hazard_ratings references unknown elevation band {key!r}"
                )

        if self.avalanche_problems is not None:
            for key in self.avalanche_problems.aspect_elevation:
                if key not in band_ids:
                    problems.append(
                        "avalanche_problems.aspect_elevation references unknown "
                        f"elevation band {key!r}"
                    )

        if self.elevation_band_boundaries is not None:
            for band in self.elevation_bands:
                if band.upper is not None or band.lower is not None:
                    problems.append(
                        f"elevation band {band.id!r} declares boundary cells but "
                        "elevation_band_boundaries is also set"
                    )
        else:
            for band in self.elevation_bands:
                if band.upper is None and band.lower is None:
                    problems.append(
                        f"elevation band {band.id!r} declares no boundary cells and "
                        "elevation_band_boundaries is not set"
                    )

        for area_id in self.area.map.values():
            if area_id not in self.area_definitions:
                problems.append(f"area {area_id!r} has no entry in area_definitions")

        problems.extend(self._offset_problems())

        recognised = self.recognised_languages
        for tag in sorted(recognised):
            if not _LANGUAGE_TAG_RE.match(tag):
                problems.append(f"{tag!r} is not a valid language tag")
        for path, block_tags in self._translation_tags():
            for tag in block_tags:
                if tag not in recognised:
                    problems.append(f"{path} uses unrecognised language tag {tag!r}")

        if problems:
            raise ValueError("; ".join(problems))
        return self

    # -- derived views -----------------------------------------------------

    @property
    def version_range(self) -> VersionRange:
        return VersionRange.parse(self.template_versions)

    @property
    def band_ids(self) -> list[str]:
        return [band.id for band in self.elevation_bands]

    @property
    def recognised_languages(self) -> set[str]:
        if self.languages is not None:
            return set(self.languages)
        if self.language is not None:
            return set(self.language.map.values())
        return set()

    def text_blocks(self) -> dict[str, TranslationBlock | None]:
        return {name: getattr(self, name) for name in _TEXT_BLOCKS}

    def _offset_problems(self) -> list[str]:
        """Relative cells that would resolve above row 1 or left of column A."""
        problems: list[str] = []
        for name, block in self.text_blocks().items():
            if block is None:
                continue
            for tag, translation in block.translations.items():
                for path, offset in _translation_cells(
                    f"{name}.{tag}", translation, CellOffset()
                ).items():
                    if _outside_sheet(block.root, offset):
                        problems.append(f"{path} resolves outside the sheet")
        for key, rating in self.hazard_ratings.items():
            for field in ("value", "trend", "confidence"):
                offset = getattr(rating, field)
                if offset is not None and _outside_sheet(rating.root, offset):
                    problems.append(f"hazard_ratings.{key}.{field} resolves outside the sheet")
        section = self.avalanche_problems
        if section is not None:
            cells = section.block_cells()
            # positions are linear in the block index, so the first and last
            # blocks bound every block in between
            for index in sorted({0, section.max_count - 1}):
                base = section.stride.scaled(index)
                for path, offset in cells.items():
                    if _outside_sheet(section.root, base + offset):
                        problems.append(
                            f"avalanche_problems block {index + 1} {path} "
                            "resolves outside the sheet"
                        )
        return problems

    def _translation_tags(self) -> list[tuple[str, list[str]]]:
        tags = [
            (name, list(block.translations))
            for name, block in self.text_blocks().items()
            if block is not None
        ]
        problems = self.avalanche_problems
        if problems is not None and problems.description is not None:
            tags.append(
                ("avalanche_problems.description", list(problems.description.translations))
            )
        if self.language is not None and self.languages is not None:
            tags.append(("language.map", list(self.language.map.values())))
        return tags
