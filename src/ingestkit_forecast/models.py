"""Pydantic v2 data models for ingestkit-forecast.

Defines the canonical domain enumerations and the ``Forecast`` aggregate
produced by the parser, plus the ``ForecastParseResult`` envelope that
carries either a forecast or the complete list of field errors.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer

from ingestkit_forecast.errors import FieldError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class HazardRatingValue(str, Enum):
    """Avalanche danger level."""

    NO_RATING = "no-rating"
    LOW = "low"
    MODERATE = "moderate"
    CONSIDERABLE = "considerable"
    HIGH = "high"
    EXTREME = "extreme"


class Trend(str, Enum):
    IMPROVING = "improving"
    NO_CHANGE = "no-change"
    DETERIORATING = "deteriorating"


class Confidence(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ProblemKind(str, Enum):
    """Avalanche problem type."""

    NEW_SNOW = "new-snow"
    WIND_SLAB = "wind-slab"
    PERSISTENT_SLAB = "persistent-slab"
    DEEP_SLAB = "deep-slab"
    LOOSE_WET = "loose-wet"
    LOOSE_DRY = "loose-dry"
    WET_SLAB = "wet-slab"
    GLIDE_SLAB = "glide-slab"
    CORNICE = "cornice"
    STORM_SLAB = "storm-slab"


class Sensitivity(str, Enum):
    """Sensitivity to triggers, least to most reactive."""

    UNREACTIVE = "unreactive"
    STUBBORN = "stubborn"
    REACTIVE = "reactive"
    TOUCHY = "touchy"


class Distribution(str, Enum):
    """Spatial distribution, least to most widespread."""

    ISOLATED = "isolated"
    SPECIFIC = "specific"
    WIDESPREAD = "widespread"


class TimeOfDay(str, Enum):
    ALL_DAY = "all-day"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class Aspect(str, Enum):
    """Compass aspect, declared in clockwise order from north."""

    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"
    NW = "nw"


ASPECT_ORDER: tuple[Aspect, ...] = tuple(Aspect)


class Probability(str, Enum):
    """Likelihood of triggering, derived from sensitivity and distribution."""

    UNLIKELY = "unlikely"
    POSSIBLE = "possible"
    LIKELY = "likely"
    VERY_LIKELY = "very-likely"

    @classmethod
    def calculate(cls, sensitivity: Sensitivity, distribution: Distribution) -> Probability:
        row = list(Sensitivity).index(sensitivity)
        column = list(Distribution).index(distribution)
        return _PROBABILITY_MATRIX[row][column]


_U, _P, _L, _VL = (
    Probability.UNLIKELY,
    Probability.POSSIBLE,
    Probability.LIKELY,
    Probability.VERY_LIKELY,
)

# Rows follow Sensitivity, columns follow Distribution.
_PROBABILITY_MATRIX: tuple[tuple[Probability, ...], ...] = (
    (_U, _U, _U),  # unreactive
    (_U, _P, _P),  # stubborn
    (_P, _P, _L),  # reactive
    (_P, _L, _VL),  # touchy
)


class ParseStage(str, Enum):
    """Stage reached by a parse (see ``ForecastSpreadsheetParser``)."""

    UNPARSED = "unparsed"
    VERSION_READ = "version_read"
    SCHEMA_RESOLVED = "schema_resolved"
    PARSED = "parsed"
    REJECTED = "rejected"


# ---------------------------------------------------------------------------
# Forecast aggregate
# ---------------------------------------------------------------------------

OVERALL = "overall"
"""Hazard rating key for the rating that applies to the whole area."""

LanguageTexts = dict[str, str]
"""Mapping from language tag (e.g. ``en-UK``) to text."""


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Forecaster(_Frozen):
    name: str
    organisation: str | None = None


class ElevationRange(_Frozen):
    """Elevation band bounds in metres; ``None`` means unbounded."""

    lower: int | None = None
    upper: int | None = None


class HazardRating(_Frozen):
    value: HazardRatingValue
    trend: Trend | None = None
    confidence: Confidence | None = None


class AvalancheProblem(_Frozen):
    """One avalanche problem of the forecast."""

    kind: ProblemKind
    aspect_elevation: dict[str, list[Aspect]] = Field(
        description="Enabled elevation bands mapped to affected aspects in compass order.",
    )
    sensitivity: Sensitivity
    distribution: Distribution
    size: int = Field(ge=1, le=5)
    time_of_day: TimeOfDay | None = None
    trend: Trend | None = None
    confidence: Confidence | None = None
    description: LanguageTexts = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def probability(self) -> Probability:
        return Probability.calculate(self.sensitivity, self.distribution)


class Forecast(_Frozen):
    """Strongly-typed avalanche forecast read from a spreadsheet."""

    template_version: str
    area: str
    language: str | None = None
    forecaster: Forecaster
    time: datetime = Field(description="Issue time, localised to the area's time zone.")
    valid_for: timedelta
    elevation_bands: dict[str, ElevationRange]
    hazard_ratings: dict[str, HazardRating]
    avalanche_problems: list[AvalancheProblem] = Field(default_factory=list)
    recent_observations: LanguageTexts = Field(default_factory=dict)
    forecast_changes: LanguageTexts = Field(default_factory=dict)
    weather_forecast: LanguageTexts = Field(default_factory=dict)
    description: LanguageTexts = Field(default_factory=dict)

    @field_serializer("time")
    def _serialize_time(self, value: datetime) -> str:
        return value.isoformat()

    @field_serializer("valid_for")
    def _serialize_valid_for(self, value: timedelta) -> str:
        return format_duration(value)

    @property
    def valid_until(self) -> datetime:
        return self.time + self.valid_for


def format_duration(value: timedelta) -> str:
    """Format a duration as ISO 8601 in hours, e.g. ``PT24H`` or ``PT1H30M``."""
    total = int(value.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{sign}PT"
    if hours or not (minutes or seconds):
        text += f"{hours}H"
    if minutes:
        text += f"{minutes}M"
    if seconds:
        text += f"{seconds}S"
    return text


# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------


class ForecastParseResult(BaseModel):
    """Outcome of parsing one spreadsheet.

    ``forecast`` is set only when ``errors`` is empty; there is never a
    partial forecast.  ``warnings`` never make a parse fail.
    """

    stage: ParseStage
    template_version: str | None = None
    schema_name: str | None = None
    forecast: Forecast | None = None
    errors: list[FieldError] = []
    warnings: list[FieldError] = []

    @property
    def ok(self) -> bool:
        return self.forecast is not None and not self.errors


__all__ = [
    "HazardRatingValue",
    "Trend",
    "Confidence",
    "ProblemKind",
    "Sensitivity",
    "Distribution",
    "TimeOfDay",
    "Aspect",
    "ASPECT_ORDER",
    "Probability",
    "ParseStage",
    "OVERALL",
    "LanguageTexts",
    "Forecaster",
    "ElevationRange",
    "HazardRating",
    "AvalancheProblem",
    "Forecast",
    "ForecastParseResult",
    "format_duration",
]
