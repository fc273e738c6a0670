"""Structural invariants checked after field extraction.

Each check only looks at values that extracted cleanly and never re-reports
a field that already carries a field-level error, so one bad cell yields
one error.
"""

from __future__ import annotations

import logging

from ingestkit_forecast.config import EmptyProblemPolicy
from ingestkit_forecast.errors import ForecastErrorCode, Severity
from ingestkit_forecast.extractors import ErrorCollector, ProblemDraft
from ingestkit_forecast.models import ElevationRange, HazardRating
from ingestkit_forecast.schema import AvalancheProblemsSection, HazardRatingInput

logger = logging.getLogger("ingestkit_forecast")

MIN_SIZE = 1
MAX_SIZE = 5


# ---------------------------------------------------------------------------
# Elevation bands
# ---------------------------------------------------------------------------


def _lower_key(item: tuple[str, ElevationRange]) -> tuple[int, int]:
    lower = item[1].lower
    return (0, 0) if lower is None else (1, lower)


def check_band_partition(
    band_ids: list[str],
    ranges: dict[str, ElevationRange],
    collector: ErrorCollector,
) -> None:
    """Bands must form a contiguous, non-overlapping partition.

    Sorted by lower bound, only the lowest band may lack a lower bound and
    only the highest may lack an upper bound; adjacent bands share an edge.
    Skipped entirely if any band failed to extract.
    """
    if collector.failed("elevation_bands") or any(b not in ranges for b in band_ids):
        return

    ordered = sorted(((b, ranges[b]) for b in band_ids), key=_lower_key)
    last = len(ordered) - 1
    for i, (band_id, band) in enumerate(ordered):
        path = f"elevation_bands.{band_id}"
        if band.lower is None and i != 0:
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_BAND_PARTITION,
                path,
                f"Only the lowest elevation band may be unbounded below, {band_id!r} is not the lowest",
            )
        if band.upper is None and i != last:
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_BAND_PARTITION,
                path,
                f"Only the highest elevation band may be unbounded above, {band_id!r} is not the highest",
            )
        if band.lower is not None and band.upper is not None and band.lower >= band.upper:
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_BAND_PARTITION,
                path,
                f"Elevation band {band_id!r} lower bound {band.lower}m is not below "
                f"its upper bound {band.upper}m",
            )
        if i == 0:
            continue
        below_id, below = ordered[i - 1]
        if below.upper is None or band.lower is None:
            continue
        if below.upper < band.lower:
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_BAND_PARTITION,
                path,
                f"Gap between elevation bands {below_id!r} (upper {below.upper}m) "
                f"and {band_id!r} (lower {band.lower}m)",
            )
        elif below.upper > band.lower:
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_BAND_PARTITION,
                path,
                f"Elevation bands {below_id!r} (upper {below.upper}m) and "
                f"{band_id!r} (lower {band.lower}m) overlap",
            )


# ---------------------------------------------------------------------------
# Hazard ratings
# ---------------------------------------------------------------------------


def check_hazard_ratings(
    inputs: dict[str, HazardRatingInput],
    ratings: dict[str, HazardRating],
    collector: ErrorCollector,
) -> None:
    """Every hazard rating the schema declares must have a value."""
    for key, spec in inputs.items():
        path = f"hazard_ratings.{key}"
        if key in ratings or collector.failed(path):
            continue
        position = spec.root.offset(spec.value)
        collector.invariant(
            ForecastErrorCode.E_INVARIANT_HAZARD_RATING_MISSING,
            path,
            f"Hazard rating {key!r} has no value at {position}",
            sheet=position.sheet,
            address=position.address,
        )


# ---------------------------------------------------------------------------
# Avalanche problems
# ---------------------------------------------------------------------------


def check_problems(
    drafts: list[ProblemDraft],
    section: AvalancheProblemsSection | None,
    policy: EmptyProblemPolicy,
    collector: ErrorCollector,
) -> list[ProblemDraft]:
    """Check size and aspect/elevation rules; returns the problems to keep.

    A problem with no enabled elevation band is dropped with a warning or
    rejected, depending on ``policy``.
    """
    if section is None:
        return []

    kept: list[ProblemDraft] = []
    for draft in drafts:
        path = draft.path

        if draft.size is not None and not MIN_SIZE <= draft.size <= MAX_SIZE:
            position = draft.anchor.offset(section.size)
            collector.invariant(
                ForecastErrorCode.E_INVARIANT_SIZE_OUT_OF_RANGE,
                f"{path}.size",
                f"Avalanche problem size {draft.size} is outside {MIN_SIZE}..{MAX_SIZE}",
                sheet=position.sheet,
                address=position.address,
            )

        for band_id, aspects in draft.aspect_elevation.items():
            if not aspects:
                position = draft.anchor.offset(section.aspect_elevation[band_id].aspects)
                collector.invariant(
                    ForecastErrorCode.E_INVARIANT_ASPECTS_EMPTY,
                    f"{path}.aspect_elevation.{band_id}.aspects",
                    f"Elevation band {band_id!r} is enabled but has no aspects",
                    sheet=position.sheet,
                    address=position.address,
                )

        aspect_path = f"{path}.aspect_elevation"
        if not draft.aspect_elevation and not collector.failed(aspect_path):
            position = draft.anchor
            if policy is EmptyProblemPolicy.REJECT:
                collector.invariant(
                    ForecastErrorCode.E_INVARIANT_PROBLEM_NO_ELEVATION,
                    aspect_path,
                    "Avalanche problem has no enabled elevation band",
                    sheet=position.sheet,
                    address=position.address,
                )
            else:
                collector.invariant(
                    ForecastErrorCode.W_PROBLEM_NO_ELEVATION,
                    aspect_path,
                    "Avalanche problem has no enabled elevation band and was dropped",
                    severity=Severity.WARNING,
                    sheet=position.sheet,
                    address=position.address,
                )
                logger.warning(
                    "forecast.validate.problem_dropped",
                    extra={"field": path, "cell": str(position)},
                )
                continue

        kept.append(draft)
    return kept
