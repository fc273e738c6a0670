"""Repeated-record extractor for avalanche problem blocks.

Blocks sit at ``root + i * stride`` for ``i < max_count``.  Iteration stops
at the first block whose enabled cell lies outside the sheet's used range,
and blocks whose enabled flag is unchecked are skipped.  Each retained block
becomes a ``ProblemDraft``; structural checks (size range, empty aspect
sets, problems with no enabled band) happen later in ``validation``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from ingestkit_forecast.errors import MissingSheetError
from ingestkit_forecast.extractors._collector import ErrorCollector
from ingestkit_forecast.extractors.multilang import extract_translations
from ingestkit_forecast.extractors.scalar import (
    extract_flag,
    extract_integer,
    extract_term,
    lookup_term,
    unknown_term,
)
from ingestkit_forecast.models import (
    ASPECT_ORDER,
    Aspect,
    Confidence,
    Distribution,
    LanguageTexts,
    ProblemKind,
    Sensitivity,
    TimeOfDay,
    Trend,
)
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.schema import AvalancheProblemsSection, Terms
from ingestkit_forecast.workbook import SpreadsheetAccessor

logger = logging.getLogger("ingestkit_forecast")

_FLAGS_RE = re.compile(r"^[01]{8}$")
_SEPARATOR_RE = re.compile(r"[\s,;/]+")


@dataclass
class ProblemDraft:
    """An enabled avalanche problem block as read from the sheet."""

    index: int
    anchor: SheetCellPosition
    kind: ProblemKind | None = None
    sensitivity: Sensitivity | None = None
    distribution: Distribution | None = None
    size: int | None = None
    time_of_day: TimeOfDay | None = None
    trend: Trend | None = None
    confidence: Confidence | None = None
    # enabled bands only, in schema order
    aspect_elevation: dict[str, list[Aspect]] = field(default_factory=dict)
    description: LanguageTexts = field(default_factory=dict)

    @property
    def path(self) -> str:
        return f"avalanche_problems[{self.index}]"


def parse_aspects(
    text: str,
    terms: Mapping[str, Aspect],
    *,
    strict: bool = False,
) -> list[Aspect] | None:
    """Decode an aspect code into compass-ordered aspects.

    Accepts an eight character ``0/1`` flag string in ``N..NW`` order or a
    list of labels such as ``N, NE, E``.  Returns ``None`` if any label is
    unknown.
    """
    text = text.strip()
    if _FLAGS_RE.match(text):
        return [aspect for aspect, flag in zip(ASPECT_ORDER, text) if flag == "1"]

    found: set[Aspect] = set()
    for label in _SEPARATOR_RE.split(text):
        if not label:
            continue
        aspect = lookup_term(terms, label, strict=strict)
        if aspect is None:
            return None
        found.add(aspect)
    return [aspect for aspect in ASPECT_ORDER if aspect in found]


def extract_aspects(
    accessor: SpreadsheetAccessor,
    position: SheetCellPosition,
    terms: Mapping[str, Aspect],
    *,
    strict: bool = False,
) -> list[Aspect]:
    """Aspects listed in one cell; an empty cell is an empty list."""
    value = accessor.cell(position)
    if isinstance(value, int) and not isinstance(value, bool) and set(str(value)) <= {"0", "1"}:
        # flag strings typed without a leading apostrophe lose their zeros
        text: str | None = str(value).zfill(8)
    else:
        text = accessor.as_text(position)
    if text is None:
        return []
    aspects = parse_aspects(text, terms, strict=strict)
    if aspects is None:
        raise unknown_term(position, "aspect", text)
    return aspects


def _extract_problem(
    accessor: SpreadsheetAccessor,
    section: AvalancheProblemsSection,
    terms: Terms,
    draft: ProblemDraft,
    collector: ErrorCollector,
    strict: bool,
) -> None:
    anchor = draft.anchor
    path = draft.path

    def term(name: str, offset, dictionary, term_name: str, required: bool = True):
        if offset is None:
            return None
        return collector.capture(
            f"{path}.{name}",
            extract_term,
            accessor,
            anchor.offset(offset),
            dictionary,
            term_name=term_name,
            required=required,
            strict=strict,
        )

    draft.kind = term("kind", section.kind, terms.avalanche_problem_kind, "avalanche problem kind")
    draft.sensitivity = term("sensitivity", section.sensitivity, terms.sensitivity, "sensitivity")
    draft.distribution = term("distribution", section.distribution, terms.distribution, "distribution")
    draft.time_of_day = term(
        "time_of_day", section.time_of_day, terms.time_of_day, "time of day", required=False
    )
    draft.trend = term("trend", section.trend, terms.trend, "trend", required=False)
    draft.confidence = term(
        "confidence", section.confidence, terms.confidence, "confidence", required=False
    )
    draft.size = collector.capture(
        f"{path}.size", extract_integer, accessor, anchor.offset(section.size)
    )

    for band_id, cells in section.aspect_elevation.items():
        band_path = f"{path}.aspect_elevation.{band_id}"
        enabled = collector.capture(
            f"{band_path}.enabled", extract_flag, accessor, anchor.offset(cells.enabled)
        )
        if not enabled:
            continue
        aspects = collector.capture(
            f"{band_path}.aspects",
            extract_aspects,
            accessor,
            anchor.offset(cells.aspects),
            terms.aspect,
            strict=strict,
        )
        if aspects is not None:
            draft.aspect_elevation[band_id] = aspects

    if section.description is not None:
        draft.description = extract_translations(
            accessor,
            section.description.translations,
            anchor.offset(section.description.offset),
            f"{path}.description",
            collector,
        )


def extract_problems(
    accessor: SpreadsheetAccessor,
    section: AvalancheProblemsSection | None,
    terms: Terms,
    collector: ErrorCollector,
    *,
    strict: bool = False,
) -> list[ProblemDraft]:
    """Read every enabled avalanche problem block."""
    if section is None:
        return []
    if not accessor.has_sheet(section.root.sheet):
        collector.add(
            MissingSheetError(section.root.sheet, section.root.address).error,
            "avalanche_problems",
        )
        return []

    drafts: list[ProblemDraft] = []
    for index in range(section.max_count):
        anchor = section.anchor(index)
        enabled_position = anchor.offset(section.enabled)
        if not accessor.in_bounds(enabled_position):
            break
        draft = ProblemDraft(index=index, anchor=anchor)
        enabled = collector.capture(
            f"{draft.path}.enabled", extract_flag, accessor, enabled_position
        )
        if not enabled:
            continue
        _extract_problem(accessor, section, terms, draft, collector, strict)
        drafts.append(draft)

    logger.debug(
        "forecast.extract.avalanche_problems",
        extra={"blocks_read": len(drafts), "max_count": section.max_count},
    )
    return drafts
