"""Multi-language text extractor."""

from __future__ import annotations

from ingestkit_forecast.extractors._collector import ErrorCollector
from ingestkit_forecast.extractors.scalar import extract_flag, extract_text
from ingestkit_forecast.models import LanguageTexts
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.schema import TranslationCells
from ingestkit_forecast.workbook import SpreadsheetAccessor


def extract_translations(
    accessor: SpreadsheetAccessor,
    translations: dict[str, TranslationCells] | None,
    anchor: SheetCellPosition,
    path: str,
    collector: ErrorCollector,
) -> LanguageTexts:
    """Read parallel translation cells into ``{language_tag: text}``.

    A language is omitted when its enabled flag is unchecked or its text
    cell is blank; nothing is ever defaulted to an empty string.  A block
    the schema does not declare yields ``{}``.
    """
    texts: LanguageTexts = {}
    if not translations:
        return texts

    for tag, cells in translations.items():
        field = f"{path}.{tag}"
        if cells.enabled is not None:
            enabled = collector.capture(
                field, extract_flag, accessor, anchor.offset(cells.enabled)
            )
            if not enabled:
                continue
        text = collector.capture(
            field, extract_text, accessor, anchor.offset(cells.value), required=False
        )
        if text:
            texts[tag] = text
    return texts
