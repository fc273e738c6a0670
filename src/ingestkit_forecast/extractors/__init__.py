"""Field extractors.

Subpackage containing the typed decoders the builder drives:
- scalar: one cell to text, number, date, time, duration, flag or term
- multilang: parallel translation cells to ``{language_tag: text}``
- repeated: avalanche problem blocks at anchor + stride
- boundaries: elevation band bounds
"""

from ingestkit_forecast.extractors._collector import ErrorCollector
from ingestkit_forecast.extractors.boundaries import extract_boundaries, read_elevation
from ingestkit_forecast.extractors.multilang import extract_translations
from ingestkit_forecast.extractors.repeated import (
    ProblemDraft,
    extract_aspects,
    extract_problems,
    parse_aspects,
)
from ingestkit_forecast.extractors.scalar import (
    extract_date,
    extract_datetime,
    extract_duration,
    extract_flag,
    extract_integer,
    extract_number,
    extract_term,
    extract_text,
    extract_time,
    lookup_term,
    normalize_label,
)

__all__ = [
    "ErrorCollector",
    "ProblemDraft",
    "extract_aspects",
    "extract_boundaries",
    "extract_date",
    "extract_datetime",
    "extract_duration",
    "extract_flag",
    "extract_integer",
    "extract_number",
    "extract_problems",
    "extract_term",
    "extract_text",
    "extract_time",
    "extract_translations",
    "lookup_term",
    "normalize_label",
    "parse_aspects",
    "read_elevation",
]
