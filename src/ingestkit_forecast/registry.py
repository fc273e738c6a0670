"""Schema registry: loads schema documents and resolves template versions.

Schemas are loaded once at startup (from a directory, the bundled package
data, or in-memory documents) and are read-only afterwards, so one
registry can be shared by concurrent parses.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ingestkit_forecast.errors import (
    ForecastErrorCode,
    SchemaLoadError,
    UnsupportedVersionError,
)
from ingestkit_forecast.position import SheetCellPosition
from ingestkit_forecast.schema import ForecastSchema
from ingestkit_forecast.version import TemplateVersion

logger = logging.getLogger("ingestkit_forecast")

SchemaDocument = ForecastSchema | Mapping[str, Any] | str


def _format_validation_error(label: str, exc: ValidationError) -> list[str]:
    messages = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item["loc"])
        where = f"{label}.{location}" if location else label
        messages.append(f"{where}: {item['msg']}")
    return messages


def _newest_first(schemas: Iterable[ForecastSchema]) -> list[ForecastSchema]:
    return sorted(schemas, key=lambda s: s.version_range.minimum, reverse=True)


def _overlap_problems(ordered: list[ForecastSchema]) -> list[str]:
    problems: list[str] = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1 :]:
            if first.version_range.overlaps(second.version_range):
                problems.append(
                    f"schemas {first.name!r} ({first.version_range}) and "
                    f"{second.name!r} ({second.version_range}) overlap"
                )
    return problems


class SchemaRegistry:
    """Immutable collection of schemas with non-overlapping version ranges."""

    def __init__(self, schemas: Iterable[ForecastSchema]) -> None:
        ordered = _newest_first(schemas)
        problems = _overlap_problems(ordered)
        if problems:
            raise SchemaLoadError(problems, code=ForecastErrorCode.E_FORECAST_SCHEMA_OVERLAP)
        self._schemas: tuple[ForecastSchema, ...] = tuple(ordered)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, documents: Iterable[SchemaDocument]) -> SchemaRegistry:
        """Validate schema documents and build a registry.

        Documents may be ``ForecastSchema`` instances, parsed JSON mappings,
        or JSON strings.  Every invalid document and every overlap between
        the valid ones is reported in a single ``SchemaLoadError``.
        """
        return cls._load(documents, [])

    @classmethod
    def _load(cls, documents: Iterable[SchemaDocument], problems: list[str]) -> SchemaRegistry:
        schemas: list[ForecastSchema] = []
        for index, document in enumerate(documents):
            label = f"schema[{index}]"
            if isinstance(document, ForecastSchema):
                schemas.append(document)
                continue
            try:
                if isinstance(document, str):
                    document = json.loads(document)
                if isinstance(document, Mapping) and "name" in document:
                    label = str(document["name"])
                schemas.append(ForecastSchema.model_validate(document))
            except json.JSONDecodeError as exc:
                problems.append(f"{label}: malformed JSON: {exc}")
            except ValidationError as exc:
                problems.extend(_format_validation_error(label, exc))

        overlaps = _overlap_problems(_newest_first(schemas))
        if problems or overlaps:
            code = (
                ForecastErrorCode.E_FORECAST_SCHEMA_INVALID
                if problems
                else ForecastErrorCode.E_FORECAST_SCHEMA_OVERLAP
            )
            raise SchemaLoadError(problems + overlaps, code=code)

        registry = cls(schemas)
        logger.info(
            "forecast.schema.loaded",
            extra={
                "schema_count": len(registry),
                "schema_names": [schema.name for schema in registry.schemas],
            },
        )
        return registry

    @classmethod
    def from_directory(cls, path: str | Path) -> SchemaRegistry:
        """Load every ``*.json`` schema document in ``path`` (sorted by name)."""
        directory = Path(path)
        if not directory.is_dir():
            raise SchemaLoadError(
                [f"schema directory not found: {directory}"],
                code=ForecastErrorCode.E_FORECAST_SCHEMA_NOT_FOUND,
            )
        files = sorted(directory.glob("*.json"))
        if not files:
            raise SchemaLoadError(
                [f"no schema documents (*.json) in {directory}"],
                code=ForecastErrorCode.E_FORECAST_SCHEMA_NOT_FOUND,
            )
        return cls._load_files((f.name, f.read_text(encoding="utf-8")) for f in files)

    @classmethod
    def default(cls) -> SchemaRegistry:
        """Load the schema documents bundled with the package."""
        package_dir = resources.files("ingestkit_forecast") / "schemas"
        entries = sorted(
            (entry for entry in package_dir.iterdir() if entry.name.endswith(".json")),
            key=lambda entry: entry.name,
        )
        return cls._load_files((e.name, e.read_text(encoding="utf-8")) for e in entries)

    @classmethod
    def _load_files(cls, named_texts: Iterable[tuple[str, str]]) -> SchemaRegistry:
        documents: list[SchemaDocument] = []
        problems: list[str] = []
        for name, text in named_texts:
            try:
                documents.append(json.loads(text))
            except json.JSONDecodeError as exc:
                problems.append(f"{name}: malformed JSON: {exc}")
        return cls._load(documents, problems)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def schemas(self) -> tuple[ForecastSchema, ...]:
        """Schemas ordered newest version range first."""
        return self._schemas

    @property
    def supported_ranges(self) -> list[str]:
        return [str(schema.version_range) for schema in self._schemas]

    def resolve(self, version: TemplateVersion) -> ForecastSchema:
        """Return the schema whose range contains ``version``."""
        for schema in self._schemas:
            if schema.version_range.contains(version):
                return schema
        raise UnsupportedVersionError(str(version), self.supported_ranges)

    def version_positions(self) -> list[SheetCellPosition]:
        """Distinct template-version cells across schemas, newest first."""
        positions: list[SheetCellPosition] = []
        for schema in self._schemas:
            if schema.template_version not in positions:
                positions.append(schema.template_version)
        return positions

    def __len__(self) -> int:
        return len(self._schemas)

    def __iter__(self):
        return iter(self._schemas)
