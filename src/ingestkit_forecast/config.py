"""ForecastParserConfig and configuration defaults.

Provides ``ForecastParserConfig`` with the tunable parameters of the
forecast spreadsheet parser.  Supports loading overrides from YAML or JSON
files via the ``from_file()`` classmethod.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ingestkit_forecast.position import SheetCellPosition


class EmptyProblemPolicy(str, Enum):
    """What to do with an avalanche problem that has no enabled elevation band."""

    DROP_WITH_WARNING = "drop_with_warning"
    REJECT = "reject"


class ForecastParserConfig(BaseModel):
    """All tunable parameters for the forecast parser.

    Override individual values via constructor kwargs or load a complete
    config from a file with ``ForecastParserConfig.from_file(path)``.
    """

    # --- Identity ---
    parser_version: str = "ingestkit_forecast:0.1.0"

    # --- Schemas ---
    schema_dir: str | None = Field(
        default=None,
        description="Directory of schema documents. None uses the bundled schemas.",
    )

    # --- Extraction ---
    empty_problem_policy: str = Field(
        default="drop_with_warning",
        description=(
            "Avalanche problem with no enabled elevation band: "
            "'drop_with_warning' or 'reject'."
        ),
    )
    strict_terms: bool = Field(
        default=False,
        description="If True, term labels must match exactly (no whitespace/case folding).",
    )

    # --- Version detection ---
    version_cell: SheetCellPosition | None = Field(
        default=None,
        description="Cell holding the template version, e.g. 'Form!B1'. None tries every schema's cell.",
    )

    # --- Resource Limits ---
    max_file_size_mb: int = Field(
        default=25,
        ge=1,
        description="Maximum workbook size.",
    )

    # --- Logging / PII Safety ---
    log_sample_data: bool = Field(
        default=False,
        description="If True, raw cell values may appear in logs. Default is PII-safe.",
    )

    @model_validator(mode="after")
    def _validate_enum_fields(self) -> ForecastParserConfig:
        allowed_policies = {policy.value for policy in EmptyProblemPolicy}
        if self.empty_problem_policy not in allowed_policies:
            raise ValueError(f"empty_problem_policy must be one of {sorted(allowed_policies)}")
        return self

    @property
    def problem_policy(self) -> EmptyProblemPolicy:
        return EmptyProblemPolicy(self.empty_problem_policy)

    @classmethod
    def from_file(cls, path: str) -> ForecastParserConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.
        """
        import json as json_mod
        import pathlib

        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(file_path, encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path, encoding="utf-8") as fh:
                data = json_mod.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
