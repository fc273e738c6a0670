"""Accumulates field errors so every extractor runs on every parse."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from ingestkit_forecast.errors import (
    FieldError,
    FieldErrorKind,
    FieldExtractionError,
    ForecastErrorCode,
    Severity,
)

T = TypeVar("T")


class ErrorCollector:
    """Collects ``FieldError`` entries keyed by field path.

    ``capture`` runs one extractor; a ``FieldExtractionError`` is recorded
    under the given path and ``None`` is returned so the caller can carry
    on with the next field.
    """

    def __init__(self) -> None:
        self.errors: list[FieldError] = []
        self.warnings: list[FieldError] = []
        self._failed: set[str] = set()

    def capture(self, path: str, func: Callable[..., T], *args: object, **kwargs: object) -> T | None:
        try:
            return func(*args, **kwargs)
        except FieldExtractionError as exc:
            self.add(exc.error, path)
            return None

    def add(self, error: FieldError, path: str | None = None) -> None:
        if path is not None and not error.field:
            error = error.model_copy(update={"field": path})
        if error.severity is Severity.WARNING:
            self.warnings.append(error)
            return
        self.errors.append(error)
        self._failed.add(error.field)

    def invariant(
        self,
        code: ForecastErrorCode,
        path: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        sheet: str | None = None,
        address: str | None = None,
    ) -> None:
        """Record a structural-invariant violation."""
        self.add(
            FieldError(
                code=code,
                kind=FieldErrorKind.INVARIANT,
                message=message,
                stage="validation",
                field=path,
                sheet=sheet,
                address=address,
                severity=severity,
            )
        )

    def failed(self, path: str) -> bool:
        """True if an error was already recorded for ``path`` or a field under it."""
        if path in self._failed:
            return True
        prefixes = (f"{path}.", f"{path}[")
        return any(failed.startswith(prefixes) for failed in self._failed)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
