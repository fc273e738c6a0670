"""Template versions and the version ranges schemas declare.

Spreadsheets carry a ``major.minor.patch`` template version.  Each schema
document declares the half-open range ``[minimum, maximum)`` it can read,
written as an exact version (``"0.3.3"``), a caret range (``"^0.3.0"``) or
explicit bounds (``">=0.3.0,<0.4.0"``).  Every range has an upper bound so a
future template is never read with an older schema by accident.
"""

from __future__ import annotations

import re
from functools import total_ordering
from typing import Any

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


@total_ordering
class TemplateVersion:
    """Semantic version stamped into a forecast spreadsheet."""

    __slots__ = ("major", "minor", "patch")

    def __init__(self, major: int, minor: int, patch: int) -> None:
        if min(major, minor, patch) < 0:
            raise ValueError("Version components must be non-negative")
        object.__setattr__(self, "major", major)
        object.__setattr__(self, "minor", minor)
        object.__setattr__(self, "patch", patch)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("TemplateVersion is immutable")

    @classmethod
    def parse(cls, value: str) -> TemplateVersion:
        """Parse ``"0.3.3"`` (a leading ``v`` and whitespace are tolerated)."""
        if not isinstance(value, str):
            raise ValueError(f"Template version must be text, got {type(value).__name__}")
        match = _VERSION_RE.match(value.strip())
        if match is None:
            raise ValueError(f"Invalid template version {value!r}, expected e.g. '0.3.0'")
        return cls(*(int(part) for part in match.groups()))

    @property
    def parts(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def next_patch(self) -> TemplateVersion:
        return TemplateVersion(self.major, self.minor, self.patch + 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemplateVersion):
            return NotImplemented
        return self.parts == other.parts

    def __lt__(self, other: TemplateVersion) -> bool:
        if not isinstance(other, TemplateVersion):
            return NotImplemented
        return self.parts < other.parts

    def __hash__(self) -> int:
        return hash(self.parts)

    def __repr__(self) -> str:
        return f"TemplateVersion({self})"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class VersionRange:
    """Half-open range ``[minimum, maximum)`` of template versions."""

    __slots__ = ("minimum", "maximum")

    def __init__(
        self,
        minimum: TemplateVersion,
        maximum: TemplateVersion,
    ) -> None:
        if not minimum < maximum:
            raise ValueError(f"Empty version range [{minimum}, {maximum})")
        self.minimum = minimum
        self.maximum = maximum

    @classmethod
    def parse(cls, value: str) -> VersionRange:
        text = value.strip()
        if text.startswith("^"):
            base = TemplateVersion.parse(text[1:])
            if base.major == 0:
                upper = TemplateVersion(0, base.minor + 1, 0)
            else:
                upper = TemplateVersion(base.major + 1, 0, 0)
            return cls(base, upper)

        if text.startswith(">="):
            bounds = [part.strip() for part in text.split(",")]
            if len(bounds) != 2 or not bounds[1].startswith("<") or bounds[1].startswith("<="):
                raise ValueError(
                    f"Invalid version range {value!r}, expected '>=X.Y.Z,<X.Y.Z'"
                )
            return cls(
                TemplateVersion.parse(bounds[0][2:]),
                TemplateVersion.parse(bounds[1][1:]),
            )

        exact = TemplateVersion.parse(text)
        return cls(exact, exact.next_patch())

    def contains(self, version: TemplateVersion) -> bool:
        return self.minimum <= version < self.maximum

    def __contains__(self, version: object) -> bool:
        return isinstance(version, TemplateVersion) and self.contains(version)

    def overlaps(self, other: VersionRange) -> bool:
        return self.minimum < other.maximum and other.minimum < self.maximum

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return (self.minimum, self.maximum) == (other.minimum, other.maximum)

    def __hash__(self) -> int:
        return hash((self.minimum, self.maximum))

    def __repr__(self) -> str:
        return f"VersionRange({self})"

    def __str__(self) -> str:
        return f">={self.minimum},<{self.maximum}"
