"""
Version and VersionRange — the ordering backbone of the catalog.

Versions follow the ``major.minor.micro.qualifier`` shape: numeric
segments compare numerically, the qualifier compares lexically and the
empty qualifier sorts first.  Ranges are intervals with independently
inclusive/exclusive ends; ``None`` on a side means unbounded.

Both types plug into Pydantic models through
``__get_pydantic_core_schema__`` so they validate from plain strings
and serialize back to them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from pydantic_core import core_schema

_QUALIFIER_RE = re.compile(r"^[A-Za-z0-9_\-]*$")


@dataclass(frozen=True, order=True)
class Version:
    """A totally ordered component version."""

    major: int = 0
    minor: int = 0
    micro: int = 0
    qualifier: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``"1"``, ``"1.2"``, ``"1.2.3"`` or ``"1.2.3.qualifier"``.

        Raises:
            ValueError: On empty text, non-numeric or negative segments,
                or a qualifier with illegal characters.
        """
        raw = (text or "").strip()
        if not raw:
            raise ValueError("Empty version string")

        parts = raw.split(".", 3)
        numbers: list[int] = []
        for part in parts[:3]:
            if not part.isdigit():
                raise ValueError(f"Invalid version segment {part!r} in {text!r}")
            numbers.append(int(part))
        while len(numbers) < 3:
            numbers.append(0)

        qualifier = parts[3] if len(parts) == 4 else ""
        if not _QUALIFIER_RE.match(qualifier):
            raise ValueError(f"Invalid version qualifier {qualifier!r} in {text!r}")

        return cls(numbers[0], numbers[1], numbers[2], qualifier)

    @classmethod
    def coerce(cls, value: Any) -> Version:
        """Accept a Version, a version string, or a bare int."""
        if isinstance(value, Version):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, float):
            # 1.10 and 1.1 are the same float
            raise ValueError(f"Version {value!r} was read as a number; quote it, e.g. \"{value}\"")
        raise ValueError(f"Cannot interpret {value!r} as a version")

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.micro}"
        return f"{base}.{self.qualifier}" if self.qualifier else base

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


@dataclass(frozen=True)
class VersionRange:
    """An interval of versions.

    ``minimum``/``maximum`` of ``None`` leave that side unbounded.
    """

    minimum: Version | None = None
    include_minimum: bool = True
    maximum: Version | None = None
    include_maximum: bool = True

    @classmethod
    def exactly(cls, version: Version) -> VersionRange:
        return cls(version, True, version, True)

    @classmethod
    def at_least(cls, version: Version) -> VersionRange:
        return cls(version, True, None, True)

    @classmethod
    def parse(cls, text: str | None) -> VersionRange:
        """Parse range notation.

        Accepted forms::

            ""  or "*"          any version
            "1.0.0"             at least 1.0.0
            "[1.0.0]"           exactly 1.0.0
            "[1.0.0,2.0.0)"     interval; '[' / ']' inclusive, '(' / ')' exclusive
            "[1.0.0,)"          unbounded upper side

        Raises:
            ValueError: On malformed text.
        """
        raw = (text or "").strip()
        if raw in ("", "*"):
            return ANY_RANGE

        if raw[0] not in "[(":
            return cls.at_least(Version.parse(raw))

        if len(raw) < 3 or raw[-1] not in ")]":
            raise ValueError(f"Unterminated version range {text!r}")

        include_min = raw[0] == "["
        include_max = raw[-1] == "]"
        inner = raw[1:-1]

        if "," not in inner:
            if not (include_min and include_max):
                raise ValueError(f"Single-version range must be inclusive: {text!r}")
            return cls.exactly(Version.parse(inner))

        low_text, _, high_text = inner.partition(",")
        if "," in high_text:
            raise ValueError(f"Too many bounds in version range {text!r}")

        low = Version.parse(low_text) if low_text.strip() else None
        high = Version.parse(high_text) if high_text.strip() else None
        return cls(low, include_min, high, include_max)

    @classmethod
    def coerce(cls, value: Any) -> VersionRange:
        if isinstance(value, VersionRange):
            return value
        if value is None or isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f"Cannot interpret {value!r} as a version range")

    @property
    def is_empty(self) -> bool:
        """True when no version can ever match."""
        if self.minimum is None or self.maximum is None:
            return False
        if self.minimum > self.maximum:
            return True
        if self.minimum == self.maximum:
            return not (self.include_minimum and self.include_maximum)
        return False

    def contains(self, version: Version) -> bool:
        if self.is_empty:
            return False
        if self.minimum is not None:
            if version < self.minimum:
                return False
            if version == self.minimum and not self.include_minimum:
                return False
        if self.maximum is not None:
            if version > self.maximum:
                return False
            if version == self.maximum and not self.include_maximum:
                return False
        return True

    def __contains__(self, version: object) -> bool:
        return isinstance(version, Version) and self.contains(version)

    def __str__(self) -> str:
        if self.minimum is None and self.maximum is None:
            return "*"
        if self.maximum is None and self.include_minimum:
            return str(self.minimum)
        if (
            self.minimum is not None
            and self.minimum == self.maximum
            and self.include_minimum
            and self.include_maximum
        ):
            return f"[{self.minimum}]"
        left = "[" if self.include_minimum else "("
        right = "]" if self.include_maximum else ")"
        low = str(self.minimum) if self.minimum is not None else ""
        high = str(self.maximum) if self.maximum is not None else ""
        return f"{left}{low},{high}{right}"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


ANY_RANGE = VersionRange()
