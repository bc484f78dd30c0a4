"""
Component model — an installable, versioned unit of software.

A component is identified by ``(id, version)``.  Equality and hashing
use that identity only, so the same unit coming from two catalogs (or
from a profile and a catalog) is one and the same component.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic_core import core_schema

from src.core.models.capability import IDENTITY_NAMESPACE, Capability, Relationship, Requirement
from src.core.models.filters import filter_matches, parse_filter
from src.core.models.version import Version

_RELATIONSHIPS = TypeAdapter(list[Relationship])


class ComponentRef(NamedTuple):
    """Identity of a component; sorts by id, then version."""

    id: str
    version: Version

    def __str__(self) -> str:
        return f"{self.id}@{self.version}"

    @classmethod
    def parse(cls, text: str) -> ComponentRef:
        """Parse ``"id@version"``.

        Raises:
            ValueError: If the version part is missing or invalid.
        """
        ident, sep, version = text.strip().rpartition("@")
        if not sep or not ident:
            raise ValueError(f"Expected 'id@version', got {text!r}")
        return cls(ident, Version.parse(version))

    @classmethod
    def coerce(cls, value: Any) -> ComponentRef:
        if isinstance(value, ComponentRef):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(str(value[0]), Version.coerce(value[1]))
        raise ValueError(f"Cannot interpret {value!r} as a component reference")

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class Component(BaseModel):
    """An installable unit.

    ``provides`` holds the declared capabilities; the identity capability
    is implicit and always present in ``provided_capabilities``.
    ``requires`` is ordered.  ``filter`` restricts the environments the
    component can be installed into.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    version: Version = Version()
    singleton: bool = False
    filter: str | None = None
    properties: dict[str, str] = Field(default_factory=dict)
    provides: tuple[Capability, ...] = ()
    requires: tuple[Requirement, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _split_relationships(cls, data: Any) -> Any:
        # A flat "relationships" list is split by kind.
        if not isinstance(data, dict) or "relationships" not in data:
            return data
        data = dict(data)
        related = _RELATIONSHIPS.validate_python(data.pop("relationships") or [])
        data["provides"] = tuple(data.get("provides", ())) + tuple(
            r for r in related if isinstance(r, Capability)
        )
        data["requires"] = tuple(data.get("requires", ())) + tuple(
            r for r in related if isinstance(r, Requirement)
        )
        return data

    @field_validator("filter")
    @classmethod
    def _check_filter(cls, value: str | None) -> str | None:
        if value is not None:
            parse_filter(value)
        return value

    @model_validator(mode="after")
    def _check_identity_namespace(self) -> Component:
        for cap in self.provides:
            if cap.namespace != IDENTITY_NAMESPACE:
                continue
            if cap.name != self.id or cap.version != self.version:
                raise ValueError(
                    f"Component {self.ref} may not declare identity capability {cap}"
                )
        return self

    # ── Identity ─────────────────────────────────────────────────

    @property
    def ref(self) -> ComponentRef:
        return ComponentRef(self.id, self.version)

    def __hash__(self) -> int:
        return hash(self.ref)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        return self.ref == other.ref

    def __str__(self) -> str:
        return str(self.ref)

    # ── Capabilities ─────────────────────────────────────────────

    @property
    def identity_capability(self) -> Capability:
        return Capability(namespace=IDENTITY_NAMESPACE, name=self.id, version=self.version)

    @property
    def provided_capabilities(self) -> tuple[Capability, ...]:
        declared = tuple(c for c in self.provides if c.namespace != IDENTITY_NAMESPACE)
        return (self.identity_capability,) + declared

    @property
    def relationships(self) -> tuple[Capability | Requirement, ...]:
        return self.provided_capabilities + self.requires

    def satisfies(self, requirement: Requirement) -> bool:
        """Whether any provided capability matches *requirement*."""
        return any(requirement.is_satisfied_by(c) for c in self.provided_capabilities)

    def is_applicable(self, env: Mapping[str, str]) -> bool:
        """Whether the component's own filter admits *env*."""
        return filter_matches(self.filter, env)

    def applicable_requirements(self, env: Mapping[str, str]) -> list[Requirement]:
        return [r for r in self.requires if r.is_applicable(env)]
