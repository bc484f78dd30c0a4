"""
Capability and Requirement — the vocabulary between components.

A component *provides* capabilities and *requires* capabilities of
other components.  Both are plain values tagged by ``kind`` so that a
``Relationship`` can be either one (discriminated union), instead of a
class hierarchy per namespace.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.models.filters import filter_matches, parse_filter
from src.core.models.version import ANY_RANGE, Version, VersionRange

# Reserved namespace: every component provides (IDENTITY_NAMESPACE, id, version).
IDENTITY_NAMESPACE = "component.identity"


class Capability(BaseModel):
    """A named, versioned feature offered by a component."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["capability"] = "capability"
    namespace: str
    name: str
    version: Version = Version()

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}/{self.version}"


class Requirement(BaseModel):
    """A constraint on the capabilities a component needs.

    ``filter`` decides whether the requirement applies at all in a given
    environment.  ``optional`` requirements never block selection;
    non-``greedy`` ones never bring new components into the problem.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["requirement"] = "requirement"
    namespace: str
    name: str
    range: VersionRange = ANY_RANGE
    filter: str | None = None
    optional: bool = False
    greedy: bool = True
    multiple: bool = False

    @field_validator("filter")
    @classmethod
    def _check_filter(cls, value: str | None) -> str | None:
        if value is not None:
            parse_filter(value)
        return value

    @classmethod
    def on_component(
        cls,
        component_id: str,
        range: VersionRange | str | None = None,
        **kwargs,
    ) -> Requirement:
        """Shorthand for a requirement in the identity namespace."""
        return cls(
            namespace=IDENTITY_NAMESPACE,
            name=component_id,
            range=VersionRange.coerce(range),
            **kwargs,
        )

    def is_applicable(self, env: Mapping[str, str]) -> bool:
        """Whether the requirement's filter holds in *env*."""
        return filter_matches(self.filter, env)

    def is_satisfied_by(self, capability: Capability) -> bool:
        return (
            capability.namespace == self.namespace
            and capability.name == self.name
            and self.range.contains(capability.version)
        )

    def __str__(self) -> str:
        flags = []
        if self.optional:
            flags.append("optional")
        if not self.greedy:
            flags.append("non-greedy")
        suffix = f" ({', '.join(flags)})" if flags else ""
        return f"{self.namespace}/{self.name} {self.range}{suffix}"


Relationship = Annotated[Capability | Requirement, Field(discriminator="kind")]
