"""
ChangeRequest — the delta a caller wants applied to a profile.

Requests are immutable; the builder-style methods return new requests.

    request = (
        ChangeRequest.for_profile(profile)
        .add(sdk)
        .remove(old_tool)
        .set_property("os", "linux")
    )
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.core.models.component import Component


def _merge(existing: tuple[Component, ...], new: tuple[Component, ...]) -> tuple[Component, ...]:
    merged = list(existing)
    for component in new:
        if component not in merged:
            merged.append(component)
    return tuple(merged)


class ChangeRequest(BaseModel):
    """Additions, removals and property changes relative to a profile.

    ``additions`` are mandatory roots: each is either satisfied or
    reported as a conflict.  ``optional_additions`` are installed when
    possible and never reported as conflicts.  A property change to
    ``None`` removes the property.
    """

    model_config = ConfigDict(frozen=True)

    profile_id: str | None = None
    additions: tuple[Component, ...] = ()
    optional_additions: tuple[Component, ...] = ()
    removals: tuple[Component, ...] = ()
    property_changes: dict[str, str | None] = Field(default_factory=dict)

    @classmethod
    def for_profile(cls, profile) -> ChangeRequest:
        return cls(profile_id=profile.profile_id)

    def add(self, *components: Component) -> ChangeRequest:
        return self.model_copy(update={"additions": _merge(self.additions, components)})

    def add_optional(self, *components: Component) -> ChangeRequest:
        return self.model_copy(
            update={"optional_additions": _merge(self.optional_additions, components)}
        )

    def remove(self, *components: Component) -> ChangeRequest:
        return self.model_copy(update={"removals": _merge(self.removals, components)})

    def set_property(self, key: str, value: str | None) -> ChangeRequest:
        changes = dict(self.property_changes)
        changes[key] = value
        return self.model_copy(update={"property_changes": changes})

    def remove_property(self, key: str) -> ChangeRequest:
        return self.set_property(key, None)

    @property
    def roots(self) -> tuple[Component, ...]:
        return self.additions + tuple(c for c in self.optional_additions if c not in self.additions)

    @property
    def is_empty(self) -> bool:
        return not (
            self.additions or self.optional_additions or self.removals or self.property_changes
        )
