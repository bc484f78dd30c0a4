"""
Profile — the installation state at a point in time.

Profiles are immutable snapshots.  The only way to get the next one is
``apply_plan(profile, plan)``; nothing mutates installed state in place.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.models.component import Component, ComponentRef
from src.core.models.plan import OperandKind, Plan


class Profile(BaseModel):
    """Installed components, the explicitly installed roots, and properties.

    ``installed`` is kept sorted by identity and free of duplicates;
    every entry of ``roots`` must be installed.
    """

    model_config = ConfigDict(frozen=True)

    profile_id: str = "default"
    installed: tuple[Component, ...] = ()
    roots: tuple[ComponentRef, ...] = ()
    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator("installed")
    @classmethod
    def _sort_installed(cls, value: tuple[Component, ...]) -> tuple[Component, ...]:
        unique = {c.ref: c for c in reversed(value)}
        return tuple(unique[ref] for ref in sorted(unique))

    @field_validator("roots")
    @classmethod
    def _sort_roots(cls, value: tuple[ComponentRef, ...]) -> tuple[ComponentRef, ...]:
        return tuple(sorted(set(value)))

    @model_validator(mode="after")
    def _check_roots(self) -> Profile:
        installed = self.installed_refs
        missing = [str(r) for r in self.roots if r not in installed]
        if missing:
            raise ValueError(f"Roots not installed in profile: {', '.join(missing)}")
        return self

    @property
    def installed_refs(self) -> frozenset[ComponentRef]:
        return frozenset(c.ref for c in self.installed)

    def is_installed(self, component: Component | ComponentRef) -> bool:
        ref = component.ref if isinstance(component, Component) else component
        return ref in self.installed_refs

    def is_root(self, component: Component | ComponentRef) -> bool:
        ref = component.ref if isinstance(component, Component) else component
        return ref in self.roots

    def get(self, ref: ComponentRef) -> Component | None:
        for component in self.installed:
            if component.ref == ref:
                return component
        return None

    def installed_versions(self, component_id: str) -> list[Component]:
        return [c for c in self.installed if c.id == component_id]

    def environment(self, changes: Mapping[str, str | None] | None = None) -> dict[str, str]:
        """Profile properties with *changes* applied (``None`` removes a key)."""
        env = dict(self.properties)
        for key, value in (changes or {}).items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value
        return env


def apply_plan(profile: Profile, plan: Plan) -> Profile:
    """Return the profile that results from executing *plan* on *profile*.

    Operands already reflected in the profile are no-ops, so applying
    the same plan twice yields the same profile.
    """
    installed: dict[ComponentRef, Component] = {c.ref: c for c in profile.installed}
    for operand in plan.operands:
        ref = operand.component.ref
        if operand.kind == OperandKind.UNINSTALL:
            installed.pop(ref, None)
        else:
            installed[ref] = operand.component

    roots = {r for r in profile.roots if r in installed}
    roots.update(c.ref for c in plan.request_status.satisfied_roots if c.ref in installed)

    return Profile(
        profile_id=profile.profile_id,
        installed=tuple(installed.values()),
        roots=tuple(roots),
        properties=profile.environment(plan.property_changes),
    )
