"""
Plan models — the output contract of the planner.

A ``ResolutionResult`` is always returned, never an exception: it
carries a ``ResolutionStatus``, the ordered ``Plan`` (when one exists)
and the per-root ``RequestStatus`` that explains conflicts.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.models.capability import Requirement
from src.core.models.component import Component, ComponentRef


class OperandKind(StrEnum):
    INSTALL = "install"
    UNINSTALL = "uninstall"


class Operand(BaseModel):
    """One step of a plan: install or uninstall a component."""

    model_config = ConfigDict(frozen=True)

    kind: OperandKind
    component: Component

    @classmethod
    def install(cls, component: Component) -> Operand:
        return cls(kind=OperandKind.INSTALL, component=component)

    @classmethod
    def uninstall(cls, component: Component) -> Operand:
        return cls(kind=OperandKind.UNINSTALL, component=component)

    def __str__(self) -> str:
        sign = "+" if self.kind == OperandKind.INSTALL else "-"
        return f"{sign} {self.component.ref}"


# ── Conflicts and warnings ──────────────────────────────────────────


class ConflictKind(StrEnum):
    MISSING_CAPABILITY = "missing_capability"
    VERSION_CONFLICT = "version_conflict"
    FILTER_MISMATCH = "filter_mismatch"
    EXPLICIT_REMOVAL = "explicit_removal"


class ConflictReason(BaseModel):
    """Why a component could not be selected.

    ``causes`` continues the chain one requirement deeper; ``blockers``
    names the components whose selection (or removal) is in the way.
    """

    model_config = ConfigDict(frozen=True)

    kind: ConflictKind
    component: ComponentRef
    requirement: Requirement | None = None
    message: str
    blockers: tuple[ComponentRef, ...] = ()
    causes: tuple[ConflictReason, ...] = ()

    def render(self, depth: int = 0) -> list[str]:
        """Indented, human-readable lines for this reason and its causes."""
        lines = [f"{'  ' * depth}[{self.kind}] {self.message}"]
        for cause in self.causes:
            lines.extend(cause.render(depth + 1))
        return lines

    def walk(self) -> list[ConflictReason]:
        """This reason followed by all nested causes, depth first."""
        found = [self]
        for cause in self.causes:
            found.extend(cause.walk())
        return found


class ResolutionWarning(BaseModel):
    """A non-blocking finding, e.g. an unmet optional requirement."""

    model_config = ConfigDict(frozen=True)

    component: ComponentRef
    requirement: Requirement | None = None
    message: str

    def __str__(self) -> str:
        return f"{self.component}: {self.message}"


# ── Request status ──────────────────────────────────────────────────


class RootState(StrEnum):
    SATISFIED = "satisfied"
    CONFLICT = "conflict"


class RootStatus(BaseModel):
    """Outcome for one root of the request."""

    model_config = ConfigDict(frozen=True)

    component: Component
    state: RootState
    optional: bool = False
    installed: bool = False       # root already present in the profile
    reason: ConflictReason | None = None
    warnings: tuple[ResolutionWarning, ...] = ()

    @property
    def satisfied(self) -> bool:
        return self.state == RootState.SATISFIED


class RequestStatus(BaseModel):
    """Per-root outcome plus the roots that could not be satisfied."""

    model_config = ConfigDict(frozen=True)

    roots: tuple[RootStatus, ...] = ()
    conflicts_with_installed_roots: tuple[Component, ...] = ()

    def status_of(self, component: Component | ComponentRef) -> RootStatus | None:
        ref = component.ref if isinstance(component, Component) else component
        for status in self.roots:
            if status.component.ref == ref:
                return status
        return None

    @property
    def satisfied_roots(self) -> tuple[Component, ...]:
        return tuple(s.component for s in self.roots if s.satisfied and not s.optional)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts_with_installed_roots)


# ── Plan ────────────────────────────────────────────────────────────


class Plan(BaseModel):
    """Ordered operands realizing a resolved selection."""

    model_config = ConfigDict(frozen=True)

    operands: tuple[Operand, ...] = ()
    request_status: RequestStatus = Field(default_factory=RequestStatus)
    property_changes: dict[str, str | None] = Field(default_factory=dict)
    warnings: tuple[ResolutionWarning, ...] = ()

    @property
    def installs(self) -> tuple[Component, ...]:
        return tuple(o.component for o in self.operands if o.kind == OperandKind.INSTALL)

    @property
    def uninstalls(self) -> tuple[Component, ...]:
        return tuple(o.component for o in self.operands if o.kind == OperandKind.UNINSTALL)

    @property
    def is_empty(self) -> bool:
        return not self.operands and not self.property_changes

    def to_json(self) -> str:
        """Deterministic JSON rendering of the plan."""
        return json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True)


# ── Result ──────────────────────────────────────────────────────────


class ResolutionStatus(StrEnum):
    OK = "ok"
    PARTIAL_CONFLICT = "partial_conflict"
    UNSATISFIABLE = "unsatisfiable"
    MALFORMED_REQUEST = "malformed_request"
    CANCELLED = "cancelled"


class ResolutionStats(BaseModel):
    """Search bookkeeping, useful for logs and --json output."""

    variables: int = 0
    clauses: int = 0
    decisions: int = 0
    optimal: bool = True
    cost: dict[str, int] = Field(default_factory=dict)
    duration_ms: int = 0


class ResolutionResult(BaseModel):
    """Result of one resolution. Never raised, always returned."""

    status: ResolutionStatus
    plan: Plan | None = None
    error: str | None = None
    stats: ResolutionStats = Field(default_factory=ResolutionStats)

    @property
    def ok(self) -> bool:
        return self.status == ResolutionStatus.OK

    @property
    def has_plan(self) -> bool:
        return self.plan is not None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)
