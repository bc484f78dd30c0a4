"""
L2 Resolver — Explanations.

Given the selection the search settled on, explains why a root was
left out and collects the non-blocking findings (unmet optional
requirements, several providers where one was expected).

Explanations are built from the catalog, not from the solver's
internals.  They follow the first requirement that cannot be met into
one of its providers, and stop at a component already on the chain.
The walk keeps its own stack and remembers the reason found for each
component, so shared providers are diagnosed once and long chains do
not grow the Python stack.  Chains deeper than ``MAX_DEPTH`` keep their
innermost cause and drop the links in between.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass

from src.core.models.capability import Requirement
from src.core.models.component import Component, ComponentRef
from src.core.models.plan import ConflictKind, ConflictReason, ResolutionWarning
from src.core.services.planner.progress import ProgressMonitor
from src.core.services.planner.resolver.slicer import Slice

logger = logging.getLogger(__name__)

MAX_DEPTH = 32


def _refs(components: Collection[Component]) -> tuple[ComponentRef, ...]:
    return tuple(sorted(c.ref for c in components))


def _names(refs: Collection[ComponentRef]) -> str:
    return ", ".join(str(r) for r in sorted(refs))


@dataclass
class _Frame:
    """A component whose requirements are being checked."""

    component: Component
    requirements: list[Requirement]
    index: int = 0
    # requirement and its viable providers, while one provider is diagnosed
    waiting: tuple[Requirement, list[Component], ComponentRef] | None = None


@dataclass
class _Found:
    reason: ConflictReason
    depth: int
    innermost: ConflictReason


class Explainer:
    """Explains conflicts and gathers warnings for one selection."""

    def __init__(
        self,
        slice_: Slice,
        selection: Collection[Component],
        monitor: ProgressMonitor | None = None,
    ) -> None:
        self.slice = slice_
        self.selected = {c.ref for c in selection}
        self.selection = sorted(selection, key=lambda c: c.ref)
        self.monitor = monitor
        self._found: dict[ComponentRef, _Found] = {}

    def _providers(self, requirement: Requirement) -> list[Component]:
        return sorted(
            self.slice.source.query(requirement.namespace, requirement.name, requirement.range),
            key=lambda c: c.ref,
        )

    def _checkpoint(self) -> None:
        if self.monitor is not None:
            self.monitor.checkpoint()

    # ── Conflicts ────────────────────────────────────────────────

    def explain(self, component: Component) -> ConflictReason:
        """Why *component* is not part of the selection."""
        if component.ref not in self._found:
            self._walk(component)
        return self._found[component.ref].reason

    def _walk(self, start: Component) -> None:
        active: set[ComponentRef] = set()
        stack: list[_Frame] = []

        def enter(component: Component) -> None:
            self._checkpoint()
            reason = self._own_conflict(component)
            if reason is not None:
                self._keep(component.ref, reason)
                return
            active.add(component.ref)
            stack.append(_Frame(component, [
                r for r in component.applicable_requirements(self.slice.env)
                if not r.optional and not component.satisfies(r)
            ]))

        def leave(reason: ConflictReason, depth: int = 1, innermost: ConflictReason | None = None) -> None:
            frame = stack.pop()
            active.discard(frame.component.ref)
            self._keep(frame.component.ref, reason, depth, innermost)

        enter(start)
        while stack:
            frame = stack[-1]
            ref = frame.component.ref

            if frame.waiting is not None:
                requirement, viable, provider = frame.waiting
                frame.waiting = None
                leave(*self._chained(ref, requirement, viable, self._found[provider]))
                continue

            if frame.index == len(frame.requirements):
                leave(ConflictReason(
                    kind=ConflictKind.VERSION_CONFLICT,
                    component=ref,
                    message=f"{ref} cannot be selected together with the other roots",
                ))
                continue

            requirement = frame.requirements[frame.index]
            frame.index += 1
            reason, viable = self._check_requirement(ref, requirement)
            if reason is not None:
                leave(reason)
                continue

            # providers already on the chain are only blocked by it, look further
            pending = [p for p in viable if p.ref not in active]
            if not pending:
                continue
            known = [p for p in pending if p.ref in self._found]
            if known:
                leave(*self._chained(ref, requirement, viable, self._found[known[0].ref]))
                continue
            frame.waiting = (requirement, viable, pending[0].ref)
            enter(pending[0])

    def _keep(
        self,
        ref: ComponentRef,
        reason: ConflictReason,
        depth: int = 1,
        innermost: ConflictReason | None = None,
    ) -> None:
        self._found[ref] = _Found(reason, depth, innermost or reason)

    def _chained(
        self,
        ref: ComponentRef,
        requirement: Requirement,
        viable: list[Component],
        cause: _Found,
    ) -> tuple[ConflictReason, int, ConflictReason]:
        message = f"{ref} requires {requirement}, but none of {_names(_refs(viable))} can be selected"
        nested, depth = cause.reason, cause.depth
        if depth >= MAX_DEPTH:
            message += f" ({depth - 1} intermediate requirements not shown)"
            nested, depth = cause.innermost, 1
        reason = ConflictReason(
            kind=ConflictKind.VERSION_CONFLICT,
            component=ref,
            requirement=requirement,
            message=message,
            blockers=_refs(viable),
            causes=(nested,),
        )
        return reason, depth + 1, cause.innermost

    def _own_conflict(self, component: Component) -> ConflictReason | None:
        """A reason that needs no look at the requirements, if any."""
        ref = component.ref

        if not component.is_applicable(self.slice.env):
            return ConflictReason(
                kind=ConflictKind.FILTER_MISMATCH,
                component=ref,
                message=f"{ref} does not apply to this environment (filter {component.filter})",
            )

        if ref in self.slice.removed:
            return ConflictReason(
                kind=ConflictKind.EXPLICIT_REMOVAL,
                component=ref,
                message=f"{ref} is removed by the request",
                blockers=(ref,),
            )

        if component.singleton:
            rivals = [
                c for c in self.selection
                if c.id == component.id and c.ref != ref and c.singleton
            ]
            if rivals:
                return ConflictReason(
                    kind=ConflictKind.VERSION_CONFLICT,
                    component=ref,
                    message=f"{ref} is a singleton and {_names(_refs(rivals))} is selected",
                    blockers=_refs(rivals),
                )
        return None

    def _check_requirement(
        self,
        ref: ComponentRef,
        requirement: Requirement,
    ) -> tuple[ConflictReason | None, list[Component]]:
        """A reason the requirement fails outright, or the providers to look into."""
        env = self.slice.env
        candidates = self._providers(requirement)

        if not candidates:
            other = sorted(
                self.slice.source.query(requirement.namespace, requirement.name),
                key=lambda c: c.ref,
            )
            message = f"{ref} requires {requirement}, which nothing provides"
            if other:
                message += f" (available: {_names(_refs(other))})"
            return ConflictReason(
                kind=ConflictKind.MISSING_CAPABILITY,
                component=ref,
                requirement=requirement,
                message=message,
            ), []

        if any(c.ref in self.selected for c in candidates):
            return None, []

        removed = [c for c in candidates if c.ref in self.slice.removed]
        viable = [
            c for c in candidates
            if c.ref not in self.slice.removed and c.is_applicable(env)
        ]
        if viable:
            return None, viable

        if removed:
            return ConflictReason(
                kind=ConflictKind.EXPLICIT_REMOVAL,
                component=ref,
                requirement=requirement,
                message=(
                    f"{ref} requires {requirement}, "
                    f"but {_names(_refs(removed))} is removed by the request"
                ),
                blockers=_refs(removed),
            ), []
        return ConflictReason(
            kind=ConflictKind.FILTER_MISMATCH,
            component=ref,
            requirement=requirement,
            message=(
                f"{ref} requires {requirement}, but no provider applies "
                f"to this environment ({_names(_refs(candidates))})"
            ),
            blockers=_refs(candidates),
        ), []

    # ── Warnings ─────────────────────────────────────────────────

    def warnings(self) -> list[ResolutionWarning]:
        """Non-blocking findings about the selected components."""
        found: list[ResolutionWarning] = []
        env = self.slice.env
        for component in self.selection:
            self._checkpoint()
            for requirement in component.applicable_requirements(env):
                if component.satisfies(requirement):
                    continue
                providers = [p for p in self._providers(requirement) if p.ref in self.selected]
                if requirement.optional and not providers:
                    found.append(ResolutionWarning(
                        component=component.ref,
                        requirement=requirement,
                        message=f"optional requirement {requirement} is not met",
                    ))
                elif not requirement.multiple and len(providers) > 1:
                    found.append(ResolutionWarning(
                        component=component.ref,
                        requirement=requirement,
                        message=(
                            f"{requirement} is met by several components: "
                            f"{_names(_refs(providers))}"
                        ),
                    ))
        if found:
            logger.debug("%d resolution warnings", len(found))
        return found
