"""
L2 Resolver — Encoding.

Turns a slice into a propositional problem.  Each component in the
slice becomes a boolean variable (1-based, in identity order).

Hard clauses:
    - a selected component has a selected provider for each mandatory,
      applicable requirement:         ¬X ∨ P1 ∨ … ∨ Pn
    - two singleton versions of one id exclude each other:  ¬A ∨ ¬B
    - explicitly removed or non-applicable slice members:   ¬X

Soft terms, one list per criterion:  (weight, literals) costs
``weight`` when every literal in the conjunction holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations

from src.core.models.capability import Requirement
from src.core.models.component import Component, ComponentRef
from src.core.services.planner.domain.objective import Criterion
from src.core.services.planner.resolver.slicer import Slice

logger = logging.getLogger(__name__)

Clause = tuple[int, ...]
Term = tuple[int, tuple[int, ...]]


@dataclass
class Encoding:
    """Variables, clauses and weighted terms of one resolution."""

    components: list[Component]
    var_of: dict[ComponentRef, int]
    clauses: list[Clause] = field(default_factory=list)
    terms: dict[Criterion, list[Term]] = field(default_factory=dict)
    decision_order: list[int] = field(default_factory=list)

    @property
    def num_vars(self) -> int:
        return len(self.components)

    def component(self, var: int) -> Component:
        return self.components[var - 1]

    def selection(self, model: list[bool]) -> list[Component]:
        """Components set true in a model (indexed by variable)."""
        return [c for i, c in enumerate(self.components, start=1) if model[i]]


def provider_vars(
    slice_: Slice,
    var_of: dict[ComponentRef, int],
    requirement: Requirement,
) -> list[int]:
    """Variables of the slice members that satisfy *requirement*."""
    return sorted(
        var_of[p.ref]
        for p in slice_.source.query(requirement.namespace, requirement.name, requirement.range)
        if p.ref in var_of
    )


def encode(slice_: Slice) -> Encoding:
    """Build clauses and cost terms for *slice_*."""
    components = slice_.components
    var_of = {c.ref: i for i, c in enumerate(components, start=1)}
    enc = Encoding(
        components=components,
        var_of=var_of,
        terms={criterion: [] for criterion in Criterion},
    )

    mandatory = {c.ref for c in slice_.mandatory_roots}
    optional_roots = {c.ref for c in slice_.optional_roots}

    # ── Requirements ──
    for component in components:
        x = var_of[component.ref]
        if component.ref in slice_.excluded or component.ref in slice_.removed:
            enc.clauses.append((-x,))
            continue
        for requirement in component.applicable_requirements(slice_.env):
            if component.satisfies(requirement):
                continue
            providers = provider_vars(slice_, var_of, requirement)
            if not requirement.optional:
                enc.clauses.append((-x, *providers))
            elif requirement.greedy:
                enc.terms[Criterion.OPTIONAL].append((1, (x, *(-p for p in providers))))

    # ── Singletons ──
    by_id: dict[str, list[Component]] = {}
    for component in components:
        by_id.setdefault(component.id, []).append(component)

    for versions in by_id.values():
        singletons = [var_of[c.ref] for c in versions if c.singleton]
        for a, b in combinations(singletons, 2):
            enc.clauses.append((-a, -b))

    # ── Objective terms ──
    installed_ids = {r.id for r in slice_.profile_installed}
    for component in components:
        x = var_of[component.ref]
        ref = component.ref
        if ref in mandatory:
            enc.terms[Criterion.ROOTS].append((1, (-x,)))
        elif ref in optional_roots:
            enc.terms[Criterion.OPTIONAL].append((1, (-x,)))

        if ref in slice_.installed:
            enc.terms[Criterion.CHURN].append((1, (-x,)))
        else:
            enc.terms[Criterion.PARSIMONY].append((1, (x,)))
            if component.id in installed_ids:
                enc.terms[Criterion.INSTALLED].append((1, (x,)))

        newer = sum(1 for other in by_id[component.id] if other.version > component.version)
        if newer:
            enc.terms[Criterion.VERSION].append((newer, (x,)))

    # ── Decision heuristics ──
    def tier(component: Component) -> int:
        if component.ref in mandatory:
            return 0
        if component.ref in optional_roots:
            return 1
        if component.ref in slice_.installed:
            return 2
        return 3

    ordered = sorted(components, key=lambda c: (tier(c), c.ref))
    enc.decision_order = [var_of[c.ref] for c in ordered]

    logger.debug(
        "Encoded %d variables, %d clauses, %d cost terms",
        enc.num_vars, len(enc.clauses), sum(len(t) for t in enc.terms.values()),
    )
    return enc
