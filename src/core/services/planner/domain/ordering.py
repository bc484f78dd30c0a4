"""
L1 Domain — Plan synthesis and operand ordering (pure).

Diffs a selection against the installed set and orders the resulting
install/uninstall operands so that no intermediate state strands a
component without its providers:

    - an uninstall replaced by another version of the same id comes
      before that install,
    - dependents are uninstalled before the components they required,
    - providers are installed before the components that require them.

Ordering is Kahn's algorithm with a deterministic ready queue
(uninstalls first, then by identity).  Cycles are broken by appending
the leftover operands in the same order.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Mapping

from src.core.models.component import Component, ComponentRef
from src.core.models.plan import Operand, OperandKind

logger = logging.getLogger(__name__)

_KIND_RANK = {OperandKind.UNINSTALL: 0, OperandKind.INSTALL: 1}

NodeKey = tuple[int, ComponentRef]


def _key(operand: Operand) -> NodeKey:
    return (_KIND_RANK[operand.kind], operand.component.ref)


def _requires(dependent: Component, provider: Component, env: Mapping[str, str]) -> bool:
    """Whether *provider* satisfies an applicable requirement of *dependent*."""
    if dependent.ref == provider.ref:
        return False
    return any(provider.satisfies(r) for r in dependent.applicable_requirements(env))


def synthesize_operands(
    selection: Iterable[Component],
    installed: Iterable[Component],
    env: Mapping[str, str],
) -> list[Operand]:
    """Diff *selection* against *installed* and return ordered operands."""
    selected = {c.ref: c for c in selection}
    current = {c.ref: c for c in installed}

    operands = [Operand.uninstall(current[r]) for r in sorted(current) if r not in selected]
    operands += [Operand.install(selected[r]) for r in sorted(selected) if r not in current]
    return order_operands(operands, env)


def order_operands(operands: list[Operand], env: Mapping[str, str]) -> list[Operand]:
    """Topologically order operands (see module docstring)."""
    nodes: dict[NodeKey, Operand] = {_key(o): o for o in operands}
    successors: dict[NodeKey, set[NodeKey]] = {k: set() for k in nodes}

    uninstalls = [o for o in operands if o.kind == OperandKind.UNINSTALL]
    installs = [o for o in operands if o.kind == OperandKind.INSTALL]

    for old in uninstalls:
        for other in uninstalls:
            # old required other -> remove old first
            if _requires(old.component, other.component, env):
                successors[_key(old)].add(_key(other))
        for new in installs:
            if new.component.id == old.component.id:
                successors[_key(old)].add(_key(new))

    for new in installs:
        for other in installs:
            # new requires other -> install other first
            if _requires(new.component, other.component, env):
                successors[_key(other)].add(_key(new))

    in_degree: dict[NodeKey, int] = {k: 0 for k in nodes}
    for targets in successors.values():
        for target in targets:
            in_degree[target] += 1

    ready = [k for k, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ordered: list[Operand] = []
    while ready:
        key = heapq.heappop(ready)
        ordered.append(nodes[key])
        for successor in successors[key]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, successor)

    if len(ordered) < len(nodes):
        placed = {_key(o) for o in ordered}
        leftover = sorted(k for k in nodes if k not in placed)
        logger.debug(
            "Dependency cycle among %d operands, appending in identity order",
            len(leftover),
        )
        ordered.extend(nodes[k] for k in leftover)

    return ordered
