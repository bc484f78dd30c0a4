"""
L1 Domain — Optimization criteria (pure).

The solver minimizes a cost vector compared lexicographically, one
entry per criterion, in the configured order.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Criterion(StrEnum):
    """What a cost vector entry counts."""

    ROOTS = "roots"            # mandatory roots left unsatisfied
    CHURN = "churn"            # installed components dropped without being asked
    OPTIONAL = "optional"      # optional requirements / optional roots left unmet
    VERSION = "version"        # newer versions of the same id passed over
    INSTALLED = "installed"    # new versions chosen where one is already installed
    PARSIMONY = "parsimony"    # components newly installed


DEFAULT_OBJECTIVE: tuple[Criterion, ...] = (
    Criterion.ROOTS,
    Criterion.CHURN,
    Criterion.OPTIONAL,
    Criterion.VERSION,
    Criterion.INSTALLED,
    Criterion.PARSIMONY,
)


def normalize_objective(order: Iterable[Criterion | str] | None) -> tuple[Criterion, ...]:
    """Validate a criterion order and complete it.

    Unknown names raise ``ValueError``; duplicates are dropped; criteria
    left out are appended in default order so every criterion is
    always ranked.
    """
    result: list[Criterion] = []
    for item in order or ():
        criterion = Criterion(str(item).strip().lower())
        if criterion not in result:
            result.append(criterion)
    for criterion in DEFAULT_OBJECTIVE:
        if criterion not in result:
            result.append(criterion)
    return tuple(result)
