"""
L2 Resolver — Branch-and-bound search.

A small DPLL solver over the encoded clauses that keeps the best
complete assignment found so far and prunes any partial assignment
whose lower bound already reaches it.  Costs are vectors compared
lexicographically.

Only choices that can matter are branched on:

    - variables a pure negative term wants true (roots, installed),
    - a provider for a clause whose selecting side is already true,
    - a provider that would keep a conjunction term (unmet optional
      requirement) from completing.

Once none is left every free variable is set false.  Setting a
variable false never breaks a clause that still has a free negative
literal, and never completes a term without one of the choices above
being open, so the completion is the cheapest extension of the
partial assignment.

The lower bound is the cost accumulated so far plus, for a set of
open clauses with pairwise disjoint providers, the cheapest provider
of each.

The search is exhaustive unless ``max_decisions`` is reached, in
which case the incumbent is returned with ``optimal=False``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.services.planner.progress import ProgressMonitor
from src.core.services.planner.resolver.encoder import Clause, Term

logger = logging.getLogger(__name__)

_CHECK_EVERY = 64


@dataclass
class SearchResult:
    """Best model found, its cost vector and search bookkeeping."""

    model: list[bool] | None      # indexed by variable, index 0 unused
    cost: tuple[int, ...]
    optimal: bool
    decisions: int


class BranchAndBound:
    """Lexicographic-cost DPLL with chronological backtracking.

    Args:
        num_vars: Variables are ``1..num_vars``.
        clauses: Hard clauses as tuples of signed literals.
        terms: One list of ``(weight, conjunction)`` terms per cost
            vector entry, most significant first.
        order: Variable priority; earlier variables are decided first
            and win ties between equally cheap providers.
        monitor: Checked for cancellation every few decisions.
        max_decisions: Decision budget; ``None`` for unbounded.
    """

    def __init__(
        self,
        num_vars: int,
        clauses: Sequence[Clause],
        terms: Sequence[Sequence[Term]],
        order: Sequence[int],
        monitor: ProgressMonitor | None = None,
        max_decisions: int | None = None,
    ) -> None:
        self.num_vars = num_vars
        self.clauses = list(clauses)
        self.monitor = monitor
        self.max_decisions = max_decisions

        n = num_vars
        self._rank = [n + v for v in range(n + 1)]
        for position, var in enumerate(order):
            self._rank[var] = min(self._rank[var], position)

        self._value = [0] * (n + 1)
        self._occurs: list[list[int]] = [[] for _ in range(2 * n + 1)]
        for index, clause in enumerate(self.clauses):
            for lit in clause:
                self._occurs[lit + n].append(index)

        self._terms = [list(t) for t in terms]
        self._term_hits = [[0] * len(t) for t in self._terms]
        self._term_occurs: list[list[tuple[int, int]]] = [[] for _ in range(2 * n + 1)]
        # price[v]: cost vector added by single-literal terms when v is set true
        self._price = [[0] * len(self._terms) for _ in range(n + 1)]
        for c, criterion_terms in enumerate(self._terms):
            for t, (weight, lits) in enumerate(criterion_terms):
                for lit in lits:
                    self._term_occurs[lit + n].append((c, t))
                if len(lits) == 1 and lits[0] > 0:
                    self._price[lits[0]][c] += weight
        self._cost = [0] * len(self._terms)

        # terms that can still be kept from completing by setting a variable true
        self._keep_terms = [
            (c, t) for c, criterion_terms in enumerate(self._terms)
            for t, (_, lits) in enumerate(criterion_terms)
            if any(lit < 0 for lit in lits)
        ]

        self._trail: list[int] = []
        self._trail_lim: list[int] = []
        self._stack: list[tuple[int, bool]] = []    # (decision literal, flipped)
        self._qhead = 0

        self.decisions = 0
        self.best_model: list[bool] | None = None
        self.best_cost: tuple[int, ...] | None = None

    # ── Assignment ───────────────────────────────────────────────

    def _lit_value(self, lit: int) -> int:
        v = self._value[abs(lit)]
        return v if lit > 0 else -v

    def _assign(self, lit: int) -> None:
        n = self.num_vars
        self._value[abs(lit)] = 1 if lit > 0 else -1
        self._trail.append(lit)
        for c, t in self._term_occurs[lit + n]:
            self._term_hits[c][t] += 1
            weight, lits = self._terms[c][t]
            if self._term_hits[c][t] == len(lits):
                self._cost[c] += weight

    def _undo_to(self, position: int) -> None:
        n = self.num_vars
        while len(self._trail) > position:
            lit = self._trail.pop()
            for c, t in self._term_occurs[lit + n]:
                weight, lits = self._terms[c][t]
                if self._term_hits[c][t] == len(lits):
                    self._cost[c] -= weight
                self._term_hits[c][t] -= 1
            self._value[abs(lit)] = 0
        self._qhead = min(self._qhead, position)

    # ── Propagation ──────────────────────────────────────────────

    def _examine(self, clause: Clause) -> bool:
        """Assign the last free literal of a unit clause; False on conflict."""
        free = 0
        last = 0
        for lit in clause:
            value = self._lit_value(lit)
            if value > 0:
                return True
            if value == 0:
                free += 1
                last = lit
        if free == 0:
            return False
        if free == 1:
            self._assign(last)
        return True

    def _propagate(self) -> bool:
        n = self.num_vars
        while self._qhead < len(self._trail):
            lit = self._trail[self._qhead]
            self._qhead += 1
            for index in self._occurs[-lit + n]:
                if not self._examine(self.clauses[index]):
                    return False
        return True

    # ── Choices ──────────────────────────────────────────────────

    def _open_clauses(self) -> list[list[int]]:
        """Free providers of every clause that only a true literal can still satisfy."""
        found = []
        for clause in self.clauses:
            providers = []
            for lit in clause:
                value = self._lit_value(lit)
                if value > 0 or (value == 0 and lit < 0):
                    break
                if value == 0:
                    providers.append(lit)
            else:
                if providers:
                    found.append(providers)
        return found

    def _keep_choices(self, pure: bool) -> list[int]:
        """Free variables that would keep a pending term from completing."""
        found = []
        for c, t in self._keep_terms:
            _, lits = self._terms[c][t]
            positive = [lit for lit in lits if lit > 0]
            if bool(positive) == pure:
                continue
            if any(self._lit_value(lit) < 0 for lit in lits):
                continue
            if any(self._lit_value(lit) == 0 for lit in positive):
                continue
            found.extend(-lit for lit in lits if lit < 0 and self._lit_value(lit) == 0)
        return found

    def _cheapest(self, providers: list[int]) -> list[int]:
        """Componentwise minimum price over *providers*."""
        return [min(self._price[p][c] for p in providers) for c in range(len(self._terms))]

    def _bound(self, open_clauses: list[list[int]]) -> tuple[int, ...]:
        bound = list(self._cost)
        used: set[int] = set()
        for providers in sorted(open_clauses, key=len):
            if used.isdisjoint(providers):
                used.update(providers)
                for c, price in enumerate(self._cheapest(providers)):
                    bound[c] += price
        return tuple(bound)

    def _choose(self, open_clauses: list[list[int]]) -> int | None:
        """Next variable to set true, or None when the completion is optimal."""
        pure = self._keep_choices(pure=True)
        if pure:
            return min(pure, key=lambda v: self._rank[v])
        if open_clauses:
            providers = min(open_clauses, key=len)
            return min(providers, key=lambda v: (self._price[v], self._rank[v]))
        keep = self._keep_choices(pure=False)
        if keep:
            return min(keep, key=lambda v: (self._price[v], self._rank[v]))
        return None

    # ── Search ───────────────────────────────────────────────────

    def _complete(self) -> None:
        """Set every free variable false and keep the model if it improves."""
        position = len(self._trail)
        for var in range(1, self.num_vars + 1):
            if self._value[var] == 0:
                self._assign(-var)
        cost = tuple(self._cost)
        if self.best_cost is None or cost < self.best_cost:
            self.best_cost = cost
            self.best_model = [False] + [self._value[v] > 0 for v in range(1, self.num_vars + 1)]
            logger.debug("Incumbent after %d decisions: cost=%s", self.decisions, cost)
        self._undo_to(position)

    def _backtrack(self) -> bool:
        """Flip the deepest unflipped decision; False when exhausted."""
        while self._stack:
            lit, flipped = self._stack.pop()
            self._undo_to(self._trail_lim.pop())
            if not flipped:
                self._trail_lim.append(len(self._trail))
                self._stack.append((-lit, True))
                self._assign(-lit)
                return True
        return False

    def solve(self) -> SearchResult:
        optimal = True
        if self.monitor is not None:
            self.monitor.checkpoint()

        for clause in self.clauses:
            if len(clause) == 1 and not self._examine(clause):
                return SearchResult(None, (), True, 0)
        if not self._propagate():
            return SearchResult(None, (), True, 0)

        while True:
            ok = self._propagate()
            open_clauses: list[list[int]] = []
            if ok:
                open_clauses = self._open_clauses()
                if self.best_cost is not None and self._bound(open_clauses) >= self.best_cost:
                    ok = False

            if ok:
                var = self._choose(open_clauses)
                if var is None:
                    self._complete()
                else:
                    if self.max_decisions is not None and self.decisions >= self.max_decisions \
                            and self.best_model is not None:
                        optimal = False
                        logger.info(
                            "Decision budget of %d reached, keeping best plan found",
                            self.max_decisions,
                        )
                        break
                    self.decisions += 1
                    if self.monitor is not None and self.decisions % _CHECK_EVERY == 0:
                        self.monitor.worked(_CHECK_EVERY)
                        self.monitor.checkpoint()
                    self._trail_lim.append(len(self._trail))
                    self._stack.append((var, False))
                    self._assign(var)
                    continue

            if not self._backtrack():
                break

        return SearchResult(
            model=self.best_model,
            cost=self.best_cost or (),
            optimal=optimal,
            decisions=self.decisions,
        )
