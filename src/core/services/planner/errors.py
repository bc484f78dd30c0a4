"""
Planner errors — the only hard failures of a resolution.

Conflicts are never raised; they shape the search and end up in the
``RequestStatus``.  These exceptions are converted into a
``ResolutionResult`` status at the planner boundary.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner failures."""


class MalformedRequestError(PlannerError):
    """The change request cannot be resolved as written."""


class ResolutionCancelled(PlannerError):
    """Cooperative cancellation was observed mid-resolution."""
