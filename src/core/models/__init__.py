"""
Domain models — Pydantic types for the planner.

All models are re-exported here for convenient access:

    from src.core.models import Component, Profile, ChangeRequest, Plan
"""

from src.core.models.capability import IDENTITY_NAMESPACE, Capability, Relationship, Requirement
from src.core.models.component import Component, ComponentRef
from src.core.models.filters import FilterSyntaxError, filter_matches, parse_filter
from src.core.models.plan import (
    ConflictKind,
    ConflictReason,
    Operand,
    OperandKind,
    Plan,
    RequestStatus,
    ResolutionResult,
    ResolutionStats,
    ResolutionStatus,
    ResolutionWarning,
    RootState,
    RootStatus,
)
from src.core.models.profile import Profile, apply_plan
from src.core.models.request import ChangeRequest
from src.core.models.version import ANY_RANGE, Version, VersionRange

__all__ = [
    # version.py
    "ANY_RANGE",
    # capability.py
    "Capability",
    # request.py
    "ChangeRequest",
    # component.py
    "Component",
    "ComponentRef",
    # plan.py
    "ConflictKind",
    "ConflictReason",
    # filters.py
    "FilterSyntaxError",
    "IDENTITY_NAMESPACE",
    "Operand",
    "OperandKind",
    "Plan",
    # profile.py
    "Profile",
    "Relationship",
    "RequestStatus",
    "Requirement",
    "ResolutionResult",
    "ResolutionStats",
    "ResolutionStatus",
    "ResolutionWarning",
    "RootState",
    "RootStatus",
    "Version",
    "VersionRange",
    "apply_plan",
    "filter_matches",
    "parse_filter",
]
