"""
L2 Resolver — slice, encode, search, explain.

    compute_slice()  → Slice
    encode()         → Encoding
    BranchAndBound() → SearchResult
    Explainer        → ConflictReason / ResolutionWarning
"""

from src.core.services.planner.resolver.encoder import Encoding, encode  # noqa: F401
from src.core.services.planner.resolver.explanation import Explainer  # noqa: F401
from src.core.services.planner.resolver.search import BranchAndBound, SearchResult  # noqa: F401
from src.core.services.planner.resolver.slicer import Slice, compute_slice  # noqa: F401
