"""
L1 Domain — ``__init__.py`` re-exports the pure planner functions.

These functions have NO filesystem access and NO search. Pure
input→output.
"""

from src.core.services.planner.domain.objective import (  # noqa: F401
    DEFAULT_OBJECTIVE,
    Criterion,
    normalize_objective,
)
from src.core.services.planner.domain.ordering import (  # noqa: F401
    order_operands,
    synthesize_operands,
)
