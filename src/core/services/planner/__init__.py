"""
Provisioning planner service — package re-exports.

    from src.core.services.planner import get_provisioning_plan

Each symbol lives in its single-responsibility module inside the
appropriate layer (domain → resolver → orchestration).
"""

# ── Catalog, settings, progress ──
from src.core.services.planner.catalog import (  # noqa: F401
    Catalog,
    CompositeCatalog,
    InMemoryCatalog,
    QueryResult,
)
from src.core.services.planner.errors import (  # noqa: F401
    MalformedRequestError,
    PlannerError,
    ResolutionCancelled,
)
from src.core.services.planner.progress import ProgressMonitor  # noqa: F401
from src.core.services.planner.settings import PlannerSettings  # noqa: F401

# ── L1: Domain ──
from src.core.services.planner.domain.objective import (  # noqa: F401
    DEFAULT_OBJECTIVE,
    Criterion,
)
from src.core.services.planner.domain.ordering import (  # noqa: F401
    order_operands,
    synthesize_operands,
)

# ── L3: Orchestration ──
from src.core.services.planner.orchestration.planner import (  # noqa: F401
    get_provisioning_plan,
    validate_request,
)
