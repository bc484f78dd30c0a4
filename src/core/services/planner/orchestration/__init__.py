"""L3 Orchestration — top-level entry points of the planner."""

from src.core.services.planner.orchestration.planner import (  # noqa: F401
    get_provisioning_plan,
    validate_request,
)
