"""
L3 Orchestration — get_provisioning_plan.

Ties the layers together for one resolution:

    validate → slice → encode → search → explain → plan

Conflicts are part of the result.  Only a malformed request or a
cancellation ends a resolution early, and both are turned into a
``ResolutionResult`` status here.
"""

from __future__ import annotations

import logging
import time

from src.core.models.component import Component
from src.core.models.plan import (
    Plan,
    RequestStatus,
    ResolutionResult,
    ResolutionStats,
    ResolutionStatus,
    RootState,
    RootStatus,
)
from src.core.models.profile import Profile
from src.core.models.request import ChangeRequest
from src.core.models.version import VersionRange
from src.core.services.planner.catalog import Catalog
from src.core.services.planner.domain.ordering import synthesize_operands
from src.core.services.planner.errors import MalformedRequestError, PlannerError, ResolutionCancelled
from src.core.services.planner.progress import ProgressMonitor
from src.core.services.planner.resolver.encoder import encode
from src.core.services.planner.resolver.explanation import Explainer
from src.core.services.planner.resolver.search import BranchAndBound
from src.core.services.planner.resolver.slicer import compute_slice
from src.core.services.planner.settings import PlannerSettings

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ── Validation ──────────────────────────────────────────────────────


def _known(component: Component, catalog: Catalog, profile: Profile) -> bool:
    if profile.is_installed(component):
        return True
    found = catalog.by_identity(component.id, VersionRange.exactly(component.version))
    return found.first() is not None


def validate_request(catalog: Catalog, profile: Profile, request: ChangeRequest) -> None:
    """Reject requests that cannot be resolved as written.

    Raises:
        MalformedRequestError: On a profile mismatch, a component both
            added and removed, or a component unknown to both the
            catalog and the profile.
    """
    if request.profile_id is not None and request.profile_id != profile.profile_id:
        raise MalformedRequestError(
            f"Request targets profile '{request.profile_id}', "
            f"not '{profile.profile_id}'"
        )

    removed = {c.ref for c in request.removals}
    both = sorted(c.ref for c in request.roots if c.ref in removed)
    if both:
        names = ", ".join(str(r) for r in both)
        raise MalformedRequestError(f"Components both added and removed: {names}")

    unknown = sorted(
        c.ref for c in (*request.roots, *request.removals)
        if not _known(c, catalog, profile)
    )
    if unknown:
        names = ", ".join(str(r) for r in unknown)
        raise MalformedRequestError(f"Unknown components: {names}")


# ── Resolution ──────────────────────────────────────────────────────


def get_provisioning_plan(
    catalog: Catalog,
    profile: Profile,
    request: ChangeRequest,
    settings: PlannerSettings | None = None,
    monitor: ProgressMonitor | None = None,
) -> ResolutionResult:
    """Compute the plan that moves *profile* toward *request*.

    Args:
        catalog: Where new components come from.
        profile: The current installation state.
        request: Additions, removals and property changes.
        settings: Objective order, search budget, default environment.
        monitor: Progress reporting and cancellation.

    Returns:
        A ``ResolutionResult``; never raises for conflicts, malformed
        requests or cancellation.
    """
    settings = settings or PlannerSettings()
    monitor = monitor or ProgressMonitor()
    started = time.monotonic()

    try:
        return _resolve(catalog, profile, request, settings, monitor, started)
    except MalformedRequestError as e:
        logger.warning("Malformed request: %s", e)
        return ResolutionResult(
            status=ResolutionStatus.MALFORMED_REQUEST,
            error=str(e),
            stats=ResolutionStats(duration_ms=_elapsed_ms(started)),
        )
    except ResolutionCancelled as e:
        logger.info("%s", e)
        return ResolutionResult(
            status=ResolutionStatus.CANCELLED,
            error=str(e),
            stats=ResolutionStats(duration_ms=_elapsed_ms(started)),
        )


def _resolve(
    catalog: Catalog,
    profile: Profile,
    request: ChangeRequest,
    settings: PlannerSettings,
    monitor: ProgressMonitor,
    started: float,
) -> ResolutionResult:
    monitor.begin_phase("validate")
    validate_request(catalog, profile, request)
    env = {**settings.environment, **profile.environment(request.property_changes)}

    monitor.begin_phase("slice")
    slice_ = compute_slice(catalog, profile, request, env, monitor)

    monitor.begin_phase("encode")
    encoding = encode(slice_)

    monitor.begin_phase("search")
    search = BranchAndBound(
        encoding.num_vars,
        encoding.clauses,
        [encoding.terms[c] for c in settings.objective],
        encoding.decision_order,
        monitor=monitor,
        max_decisions=settings.max_decisions,
    )
    outcome = search.solve()
    if outcome.model is None:
        # All-false always satisfies the hard clauses.
        raise PlannerError("Hard constraints admit no assignment")
    selection = encoding.selection(outcome.model)

    monitor.begin_phase("explain")
    explainer = Explainer(slice_, selection, monitor)
    warnings = explainer.warnings()
    selected = {c.ref for c in selection}

    statuses: list[RootStatus] = []
    roots = [(c, False) for c in slice_.mandatory_roots] + [(c, True) for c in slice_.optional_roots]
    for root, optional in sorted(roots, key=lambda item: item[0].ref):
        satisfied = root.ref in selected
        statuses.append(RootStatus(
            component=root,
            state=RootState.SATISFIED if satisfied else RootState.CONFLICT,
            optional=optional,
            installed=profile.is_installed(root),
            reason=None if satisfied else explainer.explain(root),
            warnings=tuple(w for w in warnings if w.component == root.ref),
        ))

    conflicts = tuple(s.component for s in statuses if not s.optional and not s.satisfied)
    request_status = RequestStatus(roots=tuple(statuses), conflicts_with_installed_roots=conflicts)

    monitor.begin_phase("plan")
    operands = synthesize_operands(selection, profile.installed, env)
    plan = Plan(
        operands=tuple(operands),
        request_status=request_status,
        property_changes=dict(request.property_changes),
        warnings=tuple(warnings),
    )

    if not conflicts:
        status = ResolutionStatus.OK
    elif any(s.satisfied for s in statuses if not s.optional):
        status = ResolutionStatus.PARTIAL_CONFLICT
    else:
        status = ResolutionStatus.UNSATISFIABLE

    stats = ResolutionStats(
        variables=encoding.num_vars,
        clauses=len(encoding.clauses),
        decisions=outcome.decisions,
        optimal=outcome.optimal,
        cost={str(c): v for c, v in zip(settings.objective, outcome.cost)},
        duration_ms=_elapsed_ms(started),
    )

    for component in conflicts:
        logger.info("Root %s cannot be satisfied", component.ref)
    logger.info(
        "Resolved %s: %d operands, %d conflicts, %d warnings (%d decisions, %dms)",
        status, len(operands), len(conflicts), len(warnings), stats.decisions, stats.duration_ms,
    )
    return ResolutionResult(status=status, plan=plan, stats=stats)
