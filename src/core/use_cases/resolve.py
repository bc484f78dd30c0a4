"""
Resolve use case — load catalog, profile and request, run the planner.

Optionally applies the resulting plan and saves the new profile.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from src.core.config.loader import (
    ConfigError,
    RequestSpec,
    build_change_request,
    load_catalog,
    load_request,
    load_settings,
)
from src.core.models.plan import ResolutionResult, ResolutionStatus
from src.core.models.profile import Profile, apply_plan
from src.core.persistence.profile_file import load_profile, save_profile
from src.core.services.planner import CompositeCatalog, ProgressMonitor, get_provisioning_plan

logger = logging.getLogger(__name__)

# Statuses whose plan may be applied to the profile
APPLICABLE_STATUSES = (ResolutionStatus.OK, ResolutionStatus.PARTIAL_CONFLICT)


@dataclass
class ResolveResult:
    """Outcome of one resolve invocation."""

    result: ResolutionResult | None = None
    profile: Profile | None = None
    profile_path: Path | None = None
    applied: bool = False
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error:
            return "error"
        return str(self.result.status) if self.result else "error"

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        if self.error:
            return {"error": self.error}

        result: dict = self.result.to_dict() if self.result else {}
        result["applied"] = self.applied
        if self.applied and self.profile is not None:
            result["profile"] = {
                "path": str(self.profile_path) if self.profile_path else None,
                "installed": [str(c.ref) for c in self.profile.installed],
                "roots": [str(r) for r in self.profile.roots],
            }
        return result


def resolve_files(
    catalog_paths: Sequence[Path],
    profile_path: Path | None = None,
    request_path: Path | None = None,
    request: RequestSpec | None = None,
    settings_path: Path | None = None,
    apply: bool = False,
    monitor: ProgressMonitor | None = None,
) -> ResolveResult:
    """Resolve a request given as files and/or an in-memory spec.

    Args:
        catalog_paths: One or more catalog YAML files, merged in order.
        profile_path: Profile JSON; missing means an empty profile.
        request_path: Optional request YAML.
        request: Extra request entries (e.g. from CLI options), merged
            after the file.
        settings_path: planner.yml; None searches upward from cwd.
        apply: Save the updated profile when the plan is usable.
        monitor: Progress/cancellation monitor for the planner.

    Returns:
        ResolveResult carrying the planner result or a config error.
    """
    out = ResolveResult(profile_path=profile_path)

    try:
        settings = load_settings(settings_path)
        catalogs = [load_catalog(p) for p in catalog_paths]
        spec = load_request(request_path) if request_path else RequestSpec()
    except ConfigError as e:
        out.error = str(e)
        return out

    if request is not None:
        spec = spec.merged(request)

    profile = load_profile(profile_path) if profile_path else Profile()
    catalog = CompositeCatalog(catalogs)

    try:
        change = build_change_request(spec, catalog, profile)
    except ConfigError as e:
        out.error = str(e)
        return out

    out.result = get_provisioning_plan(catalog, profile, change, settings=settings, monitor=monitor)
    out.profile = profile

    if apply:
        if profile_path is None:
            out.error = "--apply needs a profile file"
            return out
        if out.result.plan is not None and out.result.status in APPLICABLE_STATUSES:
            out.profile = apply_plan(profile, out.result.plan)
            save_profile(out.profile, profile_path)
            out.applied = True
            logger.info("Applied %d operands to %s", len(out.result.plan.operands), profile_path)
        else:
            logger.warning("Plan not applied (status: %s)", out.result.status)

    return out
