"""
L2 Resolver — Slicing.

Collects the components the solver has to reason about: the transitive
closure of applicable, greedy requirements starting from what stays
installed and what the request adds.  Nothing outside the slice is ever
considered.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from src.core.models.component import Component, ComponentRef
from src.core.models.profile import Profile
from src.core.models.request import ChangeRequest
from src.core.services.planner.catalog import Catalog, CompositeCatalog, InMemoryCatalog
from src.core.services.planner.progress import ProgressMonitor

logger = logging.getLogger(__name__)


@dataclass
class Slice:
    """The bounded problem handed to the encoder."""

    components: list[Component]                     # sorted by identity
    source: Catalog                                 # profile ∪ catalog
    env: dict[str, str]
    mandatory_roots: list[Component] = field(default_factory=list)
    optional_roots: list[Component] = field(default_factory=list)
    installed: frozenset[ComponentRef] = frozenset()     # installed and kept as candidates
    removed: frozenset[ComponentRef] = frozenset()
    excluded: frozenset[ComponentRef] = frozenset()      # in the slice but not installable here
    profile_installed: frozenset[ComponentRef] = frozenset()

    def __len__(self) -> int:
        return len(self.components)


def mandatory_roots_for(profile: Profile, request: ChangeRequest) -> list[Component]:
    """Installed roots that stay, plus the requested additions."""
    removed = {c.ref for c in request.removals}
    roots: dict[ComponentRef, Component] = {}
    for ref in profile.roots:
        component = profile.get(ref)
        if component is not None and ref not in removed:
            roots[ref] = component
    for component in request.additions:
        roots.setdefault(component.ref, component)
    return [roots[r] for r in sorted(roots)]


def compute_slice(
    catalog: Catalog,
    profile: Profile,
    request: ChangeRequest,
    env: dict[str, str],
    monitor: ProgressMonitor,
) -> Slice:
    """Walk requirements from the starting set and collect candidates."""
    source = CompositeCatalog([InMemoryCatalog(profile.installed), catalog])
    removed = frozenset(c.ref for c in request.removals)

    mandatory = mandatory_roots_for(profile, request)
    mandatory_refs = {c.ref for c in mandatory}
    optional = sorted(
        (c for c in request.optional_additions if c.ref not in mandatory_refs),
        key=lambda c: c.ref,
    )
    root_refs = mandatory_refs | {c.ref for c in optional}
    kept = [c for c in profile.installed if c.ref not in removed]

    included: dict[ComponentRef, Component] = {}
    excluded: set[ComponentRef] = set()
    queue: deque[Component] = deque()

    for component in [*mandatory, *optional, *kept]:
        if component.ref in included:
            continue
        included[component.ref] = component
        queue.append(component)

    while queue:
        component = queue.popleft()
        monitor.worked()
        monitor.checkpoint()

        if not component.is_applicable(env):
            # Roots and installed components stay as variables so they can
            # be reported or counted as churn; they are never expanded.
            excluded.add(component.ref)
            logger.debug("%s does not apply to this environment", component.ref)
            continue

        for requirement in component.applicable_requirements(env):
            if not requirement.greedy:
                continue
            for provider in source.query(requirement.namespace, requirement.name, requirement.range):
                if provider.ref in included or provider.ref in removed:
                    continue
                if not provider.is_applicable(env):
                    continue
                included[provider.ref] = provider
                queue.append(provider)

    components = [included[r] for r in sorted(included)]
    installed = frozenset(c.ref for c in kept if c.ref in included)

    logger.debug(
        "Slice: %d components (%d roots, %d installed, %d excluded)",
        len(components), len(root_refs), len(installed), len(excluded),
    )
    return Slice(
        components=components,
        source=source,
        env=env,
        mandatory_roots=mandatory,
        optional_roots=optional,
        installed=installed,
        removed=removed,
        excluded=frozenset(excluded),
        profile_installed=profile.installed_refs,
    )
