"""
Configuration loader — reads planner.yml, catalogs and requests.

Reads YAML, validates against Pydantic schemas, and returns typed
domain objects.  Every failure surfaces as ``ConfigError`` carrying the
offending path.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.core.models.component import Component, ComponentRef
from src.core.models.profile import Profile
from src.core.models.request import ChangeRequest
from src.core.models.version import Version, VersionRange
from src.core.services.planner.catalog import Catalog, InMemoryCatalog
from src.core.services.planner.settings import PlannerSettings

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "planner.yml"

__all__ = [
    "SETTINGS_FILE",
    "ConfigError",
    "PlannerSettings",
    "RequestSpec",
    "build_change_request",
    "find_settings_file",
    "load_catalog",
    "load_request",
    "load_settings",
]


class ConfigError(Exception):
    """Raised when a configuration, catalog or request file is invalid or missing."""


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for planner.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to planner.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"File not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


# ── Settings ────────────────────────────────────────────────────────


def load_settings(path: Path | None = None) -> PlannerSettings:
    """Load planner settings, applying environment overrides.

    Without a file (none given and none found upward) the defaults are
    used.  ``PLANNER_OBJECTIVE`` (comma-separated criteria) and
    ``PLANNER_MAX_DECISIONS`` (an integer, or ``none``) override the file.

    Raises:
        ConfigError: If the file or an override is invalid.
    """
    if path is None:
        path = find_settings_file()

    data: dict[str, Any] = {}
    if path is not None:
        logger.debug("Loading planner settings from %s", path)
        data = _read_yaml(path)
        # The YAML may wrap everything under a "planner" key or be flat
        if isinstance(data.get("planner"), dict):
            data = data["planner"]

    objective = os.environ.get("PLANNER_OBJECTIVE")
    if objective:
        data["objective"] = objective

    budget = os.environ.get("PLANNER_MAX_DECISIONS")
    if budget:
        if budget.strip().lower() == "none":
            data["max_decisions"] = None
        else:
            try:
                data["max_decisions"] = int(budget)
            except ValueError as e:
                raise ConfigError(f"PLANNER_MAX_DECISIONS must be an integer, got {budget!r}") from e

    try:
        settings = PlannerSettings.model_validate(data)
    except (ValidationError, ValueError) as e:
        source = path or "environment"
        raise ConfigError(f"Invalid planner settings ({source}): {e}") from e

    logger.debug(
        "Objective: %s, max decisions: %s",
        ", ".join(settings.objective), settings.max_decisions,
    )
    return settings


# ── Catalog ─────────────────────────────────────────────────────────


def load_catalog(path: Path) -> InMemoryCatalog:
    """Load a component catalog from YAML (``components:`` list).

    Raises:
        ConfigError: If the file is missing or a component is invalid.
    """
    data = _read_yaml(path)
    entries = data.get("components", [])
    if not isinstance(entries, list):
        raise ConfigError(f"'components' in {path} must be a list")

    components: list[Component] = []
    for index, entry in enumerate(entries):
        try:
            components.append(Component.model_validate(entry))
        except ValidationError as e:
            label = entry.get("id", f"#{index}") if isinstance(entry, dict) else f"#{index}"
            raise ConfigError(f"Invalid component {label} in {path}: {e}") from e

    catalog = InMemoryCatalog(components)
    logger.info("Loaded catalog %s with %d components", path.name, len(catalog))
    return catalog


# ── Requests ────────────────────────────────────────────────────────


class RequestSpec(BaseModel):
    """A change request as written in a file or on the command line.

    Components are named ``id`` (highest available version) or
    ``id@version``.
    """

    model_config = ConfigDict(extra="forbid")

    profile: str | None = None
    install: list[str] = Field(default_factory=list)
    install_optional: list[str] = Field(default_factory=list)
    remove: list[str] = Field(default_factory=list)
    properties: dict[str, str | None] = Field(default_factory=dict)

    def merged(self, other: RequestSpec) -> RequestSpec:
        """Combine with *other*; *other* wins on properties and profile."""
        return RequestSpec(
            profile=other.profile or self.profile,
            install=self.install + other.install,
            install_optional=self.install_optional + other.install_optional,
            remove=self.remove + other.remove,
            properties={**self.properties, **other.properties},
        )


def load_request(path: Path) -> RequestSpec:
    """Load a request file.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    data = _read_yaml(path)
    try:
        spec = RequestSpec.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid request in {path}: {e}") from e
    logger.debug(
        "Loaded request %s: %d installs, %d removals",
        path.name, len(spec.install) + len(spec.install_optional), len(spec.remove),
    )
    return spec


def _lookup(text: str, catalog: Catalog, profile: Profile, prefer_installed: bool) -> list[Component]:
    """Components named by *text*.

    An unknown name yields a bare placeholder so that the planner can
    report it as a malformed request.
    """
    text = text.strip()
    if "@" in text:
        try:
            ref = ComponentRef.parse(text)
        except ValueError as e:
            raise ConfigError(f"Invalid component reference {text!r}: {e}") from e
        found = profile.get(ref) or catalog.by_identity(ref.id, VersionRange.exactly(ref.version)).first()
        return [found or Component(id=ref.id, version=ref.version)]

    if not text:
        raise ConfigError("Empty component reference")

    if prefer_installed:
        installed = profile.installed_versions(text)
        if installed:
            return installed

    candidates = [*catalog.by_identity(text), *profile.installed_versions(text)]
    if not candidates:
        return [Component(id=text, version=Version())]
    return [max(candidates, key=lambda c: c.version)]


def build_change_request(spec: RequestSpec, catalog: Catalog, profile: Profile) -> ChangeRequest:
    """Resolve the names in *spec* against the catalog and profile.

    Bare ids pick the highest version for installs, and every installed
    version for removals.
    """
    request = ChangeRequest(profile_id=spec.profile or profile.profile_id)
    for text in spec.install:
        request = request.add(*_lookup(text, catalog, profile, prefer_installed=False))
    for text in spec.install_optional:
        request = request.add_optional(*_lookup(text, catalog, profile, prefer_installed=False))
    for text in spec.remove:
        request = request.remove(*_lookup(text, catalog, profile, prefer_installed=True))
    for key, value in spec.properties.items():
        request = request.set_property(key, value)
    return request
