"""
Query use case — look up components providing a capability.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from src.core.config.loader import ConfigError, load_catalog
from src.core.models.component import Component
from src.core.models.version import VersionRange
from src.core.services.planner import CompositeCatalog


@dataclass
class QueryOutcome:
    """Components matching one capability query, highest version first."""

    namespace: str
    name: str
    range: str = ""
    components: list[Component] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "namespace": self.namespace,
            "name": self.name,
            "range": self.range,
            "components": [c.model_dump(mode="json") for c in self.components],
        }


def query_catalogs(
    catalog_paths: Sequence[Path],
    namespace: str,
    name: str,
    range: str | None = None,
) -> QueryOutcome:
    """Run a capability query over the given catalog files."""
    out = QueryOutcome(namespace=namespace, name=name, range=range or "")

    try:
        wanted = VersionRange.parse(range)
    except ValueError as e:
        out.error = f"Invalid range {range!r}: {e}"
        return out
    out.range = str(wanted)

    try:
        catalog = CompositeCatalog([load_catalog(p) for p in catalog_paths])
    except ConfigError as e:
        out.error = str(e)
        return out

    out.components = catalog.query(namespace, name, wanted).sorted_by_version(descending=True)
    return out
