"""
Component catalog — read-only, queryable collections of components.

Queries return a ``QueryResult``: lazy (nothing is matched until it is
iterated) and restartable (every iteration runs the lookup again).
Results come in catalog insertion order; callers that care about
versions sort explicitly.

Bad input never fails a query: a malformed range string or an unknown
namespace simply matches nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Protocol

from src.core.models.capability import IDENTITY_NAMESPACE, Capability
from src.core.models.component import Component, ComponentRef
from src.core.models.version import VersionRange

logger = logging.getLogger(__name__)

ComponentFilter = Callable[[Component], bool]


class QueryResult:
    """A restartable, lazily evaluated sequence of components."""

    def __init__(self, source: Callable[[], Iterator[Component]]) -> None:
        self._source = source

    def __iter__(self) -> Iterator[Component]:
        return self._source()

    def to_list(self) -> list[Component]:
        return list(self)

    def first(self) -> Component | None:
        return next(iter(self), None)

    def sorted_by_version(self, descending: bool = False) -> list[Component]:
        return sorted(self, key=lambda c: (c.version, c.id), reverse=descending)

    def latest(self) -> Component | None:
        ordered = self.sorted_by_version(descending=True)
        return ordered[0] if ordered else None


_EMPTY = QueryResult(lambda: iter(()))


class Catalog(Protocol):
    """What the planner needs from a metadata source."""

    def query(
        self,
        namespace: str,
        name: str,
        range: VersionRange | str | None = None,
        filter: ComponentFilter | None = None,
    ) -> QueryResult: ...

    def by_identity(
        self,
        component_id: str,
        range: VersionRange | str | None = None,
    ) -> QueryResult: ...

    def __iter__(self) -> Iterator[Component]: ...


def _coerce_range(range: VersionRange | str | None) -> VersionRange | None:
    """Normalize a range argument; ``None`` signals a malformed one."""
    try:
        return VersionRange.coerce(range)
    except ValueError as e:
        logger.debug("Ignoring malformed range %r: %s", range, e)
        return None


class InMemoryCatalog:
    """A catalog over a fixed list of components.

    Duplicate identities are dropped (the first occurrence wins).
    """

    def __init__(self, components: Iterable[Component] = ()) -> None:
        self._components: list[Component] = []
        self._by_ref: dict[ComponentRef, Component] = {}
        self._by_capability: dict[tuple[str, str], list[tuple[Capability, Component]]] = {}

        for component in components:
            if component.ref in self._by_ref:
                logger.debug("Duplicate component %s ignored", component.ref)
                continue
            self._components.append(component)
            self._by_ref[component.ref] = component
            for cap in component.provided_capabilities:
                self._by_capability.setdefault((cap.namespace, cap.name), []).append(
                    (cap, component)
                )

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[Component]:
        return iter(tuple(self._components))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Component):
            return item.ref in self._by_ref
        return item in self._by_ref

    def get(self, ref: ComponentRef) -> Component | None:
        return self._by_ref.get(ref)

    def query(
        self,
        namespace: str,
        name: str,
        range: VersionRange | str | None = None,
        filter: ComponentFilter | None = None,
    ) -> QueryResult:
        wanted = _coerce_range(range)
        entries = self._by_capability.get((namespace, name))
        if wanted is None or not entries:
            return _EMPTY

        def generate() -> Iterator[Component]:
            seen: set[ComponentRef] = set()
            for cap, component in entries:
                if component.ref in seen or not wanted.contains(cap.version):
                    continue
                if filter is not None and not filter(component):
                    continue
                seen.add(component.ref)
                yield component

        return QueryResult(generate)

    def by_identity(
        self,
        component_id: str,
        range: VersionRange | str | None = None,
    ) -> QueryResult:
        return self.query(IDENTITY_NAMESPACE, component_id, range)


class CompositeCatalog:
    """Union of several catalogs, de-duplicated by identity.

    When two constituents hold the same ``(id, version)``, the one from
    the earlier constituent is returned.
    """

    def __init__(self, catalogs: Iterable[Catalog]) -> None:
        self._catalogs = tuple(catalogs)

    @property
    def catalogs(self) -> tuple[Catalog, ...]:
        return self._catalogs

    def __iter__(self) -> Iterator[Component]:
        return self._dedupe(iter(c) for c in self._catalogs)

    def query(
        self,
        namespace: str,
        name: str,
        range: VersionRange | str | None = None,
        filter: ComponentFilter | None = None,
    ) -> QueryResult:
        if _coerce_range(range) is None:
            return _EMPTY
        return QueryResult(
            lambda: self._dedupe(
                iter(c.query(namespace, name, range, filter)) for c in self._catalogs
            )
        )

    def by_identity(
        self,
        component_id: str,
        range: VersionRange | str | None = None,
    ) -> QueryResult:
        return self.query(IDENTITY_NAMESPACE, component_id, range)

    @staticmethod
    def _dedupe(sources: Iterable[Iterator[Component]]) -> Iterator[Component]:
        seen: set[ComponentRef] = set()
        for source in sources:
            for component in source:
                if component.ref not in seen:
                    seen.add(component.ref)
                    yield component
