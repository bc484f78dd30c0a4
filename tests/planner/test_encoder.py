"""
Planner — encoding a slice into clauses and cost terms.
"""

from __future__ import annotations

from src.core.models import ChangeRequest, Profile
from src.core.services.planner import InMemoryCatalog, ProgressMonitor
from src.core.services.planner.domain.objective import Criterion
from src.core.services.planner.resolver import compute_slice, encode
from tests.planner.simulated_catalogs import (
    EMF,
    LIB_1,
    LIB_2,
    SDK,
    SDK_CATALOG,
    SDK_PART_1,
    component,
    needs,
    sdk_profile,
)


def _slice(catalog, profile, request, env=None):
    return compute_slice(catalog, profile, request, env or {}, ProgressMonitor())


class TestEncode:
    def test_requirement_clause(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)

        encoding = encode(_slice(SDK_CATALOG, profile, request))

        sdk, part = encoding.var_of[SDK.ref], encoding.var_of[SDK_PART_1.ref]
        assert (-sdk, part) in encoding.clauses
        assert encoding.terms[Criterion.ROOTS] == [(1, (-sdk,))]

    def test_singleton_exclusion_and_version_rank(self):
        app = component("app", "1.0.0", requires=[needs("lib")])
        catalog = InMemoryCatalog([app, LIB_1, LIB_2])
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(app)

        encoding = encode(_slice(catalog, profile, request))

        one, two = encoding.var_of[LIB_1.ref], encoding.var_of[LIB_2.ref]
        assert (-one, -two) in encoding.clauses
        assert (1, (one,)) in encoding.terms[Criterion.VERSION]
        assert all(lits != (two,) for _, lits in encoding.terms[Criterion.VERSION])

    def test_missing_provider_forces_false(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(EMF)

        encoding = encode(_slice(SDK_CATALOG, profile, request))

        assert (encoding.var_of[EMF.ref] * -1,) in encoding.clauses

    def test_decision_order_starts_with_roots(self):
        profile = sdk_profile()
        request = ChangeRequest.for_profile(profile).add(EMF)

        encoding = encode(_slice(SDK_CATALOG, profile, request))

        first = [encoding.component(v) for v in encoding.decision_order[:2]]
        assert set(first) == {EMF, SDK}
