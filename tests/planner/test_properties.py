"""
Planner — invariants that hold for every resolution.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from src.core.models import ChangeRequest, Profile, ResolutionStatus, apply_plan
from src.core.services.planner import (
    InMemoryCatalog,
    PlannerSettings,
    ProgressMonitor,
    get_provisioning_plan,
)
from tests.planner.simulated_catalogs import (
    APP,
    CDT,
    EMF,
    LIB_1,
    LIB_2,
    SDK,
    SDK_CATALOG,
    SDK_PART_1,
    SINGLETON_CATALOG,
    capability,
    component,
    needs,
    needs_capability,
    sdk_profile,
)


def _wide_catalog(width: int = 6) -> InMemoryCatalog:
    """A root over `width` libraries, each in three singleton versions."""
    libs = [
        component(f"lib{i}", f"{v}.0.0", singleton=True)
        for i in range(width)
        for v in (1, 2, 3)
    ]
    root = component("root", "1.0.0", requires=[needs(f"lib{i}") for i in range(width)])
    return InMemoryCatalog([root, *libs])


class TestDeterminism:
    def test_same_inputs_same_json(self):
        profile = sdk_profile()
        request = ChangeRequest.for_profile(profile).add(CDT, EMF)

        first = get_provisioning_plan(SDK_CATALOG, profile, request)
        second = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert first.plan.to_json() == second.plan.to_json()

    def test_catalog_order_does_not_matter(self):
        forward = InMemoryCatalog([APP, LIB_1, LIB_2])
        backward = InMemoryCatalog([LIB_2, LIB_1, APP])
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(APP)

        a = get_provisioning_plan(forward, profile, request)
        b = get_provisioning_plan(backward, profile, request)

        assert a.plan.to_json() == b.plan.to_json()

    def test_concurrent_resolutions_agree(self):
        catalog = _wide_catalog()
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(catalog.by_identity("root").first())

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(
                lambda _: get_provisioning_plan(catalog, profile, request), range(8)
            ))

        rendered = {r.plan.to_json() for r in results}
        assert len(rendered) == 1
        assert all(r.status == ResolutionStatus.OK for r in results)


class TestSelectionInvariants:
    def test_at_most_one_singleton_per_id(self):
        catalog = _wide_catalog()
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(catalog.by_identity("root").first())

        result = get_provisioning_plan(catalog, profile, request)

        ids = [c.id for c in result.plan.installs]
        assert len(ids) == len(set(ids))
        # highest version of every library
        assert all(str(c.version) == "3.0.0" for c in result.plan.installs if c.id != "root")

    def test_selected_components_have_providers(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK, APP)
        catalog = InMemoryCatalog([*SDK_CATALOG, *SINGLETON_CATALOG])

        result = get_provisioning_plan(catalog, profile, request)

        selected = set(result.plan.installs)
        for comp in selected:
            for requirement in comp.requires:
                if requirement.optional:
                    continue
                assert any(p.satisfies(requirement) for p in selected)

    def test_optional_root_never_conflicts(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK).add_optional(EMF)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.status == ResolutionStatus.OK
        status = result.plan.request_status.status_of(EMF)
        assert status.optional
        assert not status.satisfied
        assert EMF not in result.plan.request_status.conflicts_with_installed_roots

    def test_optional_requirement_does_not_change_mandatory_outcome(self):
        profile = Profile()
        with_optional = ChangeRequest.for_profile(profile).add(SDK, CDT)
        without = ChangeRequest.for_profile(profile).add(SDK)

        a = get_provisioning_plan(SDK_CATALOG, profile, with_optional)
        b = get_provisioning_plan(SDK_CATALOG, profile, without)

        assert a.status == b.status == ResolutionStatus.OK
        assert set(b.plan.installs) <= set(a.plan.installs)

    def test_no_unrequested_installs(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK_PART_1)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.plan.installs == (SDK_PART_1,)


class TestProfileEvolution:
    def test_roots_survive_unrelated_request(self):
        profile = sdk_profile()
        request = ChangeRequest.for_profile(profile).add(CDT)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)
        updated = apply_plan(profile, result.plan)

        assert set(updated.roots) == {SDK.ref, CDT.ref}
        assert updated.is_installed(SDK_PART_1)

    def test_resolving_again_is_a_no_op(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)
        first = get_provisioning_plan(SDK_CATALOG, profile, request)
        updated = apply_plan(profile, first.plan)

        again = get_provisioning_plan(SDK_CATALOG, updated, request)

        assert again.status == ResolutionStatus.OK
        assert again.plan.operands == ()
        assert apply_plan(updated, again.plan) == updated

    def test_applying_twice_is_idempotent(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)
        plan = get_provisioning_plan(SDK_CATALOG, profile, request).plan

        once = apply_plan(profile, plan)
        twice = apply_plan(once, plan)

        assert once == twice


class TestMalformedRequests:
    def test_unknown_component(self):
        profile = Profile()
        ghost = component("ghost", "9.9.9")
        request = ChangeRequest.for_profile(profile).add(ghost)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.status == ResolutionStatus.MALFORMED_REQUEST
        assert result.plan is None
        assert "ghost@9.9.9" in result.error

    def test_add_and_remove_same_component(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK).remove(SDK)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.status == ResolutionStatus.MALFORMED_REQUEST
        assert "both added and removed" in result.error

    def test_wrong_profile(self):
        profile = Profile(profile_id="laptop")
        request = ChangeRequest(profile_id="server").add(SDK)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.status == ResolutionStatus.MALFORMED_REQUEST


class TestCancellation:
    def test_cancelled_before_start(self):
        monitor = ProgressMonitor()
        monitor.cancel()
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)

        result = get_provisioning_plan(SDK_CATALOG, profile, request, monitor=monitor)

        assert result.status == ResolutionStatus.CANCELLED
        assert result.plan is None

    def test_cancelled_from_callback(self):
        def stop_at_search(monitor: ProgressMonitor) -> None:
            if monitor.phase == "search":
                monitor.cancel()

        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)

        result = get_provisioning_plan(
            SDK_CATALOG, profile, request, monitor=ProgressMonitor(stop_at_search)
        )

        assert result.status == ResolutionStatus.CANCELLED
        assert "search" in result.error

    def test_phases_reported_in_order(self):
        seen: list[str] = []

        def record(monitor: ProgressMonitor) -> None:
            if not seen or seen[-1] != monitor.phase:
                seen.append(monitor.phase)

        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)
        get_provisioning_plan(SDK_CATALOG, profile, request, monitor=ProgressMonitor(record))

        assert seen == ["validate", "slice", "encode", "search", "explain", "plan"]


class TestSettings:
    def test_budget_marks_result_non_optimal(self):
        # the first provider tried drags in a dependency; proving a
        # cheaper provider exists takes more decisions than allowed
        api = capability("java.package", "org.api")
        impls = [
            component("impl.a", "1.0.0", provides=[api], requires=[needs("dep.a")]),
            component("impl.b", "1.0.0", provides=[api]),
            component("impl.c", "1.0.0", provides=[api]),
        ]
        root = component("root", "1.0.0", requires=[needs_capability("java.package", "org.api")])
        catalog = InMemoryCatalog([root, component("dep.a", "1.0.0"), *impls])
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(root)

        bounded = get_provisioning_plan(
            catalog, profile, request, settings=PlannerSettings(max_decisions=2)
        )
        unbounded = get_provisioning_plan(catalog, profile, request)

        assert bounded.stats.optimal is False
        assert bounded.status == ResolutionStatus.OK
        assert {c.id for c in bounded.plan.installs} == {"root", "impl.a", "dep.a"}
        assert unbounded.stats.optimal is True
        assert {c.id for c in unbounded.plan.installs} == {"root", "impl.b"}

    def test_large_slice_is_optimal_within_default_budget(self):
        # 60 ids in four singleton versions, each version pulling in the
        # next three ids through ranges of varying width
        ids = 60
        components = []
        for i in range(ids):
            for v in range(1, 5):
                requires = [
                    needs(f"mod{j}", f"[{(i + v + j) % 4 + 1}.0.0,5.0.0)")
                    for j in range(i + 1, min(i + 4, ids))
                ]
                components.append(component(f"mod{i}", f"{v}.0.0", singleton=True, requires=requires))
        catalog = InMemoryCatalog(components)
        profile = Profile()
        roots = [catalog.by_identity(f"mod{i}").latest() for i in range(3)]
        request = ChangeRequest.for_profile(profile).add(*roots)

        result = get_provisioning_plan(catalog, profile, request)

        assert result.status == ResolutionStatus.OK
        assert result.stats.variables > 200
        assert result.stats.optimal is True
        assert result.stats.cost["version"] == 0
        assert result.stats.cost["parsimony"] == ids
        assert all(str(c.version) == "4.0.0" for c in result.plan.installs)

    def test_optional_extras_installed_when_unbounded(self):
        extras = [component(f"extra{i}", "1.0.0") for i in range(3)]
        root = component(
            "root", "1.0.0",
            requires=[needs(f"extra{i}", optional=True) for i in range(3)],
        )
        catalog = InMemoryCatalog([root, *extras])
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(root)

        result = get_provisioning_plan(catalog, profile, request)

        assert result.stats.optimal is True
        assert set(result.plan.installs) == {root, *extras}
        assert result.plan.warnings == ()

    def test_exhaustive_search_is_optimal(self):
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(SDK)

        result = get_provisioning_plan(SDK_CATALOG, profile, request)

        assert result.stats.optimal is True
        assert result.stats.cost["roots"] == 0
        assert result.stats.cost["parsimony"] == 2

    @pytest.mark.parametrize("objective", [
        ["parsimony", "roots"],
        ["version", "roots", "parsimony"],
    ])
    def test_objective_order_changes_tradeoff(self, objective):
        # lib@2 is newer but installing app needs *some* lib: roots must
        # still win whenever it appears before parsimony
        profile = Profile()
        request = ChangeRequest.for_profile(profile).add(APP)

        result = get_provisioning_plan(
            SINGLETON_CATALOG, profile, request, settings=PlannerSettings(objective=objective)
        )

        if objective[0] == "parsimony":
            assert result.status == ResolutionStatus.UNSATISFIABLE
            assert result.plan.operands == ()
        else:
            assert result.status == ResolutionStatus.OK
            assert set(result.plan.installs) == {APP, LIB_2}
