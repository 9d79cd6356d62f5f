"""
Orchestrator tests

- single-flight initialize
- boot failure caching and typed errors
- integration probes with per-probe timeout
- error classification, relays, cross-module activation
- consistency monitoring
- module reinitialization
"""

import asyncio

import pytest
import pytest_asyncio

from energy_flow.application.flow.router import default_flows
from energy_flow.application.orchestrator.orchestrator import Orchestrator
from energy_flow.application.orchestrator.probes import IntegrationProbe, ProbeFailure, ProbeSkipped
from energy_flow.common.errors import (
    CriticalModuleLoadError,
    CycleDetectedError,
    IntegrationVerificationError,
    ModuleReinitializationError,
)
from energy_flow.domain.models.event import EventType
from energy_flow.domain.models.module import ModuleDescriptor
from energy_flow.domain.models.status import IntegrationHealth

from conftest import RecordingFeature, payloads, types_of


def module(name, priority=10, deps=()):
    return ModuleDescriptor.create(name, priority=priority, dependencies=deps)


class SlowFeature:
    def __init__(self, name):
        self.name = name
        self.calls = 0

    async def initialize(self):
        self.calls += 1
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture
async def make_orchestrator(bus, resolver, router):
    """Build orchestrators bound to the shared fixtures; shut them all down afterwards."""
    created = []

    def factory(**kwargs):
        kwargs.setdefault("reinit_pause_seconds", 0)
        orchestrator = Orchestrator(bus, resolver, router, **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        orchestrator.shutdown()


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_initialize_runs_once(self, bus, resolver, make_orchestrator):
        feature = SlowFeature("core")
        resolver.register_module(module("core", priority=1), feature)
        orchestrator = make_orchestrator()

        await asyncio.gather(
            orchestrator.initialize(),
            orchestrator.initialize(),
            orchestrator.initialize(),
        )
        await orchestrator.initialize()

        assert feature.calls == 1
        assert len(bus.get_history_by_type("integrator:initialization-start")) == 1
        assert len(bus.get_history_by_type("integrator:initialization-complete")) == 1
        assert orchestrator.initialized is True

    @pytest.mark.asyncio
    async def test_failed_attempt_is_cached(self, bus, resolver, make_orchestrator, recorded):
        calls = []
        resolver.register_module(
            module("core", priority=1), RecordingFeature("core", calls, RuntimeError("disk"))
        )
        orchestrator = make_orchestrator()

        results = await asyncio.gather(
            orchestrator.initialize(),
            orchestrator.initialize(),
            return_exceptions=True,
        )
        assert all(isinstance(r, CriticalModuleLoadError) for r in results)

        with pytest.raises(CriticalModuleLoadError):
            await orchestrator.initialize()

        assert calls == ["core"]
        assert orchestrator.initialized is False
        assert orchestrator.get_status().health is IntegrationHealth.ERROR
        error_types = [e["type"] for e in payloads(recorded, "error:occurred")]
        assert "integration-initialization-error" in error_types

    @pytest.mark.asyncio
    async def test_cycle_fails_before_any_load(self, bus, resolver, make_orchestrator):
        resolver.register_module(module("A", deps=["B"]))
        resolver.register_module(module("B", deps=["A"]))
        orchestrator = make_orchestrator()

        with pytest.raises(CycleDetectedError):
            await orchestrator.initialize()

        history = types_of(bus.get_history())
        assert "app:initialization-start" not in history
        assert "feature:loaded" not in history


class TestIntegrationProbes:
    @pytest.mark.asyncio
    async def test_probe_timeout_is_reported(self, resolver, make_orchestrator):
        async def hang():
            await asyncio.sleep(10)

        async def ok():
            return None

        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(
            probes=[IntegrationProbe("slow", hang), IntegrationProbe("fast", ok)],
            probe_timeout_seconds=0.05,
        )

        with pytest.raises(IntegrationVerificationError) as exc_info:
            await orchestrator.initialize()

        assert list(exc_info.value.failed_probes) == ["slow"]
        assert "slow" in exc_info.value.failed_probes["slow"]

    @pytest.mark.asyncio
    async def test_all_failures_are_collected(self, resolver, make_orchestrator):
        async def broken():
            raise ProbeFailure("no chart update")

        async def also_broken():
            raise RuntimeError("flow missing")

        async def ok():
            return None

        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(
            probes=[
                IntegrationProbe("energy-chart", broken),
                IntegrationProbe("connectivity", ok),
                IntegrationProbe("data-flow", also_broken),
            ],
        )

        with pytest.raises(IntegrationVerificationError) as exc_info:
            await orchestrator.initialize()

        assert exc_info.value.failed_probes == {
            "energy-chart": "no chart update",
            "data-flow": "flow missing",
        }
        assert orchestrator.get_status().health is IntegrationHealth.ERROR

        results = orchestrator.get_probe_results()
        assert [(r.name, r.passed) for r in results] == [
            ("energy-chart", False),
            ("connectivity", True),
            ("data-flow", False),
        ]
        assert [r.name for r in orchestrator.get_failed_probes()] == ["energy-chart", "data-flow"]
        assert all(r.duration_ms >= 0 for r in results)
        summary = orchestrator.get_probe_summary()
        assert (summary.total, summary.passed, summary.failed) == (3, 1, 2)
        assert summary.success_rate == pytest.approx(100 / 3)

    @pytest.mark.asyncio
    async def test_skipped_check_counts_as_passed(self, resolver, make_orchestrator):
        async def not_applicable():
            raise ProbeSkipped("flow disabled")

        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(probes=[IntegrationProbe("social-ai", not_applicable)])

        await orchestrator.initialize()

        [result] = orchestrator.get_probe_results()
        assert result.passed is True
        assert result.skipped is True
        assert result.error == "flow disabled"
        assert orchestrator.get_probe_summary().to_dict()["skipped"] == 1

    @pytest.mark.asyncio
    async def test_verification_window_events(self, bus, resolver, make_orchestrator):
        seen = []

        async def check():
            seen.append(types_of(bus.get_history())[-1])

        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(probes=[IntegrationProbe("window", check)])

        await orchestrator.initialize()

        assert seen == ["integrator:verification-start"]
        assert "integrator:verification-complete" in types_of(bus.get_history())

    @pytest.mark.asyncio
    async def test_nothing_to_verify_leaves_empty_results(self, resolver, make_orchestrator):
        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator()

        await orchestrator.initialize()

        assert orchestrator.get_probe_results() == []
        assert orchestrator.get_probe_summary().success_rate == 0.0

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self, resolver, make_orchestrator):
        started = []

        def probe(name):
            async def check():
                started.append(name)
                await asyncio.sleep(0.05)
            return IntegrationProbe(name, check)

        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(
            probes=[probe("a"), probe("b"), probe("c")],
            probe_timeout_seconds=0.12,
        )

        await orchestrator.initialize()

        assert sorted(started) == ["a", "b", "c"]


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_before_and_after_boot(self, resolver, router, make_orchestrator):
        for edge in default_flows():
            router.register_flow(edge)
        resolver.register_module(module("core", priority=1))
        resolver.register_module(module("charts", priority=4, deps=["core"]))
        orchestrator = make_orchestrator()

        before = orchestrator.get_status()
        assert before.initialized is False
        assert before.health is IntegrationHealth.WARNING

        await orchestrator.initialize()

        status = orchestrator.get_status()
        assert status.health is IntegrationHealth.HEALTHY
        assert status.loaded_modules == ("core", "charts")
        assert status.loaded_module_count == 2
        assert status.active_flow_count == 6
        assert status.to_dict()["health"] == "healthy"

    @pytest.mark.asyncio
    async def test_failed_consistency_check_warns(self, store, resolver, make_orchestrator, recorded, monkeypatch):
        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator()
        await orchestrator.initialize()

        monkeypatch.setattr(store, "get_counts", lambda: {"energy": -1, "social": 0, "insights": 0})

        assert orchestrator.check_consistency() is False
        status = orchestrator.get_status()
        assert status.health is IntegrationHealth.WARNING
        assert status.last_consistency_check is not None
        assert len(payloads(recorded, "integration:consistency-warning")) == 1


class TestEventHandling:
    @pytest.mark.asyncio
    async def test_error_classification(self, bus, make_orchestrator, recorded):
        make_orchestrator()

        bus.emit(EventType.ERROR_OCCURRED, {"type": "data-flow-error", "source": "charts"}, "Test")
        bus.emit(EventType.ERROR_OCCURRED, {"type": "pwa-initialization-error"}, "Test")

        recovery = payloads(recorded, "integration:recovery-attempt")
        assert recovery == [
            {"type": "data-flow", "original_error": {"type": "data-flow-error", "source": "charts"}}
        ]
        logged = payloads(recorded, "integration:error-logged")
        assert logged[0]["error_data"] == {"type": "pwa-initialization-error"}

    @pytest.mark.asyncio
    async def test_relays(self, bus, make_orchestrator, recorded):
        make_orchestrator()

        bus.emit(EventType.ENERGY_LOGGED, {"id": "e1"}, "EnergyForm")
        bus.emit(EventType.AI_INSIGHT_GENERATED, {"id": "i1"}, "AI")

        energy_flow = payloads(recorded, "integration:energy-data-flow")[0]
        assert energy_flow["energy_data"] == {"id": "e1"}
        assert energy_flow["targets"] == ["charts", "ai-insights"]
        insight_flow = payloads(recorded, "integration:ai-insight-flow")[0]
        assert insight_flow["targets"] == ["pwa", "charts"]

    @pytest.mark.asyncio
    async def test_cross_module_activation(self, resolver, make_orchestrator, recorded):
        resolver.register_module(module("energy-tracking", priority=3))
        resolver.register_module(module("social-battery", priority=3))
        resolver.register_module(
            module("charts", priority=4, deps=["energy-tracking", "social-battery"])
        )
        orchestrator = make_orchestrator()

        await orchestrator.initialize()

        integrated = [d["feature"] for d in payloads(recorded, "integrator:feature-integrated")]
        assert integrated == ["energy-tracking", "social-battery", "charts"]
        assert payloads(recorded, "integration:energy-charts-ready") == [
            {"message": "Energy tracking and charts integration activated"}
        ]
        assert "integration:social-ai-ready" not in types_of(recorded)
        assert "integrator:app-ready" in types_of(recorded)


class TestMonitoring:
    @pytest.mark.asyncio
    async def test_activity_triggers_debounced_check(self, bus, resolver, make_orchestrator):
        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(debounce_seconds=0.02, consistency_interval_seconds=60)
        await orchestrator.initialize()
        assert orchestrator.get_status().last_consistency_check is None

        for _ in range(5):
            bus.emit("nav:changed", {"view": "charts"}, "Nav")
        await asyncio.sleep(0.1)

        assert orchestrator.get_status().last_consistency_check is not None

    @pytest.mark.asyncio
    async def test_failed_check_does_not_retrigger_itself(
        self, bus, store, resolver, make_orchestrator, monkeypatch
    ):
        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(debounce_seconds=0.02, consistency_interval_seconds=60)
        await orchestrator.initialize()
        monkeypatch.setattr(store, "get_counts", lambda: {"energy": -1, "social": 0, "insights": 0})

        bus.emit("nav:changed", {"view": "charts"}, "Nav")
        await asyncio.sleep(0.2)

        assert len(bus.get_history_by_type("integration:consistency-warning")) == 1

    @pytest.mark.asyncio
    async def test_periodic_check(self, resolver, make_orchestrator):
        resolver.register_module(module("core", priority=1))
        orchestrator = make_orchestrator(consistency_interval_seconds=0.02)
        await orchestrator.initialize()

        await asyncio.sleep(0.1)

        assert orchestrator.get_status().last_consistency_check is not None


class TestReinitialize:
    @pytest.mark.asyncio
    async def test_reinitialize_toggles_module(self, bus, resolver, make_orchestrator):
        resolver.register_module(module("core", priority=1))
        resolver.register_module(module("charts", priority=4, deps=["core"]))
        orchestrator = make_orchestrator()
        await orchestrator.initialize()

        await orchestrator.reinitialize_module("charts")

        history = [
            e.type for e in bus.get_history()
            if e.type in ("feature:disabled", "feature:enabled", "integration:feature-reinitialized")
        ]
        assert history == [
            "feature:disabled",
            "feature:enabled",
            "integration:feature-reinitialized",
        ]
        # 다시 로드하지 않음
        assert resolver.is_loaded("charts") is False
        assert resolver.get_descriptor("charts").enabled is True

    @pytest.mark.asyncio
    async def test_reinitialize_unknown_module(self, make_orchestrator, recorded):
        orchestrator = make_orchestrator()

        with pytest.raises(ModuleReinitializationError) as exc_info:
            await orchestrator.reinitialize_module("ghost")

        assert exc_info.value.module_name == "ghost"
        error = payloads(recorded, "error:occurred")[0]
        assert error["type"] == "feature-reinitialization-error"
        assert error["module"] == "ghost"


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_releases_subscriptions(self, bus, resolver, router):
        orchestrator = Orchestrator(bus, resolver, router, consistency_interval_seconds=0.02)
        resolver.register_module(module("core", priority=1))
        await orchestrator.initialize()

        orchestrator.shutdown()

        assert bus.listener_count(EventType.ERROR_OCCURRED) == 0
        assert bus.listener_count("*") == 0
        checked = orchestrator.get_status().last_consistency_check
        await asyncio.sleep(0.06)
        assert orchestrator.get_status().last_consistency_check == checked
