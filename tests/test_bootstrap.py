"""
End-to-end boot tests

Wires the default configuration through create_core() and boots it,
including the default integration probes.
"""

import pytest
import pytest_asyncio

from energy_flow.bootstrap import create_core, create_core_from_file
from energy_flow.common.errors import ConfigError, CriticalModuleLoadError
from energy_flow.domain.models.event import EventType
from energy_flow.domain.models.status import IntegrationHealth
from energy_flow.interface.config.schema import CoreConfig

from conftest import types_of


@pytest_asyncio.fixture
async def core():
    """Booted core with the default configuration."""
    instance = create_core()
    await instance.initialize()
    yield instance
    instance.shutdown()


class TestDefaultBoot:
    @pytest.mark.asyncio
    async def test_boot_loads_every_feature(self, core):
        status = core.orchestrator.get_status()

        assert status.initialized is True
        assert status.health is IntegrationHealth.HEALTHY
        assert list(status.loaded_modules) == [
            "core-systems",
            "data-storage",
            "pwa",
            "ui-components",
            "energy-tracking",
            "social-battery",
            "charts",
            "ai-insights",
        ]
        assert status.active_flow_count == 6

    @pytest.mark.asyncio
    async def test_probes_leave_no_records(self, core):
        assert core.store.get_counts() == {"energy": 0, "social": 0, "insights": 0}
        assert list(core.features["pwa"].sync_queue) == []
        assert list(core.features["ai-insights"].pending) == []
        assert core.features["pwa"].verifying is False
        history = types_of(core.bus.get_history())
        assert "integrator:initialization-complete" in history
        assert "integration:energy-charts-ready" in history
        assert "integration:social-ai-ready" in history

    @pytest.mark.asyncio
    async def test_verification_results_are_kept(self, core):
        results = core.orchestrator.get_probe_results()

        assert [r.name for r in results] == ["energy-chart", "social-ai", "connectivity", "data-flow"]
        assert all(r.passed and not r.skipped for r in results)
        assert core.orchestrator.get_failed_probes() == []
        summary = core.orchestrator.get_probe_summary()
        assert (summary.total, summary.passed, summary.failed) == (4, 4, 0)
        assert summary.success_rate == 100.0

    @pytest.mark.asyncio
    async def test_logged_energy_flows_to_charts_and_ai(self, core):
        charts = core.features["charts"]
        ai = core.features["ai-insights"]
        pending_before = len(ai.pending)

        core.bus.emit(
            EventType.ENERGY_LOGGED,
            {"id": "e1", "level": 8, "type": "physical"},
            "EnergyForm",
        )

        assert [e.id for e in core.store.get_energy_data()] == ["e1"]
        assert charts.last_chart_data["datasets"][1]["data"] == [8]
        assert len(ai.pending) == pending_before + 1
        assert ai.pending[-1]["data"]["type"] == "energy-pattern"

    @pytest.mark.asyncio
    async def test_offline_then_online(self, core):
        core.bus.emit(EventType.PWA_OFFLINE, {}, "PWA")

        assert core.store.get_state().connectivity.is_online is False
        assert len(core.router.get_active_flows()) == 2

        core.bus.emit(EventType.PWA_ONLINE, {}, "PWA")

        assert core.store.get_state().connectivity.is_online is True
        assert len(core.router.get_active_flows()) == 6

    @pytest.mark.asyncio
    async def test_sync_complete_broadcasts_to_features(self, core):
        core.bus.emit(EventType.DATA_SYNC_COMPLETE, {"synced": 4}, "PWA")

        for name in ("energy-tracking", "social-battery", "charts", "ai-insights"):
            assert core.features[name].last_external_update["data"] == {"synced": 4}


class TestConfiguredBoot:
    def test_cross_validation_failure(self):
        config = CoreConfig.model_validate({
            "modules": [{"name": "charts", "dependencies": ["ghost"]}],
            "flows": [],
        })

        with pytest.raises(ConfigError):
            create_core(config)

    @pytest.mark.asyncio
    async def test_unknown_modules_are_pass_through(self):
        config = CoreConfig.model_validate({
            "modules": [
                {"name": "core-systems", "priority": 1},
                {"name": "reminders", "priority": 6, "dependencies": ["core-systems"]},
            ],
            "flows": [],
            "orchestrator": {"verify_integration": False},
        })
        core = create_core(config)

        await core.initialize()
        try:
            assert core.resolver.get_loaded_modules() == ["core-systems", "reminders"]
            assert list(core.features) == ["core-systems"]
            assert "feature:reminders-ready" in types_of(core.bus.get_history())
        finally:
            core.shutdown()

    @pytest.mark.asyncio
    async def test_critical_option_error_aborts_boot(self, monkeypatch):
        config = CoreConfig()
        core = create_core(config)

        async def fail():
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(core.features["data-storage"], "setup", fail)

        with pytest.raises(CriticalModuleLoadError) as exc_info:
            await core.initialize()

        try:
            assert exc_info.value.module_name == "data-storage"
            assert core.orchestrator.get_status().health is IntegrationHealth.ERROR
            assert not core.resolver.is_loaded("energy-tracking")
        finally:
            core.shutdown()

    @pytest.mark.asyncio
    async def test_boot_while_offline(self):
        core = create_core()
        core.bus.emit(EventType.PWA_OFFLINE, {}, "PWA")

        await core.initialize()
        try:
            assert core.orchestrator.initialized is True
            results = {r.name: r for r in core.orchestrator.get_probe_results()}
            assert results["social-ai"].skipped is True
            assert results["social-ai"].passed is True
            assert results["energy-chart"].skipped is False
            assert core.orchestrator.get_probe_summary().skipped == 1
            assert core.store.get_counts() == {"energy": 0, "social": 0, "insights": 0}
        finally:
            core.shutdown()

    def test_from_file(self, tmp_path):
        path = tmp_path / "energy_flow.json"
        path.write_text('{"event_bus": {"history_size": 5}}', encoding="utf-8")

        core = create_core_from_file(path)

        assert core.bus.history_size == 5
        assert len(core.features) == 8
