"""
StateStore tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from energy_flow.application.state.store import MAX_AI_INSIGHTS
from energy_flow.common.errors import StateValidationError
from energy_flow.domain.models.event import EventType
from energy_flow.domain.models.state import EnergyEntry, EnergyType, SyncStatus

from conftest import payloads


def energy(entry_id="e1", level=7, **kw):
    return {"id": entry_id, "level": level, "type": "creative", **kw}


def social(entry_id="s1", level=5, **kw):
    return {"id": entry_id, "level": level, "interaction_type": "solo", **kw}


class TestEnergyEntries:
    def test_add_notifies_and_emits_chart_update(self, store, recorded):
        snapshots = []
        store.subscribe(snapshots.append)

        record = store.add_energy_entry(energy())

        assert isinstance(record, EnergyEntry)
        assert record.type is EnergyType.CREATIVE
        assert len(snapshots) == 1
        assert [e.id for e in snapshots[0].energy_data] == ["e1"]
        assert payloads(recorded, "chart:data-updated") == [{"type": "energy"}]

    def test_accepts_record_instances(self, store):
        entry = EnergyEntry(id="e2", level=3, type=EnergyType.PHYSICAL)

        assert store.add_energy_entry(entry) is entry
        assert store.get_energy_data() == [entry]

    def test_update_replaces_by_id(self, store):
        store.add_energy_entry(energy(level=4))

        assert store.update_energy_entry(energy(level=9)) is True
        assert [e.level for e in store.get_energy_data()] == [9]

    def test_update_unknown_id_is_noop(self, store, recorded):
        snapshots = []
        store.subscribe(snapshots.append)

        assert store.update_energy_entry(energy("missing")) is False
        assert snapshots == []
        assert payloads(recorded, "chart:data-updated") == []

    def test_delete(self, store, recorded):
        store.add_energy_entry(energy("e1"))
        store.add_energy_entry(energy("e2"))

        assert store.delete_energy_entry("e1") is True
        assert [e.id for e in store.get_energy_data()] == ["e2"]
        assert len(payloads(recorded, "chart:data-updated")) == 3

    def test_delete_unknown_id_is_noop(self, store):
        snapshots = []
        store.subscribe(snapshots.append)

        assert store.delete_energy_entry("missing") is False
        assert snapshots == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"level": 5, "type": "creative"},
            {"id": "e1", "level": 11, "type": "creative"},
            {"id": "e1", "level": 5, "type": "sleepy"},
            "not-a-dict",
        ],
    )
    def test_invalid_input_rejected(self, store, payload):
        with pytest.raises(StateValidationError) as exc_info:
            store.add_energy_entry(payload)

        assert exc_info.value.collection == "energy_data"
        assert store.get_energy_data() == []

    def test_date_range(self, store):
        now = datetime.now(timezone.utc)
        store.add_energy_entry(energy("old", timestamp=now - timedelta(days=10)))
        store.add_energy_entry(energy("new", timestamp=now))

        result = store.get_energy_data_by_date_range(now - timedelta(days=1), now)

        assert [e.id for e in result] == ["new"]

    def test_date_range_with_offsetless_timestamps(self, store):
        now = datetime.now(timezone.utc)
        store.add_energy_entry(energy("default"))
        store.add_energy_entry(energy("naive", timestamp="2024-01-01T10:00:00"))

        result = store.get_energy_data_by_date_range(now - timedelta(days=3650), now)
        naive_bounds = store.get_energy_data_by_date_range(
            datetime(2024, 1, 1), datetime(2024, 1, 2)
        )

        assert [e.id for e in result] == ["default", "naive"]
        assert [e.id for e in naive_bounds] == ["naive"]
        assert store.get_energy_data()[1].timestamp.tzinfo is not None

    def test_js_iso_timestamp_is_utc(self, store):
        record = store.add_energy_entry(energy(timestamp="2024-03-05T08:30:00.000Z"))

        assert record.timestamp == datetime(2024, 3, 5, 8, 30, tzinfo=timezone.utc)


class TestSocialAndInsights:
    def test_social_entry_emits_social_chart_update(self, store, recorded):
        store.add_social_battery_entry(social(drainFactors=["meeting"]))

        data = store.get_social_battery_data()
        assert data[0].drain_factors == ["meeting"]
        assert payloads(recorded, "chart:data-updated") == [{"type": "social"}]

    def test_delete_social(self, store):
        store.add_social_battery_entry(social())

        assert store.delete_social_battery_entry("s1") is True
        assert store.delete_social_battery_entry("s1") is False

    def test_update_social(self, store, recorded):
        store.add_social_battery_entry(social(level=5))

        assert store.update_social_battery_entry(social(level=2)) is True
        assert [e.level for e in store.get_social_battery_data()] == [2]
        assert payloads(recorded, "chart:data-updated") == [{"type": "social"}, {"type": "social"}]

    def test_update_unknown_social_is_noop(self, store):
        snapshots = []
        store.subscribe(snapshots.append)

        assert store.update_social_battery_entry(social("missing")) is False
        assert snapshots == []

    def test_delete_insight(self, store):
        store.add_ai_insight({"id": "i1", "type": "alert", "title": "t", "content": "c"})

        assert store.delete_ai_insight("i1") is True
        assert store.delete_ai_insight("i1") is False
        assert store.get_ai_insights() == []

    def test_ai_insights_keep_most_recent(self, store):
        for i in range(MAX_AI_INSIGHTS + 5):
            store.add_ai_insight({"id": f"i{i}", "type": "pattern", "title": "t", "content": "c"})

        insights = store.get_ai_insights()
        assert len(insights) == MAX_AI_INSIGHTS
        assert insights[0].id == "i5"
        assert insights[-1].id == f"i{MAX_AI_INSIGHTS + 4}"

    def test_counts(self, store):
        store.add_energy_entry(energy())
        store.add_social_battery_entry(social())

        assert store.get_counts() == {"energy": 1, "social": 1, "insights": 0}


class TestAuxiliaryState:
    def test_connectivity_partial_update(self, store):
        result = store.update_connectivity(is_online=False, sync_status="offline")

        assert result.is_online is False
        assert result.sync_status is SyncStatus.OFFLINE
        assert store.get_state().connectivity.is_installed is False

    def test_connectivity_rejects_unknown_field(self, store):
        with pytest.raises(StateValidationError):
            store.update_connectivity(bandwidth=10)

    def test_connectivity_rejects_bad_sync_status(self, store):
        with pytest.raises(StateValidationError) as exc_info:
            store.update_connectivity(sync_status="lost")

        assert exc_info.value.field_name == "sync_status"

    def test_preferences_and_settings(self, store):
        store.update_user_preferences(theme="dark")
        store.update_app_settings(chart_animations=False)

        user = store.get_state().user
        assert user.preferences.theme == "dark"
        assert user.settings.chart_animations is False

    def test_current_view(self, store):
        store.update_current_view("charts")
        assert store.get_current_view() == "charts"

        with pytest.raises(StateValidationError):
            store.update_current_view("")

    def test_reset_state_is_silent(self, store):
        store.add_energy_entry(energy())
        snapshots = []
        store.subscribe(snapshots.append)

        store.reset_state()

        assert store.get_energy_data() == []
        assert snapshots == []


class TestSubscription:
    def test_failing_subscriber_is_isolated(self, store):
        received = []

        def broken(state):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(received.append)

        store.add_energy_entry(energy())

        assert len(received) == 1

    def test_unsubscribe_is_idempotent(self, store):
        received = []
        unsubscribe = store.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        store.add_energy_entry(energy())

        assert received == []

    def test_snapshot_top_level_is_a_copy(self, store):
        before = store.get_state()
        store.update_current_view("charts")

        assert before.current_view == "dashboard"


class TestEventBinding:
    def test_domain_events_mutate_state(self, bus, store):
        store.bind_events()

        bus.emit(EventType.ENERGY_LOGGED, energy(), "EnergyForm")
        bus.emit(EventType.SOCIAL_BATTERY_LOGGED, social(), "SocialForm")
        bus.emit(EventType.NAVIGATION_CHANGED, {"view": "insights"}, "Nav")
        bus.emit(EventType.PWA_OFFLINE, {}, "PWA")
        bus.emit(EventType.PWA_INSTALLED, {}, "PWA")

        state = store.get_state()
        assert [e.id for e in state.energy_data] == ["e1"]
        assert [e.id for e in state.social_battery_data] == ["s1"]
        assert state.current_view == "insights"
        assert state.connectivity.is_online is False
        assert state.connectivity.is_installed is True

    def test_energy_deleted_event(self, bus, store):
        store.bind_events()
        bus.emit(EventType.ENERGY_LOGGED, energy())

        bus.emit(EventType.ENERGY_DELETED, {"id": "e1"})

        assert store.get_energy_data() == []

    def test_social_and_insight_events(self, bus, store):
        store.bind_events()
        bus.emit(EventType.SOCIAL_BATTERY_LOGGED, social("s1", level=6))
        bus.emit(EventType.SOCIAL_BATTERY_LOGGED, social("s2"))
        bus.emit(EventType.AI_INSIGHT_GENERATED, {"id": "i1", "type": "pattern", "title": "t", "content": "c"})

        bus.emit(EventType.SOCIAL_BATTERY_UPDATED, social("s1", level=1))
        bus.emit(EventType.SOCIAL_BATTERY_DELETED, {"id": "s2"})
        bus.emit(EventType.AI_INSIGHT_DELETED, "i1")

        assert [(e.id, e.level) for e in store.get_social_battery_data()] == [("s1", 1)]
        assert store.get_ai_insights() == []

    def test_bind_twice_binds_once(self, bus, store):
        store.bind_events()
        store.bind_events()

        bus.emit(EventType.ENERGY_LOGGED, energy())

        assert len(store.get_energy_data()) == 1

    def test_invalid_event_payload_does_not_break_bus(self, bus, store):
        store.bind_events()

        bus.emit(EventType.ENERGY_LOGGED, {"id": "bad", "level": 0, "type": "creative"})

        assert store.get_energy_data() == []
        assert bus.get_stats()["total_listener_errors"] == 1

    def test_unbind(self, bus, store):
        store.bind_events()
        store.unbind_events()

        bus.emit(EventType.ENERGY_LOGGED, energy())

        assert store.get_energy_data() == []
