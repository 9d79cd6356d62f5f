"""
EventBus tests

- exact-type and wildcard delivery
- bounded history
- idempotent unsubscribe
- listener fault isolation
- nested emit depth limit
"""

import pytest

from energy_flow.application.event.bus import EventBus
from energy_flow.domain.models.event import WILDCARD, Event, EventType


class TestDelivery:
    def test_exact_listener_receives_payload_only(self, bus):
        received = []
        bus.subscribe("energy:logged", received.append)

        bus.emit("energy:logged", {"level": 7}, "EnergyForm")

        assert received == [{"level": 7}]

    def test_wildcard_listener_receives_whole_event(self, bus):
        received = []
        bus.subscribe(WILDCARD, received.append)

        bus.emit("energy:logged", {"level": 7}, "EnergyForm")

        assert len(received) == 1
        event = received[0]
        assert isinstance(event, Event)
        assert event.type == "energy:logged"
        assert event.data == {"level": 7}
        assert event.source == "EnergyForm"
        assert event.timestamp > 0

    def test_enum_and_string_keys_are_equivalent(self, bus):
        received = []
        bus.subscribe(EventType.ENERGY_LOGGED, received.append)

        bus.emit("energy:logged", 1)
        bus.emit(EventType.ENERGY_LOGGED, 2)

        assert received == [1, 2]

    def test_type_listeners_run_before_wildcard(self, bus):
        order = []
        bus.subscribe(WILDCARD, lambda event: order.append("wildcard"))
        bus.subscribe("a", lambda data: order.append("exact"))

        bus.emit("a")

        assert order == ["exact", "wildcard"]

    def test_emit_without_listeners_is_recorded(self, bus):
        bus.emit("nobody:listens", {"x": 1})

        history = bus.get_history()
        assert [e.type for e in history] == ["nobody:listens"]

    def test_subscribe_during_emit_does_not_affect_current_delivery(self, bus):
        late = []

        def first(data):
            bus.subscribe("a", late.append)

        bus.subscribe("a", first)
        bus.emit("a", 1)
        assert late == []

        bus.emit("a", 2)
        assert late == [2]


class TestHistory:
    def test_history_is_bounded(self):
        bus = EventBus(history_size=3)

        for i in range(4):
            bus.emit("tick", i)

        history = bus.get_history()
        assert [e.data for e in history] == [1, 2, 3]

    def test_history_is_a_copy(self, bus):
        bus.emit("a")
        history = bus.get_history()
        history.clear()

        assert len(bus.get_history()) == 1

    def test_history_by_type_and_clear(self, bus):
        bus.emit("a", 1)
        bus.emit("b", 2)
        bus.emit("a", 3)

        assert [e.data for e in bus.get_history_by_type("a")] == [1, 3]

        bus.clear_history()
        assert bus.get_history() == []

    def test_invalid_sizes_rejected(self):
        with pytest.raises(ValueError):
            EventBus(history_size=0)
        with pytest.raises(ValueError):
            EventBus(max_emit_depth=0)


class TestUnsubscribe:
    def test_unsubscribe_is_idempotent(self, bus):
        calls = []

        def listener(data):
            calls.append(data)

        first = bus.subscribe("a", listener)
        bus.subscribe("a", listener)

        first()
        first()

        bus.emit("a", 1)
        assert calls == [1]
        assert bus.listener_count("a") == 1

    def test_empty_bucket_is_removed(self, bus):
        unsubscribe = bus.subscribe("a", lambda data: None)
        assert "a" in bus.get_active_listeners()

        unsubscribe()

        assert "a" not in bus.get_active_listeners()
        assert bus.listener_count("a") == 0


class TestFaultIsolation:
    def test_failing_listener_does_not_stop_others(self, bus):
        received = []

        def broken(data):
            raise RuntimeError("boom")

        bus.subscribe("a", broken)
        bus.subscribe("a", received.append)

        bus.emit("a", 1)

        assert received == [1]
        assert bus.get_stats()["total_listener_errors"] == 1

    def test_failing_wildcard_listener_is_isolated(self, bus):
        received = []

        def broken(event):
            raise ValueError("bad")

        bus.subscribe(WILDCARD, broken)
        bus.subscribe(WILDCARD, received.append)

        bus.emit("a")

        assert len(received) == 1


class TestNestedEmit:
    def test_nested_emits_are_delivered_in_order(self):
        bus = EventBus(max_emit_depth=2)
        received = []

        def chain(n):
            received.append(n)
            if n < 5:
                bus.emit("chain", n + 1)

        bus.subscribe("chain", chain)
        bus.emit("chain", 0)

        assert received == [0, 1, 2, 3, 4, 5]
        assert len(bus.get_history_by_type("chain")) == 6

        stats = bus.get_stats()
        assert stats["total_deferred"] == 2
        assert stats["max_depth_reached"] == 2
        assert stats["pending_deferred"] == 0

    def test_self_emitting_listener_terminates(self):
        bus = EventBus(max_emit_depth=4)
        count = {"n": 0}

        def echo(data):
            count["n"] += 1
            if count["n"] < 100:
                bus.emit("echo")

        bus.subscribe("echo", echo)
        bus.emit("echo")

        assert count["n"] == 100


class TestStats:
    def test_stats_and_reset(self, bus):
        bus.subscribe("a", lambda data: None)
        bus.subscribe("b", lambda data: None)
        bus.emit("a")
        bus.emit("b")

        stats = bus.get_stats()
        assert stats["total_emitted"] == 2
        assert stats["listener_types"] == 2
        assert stats["total_listeners"] == 2
        assert stats["history_size"] == 2

        bus.reset_stats()
        assert bus.get_stats()["total_emitted"] == 0
