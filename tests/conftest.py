"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import os

# 테스트 중에는 기본 stderr 로깅 재설정을 건너뜀
os.environ.setdefault("ENERGY_FLOW_SKIP_DEFAULT_LOGGING", "1")

from typing import Any, List

import pytest

from energy_flow.application.event.bus import EventBus
from energy_flow.application.flow.router import DataFlowRouter
from energy_flow.application.loader.resolver import DependencyResolver
from energy_flow.application.state.store import StateStore
from energy_flow.domain.models.event import WILDCARD, Event


class RecordingFeature:
    """initialize 호출을 기록하는 테스트용 기능 모듈."""

    def __init__(self, name: str, calls: List[str], error: Exception | None = None) -> None:
        self.name = name
        self.calls = calls
        self.error = error

    async def initialize(self) -> None:
        self.calls.append(self.name)
        if self.error is not None:
            raise self.error


@pytest.fixture
def bus() -> EventBus:
    """Fresh event bus."""
    return EventBus()


@pytest.fixture
def store(bus) -> StateStore:
    return StateStore(bus)


@pytest.fixture
def resolver(bus) -> DependencyResolver:
    return DependencyResolver(bus)


@pytest.fixture
def router(bus, store) -> DataFlowRouter:
    return DataFlowRouter(bus, store)


@pytest.fixture
def recorded(bus) -> List[Event]:
    """Every event emitted on the bus, in delivery order."""
    events: List[Event] = []
    bus.subscribe(WILDCARD, events.append)
    return events


def types_of(events: List[Event]) -> List[str]:
    return [e.type for e in events]


def payloads(events: List[Event], event_type: str) -> List[Any]:
    return [e.data for e in events if e.type == event_type]
