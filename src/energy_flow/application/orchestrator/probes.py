"""
통합 검증 프로브

부팅 후 모듈 간 흐름이 실제로 동작하는지 확인하는 검사들입니다.
각 프로브는 합성 이벤트를 발행하고 기대하는 후속 이벤트를 기다립니다.
프로브가 남긴 합성 기록은 검사 후 상태 저장소에서 제거되고, 기능 모듈은
검증 구간(`integrator:verification-start` ~ `-complete`)의 입력을 대기열에 쌓지 않습니다.
검사할 흐름이 꺼져 있으면 (오프라인 부팅 등) 프로브는 건너뜁니다.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from energy_flow.application.event.bus import EventBus
from energy_flow.application.flow.router import DataFlowRouter
from energy_flow.application.state.store import StateStore
from energy_flow.common.logging import get_logger
from energy_flow.domain.models.event import EventType
from energy_flow.domain.models.state import AppState

logger = get_logger(__name__)

PROBE_SOURCE = "IntegrationProbe"
PROBE_ENERGY_ID = "integration-probe-energy"
PROBE_SOCIAL_ID = "integration-probe-social"


@dataclass(frozen=True)
class IntegrationProbe:
    """
    통합 검증 프로브

    Attributes:
        name: 프로브 이름 (실패 목록에 표시)
        check: 성공 시 정상 반환, 실패 시 예외를 던지는 코루틴 함수
    """

    name: str
    check: Callable[[], Awaitable[None]]


class ProbeFailure(Exception):
    """프로브 검사 실패"""


class ProbeSkipped(Exception):
    """전제 조건이 없어 검사하지 않은 프로브 (통과로 집계)"""


def _require_flow(router: DataFlowRouter, source: str, target: str) -> None:
    """검사 대상 흐름이 없거나 꺼져 있으면 ProbeSkipped를 던집니다 (예: 오프라인 부팅)."""
    flow = router.get_flow(source, target)
    if flow is None or not flow.enabled:
        raise ProbeSkipped(f"비활성 흐름: {source}→{target}")


async def wait_for_event(
    bus: EventBus,
    event_type: EventType | str,
    trigger: Callable[[], None],
    predicate: Callable[[Any], bool] = lambda _: True,
) -> Any:
    """
    event_type 구독 후 trigger()를 실행하고, predicate를 만족하는 첫 데이터를 반환합니다.

    타임아웃은 호출자가 asyncio.wait_for로 적용합니다.
    """
    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    def listener(data: Any) -> None:
        if not future.done() and predicate(data):
            future.set_result(data)

    unsubscribe = bus.subscribe(event_type, listener)
    try:
        trigger()
        return await future
    finally:
        unsubscribe()


def _from_source(source: str) -> Callable[[Any], bool]:
    return lambda data: isinstance(data, dict) and data.get("source") == source


def energy_chart_probe(bus: EventBus, store: StateStore, router: DataFlowRouter) -> IntegrationProbe:
    """에너지 기록 → 차트 데이터 갱신 흐름"""

    async def check() -> None:
        _require_flow(router, "energy-tracking", "charts")
        try:
            await wait_for_event(
                bus,
                EventType.CHART_DATA_UPDATED,
                lambda: bus.emit(
                    EventType.ENERGY_LOGGED,
                    {"id": PROBE_ENERGY_ID, "level": 7, "type": "creative", "note": "Integration test"},
                    PROBE_SOURCE,
                ),
                _from_source("energy-tracking"),
            )
        finally:
            store.delete_energy_entry(PROBE_ENERGY_ID)

    return IntegrationProbe("energy-chart", check)


def social_ai_probe(bus: EventBus, store: StateStore, router: DataFlowRouter) -> IntegrationProbe:
    """소셜 배터리 기록 → AI 입력 흐름"""

    async def check() -> None:
        _require_flow(router, "social-battery", "ai-insights")
        try:
            await wait_for_event(
                bus,
                EventType.AI_PROCESS_DATA,
                lambda: bus.emit(
                    EventType.SOCIAL_BATTERY_LOGGED,
                    {"id": PROBE_SOCIAL_ID, "level": 5, "interaction_type": "solo"},
                    PROBE_SOURCE,
                ),
                _from_source("social-battery"),
            )
        finally:
            store.delete_social_battery_entry(PROBE_SOCIAL_ID)

    return IntegrationProbe("social-ai", check)


def connectivity_probe(store: StateStore) -> IntegrationProbe:
    """연결 상태 갱신이 구독자에게 전달되는지 확인합니다 (값은 바꾸지 않음)."""

    async def check() -> None:
        expected = store.get_state().connectivity.is_online
        future: asyncio.Future[AppState] = asyncio.get_running_loop().create_future()

        def listener(state: AppState) -> None:
            if not future.done():
                future.set_result(state)

        unsubscribe = store.subscribe(listener)
        try:
            store.update_connectivity(is_online=expected)
            state = await future
        finally:
            unsubscribe()

        if state.connectivity.is_online != expected:
            raise ProbeFailure(
                f"연결 상태 불일치: expected={expected}, actual={state.connectivity.is_online}"
            )

    return IntegrationProbe("connectivity", check)


def data_flow_probe(router: DataFlowRouter) -> IntegrationProbe:
    """데이터 일관성 검사"""

    async def check() -> None:
        if not router.validate_data_consistency():
            raise ProbeFailure("데이터 흐름 일관성 검사에 실패했습니다")

    return IntegrationProbe("data-flow", check)


def default_probes(
    bus: EventBus,
    store: StateStore,
    router: DataFlowRouter,
) -> list[IntegrationProbe]:
    return [
        energy_chart_probe(bus, store, router),
        social_ai_probe(bus, store, router),
        connectivity_probe(store),
        data_flow_probe(router),
    ]
