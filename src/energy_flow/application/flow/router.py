"""
데이터 흐름 라우터

모듈 간 선언적 데이터 흐름을 관리합니다.
출발 모듈의 데이터를 변환한 뒤 대상별 이벤트로 전달하고,
연결 상태에 따라 네트워크 의존 흐름을 켜고 끕니다.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Iterable

from energy_flow.application.event.bus import EventBus
from energy_flow.application.flow.transforms import default_transformers
from energy_flow.application.state.store import StateStore
from energy_flow.common.errors import DataFlowError, ErrorCode, ErrorType
from energy_flow.common.logging import get_logger, log_context
from energy_flow.domain.models.event import EventType, external_update_event
from energy_flow.domain.models.flow import (
    DataFlowEdge,
    FlowTarget,
    TransformFunc,
    make_flow_id,
)

logger = get_logger(__name__)

# all-features 대상이 브로드캐스트하는 기능 모듈
BROADCAST_FEATURES: tuple[str, ...] = (
    "energy-tracking",
    "social-battery",
    "charts",
    "ai-insights",
)

DEFAULT_NETWORK_DEPENDENT_TARGETS: tuple[str, ...] = (
    FlowTarget.AI_INSIGHTS.value,
    FlowTarget.PWA.value,
)


def default_flows() -> list[DataFlowEdge]:
    """기본 데이터 흐름 목록"""
    return [
        DataFlowEdge("energy-tracking", FlowTarget.CHARTS),
        DataFlowEdge("social-battery", FlowTarget.AI_INSIGHTS),
        DataFlowEdge("energy-tracking", FlowTarget.AI_INSIGHTS),
        DataFlowEdge("ai-insights", FlowTarget.PWA),
        DataFlowEdge("charts", FlowTarget.AI_INSIGHTS),
        DataFlowEdge("pwa", FlowTarget.ALL_FEATURES),
    ]


class DataFlowRouter:
    """
    데이터 흐름 라우터

    process(source, data)는 source가 일치하는 활성 엣지마다:
    1. 엣지 전용 transform이 있으면 data에 적용
    2. 없으면 "{source}-to-{대상 분류}" 키의 전역 변환기를 상태 조각에 적용
    3. 둘 다 없으면 data를 그대로 사용
    한 뒤 대상별 이벤트로 전달합니다. 엣지 하나의 실패는 다른 엣지에 영향을 주지 않습니다.

    Attributes:
        network_dependent_targets: 오프라인 시 비활성화되는 대상

    Example:
        >>> router = DataFlowRouter(bus, store)
        >>> router.register_flow(DataFlowEdge("energy-tracking", FlowTarget.CHARTS))
        >>> router.process("energy-tracking", {"id": "e1"})
    """

    SOURCE = "DataFlowRouter"

    def __init__(
        self,
        bus: EventBus,
        store: StateStore,
        network_dependent_targets: Iterable[str] = DEFAULT_NETWORK_DEPENDENT_TARGETS,
        transformers: dict[str, TransformFunc] | None = None,
    ) -> None:
        """
        라우터 초기화

        Args:
            bus: 이벤트 버스
            store: 전역 변환기에 상태 조각을 제공할 상태 저장소
            network_dependent_targets: 오프라인 시 비활성화할 대상 목록
            transformers: 전역 변환기 (None이면 기본 변환기)
        """
        self._bus = bus
        self._store = store
        self.network_dependent_targets = tuple(
            FlowTarget(t).value for t in network_dependent_targets
        )

        self._flows: dict[str, DataFlowEdge] = {}
        self._transformers: dict[str, TransformFunc] = dict(
            default_transformers() if transformers is None else transformers
        )
        self._bindings: list[Callable[[], None]] = []
        self._lock = threading.RLock()

        # 통계
        self._total_routed = 0
        self._total_errors = 0

    # === 등록 ===

    def register_flow(self, edge: DataFlowEdge) -> None:
        """
        흐름을 등록합니다. source+target이 같으면 교체합니다.

        Raises:
            ValueError: 지원하지 않는 대상
        """
        try:
            FlowTarget(edge.target)
        except ValueError:
            raise ValueError(
                f"지원하지 않는 흐름 대상입니다: {edge.target} "
                f"(가능: {', '.join(t.value for t in FlowTarget)})"
            ) from None

        with self._lock:
            self._flows[edge.id] = edge
        logger.debug(f"흐름 등록: {edge.id}", flow=edge.id, enabled=edge.enabled)

    def register_transformer(self, key: str, transformer: TransformFunc) -> None:
        """전역 변환기를 등록합니다 (예: "energy-tracking-to-ai")."""
        with self._lock:
            self._transformers[key] = transformer

    @staticmethod
    def transformer_key(source: str, target: str) -> str:
        return f"{source}-to-{target.split('-')[0]}"

    # === 처리 ===

    def process(self, source: str, data: Any) -> int:
        """
        source에서 나가는 활성 흐름을 모두 처리합니다.

        Returns:
            성공적으로 전달된 흐름 수
        """
        with self._lock:
            flows = [f for f in self._flows.values() if f.source == source and f.enabled]

        routed = 0
        for flow in flows:
            with log_context(flow_id=flow.id):
                if self._deliver(flow, source, data):
                    routed += 1

        return routed

    def _deliver(self, flow: DataFlowEdge, source: str, data: Any) -> bool:
        try:
            payload = self._transform(flow, data)
            self._route(FlowTarget(flow.target), payload, source)
        except Exception as e:
            self._total_errors += 1
            error = e if isinstance(e, DataFlowError) else DataFlowError(
                ErrorCode.DATA_FLOW_ROUTE_FAILED,
                str(e),
                source,
                flow.target,
            )
            logger.error(f"데이터 흐름 처리 오류 {flow.id}: {error.message}")
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {
                    "type": ErrorType.DATA_FLOW.value,
                    "source": source,
                    "target": flow.target,
                    "error": error.message,
                    "code": error.code.value,
                },
                self.SOURCE,
            )
            return False

        self._total_routed += 1
        return True

    def _transform(self, flow: DataFlowEdge, data: Any) -> Any:
        try:
            if flow.transform is not None:
                return flow.transform(data)

            transformer = self._transformers.get(self.transformer_key(flow.source, flow.target))
            if transformer is not None:
                return transformer(self._contextual_data(flow.source))
        except Exception as e:
            raise DataFlowError(
                ErrorCode.DATA_FLOW_TRANSFORM_FAILED,
                f"변환 실패: {e}",
                flow.source,
                flow.target,
            ) from e

        return data

    def _contextual_data(self, source: str) -> Any:
        """전역 변환기에 전달할 상태 조각"""
        if source == "energy-tracking":
            return self._store.get_energy_data()
        if source == "social-battery":
            return self._store.get_social_battery_data()
        if source == "charts":
            return {
                "energy_data": self._store.get_energy_data(),
                "social_data": self._store.get_social_battery_data(),
            }
        return {}

    def _route(self, target: FlowTarget, data: Any, source: str) -> None:
        if target is FlowTarget.ALL_FEATURES:
            for feature in BROADCAST_FEATURES:
                if feature != source:
                    self._bus.emit(
                        external_update_event(feature),
                        self._envelope(source, data),
                        self.SOURCE,
                    )
            return

        channels = {
            FlowTarget.CHARTS: EventType.CHART_DATA_UPDATED,
            FlowTarget.AI_INSIGHTS: EventType.AI_PROCESS_DATA,
            FlowTarget.PWA: EventType.PWA_DATA_UPDATE,
        }
        self._bus.emit(channels[target], self._envelope(source, data), self.SOURCE)

    @staticmethod
    def _envelope(source: str, data: Any) -> dict[str, Any]:
        return {"source": source, "data": data, "timestamp": time.time()}

    # === 조회/토글 ===

    def get_flows(self) -> list[DataFlowEdge]:
        with self._lock:
            return list(self._flows.values())

    def get_active_flows(self) -> list[DataFlowEdge]:
        with self._lock:
            return [f for f in self._flows.values() if f.enabled]

    def get_flow(self, source: str, target: str) -> DataFlowEdge | None:
        return self._flows.get(make_flow_id(source, target))

    def enable(self, source: str, target: str) -> bool:
        return self._set_enabled(source, target, True)

    def disable(self, source: str, target: str) -> bool:
        return self._set_enabled(source, target, False)

    def _set_enabled(self, source: str, target: str, enabled: bool) -> bool:
        with self._lock:
            flow = self._flows.get(make_flow_id(source, target))
            if flow is None:
                return False
            flow.enabled = enabled
        logger.info(f"흐름 {'활성화' if enabled else '비활성화'}: {flow.id}")
        return True

    # === 연결 상태 ===

    def on_offline(self) -> list[str]:
        """
        네트워크 의존 대상으로 가는 흐름을 비활성화합니다.

        Returns:
            비활성화된 흐름 ID 목록
        """
        with self._lock:
            disabled = []
            for flow in self._flows.values():
                if flow.target in self.network_dependent_targets and flow.enabled:
                    flow.enabled = False
                    disabled.append(flow.id)

        logger.info(f"오프라인 모드: 흐름 {len(disabled)}개 비활성화")
        self._bus.emit(
            EventType.DATA_FLOW_OFFLINE_MODE,
            {
                "disabled_targets": list(self.network_dependent_targets),
                "disabled_flows": disabled,
            },
            self.SOURCE,
        )
        return disabled

    def on_online(self) -> None:
        """
        모든 흐름을 다시 활성화하고 동기화를 요청합니다.

        오프라인 전에 수동으로 비활성화한 흐름도 함께 활성화됩니다.
        """
        with self._lock:
            for flow in self._flows.values():
                flow.enabled = True

        logger.info("온라인 복귀: 모든 흐름 활성화")
        self._bus.emit(
            EventType.DATA_SYNC_START,
            {"reason": "online-mode-restored"},
            self.SOURCE,
        )

    # === 일관성 ===

    def validate_data_consistency(self) -> bool:
        """
        컬렉션 수에 대한 구조적 불변식을 검사합니다.

        모든 수가 0 이상이고, 기록이 있으면 인사이트 수도 0 이상이어야 합니다.
        실패 시 `error:occurred`(data-consistency-error)를 발행합니다.
        """
        counts = self._store.get_counts()
        energy, social, insights = counts["energy"], counts["social"], counts["insights"]

        consistent = (
            energy >= 0
            and social >= 0
            and (energy + social == 0 or insights >= 0)
        )

        if not consistent:
            logger.warning("데이터 일관성 검사 실패", **counts)
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {"type": ErrorType.DATA_CONSISTENCY.value, "details": counts},
                self.SOURCE,
            )
        return consistent

    # === 이벤트 바인딩 ===

    def bind_events(self) -> None:
        """도메인 이벤트를 흐름 처리와 연결 상태 훅에 연결합니다."""
        if self._bindings:
            return

        sources: dict[EventType, str] = {
            EventType.ENERGY_LOGGED: "energy-tracking",
            EventType.ENERGY_UPDATED: "energy-tracking",
            EventType.SOCIAL_BATTERY_LOGGED: "social-battery",
            EventType.CHART_VIEW_CHANGED: "charts",
            EventType.AI_INSIGHT_GENERATED: "ai-insights",
            EventType.DATA_SYNC_COMPLETE: "pwa",
        }
        for event_type, source in sources.items():
            self._bindings.append(
                self._bus.subscribe(
                    event_type,
                    lambda data, source=source: self.process(source, data),
                )
            )

        self._bindings.append(self._bus.subscribe(EventType.PWA_OFFLINE, lambda _: self.on_offline()))
        self._bindings.append(self._bus.subscribe(EventType.PWA_ONLINE, lambda _: self.on_online()))

    def unbind_events(self) -> None:
        for unsubscribe in self._bindings:
            unsubscribe()
        self._bindings.clear()

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "total_flows": len(self._flows),
                "active_flows": sum(1 for f in self._flows.values() if f.enabled),
                "transformers": sorted(self._transformers),
                "total_routed": self._total_routed,
                "total_errors": self._total_errors,
            }
