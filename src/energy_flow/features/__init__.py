"""
기본 기능 모듈 레지스트리

코어가 기본으로 등록하는 8개 기능 모듈입니다.
각 모듈은 가벼운 구독만 수행하며, 실제 화면/저장 구현은 이 레지스트리에
같은 이름의 구현체를 교체 등록하는 방식으로 연결합니다.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Dict, Type

from energy_flow.application.state.store import StateStore
from energy_flow.common.logging import get_logger
from energy_flow.domain.interfaces.feature import BaseFeature, EventPublisher
from energy_flow.domain.models.event import EventType, external_update_event

logger = get_logger(__name__)


def _field(data: Any, name: str, default: Any = None) -> Any:
    """dict 페이로드와 레코드 객체 모두에서 필드를 읽습니다."""
    if isinstance(data, dict):
        return data.get(name, default)
    return getattr(data, name, default)


class ExternalUpdateFeature(BaseFeature):
    """
    `<name>:external-update` 이벤트를 받아 마지막 페이로드를 보관하는 베이스

    all-features 흐름의 수신 측입니다.
    """

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        self.last_external_update: Any = None
        self.external_update_count = 0

    async def setup(self) -> None:
        self.listen(external_update_event(self.name), self._on_external_update)

    def _on_external_update(self, data: Any) -> None:
        self.last_external_update = data
        self.external_update_count += 1


class QueueingFeature(ExternalUpdateFeature):
    """
    대기열을 가진 기능 모듈의 베이스

    부팅 통합 검증 구간에는 합성 데이터만 들어오므로 대기열에 쌓지 않습니다.
    """

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        self.verifying = False

    async def setup(self) -> None:
        await super().setup()
        self.listen(EventType.INTEGRATOR_VERIFICATION_START, lambda _: self._set_verifying(True))
        self.listen(EventType.INTEGRATOR_VERIFICATION_COMPLETE, lambda _: self._set_verifying(False))

    def _set_verifying(self, value: bool) -> None:
        self.verifying = value


class CoreSystemsFeature(BaseFeature):
    name = "core-systems"
    priority = 1


class DataStorageFeature(BaseFeature):
    """상태 저장소 연결 확인"""

    name = "data-storage"
    priority = 2
    dependencies = ("core-systems",)

    def __init__(self, bus: EventPublisher, store: StateStore, **options: Any) -> None:
        super().__init__(bus, **options)
        self.store = store

    async def setup(self) -> None:
        counts = self.store.get_counts()
        logger.info("저장소 연결 완료", **counts)


class EnergyTrackingFeature(ExternalUpdateFeature):
    name = "energy-tracking"
    priority = 3
    dependencies = ("core-systems", "data-storage")


class SocialBatteryFeature(ExternalUpdateFeature):
    """
    소셜 배터리 기능

    기록된 레벨이 낮으면 경고 이벤트를 발행합니다.
    - level <= low_threshold: `social:low-battery-warning`
    - level <= moderate_threshold: `social:moderate-battery-warning`
    """

    name = "social-battery"
    priority = 3
    dependencies = ("core-systems", "data-storage")

    LOW_BATTERY_WARNING = "social:low-battery-warning"
    MODERATE_BATTERY_WARNING = "social:moderate-battery-warning"

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        self.low_threshold = int(self.options.get("low_threshold", 2))
        self.moderate_threshold = int(self.options.get("moderate_threshold", 4))
        if self.low_threshold > self.moderate_threshold:
            raise ValueError(
                "SocialBatteryFeature.low_threshold는 moderate_threshold 이하여야 합니다"
            )

    async def setup(self) -> None:
        await super().setup()
        self.listen(EventType.SOCIAL_BATTERY_LOGGED, self._check_warnings)

    def _check_warnings(self, data: Any) -> None:
        level = _field(data, "level")
        if not isinstance(level, int):
            return
        if level <= self.low_threshold:
            self.bus.emit(
                self.LOW_BATTERY_WARNING,
                {"level": level, "message": "소셜 배터리가 매우 낮습니다. 혼자만의 시간이 필요합니다."},
                self.source,
            )
        elif level <= self.moderate_threshold:
            self.bus.emit(
                self.MODERATE_BATTERY_WARNING,
                {"level": level, "message": "소셜 배터리가 낮아지고 있습니다. 회복 시간을 계획하세요."},
                self.source,
            )


class ChartsFeature(ExternalUpdateFeature):
    name = "charts"
    priority = 4
    dependencies = ("core-systems", "energy-tracking", "social-battery")

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        self.last_chart_data: Any = None
        self.chart_update_count = 0

    async def setup(self) -> None:
        await super().setup()
        self.listen(EventType.CHART_DATA_UPDATED, self._on_chart_data)

    def _on_chart_data(self, data: Any) -> None:
        # 저장소의 {"type": ...} 알림과 라우터의 {"source", "data"} 봉투가 모두 들어옴
        if isinstance(data, dict) and "data" in data:
            self.last_chart_data = data["data"]
        self.chart_update_count += 1


class AIInsightsFeature(QueueingFeature):
    """
    AI 인사이트 기능

    `ai:process-data`로 들어온 입력을 최근 max_pending개까지 보관합니다.
    """

    name = "ai-insights"
    priority = 5
    dependencies = ("core-systems", "data-storage", "energy-tracking", "social-battery")

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        max_pending = int(self.options.get("max_pending", 20))
        if max_pending < 1:
            raise ValueError("AIInsightsFeature.max_pending은 1 이상의 정수여야 합니다")
        self.pending: deque[dict[str, Any]] = deque(maxlen=max_pending)

    async def setup(self) -> None:
        await super().setup()
        self.listen(EventType.AI_PROCESS_DATA, self._on_process_data)

    def _on_process_data(self, data: Any) -> None:
        if isinstance(data, dict) and not self.verifying:
            self.pending.append(data)


class PWAFeature(QueueingFeature):
    """
    PWA 기능

    새 기록과 `pwa:data-update` 입력을 동기화 대기열에 쌓습니다.
    """

    name = "pwa"
    priority = 2
    dependencies = ("core-systems", "data-storage")

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        super().__init__(bus, **options)
        max_queue = int(self.options.get("max_sync_queue", 100))
        if max_queue < 1:
            raise ValueError("PWAFeature.max_sync_queue는 1 이상의 정수여야 합니다")
        self.sync_queue: deque[tuple[str, Any]] = deque(maxlen=max_queue)

    async def setup(self) -> None:
        await super().setup()
        self.listen(EventType.ENERGY_LOGGED, lambda data: self._queue("energy-logged", data))
        self.listen(EventType.SOCIAL_BATTERY_LOGGED, lambda data: self._queue("social-logged", data))
        self.listen(EventType.PWA_DATA_UPDATE, lambda data: self._queue("data-update", data))

    def _queue(self, kind: str, data: Any) -> None:
        if not self.verifying:
            self.sync_queue.append((kind, data))


class UIComponentsFeature(BaseFeature):
    name = "ui-components"
    priority = 2
    dependencies = ("core-systems",)


FEATURE_REGISTRY: Dict[str, Type[BaseFeature]] = {
    CoreSystemsFeature.name: CoreSystemsFeature,
    DataStorageFeature.name: DataStorageFeature,
    EnergyTrackingFeature.name: EnergyTrackingFeature,
    SocialBatteryFeature.name: SocialBatteryFeature,
    ChartsFeature.name: ChartsFeature,
    AIInsightsFeature.name: AIInsightsFeature,
    PWAFeature.name: PWAFeature,
    UIComponentsFeature.name: UIComponentsFeature,
}


def create_features(
    bus: EventPublisher,
    store: StateStore,
    options: dict[str, dict[str, Any]] | None = None,
) -> dict[str, BaseFeature]:
    """
    레지스트리의 기능 모듈 인스턴스를 생성합니다.

    Args:
        bus: 이벤트 버스
        store: 상태 저장소 (data-storage 모듈에 주입)
        options: 모듈 이름 → 옵션 딕셔너리

    Returns:
        모듈 이름 → 인스턴스 (레지스트리 순서)
    """
    options = options or {}
    features: dict[str, BaseFeature] = {}
    for name, cls in FEATURE_REGISTRY.items():
        module_options = options.get(name, {}) or {}
        if cls is DataStorageFeature:
            features[name] = DataStorageFeature(bus, store, **module_options)
        else:
            features[name] = cls(bus, **module_options)
    return features


__all__ = [
    "AIInsightsFeature",
    "ChartsFeature",
    "CoreSystemsFeature",
    "DataStorageFeature",
    "EnergyTrackingFeature",
    "ExternalUpdateFeature",
    "FEATURE_REGISTRY",
    "PWAFeature",
    "QueueingFeature",
    "SocialBatteryFeature",
    "UIComponentsFeature",
    "create_features",
]
