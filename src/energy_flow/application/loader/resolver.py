"""
의존성 해석기

기능 모듈의 로드 순서를 계산하고 순차적으로 초기화합니다.
"""

from __future__ import annotations

import threading
from typing import Any

from energy_flow.application.event.bus import EventBus
from energy_flow.common.errors import (
    CriticalModuleLoadError,
    CycleDetectedError,
    EnergyFlowError,
    ErrorCode,
    ErrorType,
    ModuleLoadError,
    UnknownModuleError,
)
from energy_flow.common.logging import get_logger, log_context
from energy_flow.domain.interfaces.feature import FeatureModule
from energy_flow.domain.models.event import EventType, feature_ready_event
from energy_flow.domain.models.module import ModuleDescriptor, ModuleState, Readiness

logger = get_logger(__name__)


class DependencyResolver:
    """
    의존성 해석기

    등록된 모듈 기술자를 priority 순으로 정렬한 뒤 깊이 우선 탐색으로
    위상 정렬하고, 그 순서대로 한 번에 하나씩 초기화합니다.

    로드 실패 정책:
    - priority <= critical_priority: CriticalModuleLoadError로 부팅 전체 중단
    - 그 외: 로그와 `error:occurred`(feature-load-error) 발행 후 다음 모듈 진행

    Attributes:
        critical_priority: 핵심 모듈 판정 임계값

    Example:
        >>> resolver = DependencyResolver(bus)
        >>> resolver.register_module(ModuleDescriptor.create("core-systems", priority=1))
        >>> resolver.register_module(
        ...     ModuleDescriptor.create("charts", priority=4, dependencies=["core-systems"]),
        ...     feature=charts_feature,
        ... )
        >>> resolver.resolve_order()
        ['core-systems', 'charts']
        >>> await resolver.initialize_all()
    """

    DEFAULT_CRITICAL_PRIORITY = 2
    SOURCE = "DependencyResolver"

    def __init__(
        self,
        bus: EventBus,
        critical_priority: int = DEFAULT_CRITICAL_PRIORITY,
    ) -> None:
        """
        의존성 해석기 초기화

        Args:
            bus: 이벤트 버스
            critical_priority: 이 값 이하 priority의 모듈 실패는 부팅을 중단시킴
        """
        self._bus = bus
        self.critical_priority = critical_priority

        self._descriptors: dict[str, ModuleDescriptor] = {}
        self._features: dict[str, FeatureModule] = {}
        self._states: dict[str, ModuleState] = {}
        self._loaded: list[str] = []
        self._is_loading = False
        self._lock = threading.RLock()

    # === 등록 ===

    def register_module(
        self,
        descriptor: ModuleDescriptor,
        feature: FeatureModule | None = None,
    ) -> None:
        """
        모듈을 등록합니다. 같은 이름이 있으면 기술자를 교체합니다.

        Args:
            descriptor: 모듈 기술자
            feature: 초기화 객체. 없으면 ready 이벤트만 발행하는 패스스루 모듈
        """
        if feature is not None and feature.name != descriptor.name:
            raise ValueError(
                f"기능 모듈 이름이 기술자와 다릅니다: {feature.name} != {descriptor.name}"
            )

        with self._lock:
            replaced = descriptor.name in self._descriptors
            self._descriptors[descriptor.name] = descriptor
            if feature is not None:
                self._features[descriptor.name] = feature
            if not replaced:
                self._states[descriptor.name] = (
                    ModuleState.REGISTERED if descriptor.enabled else ModuleState.DISABLED
                )

        logger.info(
            f"모듈 {'교체' if replaced else '등록'}: {descriptor.name}",
            module_name=descriptor.name,
            priority=descriptor.priority,
            enabled=descriptor.enabled,
        )

    # === 순서 계산 ===

    def resolve_order(self) -> list[str]:
        """
        로드 순서를 계산합니다.

        Returns:
            모든 의존성이 의존자보다 앞에 오는 모듈 이름 목록

        Raises:
            CycleDetectedError: 활성 모듈 그래프에 순환이 있는 경우
            UnknownModuleError: 등록되지 않은 의존성이 있는 경우
        """
        with self._lock:
            resolved: list[str] = []
            visited: set[str] = set()
            visiting: list[str] = []
            registration = {n: i for i, n in enumerate(self._descriptors)}

            def sort_key(name: str) -> tuple[int, int]:
                # 미등록 의존성은 맨 앞으로 보내 UnknownModuleError가 먼저 나도록 함
                descriptor = self._descriptors.get(name)
                if descriptor is None:
                    return (0, -1)
                return (descriptor.priority, registration[name])

            def visit(name: str, required_by: str | None) -> None:
                if name in visited:
                    return
                if name in visiting:
                    cycle = visiting[visiting.index(name):] + [name]
                    raise CycleDetectedError(cycle)

                descriptor = self._descriptors.get(name)
                if descriptor is None:
                    raise UnknownModuleError(name, required_by)
                # 비활성 의존성은 순서에서 제외 (의존자는 로드 시 실패)
                if not descriptor.enabled:
                    return

                visiting.append(name)
                for dependency in sorted(
                    descriptor.dependencies,
                    key=sort_key,
                ):
                    visit(dependency, name)
                visiting.pop()

                visited.add(name)
                resolved.append(name)

            for descriptor in self._enabled_by_priority():
                visit(descriptor.name, None)

            return resolved

    def _enabled_by_priority(self) -> list[ModuleDescriptor]:
        # sorted()는 안정 정렬이므로 같은 priority는 등록 순서를 유지
        return sorted(
            (d for d in self._descriptors.values() if d.enabled),
            key=lambda d: d.priority,
        )

    def validate_dependencies(self) -> bool:
        """순환/미등록 의존성이 없으면 True를 반환합니다."""
        try:
            self.resolve_order()
            return True
        except EnergyFlowError as e:
            logger.error(f"의존성 검증 실패: {e.message}", **e.details)
            return False

    # === 로드 ===

    async def initialize_all(self) -> list[str]:
        """
        계산된 순서대로 모듈을 순차 초기화합니다.

        Returns:
            로드된 모듈 이름 목록

        Raises:
            CycleDetectedError: 순환 의존성
            UnknownModuleError: 미등록 의존성
            CriticalModuleLoadError: 핵심 모듈 로드 실패
        """
        self._bus.emit(EventType.APP_INITIALIZATION_START, {}, self.SOURCE)

        try:
            order = self.resolve_order()
            logger.info(f"모듈 로드 순서: {' -> '.join(order)}", module_count=len(order))

            self._is_loading = True
            try:
                for name in order:
                    if self._states.get(name) == ModuleState.LOADED:
                        continue
                    await self._load(name, total_count=len(order))
            finally:
                self._is_loading = False

        except EnergyFlowError as e:
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {"type": ErrorType.INITIALIZATION.value, "error": e.message, **e.to_dict()},
                self.SOURCE,
            )
            raise

        loaded = self.get_loaded_modules()
        self._bus.emit(
            EventType.APP_INITIALIZATION_COMPLETE,
            {"loaded_modules": loaded},
            self.SOURCE,
        )
        logger.info(
            f"모듈 로드 완료: {len(loaded)}/{len(order)}",
            loaded_count=len(loaded),
            total_count=len(order),
        )
        return loaded

    async def load_module(self, name: str) -> bool:
        """
        단일 모듈을 로드합니다 (enable() 이후 재로드용).

        Returns:
            로드 성공 여부. 비핵심 모듈 실패는 False

        Raises:
            UnknownModuleError: 등록되지 않은 모듈
            CriticalModuleLoadError: 핵심 모듈 로드 실패
        """
        with self._lock:
            descriptor = self._descriptors.get(name)
            if descriptor is None:
                raise UnknownModuleError(name)
            if self._states.get(name) == ModuleState.LOADED:
                return True
            total = sum(1 for d in self._descriptors.values() if d.enabled)

        if not descriptor.enabled:
            logger.warning(f"비활성 모듈은 로드하지 않습니다: {name}", module_name=name)
            return False

        return await self._load(name, total_count=total)

    async def _load(self, name: str, total_count: int) -> bool:
        with log_context(module_name=name):
            return await self._load_in_context(name, total_count)

    async def _load_in_context(self, name: str, total_count: int) -> bool:
        descriptor = self._descriptors[name]
        self._states[name] = ModuleState.LOADING

        try:
            missing = [dep for dep in sorted(descriptor.dependencies) if not self.is_loaded(dep)]
            if missing:
                raise ModuleLoadError(
                    ErrorCode.DEPENDENCY_NOT_LOADED,
                    f"의존성이 로드되지 않았습니다: {', '.join(missing)}",
                    name,
                    {"missing": missing},
                )

            await self._initialize_feature(name)

        except Exception as e:
            self._states[name] = ModuleState.FAILED
            message = e.message if isinstance(e, EnergyFlowError) else str(e)
            logger.error(
                f"모듈 로드 실패: {name}: {message}",
                priority=descriptor.priority,
            )
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {
                    "type": ErrorType.FEATURE_LOAD.value,
                    "module": name,
                    "error": message,
                },
                self.SOURCE,
            )
            if descriptor.priority <= self.critical_priority:
                raise CriticalModuleLoadError(name, descriptor.priority, message) from e
            return False

        with self._lock:
            self._states[name] = ModuleState.LOADED
            if name not in self._loaded:
                self._loaded.append(name)
            loaded_count = len(self._loaded)

        logger.info(f"모듈 로드: {name} ({loaded_count}/{total_count})")
        self._bus.emit(
            EventType.FEATURE_LOADED,
            {"module": name, "loaded_count": loaded_count, "total_count": total_count},
            self.SOURCE,
        )
        return True

    async def _initialize_feature(self, name: str) -> None:
        feature = self._features.get(name)
        if feature is None:
            # 패스스루 모듈
            self._bus.emit(feature_ready_event(name), {}, self.SOURCE)
            return
        await feature.initialize()

    # === 조회 ===

    def is_loaded(self, name: str) -> bool:
        return self._states.get(name) == ModuleState.LOADED

    def get_loaded_modules(self) -> list[str]:
        """로드된 모듈 이름 목록 (로드 순서)"""
        with self._lock:
            return list(self._loaded)

    def get_dependencies(self, name: str) -> list[str]:
        descriptor = self._descriptors.get(name)
        return sorted(descriptor.dependencies) if descriptor else []

    def get_module_state(self, name: str) -> ModuleState | None:
        return self._states.get(name)

    def get_descriptor(self, name: str) -> ModuleDescriptor | None:
        return self._descriptors.get(name)

    def get_feature(self, name: str) -> FeatureModule | None:
        return self._features.get(name)

    def get_readiness(self) -> Readiness:
        """
        준비 상태를 계산합니다.

        핵심 모듈(활성, priority <= critical_priority)이 모두 로드되었고
        로드 루프가 실행 중이 아니면 준비된 것으로 봅니다.
        """
        with self._lock:
            enabled = [d for d in self._descriptors.values() if d.enabled]
            critical_loaded = all(
                self.is_loaded(d.name)
                for d in enabled
                if d.priority <= self.critical_priority
            )
            return Readiness(
                loaded_count=len(self._loaded),
                total_count=len(enabled),
                critical_loaded=critical_loaded,
                is_ready=critical_loaded and not self._is_loading,
            )

    # === 활성/비활성 ===

    def enable(self, name: str) -> bool:
        """
        모듈을 활성화합니다. 자동으로 다시 로드하지 않습니다.

        Returns:
            모듈 존재 여부
        """
        with self._lock:
            descriptor = self._descriptors.get(name)
            if descriptor is None:
                return False
            descriptor.enabled = True
            if self._states.get(name) != ModuleState.LOADED:
                self._states[name] = ModuleState.REGISTERED

        self._bus.emit(EventType.FEATURE_ENABLED, {"module": name}, self.SOURCE)
        logger.info(f"모듈 활성화: {name}", module_name=name)
        return True

    def disable(self, name: str) -> bool:
        """
        모듈을 비활성화하고 로드 목록에서 제거합니다.

        기능 객체에 teardown()이 있으면 호출해 구독을 해제하므로,
        다시 활성화한 뒤 load_module()을 하면 setup()이 다시 실행됩니다.

        Returns:
            모듈 존재 여부
        """
        with self._lock:
            descriptor = self._descriptors.get(name)
            if descriptor is None:
                return False
            descriptor.enabled = False
            self._states[name] = ModuleState.DISABLED
            if name in self._loaded:
                self._loaded.remove(name)
            feature = self._features.get(name)

        teardown = getattr(feature, "teardown", None)
        if callable(teardown):
            teardown()

        self._bus.emit(EventType.FEATURE_DISABLED, {"module": name}, self.SOURCE)
        logger.info(f"모듈 비활성화: {name}", module_name=name)
        return True

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "modules": [
                    {**d.to_dict(), "state": self._states[d.name].value}
                    for d in self._descriptors.values()
                ],
                "loaded": list(self._loaded),
                "readiness": self.get_readiness().to_dict(),
            }
