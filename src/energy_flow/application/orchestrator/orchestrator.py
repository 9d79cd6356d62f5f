"""
오케스트레이터

부팅 순서, 통합 검증, 일관성 모니터링, 에러 분류를 담당합니다.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Iterable

from energy_flow.application.event.bus import EventBus
from energy_flow.application.flow.router import DataFlowRouter
from energy_flow.application.loader.resolver import DependencyResolver
from energy_flow.application.orchestrator.probes import IntegrationProbe, ProbeSkipped
from energy_flow.application.orchestrator.timers import Debouncer, PeriodicTask
from energy_flow.common.errors import (
    EnergyFlowError,
    ErrorCode,
    ErrorType,
    IntegrationVerificationError,
    ModuleReinitializationError,
    ProbeTimeoutError,
    UnknownModuleError,
)
from energy_flow.common.logging import get_logger, log_context, new_trace_id
from energy_flow.domain.models.event import WILDCARD, Event, EventType, feature_ready_event
from energy_flow.domain.models.status import (
    IntegrationHealth,
    IntegrationStatus,
    ProbeResult,
    ProbeSummary,
)

logger = get_logger(__name__)

# 준비 이벤트를 추적하는 기능 모듈
READY_TRACKED_FEATURES: tuple[str, ...] = (
    "energy-tracking",
    "social-battery",
    "charts",
    "ai-insights",
    "pwa",
)

# 준비된 모듈 → (활성화 조건 모듈, 발행 이벤트)
CROSS_MODULE_ACTIVATIONS: dict[str, tuple[tuple[str, ...], EventType, str]] = {
    "charts": (
        ("energy-tracking", "social-battery"),
        EventType.INTEGRATION_ENERGY_CHARTS_READY,
        "Energy tracking and charts integration activated",
    ),
    "ai-insights": (
        ("social-battery", "energy-tracking"),
        EventType.INTEGRATION_SOCIAL_AI_READY,
        "Social battery and AI insights integration activated",
    ),
    "pwa": (
        ("energy-tracking", "social-battery", "charts", "ai-insights"),
        EventType.INTEGRATION_FULL_PWA_READY,
        "Full PWA integration with all features activated",
    ),
}

# error:occurred type → recovery-attempt 라벨
RECOVERY_LABELS: dict[str, str] = {
    ErrorType.DATA_FLOW.value: "data-flow",
    ErrorType.FEATURE_LOAD.value: "feature-load",
    ErrorType.DATA_CONSISTENCY.value: "data-consistency",
}


class Orchestrator:
    """
    오케스트레이터

    initialize()는 한 번만 실행됩니다. 동시에 여러 번 호출해도 같은 작업을
    기다리며, 성공/실패 결과가 모든 호출자에게 동일하게 전달됩니다.
    실패한 시도도 캐시되므로 재시도하려면 새 인스턴스를 만들어야 합니다.

    부팅 순서:
    1. `integrator:initialization-start` 발행
    2. 의존성 검증 (순환 시 로드 전에 실패)
    3. 의존성 해석기로 모듈 순차 로드
    4. 준비 상태 확인
    5. 통합 검증 프로브 동시 실행 (프로브별 타임아웃)
    6. 일관성 모니터링 시작 (주기 + 디바운스)
    7. `integrator:initialization-complete` 발행

    Example:
        >>> orchestrator = Orchestrator(bus, resolver, router, probes=probes)
        >>> await orchestrator.initialize()
        >>> orchestrator.get_status().health
        <IntegrationHealth.HEALTHY: 'healthy'>
        >>> orchestrator.shutdown()
    """

    DEFAULT_PROBE_TIMEOUT = 5.0
    DEFAULT_CONSISTENCY_INTERVAL = 30.0
    DEFAULT_DEBOUNCE = 1.0
    DEFAULT_REINIT_PAUSE = 0.1
    SOURCE = "Orchestrator"

    def __init__(
        self,
        bus: EventBus,
        resolver: DependencyResolver,
        router: DataFlowRouter,
        probes: Iterable[IntegrationProbe] = (),
        probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT,
        consistency_interval_seconds: float = DEFAULT_CONSISTENCY_INTERVAL,
        debounce_seconds: float = DEFAULT_DEBOUNCE,
        reinit_pause_seconds: float = DEFAULT_REINIT_PAUSE,
    ) -> None:
        """
        오케스트레이터 초기화

        Args:
            bus: 이벤트 버스
            resolver: 의존성 해석기
            router: 데이터 흐름 라우터
            probes: 통합 검증 프로브 목록
            probe_timeout_seconds: 프로브별 타임아웃 (초)
            consistency_interval_seconds: 주기 일관성 검사 간격 (초)
            debounce_seconds: 활동 기반 일관성 검사 대기 시간 (초)
            reinit_pause_seconds: 모듈 재초기화 시 비활성/활성 사이 대기 (초)
        """
        self._bus = bus
        self._resolver = resolver
        self._router = router
        self._probes = list(probes)
        self.probe_timeout_seconds = probe_timeout_seconds
        self.reinit_pause_seconds = reinit_pause_seconds

        self._initialized = False
        self._boot_failed = False
        self._init_task: asyncio.Task[None] | None = None
        self._last_consistency_check: float | None = None
        self._last_consistency_ok = True
        self._probe_results: list[ProbeResult] = []

        self._periodic = PeriodicTask(
            consistency_interval_seconds,
            self._perform_consistency_check,
            name="consistency",
        )
        self._debouncer = Debouncer(
            debounce_seconds,
            self._perform_consistency_check,
            name="consistency",
        )

        self._subscriptions: list[Callable[[], None]] = []
        self._setup_event_listeners()

    @property
    def initialized(self) -> bool:
        return self._initialized

    # === 이벤트 구독 ===

    def _setup_event_listeners(self) -> None:
        subscribe = self._bus.subscribe
        subs = self._subscriptions

        subs.append(subscribe(EventType.APP_INITIALIZATION_COMPLETE, self._on_application_ready))

        for name in READY_TRACKED_FEATURES:
            subs.append(
                subscribe(
                    feature_ready_event(name),
                    lambda _, name=name: self._on_feature_ready(name),
                )
            )

        relays = {
            EventType.ENERGY_LOGGED: (
                EventType.INTEGRATION_ENERGY_DATA_FLOW, "energy_data", ["charts", "ai-insights"]
            ),
            EventType.SOCIAL_BATTERY_LOGGED: (
                EventType.INTEGRATION_SOCIAL_DATA_FLOW, "social_data", ["charts", "ai-insights"]
            ),
            EventType.CHART_VIEW_CHANGED: (
                EventType.INTEGRATION_CHART_INTERACTION_FLOW, "chart_data", ["ai-insights"]
            ),
            EventType.AI_INSIGHT_GENERATED: (
                EventType.INTEGRATION_AI_INSIGHT_FLOW, "insight_data", ["pwa", "charts"]
            ),
        }
        for event_type, (relay_type, key, targets) in relays.items():
            subs.append(
                subscribe(
                    event_type,
                    lambda data, relay_type=relay_type, key=key, targets=targets: self._bus.emit(
                        relay_type,
                        {key: data, "targets": targets, "timestamp": time.time()},
                        self.SOURCE,
                    ),
                )
            )

        subs.append(subscribe(EventType.ERROR_OCCURRED, self._handle_integration_error))
        subs.append(subscribe(WILDCARD, self._on_any_event))

    def _on_application_ready(self, _: Any) -> None:
        self._bus.emit(
            EventType.INTEGRATOR_APP_READY,
            {"timestamp": time.time(), "features": self._resolver.get_loaded_modules()},
            self.SOURCE,
        )

    def _on_feature_ready(self, name: str) -> None:
        self._bus.emit(
            EventType.INTEGRATOR_FEATURE_INTEGRATED,
            {"feature": name, "timestamp": time.time()},
            self.SOURCE,
        )

        activation = CROSS_MODULE_ACTIVATIONS.get(name)
        if activation is None:
            return
        required, event_type, message = activation
        if all(self._resolver.is_loaded(module) for module in required):
            self._bus.emit(event_type, {"message": message}, self.SOURCE)

    def _handle_integration_error(self, data: Any) -> None:
        error_type = data.get("type") if isinstance(data, dict) else None
        logger.warning(f"통합 에러 수신: {error_type}", error_type=error_type)

        label = RECOVERY_LABELS.get(error_type)
        if label is not None:
            self._bus.emit(
                EventType.INTEGRATION_RECOVERY_ATTEMPT,
                {"type": label, "original_error": data},
                self.SOURCE,
            )
        else:
            self._bus.emit(
                EventType.INTEGRATION_ERROR_LOGGED,
                {"error_data": data, "timestamp": time.time()},
                self.SOURCE,
            )

    def _on_any_event(self, event: Event) -> None:
        if not self._initialized or event.source == self.SOURCE:
            return
        # 일관성 검사 자신이 만든 에러로 다시 검사하지 않음
        if (
            event.type == EventType.ERROR_OCCURRED.value
            and isinstance(event.data, dict)
            and event.data.get("type") == ErrorType.DATA_CONSISTENCY.value
        ):
            return
        self._debouncer.trigger()

    # === 부팅 ===

    async def initialize(self) -> None:
        """
        코어를 부팅합니다.

        Raises:
            CycleDetectedError: 순환 의존성
            UnknownModuleError: 미등록 의존성
            CriticalModuleLoadError: 핵심 모듈 로드 실패
            IntegrationVerificationError: 통합 검증 실패
            EnergyFlowError: 준비 상태 미충족 (APPLICATION_NOT_READY)
        """
        if self._init_task is None:
            self._init_task = asyncio.get_running_loop().create_task(
                self._perform_initialization(), name="orchestrator:initialize"
            )
        # shield: 한 호출자가 취소되어도 공유 작업은 계속됨
        await asyncio.shield(self._init_task)

    async def _perform_initialization(self) -> None:
        with log_context(trace_id=new_trace_id()):
            await self._boot()

    async def _boot(self) -> None:
        started = time.monotonic()
        self._bus.emit(EventType.INTEGRATOR_INITIALIZATION_START, {}, self.SOURCE)
        logger.info("코어 부팅 시작")

        try:
            # 순환/미등록 의존성은 로드 전에 실패
            self._resolver.resolve_order()

            await self._resolver.initialize_all()

            readiness = self._resolver.get_readiness()
            if not readiness.is_ready:
                raise EnergyFlowError(
                    ErrorCode.APPLICATION_NOT_READY,
                    f"애플리케이션이 준비되지 않았습니다: "
                    f"{readiness.loaded_count}/{readiness.total_count} 모듈 로드",
                    readiness.to_dict(),
                )

            await self._verify_integration()
            self._start_monitoring()

        except Exception as e:
            self._boot_failed = True
            message = e.message if isinstance(e, EnergyFlowError) else str(e)
            logger.error(f"코어 부팅 실패: {message}")
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {"type": ErrorType.INTEGRATION_INITIALIZATION.value, "error": message},
                self.SOURCE,
            )
            raise

        self._initialized = True
        elapsed_ms = (time.monotonic() - started) * 1000
        self._bus.emit(EventType.INTEGRATOR_INITIALIZATION_COMPLETE, {}, self.SOURCE)
        logger.info(
            f"코어 부팅 완료: {len(self._resolver.get_loaded_modules())}개 모듈, "
            f"{elapsed_ms:.1f}ms"
        )

    async def _verify_integration(self) -> None:
        """모든 프로브를 동시에 실행하고 성공과 실패를 따로 모아 보고합니다."""
        if not self._probes:
            return

        self._bus.emit(EventType.INTEGRATOR_VERIFICATION_START, {}, self.SOURCE)
        try:
            results = await asyncio.gather(*(self._run_probe(probe) for probe in self._probes))
        finally:
            self._bus.emit(EventType.INTEGRATOR_VERIFICATION_COMPLETE, {}, self.SOURCE)

        self._probe_results = list(results)
        failed = {r.name: r.error or "" for r in results if not r.passed}
        if failed:
            raise IntegrationVerificationError(failed)

        summary = self.get_probe_summary()
        logger.info(
            f"통합 검증 통과: {summary.passed}/{summary.total}개 프로브 "
            f"(건너뜀 {summary.skipped}, 평균 {summary.average_duration_ms:.1f}ms)"
        )

    async def _run_probe(self, probe: IntegrationProbe) -> ProbeResult:
        started = time.monotonic()

        def result(passed: bool, error: str | None = None, skipped: bool = False) -> ProbeResult:
            return ProbeResult(
                name=probe.name,
                passed=passed,
                duration_ms=(time.monotonic() - started) * 1000,
                error=error,
                skipped=skipped,
            )

        try:
            await asyncio.wait_for(probe.check(), timeout=self.probe_timeout_seconds)
        except ProbeSkipped as e:
            logger.info(f"프로브 건너뜀: {probe.name}: {e}")
            return result(True, str(e), skipped=True)
        except asyncio.TimeoutError:
            error = ProbeTimeoutError(probe.name, self.probe_timeout_seconds)
            logger.warning(f"프로브 실패: {error.message}")
            return result(False, error.message)
        except Exception as e:
            message = e.message if isinstance(e, EnergyFlowError) else str(e)
            logger.warning(f"프로브 실패: {probe.name}: {message}")
            return result(False, message)
        return result(True)

    def get_probe_results(self) -> list[ProbeResult]:
        """마지막 통합 검증의 프로브별 결과 (프로브 등록 순서)"""
        return list(self._probe_results)

    def get_failed_probes(self) -> list[ProbeResult]:
        return [r for r in self._probe_results if not r.passed]

    def get_probe_summary(self) -> ProbeSummary:
        return ProbeSummary.from_results(self._probe_results)

    # === 일관성 모니터링 ===

    def _start_monitoring(self) -> None:
        self._periodic.start()
        self._debouncer.start()

    def _perform_consistency_check(self) -> bool:
        consistent = self._router.validate_data_consistency()
        self._last_consistency_check = time.time()
        self._last_consistency_ok = consistent
        if not consistent:
            self._bus.emit(
                EventType.INTEGRATION_CONSISTENCY_WARNING,
                {"timestamp": self._last_consistency_check},
                self.SOURCE,
            )
        return consistent

    def check_consistency(self) -> bool:
        """일관성 검사를 즉시 실행합니다."""
        return self._perform_consistency_check()

    # === 상태/제어 ===

    def get_status(self) -> IntegrationStatus:
        loaded = self._resolver.get_loaded_modules()

        if self._boot_failed:
            health = IntegrationHealth.ERROR
        elif not self._initialized or not self._last_consistency_ok:
            health = IntegrationHealth.WARNING
        else:
            health = IntegrationHealth.HEALTHY

        return IntegrationStatus(
            initialized=self._initialized,
            loaded_module_count=len(loaded),
            loaded_modules=tuple(loaded),
            active_flow_count=len(self._router.get_active_flows()),
            health=health,
            last_consistency_check=self._last_consistency_check,
        )

    async def reinitialize_module(self, name: str) -> None:
        """
        모듈을 비활성화했다가 다시 활성화합니다. 자동으로 다시 로드하지는 않습니다.

        Raises:
            ModuleReinitializationError: 모듈이 없거나 토글 중 오류가 발생한 경우
        """
        try:
            if self._resolver.get_descriptor(name) is None:
                raise UnknownModuleError(name)
            self._resolver.disable(name)
            await asyncio.sleep(self.reinit_pause_seconds)
            self._resolver.enable(name)
        except Exception as e:
            message = e.message if isinstance(e, EnergyFlowError) else str(e)
            self._bus.emit(
                EventType.ERROR_OCCURRED,
                {
                    "type": ErrorType.FEATURE_REINITIALIZATION.value,
                    "module": name,
                    "error": message,
                },
                self.SOURCE,
            )
            raise ModuleReinitializationError(name, message) from e

        self._bus.emit(
            EventType.INTEGRATION_FEATURE_REINITIALIZED,
            {"module": name, "timestamp": time.time()},
            self.SOURCE,
        )
        logger.info(f"모듈 재초기화: {name}", module_name=name)

    def shutdown(self) -> None:
        """모니터링을 중지하고 버스 구독을 해제합니다."""
        self._periodic.cancel()
        self._debouncer.cancel()
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        logger.info("오케스트레이터 종료")
