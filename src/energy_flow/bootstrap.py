"""
코어 조립

설정을 로드하고 이벤트 버스, 상태 저장소, 의존성 해석기,
데이터 흐름 라우터, 오케스트레이터를 생성해 배선합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from energy_flow.application.event.bus import EventBus
from energy_flow.application.flow.router import DataFlowRouter
from energy_flow.application.loader.resolver import DependencyResolver
from energy_flow.application.orchestrator.orchestrator import Orchestrator
from energy_flow.application.orchestrator.probes import default_probes
from energy_flow.application.state.store import StateStore
from energy_flow.common.errors import ConfigError, ErrorCode
from energy_flow.common.logging import configure_logging, get_logger
from energy_flow.domain.interfaces.feature import BaseFeature
from energy_flow.features import create_features
from energy_flow.interface.config.loader import ConfigLoader
from energy_flow.interface.config.schema import CoreConfig

logger = get_logger(__name__)


@dataclass
class EnergyFlowCore:
    """
    조립된 코어 컴포넌트 묶음

    Example:
        >>> core = create_core()
        >>> await core.initialize()
        >>> core.bus.emit("energy:logged", {"id": "e1", "level": 7, "type": "creative"}, "EnergyForm")
        >>> core.shutdown()
    """

    config: CoreConfig
    bus: EventBus
    store: StateStore
    resolver: DependencyResolver
    router: DataFlowRouter
    orchestrator: Orchestrator
    features: dict[str, BaseFeature] = field(default_factory=dict)

    async def initialize(self) -> None:
        await self.orchestrator.initialize()

    def shutdown(self) -> None:
        """모니터링, 바인딩, 기능 모듈 구독을 모두 정리합니다."""
        self.orchestrator.shutdown()
        self.router.unbind_events()
        self.store.unbind_events()
        for feature in self.features.values():
            feature.teardown()
        logger.info("코어 종료 완료")


def create_core(
    config: CoreConfig | None = None,
    *,
    configure_logs: bool = False,
) -> EnergyFlowCore:
    """
    모든 컴포넌트를 생성하고 배선합니다.

    Args:
        config: 검증된 설정 (None이면 기본 설정)
        configure_logs: True면 observability 섹션으로 로깅을 재설정

    Returns:
        부팅 전의 EnergyFlowCore (initialize()를 await 해야 함)

    Raises:
        ConfigError: 교차 검증 실패
    """
    loader = ConfigLoader()
    config = config or CoreConfig()

    is_valid, errors = loader.validate(config)
    if not is_valid:
        logger.error("설정 검증 실패", errors=errors)
        raise ConfigError(
            ErrorCode.CONFIG_INVALID,
            f"설정 검증 실패: {errors}",
            details={"errors": errors},
        )

    if configure_logs:
        observability = config.observability
        configure_logging(
            level=observability.log_level,
            json_output=observability.log_format == "json",
            log_file=observability.log_file,
        )

    runtime = loader.to_runtime(config)

    # 1. 버스와 저장소
    bus = EventBus(
        history_size=config.event_bus.history_size,
        max_emit_depth=config.event_bus.max_emit_depth,
    )
    store = StateStore(bus)

    # 2. 라우터 (흐름 등록)
    router = DataFlowRouter(
        bus,
        store,
        network_dependent_targets=config.router.network_dependent_targets,
    )
    for edge in runtime.flows:
        router.register_flow(edge)

    # 저장소가 먼저 구독해야 라우터 변환기가 새 기록을 포함한 상태를 읽음
    store.bind_events()
    router.bind_events()

    # 3. 해석기 (기능 모듈 등록)
    resolver = DependencyResolver(bus, critical_priority=config.resolver.critical_priority)
    features = create_features(bus, store, runtime.module_options)
    for descriptor in runtime.descriptors:
        resolver.register_module(descriptor, feature=features.get(descriptor.name))

    # 4. 오케스트레이터
    orchestrator_cfg = config.orchestrator
    orchestrator = Orchestrator(
        bus,
        resolver,
        router,
        probes=default_probes(bus, store, router) if orchestrator_cfg.verify_integration else (),
        probe_timeout_seconds=orchestrator_cfg.probe_timeout_seconds,
        consistency_interval_seconds=orchestrator_cfg.consistency_interval_seconds,
        debounce_seconds=orchestrator_cfg.debounce_seconds,
        reinit_pause_seconds=orchestrator_cfg.reinit_pause_seconds,
    )

    logger.info(
        "코어 조립 완료",
        module_count=len(runtime.descriptors),
        flow_count=len(runtime.flows),
    )

    return EnergyFlowCore(
        config=config,
        bus=bus,
        store=store,
        resolver=resolver,
        router=router,
        orchestrator=orchestrator,
        features={name: f for name, f in features.items() if resolver.get_descriptor(name)},
    )


def create_core_from_file(path: str | Path, **kwargs) -> EnergyFlowCore:
    """설정 파일에서 코어를 조립합니다."""
    config = ConfigLoader().load_from_file(path)
    return create_core(config, **kwargs)
