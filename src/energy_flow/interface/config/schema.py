"""
설정 스키마 (Pydantic v2)

코어 설정 파일(JSON)을 검증하기 위한 스키마를 정의합니다.
모든 섹션은 생략 가능하며, 생략하면 기본 기능 모듈 구성과 기본 흐름이 사용됩니다.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from energy_flow.application.flow.router import DEFAULT_NETWORK_DEPENDENT_TARGETS, default_flows
from energy_flow.features import FEATURE_REGISTRY

# Pydantic 모델은 Interface Layer에서만 외부 라이브러리에 의존합니다.

FlowTargetName = Literal["charts", "ai-insights", "pwa", "all-features"]


class ModuleConfig(BaseModel):
    """모듈 설정 스키마."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    name: str = Field(..., description="모듈 이름")
    enabled: bool = Field(True, description="활성화 여부")
    priority: int = Field(100, description="우선순위 (낮을수록 먼저 로드, 핵심 모듈)")
    dependencies: list[str] = Field(default_factory=list, description="선행 모듈 이름 목록")
    options: dict[str, Any] = Field(default_factory=dict, description="모듈별 옵션")

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value:
            raise ValueError("모듈 이름은 비워둘 수 없습니다")
        return value

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, value: int) -> int:
        if not 0 <= value <= 1000:
            raise ValueError("priority는 0~1000 범위여야 합니다")
        return value

    @model_validator(mode="after")
    def validate_self_dependency(self) -> "ModuleConfig":
        if self.name in self.dependencies:
            raise ValueError(f"모듈이 자기 자신에 의존할 수 없습니다: {self.name}")
        return self


class FlowConfig(BaseModel):
    """데이터 흐름 설정 스키마."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    source: str = Field(..., description="출발 모듈 이름")
    target: FlowTargetName = Field(..., description="도착 대상")
    enabled: bool = Field(True, description="활성화 여부")

    @field_validator("source")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("흐름 source는 비워둘 수 없습니다")
        return value


class EventBusConfig(BaseModel):
    """이벤트 버스 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    history_size: int = Field(100, ge=1, description="보관할 최근 이벤트 수")
    max_emit_depth: int = Field(32, ge=1, description="동기 중첩 발행 최대 깊이")


class ResolverConfig(BaseModel):
    """의존성 해석기 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    critical_priority: int = Field(
        2, ge=0, description="이 값 이하 priority 모듈의 로드 실패는 부팅을 중단"
    )


class RouterConfig(BaseModel):
    """데이터 흐름 라우터 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    network_dependent_targets: list[FlowTargetName] = Field(
        default_factory=lambda: list(DEFAULT_NETWORK_DEPENDENT_TARGETS),
        description="오프라인 시 비활성화되는 대상",
    )


class OrchestratorConfig(BaseModel):
    """오케스트레이터 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    verify_integration: bool = Field(True, description="부팅 시 통합 검증 프로브 실행 여부")
    probe_timeout_seconds: float = Field(5.0, gt=0, description="프로브별 타임아웃 (초)")
    consistency_interval_seconds: float = Field(30.0, gt=0, description="주기 일관성 검사 간격 (초)")
    debounce_seconds: float = Field(1.0, ge=0, description="활동 기반 일관성 검사 대기 (초)")
    reinit_pause_seconds: float = Field(0.1, ge=0, description="재초기화 시 비활성/활성 사이 대기 (초)")


class ObservabilityConfig(BaseModel):
    """로그 설정."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    log_level: str = Field("INFO", description="로그 레벨")
    log_format: Literal["console", "json"] = Field("console", description="로그 포맷")
    log_file: str | None = Field(None, description="로그 파일 경로 (선택)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        valid = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"log_level은 {sorted(valid)} 중 하나여야 합니다")
        return upper


def _default_modules() -> list[ModuleConfig]:
    return [
        ModuleConfig(name=cls.name, priority=cls.priority, dependencies=list(cls.dependencies))
        for cls in FEATURE_REGISTRY.values()
    ]


def _default_flows() -> list[FlowConfig]:
    return [
        FlowConfig(source=edge.source, target=edge.target, enabled=edge.enabled)
        for edge in default_flows()
    ]


class CoreConfig(BaseModel):
    """코어 전체 설정 스키마."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    modules: list[ModuleConfig] = Field(default_factory=_default_modules, description="기능 모듈 목록")
    flows: list[FlowConfig] = Field(default_factory=_default_flows, description="데이터 흐름 목록")
    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @model_validator(mode="after")
    def validate_unique(self) -> "CoreConfig":
        module_names = [m.name for m in self.modules]
        if len(module_names) != len(set(module_names)):
            raise ValueError("모듈 이름은 중복될 수 없습니다")

        flow_ids = [(f.source, f.target) for f in self.flows]
        if len(flow_ids) != len(set(flow_ids)):
            raise ValueError("같은 source/target 흐름은 중복될 수 없습니다")
        return self
