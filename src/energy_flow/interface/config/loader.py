"""
설정 로더

설정 파일(JSON)을 로드하고 Pydantic 스키마로 검증합니다.
검증된 설정을 런타임 구조(ModuleDescriptor, DataFlowEdge)로 변환합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from energy_flow.common.errors import ConfigError, ErrorCode
from energy_flow.common.logging import get_logger
from energy_flow.domain.models.flow import DataFlowEdge
from energy_flow.domain.models.module import ModuleDescriptor

from .schema import CoreConfig

logger = get_logger(__name__)


@dataclass
class RuntimeConfig:
    """
    런타임 설정 번들

    Attributes:
        descriptors: 등록할 모듈 기술자 (설정 순서)
        flows: 등록할 데이터 흐름
        module_options: 모듈 이름 → 기능 모듈 옵션
    """

    descriptors: list[ModuleDescriptor] = field(default_factory=list)
    flows: list[DataFlowEdge] = field(default_factory=list)
    module_options: dict[str, dict[str, Any]] = field(default_factory=dict)


class ConfigLoader:
    """설정 파일 로딩 및 변환을 담당합니다."""

    def __init__(self, default_path: str = "energy_flow.json") -> None:
        self._default_path = Path(default_path)

    def load_from_file(self, path: str | Path | None = None) -> CoreConfig:
        """파일에서 설정을 로드하고 검증합니다."""
        target = Path(path) if path else self._default_path

        if not target.exists():
            raise ConfigError(
                ErrorCode.CONFIG_NOT_FOUND,
                f"설정 파일을 찾을 수 없습니다: {target}",
                config_path=str(target),
            )

        try:
            data = orjson.loads(target.read_bytes())
        except orjson.JSONDecodeError as e:
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                f"설정 파일 파싱에 실패했습니다: {e}",
                config_path=str(target),
                details={"error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                ErrorCode.CONFIG_PARSE_ERROR,
                "설정 파일의 최상위는 객체여야 합니다",
                config_path=str(target),
            )

        return self.load_from_dict(data, config_path=str(target))

    def load_from_dict(
        self,
        data: dict[str, Any],
        config_path: str | None = None,
    ) -> CoreConfig:
        """딕셔너리에서 설정을 검증합니다."""
        try:
            return CoreConfig.model_validate(data)
        except ValidationError as e:
            logger.error("설정 검증 실패", errors=e.errors(), config_path=config_path)
            raise ConfigError(
                ErrorCode.CONFIG_INVALID,
                "설정 검증에 실패했습니다",
                config_path=config_path,
                details={"errors": e.errors(include_url=False)},
            ) from e

    def validate(self, config: CoreConfig) -> tuple[bool, list[str]]:
        """
        추가 교차 검증.
        - 의존 모듈이 모두 설정에 있는지
        - 흐름 source가 설정된 모듈인지
        - 네트워크 의존 대상에 all-features가 없는지
        """
        errors: list[str] = []
        module_names = {m.name for m in config.modules}

        # 1) 모듈 의존성
        for module in config.modules:
            for dependency in module.dependencies:
                if dependency not in module_names:
                    errors.append(
                        f"모듈 {module.name}: 등록되지 않은 의존 모듈 {dependency}"
                    )

        # 2) 흐름
        for flow in config.flows:
            if flow.source not in module_names:
                errors.append(f"흐름 {flow.source}→{flow.target}: 알 수 없는 source 모듈")

        # 3) 라우터
        if "all-features" in config.router.network_dependent_targets:
            errors.append("router.network_dependent_targets에 all-features를 넣을 수 없습니다")

        return len(errors) == 0, errors

    def to_runtime(self, config: CoreConfig) -> RuntimeConfig:
        """스키마를 런타임 번들로 변환합니다."""
        return RuntimeConfig(
            descriptors=[
                ModuleDescriptor.create(
                    m.name,
                    priority=m.priority,
                    dependencies=m.dependencies,
                    enabled=m.enabled,
                )
                for m in config.modules
            ],
            flows=[DataFlowEdge(f.source, f.target, enabled=f.enabled) for f in config.flows],
            module_options={m.name: dict(m.options) for m in config.modules if m.options},
        )
