"""
energy-flow - 에너지/소셜 배터리 트래커의 오케스트레이션 코어

기능 모듈을 의존성 순서대로 부팅하고, 이벤트 버스와 상태 저장소를 통해
모듈 간 데이터 흐름을 연결합니다.
"""

__version__ = "0.1.0"
__author__ = "EnergyFlow Team"

from energy_flow.common.errors import (
    EnergyFlowError,
    CycleDetectedError,
    UnknownModuleError,
    CriticalModuleLoadError,
    IntegrationVerificationError,
    ConfigError,
    ErrorCode,
)
from energy_flow.common.logging import get_logger

__all__ = [
    "__version__",
    "EnergyFlowError",
    "CycleDetectedError",
    "UnknownModuleError",
    "CriticalModuleLoadError",
    "IntegrationVerificationError",
    "ConfigError",
    "ErrorCode",
    "get_logger",
]
