"""
공통 유틸리티 모듈

에러 처리, 로깅 등 코어 전체에서 사용하는 공통 기능을 제공합니다.
"""

from energy_flow.common.errors import (
    EnergyFlowError,
    CycleDetectedError,
    UnknownModuleError,
    ModuleLoadError,
    CriticalModuleLoadError,
    ModuleReinitializationError,
    DataFlowError,
    ProbeTimeoutError,
    IntegrationVerificationError,
    StateValidationError,
    ConfigError,
    ErrorCode,
    ErrorType,
    is_fatal,
)
from energy_flow.common.logging import get_logger, configure_logging, log_context

__all__ = [
    # 에러
    "EnergyFlowError",
    "CycleDetectedError",
    "UnknownModuleError",
    "ModuleLoadError",
    "CriticalModuleLoadError",
    "ModuleReinitializationError",
    "DataFlowError",
    "ProbeTimeoutError",
    "IntegrationVerificationError",
    "StateValidationError",
    "ConfigError",
    "ErrorCode",
    "ErrorType",
    "is_fatal",
    # 로깅
    "get_logger",
    "configure_logging",
    "log_context",
]
