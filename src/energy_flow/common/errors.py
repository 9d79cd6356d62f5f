"""
에러 처리 모듈

Energy Flow 코어 전체에서 사용하는 예외 클래스와 에러 코드를 정의합니다.
모든 예외는 EnergyFlowError를 상속받아 일관된 에러 처리가 가능합니다.

이벤트 버스로 전파되는 에러는 예외 객체가 아니라 `error:occurred` 이벤트의
`type` 판별자(ErrorType)로 분류됩니다.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    에러 코드 열거형

    부팅 치명도(fatal) 판정과 로그 집계에 사용됩니다.
    """

    # 의존성 그래프 관련
    CYCLE_DETECTED = "CYCLE_DETECTED"               # 순환 의존성
    MODULE_NOT_FOUND = "MODULE_NOT_FOUND"           # 등록되지 않은 모듈
    DEPENDENCY_NOT_LOADED = "DEPENDENCY_NOT_LOADED" # 선행 모듈 미로드

    # 모듈 로드 관련
    CRITICAL_MODULE_LOAD_FAILED = "CRITICAL_MODULE_LOAD_FAILED"  # 핵심 모듈 로드 실패
    MODULE_REINIT_FAILED = "MODULE_REINIT_FAILED"           # 모듈 재초기화 실패

    # 데이터 흐름 관련
    DATA_FLOW_TRANSFORM_FAILED = "DATA_FLOW_TRANSFORM_FAILED"  # 변환 함수 오류
    DATA_FLOW_ROUTE_FAILED = "DATA_FLOW_ROUTE_FAILED"          # 라우팅 오류

    # 통합 검증 관련
    INTEGRATION_VERIFICATION_FAILED = "INTEGRATION_VERIFICATION_FAILED"
    INTEGRATION_PROBE_TIMEOUT = "INTEGRATION_PROBE_TIMEOUT"
    APPLICATION_NOT_READY = "APPLICATION_NOT_READY"

    # 상태 관련
    STATE_INVALID = "STATE_INVALID"                 # 상태 변경 요청 검증 실패

    # 설정 관련
    CONFIG_INVALID = "CONFIG_INVALID"               # 설정 검증 실패
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"           # 설정 파일 없음
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"       # 설정 파싱 오류


class ErrorType(str, Enum):
    """
    `error:occurred` 이벤트의 type 판별자

    오케스트레이터의 에러 분류기가 이 값을 기준으로 복구 알림을 발행합니다.
    """

    FEATURE_LOAD = "feature-load-error"
    DATA_FLOW = "data-flow-error"
    DATA_CONSISTENCY = "data-consistency-error"
    INITIALIZATION = "initialization-error"
    INTEGRATION_INITIALIZATION = "integration-initialization-error"
    FEATURE_REINITIALIZATION = "feature-reinitialization-error"
    FEATURE_INITIALIZATION = "feature-initialization-error"


# 부팅 전체를 중단시키는 에러 코드
_FATAL_ERROR_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.CYCLE_DETECTED,
    ErrorCode.MODULE_NOT_FOUND,
    ErrorCode.CRITICAL_MODULE_LOAD_FAILED,
    ErrorCode.INTEGRATION_VERIFICATION_FAILED,
    ErrorCode.APPLICATION_NOT_READY,
    ErrorCode.CONFIG_INVALID,
    ErrorCode.CONFIG_NOT_FOUND,
    ErrorCode.CONFIG_PARSE_ERROR,
})


def is_fatal(error_code: ErrorCode) -> bool:
    """
    에러 코드가 부팅을 중단시키는지 반환합니다.

    Args:
        error_code: 에러 코드

    Returns:
        치명적 에러 여부
    """
    return error_code in _FATAL_ERROR_CODES


class EnergyFlowError(Exception):
    """
    Energy Flow 기본 예외 클래스

    모든 커스텀 예외의 부모 클래스입니다.
    에러 코드, 메시지, 상세 정보를 포함합니다.

    Attributes:
        code: 에러 코드 (ErrorCode)
        message: 호스트 애플리케이션에 표시할 메시지
        details: 추가 상세 정보 (디버깅용)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def fatal(self) -> bool:
        """부팅 중단 여부"""
        return is_fatal(self.code)

    def to_dict(self) -> dict[str, Any]:
        """
        예외 정보를 딕셔너리로 변환합니다.

        `error:occurred` 이벤트 페이로드와 로그에 사용됩니다.
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class CycleDetectedError(EnergyFlowError):
    """
    순환 의존성 예외

    활성 모듈 그래프에 순환이 있을 때 로드 시작 전에 발생합니다.

    Attributes:
        cycle: 순환 경로 (시작 모듈이 끝에 다시 포함됨)
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            ErrorCode.CYCLE_DETECTED,
            f"순환 의존성이 감지되었습니다: {' -> '.join(self.cycle)}",
            {"cycle": self.cycle},
        )


class UnknownModuleError(EnergyFlowError):
    """
    모듈 없음 예외

    등록되지 않은 모듈을 참조할 때 발생합니다.

    Attributes:
        module_name: 찾을 수 없는 모듈 이름
        required_by: 이 모듈을 의존성으로 선언한 모듈 (선택)
    """

    def __init__(self, module_name: str, required_by: str | None = None) -> None:
        self.module_name = module_name
        self.required_by = required_by
        details: dict[str, Any] = {"module_name": module_name}
        if required_by:
            details["required_by"] = required_by
            message = f"등록되지 않은 의존성입니다: {module_name} (요청: {required_by})"
        else:
            message = f"등록되지 않은 모듈입니다: {module_name}"
        super().__init__(ErrorCode.MODULE_NOT_FOUND, message, details)


class ModuleLoadError(EnergyFlowError):
    """
    모듈 로드 예외

    모듈 초기화 중 발생하는 오류를 나타냅니다.

    Attributes:
        module_name: 오류가 발생한 모듈 이름
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        module_name: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.module_name = module_name
        _details = {"module_name": module_name}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class CriticalModuleLoadError(ModuleLoadError):
    """
    핵심 모듈 로드 실패 예외

    priority가 임계값 이하인 모듈이 실패하면 부팅 전체가 중단됩니다.
    """

    def __init__(
        self,
        module_name: str,
        priority: int,
        cause: str,
    ) -> None:
        self.priority = priority
        super().__init__(
            ErrorCode.CRITICAL_MODULE_LOAD_FAILED,
            f"핵심 모듈 {module_name} 로드에 실패했습니다",
            module_name,
            {"priority": priority, "error": cause},
        )


class ModuleReinitializationError(ModuleLoadError):
    """모듈 재초기화 실패 예외"""

    def __init__(self, module_name: str, cause: str) -> None:
        super().__init__(
            ErrorCode.MODULE_REINIT_FAILED,
            f"모듈 {module_name} 재초기화에 실패했습니다: {cause}",
            module_name,
            {"error": cause},
        )


class DataFlowError(EnergyFlowError):
    """
    데이터 흐름 예외

    단일 흐름 엣지의 변환/라우팅 중 발생하는 오류를 나타냅니다.
    라우터 내부에서 격리되어 `error:occurred` 이벤트로 보고됩니다.

    Attributes:
        source: 흐름 출발 모듈
        target: 흐름 도착 대상
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        source: str,
        target: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.source = source
        self.target = target
        _details: dict[str, Any] = {"source": source, "target": target}
        if details:
            _details.update(details)
        super().__init__(code, message, _details)


class ProbeTimeoutError(EnergyFlowError):
    """
    통합 검증 프로브 타임아웃 예외

    Attributes:
        probe_name: 프로브 이름
        timeout_seconds: 적용된 타임아웃 (초)
    """

    def __init__(self, probe_name: str, timeout_seconds: float) -> None:
        self.probe_name = probe_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            ErrorCode.INTEGRATION_PROBE_TIMEOUT,
            f"통합 검증 타임아웃: {probe_name} ({timeout_seconds}초)",
            {"probe_name": probe_name, "timeout_seconds": timeout_seconds},
        )


class IntegrationVerificationError(EnergyFlowError):
    """
    통합 검증 실패 예외

    하나 이상의 프로브가 실패하면 실패한 프로브 이름을 모아 발생합니다.

    Attributes:
        failed_probes: {프로브 이름: 실패 사유}
    """

    def __init__(self, failed_probes: dict[str, str]) -> None:
        self.failed_probes = dict(failed_probes)
        names = ", ".join(self.failed_probes)
        super().__init__(
            ErrorCode.INTEGRATION_VERIFICATION_FAILED,
            f"통합 검증에 실패했습니다: {names}",
            {"failed_probes": self.failed_probes},
        )


class StateValidationError(EnergyFlowError):
    """
    상태 변경 검증 예외

    상태 저장소 변경 요청이 최소 형태 검증을 통과하지 못할 때 발생합니다.

    Attributes:
        collection: 대상 컬렉션 이름
        field_name: 문제가 된 필드 (선택)
    """

    def __init__(
        self,
        message: str,
        collection: str,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.collection = collection
        self.field_name = field_name
        _details: dict[str, Any] = {"collection": collection}
        if field_name:
            _details["field_name"] = field_name
        if details:
            _details.update(details)
        super().__init__(ErrorCode.STATE_INVALID, message, _details)


class ConfigError(EnergyFlowError):
    """
    설정 관련 예외

    설정 파일의 로드, 파싱, 검증 중 발생하는 오류를 나타냅니다.

    Attributes:
        config_path: 오류가 발생한 설정 파일 경로 (선택)
        field_name: 오류가 발생한 필드 이름 (선택)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        config_path: str | None = None,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_path = config_path
        self.field_name = field_name
        _details: dict[str, Any] = {}
        if config_path:
            _details["config_path"] = config_path
        if field_name:
            _details["field_name"] = field_name
        if details:
            _details.update(details)
        super().__init__(code, message, _details)
