"""
통합 상태 모델

오케스트레이터가 요청 시점에 계산하는 통합 상태입니다. 저장되지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IntegrationHealth(str, Enum):
    """통합 건강 상태"""
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class IntegrationStatus:
    """
    통합 상태

    Attributes:
        initialized: 부팅 및 통합 검증 완료 여부
        loaded_module_count: 로드된 모듈 수
        loaded_modules: 로드된 모듈 이름 목록
        active_flow_count: 활성 데이터 흐름 수
        health: 건강 상태
        last_consistency_check: 마지막 일관성 검사 시각 (Unix timestamp)
    """

    initialized: bool
    loaded_module_count: int
    active_flow_count: int
    health: IntegrationHealth
    loaded_modules: tuple[str, ...] = field(default_factory=tuple)
    last_consistency_check: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "initialized": self.initialized,
            "loaded_module_count": self.loaded_module_count,
            "loaded_modules": list(self.loaded_modules),
            "active_flow_count": self.active_flow_count,
            "health": self.health.value,
            "last_consistency_check": self.last_consistency_check,
        }


@dataclass(frozen=True)
class ProbeResult:
    """
    통합 검증 프로브 한 건의 결과

    Attributes:
        name: 프로브 이름
        passed: 통과 여부 (건너뛴 프로브도 통과로 집계)
        duration_ms: 실행 시간 (밀리초)
        error: 실패 사유
        skipped: 전제 조건 미충족으로 검사를 건너뛰었는지 여부
    """

    name: str
    passed: bool
    duration_ms: float
    error: str | None = None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class ProbeSummary:
    """프로브 결과 집계"""

    total: int
    passed: int
    failed: int
    skipped: int
    average_duration_ms: float
    success_rate: float

    @classmethod
    def from_results(cls, results: list[ProbeResult]) -> ProbeSummary:
        total = len(results)
        passed = sum(1 for r in results if r.passed)
        return cls(
            total=total,
            passed=passed,
            failed=total - passed,
            skipped=sum(1 for r in results if r.skipped),
            average_duration_ms=(
                sum(r.duration_ms for r in results) / total if total else 0.0
            ),
            success_rate=(passed / total * 100) if total else 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "average_duration_ms": self.average_duration_ms,
            "success_rate": self.success_rate,
        }
