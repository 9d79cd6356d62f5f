"""
모듈 기술자 모델

의존성 해석기가 관리하는 기능 모듈의 선언 정보와 상태를 정의합니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class ModuleState(str, Enum):
    """
    모듈 로드 상태

    Registered → Loading → {Loaded | Failed}
    Loaded → Disabled (명시적 비활성화)
    Disabled → Registered (재활성화, 자동 로드 없음)
    """

    REGISTERED = "registered"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"
    DISABLED = "disabled"


@dataclass
class ModuleDescriptor:
    """
    모듈 기술자

    Attributes:
        name: 모듈 고유 이름
        enabled: 활성화 여부 (enable/disable 호출로 변경)
        dependencies: 선행 로드되어야 하는 모듈 이름 집합
        priority: 우선순위. 낮을수록 먼저 로드되며 더 핵심적인 모듈
    """

    name: str
    enabled: bool = True
    dependencies: frozenset[str] = field(default_factory=frozenset)
    priority: int = 100

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("모듈 이름은 비워둘 수 없습니다")
        if not isinstance(self.dependencies, frozenset):
            self.dependencies = frozenset(self.dependencies)

    @classmethod
    def create(
        cls,
        name: str,
        priority: int = 100,
        dependencies: Iterable[str] = (),
        enabled: bool = True,
    ) -> "ModuleDescriptor":
        """키워드 인자로 기술자를 생성합니다."""
        return cls(
            name=name,
            enabled=enabled,
            dependencies=frozenset(dependencies),
            priority=priority,
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환합니다."""
        return {
            "name": self.name,
            "enabled": self.enabled,
            "dependencies": sorted(self.dependencies),
            "priority": self.priority,
        }


@dataclass(frozen=True)
class Readiness:
    """
    애플리케이션 준비 상태

    Attributes:
        loaded_count: 로드된 모듈 수
        total_count: 활성 모듈 수
        critical_loaded: 핵심 모듈(priority <= 임계값)이 모두 로드되었는지
        is_ready: 핵심 모듈이 로드되었고 로드 루프가 실행 중이 아닌지
    """

    loaded_count: int
    total_count: int
    critical_loaded: bool
    is_ready: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded_count": self.loaded_count,
            "total_count": self.total_count,
            "critical_loaded": self.critical_loaded,
            "is_ready": self.is_ready,
        }
