"""
데이터 흐름 모델

모듈 간 데이터 흐름 엣지와 라우팅 대상 종류를 정의합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

TransformFunc = Callable[[Any], Any]

FLOW_ID_SEPARATOR = "→"


class FlowTarget(str, Enum):
    """
    라우팅 대상

    라우터의 디스패치는 이 열거형에 대해서만 정의됩니다.
    """

    CHARTS = "charts"
    AI_INSIGHTS = "ai-insights"
    PWA = "pwa"
    ALL_FEATURES = "all-features"

    @property
    def category(self) -> str:
        """전역 변환기 키에 쓰이는 대상 분류 (예: ai-insights → ai)"""
        return self.value.split("-")[0]


def make_flow_id(source: str, target: str) -> str:
    """흐름 ID를 생성합니다 (source→target)."""
    return f"{source}{FLOW_ID_SEPARATOR}{target}"


@dataclass
class DataFlowEdge:
    """
    데이터 흐름 엣지

    동일 source에서 여러 엣지가 나갈 수 있습니다.
    엣지는 삭제되지 않고 활성/비활성만 전환됩니다.

    Attributes:
        source: 출발 모듈 이름
        target: 도착 대상 (FlowTarget 값)
        transform: 엣지 전용 변환 함수 (선택, 순수 함수)
        enabled: 활성화 여부
    """

    source: str
    target: str
    transform: TransformFunc | None = None
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.source:
            raise ValueError("흐름 source는 비워둘 수 없습니다")
        if isinstance(self.target, FlowTarget):
            self.target = self.target.value

    @property
    def id(self) -> str:
        """흐름 ID (source→target)"""
        return make_flow_id(self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환합니다 (transform은 존재 여부만)."""
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "enabled": self.enabled,
            "has_transform": self.transform is not None,
        }
