"""
이벤트 모델

이벤트 버스로 전달되는 이벤트의 데이터 구조와 이벤트 유형 목록을 정의합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# 모든 이벤트 유형을 구독하는 와일드카드
WILDCARD = "*"


class EventType(str, Enum):
    """
    이벤트 유형

    코어와 기능 모듈이 공유하는 도메인 이벤트 이름입니다.
    버스는 임의의 문자열도 허용하지만(기능별 ready 이벤트 등),
    코어가 발행/구독하는 이름은 모두 여기에 정의됩니다.
    """

    # 에너지 기록
    ENERGY_LOGGED = "energy:logged"
    ENERGY_UPDATED = "energy:updated"
    ENERGY_DELETED = "energy:deleted"

    # 소셜 배터리
    SOCIAL_BATTERY_LOGGED = "social:logged"
    SOCIAL_BATTERY_UPDATED = "social:updated"
    SOCIAL_BATTERY_DELETED = "social:deleted"

    # 차트
    CHART_DATA_UPDATED = "chart:data-updated"
    CHART_VIEW_CHANGED = "chart:view-changed"

    # AI 인사이트
    AI_INSIGHT_GENERATED = "ai:insight-generated"
    AI_INSIGHT_DELETED = "ai:insight-deleted"
    AI_RECOMMENDATION_CREATED = "ai:recommendation-created"
    AI_MODEL_UPDATED = "ai:model-updated"
    AI_PROCESS_DATA = "ai:process-data"

    # 연결 상태 / 설치
    PWA_INSTALLED = "pwa:installed"
    PWA_UPDATE_AVAILABLE = "pwa:update-available"
    PWA_OFFLINE = "pwa:offline"
    PWA_ONLINE = "pwa:online"
    PWA_DATA_UPDATE = "pwa:data-update"

    # 내비게이션
    NAVIGATION_CHANGED = "nav:changed"

    # 동기화
    DATA_SYNC_START = "data:sync-start"
    DATA_SYNC_COMPLETE = "data:sync-complete"
    DATA_SYNC_ERROR = "data:sync-error"

    # 에러
    ERROR_OCCURRED = "error:occurred"

    # 부팅 (의존성 해석기)
    APP_INITIALIZATION_START = "app:initialization-start"
    APP_INITIALIZATION_COMPLETE = "app:initialization-complete"
    FEATURE_LOADED = "feature:loaded"
    FEATURE_ENABLED = "feature:enabled"
    FEATURE_DISABLED = "feature:disabled"

    # 데이터 흐름 라우터
    DATA_FLOW_OFFLINE_MODE = "data-flow:offline-mode"

    # 오케스트레이터
    INTEGRATOR_INITIALIZATION_START = "integrator:initialization-start"
    INTEGRATOR_INITIALIZATION_COMPLETE = "integrator:initialization-complete"
    INTEGRATOR_VERIFICATION_START = "integrator:verification-start"
    INTEGRATOR_VERIFICATION_COMPLETE = "integrator:verification-complete"
    INTEGRATOR_APP_READY = "integrator:app-ready"
    INTEGRATOR_FEATURE_INTEGRATED = "integrator:feature-integrated"
    INTEGRATION_ENERGY_CHARTS_READY = "integration:energy-charts-ready"
    INTEGRATION_SOCIAL_AI_READY = "integration:social-ai-ready"
    INTEGRATION_FULL_PWA_READY = "integration:full-pwa-ready"
    INTEGRATION_ENERGY_DATA_FLOW = "integration:energy-data-flow"
    INTEGRATION_SOCIAL_DATA_FLOW = "integration:social-data-flow"
    INTEGRATION_CHART_INTERACTION_FLOW = "integration:chart-interaction-flow"
    INTEGRATION_AI_INSIGHT_FLOW = "integration:ai-insight-flow"
    INTEGRATION_RECOVERY_ATTEMPT = "integration:recovery-attempt"
    INTEGRATION_ERROR_LOGGED = "integration:error-logged"
    INTEGRATION_CONSISTENCY_WARNING = "integration:consistency-warning"
    INTEGRATION_FEATURE_REINITIALIZED = "integration:feature-reinitialized"


def event_name(event_type: EventType | str) -> str:
    """EventType 또는 문자열을 버스 키 문자열로 변환합니다."""
    if isinstance(event_type, EventType):
        return event_type.value
    return str(event_type)


def feature_ready_event(module_name: str) -> str:
    """
    기능 모듈 준비 완료 이벤트 이름을 반환합니다.

    예: "energy-tracking" → "feature:energy-tracking-ready"
    """
    return f"feature:{module_name}-ready"


def external_update_event(module_name: str) -> str:
    """전체 브로드캐스트 흐름이 모듈별로 발행하는 이벤트 이름"""
    return f"{module_name}:external-update"


@dataclass(frozen=True)
class Event:
    """
    버스 이벤트

    emit 호출마다 한 번 생성되며 이후 변경되지 않습니다.
    이력 버퍼와 와일드카드 리스너에 그대로 전달됩니다.

    Attributes:
        type: 이벤트 유형 문자열 (예: "energy:logged")
        data: 불투명 페이로드
        source: 발행 주체 식별자
        timestamp: 발행 시각 (Unix timestamp, 초 단위)

    Example:
        >>> event = Event(type="energy:logged", data={"level": 7}, source="EnergyForm")
        >>> event.to_dict()["type"]
        'energy:logged'
    """

    type: str
    data: Any = None
    source: str = "unknown"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환합니다."""
        return {
            "type": self.type,
            "data": self.data,
            "source": self.source,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        return f"Event({self.type}, source={self.source})"
