"""
Domain Layer

순수 비즈니스 규칙과 엔티티를 정의합니다.
외부 라이브러리에 의존하지 않으며, 표준 라이브러리만 사용합니다.

구성 요소:
- interfaces: 기능 모듈 인터페이스 (Protocol)
- models: 데이터 모델 (Event, ModuleDescriptor, DataFlowEdge, AppState)
"""

from energy_flow.domain.interfaces.feature import BaseFeature, FeatureModule
from energy_flow.domain.models.event import Event, EventType
from energy_flow.domain.models.flow import DataFlowEdge, FlowTarget
from energy_flow.domain.models.module import ModuleDescriptor, ModuleState, Readiness
from energy_flow.domain.models.state import AppState
from energy_flow.domain.models.status import IntegrationHealth, IntegrationStatus

__all__ = [
    # 인터페이스
    "FeatureModule",
    "BaseFeature",
    # 이벤트 모델
    "Event",
    "EventType",
    # 모듈 모델
    "ModuleDescriptor",
    "ModuleState",
    "Readiness",
    # 데이터 흐름 모델
    "DataFlowEdge",
    "FlowTarget",
    # 상태 모델
    "AppState",
    "IntegrationHealth",
    "IntegrationStatus",
]
