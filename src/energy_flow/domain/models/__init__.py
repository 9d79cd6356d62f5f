"""
데이터 모델 모듈

이벤트, 모듈 기술자, 데이터 흐름, 애플리케이션 상태 등 핵심 데이터 구조를 정의합니다.
"""

from energy_flow.domain.models.event import (
    WILDCARD,
    Event,
    EventType,
    event_name,
    external_update_event,
    feature_ready_event,
)
from energy_flow.domain.models.flow import DataFlowEdge, FlowTarget, make_flow_id
from energy_flow.domain.models.module import ModuleDescriptor, ModuleState, Readiness
from energy_flow.domain.models.state import (
    AIInsight,
    AppSettings,
    AppState,
    ConnectivityState,
    EnergyEntry,
    EnergyType,
    InsightType,
    InteractionType,
    SocialBatteryEntry,
    SyncStatus,
    UserPreferences,
    UserProfile,
)
from energy_flow.domain.models.status import (
    IntegrationHealth,
    IntegrationStatus,
    ProbeResult,
    ProbeSummary,
)

__all__ = [
    # 이벤트
    "WILDCARD",
    "Event",
    "EventType",
    "event_name",
    "external_update_event",
    "feature_ready_event",
    # 데이터 흐름
    "DataFlowEdge",
    "FlowTarget",
    "make_flow_id",
    # 모듈
    "ModuleDescriptor",
    "ModuleState",
    "Readiness",
    # 상태
    "AIInsight",
    "AppSettings",
    "AppState",
    "ConnectivityState",
    "EnergyEntry",
    "EnergyType",
    "InsightType",
    "InteractionType",
    "SocialBatteryEntry",
    "SyncStatus",
    "UserPreferences",
    "UserProfile",
    # 통합 상태
    "IntegrationHealth",
    "IntegrationStatus",
    "ProbeResult",
    "ProbeSummary",
]
