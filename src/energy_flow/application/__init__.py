"""
Application Layer

코어의 유스케이스를 구현합니다.
Domain Layer만 참조하며, Interface Layer에 의존하지 않습니다.

구성 요소:
- event: 이벤트 버스
- state: 상태 저장소
- loader: 의존성 해석기
- flow: 데이터 흐름 라우터, 변환기
- orchestrator: 부팅, 통합 검증, 일관성 모니터링
"""

from energy_flow.application.event.bus import EventBus
from energy_flow.application.state.store import StateStore
from energy_flow.application.loader.resolver import DependencyResolver
from energy_flow.application.flow.router import DataFlowRouter
from energy_flow.application.orchestrator.orchestrator import Orchestrator

__all__ = [
    "EventBus",
    "StateStore",
    "DependencyResolver",
    "DataFlowRouter",
    "Orchestrator",
]
