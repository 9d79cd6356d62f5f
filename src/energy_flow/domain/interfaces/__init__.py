"""
인터페이스 모듈

기능 모듈이 구현해야 하는 인터페이스(Protocol)를 정의합니다.
"""

from energy_flow.domain.interfaces.feature import BaseFeature, EventPublisher, FeatureModule

__all__ = ["FeatureModule", "BaseFeature", "EventPublisher"]
