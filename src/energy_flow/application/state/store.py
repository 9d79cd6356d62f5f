"""
상태 저장소

애플리케이션 상태의 유일한 변경 지점입니다.
변경마다 구독자에게 스냅샷을 전달하고, 필요한 경우 파생 이벤트를 발행합니다.
"""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime
from typing import Any, Callable, TypeVar

from energy_flow.application.event.bus import EventBus
from energy_flow.common.errors import StateValidationError
from energy_flow.common.logging import get_logger
from energy_flow.domain.models.event import EventType
from energy_flow.domain.models.state import (
    AIInsight,
    AppState,
    ConnectivityState,
    EnergyEntry,
    SocialBatteryEntry,
    SyncStatus,
    ensure_aware,
)

logger = get_logger(__name__)

StateListener = Callable[[AppState], None]

_Record = TypeVar("_Record", EnergyEntry, SocialBatteryEntry, AIInsight)

# 보관하는 최근 AI 인사이트 수
MAX_AI_INSIGHTS = 50


def _coerce(record_type: type[_Record], value: Any, collection: str) -> _Record:
    """레코드 또는 딕셔너리를 레코드로 변환합니다."""
    if isinstance(value, record_type):
        return value
    if not isinstance(value, dict):
        raise StateValidationError(
            f"{record_type.__name__} 또는 dict가 필요합니다: {type(value).__name__}",
            collection,
        )
    if not value.get("id"):
        raise StateValidationError("id는 필수입니다", collection, field_name="id")
    try:
        return record_type.from_dict(value)
    except (TypeError, ValueError) as e:
        raise StateValidationError(
            f"{record_type.__name__} 형식이 올바르지 않습니다: {e}",
            collection,
            details={"id": value.get("id")},
        ) from e


def _by_id(delete: Callable[[str], bool]) -> Callable[[Any], None]:
    """`{"id": ...}` 또는 id 문자열 페이로드를 받는 삭제 핸들러"""

    def handler(data: Any) -> None:
        delete(data.get("id") if isinstance(data, dict) else data)

    return handler


class StateStore:
    """
    상태 저장소

    주요 기능:
    - 상태 스냅샷 조회 (최상위만 복사, 내부 컬렉션은 공유)
    - 도메인 레코드 추가/수정/삭제
    - 변경 구독
    - 버스 이벤트 바인딩 (bind_events)

    Example:
        >>> store = StateStore(bus)
        >>> store.subscribe(lambda state: print(len(state.energy_data)))
        >>> store.add_energy_entry({"id": "e1", "level": 7, "type": "creative"})
        1
    """

    SOURCE = "StateStore"

    def __init__(self, bus: EventBus) -> None:
        """
        상태 저장소 초기화

        Args:
            bus: 파생 이벤트를 발행할 이벤트 버스
        """
        self._bus = bus
        self._state = AppState()
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._bindings: list[Callable[[], None]] = []

    # === 조회 ===

    def get_state(self) -> AppState:
        """현재 상태의 얕은 스냅샷을 반환합니다."""
        with self._lock:
            return dataclasses.replace(self._state)

    def get_energy_data(self) -> list[EnergyEntry]:
        with self._lock:
            return list(self._state.energy_data)

    def get_social_battery_data(self) -> list[SocialBatteryEntry]:
        with self._lock:
            return list(self._state.social_battery_data)

    def get_ai_insights(self) -> list[AIInsight]:
        with self._lock:
            return list(self._state.ai_insights)

    def get_current_view(self) -> str:
        with self._lock:
            return self._state.current_view

    def get_energy_data_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[EnergyEntry]:
        """
        start <= timestamp <= end 인 에너지 기록을 반환합니다.

        오프셋이 없는 경계는 UTC로 간주합니다.
        """
        start, end = ensure_aware(start), ensure_aware(end)
        with self._lock:
            return [e for e in self._state.energy_data if start <= e.timestamp <= end]

    def get_social_battery_data_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[SocialBatteryEntry]:
        """start <= timestamp <= end 인 소셜 배터리 기록을 반환합니다."""
        start, end = ensure_aware(start), ensure_aware(end)
        with self._lock:
            return [
                e for e in self._state.social_battery_data if start <= e.timestamp <= end
            ]

    def get_counts(self) -> dict[str, int]:
        """컬렉션별 레코드 수"""
        with self._lock:
            return {
                "energy": len(self._state.energy_data),
                "social": len(self._state.social_battery_data),
                "insights": len(self._state.ai_insights),
            }

    # === 구독 ===

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        상태 변경 리스너를 등록합니다.

        Returns:
            구독 해제 함수 (여러 번 호출해도 안전)
        """
        with self._lock:
            self._listeners.append(listener)

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            with self._lock:
                if removed:
                    return
                removed = True
                for index, registered in enumerate(self._listeners):
                    if registered is listener:
                        del self._listeners[index]
                        break

        return unsubscribe

    def _notify_change(self) -> None:
        """상태 변경을 알립니다."""
        snapshot = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"상태 리스너 오류: {e}")

    def _chart_data_updated(self, kind: str) -> None:
        self._bus.emit(EventType.CHART_DATA_UPDATED, {"type": kind}, self.SOURCE)

    def _replace_record(self, collection: str, record: _Record) -> bool:
        with self._lock:
            records: list[Any] = getattr(self._state, collection)
            for index, existing in enumerate(records):
                if existing.id == record.id:
                    records[index] = record
                    return True
        logger.debug(f"수정할 기록 없음: {collection}/{record.id}")
        return False

    def _remove_record(self, collection: str, entry_id: str) -> bool:
        if not entry_id:
            raise StateValidationError("id는 필수입니다", collection, field_name="id")
        with self._lock:
            records: list[Any] = getattr(self._state, collection)
            remaining = [r for r in records if r.id != entry_id]
            if len(remaining) == len(records):
                logger.debug(f"삭제할 기록 없음: {collection}/{entry_id}")
                return False
            setattr(self._state, collection, remaining)
        return True

    # === 에너지 기록 ===

    def add_energy_entry(self, entry: EnergyEntry | dict[str, Any]) -> EnergyEntry:
        record = _coerce(EnergyEntry, entry, "energy_data")
        with self._lock:
            self._state.energy_data.append(record)
        self._notify_change()
        self._chart_data_updated("energy")
        return record

    def update_energy_entry(self, entry: EnergyEntry | dict[str, Any]) -> bool:
        """
        같은 id의 에너지 기록을 교체합니다.

        Returns:
            교체 여부 (id가 없으면 아무 것도 하지 않고 False)
        """
        if not self._replace_record("energy_data", _coerce(EnergyEntry, entry, "energy_data")):
            return False
        self._notify_change()
        self._chart_data_updated("energy")
        return True

    def delete_energy_entry(self, entry_id: str) -> bool:
        """
        에너지 기록을 삭제합니다.

        Returns:
            삭제 여부 (id가 없으면 아무 것도 하지 않고 False)
        """
        if not self._remove_record("energy_data", entry_id):
            return False
        self._notify_change()
        self._chart_data_updated("energy")
        return True

    # === 소셜 배터리 ===

    def add_social_battery_entry(
        self,
        entry: SocialBatteryEntry | dict[str, Any],
    ) -> SocialBatteryEntry:
        record = _coerce(SocialBatteryEntry, entry, "social_battery_data")
        with self._lock:
            self._state.social_battery_data.append(record)
        self._notify_change()
        self._chart_data_updated("social")
        return record

    def update_social_battery_entry(
        self,
        entry: SocialBatteryEntry | dict[str, Any],
    ) -> bool:
        """같은 id의 소셜 배터리 기록을 교체합니다. id가 없으면 False."""
        record = _coerce(SocialBatteryEntry, entry, "social_battery_data")
        if not self._replace_record("social_battery_data", record):
            return False
        self._notify_change()
        self._chart_data_updated("social")
        return True

    def delete_social_battery_entry(self, entry_id: str) -> bool:
        if not self._remove_record("social_battery_data", entry_id):
            return False
        self._notify_change()
        self._chart_data_updated("social")
        return True

    # === AI 인사이트 ===

    def add_ai_insight(self, insight: AIInsight | dict[str, Any]) -> AIInsight:
        """
        인사이트를 추가합니다.

        오래된 것부터 잘라내 최근 MAX_AI_INSIGHTS개만 유지합니다 (목록은 추가 순서).
        """
        record = _coerce(AIInsight, insight, "ai_insights")
        with self._lock:
            self._state.ai_insights.append(record)
            if len(self._state.ai_insights) > MAX_AI_INSIGHTS:
                self._state.ai_insights = self._state.ai_insights[-MAX_AI_INSIGHTS:]
        self._notify_change()
        return record

    def delete_ai_insight(self, insight_id: str) -> bool:
        if not self._remove_record("ai_insights", insight_id):
            return False
        self._notify_change()
        return True

    # === 부가 상태 ===

    def _replace(self, current: Any, collection: str, updates: dict[str, Any]) -> Any:
        allowed = {f.name for f in dataclasses.fields(current)}
        unknown = set(updates) - allowed
        if unknown:
            raise StateValidationError(
                f"알 수 없는 필드입니다: {', '.join(sorted(unknown))}",
                collection,
                field_name=sorted(unknown)[0],
            )
        return dataclasses.replace(current, **updates)

    def update_connectivity(self, **updates: Any) -> ConnectivityState:
        """연결 상태를 부분 갱신합니다 (예: is_online=False)."""
        if isinstance(updates.get("sync_status"), str):
            try:
                updates["sync_status"] = SyncStatus(updates["sync_status"])
            except ValueError as e:
                raise StateValidationError(
                    str(e), "connectivity", field_name="sync_status"
                ) from e
        with self._lock:
            self._state.connectivity = self._replace(
                self._state.connectivity, "connectivity", updates
            )
            result = self._state.connectivity
        self._notify_change()
        return result

    def update_current_view(self, view: str) -> None:
        if not view:
            raise StateValidationError("view는 비워둘 수 없습니다", "current_view")
        with self._lock:
            self._state.current_view = view
        self._notify_change()

    def update_user_preferences(self, **updates: Any) -> None:
        with self._lock:
            user = self._state.user
            user.preferences = self._replace(user.preferences, "user.preferences", updates)
        self._notify_change()

    def update_app_settings(self, **updates: Any) -> None:
        with self._lock:
            user = self._state.user
            user.settings = self._replace(user.settings, "user.settings", updates)
        self._notify_change()

    def reset_state(self) -> None:
        """초기 상태로 되돌립니다. 구독자에게 알리지 않습니다."""
        with self._lock:
            self._state = AppState()

    # === 이벤트 바인딩 ===

    def bind_events(self) -> None:
        """도메인 이벤트를 구독하여 상태에 반영합니다. 여러 번 호출해도 한 번만 바인딩됩니다."""
        if self._bindings:
            return

        handlers: dict[EventType, Callable[[Any], None]] = {
            EventType.ENERGY_LOGGED: self.add_energy_entry,
            EventType.ENERGY_UPDATED: self.update_energy_entry,
            EventType.ENERGY_DELETED: _by_id(self.delete_energy_entry),
            EventType.SOCIAL_BATTERY_LOGGED: self.add_social_battery_entry,
            EventType.SOCIAL_BATTERY_UPDATED: self.update_social_battery_entry,
            EventType.SOCIAL_BATTERY_DELETED: _by_id(self.delete_social_battery_entry),
            EventType.AI_INSIGHT_GENERATED: self.add_ai_insight,
            EventType.AI_INSIGHT_DELETED: _by_id(self.delete_ai_insight),
            EventType.PWA_ONLINE: lambda _: self.update_connectivity(is_online=True),
            EventType.PWA_OFFLINE: lambda _: self.update_connectivity(is_online=False),
            EventType.PWA_INSTALLED: lambda _: self.update_connectivity(is_installed=True),
            EventType.PWA_UPDATE_AVAILABLE: lambda _: self.update_connectivity(
                update_available=True
            ),
            EventType.NAVIGATION_CHANGED: self._on_navigation_changed,
        }
        for event_type, handler in handlers.items():
            self._bindings.append(self._bus.subscribe(event_type, handler))

        logger.debug(f"상태 저장소 이벤트 바인딩: {len(handlers)}개")

    def unbind_events(self) -> None:
        for unsubscribe in self._bindings:
            unsubscribe()
        self._bindings.clear()

    def _on_navigation_changed(self, data: Any) -> None:
        view = data.get("view") if isinstance(data, dict) else data
        self.update_current_view(view)
