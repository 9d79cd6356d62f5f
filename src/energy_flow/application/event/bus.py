"""
이벤트 버스

모듈 간 동기식 발행/구독, 이벤트 이력, 리스너 장애 격리를 담당합니다.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Callable

from energy_flow.common.logging import get_logger
from energy_flow.domain.models.event import WILDCARD, Event, EventType, event_name

logger = get_logger(__name__)

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """
    이벤트 버스

    emit은 동기식입니다. 이벤트를 이력에 추가한 뒤 해당 유형의 리스너를
    등록 순서대로 호출하고, 이어서 와일드카드("*") 리스너를 호출합니다.

    - 유형 리스너는 event.data를, 와일드카드 리스너는 Event 전체를 받습니다.
    - 리스너 예외는 로그로 남기고 다음 리스너로 진행합니다.
    - 리스너 내부의 emit은 max_emit_depth까지 즉시 중첩 실행됩니다.
      그보다 깊은 emit은 지연 큐에 쌓이고, 가장 바깥 emit이 끝난 뒤 순서대로 처리됩니다.

    Attributes:
        history_size: 이력 버퍼 크기
        max_emit_depth: 즉시 실행되는 최대 중첩 emit 깊이

    Example:
        >>> bus = EventBus()
        >>> unsubscribe = bus.subscribe("energy:logged", lambda data: print(data))
        >>> bus.emit("energy:logged", {"level": 7}, source="EnergyForm")
        {'level': 7}
        >>> unsubscribe()
    """

    DEFAULT_HISTORY_SIZE = 100
    DEFAULT_MAX_EMIT_DEPTH = 32

    def __init__(
        self,
        history_size: int = DEFAULT_HISTORY_SIZE,
        max_emit_depth: int = DEFAULT_MAX_EMIT_DEPTH,
    ) -> None:
        """
        이벤트 버스 초기화

        Args:
            history_size: 이력 버퍼 크기 (1 이상)
            max_emit_depth: 즉시 실행되는 최대 중첩 emit 깊이 (1 이상)
        """
        if history_size < 1:
            raise ValueError(f"history_size는 1 이상이어야 합니다: {history_size}")
        if max_emit_depth < 1:
            raise ValueError(f"max_emit_depth는 1 이상이어야 합니다: {max_emit_depth}")

        self.history_size = history_size
        self.max_emit_depth = max_emit_depth

        self._listeners: dict[str, list[Listener]] = {}
        self._history: deque[Event] = deque(maxlen=history_size)
        self._deferred: deque[Event] = deque()
        self._depth = 0
        self._lock = threading.RLock()

        # 통계
        self._total_emitted = 0
        self._total_deferred = 0
        self._total_listener_errors = 0
        self._max_depth_reached = 0

    def subscribe(self, event_type: EventType | str, listener: Listener) -> Unsubscribe:
        """
        리스너를 등록합니다.

        Args:
            event_type: 이벤트 유형 또는 와일드카드("*")
            listener: 호출될 함수

        Returns:
            구독 해제 함수 (여러 번 호출해도 안전)
        """
        key = event_name(event_type)

        with self._lock:
            self._listeners.setdefault(key, []).append(listener)

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            with self._lock:
                if removed:
                    return
                removed = True
                bucket = self._listeners.get(key)
                if bucket is None:
                    return
                for index, registered in enumerate(bucket):
                    if registered is listener:
                        del bucket[index]
                        break
                if not bucket:
                    del self._listeners[key]

        return unsubscribe

    def emit(
        self,
        event_type: EventType | str,
        data: Any = None,
        source: str = "unknown",
    ) -> None:
        """
        이벤트를 발행합니다.

        리스너 예외로 인해 실패하지 않습니다.

        Args:
            event_type: 이벤트 유형
            data: 페이로드
            source: 발행 주체 식별자
        """
        event = Event(type=event_name(event_type), data=data, source=source)

        with self._lock:
            self._history.append(event)
            self._total_emitted += 1

            if self._depth >= self.max_emit_depth:
                self._deferred.append(event)
                self._total_deferred += 1
                logger.debug(
                    f"emit 깊이 초과, 지연 처리: {event.type}",
                    event_type=event.type,
                    depth=self._depth,
                )
                return

            outermost = self._depth == 0
            self._deliver(event)

            if outermost:
                while self._deferred:
                    self._deliver(self._deferred.popleft())

    def _deliver(self, event: Event) -> None:
        """이벤트를 유형 리스너, 와일드카드 리스너 순으로 전달합니다."""
        self._depth += 1
        self._max_depth_reached = max(self._max_depth_reached, self._depth)
        try:
            # 전달 중 구독/해제가 일어나도 이번 전달에는 영향이 없도록 복사본 사용
            for listener in list(self._listeners.get(event.type, ())):
                self._call(listener, event.data, event.type)

            if event.type != WILDCARD:
                for listener in list(self._listeners.get(WILDCARD, ())):
                    self._call(listener, event, event.type)
        finally:
            self._depth -= 1

    def _call(self, listener: Listener, payload: Any, event_type: str) -> None:
        try:
            listener(payload)
        except Exception as e:
            self._total_listener_errors += 1
            logger.error(
                f"이벤트 리스너 오류 ({event_type}): {e}",
                event_type=event_type,
                listener=getattr(listener, "__qualname__", repr(listener)),
            )

    def get_history(self) -> list[Event]:
        """이력 사본을 오래된 순서로 반환합니다."""
        with self._lock:
            return list(self._history)

    def get_history_by_type(self, event_type: EventType | str) -> list[Event]:
        """특정 유형의 이력만 반환합니다."""
        key = event_name(event_type)
        with self._lock:
            return [event for event in self._history if event.type == key]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    def get_active_listeners(self) -> list[str]:
        """리스너가 하나 이상 등록된 이벤트 유형 목록"""
        with self._lock:
            return list(self._listeners.keys())

    def listener_count(self, event_type: EventType | str) -> int:
        with self._lock:
            return len(self._listeners.get(event_name(event_type), ()))

    def get_stats(self) -> dict[str, Any]:
        """
        통계를 반환합니다.

        Returns:
            통계 딕셔너리
        """
        with self._lock:
            return {
                "history_size": len(self._history),
                "max_history_size": self.history_size,
                "listener_types": len(self._listeners),
                "total_listeners": sum(len(b) for b in self._listeners.values()),
                "total_emitted": self._total_emitted,
                "total_deferred": self._total_deferred,
                "total_listener_errors": self._total_listener_errors,
                "max_depth_reached": self._max_depth_reached,
                "pending_deferred": len(self._deferred),
            }

    def reset_stats(self) -> None:
        """통계를 초기화합니다."""
        with self._lock:
            self._total_emitted = 0
            self._total_deferred = 0
            self._total_listener_errors = 0
            self._max_depth_reached = 0
