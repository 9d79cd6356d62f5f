"""
타이머 핸들

오케스트레이터가 소유하는 취소 가능한 주기 작업과 디바운서입니다.
둘 다 실행 중인 asyncio 이벤트 루프 위에서 동작합니다.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from energy_flow.common.logging import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """
    주기 작업

    start() 이후 interval_seconds마다 callback을 호출합니다.
    callback 예외는 로그로 남기고 다음 주기를 계속합니다.

    Example:
        >>> task = PeriodicTask(30.0, check, name="consistency")
        >>> task.start()
        >>> ...
        >>> task.cancel()
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], None],
        name: str = "periodic",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds는 0보다 커야 합니다: {interval_seconds}")
        self.interval_seconds = interval_seconds
        self.name = name
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """주기 작업을 시작합니다. 실행 중인 이벤트 루프가 필요합니다."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"periodic:{self.name}"
        )
        logger.debug(f"주기 작업 시작: {self.name} ({self.interval_seconds}초)")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self._callback()
            except Exception as e:
                logger.error(f"주기 작업 오류 ({self.name}): {e}")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug(f"주기 작업 중지: {self.name}")


class Debouncer:
    """
    디바운서

    trigger()가 연달아 호출되면 마지막 호출 후 delay_seconds 동안
    추가 호출이 없을 때 callback을 한 번만 실행합니다.
    trigger()는 다른 스레드에서 호출해도 됩니다.
    """

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[[], None],
        name: str = "debounce",
    ) -> None:
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds는 0 이상이어야 합니다: {delay_seconds}")
        self.delay_seconds = delay_seconds
        self.name = name
        self._callback = callback
        self._loop: asyncio.AbstractEventLoop | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._loop is not None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """현재 실행 중인 이벤트 루프에 연결합니다."""
        self._loop = asyncio.get_running_loop()

    def trigger(self) -> None:
        """호출을 예약하거나, 이미 예약되어 있으면 대기 시간을 다시 시작합니다."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._reschedule)

    def _reschedule(self) -> None:
        if self._loop is None:
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self.delay_seconds, self._fire)

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception as e:
            logger.error(f"디바운스 콜백 오류 ({self.name}): {e}")

    def cancel(self) -> None:
        """예약된 호출을 취소하고 루프 연결을 해제합니다."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._loop = None
