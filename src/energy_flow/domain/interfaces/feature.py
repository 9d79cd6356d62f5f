"""
기능 모듈 인터페이스 정의

의존성 해석기가 로드하는 모든 기능 모듈이 구현해야 하는
인터페이스를 Protocol로 정의합니다.

이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Protocol, runtime_checkable

from energy_flow.common.errors import ErrorType
from energy_flow.domain.models.event import EventType, feature_ready_event

Unsubscribe = Callable[[], None]
Listener = Callable[[Any], None]


class EventPublisher(Protocol):
    """기능 모듈이 사용하는 이벤트 버스 인터페이스 (Application에서 구현)"""

    def subscribe(self, event_type: EventType | str, listener: Listener) -> Unsubscribe: ...
    def emit(self, event_type: EventType | str, data: Any = None, source: str = "unknown") -> None: ...


@runtime_checkable
class FeatureModule(Protocol):
    """
    기능 모듈 기본 인터페이스 (Protocol)

    의존성 해석기는 모듈 이름으로 이 객체를 찾아 initialize()를 await 합니다.
    initialize()가 예외 없이 끝나면 Loaded, 예외가 발생하면 Failed로 전이합니다.

    플러그인 개발 시:
    - BaseFeature를 상속받아 사용하는 것을 권장합니다 (ready 이벤트, 구독 정리 자동화)
    - 또는 이 Protocol을 직접 구현할 수 있습니다

    Attributes:
        name: 모듈 고유 이름 (예: "energy-tracking")

    Example:
        >>> class ReminderFeature(BaseFeature):
        ...     name = "reminders"
        ...     priority = 6
        ...     dependencies = ("core-systems",)
        ...
        ...     async def setup(self) -> None:
        ...         self.listen("energy:logged", self._on_energy)
    """

    name: str
    """모듈 고유 이름"""

    async def initialize(self) -> None:
        """
        모듈을 초기화합니다.

        Raises:
            초기화 중 발생한 예외는 해석기가 받아 로드 실패 정책을 적용합니다.
        """
        ...


class BaseFeature:
    """
    기능 모듈 베이스 클래스

    이 클래스를 상속받으면 FeatureModule Protocol을 자동으로 만족합니다.
    하위 클래스는 setup()만 구현하면 됩니다.

    initialize()는 한 번만 setup()을 실행하고, 성공하면
    `feature:<name>-ready` 이벤트를 발행합니다. 실패하면
    `error:occurred`(type=feature-initialization-error)를 발행한 뒤 예외를 다시 던집니다.

    Attributes:
        name: 모듈 고유 이름 (하위 클래스에서 정의)
        priority: 기본 우선순위 (하위 클래스에서 정의)
        dependencies: 기본 의존성 목록
    """

    name: ClassVar[str]
    priority: ClassVar[int]
    dependencies: ClassVar[tuple[str, ...]] = ()

    def __init__(self, bus: EventPublisher, **options: Any) -> None:
        """
        베이스 기능 모듈 초기화

        Args:
            bus: 이벤트 버스
            **options: 모듈별 설정 옵션
        """
        if not isinstance(getattr(self, "name", None), str):
            raise TypeError(
                f"{self.__class__.__name__}는 'name' 속성을 정의해야 합니다"
            )
        if not isinstance(getattr(self, "priority", None), int):
            raise TypeError(
                f"{self.__class__.__name__}는 'priority' 속성을 정의해야 합니다"
            )
        self.bus = bus
        self.options = options.copy() if options else {}
        self.initialized = False
        self._subscriptions: list[Unsubscribe] = []

    @property
    def source(self) -> str:
        """이벤트 발행 주체 이름 (예: EnergyTrackingFeature)"""
        return self.__class__.__name__

    async def initialize(self) -> None:
        if self.initialized:
            return

        try:
            await self.setup()
        except Exception as e:
            self.teardown()
            self.bus.emit(
                EventType.ERROR_OCCURRED,
                {
                    "type": ErrorType.FEATURE_INITIALIZATION.value,
                    "module": self.name,
                    "error": str(e),
                },
                self.source,
            )
            raise

        self.initialized = True
        self.bus.emit(feature_ready_event(self.name), {}, self.source)

    async def setup(self) -> None:
        """
        모듈별 초기화 로직

        기본 구현은 아무 작업도 하지 않습니다.
        """
        return None

    def listen(self, event_type: EventType | str, listener: Listener) -> None:
        """구독을 등록하고 teardown() 시 해제되도록 기록합니다."""
        self._subscriptions.append(self.bus.subscribe(event_type, listener))

    def teardown(self) -> None:
        """등록한 모든 구독을 해제합니다."""
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        self.initialized = False
