"""
애플리케이션 상태 모델

상태 저장소가 보관하는 도메인 레코드와 집계 상태를 정의합니다.
이 모듈은 외부 라이브러리에 의존하지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EnergyType(str, Enum):
    """에너지 유형"""
    CREATIVE = "creative"
    PHYSICAL = "physical"
    MENTAL = "mental"
    EMOTIONAL = "emotional"


class InteractionType(str, Enum):
    """사회적 상호작용 유형"""
    SOLO = "solo"
    SMALL_GROUP = "small-group"
    LARGE_GROUP = "large-group"
    PUBLIC = "public"


class InsightType(str, Enum):
    """AI 인사이트 유형"""
    PATTERN = "pattern"
    RECOMMENDATION = "recommendation"
    PREDICTION = "prediction"
    ALERT = "alert"


class SyncStatus(str, Enum):
    """동기화 상태"""
    SYNCED = "synced"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    """
    datetime, ISO 문자열, Unix timestamp를 UTC 기준 aware datetime으로 변환합니다.

    오프셋이 없는 값은 UTC로 간주하고, JS `toISOString()`의 `Z` 접미사도 받습니다.
    """
    if value is None:
        return _now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"지원하지 않는 timestamp 형식입니다: {value!r}")
    return ensure_aware(parsed)


def ensure_aware(value: datetime) -> datetime:
    """오프셋이 없는 datetime을 UTC로 간주합니다."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_level(level: Any) -> int:
    if not isinstance(level, int) or isinstance(level, bool) or not 1 <= level <= 10:
        raise ValueError(f"level은 1~10 범위의 정수여야 합니다: {level!r}")
    return level


@dataclass
class EnergyEntry:
    """
    에너지 기록

    Attributes:
        id: 기록 고유 ID
        level: 에너지 수준 (1~10)
        type: 에너지 유형
        timestamp: 기록 시각
        note: 메모
        activities: 관련 활동 목록
        mood: 기분
    """

    id: str
    level: int
    type: EnergyType
    timestamp: datetime = field(default_factory=_now)
    note: str | None = None
    activities: list[str] = field(default_factory=list)
    mood: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id는 필수입니다")
        _check_level(self.level)
        self.type = EnergyType(self.type)
        self.timestamp = _parse_timestamp(self.timestamp)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnergyEntry":
        """딕셔너리에서 생성합니다."""
        return cls(
            id=data.get("id", ""),
            level=data.get("level"),
            type=data.get("type"),
            timestamp=data.get("timestamp"),
            note=data.get("note"),
            activities=list(data.get("activities") or []),
            mood=data.get("mood"),
        )

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["type"] = self.type.value
        result["timestamp"] = self.timestamp.isoformat()
        return result


@dataclass
class SocialBatteryEntry:
    """
    소셜 배터리 기록

    Attributes:
        id: 기록 고유 ID
        level: 소셜 배터리 수준 (1~10)
        interaction_type: 상호작용 유형
        timestamp: 기록 시각
        drain_factors: 소모 요인
        recharge_factors: 충전 요인
        note: 메모
    """

    id: str
    level: int
    interaction_type: InteractionType
    timestamp: datetime = field(default_factory=_now)
    drain_factors: list[str] = field(default_factory=list)
    recharge_factors: list[str] = field(default_factory=list)
    note: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id는 필수입니다")
        _check_level(self.level)
        self.interaction_type = InteractionType(self.interaction_type)
        self.timestamp = _parse_timestamp(self.timestamp)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SocialBatteryEntry":
        """딕셔너리에서 생성합니다."""
        return cls(
            id=data.get("id", ""),
            level=data.get("level"),
            interaction_type=data.get("interaction_type", data.get("interactionType")),
            timestamp=data.get("timestamp"),
            drain_factors=list(data.get("drain_factors") or data.get("drainFactors") or []),
            recharge_factors=list(
                data.get("recharge_factors") or data.get("rechargeFactors") or []
            ),
            note=data.get("note"),
        )

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["interaction_type"] = self.interaction_type.value
        result["timestamp"] = self.timestamp.isoformat()
        return result


@dataclass
class AIInsight:
    """
    AI 인사이트

    Attributes:
        id: 인사이트 고유 ID
        type: 인사이트 유형
        title: 제목
        content: 본문
        confidence: 신뢰도 (0.0 ~ 1.0)
        actionable: 실행 가능한 제안인지
        timestamp: 생성 시각
        related_data: 관련 기록 ID 목록
    """

    id: str
    type: InsightType
    title: str
    content: str
    confidence: float = 0.5
    actionable: bool = False
    timestamp: datetime = field(default_factory=_now)
    related_data: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id는 필수입니다")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence는 0.0~1.0 범위여야 합니다: {self.confidence}")
        self.type = InsightType(self.type)
        self.timestamp = _parse_timestamp(self.timestamp)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AIInsight":
        """딕셔너리에서 생성합니다."""
        return cls(
            id=data.get("id", ""),
            type=data.get("type", InsightType.PATTERN),
            title=data.get("title", ""),
            content=data.get("content", ""),
            confidence=float(data.get("confidence", 0.5)),
            actionable=bool(data.get("actionable", False)),
            timestamp=data.get("timestamp"),
            related_data=list(data.get("related_data") or data.get("relatedData") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["type"] = self.type.value
        result["timestamp"] = self.timestamp.isoformat()
        return result


@dataclass
class ConnectivityState:
    """연결/설치 상태"""
    is_online: bool = True
    is_installed: bool = False
    update_available: bool = False
    sync_status: SyncStatus = SyncStatus.SYNCED


@dataclass
class UserPreferences:
    """사용자 선호 설정"""
    theme: str = "warm"
    notifications: bool = True
    auto_sync: bool = True
    reminder_frequency: int = 4  # 시간 단위
    privacy_level: str = "balanced"


@dataclass
class AppSettings:
    """앱 기능 설정"""
    energy_tracking_enabled: bool = True
    social_battery_enabled: bool = True
    ai_insights_enabled: bool = True
    chart_animations: bool = True
    data_retention_days: int = 365


@dataclass
class UserProfile:
    """사용자 설정 묶음"""
    preferences: UserPreferences = field(default_factory=UserPreferences)
    settings: AppSettings = field(default_factory=AppSettings)


@dataclass
class AppState:
    """
    애플리케이션 집계 상태

    상태 저장소만 이 객체를 변경합니다. get_state()가 반환하는 스냅샷은
    최상위 필드만 복사되며 내부 컬렉션은 공유되므로 읽기 전용으로 다뤄야 합니다.
    """

    energy_data: list[EnergyEntry] = field(default_factory=list)
    social_battery_data: list[SocialBatteryEntry] = field(default_factory=list)
    ai_insights: list[AIInsight] = field(default_factory=list)
    connectivity: ConnectivityState = field(default_factory=ConnectivityState)
    current_view: str = "dashboard"
    user: UserProfile = field(default_factory=UserProfile)
