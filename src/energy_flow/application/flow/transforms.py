"""
기본 데이터 변환기

라우터의 전역 변환기 키는 "{source}-to-{target 분류}" 형식입니다.
각 변환기는 출발 모듈의 상태 조각을 받아 대상이 기대하는 형태로 바꿉니다.
차트 계산이나 AI 분석은 하지 않습니다.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from energy_flow.domain.models.flow import TransformFunc
from energy_flow.domain.models.state import EnergyEntry, EnergyType, SocialBatteryEntry


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def energy_to_chart(entries: Iterable[EnergyEntry]) -> dict[str, Any]:
    """에너지 기록을 차트 라벨/데이터셋 형태로 바꿉니다."""
    entries = list(entries)

    def levels(energy_type: EnergyType) -> list[int]:
        return [e.level for e in entries if e.type == energy_type]

    return {
        "labels": [e.timestamp.date().isoformat() for e in entries],
        "datasets": [
            {"label": "Creative Energy", "data": levels(EnergyType.CREATIVE)},
            {"label": "Physical Energy", "data": levels(EnergyType.PHYSICAL)},
        ],
    }


def social_to_ai(entries: Iterable[SocialBatteryEntry]) -> dict[str, Any]:
    return {
        "type": "social-pattern",
        "data": [
            {
                "level": e.level,
                "interaction_type": e.interaction_type.value,
                "timestamp": e.timestamp.isoformat(),
                "drain_factors": list(e.drain_factors),
                "recharge_factors": list(e.recharge_factors),
            }
            for e in entries
        ],
        "timestamp": _now_iso(),
    }


def energy_to_ai(entries: Iterable[EnergyEntry]) -> dict[str, Any]:
    return {
        "type": "energy-pattern",
        "data": [
            {
                "level": e.level,
                "type": e.type.value,
                "timestamp": e.timestamp.isoformat(),
                "activities": list(e.activities),
                "mood": e.mood,
            }
            for e in entries
        ],
        "timestamp": _now_iso(),
    }


def charts_to_ai(context: dict[str, Any]) -> dict[str, Any]:
    """차트가 보여주는 데이터 범위를 AI 입력 형태로 요약합니다."""
    energy = list(context.get("energy_data", ()))
    social = list(context.get("social_data", ()))
    timestamps = [e.timestamp for e in energy] + [e.timestamp for e in social]
    return {
        "type": "chart-interaction",
        "data": {
            "energy_points": len(energy),
            "social_points": len(social),
            "time_range": (
                [min(timestamps).isoformat(), max(timestamps).isoformat()]
                if timestamps else None
            ),
        },
        "timestamp": _now_iso(),
    }


def default_transformers() -> dict[str, TransformFunc]:
    """라우터에 등록되는 기본 변환기 {키: 함수}"""
    return {
        "energy-tracking-to-charts": energy_to_chart,
        "social-battery-to-ai": social_to_ai,
        "energy-tracking-to-ai": energy_to_ai,
        "charts-to-ai": charts_to_ai,
    }
