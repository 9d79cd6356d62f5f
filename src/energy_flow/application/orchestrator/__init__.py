"""오케스트레이터, 통합 검증 프로브, 타이머"""

from energy_flow.application.orchestrator.orchestrator import Orchestrator
from energy_flow.application.orchestrator.probes import IntegrationProbe, default_probes
from energy_flow.application.orchestrator.timers import Debouncer, PeriodicTask

__all__ = [
    "Orchestrator",
    "IntegrationProbe",
    "default_probes",
    "Debouncer",
    "PeriodicTask",
]
