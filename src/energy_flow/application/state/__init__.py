"""상태 저장소"""

from energy_flow.application.state.store import MAX_AI_INSIGHTS, StateStore

__all__ = ["MAX_AI_INSIGHTS", "StateStore"]
