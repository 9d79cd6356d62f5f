"""이벤트 버스"""

from energy_flow.application.event.bus import EventBus

__all__ = ["EventBus"]
