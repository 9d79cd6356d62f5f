"""설정 스키마와 로더"""

from energy_flow.interface.config.loader import ConfigLoader, RuntimeConfig
from energy_flow.interface.config.schema import CoreConfig

__all__ = ["ConfigLoader", "CoreConfig", "RuntimeConfig"]
