"""의존성 해석기"""

from energy_flow.application.loader.resolver import DependencyResolver

__all__ = ["DependencyResolver"]
