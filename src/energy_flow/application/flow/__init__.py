"""데이터 흐름 라우터와 변환기"""

from energy_flow.application.flow.router import DataFlowRouter, default_flows
from energy_flow.application.flow.transforms import default_transformers

__all__ = ["DataFlowRouter", "default_flows", "default_transformers"]
