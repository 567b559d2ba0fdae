"""数据模型模块"""

from .config import TargetConfig, WebConfig, ExporterConfig
from .kibana_metrics import (
    KibanaMetrics, StatusLevels, ProcessMetrics, OSMetrics, ResponseTimes,
    RequestCounters, STATUS_LEVEL_VALUES, status_level_value
)

__all__ = ['TargetConfig', 'WebConfig', 'ExporterConfig', 'KibanaMetrics',
           'StatusLevels', 'ProcessMetrics', 'OSMetrics', 'ResponseTimes',
           'RequestCounters', 'STATUS_LEVEL_VALUES', 'status_level_value']
