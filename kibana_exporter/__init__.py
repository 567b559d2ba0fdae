"""Kibana Prometheus 导出器"""

__version__ = "1.0.0"
