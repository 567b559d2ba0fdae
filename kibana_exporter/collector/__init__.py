"""Kibana采集器模块"""

from .kibana_collector import KibanaCollector, build_auth_header, STATUS_PATH, WAIT_INTERVAL

__all__ = ['KibanaCollector', 'build_auth_header', 'STATUS_PATH', 'WAIT_INTERVAL']
