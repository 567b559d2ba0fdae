"""服务模块"""

from .config_manager import ConfigManager
from .exporter import KibanaExporter, GaugeIdentity, GAUGE_SPECS
from .web_server import MetricsServer, create_app, parse_listen_address

__all__ = ['ConfigManager', 'KibanaExporter', 'GaugeIdentity', 'GAUGE_SPECS',
           'MetricsServer', 'create_app', 'parse_listen_address']
