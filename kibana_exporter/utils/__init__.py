"""工具模块"""

from .exceptions import (
    KibanaExporterError, ConfigurationError, ScrapeError, RequestConstructionError,
    TransportError, UnexpectedStatusError, BodyReadError, DecodeError, ServerError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'KibanaExporterError', 'ConfigurationError', 'ScrapeError', 'RequestConstructionError',
    'TransportError', 'UnexpectedStatusError', 'BodyReadError', 'DecodeError', 'ServerError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
