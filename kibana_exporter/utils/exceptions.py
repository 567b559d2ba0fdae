"""自定义异常类和错误处理系统"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    INITIALIZATION_ERROR = 1001

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 采集错误 (3000-3999)
    REQUEST_CONSTRUCTION_ERROR = 3000
    TRANSPORT_ERROR = 3001
    UNEXPECTED_STATUS = 3002
    BODY_READ_ERROR = 3003
    DECODE_ERROR = 3004

    # HTTP服务错误 (5000-5999)
    SERVER_ERROR = 5000


class KibanaExporterError(Exception):
    """Kibana导出器基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigurationError(KibanaExporterError):
    """配置相关异常，只在启动阶段产生"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class ScrapeError(KibanaExporterError):
    """采集Kibana状态时的异常基类，均可在下一次采集中恢复"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
        url: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if url:
            details['url'] = url
        kwargs.setdefault('recoverable', True)
        super().__init__(message, error_code, details, **kwargs)


class RequestConstructionError(ScrapeError):
    """无法构造采集请求（URL格式错误等）"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.REQUEST_CONSTRUCTION_ERROR, url=url, **kwargs)


class TransportError(ScrapeError):
    """网络往返失败：DNS、连接拒绝、TLS握手失败、超时"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR, url=url, **kwargs)


class UnexpectedStatusError(ScrapeError):
    """Kibana返回了非200的HTTP状态"""

    def __init__(self, message: str, status_line: str, url: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        details['status_line'] = status_line
        super().__init__(
            message,
            ErrorCode.UNEXPECTED_STATUS,
            url=url,
            details=details,
            **kwargs
        )
        self.status_line = status_line


class BodyReadError(ScrapeError):
    """读取响应体失败"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.BODY_READ_ERROR, url=url, **kwargs)


class DecodeError(ScrapeError):
    """响应体不是合法的JSON，或与期望的结构不符"""

    def __init__(self, message: str, payload: bytes = b'', url: Optional[str] = None, **kwargs):
        super().__init__(message, ErrorCode.DECODE_ERROR, url=url, **kwargs)
        self.payload = payload


class ServerError(KibanaExporterError):
    """指标HTTP服务相关异常"""

    def __init__(self, message: str, listen_address: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if listen_address:
            details['listen_address'] = listen_address
        kwargs.setdefault('recoverable', False)
        super().__init__(message, ErrorCode.SERVER_ERROR, details, **kwargs)
