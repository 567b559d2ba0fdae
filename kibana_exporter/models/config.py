"""导出器配置相关的数据模型"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse


@dataclass(frozen=True)
class TargetConfig:
    """被监控的Kibana实例配置，构造后不可修改"""
    uri: str
    username: str = ''
    password: str = ''
    skip_tls: bool = False
    timeout: Optional[float] = None  # 秒，None 表示不限制

    @property
    def is_tls(self) -> bool:
        return urlparse(self.uri).scheme.lower() == 'https'

    @property
    def has_credentials(self) -> bool:
        # 只提供用户名或密码之一时视为未认证
        return bool(self.username) and bool(self.password)


@dataclass(frozen=True)
class WebConfig:
    """指标HTTP服务配置"""
    listen_address: str = ':9684'
    telemetry_path: str = '/metrics'


@dataclass(frozen=True)
class ExporterConfig:
    """导出器完整配置"""
    target: TargetConfig
    web: WebConfig
    namespace: str = 'kibana'
    wait: bool = False
    extended_status: bool = False
    log_level: str = 'INFO'
    log_file: Optional[str] = None
