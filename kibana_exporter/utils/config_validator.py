"""配置验证工具"""

from typing import Dict, Any, Tuple
from urllib.parse import urlparse

from .exceptions import ConfigurationError


VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
RESERVED_PATHS = ['/', '/healthz']


def parse_listen_address(listen_address: str) -> Tuple[str, int]:
    """
    解析监听地址

    Args:
        listen_address: 形如 ":9684"、"127.0.0.1:9684" 或 "[::1]:9684" 的地址

    Returns:
        Tuple[str, int]: (主机, 端口)，主机为空时监听所有地址

    Raises:
        ConfigurationError: 地址格式无效
    """
    if not isinstance(listen_address, str):
        raise ConfigurationError(f"监听地址格式无效，应为 [host]:port: {listen_address}")

    host, sep, port_str = listen_address.rpartition(':')
    if not sep:
        raise ConfigurationError(f"监听地址格式无效，应为 [host]:port: {listen_address}")

    try:
        port = int(port_str)
    except ValueError:
        raise ConfigurationError(f"监听端口必须是整数: {listen_address}")

    if not 0 < port < 65536:
        raise ConfigurationError(f"监听端口超出范围: {port}")

    host = host.strip('[]') or '0.0.0.0'
    return host, port


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_section(name: str, section: Any) -> None:
        if not isinstance(section, dict):
            raise ConfigurationError(f"{name} 配置必须是字典类型")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigurationError: 配置验证失败
        """
        ConfigValidator.validate_section('global', global_config)

        log_level = global_config.get('log_level')
        if log_level is not None and str(log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

        log_file = global_config.get('log_file')
        if log_file is not None and not isinstance(log_file, str):
            raise ConfigurationError("log_file 必须是字符串")

    @staticmethod
    def validate_kibana_config(kibana_config: Dict[str, Any]) -> None:
        """
        验证Kibana配置

        uri 允许为空，由启动流程决定是否终止。

        Args:
            kibana_config: Kibana配置

        Raises:
            ConfigurationError: 配置验证失败
        """
        ConfigValidator.validate_section('kibana', kibana_config)

        uri = kibana_config.get('uri') or ''
        if not isinstance(uri, str):
            raise ConfigurationError("kibana.uri 必须是字符串")
        if uri:
            parsed = urlparse(uri)
            if parsed.scheme.lower() not in ('http', 'https') or not parsed.netloc:
                raise ConfigurationError(f"kibana.uri 必须是有效的HTTP(S)地址: {uri}")

        for field in ('username', 'password'):
            value = kibana_config.get(field)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(f"kibana.{field} 必须是字符串")

        for field in ('skip_tls', 'extended_status'):
            value = kibana_config.get(field)
            if value is not None and not isinstance(value, bool):
                raise ConfigurationError(f"kibana.{field} 必须是布尔值")

        timeout = kibana_config.get('timeout')
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigurationError("kibana.timeout 必须是正数")

    @staticmethod
    def validate_web_config(web_config: Dict[str, Any]) -> None:
        """
        验证HTTP服务配置

        Args:
            web_config: HTTP服务配置

        Raises:
            ConfigurationError: 配置验证失败
        """
        ConfigValidator.validate_section('web', web_config)

        listen_address = web_config.get('listen_address')
        try:
            parse_listen_address(listen_address)
        except ConfigurationError as e:
            raise ConfigurationError(f"web.listen_address 无效: {e.message}") from e

        telemetry_path = web_config.get('telemetry_path')
        if not isinstance(telemetry_path, str) or not telemetry_path.startswith('/'):
            raise ConfigurationError(f"web.telemetry_path 必须以 / 开头: {telemetry_path}")
        if telemetry_path in RESERVED_PATHS:
            raise ConfigurationError(
                f"web.telemetry_path 不能使用保留路径 {RESERVED_PATHS}: {telemetry_path}")

    @staticmethod
    def validate_exporter_config(exporter_config: Dict[str, Any]) -> None:
        """
        验证导出器配置

        Args:
            exporter_config: 导出器配置

        Raises:
            ConfigurationError: 配置验证失败
        """
        ConfigValidator.validate_section('exporter', exporter_config)

        namespace = exporter_config.get('namespace')
        if not isinstance(namespace, str) or not namespace.strip():
            raise ConfigurationError("exporter.namespace 不能为空")

        wait = exporter_config.get('wait')
        if wait is not None and not isinstance(wait, bool):
            raise ConfigurationError("exporter.wait 必须是布尔值")
