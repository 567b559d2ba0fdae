"""配置管理器"""

import copy
import os
from typing import Dict, Any, Optional

import yaml

from ..models.config import TargetConfig, WebConfig, ExporterConfig
from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigurationError, ErrorCode
from ..utils.log_manager import get_logger


DEFAULT_CONFIG: Dict[str, Any] = {
    'global': {
        'log_level': 'INFO',
        'log_file': None,
    },
    'kibana': {
        'uri': 'http://localhost:5601',
        'username': '',
        'password': '',
        'skip_tls': False,
        'timeout': 10,
        'extended_status': False,
    },
    'web': {
        'listen_address': ':9684',
        'telemetry_path': '/metrics',
    },
    'exporter': {
        'namespace': 'kibana',
        'wait': False,
    },
}


class ConfigManager:
    """配置管理器，合并默认值、YAML配置文件和命令行参数并进行验证"""

    def __init__(self, config_path: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: YAML配置文件路径，为空时只使用默认值和命令行参数
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        加载配置

        Args:
            overrides: 按节组织的覆盖项（通常来自命令行），值为 None 的项被忽略

        Returns:
            Dict[str, Any]: 合并后的配置字典

        Raises:
            ConfigurationError: 配置加载或验证失败
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            self._merge(config, self._read_file())

        if overrides:
            self._merge(config, {
                section: {k: v for k, v in values.items() if v is not None}
                for section, values in overrides.items()
            })

        self.logger.debug("开始验证配置内容")
        self._validate_config(config)

        self.config = config
        self.logger.info(
            f"配置加载完成: kibana={config['kibana']['uri']}, "
            f"listen={config['web']['listen_address']}"
        )
        return self.config

    def _read_file(self) -> Dict[str, Any]:
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigurationError(
                f"配置文件不存在: {self.config_path}",
                ErrorCode.CONFIG_FILE_NOT_FOUND,
                config_path=self.config_path
            )

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                file_config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigurationError(
                f"YAML格式错误: {e}",
                ErrorCode.CONFIG_PARSE_ERROR,
                config_path=self.config_path,
                cause=e
            )
        except PermissionError as e:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigurationError(
                f"没有权限读取配置文件: {self.config_path}",
                ErrorCode.CONFIG_FILE_NOT_FOUND,
                config_path=self.config_path,
                cause=e
            )

        if file_config is None:
            self.logger.error("配置文件为空")
            raise ConfigurationError("配置文件为空", config_path=self.config_path)

        if not isinstance(file_config, dict):
            raise ConfigurationError("配置文件根节点必须是字典类型", config_path=self.config_path)

        unknown_sections = set(file_config) - set(DEFAULT_CONFIG)
        if unknown_sections:
            self.logger.warning(f"忽略未知的配置节: {', '.join(sorted(unknown_sections))}")

        return file_config

    @staticmethod
    def _merge(config: Dict[str, Any], updates: Dict[str, Any]) -> None:
        for section, values in updates.items():
            if section not in config:
                continue
            if not isinstance(values, dict):
                raise ConfigurationError(f"{section} 配置必须是字典类型")
            config[section].update(values)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置内容

        Args:
            config: 配置字典

        Raises:
            ConfigurationError: 配置验证失败
        """
        ConfigValidator.validate_global_config(config['global'])
        ConfigValidator.validate_kibana_config(config['kibana'])
        ConfigValidator.validate_web_config(config['web'])
        ConfigValidator.validate_exporter_config(config['exporter'])

    def get_global_config(self) -> Dict[str, Any]:
        return self.config.get('global', {})

    def get_kibana_config(self) -> Dict[str, Any]:
        return self.config.get('kibana', {})

    def build_exporter_config(self) -> ExporterConfig:
        """
        将已加载的配置转换为不可变的配置对象

        Returns:
            ExporterConfig: 导出器配置
        """
        if not self.config:
            raise ConfigurationError("配置尚未加载")

        kibana = self.config['kibana']
        web = self.config['web']
        exporter = self.config['exporter']
        global_config = self.config['global']

        timeout = kibana.get('timeout')
        return ExporterConfig(
            target=TargetConfig(
                uri=kibana.get('uri') or '',
                username=kibana.get('username') or '',
                password=kibana.get('password') or '',
                skip_tls=bool(kibana.get('skip_tls')),
                timeout=float(timeout) if timeout is not None else None,
            ),
            web=WebConfig(
                listen_address=web['listen_address'],
                telemetry_path=web['telemetry_path'],
            ),
            namespace=exporter['namespace'],
            wait=bool(exporter.get('wait')),
            extended_status=bool(kibana.get('extended_status')),
            log_level=str(global_config.get('log_level') or 'INFO').upper(),
            log_file=global_config.get('log_file'),
        )
