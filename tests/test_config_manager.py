"""测试配置管理器"""

import os
import tempfile

import pytest

from kibana_exporter.services.config_manager import ConfigManager, DEFAULT_CONFIG
from kibana_exporter.utils.exceptions import ConfigurationError, ErrorCode


def write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False, encoding='utf-8') as f:
        f.write(content)
        return f.name


class TestConfigManager:
    """测试ConfigManager类"""

    def test_defaults_without_file(self):
        """测试不提供配置文件时使用默认值"""
        manager = ConfigManager()
        config = manager.load_config()

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

        exporter_config = manager.build_exporter_config()
        assert exporter_config.target.uri == 'http://localhost:5601'
        assert exporter_config.target.timeout == 10.0
        assert exporter_config.web.listen_address == ':9684'
        assert exporter_config.web.telemetry_path == '/metrics'
        assert exporter_config.namespace == 'kibana'
        assert exporter_config.wait is False
        assert exporter_config.log_level == 'INFO'

    def test_load_valid_config(self):
        """测试加载有效配置"""
        config_path = write_config("""
global:
  log_level: debug

kibana:
  uri: https://kibana.example.com:5601
  username: elastic
  password: changeme
  skip_tls: true
  timeout: 5

web:
  listen_address: 127.0.0.1:9900
  telemetry_path: /kibana/metrics

exporter:
  namespace: kbn
  wait: true
""")

        try:
            manager = ConfigManager(config_path)
            manager.load_config()
            config = manager.build_exporter_config()

            assert config.target.uri == 'https://kibana.example.com:5601'
            assert config.target.username == 'elastic'
            assert config.target.password == 'changeme'
            assert config.target.skip_tls is True
            assert config.target.timeout == 5.0
            assert config.web.listen_address == '127.0.0.1:9900'
            assert config.web.telemetry_path == '/kibana/metrics'
            assert config.namespace == 'kbn'
            assert config.wait is True
            assert config.log_level == 'DEBUG'
        finally:
            os.unlink(config_path)

    def test_partial_config_keeps_defaults(self):
        """测试配置文件只覆盖提供的字段"""
        config_path = write_config("""
kibana:
  uri: http://kibana:5601
""")

        try:
            manager = ConfigManager(config_path)
            config = manager.load_config()

            assert config['kibana']['uri'] == 'http://kibana:5601'
            assert config['kibana']['timeout'] == 10
            assert config['web'] == DEFAULT_CONFIG['web']
        finally:
            os.unlink(config_path)

    def test_overrides_take_precedence(self):
        """测试命令行参数优先于配置文件，None值被忽略"""
        config_path = write_config("""
kibana:
  uri: http://from-file:5601
  username: file-user
exporter:
  namespace: from_file
""")

        try:
            manager = ConfigManager(config_path)
            config = manager.load_config({
                'kibana': {'uri': 'http://from-cli:5601', 'username': None},
                'exporter': {'namespace': None, 'wait': True},
            })

            assert config['kibana']['uri'] == 'http://from-cli:5601'
            assert config['kibana']['username'] == 'file-user'
            assert config['exporter']['namespace'] == 'from_file'
            assert config['exporter']['wait'] is True
        finally:
            os.unlink(config_path)

    def test_empty_uri_allowed(self):
        """测试配置阶段允许Kibana地址为空"""
        manager = ConfigManager()
        manager.load_config({'kibana': {'uri': ''}})

        assert manager.build_exporter_config().target.uri == ''

    def test_load_nonexistent_file(self):
        """测试加载不存在的配置文件"""
        manager = ConfigManager('/nonexistent/config.yaml')

        with pytest.raises(ConfigurationError, match="配置文件不存在") as exc_info:
            manager.load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_load_invalid_yaml(self):
        """测试加载无效的YAML文件"""
        config_path = write_config("""
kibana:
  uri: http://kibana:5601
  invalid_yaml: [
""")

        try:
            manager = ConfigManager(config_path)

            with pytest.raises(ConfigurationError, match="YAML格式错误") as exc_info:
                manager.load_config()
            assert exc_info.value.error_code == ErrorCode.CONFIG_PARSE_ERROR
        finally:
            os.unlink(config_path)

    def test_load_empty_config(self):
        """测试加载空配置文件"""
        config_path = write_config("")

        try:
            manager = ConfigManager(config_path)

            with pytest.raises(ConfigurationError, match="配置文件为空"):
                manager.load_config()
        finally:
            os.unlink(config_path)

    def test_root_must_be_dict(self):
        """测试根节点必须是字典"""
        config_path = write_config("- kibana\n- web\n")

        try:
            manager = ConfigManager(config_path)

            with pytest.raises(ConfigurationError, match="根节点必须是字典类型"):
                manager.load_config()
        finally:
            os.unlink(config_path)

    def test_section_must_be_dict(self):
        """测试配置节必须是字典"""
        config_path = write_config("kibana: http://kibana:5601\n")

        try:
            manager = ConfigManager(config_path)

            with pytest.raises(ConfigurationError, match="kibana 配置必须是字典类型"):
                manager.load_config()
        finally:
            os.unlink(config_path)

    def test_unknown_sections_ignored(self):
        """测试忽略未知的配置节"""
        config_path = write_config("""
kibana:
  uri: http://kibana:5601
services:
  redis: {}
""")

        try:
            manager = ConfigManager(config_path)
            config = manager.load_config()

            assert 'services' not in config
        finally:
            os.unlink(config_path)

    def test_validation_failure(self):
        """测试配置验证失败"""
        config_path = write_config("""
kibana:
  timeout: -5
""")

        try:
            manager = ConfigManager(config_path)

            with pytest.raises(ConfigurationError, match="timeout"):
                manager.load_config()
            assert manager.config == {}
        finally:
            os.unlink(config_path)

    def test_build_before_load(self):
        """测试加载前构建配置对象"""
        with pytest.raises(ConfigurationError, match="配置尚未加载"):
            ConfigManager().build_exporter_config()

    def test_section_getters(self):
        """测试获取配置节"""
        manager = ConfigManager()
        assert manager.get_kibana_config() == {}

        manager.load_config()

        assert manager.get_global_config()['log_level'] == 'INFO'
        assert manager.get_kibana_config()['uri'] == 'http://localhost:5601'
