#!/usr/bin/env python3
"""
Kibana Prometheus 导出器主程序入口

解析命令行参数与配置文件，检查Kibana可达性，
启动指标HTTP服务并处理信号实现优雅关闭。
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Dict, Any

from kibana_exporter import __version__
from kibana_exporter.collector.kibana_collector import KibanaCollector
from kibana_exporter.models.config import ExporterConfig
from kibana_exporter.services.config_manager import ConfigManager
from kibana_exporter.services.exporter import KibanaExporter
from kibana_exporter.services.web_server import MetricsServer, create_app
from kibana_exporter.utils.exceptions import KibanaExporterError, ConfigurationError
from kibana_exporter.utils.log_manager import log_manager, get_logger


class KibanaExporterApp:
    """Kibana导出器主应用程序类"""

    def __init__(self, config: ExporterConfig):
        """初始化应用程序

        Args:
            config: 导出器配置
        """
        self.config = config
        self.logger: logging.Logger = get_logger('main')
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        # 核心组件
        self.collector: Optional[KibanaCollector] = None
        self.exporter: Optional[KibanaExporter] = None
        self.server: Optional[MetricsServer] = None

    def initialize(self):
        """初始化采集器、导出器和HTTP服务

        Raises:
            ConfigurationError: Kibana地址为空或指标命名空间无效
        """
        if not self.config.target.uri:
            raise ConfigurationError("必须提供Kibana地址")

        self.logger.info(f"初始化Kibana导出器: {self.config.target.uri}")
        self.collector = KibanaCollector(self.config.target, self.config.extended_status)
        self.exporter = KibanaExporter(self.config.namespace, self.collector)

        app = create_app(self.exporter, self.config.web.telemetry_path)
        self.server = MetricsServer(app, self.config.web.listen_address)
        self.logger.debug(f"采集器配置: {self.collector.get_status()}")

    async def ensure_kibana_available(self) -> bool:
        """启动时检查Kibana可达性

        Returns:
            bool: Kibana是否可达；wait 模式下一直阻塞到可达为止
        """
        if self.config.wait:
            self.logger.info("等待Kibana可用")
            await self.collector.wait_for_connection()
            return True

        return await self.collector.test_connection()

    async def start(self):
        """启动HTTP服务并等待关闭信号"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            await self.server.start()
            self.logger.info(
                f"Kibana导出器已启动，指标路径: {self.config.web.telemetry_path}")

            await self.shutdown_event.wait()
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止Kibana导出器...")
        self.is_running = False

        if self.server:
            await self.server.stop()

        self.logger.info("Kibana导出器已停止")

    def shutdown(self):
        """触发应用程序关闭"""
        self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def handle_signal(self, signum: int):
        """信号处理器，在事件循环中执行"""
        self.logger.info(f"收到信号 {signal.Signals(signum).name} ({signum})")
        self.shutdown()


# 全局应用程序实例
app: Optional[KibanaExporterApp] = None


SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(exporter_app: KibanaExporterApp):
    """在当前事件循环上注册关闭信号，信号到达时立即唤醒事件循环"""
    loop = asyncio.get_running_loop()
    for signum in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(signum, exporter_app.handle_signal, signum)


def remove_signal_handlers():
    loop = asyncio.get_running_loop()
    for signum in SHUTDOWN_SIGNALS:
        loop.remove_signal_handler(signum)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='kibana-exporter',
        description='Kibana导出器 - 采集Kibana状态并以Prometheus格式发布',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s --kibana-uri http://kibana:5601                  # 监控指定的Kibana
  %(prog)s --config config.yaml                             # 使用配置文件
  %(prog)s --config config.yaml --validate                  # 验证配置并退出
  %(prog)s --kibana-uri https://kibana:5601 --check-once    # 采集一次后退出
  %(prog)s --kibana-uri http://kibana:5601 --wait           # 阻塞直到Kibana可用
        """
    )

    parser.add_argument('--config', '-c', help='YAML配置文件路径')

    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')

    kibana = parser.add_argument_group('Kibana')
    kibana.add_argument('--kibana-uri', help='Kibana地址 (默认: http://localhost:5601)')
    kibana.add_argument('--kibana-username', help='Kibana用户名')
    kibana.add_argument('--kibana-password', help='Kibana密码')
    kibana.add_argument('--kibana-skip-tls', action='store_true', default=None,
                        help='跳过Kibana的TLS证书验证')
    kibana.add_argument('--kibana-timeout', type=float,
                        help='请求Kibana的超时时间（秒）')

    web = parser.add_argument_group('HTTP服务')
    web.add_argument('--listen-address', help='指标服务监听地址 (默认: :9684)')
    web.add_argument('--telemetry-path', help='指标路径 (默认: /metrics)')

    parser.add_argument('--namespace', help='指标名称前缀 (默认: kibana)')
    parser.add_argument('--wait', action='store_true', default=None,
                        help='启动时阻塞直到Kibana可用，而不是直接退出')

    parser.add_argument('--debug', action='store_true', help='输出调试日志')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='设置日志级别（覆盖配置文件设置）')
    parser.add_argument('--log-file', help='日志文件路径（覆盖配置文件设置）')

    parser.add_argument('--validate', action='store_true', help='验证配置并退出')
    parser.add_argument('--check-once', action='store_true',
                        help='采集一次Kibana指标并输出后退出')

    return parser


def build_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """将命令行参数转换为配置覆盖项"""
    log_level = 'DEBUG' if args.debug else args.log_level
    return {
        'global': {
            'log_level': log_level,
            'log_file': args.log_file,
        },
        'kibana': {
            'uri': args.kibana_uri,
            'username': args.kibana_username,
            'password': args.kibana_password,
            'skip_tls': args.kibana_skip_tls,
            'timeout': args.kibana_timeout,
        },
        'web': {
            'listen_address': args.listen_address,
            'telemetry_path': args.telemetry_path,
        },
        'exporter': {
            'namespace': args.namespace,
            'wait': args.wait,
        },
    }


def load_exporter_config(args: argparse.Namespace) -> ExporterConfig:
    """加载并合并配置

    Raises:
        ConfigurationError: 配置无效
    """
    config_manager = ConfigManager(args.config)
    config_manager.load_config(build_overrides(args))
    return config_manager.build_exporter_config()


def configure_logging(config: ExporterConfig):
    log_manager.configure({
        'log_level': config.log_level,
        'log_file': config.log_file,
    })


async def check_once(config: ExporterConfig) -> bool:
    """采集一次Kibana指标并输出

    Args:
        config: 导出器配置

    Returns:
        采集是否成功
    """
    collector = KibanaCollector(config.target, config.extended_status)
    exporter = KibanaExporter(config.namespace, collector)

    print(f"正在采集Kibana指标: {collector.status_url}")
    samples = await exporter.collect()
    if not samples:
        print("❌ 采集失败，详情见日志")
        return False

    print(f"✅ 采集完成，共 {len(samples)} 个指标:")
    for identity, value in samples:
        print(f"   {identity.name} = {value}")
    return True


async def main():
    """主函数"""
    global app

    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        config = load_exporter_config(args)
    except ConfigurationError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config)
    logger = get_logger('main')

    if args.validate:
        print("✅ 配置验证成功!")
        print(f"   - Kibana: {config.target.uri or '(未设置)'}")
        print(f"   - 监听地址: {config.web.listen_address}{config.web.telemetry_path}")
        print(f"   - 指标前缀: {config.namespace}")
        sys.exit(0)

    if args.check_once:
        try:
            success = await check_once(config)
        except ConfigurationError as e:
            print(f"配置错误: {e.format_error()}", file=sys.stderr)
            sys.exit(1)
        sys.exit(0 if success else 1)

    try:
        app = KibanaExporterApp(config)
        app.initialize()

        if not await app.ensure_kibana_available():
            logger.critical(f"无法连接Kibana: {config.target.uri}")
            sys.exit(1)

        install_signal_handlers(app)

        await app.start()

    except KeyboardInterrupt:
        logger.info("用户中断程序")
    except ConfigurationError as e:
        logger.critical(f"配置错误: {e.format_error()}")
        sys.exit(1)
    except KibanaExporterError as e:
        logger.critical(f"Kibana导出器错误: {e.format_error()}")
        sys.exit(1)
    finally:
        remove_signal_handlers()
        if app:
            await app.stop()
        log_manager.cleanup()


def run():
    """命令行入口"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
