"""指标HTTP服务"""

from typing import Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .exporter import KibanaExporter
from ..utils.config_validator import parse_listen_address
from ..utils.exceptions import ServerError
from ..utils.log_manager import get_logger


LANDING_PAGE = """<html>
<head><title>Kibana Exporter</title></head>
<body>
<h1>Kibana Exporter</h1>
<p><a href='{telemetry_path}'>Metrics</a></p>
</body>
</html>"""

EXPORTER_KEY = web.AppKey('exporter', KibanaExporter)
TELEMETRY_PATH_KEY = web.AppKey('telemetry_path', str)


async def handle_landing_page(request: web.Request) -> web.Response:
    return web.Response(
        text=LANDING_PAGE.format(telemetry_path=request.app[TELEMETRY_PATH_KEY]),
        content_type='text/html'
    )


async def handle_metrics(request: web.Request) -> web.Response:
    """Prometheus拉取指标的入口，每次拉取触发一次Kibana采集"""
    exporter = request.app[EXPORTER_KEY]
    output = await exporter.render()
    # 追加导出器自身的进程指标
    output += generate_latest(REGISTRY)
    return web.Response(body=output, headers={'Content-Type': CONTENT_TYPE_LATEST})


async def handle_healthz(request: web.Request) -> web.Response:
    if request.method != 'GET':
        return web.Response(status=405, text='method not allowed')
    return web.Response(text='ok')


def create_app(exporter: KibanaExporter, telemetry_path: str = '/metrics') -> web.Application:
    """
    创建导出器的aiohttp应用

    Args:
        exporter: Kibana指标导出器
        telemetry_path: 指标路径

    Returns:
        web.Application: 已注册路由的应用
    """
    app = web.Application()
    app[EXPORTER_KEY] = exporter
    app[TELEMETRY_PATH_KEY] = telemetry_path

    app.router.add_get('/', handle_landing_page)
    app.router.add_get(telemetry_path, handle_metrics)
    app.router.add_route('*', '/healthz', handle_healthz)
    return app


class MetricsServer:
    """指标HTTP服务的启动与停止"""

    def __init__(self, app: web.Application, listen_address: str):
        self.app = app
        self.listen_address = listen_address
        self.host, self.port = parse_listen_address(listen_address)
        self.logger = get_logger('web_server')
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        """
        启动HTTP服务

        Raises:
            ServerError: 无法监听指定地址
        """
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await self._runner.cleanup()
            self._runner = None
            raise ServerError(
                f"无法监听地址 {self.listen_address}: {e}",
                listen_address=self.listen_address,
                cause=e
            ) from e

        self.logger.info(f"指标服务已启动: {self.listen_address}")

    async def stop(self) -> None:
        """停止HTTP服务"""
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        self.logger.info("指标服务已停止")
