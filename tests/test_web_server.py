"""测试指标HTTP服务"""

import pytest
from aiohttp import ClientSession, test_utils
from prometheus_client import CONTENT_TYPE_LATEST
from unittest.mock import AsyncMock, Mock

from kibana_exporter.models.kibana_metrics import KibanaMetrics
from kibana_exporter.services.exporter import KibanaExporter
from kibana_exporter.services.web_server import MetricsServer, create_app, parse_listen_address
from kibana_exporter.utils.exceptions import ConfigurationError, ServerError, TransportError


class TestParseListenAddress:
    """测试监听地址解析"""

    @pytest.mark.parametrize('listen_address,expected', [
        (':9684', ('0.0.0.0', 9684)),
        ('127.0.0.1:9684', ('127.0.0.1', 9684)),
        ('localhost:8080', ('localhost', 8080)),
        ('[::1]:9684', ('::1', 9684)),
    ])
    def test_valid_address(self, listen_address, expected):
        """测试有效的监听地址"""
        assert parse_listen_address(listen_address) == expected

    @pytest.mark.parametrize('listen_address', ['9684', '', None, 'localhost:http', ':0', ':65536'])
    def test_invalid_address(self, listen_address):
        """测试无效的监听地址"""
        with pytest.raises(ConfigurationError):
            parse_listen_address(listen_address)


class TestMetricsRoutes:
    """测试HTTP路由"""

    def setup_method(self):
        self.collector = Mock()
        self.collector.scrape = AsyncMock()
        self.exporter = KibanaExporter('kibana', self.collector)

    def client(self, telemetry_path='/metrics'):
        app = create_app(self.exporter, telemetry_path)
        return test_utils.TestClient(test_utils.TestServer(app))

    @pytest.mark.asyncio
    async def test_metrics(self, kibana_status_document):
        """测试拉取指标触发一次采集"""
        self.collector.scrape.return_value = KibanaMetrics.from_dict(kibana_status_document)

        async with self.client() as client:
            response = await client.get('/metrics')
            text = await response.text()

        assert response.status == 200
        assert response.headers['Content-Type'] == CONTENT_TYPE_LATEST
        assert 'kibana_status 1.0' in text
        assert 'kibana_core_savedobjects_status 0.5' in text
        assert 'kibana_requests_total 1024.0' in text
        self.collector.scrape.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_metrics_includes_process_metrics(self):
        """测试输出包含导出器自身的运行时指标"""
        self.collector.scrape.return_value = KibanaMetrics()

        async with self.client() as client:
            response = await client.get('/metrics')
            text = await response.text()

        assert 'python_info' in text

    @pytest.mark.asyncio
    async def test_metrics_when_kibana_down(self):
        """测试Kibana不可达时仍返回200"""
        self.collector.scrape.side_effect = TransportError('连接被拒绝')
        self.exporter.logger = Mock()

        async with self.client() as client:
            response = await client.get('/metrics')
            text = await response.text()

        assert response.status == 200
        assert 'kibana_status 0.0' in text
        self.exporter.logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_custom_telemetry_path(self):
        """测试自定义指标路径"""
        self.collector.scrape.return_value = KibanaMetrics()

        async with self.client('/kibana/metrics') as client:
            custom = await client.get('/kibana/metrics')
            default = await client.get('/metrics')

        assert custom.status == 200
        assert default.status == 404

    @pytest.mark.asyncio
    async def test_landing_page(self):
        """测试首页链接到指标路径"""
        async with self.client('/kibana/metrics') as client:
            response = await client.get('/')
            text = await response.text()

        assert response.status == 200
        assert response.content_type == 'text/html'
        assert "<a href='/kibana/metrics'>Metrics</a>" in text
        self.collector.scrape.assert_not_called()

    @pytest.mark.asyncio
    async def test_healthz(self):
        """测试健康检查接口"""
        async with self.client() as client:
            response = await client.get('/healthz')
            text = await response.text()

        assert response.status == 200
        assert text == 'ok'
        self.collector.scrape.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize('method', ['POST', 'PUT', 'DELETE'])
    async def test_healthz_method_not_allowed(self, method):
        """测试健康检查接口只接受GET"""
        async with self.client() as client:
            response = await client.request(method, '/healthz')
            text = await response.text()

        assert response.status == 405
        assert text == 'method not allowed'


class TestMetricsServer:
    """测试指标服务的启动与停止"""

    def setup_method(self):
        collector = Mock()
        collector.scrape = AsyncMock(return_value=KibanaMetrics())
        self.exporter = KibanaExporter('kibana', collector)

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """测试启动后可访问，停止后释放端口"""
        port = test_utils.unused_port()
        server = MetricsServer(create_app(self.exporter), f'127.0.0.1:{port}')

        await server.start()
        try:
            async with ClientSession() as session:
                async with session.get(f'http://127.0.0.1:{port}/healthz') as response:
                    assert response.status == 200
        finally:
            await server.stop()

        assert server._runner is None
        await server.stop()

    @pytest.mark.asyncio
    async def test_address_in_use(self):
        """测试端口被占用时抛出ServerError"""
        port = test_utils.unused_port()
        first = MetricsServer(create_app(self.exporter), f'127.0.0.1:{port}')
        second = MetricsServer(create_app(self.exporter), f'127.0.0.1:{port}')

        await first.start()
        try:
            with pytest.raises(ServerError) as exc_info:
                await second.start()
            assert exc_info.value.details['listen_address'] == f'127.0.0.1:{port}'
            assert second._runner is None
        finally:
            await first.stop()

    def test_invalid_listen_address(self):
        """测试无效的监听地址"""
        with pytest.raises(ConfigurationError):
            MetricsServer(create_app(self.exporter), 'not-an-address')
