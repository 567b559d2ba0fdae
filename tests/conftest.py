"""测试公共夹具"""

import copy
import json

import pytest
from aiohttp import web


# Kibana 8.x /api/status 响应（节选）
KIBANA_STATUS_DOCUMENT = {
    "name": "kibana",
    "uuid": "5b2de169-2785-441b-ae8c-186a1936b17d",
    "version": {"number": "8.11.1", "build_snapshot": False},
    "status": {
        "overall": {"level": "available", "summary": "All services are available"},
        "core": {
            "elasticsearch": {"level": "available", "summary": "Elasticsearch is available"},
            "savedObjects": {"level": "degraded", "summary": "SavedObjects service is degraded"}
        },
        "plugins": {}
    },
    "metrics": {
        "last_updated": "2023-12-01T10:00:00.000Z",
        "collection_interval_in_millis": 5000,
        "os": {
            "platform": "linux",
            "load": {"1m": 0.52, "5m": 0.61, "15m": 0.7},
            "memory": {
                "total_in_bytes": 16777216000,
                "free_in_bytes": 8388608000,
                "used_in_bytes": 8388608000
            },
            "uptime_in_millis": 360000000
        },
        "process": {
            "memory": {
                "heap": {
                    "total_in_bytes": 536870912,
                    "used_in_bytes": 268435456,
                    "size_limit": 4345298944
                },
                "resident_set_size_in_bytes": 734003200
            },
            "pid": 7,
            "event_loop_delay": 10.25,
            "uptime_in_millis": 1234567.5
        },
        "response_times": {"avg_in_millis": 12.5, "max_in_millis": 250},
        "requests": {"disconnects": 2, "total": 1024, "statusCodes": {"200": 1000}},
        "concurrent_connections": 5
    }
}


@pytest.fixture
def kibana_status_document():
    """完整的Kibana状态文档"""
    return copy.deepcopy(KIBANA_STATUS_DOCUMENT)


@pytest.fixture
def fake_kibana():
    """创建模拟Kibana状态接口的aiohttp应用

    返回的工厂函数接受响应状态码和响应体，返回 (应用, 已收到的请求列表)。
    """
    def factory(status: int = 200, body=None):
        if body is None:
            body = KIBANA_STATUS_DOCUMENT
        if not isinstance(body, (str, bytes)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode('utf-8')
        received = []

        async def handle_status(request: web.Request) -> web.Response:
            received.append({
                'method': request.method,
                'query': request.query_string,
                'headers': request.headers.copy(),
            })
            return web.Response(status=status, body=body, content_type='application/json')

        app = web.Application()
        app.router.add_get('/api/status', handle_status)
        return app, received

    return factory


def server_base_url(server) -> str:
    return str(server.make_url('')).rstrip('/')


@pytest.fixture
def base_url():
    """返回测试服务器根地址的辅助函数"""
    return server_base_url
