"""Kibana状态采集器"""

import asyncio
import base64
import json
from typing import Dict, Any
from urllib.parse import urlparse

import aiohttp

from ..models.config import TargetConfig
from ..models.kibana_metrics import KibanaMetrics
from ..utils.exceptions import (
    ScrapeError, RequestConstructionError, TransportError,
    UnexpectedStatusError, BodyReadError, DecodeError
)
from ..utils.log_manager import get_logger


STATUS_PATH = '/api/status'

# 等待Kibana可用时的重试间隔（秒）
WAIT_INTERVAL = 10


def build_auth_header(username: str, password: str) -> str:
    """
    生成HTTP Basic认证头

    用户名或密码任一为空时返回空字符串，不会生成部分凭据的认证头。

    Args:
        username: Kibana用户名
        password: Kibana密码

    Returns:
        str: Authorization 请求头的值
    """
    if not username or not password:
        return ''
    credentials = base64.b64encode(f"{username}:{password}".encode('utf-8'))
    return f"Basic {credentials.decode('ascii')}"


class KibanaCollector:
    """
    Kibana状态采集器

    每次调用 scrape() 向 {uri}/api/status 发起一次请求，返回指标快照。
    认证头和TLS策略在构造时确定，之后只读，可被并发的采集安全共享。
    """

    def __init__(self, target: TargetConfig, extended_status: bool = False):
        """
        初始化Kibana采集器

        Args:
            target: 被监控的Kibana实例配置
            extended_status: 是否请求扩展格式的状态（旧版本Kibana）
        """
        self.target = target
        self.url = target.uri.rstrip('/')
        self.extended_status = extended_status
        self.logger = get_logger('collector')

        self.ssl = True
        if target.is_tls:
            self.logger.debug(f"Kibana地址使用TLS: {self.url}")
            if target.skip_tls:
                self.logger.warning(f"已跳过Kibana地址的TLS证书验证: {self.url}")
                self.ssl = False
        else:
            self.logger.debug(f"Kibana地址使用明文HTTP: {self.url}")
            if target.skip_tls:
                self.logger.info(f"skip_tls 对HTTP地址无效，已忽略: {self.url}")

        self.auth_header = ''
        if target.has_credentials:
            self.logger.debug("使用认证方式请求Kibana")
            self.auth_header = build_auth_header(target.username, target.password)
        else:
            self.logger.info("未同时提供Kibana用户名和密码，使用无认证方式通信")

        # None 表示不限制超时
        self.timeout = aiohttp.ClientTimeout(total=target.timeout)

    @property
    def status_url(self) -> str:
        url = f"{self.url}{STATUS_PATH}"
        if self.extended_status:
            url += '?extended'
        return url

    def _build_headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.auth_header:
            self.logger.debug("添加认证请求头")
            headers['Authorization'] = self.auth_header
        return headers

    def _validate_url(self, url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme.lower() not in ('http', 'https') or not parsed.netloc:
            raise RequestConstructionError(
                f"无法构造采集请求，Kibana地址无效: {self.url}",
                url=url
            )

    async def scrape(self) -> KibanaMetrics:
        """
        请求Kibana状态接口并解析为指标快照

        Returns:
            KibanaMetrics: 本次采集的指标快照

        Raises:
            RequestConstructionError: 无法构造请求
            TransportError: 网络往返失败
            UnexpectedStatusError: 响应状态码不是200
            BodyReadError: 读取响应体失败
            DecodeError: 响应体无法解析
        """
        url = self.status_url
        self.logger.debug(f"构造Kibana状态请求: {url}")
        self._validate_url(url)
        headers = self._build_headers()

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            self.logger.debug("请求Kibana状态接口")
            try:
                response = await session.get(url, headers=headers, ssl=self.ssl)
            except aiohttp.InvalidURL as e:
                raise RequestConstructionError(
                    f"无法构造采集请求: {e}", url=url, cause=e
                ) from e
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(
                    f"请求Kibana状态失败: {e!r}", url=url, cause=e
                ) from e

            # 所有退出路径上都释放响应
            async with response:
                self.logger.debug("处理Kibana状态响应")
                if response.status != 200:
                    status_line = f"{response.status} {response.reason or ''}".strip()
                    raise UnexpectedStatusError(
                        f"Kibana状态接口返回异常响应: {status_line}",
                        status_line=status_line,
                        url=url
                    )

                try:
                    content = await response.read()
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    raise BodyReadError(
                        f"读取Kibana状态响应失败: {e!r}", url=url, cause=e
                    ) from e

        return self._decode(content, url)

    def _decode(self, content: bytes, url: str) -> KibanaMetrics:
        try:
            document = json.loads(content)
            return KibanaMetrics.from_dict(document)
        except (ValueError, TypeError, OverflowError, RecursionError) as e:
            # ValueError 覆盖 JSONDecodeError 和 UnicodeDecodeError；
            # OverflowError 来自超出浮点范围的整数，RecursionError 来自嵌套过深的JSON
            payload = content.decode('utf-8', errors='replace')
            raise DecodeError(
                f"解析Kibana状态失败: {e}\n问题内容:\n{payload}",
                payload=content,
                url=url,
                cause=e
            ) from e

    async def test_connection(self) -> bool:
        """
        检查与Kibana的连接是否正常

        Returns:
            bool: Kibana是否可达且返回了有效的状态
        """
        self.logger.debug("检查Kibana状态")
        try:
            await self.scrape()
        except ScrapeError as e:
            self.logger.info(f"Kibana连接测试失败: {e.format_error()}")
            return False
        return True

    async def wait_for_connection(self) -> None:
        """阻塞直到Kibana可达，不限制重试次数"""
        while not await self.test_connection():
            self.logger.info(f"等待Kibana响应，{WAIT_INTERVAL} 秒后重试")
            await asyncio.sleep(WAIT_INTERVAL)

        self.logger.info("Kibana已可用")

    def get_status(self) -> Dict[str, Any]:
        """采集器配置摘要，不包含凭据"""
        return {
            'url': self.status_url,
            'tls': self.target.is_tls,
            'tls_verify': self.ssl,
            'authenticated': bool(self.auth_header),
            'timeout': self.target.timeout,
        }
