"""Kibana指标导出器，将采集结果发布为Prometheus指标"""

import asyncio
import re
from typing import Callable, Dict, List, NamedTuple, Tuple

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from ..collector.kibana_collector import KibanaCollector
from ..models.kibana_metrics import KibanaMetrics, status_level_value
from ..utils.exceptions import ConfigurationError, ScrapeError
from ..utils.log_manager import get_logger


class GaugeIdentity(NamedTuple):
    """指标标识：完整名称和帮助文本"""
    name: str
    documentation: str


class _GaugeSpec(NamedTuple):
    name: str
    documentation: str
    extract: Callable[[KibanaMetrics], float]


METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

# 顺序即 describe() 和 collect() 的输出顺序
GAUGE_SPECS: Tuple[_GaugeSpec, ...] = (
    _GaugeSpec('status', 'Kibana overall status',
               lambda m: status_level_value(m.status.overall)),
    _GaugeSpec('core_es_status', 'Kibana Elasticsearch connectivity status',
               lambda m: status_level_value(m.status.elasticsearch)),
    _GaugeSpec('core_savedobjects_status', 'Kibana SavedObjects service status',
               lambda m: status_level_value(m.status.saved_objects)),
    _GaugeSpec('concurrent_connections', 'Kibana Concurrent Connections',
               lambda m: m.concurrent_connections),
    _GaugeSpec('millis_uptime', 'Kibana uptime in milliseconds',
               lambda m: m.process.uptime_in_millis),
    _GaugeSpec('heap_max_in_bytes', 'Kibana Heap maximum in bytes',
               lambda m: m.process.heap_total_in_bytes),
    _GaugeSpec('heap_used_in_bytes', 'Kibana Heap usage in bytes',
               lambda m: m.process.heap_used_in_bytes),
    _GaugeSpec('resident_set_size_in_bytes', 'Kibana resident set size in bytes',
               lambda m: m.process.resident_set_size_in_bytes),
    _GaugeSpec('event_loop_delay', 'Kibana NodeJS event loop delay in milliseconds',
               lambda m: m.process.event_loop_delay),
    _GaugeSpec('os_load_1m', 'Kibana load average 1m',
               lambda m: m.os.load_1m),
    _GaugeSpec('os_load_5m', 'Kibana load average 5m',
               lambda m: m.os.load_5m),
    _GaugeSpec('os_load_15m', 'Kibana load average 15m',
               lambda m: m.os.load_15m),
    _GaugeSpec('os_memory_max_in_bytes', 'Kibana OS memory total in bytes',
               lambda m: m.os.memory_total_in_bytes),
    _GaugeSpec('os_memory_used_in_bytes', 'Kibana OS memory used in bytes',
               lambda m: m.os.memory_used_in_bytes),
    _GaugeSpec('response_average', 'Kibana average response time in milliseconds',
               lambda m: m.response_times.avg_in_millis),
    _GaugeSpec('response_max', 'Kibana maximum response time in milliseconds',
               lambda m: m.response_times.max_in_millis),
    _GaugeSpec('requests_disconnects', 'Kibana request disconnections count',
               lambda m: m.requests.disconnects),
    _GaugeSpec('requests_total', 'Kibana total request count',
               lambda m: m.requests.total),
)


class KibanaExporter:
    """
    Kibana指标导出器

    持有全部指标，由Prometheus的拉取驱动：每次拉取在互斥锁内完成
    一次"采集-转换-发布"，因此并发拉取看到的要么是完整的旧快照，
    要么是完整的新快照。采集失败时保留上一次的指标值。
    """

    def __init__(self, namespace: str, collector: KibanaCollector):
        """
        初始化导出器

        Args:
            namespace: 指标名称前缀，去除首尾空白后不能为空
            collector: Kibana采集器

        Raises:
            ConfigurationError: 命名空间为空或无法生成合法的指标名称
        """
        namespace = (namespace or '').strip()
        if not namespace:
            raise ConfigurationError("namespace 不能为空")
        if not METRIC_NAME_RE.match(namespace):
            raise ConfigurationError(f"namespace 只能包含字母、数字、下划线和冒号: {namespace}")

        self.namespace = namespace
        self.collector = collector
        self.logger = get_logger('exporter')
        self.registry = CollectorRegistry(auto_describe=True)
        self._lock = asyncio.Lock()
        self._gauges: Dict[str, Gauge] = {}

        for spec in GAUGE_SPECS:
            try:
                self._gauges[spec.name] = Gauge(
                    spec.name,
                    spec.documentation,
                    namespace=namespace,
                    registry=self.registry
                )
            except ValueError as e:
                raise ConfigurationError(
                    f"无法创建指标 {namespace}_{spec.name}: {e}", cause=e
                ) from e

        self._identities = [
            GaugeIdentity(f"{namespace}_{spec.name}", spec.documentation)
            for spec in GAUGE_SPECS
        ]

    def describe(self) -> List[GaugeIdentity]:
        """
        返回全部指标的标识，不触发采集

        Returns:
            List[GaugeIdentity]: 固定顺序的指标标识列表
        """
        return list(self._identities)

    async def collect(self) -> List[Tuple[GaugeIdentity, float]]:
        """
        执行一次采集并返回全部指标值

        Returns:
            List[Tuple[GaugeIdentity, float]]: 与 describe() 顺序一致的指标值；
            采集失败时返回空列表，指标保持原值
        """
        async with self._lock:
            if not await self._refresh():
                return []
            return self._samples()

    async def render(self) -> bytes:
        """
        执行一次采集并生成Prometheus文本格式的输出

        采集失败时输出上一次成功采集的指标值。

        Returns:
            bytes: Prometheus exposition 格式的指标文本
        """
        async with self._lock:
            await self._refresh()
            return generate_latest(self.registry)

    async def _refresh(self) -> bool:
        """调用方必须持有 self._lock"""
        try:
            metrics = await self.collector.scrape()
        except ScrapeError as e:
            self.logger.error(f"从Kibana采集指标失败: {e.format_error()}")
            return False

        self.logger.debug(f"Kibana整体状态: {metrics.status.overall}")
        self._update_gauges(metrics)
        return True

    def _update_gauges(self, metrics: KibanaMetrics) -> None:
        for spec in GAUGE_SPECS:
            self._gauges[spec.name].set(float(spec.extract(metrics)))

    def _samples(self) -> List[Tuple[GaugeIdentity, float]]:
        return [
            (identity, self.registry.get_sample_value(identity.name))
            for identity in self._identities
        ]
