"""Kibana /api/status 响应的数据模型"""

from dataclasses import dataclass, field
from numbers import Number
from typing import Dict, Any, Optional


# Kibana状态级别到指标值的映射，大小写不敏感
STATUS_LEVEL_VALUES: Dict[str, float] = {
    'available': 1.0,
    'degraded': 0.5,
    'unavailable': 0.25,
    'critical': 0.0,
}


def status_level_value(level: Optional[str]) -> float:
    """
    将Kibana状态级别转换为指标值

    缺失或无法识别的级别（例如 initializing）按 critical 处理。

    Args:
        level: 状态级别，例如 "available"

    Returns:
        float: 指标值
    """
    if not level:
        return 0.0
    return STATUS_LEVEL_VALUES.get(level.lower(), 0.0)


def _group(document: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = document.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"字段 '{key}' 应为JSON对象，实际为 {type(value).__name__}")
    return value


def _number(document: Dict[str, Any], key: str) -> float:
    value = document.get(key)
    if value is None:
        return 0.0
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool) or not isinstance(value, Number):
        raise TypeError(f"字段 '{key}' 应为数值，实际为 {type(value).__name__}")
    return float(value)


def _level(document: Dict[str, Any]) -> Optional[str]:
    value = document.get('level')
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"字段 'level' 应为字符串，实际为 {type(value).__name__}")
    return value


@dataclass(frozen=True)
class StatusLevels:
    """整体及各核心子系统的状态级别"""
    overall: Optional[str] = None
    elasticsearch: Optional[str] = None
    saved_objects: Optional[str] = None

    @classmethod
    def from_dict(cls, status: Dict[str, Any]) -> 'StatusLevels':
        core = _group(status, 'core')
        return cls(
            overall=_level(_group(status, 'overall')),
            elasticsearch=_level(_group(core, 'elasticsearch')),
            saved_objects=_level(_group(core, 'savedObjects')),
        )


@dataclass(frozen=True)
class ProcessMetrics:
    """Kibana Node.js进程指标"""
    uptime_in_millis: float = 0.0
    heap_total_in_bytes: float = 0.0
    heap_used_in_bytes: float = 0.0
    resident_set_size_in_bytes: float = 0.0
    event_loop_delay: float = 0.0

    @classmethod
    def from_dict(cls, process: Dict[str, Any]) -> 'ProcessMetrics':
        memory = _group(process, 'memory')
        heap = _group(memory, 'heap')
        return cls(
            uptime_in_millis=_number(process, 'uptime_in_millis'),
            heap_total_in_bytes=_number(heap, 'total_in_bytes'),
            heap_used_in_bytes=_number(heap, 'used_in_bytes'),
            resident_set_size_in_bytes=_number(memory, 'resident_set_size_in_bytes'),
            event_loop_delay=_number(process, 'event_loop_delay'),
        )


@dataclass(frozen=True)
class OSMetrics:
    """Kibana所在主机的操作系统指标"""
    load_1m: float = 0.0
    load_5m: float = 0.0
    load_15m: float = 0.0
    memory_total_in_bytes: float = 0.0
    memory_used_in_bytes: float = 0.0

    @classmethod
    def from_dict(cls, os_metrics: Dict[str, Any]) -> 'OSMetrics':
        load = _group(os_metrics, 'load')
        memory = _group(os_metrics, 'memory')
        return cls(
            load_1m=_number(load, '1m'),
            load_5m=_number(load, '5m'),
            load_15m=_number(load, '15m'),
            memory_total_in_bytes=_number(memory, 'total_in_bytes'),
            memory_used_in_bytes=_number(memory, 'used_in_bytes'),
        )


@dataclass(frozen=True)
class ResponseTimes:
    """响应时间（毫秒）"""
    avg_in_millis: float = 0.0
    max_in_millis: float = 0.0


@dataclass(frozen=True)
class RequestCounters:
    """请求计数"""
    disconnects: float = 0.0
    total: float = 0.0


@dataclass(frozen=True)
class KibanaMetrics:
    """单次采集得到的Kibana指标快照，构造后不可修改"""
    status: StatusLevels = field(default_factory=StatusLevels)
    concurrent_connections: float = 0.0
    process: ProcessMetrics = field(default_factory=ProcessMetrics)
    os: OSMetrics = field(default_factory=OSMetrics)
    response_times: ResponseTimes = field(default_factory=ResponseTimes)
    requests: RequestCounters = field(default_factory=RequestCounters)

    @classmethod
    def from_dict(cls, document: Any) -> 'KibanaMetrics':
        """
        从 /api/status 的JSON文档构造快照

        缺失的字段取零值，结构不符时抛出异常。

        Args:
            document: json.loads 的结果

        Returns:
            KibanaMetrics: 指标快照

        Raises:
            TypeError: 文档结构与期望不符
        """
        if not isinstance(document, dict):
            raise TypeError(f"响应根节点应为JSON对象，实际为 {type(document).__name__}")

        metrics = _group(document, 'metrics')
        response_times = _group(metrics, 'response_times')
        requests = _group(metrics, 'requests')

        return cls(
            status=StatusLevels.from_dict(_group(document, 'status')),
            concurrent_connections=_number(metrics, 'concurrent_connections'),
            process=ProcessMetrics.from_dict(_group(metrics, 'process')),
            os=OSMetrics.from_dict(_group(metrics, 'os')),
            response_times=ResponseTimes(
                avg_in_millis=_number(response_times, 'avg_in_millis'),
                max_in_millis=_number(response_times, 'max_in_millis'),
            ),
            requests=RequestCounters(
                disconnects=_number(requests, 'disconnects'),
                total=_number(requests, 'total'),
            ),
        )
