"""
In-process metrics for the launch monitor
Counters, gauges and RPC latency samples
"""

import time
import statistics
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional


@dataclass
class LatencySummary:
    """Summary of recorded latencies for one operation"""
    operation: str
    count: int
    p50: float
    p95: float
    p99: float
    mean: float
    max: float


class MetricsCollector:
    """Collects monitor counters, gauges and latencies"""

    def __init__(self, max_samples: int = 5000):
        self._latencies: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_samples))
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = {}

    def increment(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def set_gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def record_latency(self, operation: str, latency_ms: float) -> None:
        self._latencies[operation].append(latency_ms)

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_gauge(self, name: str) -> float:
        return self._gauges.get(name, 0.0)

    def latency_summary(self, operation: str) -> Optional[LatencySummary]:
        """
        Summarize latencies recorded for an operation

        Returns:
            LatencySummary or None if nothing was recorded
        """
        samples = sorted(self._latencies.get(operation, ()))
        if not samples:
            return None

        return LatencySummary(
            operation=operation,
            count=len(samples),
            p50=_percentile(samples, 50),
            p95=_percentile(samples, 95),
            p99=_percentile(samples, 99),
            mean=statistics.mean(samples),
            max=samples[-1]
        )

    def snapshot(self) -> Dict:
        """Export all metrics as a JSON-serializable dict"""
        latencies = {}
        for operation in list(self._latencies.keys()):
            summary = self.latency_summary(operation)
            if summary:
                latencies[operation] = {
                    "count": summary.count,
                    "p50": round(summary.p50, 2),
                    "p95": round(summary.p95, 2),
                    "p99": round(summary.p99, 2),
                    "mean": round(summary.mean, 2),
                    "max": round(summary.max, 2)
                }

        return {
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "latencies_ms": latencies
        }

    def reset(self) -> None:
        self._latencies.clear()
        self._counters.clear()
        self._gauges.clear()


def _percentile(sorted_data: List[float], percentile: float) -> float:
    """Linear interpolation percentile over sorted data"""
    if len(sorted_data) == 1:
        return sorted_data[0]

    index = (percentile / 100) * (len(sorted_data) - 1)
    lower = int(index)
    upper = min(lower + 1, len(sorted_data) - 1)
    weight = index - lower
    return sorted_data[lower] * (1 - weight) + sorted_data[upper] * weight


class LatencyTimer:
    """Context manager recording elapsed milliseconds for an operation"""

    def __init__(self, metrics: MetricsCollector, operation: str):
        self.metrics = metrics
        self.operation = operation
        self.start_time: Optional[float] = None
        self.latency_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.latency_ms = (time.perf_counter() - self.start_time) * 1000
            self.metrics.record_latency(self.operation, self.latency_ms)


_global_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics
