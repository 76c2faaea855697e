"""
In-process metrics for the Mint Tracker
Tracks RPC latencies and pipeline counters for the end-of-run summary
"""

import statistics
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class HistogramStats:
    """Statistical summary of latency samples"""
    operation: str
    count: int
    p50: float
    p95: float
    mean: float
    max: float


class MetricsCollector:
    """Collects counters and latency samples"""

    def __init__(self, max_samples: int = 10000):
        self._latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_samples))
        self._counters: Dict[str, int] = defaultdict(int)
        self._labeled_counters: Dict[tuple, int] = defaultdict(int)

    def record_latency(
        self,
        operation: str,
        latency_ms: float,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record operation latency

        Args:
            operation: Operation name (e.g., "rpc_call")
            latency_ms: Latency in milliseconds
            labels: Optional labels, counted per label set
        """
        self._latencies[operation].append(latency_ms)
        self.increment_counter(f"{operation}_count", labels=labels)

    def increment_counter(
        self,
        metric_name: str,
        value: int = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Increment a counter, optionally scoped by labels"""
        if labels:
            label_key = (metric_name, tuple(sorted(labels.items())))
            self._labeled_counters[label_key] += value
        else:
            self._counters[metric_name] += value

    def get_counter(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current counter value"""
        if labels:
            label_key = (metric_name, tuple(sorted(labels.items())))
            return self._labeled_counters.get(label_key, 0)
        return self._counters.get(metric_name, 0)

    def get_histogram_stats(self, operation: str) -> Optional[HistogramStats]:
        """Summarize latency samples for an operation, None if there are none"""
        samples = sorted(self._latencies.get(operation, []))
        if not samples:
            return None

        return HistogramStats(
            operation=operation,
            count=len(samples),
            p50=self._percentile(samples, 50),
            p95=self._percentile(samples, 95),
            mean=statistics.mean(samples),
            max=samples[-1]
        )

    def export_metrics(self) -> Dict:
        """Export all metrics as a JSON-serializable dict"""
        labeled = {}
        for (name, labels), value in self._labeled_counters.items():
            label_str = ",".join(f"{k}={v}" for k, v in labels)
            labeled[f"{name}{{{label_str}}}"] = value

        histograms = {}
        for operation in list(self._latencies.keys()):
            stats = self.get_histogram_stats(operation)
            if stats:
                histograms[operation] = {
                    "count": stats.count,
                    "p50": round(stats.p50, 2),
                    "p95": round(stats.p95, 2),
                    "mean": round(stats.mean, 2),
                    "max": round(stats.max, 2)
                }

        return {
            "counters": dict(self._counters),
            "labeled_counters": labeled,
            "histograms": histograms
        }

    def reset(self) -> None:
        """Reset all metrics"""
        self._latencies.clear()
        self._counters.clear()
        self._labeled_counters.clear()

    @staticmethod
    def _percentile(sorted_data: List[float], percentile: float) -> float:
        """Linear-interpolated percentile of sorted data"""
        if len(sorted_data) == 1:
            return sorted_data[0]

        index = (percentile / 100) * (len(sorted_data) - 1)
        lower = int(index)
        upper = min(lower + 1, len(sorted_data) - 1)
        weight = index - lower
        return sorted_data[lower] * (1 - weight) + sorted_data[upper] * weight


class LatencyTimer:
    """Context manager for measuring operation latency"""

    def __init__(self, metrics: MetricsCollector, operation: str, labels: Optional[Dict[str, str]] = None):
        self.metrics = metrics
        self.operation = operation
        self.labels = labels
        self.start_time: Optional[float] = None
        self.latency_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.latency_ms = (time.perf_counter() - self.start_time) * 1000
            self.metrics.record_latency(self.operation, self.latency_ms, self.labels)


_global_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics
