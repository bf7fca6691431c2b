"""
Metrics Collection - Monitoring Layer

In-process counters and histograms for the file service, exported in the
Prometheus text format by GET /v1/metrics.

@.architecture
Incoming: api/dependencies.py, api/v1/endpoints/*.py --- {metric name/help/labels, inc()/observe() calls}
Processing: Counter.inc(), Histogram.observe(), MetricsRegistry.collect_all(), MetricsRegistry.export_prometheus() --- {3 jobs: recording, collection, export}
Outgoing: api/v1/endpoints/health.py --- {Dict[str, Any] snapshot, str Prometheus text}
"""

import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

LabelKey = Tuple[str, ...]

# Upload sizes in bytes: 1 KiB .. 1 MiB
SIZE_BUCKETS = [1024.0, 4096.0, 16384.0, 65536.0, 262144.0, 524288.0, 1048576.0]


class _Metric:
    """Name, help text and fixed label names shared by all metric types."""

    kind = "untyped"

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = list(labels or [])
        self._lock = threading.Lock()

    def _label_key(self, labels: Dict[str, str]) -> LabelKey:
        if set(labels) != set(self.label_names):
            raise ValueError(
                f"{self.name}: expected labels {self.label_names}, got {sorted(labels)}"
            )
        return tuple(str(labels[label]) for label in self.label_names)

    def _label_dict(self, key: LabelKey) -> Dict[str, str]:
        return dict(zip(self.label_names, key))


class Counter(_Metric):
    """
    Monotonically increasing value per label combination.

        file_operations.inc(operation="put", status="success")
    """

    kind = "counter"

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        super().__init__(name, help_text, labels)
        self._values: Dict[LabelKey, float] = defaultdict(float)

    def inc(self, value: float = 1.0, **labels: str) -> None:
        """
        Add to the counter.

        Raises:
            ValueError: Negative amount or wrong label names
        """
        if value < 0:
            raise ValueError(f"{self.name}: counters cannot decrease")
        key = self._label_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, **labels: str) -> float:
        key = self._label_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        with self._lock:
            return [(self._label_dict(key), value) for key, value in sorted(self._values.items())]


class Histogram(_Metric):
    """
    Cumulative bucket counts, sum and count per label combination.

    Bucket boundaries are upper bounds; an implicit +Inf bucket counts
    every observation.
    """

    kind = "histogram"

    def __init__(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ):
        super().__init__(name, help_text, labels)
        self.buckets = sorted(buckets or SIZE_BUCKETS)
        self._counts: Dict[LabelKey, List[int]] = {}
        self._sums: Dict[LabelKey, float] = defaultdict(float)

    def observe(self, value: float, **labels: str) -> None:
        key = self._label_key(labels)
        with self._lock:
            counts = self._counts.setdefault(key, [0] * (len(self.buckets) + 1))
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    counts[i] += 1
            counts[-1] += 1
            self._sums[key] += value

    def get_stats(self, **labels: str) -> Dict[str, Any]:
        """
        Snapshot for one label combination.

        Returns:
            Dict with count, sum, average and cumulative buckets
            (keyed by bound, +Inf as float('inf'))
        """
        key = self._label_key(labels)
        with self._lock:
            return self._snapshot(key)

    def _snapshot(self, key: LabelKey) -> Dict[str, Any]:
        counts = self._counts.get(key, [0] * (len(self.buckets) + 1))
        total = counts[-1]
        value_sum = self._sums.get(key, 0.0)
        return {
            'count': total,
            'sum': value_sum,
            'average': value_sum / total if total else 0.0,
            'buckets': dict(zip([*self.buckets, float('inf')], counts)),
        }

    def collect(self) -> List[Tuple[Dict[str, str], Dict[str, Any]]]:
        with self._lock:
            return [(self._label_dict(key), self._snapshot(key)) for key in sorted(self._counts)]


class MetricsRegistry:
    """
    Named metrics, created on first use.

    Asking twice for the same name returns the same object, so modules can
    declare their metrics at import time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: Dict[str, _Metric] = {}

    def _get_or_create(self, cls, name: str, *args: Any) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name, *args)
            elif not isinstance(metric, cls):
                raise ValueError(f"{name} is already registered as a {metric.kind}")
            return metric

    def counter(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None
    ) -> Counter:
        """Get or create a counter."""
        return self._get_or_create(Counter, name, help_text, labels)

    def histogram(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ) -> Histogram:
        """Get or create a histogram."""
        return self._get_or_create(Histogram, name, help_text, labels, buckets)

    def _sorted_metrics(self) -> List[_Metric]:
        with self._lock:
            return [self._metrics[name] for name in sorted(self._metrics)]

    def collect_all(self) -> Dict[str, Any]:
        """
        Snapshot of every metric.

        Returns:
            Dict of metric name to {type, help, values}; histograms also
            carry their bucket bounds
        """
        result: Dict[str, Any] = {}
        for metric in self._sorted_metrics():
            entry: Dict[str, Any] = {
                'type': metric.kind,
                'help': metric.help_text,
                'values': metric.collect(),
            }
            if isinstance(metric, Histogram):
                entry['buckets'] = metric.buckets
            result[metric.name] = entry
        return result

    def export_prometheus(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        lines: List[str] = []

        for metric in self._sorted_metrics():
            lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")

            if isinstance(metric, Counter):
                for labels, value in metric.collect():
                    lines.append(f"{metric.name}{_format_labels(labels)} {value}")
                continue

            for labels, stats in metric.collect():
                for bound, count in stats['buckets'].items():
                    le = "+Inf" if bound == float('inf') else str(bound)
                    lines.append(f"{metric.name}_bucket{_format_labels({**labels, 'le': le})} {count}")
                lines.append(f"{metric.name}_sum{_format_labels(labels)} {stats['sum']}")
                lines.append(f"{metric.name}_count{_format_labels(labels)} {stats['count']}")

        return '\n'.join(lines) + '\n'


def _format_labels(labels: Dict[str, str]) -> str:
    if not labels:
        return ""
    escaped = (
        (key, value.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n'))
        for key, value in labels.items()
    )
    return "{" + ",".join(f'{key}="{value}"' for key, value in escaped) + "}"


# Process-wide registry
_global_registry: Optional[MetricsRegistry] = None


def get_registry() -> MetricsRegistry:
    global _global_registry
    if _global_registry is None:
        _global_registry = MetricsRegistry()
    return _global_registry


def counter(name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
    """Get or create a counter in the process-wide registry."""
    return get_registry().counter(name, help_text, labels)


def histogram(
    name: str,
    help_text: str,
    labels: Optional[List[str]] = None,
    buckets: Optional[List[float]] = None
) -> Histogram:
    """Get or create a histogram in the process-wide registry."""
    return get_registry().histogram(name, help_text, labels, buckets)
