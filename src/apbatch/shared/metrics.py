"""Metrics collection for batch runs."""

import threading
import time
from collections import defaultdict
from typing import Any, Dict, List


class MetricsCollector:
    """
    Collects timings and counters for a batch run.
    Implements IMetricsCollector protocol.

    Safe to use from the controller worker thread while the caller reads
    summaries.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._start_time = time.monotonic()
        self._timers: Dict[str, float] = {}
        self._metrics: Dict[str, List[Any]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        with self._lock:
            self._timers[name] = time.monotonic()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time.

        The elapsed time is also recorded under ``{name}_duration``.

        Raises:
            KeyError: If timer was not started
        """
        with self._lock:
            if name not in self._timers:
                raise KeyError(f"Timer '{name}' was not started")
            elapsed = time.monotonic() - self._timers.pop(name)
            self._metrics[f"{name}_duration"].append(elapsed)
        return elapsed

    def record_metric(self, name: str, value: Any) -> None:
        with self._lock:
            self._metrics[name].append(value)

    def increment_counter(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_metric(self, name: str) -> list:
        with self._lock:
            return list(self._metrics.get(name, []))

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all metrics.

        Returns:
            Dictionary with total elapsed time, counters and per-metric
            count/sum/avg/min/max for numeric series
        """
        with self._lock:
            counters = dict(self._counters)
            series = {name: list(values) for name, values in self._metrics.items()}

        summary = {
            "total_elapsed": self.elapsed_time(),
            "counters": counters,
            "metrics": {}
        }
        for name, values in series.items():
            if not values:
                continue
            if all(isinstance(v, (int, float)) for v in values):
                summary["metrics"][name] = {
                    "count": len(values),
                    "sum": sum(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
            else:
                summary["metrics"][name] = {"count": len(values), "values": values}
        return summary

    def elapsed_time(self) -> float:
        """Get total elapsed time since initialization."""
        return time.monotonic() - self._start_time

    def format_summary(self) -> List[str]:
        """Render the summary as log-friendly lines."""
        summary = self.get_summary()
        lines = [f"Total elapsed: {summary['total_elapsed']:.2f}s"]
        for name, value in sorted(summary['counters'].items()):
            lines.append(f"  {name}: {value}")
        for name, data in sorted(summary['metrics'].items()):
            if 'avg' in data:
                lines.append(
                    f"  {name}: count={data['count']} avg={data['avg']:.3f}s "
                    f"min={data['min']:.3f}s max={data['max']:.3f}s"
                )
        return lines
