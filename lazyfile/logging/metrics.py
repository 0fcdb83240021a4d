"""Counters and latency windows for file operations.

``BasicFile`` increments ``stat_queries``, ``opens``, ``flushes``,
``sync_retries`` and ``errors`` and times every successful flush into the
``flush_ms`` window.
"""

from __future__ import annotations

import time
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Deque, Dict, Iterator, Optional

from .structured import StructuredLogger


class MetricType(Enum):
    LATENCY = "latency"
    COUNTER = "counter"


@dataclass
class MetricStats:
    """Summary of one latency window."""

    count: int
    sum: float
    min: float
    max: float
    avg: float
    p50: float
    p95: float


class LatencyWindow:
    """The most recent ``size`` samples of one latency, in milliseconds."""

    def __init__(self, size: int) -> None:
        self.samples: Deque[float] = deque(maxlen=size)

    def add(self, value_ms: float) -> None:
        self.samples.append(value_ms)

    def stats(self) -> Optional[MetricStats]:
        if not self.samples:
            return None
        ordered = sorted(self.samples)
        n = len(ordered)
        total = sum(ordered)
        return MetricStats(
            count=n,
            sum=total,
            min=ordered[0],
            max=ordered[-1],
            avg=total / n,
            p50=ordered[n // 2],
            p95=ordered[min(n - 1, int(n * 0.95))],
        )


class PerformanceMetrics:
    """Operation counters plus sliding latency windows.

    Args:
        logger: Optional structured logger; each latency sample and the
            summary are written to it
        window_size: Samples kept per latency window
        component: Name reported in summaries
    """

    def __init__(
        self,
        logger: Optional[StructuredLogger] = None,
        window_size: int = 1000,
        component: Optional[str] = None,
    ) -> None:
        self.logger = logger
        self.component = component or "lazyfile"
        self.window_size = window_size
        self.counters: Counter[str] = Counter()
        self.windows: Dict[str, LatencyWindow] = {}
        self._started: Dict[str, float] = {}

    # --- Counters ---

    def increment_counter(self, name: str, value: float = 1.0) -> None:
        self.counters[name] += value

    def counter(self, name: str) -> float:
        return float(self.counters.get(name, 0.0))

    # --- Latency ---

    def record_latency(self, name: str, duration_ms: float, **context: Any) -> None:
        window = self.windows.get(name)
        if window is None:
            window = self.windows[name] = LatencyWindow(self.window_size)
        window.add(duration_ms)
        if self.logger:
            self.logger.debug(
                f"latency {name}",
                metric_type=MetricType.LATENCY.value,
                metric_name=name,
                metric_value=duration_ms,
                **context,
            )

    def start_timer(self, name: str) -> None:
        self._started[name] = time.perf_counter()

    def end_timer(self, name: str, **context: Any) -> float:
        """Stop the named timer and record its duration in milliseconds.

        Raises:
            KeyError: the timer was never started (or was cancelled)
        """
        try:
            started = self._started.pop(name)
        except KeyError:
            raise KeyError(f"Timer '{name}' was not started") from None
        duration_ms = (time.perf_counter() - started) * 1000
        self.record_latency(name, duration_ms, **context)
        return duration_ms

    def cancel_timer(self, name: str) -> None:
        self._started.pop(name, None)

    @contextmanager
    def timed(self, name: str, **context: Any) -> Iterator[None]:
        """Record the block's duration when it completes without raising."""
        started = time.perf_counter()
        yield
        self.record_latency(name, (time.perf_counter() - started) * 1000, **context)

    def get_stats(self, name: str) -> Optional[MetricStats]:
        window = self.windows.get(name)
        return window.stats() if window is not None else None

    # --- Reporting ---

    def get_all_metrics(self) -> Dict[str, Any]:
        latencies = {}
        for name, window in self.windows.items():
            stats = window.stats()
            if stats is not None:
                latencies[name] = asdict(stats)
        return {
            "component": self.component,
            "timestamp": time.time(),
            "counters": dict(self.counters),
            "metrics": latencies,
        }

    def log_summary(self) -> None:
        if self.logger:
            self.logger.info("file metrics summary", **self.get_all_metrics())

    def reset(self) -> None:
        self.counters.clear()
        self.windows.clear()
        self._started.clear()
