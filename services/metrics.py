"""Process-wide request counters exposed on the diagnostics endpoint."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Deque, Optional

_SAMPLE_WINDOW = 1024


@dataclass(frozen=True)
class MetricsSnapshot:
    sensor_count: int
    request_count: int
    error_count: int
    deadline_exceeded_count: int
    canceled_count: int
    elapsed_last: float
    elapsed_avg: float
    elapsed_p95: float
    elapsed_min: float
    elapsed_max: float


class RequestMetrics:
    """Counters shared by every request for the lifetime of the process.

    Elapsed times are in milliseconds. Average, minimum and maximum cover every
    request seen; the 95th percentile covers the most recent samples only.
    """

    def __init__(self, sample_window: int = _SAMPLE_WINDOW) -> None:
        self._lock = Lock()
        self._sensor_count = 0
        self._request_count = 0
        self._error_count = 0
        self._deadline_exceeded_count = 0
        self._canceled_count = 0
        self._elapsed_total = 0.0
        self._elapsed_count = 0
        self._elapsed_last = 0.0
        self._elapsed_min: Optional[float] = None
        self._elapsed_max: Optional[float] = None
        self._samples: Deque[float] = deque(maxlen=sample_window)

    def set_sensor_count(self, count: int) -> None:
        with self._lock:
            self._sensor_count = count

    def record_request(self) -> None:
        with self._lock:
            self._request_count += 1

    def record_error(self) -> None:
        with self._lock:
            self._error_count += 1

    def record_deadline_exceeded(self) -> None:
        with self._lock:
            self._deadline_exceeded_count += 1

    def record_canceled(self) -> None:
        with self._lock:
            self._canceled_count += 1

    def record_elapsed(self, elapsed_ms: float) -> None:
        with self._lock:
            self._elapsed_last = elapsed_ms
            self._elapsed_total += elapsed_ms
            self._elapsed_count += 1
            if self._elapsed_min is None or elapsed_ms < self._elapsed_min:
                self._elapsed_min = elapsed_ms
            if self._elapsed_max is None or elapsed_ms > self._elapsed_max:
                self._elapsed_max = elapsed_ms
            self._samples.append(elapsed_ms)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            average = self._elapsed_total / self._elapsed_count if self._elapsed_count else 0.0
            return MetricsSnapshot(
                sensor_count=self._sensor_count,
                request_count=self._request_count,
                error_count=self._error_count,
                deadline_exceeded_count=self._deadline_exceeded_count,
                canceled_count=self._canceled_count,
                elapsed_last=self._elapsed_last,
                elapsed_avg=average,
                elapsed_p95=_percentile(list(self._samples), 95),
                elapsed_min=self._elapsed_min or 0.0,
                elapsed_max=self._elapsed_max or 0.0,
            )


def _percentile(samples: list[float], percent: float) -> float:
    """Nearest-rank percentile; zero when there are no samples."""
    if not samples:
        return 0.0
    ordered = sorted(samples)
    rank = max(1, math.ceil(percent / 100 * len(ordered)))
    return ordered[rank - 1]


@lru_cache
def build_default_metrics() -> RequestMetrics:
    return RequestMetrics()
