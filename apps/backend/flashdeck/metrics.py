from __future__ import annotations

import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from typing import Deque


@dataclass
class PathStats:
    latencies_ms: Deque[float]
    errors: int = 0
    timeouts: int = 0
    total: int = 0
    status_codes: Counter[int] = field(default_factory=Counter)


class MetricsRegistry:
    """In-memory metrics registry.

    - Per-path rolling latency window for p95 calculation
    - Error/timeout counters and status code breakdown per path
    - Review counters per grade band (lapse/good/easy)
    """

    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._per_path: dict[str, PathStats] = defaultdict(
            lambda: PathStats(latencies_ms=deque(maxlen=self._window_size))
        )
        self._review_bands: Counter[str] = Counter()

    def record(
        self,
        path: str,
        latency_ms: float,
        *,
        status_code: int | None = None,
        is_error: bool = False,
        is_timeout: bool = False,
    ) -> None:
        with self._lock:
            stats = self._per_path[path]
            stats.latencies_ms.append(latency_ms)
            stats.total += 1
            if status_code is not None:
                stats.status_codes[status_code] += 1
            if is_error:
                stats.errors += 1
            if is_timeout:
                stats.timeouts += 1

    def record_review(self, band: str) -> None:
        with self._lock:
            self._review_bands[band] += 1

    def snapshot(self) -> dict[str, dict[str, object]]:
        with self._lock:
            result: dict[str, dict[str, object]] = {}
            for path, stats in self._per_path.items():
                p95 = calculate_p95(list(stats.latencies_ms))
                result[path] = {
                    "p95_ms": round(p95, 2),
                    "count": stats.total,
                    "errors": stats.errors,
                    "timeouts": stats.timeouts,
                    "status_codes": {str(code): n for code, n in sorted(stats.status_codes.items())},
                }
            return result

    def review_snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._review_bands)

    def reset(self) -> None:
        with self._lock:
            self._per_path.clear()
            self._review_bands.clear()


def calculate_p95(values: list[float]) -> float:
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    k = int(0.95 * (len(sorted_vals) - 1))
    return sorted_vals[k]


registry = MetricsRegistry()
