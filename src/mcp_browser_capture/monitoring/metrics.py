"""Per-server counters for tool performance, errors and data quality."""

import time
import datetime
import threading
from typing import Any, Dict, List, Optional

import logging
logger = logging.getLogger(__name__)


class MetricsStore:
    """
    Collects timings and errors for one server instance.

    A fresh store is created with every BrowserContext, so test runs and
    server restarts never see each other's numbers.
    """

    def __init__(self, max_errors: int = 100):
        self._lock = threading.Lock()
        self._max_errors = max_errors
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.started_at = time.time()
            self.operations: Dict[str, Dict[str, Any]] = {}
            self.errors: List[Dict[str, Any]] = []
            self.data_quality: Dict[str, List[float]] = {}
            self.total = 0
            self.succeeded = 0

    def record_performance(self, operation: str, duration_ms: float, success: bool) -> None:
        with self._lock:
            op = self.operations.setdefault(
                operation, {"count": 0, "failures": 0, "total_ms": 0.0, "max_ms": 0.0}
            )
            op["count"] += 1
            op["total_ms"] += float(duration_ms)
            op["max_ms"] = max(op["max_ms"], float(duration_ms))
            if not success:
                op["failures"] += 1
            self.total += 1
            if success:
                self.succeeded += 1

    def log_error(self, error: Any, context: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "type": error.__class__.__name__ if isinstance(error, BaseException) else "error",
            "message": str(error),
            "context": dict(context or {}),
        }
        with self._lock:
            self.errors.append(entry)
            if len(self.errors) > self._max_errors:
                del self.errors[: len(self.errors) - self._max_errors]
        logger.debug("Recorded error: %s", entry["message"])

    def success_rate(self) -> float:
        """Fraction of recorded operations that succeeded; 1.0 when nothing ran."""
        with self._lock:
            if not self.total:
                return 1.0
            return self.succeeded / self.total

    def record_data_quality(self, metric: str, value: float) -> None:
        with self._lock:
            self.data_quality.setdefault(metric, []).append(float(value))

    def report(self) -> Dict[str, Any]:
        rate = self.success_rate()
        with self._lock:
            operations = {
                name: {
                    "count": op["count"],
                    "failures": op["failures"],
                    "avg_ms": round(op["total_ms"] / op["count"], 2) if op["count"] else 0.0,
                    "max_ms": round(op["max_ms"], 2),
                }
                for name, op in self.operations.items()
            }
            quality = {
                name: {
                    "samples": len(values),
                    "avg": round(sum(values) / len(values), 4) if values else 0.0,
                    "last": values[-1] if values else None,
                }
                for name, values in self.data_quality.items()
            }
            return {
                "uptime_s": round(time.time() - self.started_at, 1),
                "total_operations": self.total,
                "success_rate": round(rate, 4),
                "operations": operations,
                "recent_errors": list(self.errors[-10:]),
                "error_count": len(self.errors),
                "data_quality": quality,
            }


__all__ = ["MetricsStore"]
