import time
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Deque, Dict, Optional

from core.logger import get_logger

logger = get_logger(__name__)

# Displays run for weeks; only the most recent samples per operation are kept
MAX_SAMPLES = 500


class PerformanceMonitor:
    """Timings for store writes, publishes and AI calls."""

    def __init__(self, max_samples: int = MAX_SAMPLES):
        self.durations: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_samples))
        self.success_counts: Dict[str, int] = defaultdict(int)
        self.failure_counts: Dict[str, int] = defaultdict(int)

    @contextmanager
    def measure(self, operation_name: str, context: Optional[Dict] = None):
        """
        Context manager to measure operation duration.

        Usage:
            with monitor.measure("menu_store.write", {"backend": "file"}):
                store.put(doc)
        """
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.failure_counts[operation_name] += 1
            logger.error(
                f"{operation_name} failed",
                duration=time.perf_counter() - start,
                context=context or {},
            )
            raise
        else:
            self.success_counts[operation_name] += 1
            logger.debug(
                f"{operation_name} completed",
                duration_ms=(time.perf_counter() - start) * 1000,
                context=context or {},
            )
        finally:
            self.durations[operation_name].append(time.perf_counter() - start)

    def get_stats(self, operation_name: str) -> Dict:
        durations = self.durations.get(operation_name)
        if not durations:
            return {}

        ok = self.success_counts[operation_name]
        failed = self.failure_counts[operation_name]
        return {
            "operation": operation_name,
            "count": ok + failed,
            "success_rate": ok / (ok + failed) * 100,
            "avg_duration_ms": sum(durations) * 1000 / len(durations),
            "max_duration_ms": max(durations) * 1000,
        }

    def get_all_stats(self) -> Dict[str, Dict]:
        return {name: self.get_stats(name) for name in self.durations}

    def log_summary(self):
        """Logs one line per measured operation (called on shutdown)."""
        all_stats = self.get_all_stats()
        if not all_stats:
            logger.info("[PERF] No operations measured")
            return

        for name, stats in all_stats.items():
            logger.info(
                f"[PERF] {name}: {stats['count']} runs, "
                f"{stats['success_rate']:.1f}% ok, "
                f"avg {stats['avg_duration_ms']:.0f}ms, max {stats['max_duration_ms']:.0f}ms"
            )

    def reset(self):
        self.durations.clear()
        self.success_counts.clear()
        self.failure_counts.clear()


_performance_monitor = None


def get_performance_monitor() -> PerformanceMonitor:
    """Get singleton performance monitor instance"""
    global _performance_monitor
    if _performance_monitor is None:
        _performance_monitor = PerformanceMonitor()
    return _performance_monitor
