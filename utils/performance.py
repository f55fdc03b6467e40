"""
Performance monitoring utilities.

Provides decorators and a context manager for timing store and repository
operations, plus the logging setup used by the app.
"""

import inspect
import functools
import logging
import time
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Operations slower than this (seconds) are logged as warnings
SLOW_OPERATION_THRESHOLD = 1.0


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """
    Configure root logging for the app.

    Args:
        level: Log level name
        fmt: Log record format
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def set_slow_operation_threshold(seconds: float) -> None:
    global SLOW_OPERATION_THRESHOLD
    SLOW_OPERATION_THRESHOLD = float(seconds)


class PerformanceMonitor:
    """
    Performance monitoring class for tracking operation times.
    """

    def __init__(self):
        """Initialize performance monitor."""
        self.metrics: Dict[str, list] = {}
        self.failures: Dict[str, int] = {}

    def record(self, operation: str, duration: float, failed: bool = False):
        """
        Record an operation duration.

        Args:
            operation: Name of the operation
            duration: Duration in seconds
            failed: Whether the operation raised
        """
        self.metrics.setdefault(operation, []).append(duration)
        if failed:
            self.failures[operation] = self.failures.get(operation, 0) + 1

    def get_stats(self, operation: str) -> Dict[str, float]:
        """
        Get statistics for an operation.

        Args:
            operation: Name of the operation

        Returns:
            Dictionary with min, max, avg, total, count, failures
        """
        durations = self.metrics.get(operation)
        if not durations:
            return {'min': 0, 'max': 0, 'avg': 0, 'total': 0, 'count': 0, 'failures': 0}

        return {
            'min': min(durations),
            'max': max(durations),
            'avg': sum(durations) / len(durations),
            'total': sum(durations),
            'count': len(durations),
            'failures': self.failures.get(operation, 0),
        }

    def get_all_stats(self) -> Dict[str, Dict[str, float]]:
        """Get statistics for all operations."""
        return {operation: self.get_stats(operation) for operation in self.metrics}

    def clear(self):
        """Clear all recorded metrics."""
        self.metrics.clear()
        self.failures.clear()

    def log_stats(self, operation: str = None):
        """
        Log statistics.

        Args:
            operation: Specific operation to log, or None for all
        """
        if operation:
            stats = self.get_stats(operation)
            logger.info(
                "Performance stats for '%s': count=%d avg=%.4fs min=%.4fs max=%.4fs failures=%d",
                operation, stats['count'], stats['avg'], stats['min'], stats['max'], stats['failures'],
            )
            return

        logger.info("Performance stats for all operations:")
        for op, stats in self.get_all_stats().items():
            logger.info("  %s: count=%d avg=%.4fs total=%.4fs", op, stats['count'], stats['avg'], stats['total'])


# Process-wide monitor; repository calls report here
_global_monitor = PerformanceMonitor()


def get_monitor() -> PerformanceMonitor:
    """Get the global performance monitor instance."""
    return _global_monitor


def _finish(op_name: str, start_time: float, failed: bool) -> None:
    duration = time.perf_counter() - start_time
    _global_monitor.record(op_name, duration, failed=failed)
    if duration > SLOW_OPERATION_THRESHOLD:
        logger.warning(
            "Operation '%s' took %.2fs (threshold: %.1fs)",
            op_name, duration, SLOW_OPERATION_THRESHOLD,
        )


def monitor_performance(operation_name: str = None):
    """
    Decorator to monitor function performance.

    Works on plain functions and coroutine functions.

    Args:
        operation_name: Name for the operation (defaults to function name)

    Example:
        @monitor_performance("get_detail")
        async def get_detail(self, trace_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or func.__name__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                start_time = time.perf_counter()
                failed = True
                try:
                    result = await func(*args, **kwargs)
                    failed = False
                    return result
                finally:
                    _finish(op_name, start_time, failed)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            start_time = time.perf_counter()
            failed = True
            try:
                result = func(*args, **kwargs)
                failed = False
                return result
            finally:
                _finish(op_name, start_time, failed)

        return wrapper
    return decorator


def measure_time(operation_name: str):
    """
    Context manager for measuring operation time.

    Example:
        with measure_time("aggregate_daily_stats"):
            aggregate(records)
    """
    class TimeMeasurement:
        def __init__(self, name: str):
            self.name = name
            self.start_time = None

        def __enter__(self):
            self.start_time = time.perf_counter()
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            _finish(self.name, self.start_time, exc_type is not None)

    return TimeMeasurement(operation_name)
