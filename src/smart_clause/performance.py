"""Performance monitoring utilities for SmartClause.

This module tracks per-stage durations of analysis and Q&A requests and
warns when an operation exceeds the configured processing time.
"""

import functools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class PerformanceMetrics:
    """Performance metrics for pipeline operations."""

    operation_name: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    duration: Optional[float] = None
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def finish(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark the operation as finished."""
        self.end_time = time.time()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.error = error


class PerformanceMonitor:
    """
    Monitor and track performance metrics for pipeline operations.

    Safe to share between request threads; every metric is recorded
    under a lock.
    """

    def __init__(self, max_processing_time: float = 60, max_history: int = 1000):
        """
        Initialize the performance monitor.

        Args:
            max_processing_time: Maximum allowed processing time in seconds.
            max_history: Number of metrics kept per operation.
        """
        self.max_processing_time = max_processing_time
        self.max_history = max_history
        self.metrics: Dict[str, list[PerformanceMetrics]] = {}
        self._lock = threading.Lock()

    def start_operation(self, operation_name: str, **metadata) -> PerformanceMetrics:
        """
        Start tracking an operation.

        Args:
            operation_name: Name of the operation.
            **metadata: Additional metadata to track.

        Returns:
            PerformanceMetrics object for this operation.
        """
        return PerformanceMetrics(operation_name=operation_name, metadata=metadata)

    def end_operation(
        self,
        metric: PerformanceMetrics,
        success: bool = True,
        error: Optional[str] = None
    ) -> None:
        """
        End tracking an operation.

        Args:
            metric: The metric returned by start_operation.
            success: Whether the operation succeeded.
            error: Optional error message.
        """
        metric.finish(success=success, error=error)

        with self._lock:
            history = self.metrics.setdefault(metric.operation_name, [])
            history.append(metric)
            if len(history) > self.max_history:
                del history[:len(history) - self.max_history]

        if metric.duration and metric.duration > self.max_processing_time:
            logger.warning(
                f"Operation '{metric.operation_name}' exceeded max time: "
                f"{metric.duration:.2f}s > {self.max_processing_time}s"
            )

    @contextmanager
    def track(self, operation_name: str, **metadata) -> Generator[PerformanceMetrics, None, None]:
        """
        Track the enclosed block as one operation.

        Example:
            with monitor.track("segment", document_id=1):
                clauses = segmenter.segment(text).to_list()
        """
        metric = self.start_operation(operation_name, **metadata)
        try:
            yield metric
        except Exception as e:
            self.end_operation(metric, success=False, error=str(e))
            raise
        self.end_operation(metric, success=True)

    def get_operation_stats(self, operation_name: str) -> Dict[str, Any]:
        """
        Get statistics for a specific operation.

        Args:
            operation_name: Name of the operation.

        Returns:
            Dictionary with statistics (avg, min, max, count).
        """
        with self._lock:
            history = list(self.metrics.get(operation_name, []))

        durations = [m.duration for m in history if m.duration is not None]
        if not durations:
            return {}

        return {
            "count": len(durations),
            "average": sum(durations) / len(durations),
            "min": min(durations),
            "max": max(durations),
            "total": sum(durations),
            "success_rate": sum(1 for m in history if m.success) / len(history),
        }

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all tracked operations."""
        with self._lock:
            names = list(self.metrics.keys())
        return {name: self.get_operation_stats(name) for name in names}

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self.metrics.clear()


def timed_operation(operation_name: str):
    """
    Decorator to log the duration of a function call.

    Args:
        operation_name: Name of the operation to track.

    Example:
        @timed_operation("segment_and_analyze")
        def segment_and_analyze(self, document_text):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.debug(f"{operation_name} completed in {duration:.2f}s")
                return result
            except Exception as e:
                duration = time.time() - start_time
                logger.error(f"{operation_name} failed after {duration:.2f}s: {e}")
                raise
        return wrapper
    return decorator
