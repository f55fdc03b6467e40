"""
Tests for performance monitoring utilities.

Tests performance tracking, statistics, and monitoring decorators.
"""

import asyncio
import inspect
import logging
import time

import pytest

from utils import performance
from utils.performance import (
    PerformanceMonitor,
    get_monitor,
    measure_time,
    monitor_performance,
    set_slow_operation_threshold,
)
from services import DiffEngine


@pytest.fixture
def restore_threshold():
    original = performance.SLOW_OPERATION_THRESHOLD
    yield
    set_slow_operation_threshold(original)


def test_performance_monitor_record():
    """Test recording performance metrics."""
    monitor = PerformanceMonitor()

    monitor.record("test_op", 0.5)
    monitor.record("test_op", 0.3)
    monitor.record("test_op", 0.7)

    stats = monitor.get_stats("test_op")

    assert stats['count'] == 3
    assert stats['min'] == 0.3
    assert stats['max'] == 0.7
    assert stats['avg'] == pytest.approx(0.5, rel=0.01)
    assert stats['total'] == pytest.approx(1.5, rel=0.01)
    assert stats['failures'] == 0


def test_performance_monitor_multiple_operations():
    """Test monitoring multiple operations."""
    monitor = PerformanceMonitor()

    monitor.record("op1", 0.1)
    monitor.record("op1", 0.2, failed=True)
    monitor.record("op2", 0.5)

    all_stats = monitor.get_all_stats()

    assert len(all_stats) == 2
    assert all_stats['op1']['count'] == 2
    assert all_stats['op1']['failures'] == 1
    assert all_stats['op2']['count'] == 1


def test_performance_monitor_clear():
    """Test clearing performance metrics."""
    monitor = PerformanceMonitor()

    monitor.record("test_op", 0.5, failed=True)
    monitor.clear()

    assert monitor.get_stats("test_op")['count'] == 0
    assert monitor.get_stats("test_op")['failures'] == 0


def test_performance_monitor_empty_operation():
    """Test getting stats for non-existent operation."""
    stats = PerformanceMonitor().get_stats("nonexistent")

    assert stats == {'min': 0, 'max': 0, 'avg': 0, 'total': 0, 'count': 0, 'failures': 0}


def test_global_monitor_instance():
    """Test that get_monitor returns same instance."""
    assert get_monitor() is get_monitor()


def test_monitor_performance_decorator():
    """Test performance monitoring decorator."""
    monitor = get_monitor()
    monitor.clear()

    @monitor_performance("test_function")
    def slow_function():
        time.sleep(0.05)
        return "done"

    assert slow_function() == "done"

    stats = monitor.get_stats("test_function")
    assert stats['count'] == 1
    assert stats['avg'] >= 0.05


def test_decorator_defaults_to_function_name():
    monitor = get_monitor()
    monitor.clear()

    @monitor_performance()
    def named_operation():
        return 1

    named_operation()

    assert monitor.get_stats("named_operation")['count'] == 1


async def test_monitor_performance_on_coroutine():
    """Coroutine functions are timed across the await."""
    monitor = get_monitor()
    monitor.clear()

    @monitor_performance("async_op")
    async def fetch():
        await asyncio.sleep(0.05)
        return 42

    assert inspect.iscoroutinefunction(fetch)
    assert await fetch() == 42

    stats = monitor.get_stats("async_op")
    assert stats['count'] == 1
    assert stats['avg'] >= 0.05


async def test_async_failures_are_counted():
    monitor = get_monitor()
    monitor.clear()

    @monitor_performance("async_failing")
    async def broken():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await broken()

    stats = monitor.get_stats("async_failing")
    assert stats['count'] == 1
    assert stats['failures'] == 1


def test_performance_monitoring_with_exceptions():
    """Test that performance is recorded even when function raises exception."""
    monitor = get_monitor()
    monitor.clear()

    @monitor_performance("failing_op")
    def failing_function():
        raise ValueError("Test error")

    with pytest.raises(ValueError):
        failing_function()

    stats = monitor.get_stats("failing_op")
    assert stats['count'] == 1
    assert stats['failures'] == 1


def test_measure_time_context_manager():
    """Test time measurement context manager."""
    monitor = get_monitor()
    monitor.clear()

    with measure_time("test_context"):
        time.sleep(0.05)

    stats = monitor.get_stats("test_context")
    assert stats['count'] == 1
    assert stats['avg'] >= 0.05
    assert stats['failures'] == 0


def test_measure_time_with_exception():
    """Test that time is measured even when exception occurs."""
    monitor = get_monitor()
    monitor.clear()

    with pytest.raises(ValueError):
        with measure_time("error_context"):
            raise ValueError("Test error")

    stats = monitor.get_stats("error_context")
    assert stats['count'] == 1
    assert stats['failures'] == 1


def test_diff_engine_performance_monitoring():
    """Test that DiffEngine operations are monitored."""
    monitor = get_monitor()
    monitor.clear()

    DiffEngine().compute_diff("This is the original text", "This is the modified text")

    assert monitor.get_stats("compute_diff")['count'] == 1


def test_slow_operation_logged(caplog, restore_threshold):
    caplog.set_level(logging.WARNING)
    set_slow_operation_threshold(0.0)

    @monitor_performance("sluggish")
    def sluggish():
        time.sleep(0.01)

    sluggish()

    assert "Operation 'sluggish' took" in caplog.text


def test_fast_operation_not_logged(caplog, restore_threshold):
    caplog.set_level(logging.WARNING)
    set_slow_operation_threshold(10)

    @monitor_performance("quick")
    def quick():
        return None

    quick()

    assert "quick" not in caplog.text


def test_performance_log_stats(caplog):
    """Test logging of performance statistics."""
    caplog.set_level(logging.INFO)

    monitor = PerformanceMonitor()
    monitor.record("test_op", 0.5)
    monitor.record("test_op", 0.3, failed=True)

    monitor.log_stats("test_op")

    assert "Performance stats for 'test_op'" in caplog.text
    assert "count=2" in caplog.text
    assert "failures=1" in caplog.text


def test_log_stats_for_all_operations(caplog):
    caplog.set_level(logging.INFO)

    monitor = PerformanceMonitor()
    monitor.record("op_a", 0.1)
    monitor.record("op_b", 0.2)

    monitor.log_stats()

    assert "op_a: count=1" in caplog.text
    assert "op_b: count=1" in caplog.text

