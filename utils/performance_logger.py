"""
Logging setup and timing helpers.

Slow calls are reported on the ``performance`` logger. The threshold comes
from ``SLOW_OPERATION_THRESHOLD_MS`` in the app config when an app is active,
otherwise from the environment.
"""
import os
import time
import logging
from functools import wraps
from typing import Callable, Optional

from flask import current_app, has_app_context

from utils.errors import DriveError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_SLOW_MS = float(os.getenv('SLOW_OPERATION_THRESHOLD_MS', '200'))
DEBUG_TIMINGS = os.getenv('ENABLE_PERFORMANCE_DEBUG', 'false').lower() == 'true'

performance_logger = logging.getLogger('performance')


def configure_logging(level: str = "INFO"):
    """Attach a stream handler to the root logger once, using the shared format."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not any(getattr(h, '_minidrive', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._minidrive = True
        root.addHandler(handler)
    performance_logger.setLevel(logging.DEBUG if DEBUG_TIMINGS else logging.INFO)


def slow_threshold_ms() -> float:
    if has_app_context():
        return float(current_app.config.get('SLOW_OPERATION_THRESHOLD_MS', DEFAULT_SLOW_MS))
    return DEFAULT_SLOW_MS


def _report(name: str, elapsed_ms: float, threshold_ms: float, error: Optional[BaseException] = None):
    if isinstance(error, DriveError) and error.status_code < 500:
        performance_logger.debug(f"{name} rejected after {elapsed_ms:.1f}ms: {error.code}")
    elif error is not None:
        performance_logger.error(f"{name} failed after {elapsed_ms:.1f}ms: {error}")
    elif elapsed_ms >= threshold_ms:
        performance_logger.warning(f"Slow operation {name}: {elapsed_ms:.1f}ms (limit {threshold_ms:.0f}ms)")
    else:
        performance_logger.debug(f"{name}: {elapsed_ms:.1f}ms")


def performance_monitor(operation_name: str = None, log_threshold_ms: Optional[float] = None):
    """
    Time a service call and log it when it runs past the threshold.

    Exceptions are logged with the elapsed time and re-raised unchanged.
    """
    def decorator(func: Callable) -> Callable:
        name = operation_name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        def wrapper(*args, **kwargs):
            threshold = log_threshold_ms if log_threshold_ms is not None else slow_threshold_ms()
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(name, (time.perf_counter() - started) * 1000, threshold, e)
                raise
            _report(name, (time.perf_counter() - started) * 1000, threshold)
            return result

        return wrapper
    return decorator


class PerformanceTracker:
    """``with PerformanceTracker("maintenance.sync"):`` times a block of code."""

    def __init__(self, operation_name: str, log_threshold_ms: Optional[float] = None):
        self.operation_name = operation_name
        self.log_threshold_ms = log_threshold_ms
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        threshold = self.log_threshold_ms if self.log_threshold_ms is not None else slow_threshold_ms()
        _report(self.operation_name, self.duration_ms, threshold, exc_val)
        return False

    @property
    def duration_ms(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000
