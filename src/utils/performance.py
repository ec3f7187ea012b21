"""Timing and memory logging for search operations.

``monitor_performance`` wraps the network-bound and ranking steps of a search
and keeps per-function counters that the How It Works page can display.
"""

import functools
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import pandas as pd
import psutil

# Use a module-level logger; avoid configuring logging at import time
perf_logger = logging.getLogger(__name__)

_operation_metrics: Dict[str, Dict[str, Any]] = {}


def _rss_mb() -> float:
    return psutil.Process().memory_info().rss / 1024 / 1024


def monitor_performance(slow_threshold: float = 1.0, log_memory: bool = False):
    """
    Decorator that logs slow or failing calls and records call statistics.

    Args:
        slow_threshold: seconds above which a call is logged as slow
        log_memory: also log resident memory growth above 10MB
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            name = f"{func.__module__}.{func.__name__}"
            start = time.perf_counter()
            start_memory = _rss_mb() if log_memory else None
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _record(name, time.perf_counter() - start, slow_threshold, start_memory, error=e)
                raise
            _record(name, time.perf_counter() - start, slow_threshold, start_memory)
            return result

        return wrapper

    return decorator


def _record(
    name: str,
    elapsed: float,
    slow_threshold: float,
    start_memory: Optional[float],
    error: Optional[Exception] = None,
) -> None:
    metrics = _operation_metrics.setdefault(
        name, {"call_count": 0, "total_time": 0.0, "max_time": 0.0, "error_count": 0, "last_call": None}
    )
    metrics["call_count"] += 1
    metrics["total_time"] += elapsed
    metrics["max_time"] = max(metrics["max_time"], elapsed)
    metrics["last_call"] = datetime.now().isoformat()

    if error is not None:
        metrics["error_count"] += 1
        perf_logger.error(f"{name} failed after {elapsed:.3f}s: {error}")
    elif elapsed > slow_threshold:
        perf_logger.warning(f"SLOW: {name} took {elapsed:.3f}s (threshold: {slow_threshold}s)")
    else:
        perf_logger.debug(f"{name} completed in {elapsed:.3f}s")

    if start_memory is not None:
        memory_diff = _rss_mb() - start_memory
        if abs(memory_diff) > 10:
            perf_logger.info(f"{name} memory change: {memory_diff:+.1f}MB")


def get_performance_summary() -> pd.DataFrame:
    """One row per monitored function, slowest average first."""
    if not _operation_metrics:
        return pd.DataFrame(columns=["function_name", "call_count", "avg_time", "max_time", "error_rate", "last_call"])

    rows = []
    for name, metrics in _operation_metrics.items():
        calls = metrics["call_count"]
        rows.append(
            {
                "function_name": name,
                "call_count": calls,
                "avg_time": round(metrics["total_time"] / calls, 3),
                "max_time": round(metrics["max_time"], 3),
                "error_rate": round(metrics["error_count"] / calls * 100, 1),
                "last_call": metrics["last_call"],
            }
        )
    return pd.DataFrame(rows).sort_values("avg_time", ascending=False).reset_index(drop=True)


def reset_metrics() -> None:
    _operation_metrics.clear()
    perf_logger.info("Performance metrics reset")


__all__ = ["monitor_performance", "get_performance_summary", "reset_metrics"]
