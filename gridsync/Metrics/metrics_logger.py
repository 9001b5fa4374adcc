# metrics_logger.py
#
# Imports
import inspect
import functools
import time
from datetime import datetime, timezone
from typing import Any, Optional, Dict, Union, Callable
#
# Third-party Imports
from loguru import logger
#
############################################################################################################
#
# Functions:

LabelValue = Union[str, int, float, bool]
LabelDict = Dict[str, LabelValue]

# Custom level so sinks can separate metrics from regular application logs
METRIC_LEVEL = "METRIC"
try:
    logger.level(METRIC_LEVEL)
except ValueError:
    logger.level(METRIC_LEVEL, no=25, color="<blue>")


def _log_metric(
        metric_name: str,
        metric_type: str,
        value: Any,
        labels: Optional[LabelDict] = None,
):
    """
    Private helper to log a structured metric using loguru binding.
    """
    bound_logger = logger.bind(
        event=metric_name,
        type=metric_type,
        value=value,
        labels=labels or {},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    bound_logger.log(METRIC_LEVEL, f"{metric_type.capitalize()} '{metric_name}': {value}")


def timeit(
        metric_name: Optional[str] = None,
        labels: Optional[LabelDict] = None,
        log_summary: bool = False,
):
    """
    Decorator that times a function or coroutine function, logging a histogram with its status.

    Args:
        metric_name (str, optional): Custom name for the metric. Defaults to function name.
        labels (dict, optional): Extra labels to add to the metric.
        log_summary (bool): If True, logs a human-readable summary at INFO level.
    """

    def decorator(func: Callable) -> Callable:
        m_name = metric_name or f"{func.__name__}_duration_seconds"
        all_labels = {"function": func.__name__}
        if labels:
            all_labels.update(labels)

        def _finish(start_time: float, status: str):
            elapsed_time = time.perf_counter() - start_time
            _log_metric(m_name, "histogram", elapsed_time, {**all_labels, "status": status})
            if log_summary:
                logger.info(f"Function '{func.__name__}' finished in {elapsed_time:.4f}s with status '{status}'.")

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.perf_counter()
                status = "success"
                try:
                    return await func(*args, **kwargs)
                except Exception:
                    status = "failure"
                    raise
                finally:
                    _finish(start_time, status)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                _finish(start_time, status)
        return wrapper

    return decorator


class MetricsLogger:
    """
    Provides base labels to a group of metrics, e.g. everything emitted for one dataset.
    """

    def __init__(self, base_labels: Optional[LabelDict] = None):
        self._base_labels = base_labels or {}

    def _get_labels(self, labels: Optional[LabelDict]) -> LabelDict:
        final_labels = self._base_labels.copy()
        if labels:
            final_labels.update(labels)
        return final_labels

    def log_counter(self, name: str, value: int = 1, labels: Optional[LabelDict] = None):
        _log_metric(name, "counter", value, self._get_labels(labels))

    def log_gauge(self, name: str, value: float, labels: Optional[LabelDict] = None):
        _log_metric(name, "gauge", value, self._get_labels(labels))

    def log_histogram(self, name: str, value: float, labels: Optional[LabelDict] = None):
        _log_metric(name, "histogram", value, self._get_labels(labels))


# Default instance for one-off logging
default_metrics = MetricsLogger()
log_counter = default_metrics.log_counter
log_gauge = default_metrics.log_gauge
log_histogram = default_metrics.log_histogram

#
# End of metrics_logger.py
############################################################################################################
