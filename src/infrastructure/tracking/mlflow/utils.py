from __future__ import annotations

"""
@meta
name: tracking_mlflow_utils
type: utility
domain: tracking
responsibility:
  - Provide retry logic with exponential backoff for MLflow operations
  - Distinguish transient service errors from permanent ones
inputs:
  - Functions to retry
outputs:
  - Function results or exceptions
tags:
  - utility
  - tracking
  - mlflow
  - retry
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: false
lifecycle:
  status: active
"""

"""MLflow utility functions for retry logic."""
import random
import time
from typing import Any, Callable, Iterable

from common.shared.logging_utils import get_logger

logger = get_logger(__name__)

RETRYABLE_MARKERS = ("429", "503", "504", "timeout", "timed out", "connection", "temporary", "rate limit")

def is_retryable_error(error: Exception, markers: Iterable[str] = RETRYABLE_MARKERS) -> bool:
    """Return True if the error message looks like a transient service failure."""
    error_str = str(error).lower()
    return any(marker in error_str for marker in markers)

def retry_with_backoff(
    func: Callable[[], Any],
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    Retry a function with exponential backoff and jitter.

    Only transient errors (see :func:`is_retryable_error`) are retried; any
    other error, or the last failed attempt, is re-raised unchanged.

    Args:
        func: Callable that takes no arguments.
        max_retries: Maximum number of attempts.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds.
        operation_name: Name of operation for logging.
        sleep: Sleep function (injectable for tests).

    Returns:
        Result of ``func()``.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    for attempt in range(max_retries):
        try:
            return func()
        except Exception as e:
            if not is_retryable_error(e) or attempt == max_retries - 1:
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            total_delay = delay + random.uniform(0, delay * 0.1)

            logger.debug(
                f"Retry {attempt + 1}/{max_retries} for {operation_name} "
                f"after {total_delay:.2f}s (error: {str(e)[:100]})"
            )
            sleep(total_delay)

    raise RuntimeError(f"Retry logic exhausted for {operation_name}")
