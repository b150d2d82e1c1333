"""
@meta
name: shared_logging_utils
type: utility
domain: shared
responsibility:
  - Provide consistent logging for notebook steps and CLI entry points
  - Configure loggers with standardized formatting
inputs:
  - Logger names
outputs:
  - Configured logger instances
tags:
  - utility
  - shared
  - logging
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: false
lifecycle:
  status: active
"""

"""Shared logging utilities for consistent logging across sweep tooling."""

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL_ENV_VAR = "SWEEP_LOG_LEVEL"


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    env_level = os.getenv(LOG_LEVEL_ENV_VAR)
    if env_level:
        resolved = logging.getLevelName(env_level.upper())
        if isinstance(resolved, int):
            return resolved
    return logging.INFO


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a logger with standardized formatting.

    The level defaults to ``INFO`` and can be overridden per process with the
    ``SWEEP_LOG_LEVEL`` environment variable (e.g. ``DEBUG``).

    Args:
        name: Logger name (typically __name__).
        level: Optional explicit logging level.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Only configure once (avoid duplicate handlers on notebook re-runs)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    if level is not None or logger.level == logging.NOTSET:
        logger.setLevel(_resolve_level(level))

    return logger
