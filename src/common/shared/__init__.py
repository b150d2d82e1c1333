"""Shared utilities used across the infrastructure and orchestration packages."""

from .logging_utils import get_logger
from .yaml_utils import load_yaml

__all__ = [
    "get_logger",
    "load_yaml",
]
