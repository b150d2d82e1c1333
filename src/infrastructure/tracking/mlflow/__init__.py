"""MLflow helpers: workspace tracking setup, run types and retry logic."""

from .types import ChildRunRef, SweepRun
from .utils import retry_with_backoff

__all__ = [
    "ChildRunRef",
    "SweepRun",
    "retry_with_backoff",
]
