"""Sweep result collection: ranked child runs -> one aggregated table."""

from .collector import CollectionResult, ResultCollector, collect_sweep_results
from .table import CollectionReport

__all__ = [
    "CollectionReport",
    "CollectionResult",
    "ResultCollector",
    "collect_sweep_results",
]
