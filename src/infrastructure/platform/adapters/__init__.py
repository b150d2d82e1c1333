"""Platform adapters for sweep result collection.

The collector depends only on :class:`SweepPlatform`; :class:`AzureMLSweepPlatform`
binds it to an Azure ML workspace through MLflow and the jobs API.
"""

from .adapters import (
    SweepPlatform,
    AzureMLSweepPlatform,
)

__all__ = [
    "SweepPlatform",
    "AzureMLSweepPlatform",
]
