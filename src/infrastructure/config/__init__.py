"""Configuration loading for sweeps, result collection and the Azure ML workspace."""

from .loader import (
    ArtifactSpec,
    ArgumentsConfig,
    CollectionConfig,
    SweepConfig,
    ComputeConfig,
    WorkspaceConfig,
    load_arguments_config,
    load_collection_config,
    load_sweep_config,
    load_workspace_config,
)

__all__ = [
    "ArtifactSpec",
    "ArgumentsConfig",
    "CollectionConfig",
    "SweepConfig",
    "ComputeConfig",
    "WorkspaceConfig",
    "load_arguments_config",
    "load_collection_config",
    "load_sweep_config",
    "load_workspace_config",
]
