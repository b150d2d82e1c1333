"""Point MLflow at the Azure ML workspace tracking server."""

from __future__ import annotations

from typing import Any, Optional

import mlflow

from common.shared.logging_utils import get_logger

logger = get_logger(__name__)


def get_workspace_tracking_uri(ml_client: Any) -> str:
    """
    Get the MLflow tracking URI of the client's workspace.

    Raises:
        ImportError: If ``azureml-mlflow`` is not installed.
        RuntimeError: If the workspace cannot be read.
    """
    # Registers the 'azureml' URI scheme with MLflow
    try:
        import azureml.mlflow  # noqa: F401
    except ImportError as e:
        raise ImportError(
            "azureml.mlflow is required for Azure ML tracking. "
            "Install it with: pip install azureml-mlflow"
        ) from e

    try:
        workspace = ml_client.workspaces.get(name=ml_client.workspace_name)
    except Exception as e:
        raise RuntimeError(f"Failed to get Azure ML workspace tracking URI: {e}") from e
    return workspace.mlflow_tracking_uri


def setup_workspace_tracking(ml_client: Any, experiment_name: Optional[str] = None) -> str:
    """
    Configure MLflow to read and write runs in the Azure ML workspace.

    Args:
        ml_client: Authenticated ``azure.ai.ml.MLClient``.
        experiment_name: Optional experiment to activate.

    Returns:
        The tracking URI that was configured.
    """
    tracking_uri = get_workspace_tracking_uri(ml_client)
    mlflow.set_tracking_uri(tracking_uri)
    if experiment_name:
        mlflow.set_experiment(experiment_name)
    logger.info(f"Using Azure ML workspace tracking: {tracking_uri}")
    return tracking_uri
