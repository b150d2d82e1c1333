"""Compute cluster provisioning."""

from __future__ import annotations

from azure.ai.ml import MLClient
from azure.ai.ml.entities import AmlCompute
from azure.core.exceptions import ResourceNotFoundError

from common.shared.logging_utils import get_logger
from infrastructure.config.loader import ComputeConfig

logger = get_logger(__name__)


def ensure_compute_cluster(ml_client: MLClient, compute_config: ComputeConfig) -> AmlCompute:
    """
    Get the named compute cluster, creating it when it does not exist.

    Autoscaling between ``min_instances`` and ``max_instances`` is handled by
    the platform; an existing cluster is returned unchanged.

    Args:
        ml_client: Azure ML client used for compute operations.
        compute_config: Cluster name, VM size and scale settings.

    Returns:
        The existing or newly provisioned cluster.
    """
    try:
        cluster = ml_client.compute.get(compute_config.name)
        logger.info(f"Using existing compute cluster {compute_config.name}")
        return cluster
    except ResourceNotFoundError:
        logger.info(
            f"Creating compute cluster {compute_config.name} "
            f"({compute_config.size}, {compute_config.min_instances}-"
            f"{compute_config.max_instances} nodes)"
        )

    cluster = AmlCompute(
        name=compute_config.name,
        type="amlcompute",
        size=compute_config.size,
        min_instances=compute_config.min_instances,
        max_instances=compute_config.max_instances,
        idle_time_before_scale_down=compute_config.idle_time_before_scale_down,
        tier=compute_config.tier,
    )
    return ml_client.compute.begin_create_or_update(cluster).result()
