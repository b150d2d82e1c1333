from __future__ import annotations

"""
@meta
name: environment_config_builder
type: utility
domain: config
responsibility:
  - Build Azure ML environment configuration from env.yaml
  - Compute environment hashes
  - Get or create the environment wrapping the external analysis image
inputs:
  - env.yaml configuration
outputs:
  - EnvironmentConfig dataclass
  - Azure ML Environment objects
tags:
  - utility
  - config
  - azureml
  - environment
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: true
lifecycle:
  status: active
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import hashlib

from azure.ai.ml import MLClient
from azure.ai.ml.entities import Environment
from azure.core.exceptions import ResourceNotFoundError

from common.shared.logging_utils import get_logger
from common.shared.yaml_utils import load_yaml

logger = get_logger(__name__)

ENV_CONFIG_FILENAME = "env.yaml"
ENVIRONMENT_HASH_LENGTH = 16

DEFAULT_ENVIRONMENT_NAME = "vus-analysis"

@dataclass(frozen=True)
class EnvironmentConfig:
    """
    Resolved configuration for the analysis environment.

    The container image is built outside this repository; the environment
    asset only points Azure ML at it.
    """

    name: str
    docker_image: str
    description: str

def build_environment_config(env_settings: Optional[Dict[str, Any]] = None) -> EnvironmentConfig:
    """
    Build an :class:`EnvironmentConfig` from ``env.yaml`` settings.

    Expected structure in ``env.yaml``:

    .. code-block:: yaml

        environment:
          name: "vus-analysis"
          docker_image: "myregistry.azurecr.io/vus-analysis:1.4.0"

    Args:
        env_settings: Parsed ``env.yaml`` dictionary.

    Returns:
        EnvironmentConfig populated from YAML values.

    Raises:
        ValueError: If no docker image is configured.
    """
    env_settings = env_settings or {}
    env_section = env_settings.get("environment", {}) or {}

    docker_image = env_section.get("docker_image")
    if not docker_image:
        raise ValueError("env.yaml must define environment.docker_image")

    name = env_section.get("name", DEFAULT_ENVIRONMENT_NAME)
    description = env_section.get(
        "description", f"Variant analysis environment ({docker_image})"
    )
    return EnvironmentConfig(name=name, docker_image=docker_image, description=description)

def load_environment_config(config_dir: Path) -> EnvironmentConfig:
    """Load ``env.yaml`` from ``config_dir`` and build the environment config."""
    return build_environment_config(load_yaml(config_dir / ENV_CONFIG_FILENAME))

def compute_environment_hash(docker_image: str) -> str:
    """
    Compute a deterministic short hash for an environment definition.

    Args:
        docker_image: Fully-qualified image reference.

    Returns:
        Hex string of length ``ENVIRONMENT_HASH_LENGTH`` used as version suffix.
    """
    full_hash = hashlib.sha256(docker_image.encode("utf-8")).hexdigest()
    return full_hash[:ENVIRONMENT_HASH_LENGTH]

def get_or_create_environment(ml_client: MLClient, env_config: EnvironmentConfig) -> Environment:
    """
    Resolve or create the Azure ML :class:`Environment` for the analysis image.

    The version is derived from the image reference, so pointing ``env.yaml``
    at a new tag registers a new environment version.

    Args:
        ml_client: Azure ML client used for environment operations.
        env_config: Resolved environment configuration.

    Returns:
        The resolved or newly created environment asset.
    """
    version = f"v{compute_environment_hash(env_config.docker_image)}"
    try:
        return ml_client.environments.get(name=env_config.name, version=version)
    except ResourceNotFoundError:
        logger.info(
            f"Registering environment {env_config.name}:{version} "
            f"for image {env_config.docker_image}"
        )
        environment = Environment(
            name=env_config.name,
            version=version,
            image=env_config.docker_image,
            description=env_config.description,
        )
        return ml_client.environments.create_or_update(environment)
