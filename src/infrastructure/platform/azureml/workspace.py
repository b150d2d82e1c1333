"""Azure ML workspace authentication.

Builds an :class:`MLClient` from ``infrastructure.yaml``, environment
variables, or a ``config.env`` file in the project root.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

from azure.ai.ml import MLClient
from azure.identity import DefaultAzureCredential

from common.shared.logging_utils import get_logger
from infrastructure.config.loader import WorkspaceConfig, load_workspace_config

logger = get_logger(__name__)

SUBSCRIPTION_ENV_VAR = "AZURE_SUBSCRIPTION_ID"
RESOURCE_GROUP_ENV_VAR = "AZURE_RESOURCE_GROUP"
CONFIG_ENV_FILENAME = "config.env"


def load_env_file(env_file_path: Path) -> Dict[str, str]:
    """
    Load KEY=VALUE pairs from a ``.env``-style file.

    Blank lines and ``#`` comments are ignored; surrounding quotes are stripped.

    Args:
        env_file_path: Path to the file.

    Returns:
        Mapping of keys to values (empty if the file does not exist).
    """
    env_vars: Dict[str, str] = {}
    if not env_file_path.exists():
        return env_vars

    with env_file_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]
            env_vars[key.strip()] = value
    return env_vars


def resolve_workspace_credentials(
    workspace_config: WorkspaceConfig,
    project_root: Path,
) -> tuple[str, str]:
    """
    Resolve subscription id and resource group.

    Precedence: ``infrastructure.yaml`` literal values, then environment
    variables, then ``config.env`` in ``project_root``.

    Returns:
        ``(subscription_id, resource_group)``.

    Raises:
        ValueError: If either value cannot be resolved.
    """
    subscription_id = workspace_config.subscription_id or os.getenv(SUBSCRIPTION_ENV_VAR)
    resource_group = workspace_config.resource_group or os.getenv(RESOURCE_GROUP_ENV_VAR)

    if not subscription_id or not resource_group:
        env_file = project_root / CONFIG_ENV_FILENAME
        env_vars = load_env_file(env_file)
        if env_vars:
            logger.info(f"Loading workspace credentials from {env_file}")
        subscription_id = subscription_id or env_vars.get(SUBSCRIPTION_ENV_VAR)
        resource_group = resource_group or env_vars.get(RESOURCE_GROUP_ENV_VAR)

    if not subscription_id or not resource_group:
        raise ValueError(
            f"Azure workspace credentials not found. Set {SUBSCRIPTION_ENV_VAR} and "
            f"{RESOURCE_GROUP_ENV_VAR} or provide them in {CONFIG_ENV_FILENAME}."
        )
    return subscription_id, resource_group


def create_ml_client(
    config_dir: Path,
    workspace_config: Optional[WorkspaceConfig] = None,
) -> MLClient:
    """
    Authenticate to the configured workspace.

    Args:
        config_dir: Path to the configuration directory; its parent is the
            project root searched for ``config.env``.
        workspace_config: Optional pre-loaded workspace configuration.

    Returns:
        Authenticated :class:`MLClient`.
    """
    workspace_config = workspace_config or load_workspace_config(config_dir)
    subscription_id, resource_group = resolve_workspace_credentials(
        workspace_config, config_dir.resolve().parent
    )
    logger.info(
        f"Connecting to workspace {workspace_config.workspace_name} "
        f"(resource group {resource_group})"
    )
    return MLClient(
        credential=DefaultAzureCredential(),
        subscription_id=subscription_id,
        resource_group_name=resource_group,
        workspace_name=workspace_config.workspace_name,
    )
