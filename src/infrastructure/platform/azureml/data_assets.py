from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from azure.ai.ml import Input, MLClient
from azure.ai.ml.constants import AssetTypes
from azure.ai.ml.entities import Data
from azure.core.exceptions import ResourceNotFoundError

from common.shared.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DataAssetConfig:
    """Input data folder (VCF and CADD score files) registered as a ``uri_folder`` asset."""

    name: str
    version: str
    local_path: Path
    description: str


def build_data_asset_config(env_settings: Dict[str, Any], config_dir: Path) -> DataAssetConfig:
    """
    Build a :class:`DataAssetConfig` from the ``data`` section of ``env.yaml``.

    Args:
        env_settings: Parsed ``env.yaml`` dictionary.
        config_dir: Configuration directory; ``local_path`` is resolved against it.

    Returns:
        Resolved data asset configuration.

    Raises:
        ValueError: If the asset name or local path is missing.
    """
    data_section = env_settings.get("data", {}) or {}
    name = data_section.get("name")
    local_path = data_section.get("local_path")
    if not name or not local_path:
        raise ValueError("env.yaml must define data.name and data.local_path")

    return DataAssetConfig(
        name=str(name),
        version=str(data_section.get("version", "1")),
        local_path=config_dir / str(local_path),
        description=str(data_section.get("description", "Variant analysis inputs")),
    )


def upload_data_asset(ml_client: MLClient, data_config: DataAssetConfig) -> Data:
    """
    Register the local input folder as a data asset, uploading it on creation.

    Idempotent: an existing asset with the same name and version is returned
    as-is, since Azure ML data assets cannot be repointed.

    Args:
        ml_client: Azure ML client used for asset operations.
        data_config: Asset name, version and local folder.

    Returns:
        The existing or newly created ``Data`` asset.

    Raises:
        FileNotFoundError: If the local folder does not exist and the asset is new.
    """
    try:
        existing = ml_client.data.get(name=data_config.name, version=data_config.version)
        logger.info(f"Data asset {data_config.name}:{data_config.version} already registered")
        return existing
    except ResourceNotFoundError:
        pass

    if not data_config.local_path.exists():
        raise FileNotFoundError(f"Data folder not found: {data_config.local_path}")

    logger.info(f"Uploading {data_config.local_path} as {data_config.name}:{data_config.version}")
    return ml_client.data.create_or_update(
        Data(
            name=data_config.name,
            version=data_config.version,
            description=data_config.description,
            path=str(data_config.local_path.resolve()),
            type=AssetTypes.URI_FOLDER,
        )
    )


def build_data_input(data_asset: Data) -> Input:
    """Mount a ``uri_folder`` asset as a job input via its ``azureml:name:version`` reference."""
    return Input(
        type=AssetTypes.URI_FOLDER,
        path=f"azureml:{data_asset.name}:{data_asset.version}",
        mode="ro_mount",
    )


def download_job_outputs(
    ml_client: MLClient,
    job_name: str,
    download_dir: Path,
    output_name: Optional[str] = None,
) -> Path:
    """
    Download the outputs of a finished job into ``download_dir / job_name``.

    Args:
        ml_client: Azure ML client used for job operations.
        job_name: Name (id) of the job.
        download_dir: Local base folder.
        output_name: Optional named output; all outputs when omitted.

    Returns:
        Folder the outputs were written to.
    """
    target = download_dir / job_name
    target.mkdir(parents=True, exist_ok=True)
    if output_name:
        ml_client.jobs.download(job_name, output_name=output_name, download_path=str(target))
    else:
        ml_client.jobs.download(job_name, all=True, download_path=str(target))
    logger.info(f"Downloaded outputs of {job_name} to {target}")
    return target
