"""
@meta
name: platform_adapters
type: utility
domain: platform_adapters
responsibility:
  - Define the sweep platform interface consumed by the result collector
  - Implement it over MLflow tracking and the Azure ML jobs API
inputs:
  - Sweep and child run references
outputs:
  - Ranked child runs, argument tokens, downloaded artifacts
tags:
  - utility
  - platform_adapters
  - adapter_pattern
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: true
lifecycle:
  status: active
"""

"""Sweep platform interface and its Azure ML implementation.

The collector never talks to the vendor SDK directly; it goes through
:class:`SweepPlatform` so ranking, argument lookup, artifact transfer and
upload stay delegated to the platform.
"""

import json
import shlex
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any, List, Optional

from azure.core.exceptions import AzureError
from mlflow.exceptions import MlflowException
from mlflow.tracking import MlflowClient

from common.shared.logging_utils import get_logger
from infrastructure.tracking.mlflow.types import ARGUMENT_LAYOUT_TAG, ChildRunRef, SweepRun
from infrastructure.tracking.mlflow.utils import retry_with_backoff
from orchestration.jobs.errors import ArtifactMissingError, CollectionError, RetrievalError

logger = get_logger(__name__)

PARENT_RUN_TAG = "mlflow.parentRunId"
SEARCH_PAGE_SIZE = 1000

# Tracking-server and storage failures surfaced by MLflow and the Azure ML
# artifact store; OSError covers connection errors raised by requests.
TRANSPORT_ERRORS = (MlflowException, AzureError, OSError)


class SweepPlatform(ABC):
    """Abstract interface over the platform that ran the sweep."""

    @abstractmethod
    def list_child_runs(self, sweep_run: SweepRun) -> List[ChildRunRef]:
        """Return child runs ranked by the sweep's primary metric."""
        pass

    @abstractmethod
    def get_run_arguments(self, child_run: ChildRunRef) -> List[str]:
        """Return the child's submitted argument tokens, in order."""
        pass

    @abstractmethod
    def download_artifact(self, child_run: ChildRunRef, artifact_path: str, dest_dir: Path) -> Path:
        """Download one artifact into ``dest_dir`` and return its local path."""
        pass

    @abstractmethod
    def upload_folder(self, sweep_run: SweepRun, local_dir: Path, remote_name: str) -> None:
        """Attach a local folder to the parent run as ``remote_name``."""
        pass

    def get_argument_layout(self, sweep_run: SweepRun) -> Optional[List[List[str]]]:
        """Return the argument layout recorded at submission, if the platform kept one."""
        return None


class AzureMLSweepPlatform(SweepPlatform):
    """
    Sweep platform backed by an Azure ML workspace.

    Run listing, ranking and artifact transfer go through the workspace's
    MLflow tracking server (Azure ML job names are MLflow run ids). The
    submitted command line of each trial is read from the jobs API.
    """

    def __init__(
        self,
        mlflow_client: Optional[MlflowClient] = None,
        ml_client: Optional[Any] = None,
        upload_max_retries: int = 5,
        upload_base_delay: float = 2.0,
    ):
        self._client = mlflow_client or MlflowClient()
        self._ml_client = ml_client
        self._upload_max_retries = upload_max_retries
        self._upload_base_delay = upload_base_delay

    def _experiment_id(self, sweep_run: SweepRun) -> str:
        if sweep_run.experiment_id:
            return sweep_run.experiment_id
        return self._client.get_run(sweep_run.run_id).info.experiment_id

    def list_child_runs(self, sweep_run: SweepRun) -> List[ChildRunRef]:
        order_by = [f"metrics.`{sweep_run.primary_metric}` {sweep_run.sort_order}"]
        filter_string = f"tags.{PARENT_RUN_TAG} = '{sweep_run.run_id}'"

        runs = []
        try:
            experiment_ids = [self._experiment_id(sweep_run)]
            page_token = None
            while True:
                page = self._client.search_runs(
                    experiment_ids=experiment_ids,
                    filter_string=filter_string,
                    order_by=order_by,
                    max_results=SEARCH_PAGE_SIZE,
                    page_token=page_token,
                )
                runs.extend(page)
                page_token = getattr(page, "token", None)
                if not page_token:
                    break
        except TRANSPORT_ERRORS as e:
            raise RetrievalError(
                f"Could not list child runs of sweep {sweep_run.run_id}: {e}"
            ) from e

        logger.info(f"Found {len(runs)} child runs for sweep {sweep_run.run_id}")
        return [
            ChildRunRef(
                run_id=run.info.run_id,
                parent_run_id=sweep_run.run_id,
                primary_metric_value=run.data.metrics.get(sweep_run.primary_metric),
                status=run.info.status,
            )
            for run in runs
        ]

    def get_run_arguments(self, child_run: ChildRunRef) -> List[str]:
        if self._ml_client is None:
            raise RetrievalError("An Azure ML client is required to read run arguments")
        try:
            job = self._ml_client.jobs.get(child_run.run_id)
        except Exception as e:
            raise RetrievalError(
                f"Could not fetch job definition for {child_run.run_id}: {e}"
            ) from e

        command_line = getattr(job, "command", None)
        if not command_line:
            raise RetrievalError(f"Job {child_run.run_id} has no command line")
        return shlex.split(command_line)

    def download_artifact(self, child_run: ChildRunRef, artifact_path: str, dest_dir: Path) -> Path:
        parent = str(PurePosixPath(artifact_path).parent)
        try:
            listed = self._client.list_artifacts(
                child_run.run_id, None if parent == "." else parent
            )
        except TRANSPORT_ERRORS as e:
            raise RetrievalError(
                f"Could not list artifacts of {child_run.run_id}: {e}"
            ) from e

        if not any(item.path == artifact_path and not item.is_dir for item in listed):
            raise ArtifactMissingError(
                f"Artifact '{artifact_path}' not found for run {child_run.run_id}"
            )

        try:
            local_path = self._client.download_artifacts(
                child_run.run_id, artifact_path, dst_path=str(dest_dir)
            )
        except TRANSPORT_ERRORS as e:
            raise RetrievalError(
                f"Could not download '{artifact_path}' for run {child_run.run_id}: {e}"
            ) from e
        return Path(local_path)

    def upload_folder(self, sweep_run: SweepRun, local_dir: Path, remote_name: str) -> None:
        try:
            retry_with_backoff(
                func=lambda: self._client.log_artifacts(
                    sweep_run.run_id, str(local_dir), artifact_path=remote_name
                ),
                max_retries=self._upload_max_retries,
                base_delay=self._upload_base_delay,
                operation_name=f"results upload ({remote_name})",
            )
        except Exception as e:
            raise CollectionError(
                f"Failed to upload {local_dir} to sweep {sweep_run.run_id}: {e}"
            ) from e
        logger.info(f"Uploaded {local_dir} to sweep {sweep_run.run_id} as '{remote_name}'")

    def get_argument_layout(self, sweep_run: SweepRun) -> Optional[List[List[str]]]:
        try:
            tags = self._client.get_run(sweep_run.run_id).data.tags
        except TRANSPORT_ERRORS as e:
            raise RetrievalError(f"Could not read sweep run {sweep_run.run_id}: {e}") from e
        raw = tags.get(ARGUMENT_LAYOUT_TAG)
        return json.loads(raw) if raw else None
