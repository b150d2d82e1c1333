from __future__ import annotations

"""
@meta
name: azureml_jobs
type: utility
domain: azureml
responsibility:
  - Submit the parameter sweep (or any command job) to Azure ML
  - Stream a submitted job and fail on a non-Completed final status
inputs:
  - Sweep or command job definitions
  - Submitted job names
outputs:
  - Submitted and completed job instances
tags:
  - utility
  - azureml
  - jobs
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: true
lifecycle:
  status: active
"""
from typing import Any

from azure.ai.ml import MLClient
from azure.ai.ml.entities import Job

from common.shared.logging_utils import get_logger

logger = get_logger(__name__)

COMPLETED_STATUS = "Completed"

def submit_job(ml_client: MLClient, job: Any) -> Job:
    """Submit a command or sweep job without waiting for it."""
    submitted = ml_client.jobs.create_or_update(job)
    logger.info(f"Submitted job {submitted.name}: {getattr(submitted, 'studio_url', '')}")
    return submitted

def wait_for_job(ml_client: MLClient, job_name: str) -> Job:
    """
    Stream a submitted job's logs until it finishes.

    Args:
        ml_client: Azure ML client used for job operations.
        job_name: Name of the submitted job.

    Returns:
        Completed :class:`Job` instance.

    Raises:
        RuntimeError: If the job terminates with a non-``Completed`` status.
    """
    ml_client.jobs.stream(job_name)
    completed = ml_client.jobs.get(job_name)
    if completed.status != COMPLETED_STATUS:
        raise RuntimeError(
            f"Job {completed.name} failed with status: {completed.status}"
        )
    return completed

def submit_and_wait_for_job(ml_client: MLClient, job: Any) -> Job:
    """Submit a job and block until it completes or fails."""
    submitted = submit_job(ml_client, job)
    return wait_for_job(ml_client, submitted.name)
