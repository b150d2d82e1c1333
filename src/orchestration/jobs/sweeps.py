from __future__ import annotations

import json
import shlex
from typing import Any, Dict, List, Optional

from azure.ai.ml import Input, MLClient, command
from azure.ai.ml.entities import Environment, Job
from azure.ai.ml.sweep import (
    BanditPolicy,
    Choice,
    LogUniform,
    Objective,
    SweepJob,
    SweepJobLimits,
    Uniform,
)

from infrastructure.config.loader import SweepConfig
from infrastructure.tracking.mlflow.types import ARGUMENT_LAYOUT_TAG
from orchestration.jobs.arguments import ArgumentLayout, build_command_arguments

JOB_TYPE_TAG = "job_type"
SWEEP_JOB_TYPE = "variant_param_sweep"


def create_search_space(sweep_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a config-defined search space into Azure ML sweep primitives.

    Args:
        sweep_config: Mapping containing a ``search_space`` key.

    Returns:
        Dictionary mapping parameter names to Azure ML search distributions.

    Raises:
        ValueError: If a dimension uses an unsupported distribution type.
    """
    search_space: Dict[str, Any] = {}
    for name, spec in sweep_config["search_space"].items():
        p_type = spec["type"]
        if p_type == "choice":
            search_space[name] = Choice(values=list(spec["values"]))
        elif p_type == "uniform":
            search_space[name] = Uniform(
                min_value=float(spec["min"]),
                max_value=float(spec["max"]),
            )
        elif p_type == "loguniform":
            search_space[name] = LogUniform(
                min_value=float(spec["min"]),
                max_value=float(spec["max"]),
            )
        else:
            raise ValueError(f"Unsupported search space type: {p_type}")
    return search_space


def build_trial_command(sweep_config: SweepConfig) -> str:
    """
    Build the trial command line in argument-layout order.

    Static values are shell-quoted; ``${{...}}`` bindings are left as-is so
    Azure ML can substitute them.
    """
    layout = ArgumentLayout.from_config(sweep_config.arguments)
    tokens = build_command_arguments(
        layout,
        sweep_config.static_arguments,
        sweep_config.search_space.keys(),
    )
    rendered = [token if token.startswith("${{") else shlex.quote(token) for token in tokens]
    return " ".join([sweep_config.entry_command, *rendered])


def _build_early_termination(et_cfg: Optional[Dict[str, Any]]) -> Optional[BanditPolicy]:
    if not et_cfg or et_cfg.get("policy") != "bandit":
        return None
    return BanditPolicy(
        evaluation_interval=et_cfg.get("evaluation_interval", 1),
        slack_factor=et_cfg.get("slack_factor", 0.1),
        delay_evaluation=et_cfg.get("delay_evaluation", 0),
    )


def create_sweep_job(
    sweep_config: SweepConfig,
    data_input: Input,
    environment: Environment,
    compute_cluster: str,
    extra_tags: Optional[Dict[str, str]] = None,
) -> SweepJob:
    """
    Build the parameter sweep over the external analysis script.

    The argument layout is attached to the job as a tag, so the collection
    step can check it decodes child runs with the same contract.

    Args:
        sweep_config: Resolved sweep configuration.
        data_input: Mounted input folder with VCF and CADD files.
        environment: Environment wrapping the analysis container image.
        compute_cluster: Name of the compute cluster to target.
        extra_tags: Optional additional tags for the sweep job.

    Returns:
        Configured :class:`SweepJob` ready for submission.
    """
    trial_job = command(
        code=str(sweep_config.code),
        command=build_trial_command(sweep_config),
        inputs={"data": data_input},
        environment=environment,
        compute=compute_cluster,
    )

    sampling = sweep_config.sampling
    limits = SweepJobLimits(
        max_total_trials=sampling["max_trials"],
        max_concurrent_trials=sampling.get("max_concurrent_trials"),
        timeout=int(sampling.get("timeout_minutes", 720)) * 60,
    )

    tags = {
        JOB_TYPE_TAG: SWEEP_JOB_TYPE,
        ARGUMENT_LAYOUT_TAG: json.dumps(list(sweep_config.arguments.layout)),
        **(extra_tags or {}),
    }

    return SweepJob(
        trial=trial_job,
        search_space=create_search_space({"search_space": sweep_config.search_space}),
        sampling_algorithm=sampling.get("algorithm", "random"),
        objective=Objective(goal=sweep_config.goal, primary_metric=sweep_config.primary_metric),
        limits=limits,
        early_termination=_build_early_termination(sweep_config.early_termination),
        compute=compute_cluster,
        inputs={"data": data_input},
        experiment_name=sweep_config.experiment_name,
        tags=tags,
        display_name=sweep_config.display_name,
        description=f"Parameter sweep for {sweep_config.experiment_name}",
    )


def read_argument_layout_tag(job: Job) -> Optional[List[List[str]]]:
    """Return the layout recorded on a sweep job, or ``None`` if it was not tagged."""
    raw = (getattr(job, "tags", None) or {}).get(ARGUMENT_LAYOUT_TAG)
    return json.loads(raw) if raw else None


def _get_trial_count(job: Job, ml_client: Optional[MLClient] = None) -> Optional[int]:
    # trial_count avoids an API call when the service already reported it
    if getattr(job, "trial_count", None):
        return job.trial_count

    if ml_client is not None:
        children = list(ml_client.jobs.list(parent_job_name=job.name))
        return len(children) if children else None

    return None


def validate_sweep_job(
    job: Job,
    min_expected_trials: Optional[int] = None,
    ml_client: Optional[MLClient] = None,
) -> None:
    """
    Validate that a sweep job completed and produced trials.

    Args:
        job: Completed sweep job instance.
        min_expected_trials: Minimum number of trials expected; only ``> 0``
            is enforced when omitted.
        ml_client: Optional ML client used to count child jobs.

    Raises:
        ValueError: If the job failed or produced too few trials.
    """
    if job.status != "Completed":
        raise ValueError(f"Sweep job {job.name} failed with status: {job.status}")

    trial_count = _get_trial_count(job, ml_client)
    if not trial_count:
        raise ValueError(
            f"Sweep job {job.name} produced no trials. Check sweep logs and child runs in portal."
        )

    if min_expected_trials is not None and trial_count < min_expected_trials:
        raise ValueError(
            f"Sweep job {job.name} only produced {trial_count} trial(s), "
            f"expected at least {min_expected_trials}"
        )
