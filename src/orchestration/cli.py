"""
@meta
name: sweep_cli
type: script
domain: orchestration
responsibility:
  - Submit the variant analysis parameter sweep
  - Collect a finished sweep's per-trial results into one table
inputs:
  - Command-line arguments
  - Configuration directory
outputs:
  - Submitted sweep job name
  - Aggregated results table and collection report
tags:
  - cli
  - orchestration
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: true
lifecycle:
  status: active
"""

"""Command-line entry point mirroring the notebook steps.

Usage::

    python -m orchestration.cli submit --config-dir config --wait
    python -m orchestration.cli collect --config-dir config --sweep-run <name>
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from common.shared.argument_parsing import (
    add_config_dir_argument,
    add_output_dir_argument,
    add_sweep_run_argument,
)
from common.shared.logging_utils import get_logger
from common.shared.yaml_utils import load_yaml
from orchestration.jobs.errors import CollectionError

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Variant analysis sweep on Azure ML")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Provision compute, upload data and submit the sweep")
    add_config_dir_argument(submit)
    submit.add_argument(
        "--wait",
        action="store_true",
        help="Stream the sweep until it finishes and validate it",
    )
    submit.add_argument(
        "--min-trials",
        type=int,
        default=None,
        help="Minimum completed trials required when --wait is set",
    )

    collect = subparsers.add_parser("collect", help="Aggregate per-trial results of a finished sweep")
    add_config_dir_argument(collect)
    add_sweep_run_argument(collect)
    add_output_dir_argument(collect)
    collect.add_argument(
        "--no-upload",
        action="store_true",
        help="Write the table locally without attaching it to the sweep run",
    )
    return parser


def run_submit(args: argparse.Namespace) -> int:
    from infrastructure.config.environment import get_or_create_environment, load_environment_config
    from infrastructure.config.loader import load_sweep_config, load_workspace_config
    from infrastructure.platform.azureml.compute import ensure_compute_cluster
    from infrastructure.platform.azureml.data_assets import (
        build_data_asset_config,
        build_data_input,
        upload_data_asset,
    )
    from infrastructure.platform.azureml.jobs import submit_job, wait_for_job
    from infrastructure.platform.azureml.workspace import create_ml_client
    from orchestration.jobs.sweeps import create_sweep_job, validate_sweep_job

    config_dir = Path(args.config_dir)
    workspace_config = load_workspace_config(config_dir)
    sweep_config = load_sweep_config(config_dir)

    ml_client = create_ml_client(config_dir, workspace_config)
    cluster = ensure_compute_cluster(ml_client, workspace_config.compute)
    data_asset = upload_data_asset(
        ml_client,
        build_data_asset_config(load_yaml(config_dir / "env.yaml"), config_dir),
    )
    environment = get_or_create_environment(ml_client, load_environment_config(config_dir))

    job = create_sweep_job(
        sweep_config,
        data_input=build_data_input(data_asset),
        environment=environment,
        compute_cluster=cluster.name,
    )
    submitted = submit_job(ml_client, job)
    print(submitted.name)

    if args.wait:
        completed = wait_for_job(ml_client, submitted.name)
        validate_sweep_job(completed, min_expected_trials=args.min_trials, ml_client=ml_client)
    return 0


def run_collect(args: argparse.Namespace) -> int:
    from mlflow.tracking import MlflowClient

    from infrastructure.config.loader import load_collection_config
    from infrastructure.platform.adapters.adapters import AzureMLSweepPlatform
    from infrastructure.platform.azureml.workspace import create_ml_client
    from infrastructure.tracking.mlflow.setup import setup_workspace_tracking
    from orchestration.collection.collector import collect_sweep_results

    config_dir = Path(args.config_dir)
    config = load_collection_config(config_dir)

    ml_client = create_ml_client(config_dir)
    setup_workspace_tracking(ml_client)
    platform = AzureMLSweepPlatform(mlflow_client=MlflowClient(), ml_client=ml_client)

    result = collect_sweep_results(
        platform,
        config,
        sweep_run_id=args.sweep_run,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        upload=not args.no_upload,
    )
    print(result.table_path)
    return 0 if result.report.complete else 2


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "submit":
            return run_submit(args)
        return run_collect(args)
    except CollectionError as e:
        logger.error(f"Collection failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
