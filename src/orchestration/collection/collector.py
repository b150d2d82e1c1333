"""
@meta
name: sweep_result_collector
type: orchestration
domain: collection
responsibility:
  - Enumerate a finished sweep's child runs in ranked order
  - Decode each child's submitted arguments into named parameter columns
  - Download, parse and tag each child's lr/rf cross-validation results
  - Persist one flat table plus a report and attach them to the parent run
inputs:
  - SweepRun reference
  - CollectionConfig
outputs:
  - Aggregated results table (CSV)
  - Collection report (JSON)
tags:
  - orchestration
  - collection
  - sweep
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: true
lifecycle:
  status: active

Reassemble per-trial result files of a parameter sweep into one table.

Child runs are processed one at a time in the rank order returned by the
platform. Each child contributes all of its rows or none of them; with the
``skip`` policy a failing child is recorded in the report and the pass
continues, with ``abort`` the first failure discards the partial table.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from common.shared.logging_utils import get_logger
from infrastructure.config.loader import (
    DECODE_POSITIONAL,
    ON_CHILD_ERROR_ABORT,
    CollectionConfig,
)
from infrastructure.platform.adapters.adapters import SweepPlatform
from infrastructure.tracking.mlflow.types import ChildRunRef, SweepRun
from orchestration.collection.artifacts import read_artifact_table, scratch_artifact
from orchestration.collection.table import (
    CHILD_RUN_COLUMN,
    PARENT_RUN_COLUMN,
    CollectionReport,
    ResultTableWriter,
    remove_outputs,
    write_report,
)
from orchestration.jobs.arguments import ArgumentLayout, decode_arguments
from orchestration.jobs.errors import CollectionError, ParseError

logger = get_logger(__name__)


@dataclass
class CollectionResult:
    """Outcome of one collection pass."""

    table: pd.DataFrame
    report: CollectionReport
    table_path: Path
    report_path: Path


class ResultCollector:
    """Builds the aggregated result table for a completed sweep."""

    def __init__(
        self,
        platform: SweepPlatform,
        config: CollectionConfig,
        output_dir: Optional[Path] = None,
        upload: bool = True,
    ):
        self.platform = platform
        self.config = config
        self.output_dir = Path(output_dir) if output_dir is not None else config.output_dir
        self.upload = upload
        self.layout = ArgumentLayout.from_config(config.arguments)

    @property
    def leading_columns(self) -> List[str]:
        return [PARENT_RUN_COLUMN, CHILD_RUN_COLUMN, *self.layout.column_names]

    def sweep_run(self, run_id: str, experiment_id: Optional[str] = None) -> SweepRun:
        """Build a :class:`SweepRun` using the configured objective."""
        return SweepRun(
            run_id=run_id,
            primary_metric=self.config.primary_metric,
            goal=self.config.goal,
            experiment_id=experiment_id,
        )

    def collect(self, sweep_run: SweepRun) -> CollectionResult:
        """
        Collect every child run of ``sweep_run`` into one table.

        Args:
            sweep_run: Parent sweep run.

        Returns:
            The table, the report and the local paths both were written to.

        Raises:
            RetrievalError: If the child runs cannot be listed.
            CollectionError: Any child failure when ``on_child_error`` is ``abort``.
        """
        self._check_layout(sweep_run)
        children = self.platform.list_child_runs(sweep_run)
        logger.info(
            f"Collecting {len(children)} child runs of {sweep_run.run_id} "
            f"ranked by {sweep_run.primary_metric} ({sweep_run.goal})"
        )

        table_path = self.output_dir / self.config.table_filename
        report_path = self.output_dir / self.config.report_filename
        remove_outputs(table_path, report_path)
        writer = ResultTableWriter(table_path, self.leading_columns)
        report = CollectionReport(parent_run_id=sweep_run.run_id, table_path=str(table_path))

        for rank, child in enumerate(children, start=1):
            try:
                block = self.collect_child(child)
            except CollectionError as e:
                if self.config.on_child_error == ON_CHILD_ERROR_ABORT:
                    writer.discard()
                    raise
                logger.warning(f"Skipping child run {child.run_id} (rank {rank}): {e}")
                report.failed[child.run_id] = str(e)
                continue
            except Exception:
                # Unexpected errors always propagate; abort still drops the partial table.
                if self.config.on_child_error == ON_CHILD_ERROR_ABORT:
                    writer.discard()
                raise

            writer.append(block)
            report.succeeded.append(child.run_id)
            logger.info(f"Collected {len(block)} rows from child run {child.run_id} (rank {rank})")

        table = writer.flush()
        report.row_count = len(table)
        write_report(report, report_path)

        if report.failed:
            logger.warning(
                f"{len(report.failed)} of {len(children)} child runs were skipped; "
                f"see {report_path}"
            )

        if self.upload:
            self.platform.upload_folder(sweep_run, self.output_dir, self.config.remote_name)

        return CollectionResult(
            table=table,
            report=report,
            table_path=table_path,
            report_path=report_path,
        )

    def decode_child_arguments(self, child: ChildRunRef) -> Dict[str, Optional[str]]:
        tokens = self.platform.get_run_arguments(child)
        return decode_arguments(tokens, self.layout, self.config.arguments.decode_mode)

    def collect_child(self, child: ChildRunRef) -> pd.DataFrame:
        """
        Build the row block of one child run: lr rows then rf rows.

        Raises:
            RetrievalError, ArtifactMissingError, ParseError: On any failure;
                no partial block is returned.
        """
        params = self.decode_child_arguments(child)
        prefix = {
            PARENT_RUN_COLUMN: child.parent_run_id,
            CHILD_RUN_COLUMN: child.run_id,
            **params,
        }

        frames = []
        for artifact in self.config.artifacts:
            with scratch_artifact(self.platform, child, artifact, self.config.scratch_root) as path:
                frame = read_artifact_table(path, artifact)

            for position, (column, value) in enumerate(prefix.items()):
                if column in frame.columns:
                    raise ParseError(
                        f"Artifact {artifact.path} of {child.run_id} already has a '{column}' column"
                    )
                frame.insert(position, column, value)
            frames.append(frame)

        return pd.concat(frames, ignore_index=True, sort=False)

    def _check_layout(self, sweep_run: SweepRun) -> None:
        recorded = self.platform.get_argument_layout(sweep_run)
        if recorded is None:
            return
        expected = [list(pair) for pair in self.layout.columns]
        if [list(pair) for pair in recorded] == expected:
            return
        message = (
            f"Sweep {sweep_run.run_id} was submitted with argument layout {recorded}, "
            f"configured layout is {expected}"
        )
        if self.config.arguments.decode_mode == DECODE_POSITIONAL:
            raise ParseError(message)
        logger.warning(message)


def collect_sweep_results(
    platform: SweepPlatform,
    config: CollectionConfig,
    sweep_run_id: str,
    experiment_id: Optional[str] = None,
    output_dir: Optional[Path] = None,
    upload: bool = True,
) -> CollectionResult:
    """Convenience wrapper: build a collector and run one pass for ``sweep_run_id``."""
    collector = ResultCollector(platform, config, output_dir=output_dir, upload=upload)
    return collector.collect(collector.sweep_run(sweep_run_id, experiment_id))
