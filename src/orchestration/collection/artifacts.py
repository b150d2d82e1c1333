"""Scoped download and parsing of per-trial result artifacts."""

from __future__ import annotations

import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import pandas as pd

from infrastructure.config.loader import ArtifactSpec
from infrastructure.platform.adapters.adapters import SweepPlatform
from infrastructure.tracking.mlflow.types import ChildRunRef
from orchestration.jobs.errors import ParseError

SOURCE_COLUMN = "source"


@contextmanager
def scratch_artifact(
    platform: SweepPlatform,
    child_run: ChildRunRef,
    artifact: ArtifactSpec,
    scratch_root: Optional[Path] = None,
) -> Iterator[Path]:
    """
    Download one artifact into a scratch directory owned by this call.

    The directory is unique per (child run, artifact) and is removed when the
    block exits, whether it exits normally or by an exception.

    Yields:
        Local path of the downloaded file.
    """
    if scratch_root is not None:
        scratch_root.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(
        prefix=f"{child_run.run_id}-{artifact.model_type}-",
        dir=str(scratch_root) if scratch_root is not None else None,
    ) as scratch_dir:
        yield platform.download_artifact(child_run, artifact.path, Path(scratch_dir))


def read_artifact_table(path: Path, artifact: ArtifactSpec) -> pd.DataFrame:
    """
    Parse a cross-validation metrics file and tag it with its model source.

    Rows keep their file order. A header-only file is a valid, empty table.

    Raises:
        ParseError: If the file is empty, not a delimited table, or already
            has a ``source`` column.
    """
    try:
        frame = pd.read_csv(path)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Could not parse {artifact.path} as a table: {e}") from e

    if frame.columns.empty:
        raise ParseError(f"Artifact {artifact.path} has no columns")
    if SOURCE_COLUMN in frame.columns:
        raise ParseError(f"Artifact {artifact.path} already has a '{SOURCE_COLUMN}' column")

    frame[SOURCE_COLUMN] = artifact.source
    return frame
