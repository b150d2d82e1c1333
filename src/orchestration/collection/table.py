"""Persistence of the aggregated result table and the collection report."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from common.shared.logging_utils import get_logger
from orchestration.collection.artifacts import SOURCE_COLUMN

logger = get_logger(__name__)

PARENT_RUN_COLUMN = "parent_run_id"
CHILD_RUN_COLUMN = "child_run_id"


@dataclass
class CollectionReport:
    """Which child runs contributed rows and which were skipped, and why."""

    parent_run_id: str
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    row_count: int = 0
    table_path: Optional[str] = None

    @property
    def complete(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def order_columns(table: pd.DataFrame, leading: Sequence[str]) -> pd.DataFrame:
    """Put ``leading`` columns first and ``source`` last, keeping the rest in place."""
    middle = [c for c in table.columns if c not in leading and c != SOURCE_COLUMN]
    return table[[*leading, *middle, SOURCE_COLUMN]]


def empty_table(leading: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=[*leading, SOURCE_COLUMN])


class ResultTableWriter:
    """
    Accumulates per-child row blocks and persists the table after each one.

    The file always holds every block appended so far, so an interrupted
    collection pass leaves the rows it already gathered on disk. A block whose
    columns are already in the file header is appended in place; a block that
    brings new columns triggers an atomic rewrite of the whole table.
    """

    def __init__(self, table_path: Path, leading_columns: Sequence[str]):
        self.table_path = table_path
        self.leading_columns = list(leading_columns)
        self._blocks: List[pd.DataFrame] = []
        self._header: Optional[List[str]] = None

    @property
    def table(self) -> pd.DataFrame:
        if not self._blocks:
            return empty_table(self.leading_columns)
        combined = pd.concat(self._blocks, ignore_index=True, sort=False)
        return order_columns(combined, self.leading_columns)

    def append(self, block: pd.DataFrame) -> None:
        self._blocks.append(block)
        if self._header is None or not set(block.columns) <= set(self._header):
            self.flush()
            return
        block.reindex(columns=self._header).to_csv(
            self.table_path, mode="a", header=False, index=False
        )

    def flush(self) -> pd.DataFrame:
        """Atomically write the current table to ``table_path`` and return it."""
        table = self.table
        self.table_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = self.table_path.with_name(self.table_path.name + ".partial")
        table.to_csv(partial_path, index=False)
        os.replace(partial_path, self.table_path)
        self._header = list(table.columns)
        return table

    def discard(self) -> None:
        """Remove the persisted table; used when the pass is aborted."""
        self._blocks.clear()
        self._header = None
        if self.table_path.exists():
            self.table_path.unlink()
            logger.info(f"Discarded partial table {self.table_path}")


def remove_outputs(*paths: Path) -> None:
    """Delete output files left by a previous collection pass."""
    for path in paths:
        if path.exists():
            path.unlink()
            logger.info(f"Removed previous output {path}")


def write_report(report: CollectionReport, report_path: Path) -> Path:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", encoding="utf-8") as handle:
        json.dump(report.to_dict(), handle, indent=2)
    return report_path
