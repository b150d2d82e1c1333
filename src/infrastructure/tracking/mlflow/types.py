"""Structured types for sweep parent runs and their child runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

GOAL_TO_ORDER = {"maximize": "DESC", "minimize": "ASC"}


@dataclass(frozen=True)
class SweepRun:
    """Parent run of a parameter sweep and the objective it ranks trials by."""

    run_id: str
    primary_metric: str
    goal: str
    experiment_id: Optional[str] = None

    def __post_init__(self):
        """Validate required fields."""
        if not self.run_id:
            raise ValueError("run_id is required")
        if not self.primary_metric:
            raise ValueError("primary_metric is required")
        if self.goal not in GOAL_TO_ORDER:
            raise ValueError(f"goal must be one of {sorted(GOAL_TO_ORDER)}, got {self.goal!r}")

    @property
    def sort_order(self) -> str:
        """``DESC`` when maximizing, ``ASC`` when minimizing."""
        return GOAL_TO_ORDER[self.goal]


@dataclass(frozen=True)
class ChildRunRef:
    """One trial of a sweep; ``parent_run_id`` is a back-reference only."""

    run_id: str
    parent_run_id: str
    primary_metric_value: Optional[float] = None
    status: Optional[str] = None

    def __post_init__(self):
        """Validate required fields."""
        if not self.run_id:
            raise ValueError("run_id is required")

# Tag written on the sweep job at submission and read back at collection
ARGUMENT_LAYOUT_TAG = "argument_layout"
