from __future__ import annotations

"""
@meta
name: config_loader
type: utility
domain: config
responsibility:
  - Load collection, sweep, argument layout and workspace configuration from YAML
  - Validate objective goals and failure policies
  - Provide strongly-typed, immutable views over the YAML files
inputs:
  - collection.yaml, sweep.yaml, arguments.yaml, infrastructure.yaml
outputs:
  - CollectionConfig, SweepConfig, WorkspaceConfig, ComputeConfig dataclasses
tags:
  - utility
  - config
  - loading
ci:
  runnable: false
  needs_gpu: false
  needs_cloud: false
lifecycle:
  status: active
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from common.shared.yaml_utils import load_yaml

COLLECTION_CONFIG_FILENAME = "collection.yaml"
SWEEP_CONFIG_FILENAME = "sweep.yaml"
ARGUMENTS_CONFIG_FILENAME = "arguments.yaml"
INFRASTRUCTURE_CONFIG_FILENAME = "infrastructure.yaml"

GOAL_MAXIMIZE = "maximize"
GOAL_MINIMIZE = "minimize"
VALID_GOALS = (GOAL_MAXIMIZE, GOAL_MINIMIZE)

ON_CHILD_ERROR_SKIP = "skip"
ON_CHILD_ERROR_ABORT = "abort"
VALID_ON_CHILD_ERROR = (ON_CHILD_ERROR_SKIP, ON_CHILD_ERROR_ABORT)

DECODE_NAMED = "named"
DECODE_POSITIONAL = "positional"
VALID_DECODE_MODES = (DECODE_NAMED, DECODE_POSITIONAL)

DEFAULT_TABLE_FILENAME = "aggregated_results.csv"
DEFAULT_REPORT_FILENAME = "collection_report.json"
DEFAULT_REMOTE_NAME = "aggregated_results"
DEFAULT_OUTPUT_DIR = "outputs/sweep_results"


@dataclass(frozen=True)
class ArtifactSpec:
    """One per-model output file every child run is expected to produce."""

    model_type: str
    path: str
    source: str


@dataclass(frozen=True)
class ArgumentsConfig:
    """
    Command-line contract shared by sweep submission and result collection.

    ``layout`` keeps the YAML order: it is the order flags are written on the
    submitted command line and the order decoded columns appear in the table.
    """

    layout: Tuple[Tuple[str, str], ...]
    decode_mode: str = DECODE_NAMED
    leading_tokens: int = 0


@dataclass(frozen=True)
class CollectionConfig:
    """Resolved view of ``collection.yaml`` plus the shared argument layout."""

    primary_metric: str
    goal: str
    artifacts: Tuple[ArtifactSpec, ...]
    arguments: ArgumentsConfig
    on_child_error: str = ON_CHILD_ERROR_SKIP
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    table_filename: str = DEFAULT_TABLE_FILENAME
    report_filename: str = DEFAULT_REPORT_FILENAME
    remote_name: str = DEFAULT_REMOTE_NAME
    scratch_root: Optional[Path] = None


@dataclass(frozen=True)
class SweepConfig:
    """Resolved view of ``sweep.yaml``."""

    experiment_name: str
    display_name: str
    code: Path
    entry_command: str
    primary_metric: str
    goal: str
    search_space: Dict[str, Any]
    sampling: Dict[str, Any]
    arguments: ArgumentsConfig
    static_arguments: Dict[str, str] = field(default_factory=dict)
    early_termination: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ComputeConfig:
    """Compute cluster settings from ``infrastructure.yaml``."""

    name: str
    size: str
    min_instances: int = 0
    max_instances: int = 4
    idle_time_before_scale_down: int = 1800
    tier: str = "dedicated"


@dataclass(frozen=True)
class WorkspaceConfig:
    """Workspace coordinates from ``infrastructure.yaml`` (placeholders unresolved)."""

    workspace_name: str
    subscription_id: Optional[str]
    resource_group: Optional[str]
    compute: ComputeConfig


def _require(section: Dict[str, Any], key: str, source: str) -> Any:
    if key not in section or section[key] in (None, ""):
        raise ValueError(f"Missing required key '{key}' in {source}")
    return section[key]


def _validate_goal(goal: str, source: str) -> str:
    normalized = str(goal).lower()
    if normalized not in VALID_GOALS:
        raise ValueError(
            f"Invalid objective goal '{goal}' in {source}; expected one of {VALID_GOALS}"
        )
    return normalized


def load_arguments_config(config_dir: Path) -> ArgumentsConfig:
    """
    Load the argument layout shared by submission and collection.

    Expected structure of ``arguments.yaml``:

    .. code-block:: yaml

        decode_mode: named
        leading_tokens: 0
        layout:
          vcf_filename: --vcf
          categorical: --categorical

    Args:
        config_dir: Path to the configuration directory.

    Returns:
        ArgumentsConfig with the layout in file order.

    Raises:
        ValueError: If the layout is empty, flags repeat, or the decode mode is unknown.
    """
    source = str(config_dir / ARGUMENTS_CONFIG_FILENAME)
    raw = load_yaml(config_dir / ARGUMENTS_CONFIG_FILENAME)

    layout_raw = _require(raw, "layout", source)
    if not isinstance(layout_raw, dict):
        raise ValueError(f"'layout' in {source} must be a mapping of column -> flag")
    layout = tuple((str(column), str(flag)) for column, flag in layout_raw.items())

    flags = [flag for _, flag in layout]
    if len(set(flags)) != len(flags):
        raise ValueError(f"Duplicate flags in argument layout of {source}")

    decode_mode = str(raw.get("decode_mode", DECODE_NAMED)).lower()
    if decode_mode not in VALID_DECODE_MODES:
        raise ValueError(
            f"Invalid decode_mode '{decode_mode}' in {source}; "
            f"expected one of {VALID_DECODE_MODES}"
        )

    leading_tokens = int(raw.get("leading_tokens", 0))
    if leading_tokens < 0:
        raise ValueError(f"leading_tokens must be >= 0 in {source}")

    return ArgumentsConfig(
        layout=layout,
        decode_mode=decode_mode,
        leading_tokens=leading_tokens,
    )


def load_collection_config(config_dir: Path) -> CollectionConfig:
    """
    Load ``collection.yaml`` into a :class:`CollectionConfig`.

    Args:
        config_dir: Path to the configuration directory.

    Returns:
        Resolved collection configuration. Relative output and scratch paths
        are kept relative to the working directory.

    Raises:
        FileNotFoundError: If a config file is missing.
        ValueError: If required keys are missing or values are invalid.
    """
    source = str(config_dir / COLLECTION_CONFIG_FILENAME)
    raw = load_yaml(config_dir / COLLECTION_CONFIG_FILENAME)

    objective = raw.get("objective", {}) or {}
    primary_metric = _require(objective, "primary_metric", source)
    goal = _validate_goal(objective.get("goal", GOAL_MAXIMIZE), source)

    artifacts_raw = _require(raw, "artifacts", source)
    artifacts = tuple(
        ArtifactSpec(
            model_type=str(_require(item, "model_type", source)),
            path=str(_require(item, "path", source)),
            source=str(_require(item, "source", source)),
        )
        for item in artifacts_raw
    )

    failure = raw.get("failure", {}) or {}
    on_child_error = str(failure.get("on_child_error", ON_CHILD_ERROR_SKIP)).lower()
    if on_child_error not in VALID_ON_CHILD_ERROR:
        raise ValueError(
            f"Invalid on_child_error '{on_child_error}' in {source}; "
            f"expected one of {VALID_ON_CHILD_ERROR}"
        )

    output = raw.get("output", {}) or {}
    scratch_root = output.get("scratch_root")

    return CollectionConfig(
        primary_metric=str(primary_metric),
        goal=goal,
        artifacts=artifacts,
        arguments=load_arguments_config(config_dir),
        on_child_error=on_child_error,
        output_dir=Path(output.get("local_dir", DEFAULT_OUTPUT_DIR)),
        table_filename=output.get("table_filename", DEFAULT_TABLE_FILENAME),
        report_filename=output.get("report_filename", DEFAULT_REPORT_FILENAME),
        remote_name=output.get("remote_name", DEFAULT_REMOTE_NAME),
        scratch_root=Path(scratch_root) if scratch_root else None,
    )


def load_sweep_config(config_dir: Path) -> SweepConfig:
    """
    Load ``sweep.yaml`` into a :class:`SweepConfig`.

    Every search-space dimension and static argument must have a column in the
    argument layout, otherwise the submitted command could not be decoded later.

    Args:
        config_dir: Path to the configuration directory.

    Returns:
        Resolved sweep configuration; ``code`` is resolved against ``config_dir``.

    Raises:
        ValueError: If required keys are missing or names are not in the layout.
    """
    source = str(config_dir / SWEEP_CONFIG_FILENAME)
    raw = load_yaml(config_dir / SWEEP_CONFIG_FILENAME)
    arguments = load_arguments_config(config_dir)

    objective = _require(raw, "objective", source)
    search_space = _require(raw, "search_space", source)
    static_arguments = {
        str(name): str(value)
        for name, value in (raw.get("static_arguments", {}) or {}).items()
    }

    layout_columns = {column for column, _ in arguments.layout}
    unknown = (set(search_space) | set(static_arguments)) - layout_columns
    if unknown:
        raise ValueError(
            f"Names {sorted(unknown)} in {source} have no flag in {ARGUMENTS_CONFIG_FILENAME}"
        )

    return SweepConfig(
        experiment_name=str(_require(raw, "experiment_name", source)),
        display_name=str(raw.get("display_name", raw["experiment_name"])),
        code=config_dir / str(raw.get("code", "..")),
        entry_command=str(_require(raw, "command", source)),
        primary_metric=str(_require(objective, "metric", source)),
        goal=_validate_goal(objective.get("goal", GOAL_MAXIMIZE), source),
        search_space=dict(search_space),
        sampling=dict(_require(raw, "sampling", source)),
        arguments=arguments,
        static_arguments=static_arguments,
        early_termination=raw.get("early_termination"),
    )


def _strip_placeholder(value: Any) -> Optional[str]:
    """Return ``None`` for empty values and unresolved ``${VAR}`` placeholders."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.startswith("${"):
        return None
    return text


def load_workspace_config(config_dir: Path) -> WorkspaceConfig:
    """
    Load ``infrastructure.yaml`` into a :class:`WorkspaceConfig`.

    Subscription and resource group may be ``${VAR}`` placeholders; those are
    returned as ``None`` and resolved from the environment at client creation.

    Args:
        config_dir: Path to the configuration directory.

    Returns:
        Resolved workspace configuration.
    """
    source = str(config_dir / INFRASTRUCTURE_CONFIG_FILENAME)
    raw = load_yaml(config_dir / INFRASTRUCTURE_CONFIG_FILENAME)

    azure = raw.get("azure", {}) or {}
    compute = raw.get("compute", {}) or {}

    return WorkspaceConfig(
        workspace_name=str(_require(azure, "workspace_name", source)),
        subscription_id=_strip_placeholder(azure.get("subscription_id")),
        resource_group=_strip_placeholder(azure.get("resource_group")),
        compute=ComputeConfig(
            name=str(_require(compute, "name", source)),
            size=str(compute.get("size", "STANDARD_D4S_V3")),
            min_instances=int(compute.get("min_instances", 0)),
            max_instances=int(compute.get("max_instances", 4)),
            idle_time_before_scale_down=int(
                compute.get("idle_time_before_scale_down", 1800)
            ),
            tier=str(compute.get("tier", "dedicated")),
        ),
    )
