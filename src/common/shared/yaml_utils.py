from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load a YAML mapping from disk.

    Args:
        path: Absolute or relative path to a YAML file.

    Returns:
        Parsed YAML content as a dictionary (empty for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping.
        yaml.YAMLError: If the file cannot be parsed as valid YAML.
    """
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(
            f"YAML file {path} must contain a mapping, got {type(content).__name__}"
        )
    return content
