"""YAML configuration loader.

Pipelines are YAML files with a top-level `handlers:` list. Keeping them in YAML allows:
- easy review of which handlers run, in which order, on which content types
- versioned configuration across runs
- round-tripping a configured pipeline back to disk
"""

from __future__ import annotations
from typing import Any, Dict
import os

import yaml

from ..errors import ConfigurationError


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    return data


def dump_yaml(data: Dict[str, Any], path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
    os.replace(tmp, path)
