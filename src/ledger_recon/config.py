from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from .reconcile.models import PAIR_ROLES, ColumnPair, Mapping


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


def _require_section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    if not isinstance(section, dict):
        raise ConfigError(f"Missing required section: {name}")
    return section


def _validate_dataset_section(data: Dict[str, Any], name: str) -> None:
    section = _require_section(data, name)
    path = section.get("path")
    if not path or not isinstance(path, (str, Path)):
        raise ConfigError(f"Missing required key: {name}.path")
    for key in ("sheet", "label"):
        value = section.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"{name}.{key} must be a string")


def _validate_mapping(raw: Any) -> None:
    if raw is None:
        return
    if not isinstance(raw, list):
        raise ConfigError("mapping must be a list of {source, target} entries")
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"mapping[{i}] must be a mapping")
        if not item.get("source") or not item.get("target"):
            raise ConfigError(f"mapping[{i}] requires both source and target")
        role = item.get("role", "key")
        if role not in PAIR_ROLES:
            raise ConfigError(f"mapping[{i}].role must be one of {PAIR_ROLES}")


def load_config(path: str | Path) -> Dict[str, Any]:
    """
    Load YAML run config and validate the minimal contract.

    Required:
      - io.runs_dir
      - reference.path, counterparty.path
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {config_path}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML must be a mapping: {config_path}")

    io_section = _require_section(data, "io")
    runs_dir = io_section.get("runs_dir")
    if not runs_dir or not isinstance(runs_dir, (str, Path)):
        raise ConfigError("Missing required key: io.runs_dir")

    _validate_dataset_section(data, "reference")
    _validate_dataset_section(data, "counterparty")
    _validate_mapping(data.get("mapping"))

    engine = data.get("engine") or {}
    if not isinstance(engine, dict):
        raise ConfigError("engine must be a mapping")

    return data


def mapping_from_config(cfg: Dict[str, Any]) -> Mapping:
    """Build the configured mapping; ids follow list order starting at 1."""
    pairs: List[ColumnPair] = []
    for i, item in enumerate(cfg.get("mapping") or [], 1):
        pairs.append(
            ColumnPair(
                source_key=str(item["source"]),
                target_key=str(item["target"]),
                pair_id=str(item.get("id") or i),
                role=item.get("role", "key"),
            )
        )
    return tuple(pairs)
