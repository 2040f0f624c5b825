from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import DEFAULT_CATEGORIES, CategoryCatalog


def load_yaml(path: Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"YAML file not found: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML at {p}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping: {p}")
    return data


def load_category_catalog(path: Optional[Path] = None) -> CategoryCatalog:
    """Load a category table from YAML, or the built-in table when path is None."""
    if path is None:
        return DEFAULT_CATEGORIES
    data = load_yaml(path)
    try:
        return CategoryCatalog.model_validate(data)
    except Exception as e:
        raise ValueError(f"Invalid category catalog at {path}: {e}") from e
