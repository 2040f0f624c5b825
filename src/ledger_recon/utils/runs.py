from __future__ import annotations

import random
import string
from datetime import datetime, timezone
from pathlib import Path


def utc_now_iso() -> str:
    """
    Current UTC time in ISO 8601 with seconds precision, e.g. 2024-01-01T00:00:00+00:00
    """
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _rand4() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(4))


def new_run_id() -> str:
    """
    Generate a new run id: recon_YYYYMMDD_HHMMSS_<rand4>, filesystem-safe.
    """
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"recon_{ts}_{_rand4()}"


def get_run_dir(runs_dir: str | Path, run_id: str) -> Path:
    run_dir = Path(runs_dir) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def resolve_input(path: str | Path, base_dir: Path) -> Path:
    """Relative dataset paths in a config file are relative to that file."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (base_dir / p)
