from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..reconcile.models import Dataset, Row

CSV_SUFFIXES = {".csv", ".txt"}


def _is_csv(path: Path) -> bool:
    return path.suffix.lower() in CSV_SUFFIXES


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    return value


def list_sheets(path: Union[str, Path]) -> List[str]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Workbook not found: {p}")
    if _is_csv(p):
        return [p.stem]
    with pd.ExcelFile(p) as xl:
        return [str(s) for s in xl.sheet_names]


def _read_grid(path: Path, sheet: Optional[str]) -> List[Sequence[Any]]:
    if _is_csv(path):
        # csv.reader keeps each line's own width; read_csv rejects lines wider than the first
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            return [row for row in csv.reader(f)]
    df = pd.read_excel(path, sheet_name=sheet if sheet is not None else 0, header=None, dtype=object)
    return list(df.itertuples(index=False, name=None))


def _dedupe_headers(raw: Sequence[Any]) -> Tuple[str, ...]:
    """Blank headers become 'Column N'; repeats get '.1', '.2' like pandas."""
    seen: dict = {}
    out: List[str] = []
    for i, h in enumerate(raw, 1):
        h = _clean_cell(h)
        name = f"Column {i}" if h is None else str(h).strip()
        if name in seen:
            seen[name] += 1
            candidate = f"{name}.{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}.{seen[name]}"
            name = candidate
        seen.setdefault(name, 0)
        out.append(name)
    return tuple(out)


def grid_to_dataset(grid: Sequence[Sequence[Any]], label: Optional[str] = None) -> Dataset:
    """
    Build a Dataset from a raw cell grid: first non-empty row is the header row.

    Fully empty rows are dropped, trailing empty header columns are trimmed and
    data rows are cut to the header width.
    """
    rows = [[_clean_cell(v) for v in r] for r in grid]
    rows = [r for r in rows if any(v is not None for v in r)]
    if not rows:
        return Dataset(headers=(), rows=(), label=label)

    header_raw = list(rows[0])
    while header_raw and header_raw[-1] is None:
        header_raw.pop()
    width = len(header_raw)
    headers = _dedupe_headers(header_raw)

    data: List[Row] = []
    for r in rows[1:]:
        cells = list(r[:width])
        # ragged rows stay short; the engine treats missing cells as absent
        while cells and cells[-1] is None:
            cells.pop()
        data.append(tuple(cells))
    return Dataset(headers=headers, rows=tuple(data), label=label)


def load_dataset(
    path: Union[str, Path],
    sheet: Optional[str] = None,
    label: Optional[str] = None,
) -> Dataset:
    """Decode one sheet of an .xlsx/.xls workbook, or a CSV file, into a Dataset."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Workbook not found: {p}")
    return grid_to_dataset(_read_grid(p, sheet), label=label or p.stem)


def preview_rows(dataset: Dataset, n: int = 5) -> List[Row]:
    """First n data rows padded to the header width, for display."""
    width = len(dataset.headers)
    out: List[Row] = []
    for r in dataset.rows[: max(0, n)]:
        out.append(tuple(r) + (None,) * (width - len(r)))
    return out
