from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

import pandas as pd

from ..reconcile.keys import display_key
from ..reconcile.models import Dataset, ResultSet, Row, Side, UnmatchedEntry

MAX_SHEET_NAME = 31


def sheet_title(text: str) -> str:
    for ch in "[]:*?/\\":
        text = text.replace(ch, " ")
    return text[:MAX_SHEET_NAME]


def side_names(dataset_a: Dataset, dataset_b: Dataset) -> Tuple[str, str]:
    name_a = dataset_a.display_name(Side.A)
    name_b = dataset_b.display_name(Side.B)
    # sheet names are case-insensitive in Excel
    if name_a.casefold() == name_b.casefold():
        return Side.A.value, Side.B.value
    return name_a, name_b


def _cells(row: Row, headers: Sequence[str]) -> List[Any]:
    return [row[i] if i < len(row) else None for i in range(len(headers))]


def matched_frame(result: ResultSet, dataset_a: Dataset, dataset_b: Dataset) -> pd.DataFrame:
    prefix_a, prefix_b = side_names(dataset_a, dataset_b)
    columns = (
        ["Key"]
        + [f"{prefix_a}_{h}" for h in dataset_a.headers]
        + [f"{prefix_b}_{h}" for h in dataset_b.headers]
        + ["Mismatched Columns"]
    )
    records = []
    for entry in result.matched:
        flagged = ", ".join(result.pair(mm.pair_id).source_key for mm in entry.mismatches)
        records.append(
            [display_key(entry.composite_key)]
            + _cells(entry.row_a, dataset_a.headers)
            + _cells(entry.row_b, dataset_b.headers)
            + [flagged]
        )
    return pd.DataFrame(records, columns=columns)


def unmatched_frame(entries: Sequence[UnmatchedEntry], dataset: Dataset) -> pd.DataFrame:
    columns = ["Key"] + list(dataset.headers)
    records = [[display_key(e.composite_key)] + _cells(e.row, dataset.headers) for e in entries]
    return pd.DataFrame(records, columns=columns)


def mismatch_frame(result: ResultSet, dataset_a: Dataset, dataset_b: Dataset) -> pd.DataFrame:
    name_a, name_b = side_names(dataset_a, dataset_b)
    records = []
    for entry in result.mismatched_entries:
        for mm in entry.mismatches:
            pair = result.pair(mm.pair_id)
            records.append(
                {
                    "Key": display_key(entry.composite_key),
                    f"{name_a} Column": pair.source_key,
                    f"{name_b} Column": pair.target_key,
                    f"{name_a} Value": mm.value_a,
                    f"{name_b} Value": mm.value_b,
                }
            )
    columns = ["Key", f"{name_a} Column", f"{name_b} Column", f"{name_a} Value", f"{name_b} Value"]
    return pd.DataFrame(records, columns=columns)


def summary_frame(result: ResultSet, dataset_a: Dataset, dataset_b: Dataset) -> pd.DataFrame:
    name_a, name_b = side_names(dataset_a, dataset_b)
    rows = [
        ("Common Entries", result.matched_count),
        (f"Only in {name_a}", result.only_in_a_count),
        (f"Only in {name_b}", result.only_in_b_count),
        ("Total", result.total),
        ("Matched with mismatches", len(result.mismatched_entries)),
        (f"Skipped (unkeyable) in {name_a}", result.skipped_a),
        (f"Skipped (unkeyable) in {name_b}", result.skipped_b),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Count"])


def build_report_frames(
    result: ResultSet,
    dataset_a: Dataset,
    dataset_b: Dataset,
) -> Dict[str, pd.DataFrame]:
    """Sheet title -> frame, in workbook order."""
    name_a, name_b = side_names(dataset_a, dataset_b)
    title_a = sheet_title(f"Only in {name_a}")
    title_b = sheet_title(f"Only in {name_b}")
    if title_a.casefold() == title_b.casefold():
        # labels differ only past the truncation point
        title_a, title_b = "Only in A", "Only in B"
    return {
        "Summary": summary_frame(result, dataset_a, dataset_b),
        "Common Entries": matched_frame(result, dataset_a, dataset_b),
        title_a: unmatched_frame(result.only_in_a, dataset_a),
        title_b: unmatched_frame(result.only_in_b, dataset_b),
        "Mismatches": mismatch_frame(result, dataset_a, dataset_b),
    }


def export_report(
    result: ResultSet,
    dataset_a: Dataset,
    dataset_b: Dataset,
    path: Union[str, Path],
) -> Path:
    """Write the reconciliation report workbook and return its path."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    frames = build_report_frames(result, dataset_a, dataset_b)

    with pd.ExcelWriter(out, engine="xlsxwriter") as writer:
        workbook = writer.book
        header_fmt = workbook.add_format({"bold": True, "bg_color": "#D9E1F2", "border": 1})

        for title, df in frames.items():
            df.to_excel(writer, sheet_name=title, index=False)
            worksheet = writer.sheets[title]

            for col_num, value in enumerate(df.columns):
                worksheet.write(0, col_num, value, header_fmt)

            for i, col in enumerate(df.columns):
                longest = df.iloc[:, i].astype(str).map(len).max() if len(df) else 0
                worksheet.set_column(i, i, min(max(int(longest), len(str(col))) + 2, 60))
            worksheet.freeze_panes(1, 0)
            if len(df.columns):
                worksheet.autofilter(0, 0, max(len(df), 1), len(df.columns) - 1)

    return out
