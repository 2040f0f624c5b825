from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from ledger_recon.io.export import build_report_frames, export_report, sheet_title, side_names
from ledger_recon.io.workbook import grid_to_dataset, list_sheets, load_dataset, preview_rows
from ledger_recon.reconcile import ColumnPair, DataShapeError, Dataset, reconcile

FIXTURES = Path(__file__).parent / "fixtures"


def test_load_csv_drops_blank_rows_and_keeps_ragged_rows():
    ds = load_dataset(FIXTURES / "purchase.csv", label="Purchase Register")
    assert ds.headers == ("Bill No", "GST No", "Bill Date", "Amount", "Supplier")
    assert len(ds) == 3
    assert ds.rows[2] == ("INV4", "29ABCDE1234F1Z5", "2024-01-09", "40")
    assert ds.label == "Purchase Register"

    a = load_dataset(FIXTURES / "gstr2b.csv")
    assert a.label == "gstr2b"
    assert len(a) == 4
    assert a.rows[3][0] is None


def test_load_csv_ignores_cells_past_header_width():
    ds = load_dataset(FIXTURES / "ragged.csv")
    assert ds.headers == ("Bill No", "Amount")
    assert ds.rows == (("INV1", "10"), ("INV2", "20"))


def test_load_empty_csv():
    ds = load_dataset(FIXTURES / "empty.csv")
    assert ds.headers == ()
    assert len(ds) == 0


def test_grid_headers_blank_and_duplicate():
    grid = [
        [None, None, None],
        ["Amount.1", None, "Amount", "Amount", None],
        ["1", "2", "3", "4", "extra"],
    ]
    ds = grid_to_dataset(grid)
    assert ds.headers == ("Amount.1", "Column 2", "Amount", "Amount.2")
    assert ds.rows == (("1", "2", "3", "4"),)


def test_duplicate_headers_rejected_by_dataset():
    with pytest.raises(DataShapeError):
        Dataset.from_records(["A", "A"], [])


def test_xlsx_roundtrip_sheet_selection(tmp_path: Path):
    path = tmp_path / "ledger.xlsx"
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        pd.DataFrame({"x": [1]}).to_excel(writer, sheet_name="Notes", index=False)
        pd.DataFrame(
            {"Invoice No": ["INV1", "INV2"], "Invoice Date": [datetime(2024, 1, 5), datetime(2024, 1, 6)]}
        ).to_excel(writer, sheet_name="B2B", index=False)
    assert list_sheets(path) == ["Notes", "B2B"]
    ds = load_dataset(path, sheet="B2B")
    assert ds.headers == ("Invoice No", "Invoice Date")
    assert ds.rows[0][0] == "INV1"
    assert len(preview_rows(ds, 1)) == 1


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_dataset(FIXTURES / "absent.xlsx")


def _fixture_result():
    a = load_dataset(FIXTURES / "gstr2b.csv", label="GSTR-2B")
    b = load_dataset(FIXTURES / "purchase.csv", label="Purchase Register")
    mapping = [
        ColumnPair("Invoice No", "Bill No", "1"),
        ColumnPair("Taxable Value", "Amount", "2", role="compare"),
    ]
    return a, b, reconcile(a, b, mapping)


def test_report_frames():
    a, b, result = _fixture_result()
    frames = build_report_frames(result, a, b)
    assert list(frames) == [
        "Summary",
        "Common Entries",
        "Only in GSTR-2B",
        "Only in Purchase Register",
        "Mismatches",
    ]
    common = frames["Common Entries"]
    assert "GSTR-2B_Invoice No" in common.columns
    assert "Purchase Register_Bill No" in common.columns
    assert list(common["Key"]) == ["INV1", "INV2"]
    mism = frames["Mismatches"]
    assert list(mism["GSTR-2B Value"]) == ["250"]
    assert list(mism["Purchase Register Value"]) == ["200"]
    assert list(frames["Only in GSTR-2B"]["Key"]) == ["INV3"]
    assert list(frames["Only in Purchase Register"]["Key"]) == ["INV4"]


def test_export_report_writes_workbook(tmp_path: Path):
    a, b, result = _fixture_result()
    out = export_report(result, a, b, tmp_path / "out" / "report.xlsx")
    assert out.exists()
    with pd.ExcelFile(out) as xl:
        assert xl.sheet_names[0] == "Summary"
        summary = pd.read_excel(xl, sheet_name="Summary")
    assert dict(zip(summary["Metric"], summary["Count"]))["Total"] == 4


def test_export_labels_differing_only_in_case(tmp_path: Path):
    a = Dataset.from_records(["Invoice No"], [["INV1"], ["INV2"]], label="ledger")
    b = Dataset.from_records(["Bill No"], [["INV1"], ["INV3"]], label="LEDGER")
    result = reconcile(a, b, [ColumnPair("Invoice No", "Bill No", "1")])

    assert side_names(a, b) == ("A", "B")
    frames = build_report_frames(result, a, b)
    assert list(frames) == ["Summary", "Common Entries", "Only in A", "Only in B", "Mismatches"]
    assert "A_Invoice No" in frames["Common Entries"].columns

    out = export_report(result, a, b, tmp_path / "report.xlsx")
    with pd.ExcelFile(out) as xl:
        assert "Only in A" in xl.sheet_names
        assert "Only in B" in xl.sheet_names


def test_export_truncated_titles_differing_only_in_case():
    stem = "x" * 30
    a = Dataset.from_records(["k"], [["1"]], label=stem + "-north")
    b = Dataset.from_records(["k"], [["2"]], label=stem.upper() + "-south")
    result = reconcile(a, b, [ColumnPair("k", "k", "1")])
    frames = build_report_frames(result, a, b)
    assert "Only in A" in frames
    assert "Only in B" in frames


def test_sheet_title_truncates():
    assert len(sheet_title("Only in " + "x" * 40)) == 31
    assert sheet_title("a/b") == "a b"
