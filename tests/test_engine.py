from __future__ import annotations

import pytest

from ledger_recon.reconcile import (
    ColumnPair,
    ConfigurationError,
    Dataset,
    FieldMismatch,
    ReconciliationStages,
    Side,
    reconcile,
)


def _invoice_example():
    a = Dataset.from_records(
        ["Invoice No", "GSTIN", "Value"],
        [["INV1", "29ABCDE1234F1Z5", "100"]],
    )
    b = Dataset.from_records(
        ["Bill No", "GST", "Amount"],
        [
            ["INV1", "29ABCDE1234F1Z5", "100"],
            ["INV2", "29ABCDE1234F1Z5", "50"],
        ],
    )
    return a, b


def test_invoice_example():
    a, b = _invoice_example()
    result = reconcile(a, b, [ColumnPair("Invoice No", "Bill No", "1")])
    assert result.matched_count == 1
    assert result.only_in_a_count == 0
    assert result.only_in_b_count == 1
    assert result.total == 2
    assert result.matched[0].row_b[0] == "INV1"
    assert result.matched[0].mismatches == ()
    assert result.only_in_b[0].row[0] == "INV2"
    assert result.only_in_b[0].origin is Side.B


def test_empty_a_all_b_unmatched():
    a = Dataset.from_records(["Invoice No"], [])
    b = Dataset.from_records(["Bill No"], [["X1"], ["X2"], ["X3"]])
    result = reconcile(a, b, [ColumnPair("Invoice No", "Bill No", "1")])
    assert (result.matched_count, result.only_in_a_count, result.only_in_b_count) == (0, 0, 3)


def test_empty_mapping_and_missing_header_are_configuration_errors():
    a, b = _invoice_example()
    with pytest.raises(ConfigurationError):
        reconcile(a, b, [])
    with pytest.raises(ConfigurationError):
        reconcile(a, b, [ColumnPair("Invoice No", "Invoice No", "1")])
    with pytest.raises(ConfigurationError):
        reconcile(a, b, [ColumnPair("Value", "Amount", "1", role="compare")])


def test_mismatch_reported_only_for_differing_values():
    a = Dataset.from_records(["Inv", "Amt", "Party"], [["I1", "100", "Acme"], ["I2", 50, "Beta"]])
    b = Dataset.from_records(["Bill", "Total", "Vendor"], [["I1", 100, "ACME"], ["I2", 50.0, "Beta"]])
    mapping = [
        ColumnPair("Inv", "Bill", "1"),
        ColumnPair("Amt", "Total", "2", role="compare"),
        ColumnPair("Party", "Vendor", "3", role="compare"),
    ]
    result = reconcile(a, b, mapping)
    assert result.matched_count == 2
    assert result.matched[0].mismatches == (FieldMismatch("3", "Acme", "ACME"),)
    assert result.matched[1].mismatches == ()
    assert result.mismatch_counts_by_pair() == {"1": 0, "2": 0, "3": 1}
    assert len(result.mismatched_entries) == 1


def test_unkeyable_rows_appear_nowhere():
    a = Dataset.from_records(["Inv", "Gst"], [["I1", "G1"], ["I2", None], ["", "G3"]])
    b = Dataset.from_records(["Bill", "Gst"], [["I1", "G1"], ["I2", "G2"]])
    mapping = [ColumnPair("Inv", "Bill", "1"), ColumnPair("Gst", "Gst", "2")]
    result = reconcile(a, b, mapping)
    indices_a = [e.index_a for e in result.matched] + [e.index for e in result.only_in_a]
    assert indices_a == [0]
    assert result.skipped_a == 2
    assert [e.index for e in result.only_in_b] == [1]


def test_duplicates_pair_ordinally_and_leftovers_stay_unmatched():
    a = Dataset.from_records(["Inv"], [["K"], ["K"], ["K"], ["L"]])
    b = Dataset.from_records(["Bill"], [["K"], ["K"], ["M"]])
    result = reconcile(a, b, [ColumnPair("Inv", "Bill", "1")])
    assert [(e.index_a, e.index_b) for e in result.matched] == [(0, 0), (1, 1)]
    assert [e.index for e in result.only_in_a] == [2, 3]
    assert [e.index for e in result.only_in_b] == [2]
    assert [k for k in result.leftover_duplicate_keys()] == ["K"]


def test_partition_completeness_and_bound():
    a = Dataset.from_records(["Inv"], [["A"], ["B"], ["B"], [None], ["C"]])
    b = Dataset.from_records(["Bill"], [["B"], ["C"], ["C"], ["D"]])
    result = reconcile(a, b, [ColumnPair("Inv", "Bill", "1")])
    seen_a = sorted([e.index_a for e in result.matched] + [e.index for e in result.only_in_a])
    seen_b = sorted([e.index_b for e in result.matched] + [e.index for e in result.only_in_b])
    assert seen_a == [0, 1, 2, 4]
    assert seen_b == [0, 1, 2, 3]
    assert result.matched_count <= min(4, 4)


def test_idempotent_and_field_order_symmetric():
    a = Dataset.from_records(["Inv", "Gst"], [["I1", "G1"], ["I2", "G2"], ["I3", "G9"]])
    b = Dataset.from_records(["Bill", "Gstin"], [["I1", "G1"], ["I3", "G3"], ["I2", "G2"]])
    forward = [ColumnPair("Inv", "Bill", "1"), ColumnPair("Gst", "Gstin", "2")]
    backward = list(reversed(forward))

    r1 = reconcile(a, b, forward)
    assert reconcile(a, b, forward) == r1

    r2 = reconcile(a, b, backward)
    assert r1.matched[0].composite_key != r2.matched[0].composite_key
    assert [(e.index_a, e.index_b) for e in r1.matched] == [(e.index_a, e.index_b) for e in r2.matched]
    assert [e.index for e in r1.only_in_a] == [e.index for e in r2.only_in_a] == [2]
    assert [e.index for e in r1.only_in_b] == [e.index for e in r2.only_in_b] == [1]


def test_mixed_types_match_on_normalized_key():
    a = Dataset.from_records(["Inv"], [[100], [" 7 "]])
    b = Dataset.from_records(["Bill"], [["100"], [7.0]])
    result = reconcile(a, b, [ColumnPair("Inv", "Bill", "1")])
    assert result.matched_count == 2


def test_stages_match_facade():
    a, b = _invoice_example()
    mapping = [ColumnPair("Invoice No", "Bill No", "1")]
    stages = ReconciliationStages(a, b, mapping)
    keyed_a, keyed_b = stages.key()
    index_b = stages.index(keyed_b)
    assert list(index_b) == [k.composite_key for k in keyed_b.rows]
    matched, only_a, only_b = stages.classify(keyed_a, keyed_b, index_b)
    result = stages.result(stages.annotate(matched), only_a, only_b, keyed_a, keyed_b)
    assert result == reconcile(a, b, mapping)
    assert result.summary()["counts"]["total"] == 2
