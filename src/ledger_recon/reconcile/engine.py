"""
Engine: Three-way reconciliation of two datasets by composite key.

The run is split into stages that each take immutable input and return new
output, so callers can report progress between them:

    key_dataset -> index_keys -> classify -> annotate
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import ConfigurationError
from .keys import KeyBuilder
from .models import (
    ColumnPair,
    Dataset,
    FieldMismatch,
    KeyedRow,
    Mapping,
    MatchedEntry,
    ResultSet,
    Side,
    UnmatchedEntry,
    key_pairs,
)


@dataclass(frozen=True)
class KeyedDataset:
    side: Side
    rows: Tuple[KeyedRow, ...]
    skipped: int


KeyIndex = Dict[str, Tuple[int, ...]]


def validate_mapping(
    mapping: Sequence[ColumnPair],
    dataset_a: Dataset,
    dataset_b: Dataset,
    strict: bool = False,
) -> Tuple[KeyBuilder, KeyBuilder]:
    """Check the mapping against both datasets and return one KeyBuilder per side."""
    if not mapping:
        raise ConfigurationError("Mapping is empty; at least one column pair is required")
    if not key_pairs(mapping):
        raise ConfigurationError("Mapping has no key pair; at least one pair must have role 'key'")
    ids = [p.pair_id for p in mapping]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(f"Mapping pair ids must be unique: {ids}")

    builder_a = KeyBuilder.for_dataset(mapping, dataset_a, Side.A, strict=strict)
    builder_b = KeyBuilder.for_dataset(mapping, dataset_b, Side.B, strict=strict)
    return builder_a, builder_b


def key_dataset(dataset: Dataset, builder: KeyBuilder) -> KeyedDataset:
    keyed: List[KeyedRow] = []
    skipped = 0
    for idx, row in enumerate(dataset.rows):
        kr = builder.build(row, idx)
        if kr is None:
            skipped += 1
            continue
        keyed.append(kr)
    return KeyedDataset(side=builder.side, rows=tuple(keyed), skipped=skipped)


def index_keys(keyed: KeyedDataset) -> KeyIndex:
    """Map composite key -> positions (into keyed.rows) in source order."""
    index: Dict[str, List[int]] = {}
    for pos, kr in enumerate(keyed.rows):
        index.setdefault(kr.composite_key, []).append(pos)
    return {k: tuple(v) for k, v in index.items()}


def classify(
    keyed_a: KeyedDataset,
    keyed_b: KeyedDataset,
    index_b: KeyIndex,
) -> Tuple[Tuple[MatchedEntry, ...], Tuple[UnmatchedEntry, ...], Tuple[UnmatchedEntry, ...]]:
    """
    Partition keyed rows into matched / only-in-A / only-in-B.

    Duplicate keys pair ordinally: the i-th A row with a key takes the i-th B row
    with that key. Rows left over on either side stay unmatched.
    """
    cursor: Dict[str, int] = {}
    used_b = set()
    matched: List[MatchedEntry] = []
    only_a: List[UnmatchedEntry] = []

    for kr in keyed_a.rows:
        positions = index_b.get(kr.composite_key, ())
        n = cursor.get(kr.composite_key, 0)
        if n < len(positions):
            cursor[kr.composite_key] = n + 1
            pos = positions[n]
            used_b.add(pos)
            partner = keyed_b.rows[pos]
            matched.append(
                MatchedEntry(
                    composite_key=kr.composite_key,
                    row_a=kr.row,
                    row_b=partner.row,
                    index_a=kr.index,
                    index_b=partner.index,
                )
            )
        else:
            only_a.append(UnmatchedEntry(kr.composite_key, kr.row, kr.index, Side.A))

    only_b = [
        UnmatchedEntry(kr.composite_key, kr.row, kr.index, Side.B)
        for pos, kr in enumerate(keyed_b.rows)
        if pos not in used_b
    ]
    return tuple(matched), tuple(only_a), tuple(only_b)


def field_mismatches(
    entry: MatchedEntry,
    mapping: Sequence[ColumnPair],
    builder_a: KeyBuilder,
    builder_b: KeyBuilder,
) -> Tuple[FieldMismatch, ...]:
    out: List[FieldMismatch] = []
    for pair in mapping:
        va = builder_a.value(entry.row_a, pair)
        vb = builder_b.value(entry.row_b, pair)
        if va != vb:
            out.append(FieldMismatch(pair_id=pair.pair_id, value_a=va, value_b=vb))
    return tuple(out)


def annotate(
    matched: Sequence[MatchedEntry],
    mapping: Sequence[ColumnPair],
    builder_a: KeyBuilder,
    builder_b: KeyBuilder,
) -> Tuple[MatchedEntry, ...]:
    """Return copies of matched entries carrying their field mismatches."""
    out: List[MatchedEntry] = []
    for entry in matched:
        mismatches = field_mismatches(entry, mapping, builder_a, builder_b)
        if mismatches:
            entry = MatchedEntry(
                composite_key=entry.composite_key,
                row_a=entry.row_a,
                row_b=entry.row_b,
                index_a=entry.index_a,
                index_b=entry.index_b,
                mismatches=mismatches,
            )
        out.append(entry)
    return tuple(out)


class ReconciliationStages:
    """
    Stage-by-stage driver for one run. Call the stages in order, or use run().
    """

    def __init__(
        self,
        dataset_a: Dataset,
        dataset_b: Dataset,
        mapping: Sequence[ColumnPair],
        strict: bool = False,
    ) -> None:
        self.mapping: Mapping = tuple(mapping)
        self.dataset_a = dataset_a
        self.dataset_b = dataset_b
        self.builder_a, self.builder_b = validate_mapping(self.mapping, dataset_a, dataset_b, strict=strict)

    def key(self) -> Tuple[KeyedDataset, KeyedDataset]:
        return key_dataset(self.dataset_a, self.builder_a), key_dataset(self.dataset_b, self.builder_b)

    def index(self, keyed_b: KeyedDataset) -> KeyIndex:
        return index_keys(keyed_b)

    def classify(self, keyed_a: KeyedDataset, keyed_b: KeyedDataset, index_b: KeyIndex):
        return classify(keyed_a, keyed_b, index_b)

    def annotate(self, matched: Sequence[MatchedEntry]) -> Tuple[MatchedEntry, ...]:
        return annotate(matched, self.mapping, self.builder_a, self.builder_b)

    def result(
        self,
        matched: Sequence[MatchedEntry],
        only_a: Sequence[UnmatchedEntry],
        only_b: Sequence[UnmatchedEntry],
        keyed_a: KeyedDataset,
        keyed_b: KeyedDataset,
    ) -> ResultSet:
        return ResultSet(
            matched=tuple(matched),
            only_in_a=tuple(only_a),
            only_in_b=tuple(only_b),
            mapping=self.mapping,
            skipped_a=keyed_a.skipped,
            skipped_b=keyed_b.skipped,
        )

    def run(self) -> ResultSet:
        keyed_a, keyed_b = self.key()
        index_b = self.index(keyed_b)
        matched, only_a, only_b = self.classify(keyed_a, keyed_b, index_b)
        matched = self.annotate(matched)
        return self.result(matched, only_a, only_b, keyed_a, keyed_b)


def reconcile(
    dataset_a: Dataset,
    dataset_b: Dataset,
    mapping: Sequence[ColumnPair],
    strict: bool = False,
) -> ResultSet:
    """
    Reconcile dataset A (reference) against dataset B (counterparty).

    Raises ConfigurationError before any work if the mapping is empty, has no key
    pair, or names a header missing from its dataset.
    """
    return ReconciliationStages(dataset_a, dataset_b, mapping, strict=strict).run()
