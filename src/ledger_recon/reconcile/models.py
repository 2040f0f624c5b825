"""
Models: Datasets, mappings and the immutable reconciliation result.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .errors import DataShapeError

Cell = Union[None, str, int, float, Decimal, bool, date, datetime, time]
Row = Tuple[Cell, ...]


class Side(str, Enum):
    A = "A"
    B = "B"


KEY_ROLE = "key"
COMPARE_ROLE = "compare"
PAIR_ROLES = (KEY_ROLE, COMPARE_ROLE)


@dataclass(frozen=True)
class Dataset:
    """
    Headers plus positionally aligned rows, as decoded from one sheet.

    Rows may be shorter than the header list; missing trailing cells are absent.
    """

    headers: Tuple[str, ...]
    rows: Tuple[Row, ...] = ()
    label: Optional[str] = None

    def __post_init__(self) -> None:
        headers = tuple(self.headers)
        seen = set()
        dupes = []
        for h in headers:
            if h in seen:
                dupes.append(h)
            seen.add(h)
        if dupes:
            where = f" {self.label!r}" if self.label else ""
            raise DataShapeError(f"Duplicate headers in dataset{where}: {dupes}")
        object.__setattr__(self, "headers", headers)
        object.__setattr__(self, "rows", tuple(tuple(r) for r in self.rows))

    @classmethod
    def from_records(
        cls,
        headers: Sequence[str],
        rows: Sequence[Sequence[Cell]],
        label: Optional[str] = None,
    ) -> "Dataset":
        return cls(headers=tuple(headers), rows=tuple(tuple(r) for r in rows), label=label)

    def __len__(self) -> int:
        return len(self.rows)

    def display_name(self, side: Side) -> str:
        return self.label or side.value


@dataclass(frozen=True)
class ColumnPair:
    source_key: str
    target_key: str
    pair_id: str
    role: str = KEY_ROLE

    def __post_init__(self) -> None:
        if self.role not in PAIR_ROLES:
            raise ValueError(f"role must be one of {PAIR_ROLES}, got {self.role!r}")

    @property
    def is_key(self) -> bool:
        return self.role == KEY_ROLE

    def header_for(self, side: Side) -> str:
        return self.source_key if side is Side.A else self.target_key

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.pair_id,
            "source": self.source_key,
            "target": self.target_key,
            "role": self.role,
        }


Mapping = Tuple[ColumnPair, ...]


def key_pairs(mapping: Sequence[ColumnPair]) -> Mapping:
    return tuple(p for p in mapping if p.is_key)


@dataclass(frozen=True)
class KeyedRow:
    composite_key: str
    row: Row
    index: int


@dataclass(frozen=True)
class FieldMismatch:
    pair_id: str
    value_a: str
    value_b: str


@dataclass(frozen=True)
class MatchedEntry:
    composite_key: str
    row_a: Row
    row_b: Row
    index_a: int
    index_b: int
    mismatches: Tuple[FieldMismatch, ...] = ()

    @property
    def has_mismatch(self) -> bool:
        return bool(self.mismatches)


@dataclass(frozen=True)
class UnmatchedEntry:
    composite_key: str
    row: Row
    index: int
    origin: Side


@dataclass(frozen=True)
class ResultSet:
    """
    Output of one reconciliation run. Never mutated; a new run builds a new one.
    """

    matched: Tuple[MatchedEntry, ...] = ()
    only_in_a: Tuple[UnmatchedEntry, ...] = ()
    only_in_b: Tuple[UnmatchedEntry, ...] = ()
    mapping: Mapping = ()
    skipped_a: int = 0
    skipped_b: int = 0
    _pairs_by_id: Dict[str, ColumnPair] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pairs_by_id", {p.pair_id: p for p in self.mapping})

    @property
    def matched_count(self) -> int:
        return len(self.matched)

    @property
    def only_in_a_count(self) -> int:
        return len(self.only_in_a)

    @property
    def only_in_b_count(self) -> int:
        return len(self.only_in_b)

    @property
    def total(self) -> int:
        return self.matched_count + self.only_in_a_count + self.only_in_b_count

    @property
    def mismatched_entries(self) -> Tuple[MatchedEntry, ...]:
        return tuple(e for e in self.matched if e.has_mismatch)

    @property
    def mismatch_count(self) -> int:
        return sum(len(e.mismatches) for e in self.matched)

    def pair(self, pair_id: str) -> ColumnPair:
        return self._pairs_by_id[pair_id]

    def mismatch_counts_by_pair(self) -> Dict[str, int]:
        counts: Counter = Counter()
        for entry in self.matched:
            for mm in entry.mismatches:
                counts[mm.pair_id] += 1
        # mapping order, pairs without mismatches included
        return {p.pair_id: counts.get(p.pair_id, 0) for p in self.mapping}

    def leftover_duplicate_keys(self) -> List[str]:
        """Keys that were matched but also left rows behind in an unmatched bucket."""
        matched_keys = {e.composite_key for e in self.matched}
        leftovers: List[str] = []
        seen = set()
        for entry in self.only_in_a + self.only_in_b:
            key = entry.composite_key
            if key in matched_keys and key not in seen:
                seen.add(key)
                leftovers.append(key)
        return leftovers

    def summary(self) -> Dict[str, Any]:
        return {
            "counts": {
                "matched": self.matched_count,
                "only_in_a": self.only_in_a_count,
                "only_in_b": self.only_in_b_count,
                "total": self.total,
                "matched_with_mismatches": len(self.mismatched_entries),
                "field_mismatches": self.mismatch_count,
            },
            "skipped_unkeyable": {"a": self.skipped_a, "b": self.skipped_b},
            "mismatches_by_pair": self.mismatch_counts_by_pair(),
            "leftover_duplicate_keys": len(self.leftover_duplicate_keys()),
            "mapping": [p.to_dict() for p in self.mapping],
        }
