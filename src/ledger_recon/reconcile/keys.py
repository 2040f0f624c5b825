"""
KeyBuilder: Composite keys from mapped columns of one dataset side.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .errors import ConfigurationError, DataShapeError
from .models import ColumnPair, Dataset, KeyedRow, Row, Side, key_pairs
from .normalize import normalize

KEY_SEPARATOR = "\x1f"
_ESCAPE = "\x1b"


def _escape_field(value: str) -> str:
    # escape char doubled first so the mapping stays injective
    return value.replace(_ESCAPE, _ESCAPE * 2).replace(KEY_SEPARATOR, _ESCAPE + KEY_SEPARATOR)


def join_key(fields: Sequence[str]) -> str:
    return KEY_SEPARATOR.join(_escape_field(f) for f in fields)


def split_key(key: str) -> List[str]:
    """Inverse of join_key; used for display."""
    fields: List[str] = []
    buf: List[str] = []
    i = 0
    while i < len(key):
        ch = key[i]
        if ch == _ESCAPE and i + 1 < len(key):
            buf.append(key[i + 1])
            i += 2
            continue
        if ch == KEY_SEPARATOR:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf))
    return fields


def display_key(key: str, sep: str = " | ") -> str:
    return sep.join(split_key(key))


class KeyBuilder:
    """
    Resolve mapped header positions for one side once, then key rows.

    Raises ConfigurationError at construction if a mapped header is absent.
    """

    def __init__(
        self,
        mapping: Sequence[ColumnPair],
        headers: Sequence[str],
        side: Side,
        strict: bool = False,
    ) -> None:
        self.side = side
        self.strict = strict
        self.width = len(headers)
        self.key_pairs = key_pairs(mapping)
        lookup = {h: i for i, h in enumerate(headers)}

        missing = [p.header_for(side) for p in mapping if p.header_for(side) not in lookup]
        if missing:
            raise ConfigurationError(
                f"Mapped header(s) not found in dataset {side.value}: {missing}"
            )
        self._positions: Dict[str, int] = {p.pair_id: lookup[p.header_for(side)] for p in mapping}

    @classmethod
    def for_dataset(
        cls,
        mapping: Sequence[ColumnPair],
        dataset: Dataset,
        side: Side,
        strict: bool = False,
    ) -> "KeyBuilder":
        return cls(mapping, dataset.headers, side, strict=strict)

    def position(self, pair: ColumnPair) -> int:
        return self._positions[pair.pair_id]

    def value(self, row: Row, pair: ColumnPair) -> str:
        """Normalized value of a mapped cell; cells past the end of a short row are absent."""
        idx = self._positions[pair.pair_id]
        return normalize(row[idx]) if idx < len(row) else ""

    def build(self, row: Row, index: int) -> Optional[KeyedRow]:
        """Return a KeyedRow, or None when any key field is empty."""
        if self.strict and len(row) < self.width:
            raise DataShapeError(
                f"Row {index} in dataset {self.side.value} has {len(row)} cells, expected {self.width}"
            )
        fields = []
        for pair in self.key_pairs:
            value = self.value(row, pair)
            if not value:
                return None
            fields.append(value)
        return KeyedRow(composite_key=join_key(fields), row=row, index=index)
