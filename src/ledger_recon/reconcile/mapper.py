"""
Mapper: Editable column mapping plus header-based auto-suggestion.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Set

from ..catalog.models import DEFAULT_CATEGORIES, CategoryCatalog, FieldCategory
from .models import KEY_ROLE, PAIR_ROLES, ColumnPair, Mapping


class MappingSuggester(Protocol):
    def suggest(self, headers_a: Sequence[str], headers_b: Sequence[str]) -> Mapping:
        ...


def _first_unused(headers: Sequence[str], used: Set[int], category: FieldCategory) -> Optional[int]:
    for idx, header in enumerate(headers):
        if idx in used:
            continue
        if category.matches(header):
            return idx
    return None


class HeuristicSuggester:
    """
    Suggest key pairs by walking the category table in priority order.

    For each category the first unused header on each side that contains any
    fragment (case-insensitive) is taken; a pair is emitted only when both sides
    have one. Never raises on odd header values.
    """

    def __init__(self, catalog: Optional[CategoryCatalog] = None) -> None:
        self.catalog = catalog or DEFAULT_CATEGORIES

    def suggest(self, headers_a: Sequence[str], headers_b: Sequence[str]) -> Mapping:
        headers_a = ["" if h is None else str(h) for h in headers_a]
        headers_b = ["" if h is None else str(h) for h in headers_b]
        used_a: Set[int] = set()
        used_b: Set[int] = set()
        pairs: List[ColumnPair] = []

        for category in self.catalog.categories:
            ia = _first_unused(headers_a, used_a, category)
            ib = _first_unused(headers_b, used_b, category)
            if ia is None or ib is None:
                continue
            used_a.add(ia)
            used_b.add(ib)
            pairs.append(
                ColumnPair(
                    source_key=headers_a[ia],
                    target_key=headers_b[ib],
                    pair_id=str(len(pairs) + 1),
                )
            )
        return tuple(pairs)


@dataclass
class _Draft:
    pair_id: str
    source_key: str = ""
    target_key: str = ""
    role: str = KEY_ROLE

    @property
    def complete(self) -> bool:
        return bool(self.source_key) and bool(self.target_key)


class ColumnMapper:
    """
    Mutable mapping under construction. freeze() hands the engine an immutable Mapping.

    Starts with a single blank row, like a fresh mapping form.
    """

    def __init__(self, suggester: Optional[MappingSuggester] = None) -> None:
        self.suggester: MappingSuggester = suggester or HeuristicSuggester()
        self._next_id = 1
        self._drafts: List[_Draft] = [self._new_draft()]

    def _new_draft(self, source: str = "", target: str = "", role: str = KEY_ROLE) -> _Draft:
        if role not in PAIR_ROLES:
            raise ValueError(f"role must be one of {PAIR_ROLES}, got {role!r}")
        draft = _Draft(pair_id=str(self._next_id), source_key=source, target_key=target, role=role)
        self._next_id += 1
        return draft

    def _find(self, pair_id: str) -> _Draft:
        for d in self._drafts:
            if d.pair_id == pair_id:
                return d
        raise KeyError(f"No mapping row with id {pair_id!r}")

    @property
    def pairs(self) -> Mapping:
        """Complete pairs in display order."""
        return tuple(
            ColumnPair(source_key=d.source_key, target_key=d.target_key, pair_id=d.pair_id, role=d.role)
            for d in self._drafts
            if d.complete
        )

    @property
    def is_empty(self) -> bool:
        return not any(d.complete for d in self._drafts)

    @property
    def is_untouched(self) -> bool:
        if len(self._drafts) != 1:
            return False
        only = self._drafts[0]
        return not only.source_key and not only.target_key

    def __len__(self) -> int:
        return len(self._drafts)

    def add(self, source: str = "", target: str = "", role: str = KEY_ROLE) -> str:
        draft = self._new_draft(source, target, role)
        self._drafts.append(draft)
        return draft.pair_id

    def update(
        self,
        pair_id: str,
        source: Optional[str] = None,
        target: Optional[str] = None,
        role: Optional[str] = None,
    ) -> None:
        draft = self._find(pair_id)
        if source is not None:
            draft.source_key = source
        if target is not None:
            draft.target_key = target
        if role is not None:
            if role not in PAIR_ROLES:
                raise ValueError(f"role must be one of {PAIR_ROLES}, got {role!r}")
            draft.role = role

    def remove(self, pair_id: str) -> bool:
        """Remove a row; the last remaining row is kept. Returns True if removed."""
        if len(self._drafts) <= 1:
            return False
        draft = self._find(pair_id)
        self._drafts.remove(draft)
        return True

    def auto_fill(self, headers_a: Sequence[str], headers_b: Sequence[str]) -> bool:
        """
        Prefill from the suggester while the form is untouched: a single row with
        both sides blank.

        Returns True if a suggestion was applied. A user-made row, even half
        filled, is never replaced.
        """
        if not self.is_untouched or not headers_a or not headers_b:
            return False
        suggested = self.suggester.suggest(headers_a, headers_b)
        if not suggested:
            return False
        self._drafts = []
        self._next_id = 1
        for pair in suggested:
            self._drafts.append(self._new_draft(pair.source_key, pair.target_key, pair.role))
        return True

    def freeze(self) -> Mapping:
        return self.pairs
