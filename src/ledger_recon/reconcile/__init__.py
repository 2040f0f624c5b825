"""
Reconcile package: Key, match and classify rows from two datasets.
"""
from .engine import ReconciliationStages, reconcile
from .errors import ConfigurationError, DataShapeError
from .keys import KeyBuilder, display_key
from .mapper import ColumnMapper, HeuristicSuggester, MappingSuggester
from .models import (
    ColumnPair,
    Dataset,
    FieldMismatch,
    KeyedRow,
    MatchedEntry,
    ResultSet,
    Side,
    UnmatchedEntry,
)
from .normalize import normalize

__all__ = [
    "ColumnMapper",
    "ColumnPair",
    "ConfigurationError",
    "DataShapeError",
    "Dataset",
    "FieldMismatch",
    "HeuristicSuggester",
    "KeyBuilder",
    "KeyedRow",
    "MappingSuggester",
    "MatchedEntry",
    "ReconciliationStages",
    "ResultSet",
    "Side",
    "UnmatchedEntry",
    "display_key",
    "normalize",
    "reconcile",
]
