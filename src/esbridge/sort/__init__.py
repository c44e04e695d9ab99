"""Precision-safe sort values for search_after cursors."""

from esbridge.sort.values import SortKind, SortValue, SortValues
from esbridge.sort.typed import SortDecoder, decode_typed

__all__ = [
    "SortKind",
    "SortValue",
    "SortValues",
    "SortDecoder",
    "decode_typed",
]
