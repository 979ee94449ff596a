"""
Row predicates, ordering and pagination for table reads.

Key behaviors:
- A missing column reads as None
- Comparisons between incompatible types never match (no TypeError escapes)
- like/ilike use SQL LIKE wildcards ("%" any run, "_" one character) and
  match the whole value; ilike ignores case
- Ordering is stable; incomparable values keep their relative order
"""

from __future__ import annotations

import functools
import operator
import re
from collections.abc import Callable, Iterable
from typing import Any, get_args

from mockbase.core.entities import Record

from .models import Filter, FilterOperator

SUPPORTED_OPERATORS: tuple[str, ...] = get_args(FilterOperator)

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "neq": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


@functools.lru_cache(maxsize=256)
def like_pattern(pattern: str, ignore_case: bool = False) -> re.Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    flags = re.DOTALL | (re.IGNORECASE if ignore_case else 0)
    return re.compile("".join(parts), flags)


def validate_filter(filt: Filter) -> str | None:
    if filt.operator not in SUPPORTED_OPERATORS:
        return f"Unsupported filter operator: {filt.operator}"
    if filt.operator in ("like", "ilike") and not isinstance(filt.value, str):
        return f"Filter '{filt.operator}' on {filt.column} requires a string pattern"
    if filt.operator == "in" and isinstance(filt.value, (str, bytes)):
        return f"Filter 'in' on {filt.column} requires a list of values"
    return None


def matches(record: Record, filt: Filter) -> bool:
    value = record.get(filt.column)

    if filt.operator in _COMPARATORS:
        try:
            return bool(_COMPARATORS[filt.operator](value, filt.value))
        except TypeError:
            return False

    if filt.operator in ("like", "ilike"):
        if value is None:
            return False
        regex = like_pattern(filt.value, filt.operator == "ilike")
        return regex.fullmatch(str(value)) is not None

    if filt.operator == "in":
        try:
            return value in filt.value
        except TypeError:
            return False

    return False


def apply_filters(records: Iterable[Record], filters: Iterable[Filter]) -> list[Record]:
    filters = list(filters)
    return [r for r in records if all(matches(r, f) for f in filters)]


def _compare(a: Any, b: Any) -> int:
    try:
        if a < b:
            return -1
        if a > b:
            return 1
    except TypeError:
        return 0
    return 0


def order_records(records: list[Record], column: str, ascending: bool = True) -> list[Record]:
    def compare(x: Record, y: Record) -> int:
        result = _compare(x.get(column), y.get(column))
        return result if ascending else -result

    return sorted(records, key=functools.cmp_to_key(compare))


def paginate(records: list[Record], limit: int | None, offset: int = 0) -> list[Record]:
    if limit is None:
        return records[offset:]
    return records[offset : offset + limit]
