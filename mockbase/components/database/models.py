"""
Database component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from mockbase.core.entities import Record

FilterOperator = Literal["eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "in"]


@dataclass(frozen=True)
class Filter:
    """A single column predicate; all filters of a query must match."""

    column: str
    operator: FilterOperator
    value: Any


# --- Input Models ---


@dataclass(frozen=True)
class InsertInput:
    table: str
    records: list[Record]


@dataclass(frozen=True)
class UpdateInput:
    table: str
    record_id: str
    patch: Record


@dataclass(frozen=True)
class UpsertInput:
    table: str
    records: list[Record]


@dataclass(frozen=True)
class GetInput:
    table: str
    record_id: str


@dataclass(frozen=True)
class ListInput:
    """Filtered, ordered, paginated read of one table."""

    table: str
    filters: list[Filter] = field(default_factory=list)
    order_by: str | None = None
    ascending: bool = True
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class DeleteInput:
    table: str
    record_id: str


# --- Output Models ---


@dataclass
class RecordOutput:
    record: Record | None = None
    error: str | None = None
    changed: bool = False

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class RecordListOutput:
    records: list[Record] = field(default_factory=list)
    error: str | None = None
    changed: bool = False

    @property
    def success(self) -> bool:
        return self.error is None
