"""
Database component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from mockbase.core.entities import Record


class TableStorePort(Protocol):
    """Named tables of records keyed by id."""

    def get_table(self, name: str) -> dict[str, Record] | None:
        """Get a table, or None if it was never written."""
        ...

    def ensure_table(self, name: str) -> dict[str, Record]:
        """Get a table, creating it empty on first use."""
        ...

    def table_names(self) -> list[str]: ...


class IdGeneratorPort(Protocol):
    def new_id(self, prefix: str) -> str: ...


class TimePort(Protocol):
    """Port for time operations."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
