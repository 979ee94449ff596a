"""In-memory table store over the backend state's tables map."""

from mockbase.core.entities import Record


class InMemoryTableStore:
    def __init__(self, tables: dict[str, dict[str, Record]]) -> None:
        self._tables = tables

    def get_table(self, name: str) -> dict[str, Record] | None:
        return self._tables.get(name)

    def ensure_table(self, name: str) -> dict[str, Record]:
        return self._tables.setdefault(name, {})

    def table_names(self) -> list[str]:
        return list(self._tables)
