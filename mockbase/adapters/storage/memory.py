"""In-memory key/value store adapter.

Implements KeyValueStorePort without touching disk. State lives as long as
the instance, so sharing one instance between two services simulates a
restart with persistent storage.
"""


class InMemoryKeyValueStore:
    """In-memory storage - suitable for tests and ephemeral demos."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        """Get value by key."""
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        """Save value with key."""
        self._values[key] = value

    def remove(self, key: str) -> None:
        """Delete value by key."""
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)

    def clear(self) -> None:
        """Clear all values - useful for testing."""
        self._values.clear()
