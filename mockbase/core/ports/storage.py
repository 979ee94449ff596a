"""
Key/Value Storage Port.

Protocol-based interface for the string key/value stores that back the mock
backend. Implementations: in-memory, plain files, OS keyring, encrypted wrapper.

Invariants:
- Values are opaque strings; serialization is the caller's concern
- Backends raise on failure; only StorageAdapter swallows errors
"""

from __future__ import annotations

from typing import Protocol


class KeyValueStorePort(Protocol):
    """
    Raw key/value backend.

    Errors propagate as StorageError (or the backend's own exception types);
    the tiered StorageAdapter is the layer that fails soft.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        ...


class StorageAdapterPort(Protocol):
    """
    Fail-soft storage used by the persistence layer.

    get returns None on any failure; set/remove silently drop the write.
    """

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class CipherPort(Protocol):
    """Reversible string transform used by the encrypted storage tier."""

    def encrypt(self, plain: str) -> str: ...

    def decrypt(self, token: str) -> str: ...


class StorageError(Exception):
    """Base class for storage errors."""


class CipherError(StorageError):
    """Raised when a stored value cannot be decrypted."""
