"""
Local Filesystem Key/Value Adapter.

Implements KeyValueStorePort using one file per key.
Plays the role of browser localStorage for the plain storage tier.

Directory structure: {base_path}/{safe_key}.value

Invariants:
- Writes are atomic (temp file + os.replace); a crash never leaves a
  half-written value behind
- Absent key reads return None
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from mockbase.core.ports.storage import StorageError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileKeyValueStore:
    """
    Filesystem implementation of KeyValueStorePort.

    Values are written verbatim as UTF-8 text; the persistence layer already
    hands over serialized JSON.
    """

    def __init__(self, base_path: str | Path, *, create_dirs: bool = True) -> None:
        """
        Initialize file storage.

        Args:
            base_path: Root directory for storage
            create_dirs: Whether to create the directory if it doesn't exist
        """
        self.base_path = Path(base_path)

        if create_dirs:
            self.base_path.mkdir(parents=True, exist_ok=True)

    def _key_to_path(self, key: str) -> Path:
        """Convert storage key to a file path inside base_path."""
        # Sanitize key to prevent directory traversal
        safe_key = _UNSAFE_CHARS.sub("_", key.replace("..", "")).lstrip(".")
        if not safe_key:
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.base_path / f"{safe_key}.value"

    def get(self, key: str) -> str | None:
        path = self._key_to_path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._key_to_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", dir=path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tf.write(value)
                temp_path = Path(tf.name)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

        try:
            os.replace(temp_path, path)
        except OSError as e:
            # Clean up temp file if replace failed
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._key_to_path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    def keys(self) -> list[str]:
        """Sanitized keys currently on disk (for inspection tools)."""
        return sorted(p.stem for p in self.base_path.glob("*.value"))
