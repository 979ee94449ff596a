"""
Tiered Storage Adapter.

Implements StorageAdapterPort by routing each key to one of two backends:

- secure tier: keys containing "auth", "token" or "session"
- plain tier: everything else

Key behaviors:
- Routing is a case-sensitive substring match on the whole key
- Every operation fails soft: errors are logged, get returns None,
  set/remove become no-ops. Callers get no signal that a write was lost.
- Backends are chosen once, at construction, by create_storage_adapter
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from mockbase.adapters.codec import select_codec
from mockbase.adapters.storage.encrypted import (
    DEFAULT_OBFUSCATION_SECRET,
    EncryptedStore,
    FernetCipher,
    XorObfuscationCipher,
)
from mockbase.adapters.storage.file_store import FileKeyValueStore
from mockbase.adapters.storage.keyring_store import KeyringStore, keyring_available
from mockbase.adapters.storage.memory import InMemoryKeyValueStore
from mockbase.core.ports.storage import CipherPort, KeyValueStorePort

logger = logging.getLogger(__name__)

SENSITIVE_KEY_MARKERS = ("auth", "token", "session")

SecureBackend = Literal["auto", "keyring", "encrypted", "memory"]
PlainBackend = Literal["file", "memory"]


def is_sensitive_key(key: str) -> bool:
    return any(marker in key for marker in SENSITIVE_KEY_MARKERS)


class StorageAdapter:
    """Fail-soft, two-tier key/value storage."""

    def __init__(
        self,
        secure: KeyValueStorePort,
        plain: KeyValueStorePort,
        *,
        verbose: bool = True,
    ) -> None:
        """
        Args:
            secure: Backend for auth-sensitive keys
            plain: Backend for everything else
            verbose: Log failures at error level (development); debug otherwise
        """
        self.secure = secure
        self.plain = plain
        self.verbose = verbose

    def store_for(self, key: str) -> KeyValueStorePort:
        return self.secure if is_sensitive_key(key) else self.plain

    def get(self, key: str) -> str | None:
        try:
            return self.store_for(key).get(key)
        except Exception as e:
            self._log_failure("read", key, e)
            return None

    def set(self, key: str, value: str) -> None:
        try:
            self.store_for(key).set(key, value)
        except Exception as e:
            self._log_failure("write", key, e)

    def remove(self, key: str) -> None:
        try:
            self.store_for(key).remove(key)
        except Exception as e:
            self._log_failure("remove", key, e)

    def _log_failure(self, action: str, key: str, exc: Exception) -> None:
        level = logging.ERROR if self.verbose else logging.DEBUG
        logger.log(level, "Failed to %s %s: %s", action, key, exc)


def _build_cipher(
    encryption_key: str | None,
    obfuscation_secret: str,
    prefer_native_codec: bool,
) -> CipherPort:
    if encryption_key:
        return FernetCipher(encryption_key)
    return XorObfuscationCipher(select_codec(prefer_native_codec), obfuscation_secret)


def create_storage_adapter(
    storage_dir: str | Path | None = None,
    *,
    secure_backend: SecureBackend = "auto",
    plain_backend: PlainBackend = "file",
    keyring_service: str = "mockbase",
    encryption_key: str | None = None,
    obfuscation_secret: str = DEFAULT_OBFUSCATION_SECRET,
    prefer_native_codec: bool = True,
    keyring_backend: Any | None = None,
    verbose: bool = True,
) -> StorageAdapter:
    """
    Factory function to create a StorageAdapter from config.

    Args:
        storage_dir: Directory for the file backend (required for plain_backend="file")
        secure_backend: "keyring", "encrypted", "memory", or "auto"
            ("auto" picks keyring when a usable backend exists, else "encrypted")
        plain_backend: "file" or "memory"
        keyring_service: Service name for keyring entries
        encryption_key: Fernet key; XOR obfuscation is used when absent
        obfuscation_secret: Secret for the XOR fallback cipher
        prefer_native_codec: Use the stdlib base64 when available
        keyring_backend: Explicit keyring backend (tests, custom keystores)
        verbose: Log storage failures at error level

    Returns:
        Configured StorageAdapter
    """
    plain: KeyValueStorePort
    if plain_backend == "file":
        if storage_dir is None:
            raise ValueError("storage_dir is required for the file backend")
        plain = FileKeyValueStore(storage_dir)
    elif plain_backend == "memory":
        plain = InMemoryKeyValueStore()
    else:
        raise ValueError(f"Unknown plain backend: {plain_backend}")

    if secure_backend == "auto":
        secure_backend = "keyring" if keyring_available(keyring_backend) else "encrypted"

    secure: KeyValueStorePort
    if secure_backend == "keyring":
        secure = KeyringStore(keyring_service, backend=keyring_backend)
    elif secure_backend == "encrypted":
        cipher = _build_cipher(encryption_key, obfuscation_secret, prefer_native_codec)
        secure = EncryptedStore(plain, cipher)
    elif secure_backend == "memory":
        secure = InMemoryKeyValueStore()
    else:
        raise ValueError(f"Unknown secure backend: {secure_backend}")

    logger.debug(
        "Storage adapter ready: secure=%s plain=%s",
        type(secure).__name__,
        type(plain).__name__,
    )
    return StorageAdapter(secure, plain, verbose=verbose)
