"""
OS Keystore Adapter.

Implements KeyValueStorePort on top of the `keyring` library
(macOS Keychain, Windows Credential Locker, Secret Service, ...).
Each key becomes one credential under a fixed service name.
"""

from __future__ import annotations

import logging
from typing import Any

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from mockbase.core.ports.storage import StorageError

logger = logging.getLogger(__name__)


def keyring_available(backend: Any | None = None) -> bool:
    """
    Capability check: is a real (non-failing) keyring backend installed?

    Args:
        backend: Explicit backend to check; defaults to the active one
    """
    try:
        active = backend if backend is not None else keyring.get_keyring()
    except KeyringError as e:
        logger.debug("Keyring backend lookup failed: %s", e)
        return False
    return not isinstance(active, fail.Keyring)


class KeyringStore:
    """Keystore-backed storage for auth-sensitive keys."""

    def __init__(self, service_name: str = "mockbase", backend: Any | None = None) -> None:
        """
        Args:
            service_name: Keyring service under which all keys are stored
            backend: Explicit keyring backend; the process-wide one if None
        """
        self.service_name = service_name
        self._backend = backend

    def _kr(self) -> Any:
        return self._backend if self._backend is not None else keyring.get_keyring()

    def get(self, key: str) -> str | None:
        try:
            return self._kr().get_password(self.service_name, key)
        except KeyringError as e:
            raise StorageError(f"Keyring read failed for {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._kr().set_password(self.service_name, key, value)
        except KeyringError as e:
            raise StorageError(f"Keyring write failed for {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._kr().delete_password(self.service_name, key)
        except PasswordDeleteError:
            # Absent key
            return
        except KeyringError as e:
            raise StorageError(f"Keyring delete failed for {key}: {e}") from e
