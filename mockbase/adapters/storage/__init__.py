"""
Storage adapters - key/value backends and the tiered fail-soft adapter.
"""

from .adapter import (
    SENSITIVE_KEY_MARKERS,
    StorageAdapter,
    create_storage_adapter,
    is_sensitive_key,
)
from .encrypted import (
    EncryptedStore,
    FernetCipher,
    XorObfuscationCipher,
    generate_encryption_key,
)
from .file_store import FileKeyValueStore
from .keyring_store import KeyringStore, keyring_available
from .memory import InMemoryKeyValueStore

__all__ = [
    "SENSITIVE_KEY_MARKERS",
    "StorageAdapter",
    "create_storage_adapter",
    "is_sensitive_key",
    "EncryptedStore",
    "FernetCipher",
    "XorObfuscationCipher",
    "generate_encryption_key",
    "FileKeyValueStore",
    "KeyringStore",
    "keyring_available",
    "InMemoryKeyValueStore",
]
