# mockbase ports (Protocol interfaces)
# Abstract interfaces for adapters; no implementations here

from mockbase.core.ports.codec import BASE64_ALPHABET, CodecError, CodecPort
from mockbase.core.ports.storage import (
    CipherError,
    CipherPort,
    KeyValueStorePort,
    StorageAdapterPort,
    StorageError,
)
from mockbase.core.ports.time import TimePort

__all__ = [
    # Codec
    "BASE64_ALPHABET",
    "CodecError",
    "CodecPort",
    # Storage
    "CipherError",
    "CipherPort",
    "KeyValueStorePort",
    "StorageAdapterPort",
    "StorageError",
    # Time
    "TimePort",
]
