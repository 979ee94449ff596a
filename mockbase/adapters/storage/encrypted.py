"""
Encrypted Storage Wrapper.

Application-level encryption around any KeyValueStorePort. Used as the
secure tier when no OS keystore is available.

Ciphers:
- FernetCipher: symmetric AES + HMAC via `cryptography`, needs a key
- XorObfuscationCipher: repeating-key XOR + base64; obfuscation only,
  used when no encryption key is configured

Values are stored under "{prefix}{key}" so encrypted and plain entries
never collide when both tiers share one backing directory.
"""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from mockbase.core.ports.codec import CodecError, CodecPort
from mockbase.core.ports.storage import CipherError, CipherPort, KeyValueStorePort

DEFAULT_OBFUSCATION_SECRET = "mockbase_secure_storage_key"


def generate_encryption_key() -> str:
    """New urlsafe-base64 Fernet key, suitable for the encryption_key setting."""
    return Fernet.generate_key().decode("utf-8")


class FernetCipher:
    def __init__(self, key: str | bytes) -> None:
        self._fernet = Fernet(key.encode("utf-8") if isinstance(key, str) else key)

    def encrypt(self, plain: str) -> str:
        return self._fernet.encrypt(plain.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken:
            raise CipherError("Invalid encryption token") from None


class XorObfuscationCipher:
    """Not cryptographically secure; keeps secrets out of plain sight only."""

    def __init__(self, codec: CodecPort, secret: str = DEFAULT_OBFUSCATION_SECRET) -> None:
        if not secret:
            raise ValueError("Obfuscation secret must not be empty")
        self._codec = codec
        self._key = secret.encode("utf-8")

    def _xor(self, data: bytes) -> bytes:
        key = self._key
        return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))

    def encrypt(self, plain: str) -> str:
        return self._codec.encode(self._xor(plain.encode("utf-8")))

    def decrypt(self, token: str) -> str:
        try:
            return self._xor(self._codec.decode(token)).decode("utf-8")
        except (CodecError, UnicodeDecodeError) as e:
            raise CipherError(f"Failed to deobfuscate data: {e}") from e


class EncryptedStore:
    """KeyValueStorePort that encrypts values before handing them to `inner`."""

    def __init__(
        self,
        inner: KeyValueStorePort,
        cipher: CipherPort,
        *,
        prefix: str = "secure_",
    ) -> None:
        self.inner = inner
        self.cipher = cipher
        self.prefix = prefix

    def get(self, key: str) -> str | None:
        stored = self.inner.get(f"{self.prefix}{key}")
        if not stored:
            return None
        return self.cipher.decrypt(stored)

    def set(self, key: str, value: str) -> None:
        self.inner.set(f"{self.prefix}{key}", self.cipher.encrypt(value))

    def remove(self, key: str) -> None:
        self.inner.remove(f"{self.prefix}{key}")
