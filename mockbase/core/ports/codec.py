from typing import Protocol

BASE64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


class CodecPort(Protocol):
    """Binary-to-text codec (standard base64 alphabet)."""

    def encode(self, data: bytes) -> str: ...

    def decode(self, text: str) -> bytes:
        # Must accept input without '=' padding
        ...


class CodecError(ValueError):
    """Raised when input is not decodable base64."""
