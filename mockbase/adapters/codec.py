"""
Base64 Codec Adapter.

Implements CodecPort twice: a thin wrapper over the standard library and a
manual table-driven codec for interpreters where binascii is unavailable.

Key behaviors:
- select_codec() prefers the native codec; the manual one is never used
  when the native primitive is reachable
- Decoders accept input without '=' padding
- Decoders raise CodecError on characters outside the standard alphabet
  or on a length no base64 encoder can produce
"""

from __future__ import annotations

import base64
import binascii
import logging

from mockbase.core.ports.codec import BASE64_ALPHABET, CodecError, CodecPort

logger = logging.getLogger(__name__)

_LOOKUP = {ch: idx for idx, ch in enumerate(BASE64_ALPHABET)}


def _strip_padding(text: str) -> str:
    stripped = text.rstrip("=")
    if len(stripped) % 4 == 1:
        raise CodecError(f"Invalid base64 length: {len(stripped)} significant characters")
    return stripped


class NativeBase64Codec:
    """Standard library base64 (binascii-backed)."""

    def encode(self, data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    def decode(self, text: str) -> bytes:
        stripped = _strip_padding(text)
        padded = stripped + "=" * (-len(stripped) % 4)
        try:
            return base64.b64decode(padded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CodecError(f"Invalid base64 input: {e}") from e


class ManualBase64Codec:
    """Pure-Python base64 over the standard alphabet."""

    def encode(self, data: bytes) -> str:
        out: list[str] = []
        for i in range(0, len(data), 3):
            chunk = data[i : i + 3]
            a = chunk[0]
            b = chunk[1] if len(chunk) > 1 else 0
            c = chunk[2] if len(chunk) > 2 else 0

            out.append(BASE64_ALPHABET[a >> 2])
            out.append(BASE64_ALPHABET[((a & 3) << 4) | (b >> 4)])
            out.append(BASE64_ALPHABET[((b & 15) << 2) | (c >> 6)] if len(chunk) > 1 else "=")
            out.append(BASE64_ALPHABET[c & 63] if len(chunk) > 2 else "=")
        return "".join(out)

    def decode(self, text: str) -> bytes:
        stripped = _strip_padding(text)

        values: list[int] = []
        for pos, ch in enumerate(stripped):
            try:
                values.append(_LOOKUP[ch])
            except KeyError:
                raise CodecError(f"Invalid base64 character {ch!r} at position {pos}") from None

        out = bytearray()
        for i in range(0, len(values), 4):
            group = values[i : i + 4]
            n = len(group)
            e1 = group[0]
            e2 = group[1]
            e3 = group[2] if n > 2 else 0
            e4 = group[3] if n > 3 else 0

            out.append(((e1 << 2) | (e2 >> 4)) & 0xFF)
            if n > 2:
                out.append((((e2 & 15) << 4) | (e3 >> 2)) & 0xFF)
            if n > 3:
                out.append((((e3 & 3) << 6) | e4) & 0xFF)
        return bytes(out)


def native_codec_available() -> bool:
    """Capability check for the interpreter's native base64 primitives."""
    return callable(getattr(binascii, "b2a_base64", None)) and callable(
        getattr(binascii, "a2b_base64", None)
    )


def select_codec(prefer_native: bool = True) -> CodecPort:
    """
    Pick the codec once, at wiring time.

    Args:
        prefer_native: Set False to force the manual codec (tests, parity checks)

    Returns:
        NativeBase64Codec when available and preferred, else ManualBase64Codec
    """
    if prefer_native and native_codec_available():
        return NativeBase64Codec()
    logger.debug("Native base64 unavailable or disabled; using manual codec")
    return ManualBase64Codec()
