"""
TokenFactory - opaque bearer/refresh tokens and session validity.

Tokens look like "{prefix}-{ms}-{fragment}-{fragment}", truncated to 100
characters. Callers must treat them as opaque strings.

Key behaviors:
- No cryptographic strength; uniqueness comes from a per-factory counter
  folded into the first fragment plus random base36 fragments
- A session without expires_at never expires
"""

from __future__ import annotations

import itertools
import random
import string

from mockbase.core.entities import Session
from mockbase.core.ports.time import TimePort

BASE36_ALPHABET = string.digits + string.ascii_lowercase
MAX_TOKEN_LENGTH = 100
FRAGMENT_LENGTH = 13
SEQUENCE_WIDTH = 6


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def random_base36(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(BASE36_ALPHABET) for _ in range(length))


class TokenFactory:
    def __init__(self, clock: TimePort, rng: random.Random | None = None) -> None:
        self.clock = clock
        self.rng = rng or random.Random()
        self._counter = itertools.count(1)

    def generate_token(self, prefix: str = "mock") -> str:
        seq = to_base36(next(self._counter)).rjust(SEQUENCE_WIDTH, "0")
        first = seq + random_base36(self.rng, FRAGMENT_LENGTH - len(seq))
        second = random_base36(self.rng, FRAGMENT_LENGTH)
        token = f"{prefix}-{self.clock.now_ms()}-{first}-{second}"
        return token[:MAX_TOKEN_LENGTH]

    def is_session_valid(self, session: Session | None) -> bool:
        return is_session_valid(session, self.clock.now_seconds())


def is_session_valid(session: Session | None, now_seconds: int) -> bool:
    if session is None:
        return False
    if session.expires_at is None:
        return True
    return session.expires_at > now_seconds
