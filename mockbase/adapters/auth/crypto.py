import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ARGON2_PREFIX = "$argon2"


class Argon2PasswordHasher:
    """Password hashing for the mock users table.

    Records written by older mocks stored the password itself; those still
    verify by constant-time comparison until the password is next changed.
    An empty stored password (social login) never verifies.
    """

    def __init__(self, time_cost: int | None = None, memory_cost: int | None = None) -> None:
        kwargs = {}
        if time_cost is not None:
            kwargs["time_cost"] = time_cost
        if memory_cost is not None:
            kwargs["memory_cost"] = memory_cost
        self.ph = PasswordHasher(**kwargs)

    def hash_password(self, password: str) -> str:
        return str(self.ph.hash(password))

    def verify_password(self, password: str, stored: str) -> bool:
        if not stored:
            return False

        if not stored.startswith(ARGON2_PREFIX):
            return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))

        try:
            self.ph.verify(stored, password)
            return True
        except (VerificationError, InvalidHashError):
            return False
