import random
from datetime import datetime
from typing import Any, Protocol

from mockbase.core.entities import Session, User, UserRecord


class UserRepoPort(Protocol):
    def get_by_email(self, email: str) -> UserRecord | None: ...
    def get_by_id(self, user_id: str) -> UserRecord | None: ...
    def save(self, record: UserRecord) -> UserRecord: ...
    def rename(self, old_email: str, record: UserRecord) -> UserRecord: ...
    def list_all(self) -> list[UserRecord]: ...


class PasswordHasherPort(Protocol):
    def hash_password(self, password: str) -> str: ...
    def verify_password(self, password: str, stored: str) -> bool: ...


class IdentityPort(Protocol):
    """Builds users and sessions (UserFactory satisfies this)."""

    rng: random.Random

    def create_mock_user(self, email: str, metadata: dict[str, Any] | None = None) -> User: ...
    def create_mock_session(self, user: User) -> Session: ...
    def new_id(self, prefix: str) -> str: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    def now_ms(self) -> int: ...

    def now_seconds(self) -> int: ...
