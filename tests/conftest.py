import random

import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from mockbase.adapters.auth.crypto import Argon2PasswordHasher
from mockbase.adapters.clock import FixedClock
from mockbase.adapters.storage import (
    InMemoryKeyValueStore,
    StorageAdapter,
    create_storage_adapter,
)
from mockbase.app_shell.config import BackendSettings
from mockbase.app_shell.context import create_mock_backend


class InMemoryKeyring(KeyringBackend):
    """Keyring backend holding credentials in a dict."""

    # Below every real backend, so keyring never auto-selects it
    priority = -1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found") from None


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(1_750_000_000)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fast_hasher() -> Argon2PasswordHasher:
    """Argon2 with minimal cost so suites stay quick."""
    return Argon2PasswordHasher(time_cost=1, memory_cost=64)


@pytest.fixture
def keyring_backend() -> InMemoryKeyring:
    return InMemoryKeyring()


@pytest.fixture
def memory_storage() -> StorageAdapter:
    """Both tiers in memory; survives across backend instances in one test."""
    return StorageAdapter(InMemoryKeyValueStore(), InMemoryKeyValueStore())


@pytest.fixture
def file_storage(tmp_path, keyring_backend) -> StorageAdapter:
    return create_storage_adapter(
        tmp_path / "store",
        secure_backend="keyring",
        keyring_backend=keyring_backend,
    )


@pytest.fixture
def settings() -> BackendSettings:
    return BackendSettings(secure_backend="memory", plain_backend="memory")


@pytest.fixture
def make_backend(memory_storage, clock, fast_hasher, settings):
    """
    Factory for backends sharing one storage, to simulate restarts.

    Each call builds a fresh service (fresh in-memory state) over the same
    storage adapter and clock.
    """

    def _make(storage=None, **overrides):
        effective = settings.model_copy(update=overrides) if overrides else settings
        return create_mock_backend(
            effective,
            storage=storage or memory_storage,
            clock=clock,
            rng=random.Random(),
            hasher=fast_hasher,
        )

    return _make


@pytest.fixture
def backend(make_backend):
    return make_backend()
