from __future__ import annotations

import random
from typing import Any

from mockbase.adapters.storage import create_storage_adapter
from mockbase.app_shell.config import BackendSettings
from mockbase.components.auth import AuthPolicy, PasswordHasherPort
from mockbase.core.ports.storage import StorageAdapterPort
from mockbase.core.ports.time import TimePort
from mockbase.services.backend import MockBackendService


def create_storage(
    settings: BackendSettings, *, keyring_backend: Any | None = None
) -> StorageAdapterPort:
    return create_storage_adapter(
        settings.storage_dir,
        secure_backend=settings.secure_backend,
        plain_backend=settings.plain_backend,
        keyring_service=settings.keyring_service,
        encryption_key=settings.encryption_key,
        obfuscation_secret=settings.obfuscation_secret,
        keyring_backend=keyring_backend,
        verbose=settings.dev_mode,
    )


def create_mock_backend(
    settings: BackendSettings | None = None,
    *,
    storage: StorageAdapterPort | None = None,
    clock: TimePort | None = None,
    rng: random.Random | None = None,
    hasher: PasswordHasherPort | None = None,
    keyring_backend: Any | None = None,
) -> MockBackendService:
    """Wire a MockBackendService from settings; explicit collaborators win."""
    settings = settings or BackendSettings()
    return MockBackendService(
        storage or create_storage(settings, keyring_backend=keyring_backend),
        clock=clock,
        rng=rng,
        hasher=hasher,
        policy=AuthPolicy(
            min_password_length=settings.min_password_length,
            require_email_confirmation=settings.require_email_confirmation,
        ),
        latency_ms=settings.latency_ms,
        verbose=settings.dev_mode,
    )
