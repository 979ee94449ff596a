# mockbase core services
# Building blocks composed by MockBackendService

from mockbase.core.services.broadcaster import AuthBroadcaster, AuthStateListener
from mockbase.core.services.identity import UserFactory
from mockbase.core.services.persistence import (
    BackendState,
    LoadPhase,
    MalformedPersistedData,
    PersistenceManager,
    StorageKeys,
)
from mockbase.core.services.tokens import TokenFactory, is_session_valid

__all__ = [
    "AuthBroadcaster",
    "AuthStateListener",
    "UserFactory",
    "BackendState",
    "LoadPhase",
    "MalformedPersistedData",
    "PersistenceManager",
    "StorageKeys",
    "TokenFactory",
    "is_session_valid",
]
