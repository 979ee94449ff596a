"""
mockbase - offline mock of a Supabase-style auth and table backend.

Example:
    from mockbase import create_mock_backend

    backend = create_mock_backend()
    result = backend.sign_up("john.doe@example.com", "secret")
    backend.insert("todos", {"title": "Buy milk", "user_id": result.user.id})
"""

from mockbase.app_shell.config import BackendSettings, ConfigError, load_settings
from mockbase.app_shell.context import create_mock_backend
from mockbase.components.auth import AuthOutput, OAuthOutput
from mockbase.components.database import Filter, RecordListOutput, RecordOutput
from mockbase.core.entities import Session, User, UserRecord
from mockbase.services.backend import MockBackendService, Subscription

__all__ = [
    "AuthOutput",
    "BackendSettings",
    "ConfigError",
    "Filter",
    "MockBackendService",
    "OAuthOutput",
    "RecordListOutput",
    "RecordOutput",
    "Session",
    "Subscription",
    "User",
    "UserRecord",
    "create_mock_backend",
    "load_settings",
]
