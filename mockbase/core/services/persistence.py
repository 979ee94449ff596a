"""
PersistenceManager - durable snapshot of the mock backend's state.

Serializes the users table, the generic table store and the current session
to JSON and writes each as one blob under a fixed storage key.

State machine: UNINITIALIZED -> LOADING -> READY

Invariants:
- Loading runs once per manager; concurrent callers wait for it to finish
- A persisted session that has expired is never adopted and is deleted
  from storage during load
- Loaded content replaces in-memory content (no merge)
- READY is reached even if every load step fails
- Saves overwrite the whole blob for a key; there are no deltas
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from mockbase.core.entities import Record, Session, UserRecord
from mockbase.core.ports.storage import StorageAdapterPort
from mockbase.core.ports.time import TimePort
from mockbase.core.services.tokens import is_session_valid

logger = logging.getLogger(__name__)


class StorageKeys:
    # Names are a storage contract shared with other clients of the same store
    SESSION = "supabase.auth.token"
    USERS = "mock.supabase.users"
    DATABASE = "mock.supabase.database"

    ALL = (SESSION, USERS, DATABASE)


class LoadPhase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class BackendState:
    """In-memory snapshot: users by email, tables by name, current session."""

    users: dict[str, UserRecord] = field(default_factory=dict)
    tables: dict[str, dict[str, Record]] = field(default_factory=dict)
    current_session: Session | None = None


class MalformedPersistedData(ValueError):
    """A stored blob could not be parsed into the expected shape."""


class PersistenceManager:
    def __init__(
        self,
        storage: StorageAdapterPort,
        state: BackendState,
        clock: TimePort,
        *,
        verbose: bool = True,
    ) -> None:
        """
        Args:
            storage: Fail-soft storage adapter
            state: State object to populate and snapshot (owned by the caller)
            clock: Time source for session expiry checks
            verbose: Log load/save failures at error level (development)
        """
        self.storage = storage
        self.state = state
        self.clock = clock
        self.verbose = verbose
        self._phase = LoadPhase.UNINITIALIZED
        self._load_lock = threading.Lock()

    @property
    def phase(self) -> LoadPhase:
        return self._phase

    @property
    def is_ready(self) -> bool:
        return self._phase is LoadPhase.READY

    # --- Loading ---

    def ensure_loaded(self) -> None:
        """Load persisted state once; later calls return immediately."""
        if self._phase is LoadPhase.READY:
            return

        with self._load_lock:
            if self._phase is LoadPhase.READY:
                return
            self._phase = LoadPhase.LOADING
            try:
                for step in (self._load_session, self._load_users, self._load_database):
                    try:
                        step()
                    except Exception as e:
                        self._log_failure("Failed to initialize storage", e)
            finally:
                # Mark as ready even if loading failed
                self._phase = LoadPhase.READY

    def _load_json(self, key: str) -> Any | None:
        raw = self.storage.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            self._log_failure(f"Failed to load {key}", e)
            return None

    def _load_session(self) -> None:
        data = self._load_json(StorageKeys.SESSION)
        if data is None:
            return

        try:
            session = Session.model_validate(data)
        except ValidationError as e:
            raise MalformedPersistedData(f"Invalid session blob: {e}") from e

        if is_session_valid(session, self.clock.now_seconds()):
            self.state.current_session = session
            logger.debug("Restored session for %s", session.user.email)
        else:
            self.storage.remove(StorageKeys.SESSION)
            logger.debug("Session expired, removed")

    def _load_users(self) -> None:
        data = self._load_json(StorageKeys.USERS)
        if data is None:
            return

        if not isinstance(data, list):
            raise MalformedPersistedData("Users blob must be a list of [email, record] pairs")
        try:
            pairs = [(str(email), UserRecord.model_validate(rec)) for email, rec in data]
        except (TypeError, ValueError) as e:
            raise MalformedPersistedData(f"Invalid users blob: {e}") from e

        self.state.users.clear()
        self.state.users.update(pairs)
        if self.state.users:
            logger.debug("Restored %d users", len(self.state.users))

    def _load_database(self) -> None:
        data = self._load_json(StorageKeys.DATABASE)
        if data is None:
            return

        if not isinstance(data, dict) or not all(isinstance(t, dict) for t in data.values()):
            raise MalformedPersistedData("Database blob must map table names to objects")
        if not all(isinstance(row, dict) for t in data.values() for row in t.values()):
            raise MalformedPersistedData("Database rows must be objects")

        self.state.tables.clear()
        for table_name, records in data.items():
            self.state.tables[table_name] = dict(records)
        if self.state.tables:
            logger.debug("Restored %d tables", len(self.state.tables))

    # --- Saving ---

    def _save_json(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            self._log_failure(f"Failed to save {key}", e)
            return
        self.storage.set(key, payload)

    def persist_users(self) -> None:
        users = [
            [email, rec.model_dump(mode="json", exclude_none=True)]
            for email, rec in self.state.users.items()
        ]
        self._save_json(StorageKeys.USERS, users)

    def persist_database(self) -> None:
        self._save_json(StorageKeys.DATABASE, self.state.tables)

    def persist_session(self) -> None:
        """Write the current session, or delete the key when signed out."""
        session = self.state.current_session
        if session is None:
            self.storage.remove(StorageKeys.SESSION)
            return
        self._save_json(StorageKeys.SESSION, session.model_dump(mode="json", exclude_none=True))

    def clear_storage(self) -> None:
        for key in StorageKeys.ALL:
            self.storage.remove(key)

    def _log_failure(self, message: str, exc: Exception) -> None:
        level = logging.ERROR if self.verbose else logging.DEBUG
        logger.log(level, "%s: %s", message, exc)
