"""
MockBackendService - offline stand-in for a Supabase-style backend.

Composes the auth and database components over one in-memory state
snapshot, persists that snapshot through the storage adapter and tells
auth-state listeners about session changes.

State machine: SIGNED_OUT <-> SIGNED_IN (SIGNED_IN -> SIGNED_IN on token
refresh and user update)

Invariants:
- Persisted state is loaded once, before the first operation completes
- One re-entrant lock guards the current session, users and tables
- Listeners are notified after the lock is released
- Every change to users, tables or the session is written through
  immediately as a whole snapshot
- Errors come back on the output objects; operations do not raise
"""

from __future__ import annotations

import copy
import logging
import random
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any, Literal, TypeVar

from mockbase.adapters.auth.crypto import Argon2PasswordHasher
from mockbase.adapters.clock import SystemClock
from mockbase.components.auth import (
    AuthOutput,
    AuthPolicy,
    CheckSessionInput,
    InMemoryUserRepo,
    OAuthCompleteInput,
    OAuthOutput,
    OAuthStartInput,
    PasswordHasherPort,
    RefreshSessionInput,
    ResendInput,
    SignInInput,
    SignOutInput,
    SignUpInput,
    UpdateUserInput,
    VerifyOtpInput,
    run_check_session,
    run_complete_oauth,
    run_refresh_session,
    run_resend,
    run_sign_in,
    run_sign_out,
    run_sign_up,
    run_start_oauth,
    run_update_user,
    run_verify_otp,
)
from mockbase.components.database import (
    DeleteInput,
    Filter,
    GetInput,
    InMemoryTableStore,
    InsertInput,
    ListInput,
    RecordListOutput,
    RecordOutput,
    UpdateInput,
    UpsertInput,
    normalize_record,
    run_delete,
    run_get,
    run_insert,
    run_list,
    run_update,
    run_upsert,
)
from mockbase.core.entities import (
    AuthChangeEvent,
    OtpType,
    PendingOAuthState,
    Record,
    Session,
    User,
    UserRecord,
)
from mockbase.core.ports.storage import StorageAdapterPort
from mockbase.core.ports.time import TimePort
from mockbase.core.services.broadcaster import AuthBroadcaster, AuthStateListener
from mockbase.core.services.identity import UserFactory
from mockbase.core.services.persistence import BackendState, PersistenceManager
from mockbase.core.services.tokens import TokenFactory

logger = logging.getLogger(__name__)

ErrorKind = Literal["auth", "database"]
FilterSpec = Filter | tuple[str, str, Any]
OutputT = TypeVar("OutputT", RecordOutput, RecordListOutput)


class Subscription:
    """Handle returned by on_auth_state_change."""

    def __init__(self, broadcaster: AuthBroadcaster, listener: AuthStateListener) -> None:
        self._broadcaster = broadcaster
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        # Only ever removes the registration this handle made
        if not self._active:
            return
        self._active = False
        self._broadcaster.remove_listener(self._listener)
        logger.debug("Unsubscribed from auth state changes")


def _as_filter(item: FilterSpec) -> Filter:
    if isinstance(item, Filter):
        return item
    column, op, value = item
    return Filter(column, op, value)  # type: ignore[arg-type]


class MockBackendService:
    def __init__(
        self,
        storage: StorageAdapterPort,
        *,
        clock: TimePort | None = None,
        rng: random.Random | None = None,
        hasher: PasswordHasherPort | None = None,
        policy: AuthPolicy | None = None,
        latency_ms: int = 0,
        verbose: bool = True,
    ) -> None:
        """
        Args:
            storage: Fail-soft storage adapter the snapshot is persisted through
            clock: Time source (SystemClock by default)
            rng: Random source for ids, tokens and generated names
            hasher: Password hasher (argon2 by default)
            policy: Password and email-confirmation rules
            latency_ms: Simulated latency slept before each public operation
            verbose: Log storage and listener failures at error level
        """
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.tokens = TokenFactory(self.clock, self.rng)
        self.identity = UserFactory(self.clock, self.rng, self.tokens)
        self.hasher = hasher or Argon2PasswordHasher()
        self.policy = policy or AuthPolicy()
        self.latency_ms = latency_ms

        self.state = BackendState()
        self.persistence = PersistenceManager(storage, self.state, self.clock, verbose=verbose)
        self.broadcaster = AuthBroadcaster()
        self.users = InMemoryUserRepo(self.state.users)
        self.tables = InMemoryTableStore(self.state.tables)

        self._lock = threading.RLock()
        self._pending_oauth: PendingOAuthState | None = None
        self._simulated_errors: dict[tuple[ErrorKind, str], str] = {}

    # --- Internals ---

    def _prepare(self) -> None:
        if self.latency_ms > 0:
            time.sleep(self.latency_ms / 1000)
        self.persistence.ensure_loaded()

    def _simulated_error(self, kind: ErrorKind, operation: str) -> str | None:
        with self._lock:
            return self._simulated_errors.get((kind, operation))

    def _apply_auth(self, result: AuthOutput) -> None:
        """Adopt and persist what an auth operation changed. Caller holds the lock."""
        if result.users_changed:
            self.persistence.persist_users()
        if result.session_changed:
            self.state.current_session = result.session
            self.persistence.persist_session()

    def _broadcast(self, event: AuthChangeEvent | None, session: Session | None) -> None:
        if event is not None:
            self.broadcaster.notify(event, session)

    def _run_auth(self, operation: str, fn: Callable[[], AuthOutput]) -> AuthOutput:
        self._prepare()
        simulated = self._simulated_error("auth", operation)
        if simulated:
            return AuthOutput(error=simulated)

        with self._lock:
            result = fn()
            if result.error is None:
                self._apply_auth(result)

        if result.error:
            logger.debug("%s failed: %s", operation, result.error)
        else:
            self._broadcast(result.event, result.session)
        return result

    def _check_session(self) -> AuthOutput:
        with self._lock:
            result = run_check_session(
                CheckSessionInput(self.state.current_session), time=self.clock
            )
            self._apply_auth(result)
        if result.event == "SIGNED_OUT":
            logger.debug("Session expired, signed out")
        return result

    # --- Auth ---

    def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> AuthOutput:
        result = self._run_auth(
            "sign_up",
            lambda: run_sign_up(
                SignUpInput(email, password, metadata),
                users=self.users,
                hasher=self.hasher,
                identity=self.identity,
                policy=self.policy,
            ),
        )
        if result.success:
            logger.debug("Signed up %s", email)
        return result

    def sign_in(self, email: str, password: str) -> AuthOutput:
        """Sign in with email and password."""
        result = self._run_auth(
            "sign_in",
            lambda: run_sign_in(
                SignInInput(email, password),
                users=self.users,
                hasher=self.hasher,
                identity=self.identity,
                policy=self.policy,
            ),
        )
        if result.success:
            logger.debug("Signed in %s", email)
        return result

    def sign_out(self) -> AuthOutput:
        return self._run_auth(
            "sign_out",
            lambda: run_sign_out(SignOutInput(self.state.current_session)),
        )

    def get_current_session(self) -> Session | None:
        """Current session, or None. An expired session is cleared and broadcast."""
        self._prepare()
        result = self._check_session()
        self._broadcast(result.event, result.session)
        return result.session

    def get_user(self) -> User | None:
        session = self.get_current_session()
        return session.user if session else None

    def on_auth_state_change(self, listener: AuthStateListener) -> Subscription:
        """
        Register a listener and replay the current auth state to it.

        Replay goes to the new listener only: SIGNED_IN for a valid session,
        SIGNED_OUT after clearing an expired one, nothing when signed out.
        """
        self.broadcaster.add_listener(listener)
        subscription = Subscription(self.broadcaster, listener)

        self._prepare()
        result = self._check_session()
        if result.event is not None:
            self.broadcaster.deliver(listener, result.event, result.session)
        elif result.session is not None:
            self.broadcaster.deliver(listener, "SIGNED_IN", result.session)

        return subscription

    def update_user(
        self,
        email: str | None = None,
        password: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> AuthOutput:
        return self._run_auth(
            "update_user",
            lambda: run_update_user(
                UpdateUserInput(self.state.current_session, email, password, data),
                users=self.users,
                hasher=self.hasher,
                identity=self.identity,
                policy=self.policy,
            ),
        )

    def refresh_session(self, force: bool = False) -> AuthOutput:
        """Issue a new session when the current one is close to expiry (or when forced)."""
        return self._run_auth(
            "refresh_session",
            lambda: run_refresh_session(
                RefreshSessionInput(self.state.current_session, force=force),
                identity=self.identity,
                time=self.clock,
            ),
        )

    def verify_otp(self, token: str, type: OtpType = "signup") -> AuthOutput:
        result = self._run_auth(
            "verify_otp",
            lambda: run_verify_otp(
                VerifyOtpInput(self.state.current_session, token, type),
                users=self.users,
                identity=self.identity,
                time=self.clock,
            ),
        )
        if result.success and result.user:
            logger.debug("Email verified for %s", result.user.email)
        return result

    def resend(self, type: OtpType, email: str) -> AuthOutput:
        result = self._run_auth(
            "resend",
            lambda: run_resend(ResendInput(email, type), users=self.users),
        )
        if result.success:
            logger.info("Verification email (%s) would be resent to %s", type, email)
        return result

    def reset_password_for_email(self, email: str) -> AuthOutput:
        self._prepare()
        logger.info("Password reset email would be sent to %s", email)
        return AuthOutput()

    def sign_in_with_oauth(self, provider: str, redirect_to: str | None = None) -> OAuthOutput:
        """Start a mock OAuth flow; finish it with complete_oauth()."""
        self._prepare()
        simulated = self._simulated_error("auth", "sign_in_with_oauth")
        if simulated:
            return OAuthOutput(error=simulated)

        result = run_start_oauth(OAuthStartInput(provider, redirect_to), identity=self.identity)
        if result.pending is not None:
            with self._lock:
                self._pending_oauth = result.pending
            logger.debug("OAuth flow started with %s", provider)
        return result

    def complete_oauth(self, email: str | None = None) -> AuthOutput:
        def complete() -> AuthOutput:
            result = run_complete_oauth(
                OAuthCompleteInput(self._pending_oauth, email),
                users=self.users,
                identity=self.identity,
                time=self.clock,
            )
            if result.success:
                self._pending_oauth = None
            return result

        return self._run_auth("complete_oauth", complete)

    @property
    def pending_oauth(self) -> PendingOAuthState | None:
        return self._pending_oauth

    def cancel_pending_oauth(self) -> bool:
        """Abandon a started OAuth flow. Returns False when none was pending."""
        with self._lock:
            had_pending = self._pending_oauth is not None
            self._pending_oauth = None
        if had_pending:
            logger.debug("OAuth flow cancelled")
        return had_pending

    # --- Database ---

    def _run_db(
        self,
        table: str,
        operation: str,
        output_type: type[OutputT],
        fn: Callable[[], OutputT],
    ) -> OutputT:
        self._prepare()
        simulated = self._simulated_error("database", f"{table}.{operation}")
        if simulated:
            return output_type(error=simulated)

        with self._lock:
            result = fn()
            if result.changed:
                self.persistence.persist_database()

        if result.error:
            logger.debug("%s on %s failed: %s", operation.upper(), table, result.error)
        return result

    def insert_many(self, table: str, records: Iterable[Record]) -> RecordListOutput:
        result = self._run_db(
            table,
            "insert",
            RecordListOutput,
            lambda: run_insert(
                InsertInput(table, list(records)),
                tables=self.tables,
                ids=self.identity,
                time=self.clock,
            ),
        )
        if result.changed:
            logger.debug("INSERT into %s: %d rows", table, len(result.records))
        return result

    def insert(self, table: str, record: Record) -> RecordOutput:
        many = self.insert_many(table, [record])
        return RecordOutput(
            record=many.records[0] if many.records else None,
            error=many.error,
            changed=many.changed,
        )

    def upsert_many(self, table: str, records: Iterable[Record]) -> RecordListOutput:
        result = self._run_db(
            table,
            "upsert",
            RecordListOutput,
            lambda: run_upsert(
                UpsertInput(table, list(records)),
                tables=self.tables,
                ids=self.identity,
                time=self.clock,
            ),
        )
        if result.changed:
            logger.debug("UPSERT into %s: %d rows", table, len(result.records))
        return result

    def upsert(self, table: str, record: Record) -> RecordOutput:
        many = self.upsert_many(table, [record])
        return RecordOutput(
            record=many.records[0] if many.records else None,
            error=many.error,
            changed=many.changed,
        )

    def update(self, table: str, record_id: str, patch: Record) -> RecordOutput:
        return self._run_db(
            table,
            "update",
            RecordOutput,
            lambda: run_update(
                UpdateInput(table, record_id, patch), tables=self.tables, time=self.clock
            ),
        )

    def get(self, table: str, record_id: str) -> RecordOutput:
        return self._run_db(
            table,
            "get",
            RecordOutput,
            lambda: run_get(GetInput(table, record_id), tables=self.tables),
        )

    def list_records(
        self,
        table: str,
        filters: Iterable[FilterSpec] = (),
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> RecordListOutput:
        """
        Read rows of a table.

        Filters are Filter objects or (column, operator, value) tuples;
        operators: eq, neq, gt, gte, lt, lte, like, ilike, in.
        """
        query = ListInput(
            table,
            filters=[_as_filter(f) for f in filters],
            order_by=order_by,
            ascending=ascending,
            limit=limit,
            offset=offset,
        )
        return self._run_db(
            table, "list", RecordListOutput, lambda: run_list(query, tables=self.tables)
        )

    def delete(self, table: str, record_id: str) -> RecordOutput:
        return self._run_db(
            table,
            "delete",
            RecordOutput,
            lambda: run_delete(DeleteInput(table, record_id), tables=self.tables),
        )

    # --- Maintenance helpers ---

    def clear_all(self) -> None:
        """Drop users, tables, session, listeners and simulated errors, in memory and storage."""
        self.persistence.ensure_loaded()
        with self._lock:
            self.state.users.clear()
            self.state.tables.clear()
            self.state.current_session = None
            self._pending_oauth = None
            self._simulated_errors.clear()
            self.persistence.clear_storage()
        self.broadcaster.clear()
        logger.debug("Cleared all data and storage")

    def get_users(self) -> list[UserRecord]:
        self.persistence.ensure_loaded()
        with self._lock:
            return [rec.model_copy(deep=True) for rec in self.state.users.values()]

    def get_table_data(self, table: str) -> list[Record]:
        self.persistence.ensure_loaded()
        with self._lock:
            rows = self.tables.get_table(table) or {}
            return copy.deepcopy(list(rows.values()))

    def table_names(self) -> list[str]:
        self.persistence.ensure_loaded()
        with self._lock:
            return self.tables.table_names()

    def seed_table(self, table: str, records: Iterable[Record]) -> int:
        """
        Replace a table's contents wholesale. Returns the number of rows stored.

        Raises:
            InvalidRecordError: a row is not a JSON-serializable object; the
                table is left untouched
        """
        self.persistence.ensure_loaded()
        seeded: dict[str, Record] = {}
        for item in records:
            row = normalize_record(item)
            record_id = row.get("id") or self.identity.new_id("mock-id")
            seeded[str(record_id)] = {**row, "id": record_id}

        with self._lock:
            self.state.tables[table] = seeded
            self.persistence.persist_database()
        logger.debug("Seeded %s with %d rows", table, len(seeded))
        return len(seeded)

    def delete_user(self, user_id: str) -> bool:
        """
        Delete a user and purge rows that belong to them.

        Rows match when their `id` or `user_id` equals the user id. Signs
        out when the current session belongs to the user.
        """
        self.persistence.ensure_loaded()
        signed_out = False
        with self._lock:
            emails = [e for e, rec in self.state.users.items() if rec.user.id == user_id]
            for email in emails:
                del self.state.users[email]
            if emails:
                self.persistence.persist_users()

            database_changed = False
            for rows in self.state.tables.values():
                doomed = [
                    key
                    for key, row in rows.items()
                    if row.get("id") == user_id or row.get("user_id") == user_id
                ]
                for key in doomed:
                    del rows[key]
                database_changed = database_changed or bool(doomed)
            if database_changed:
                self.persistence.persist_database()

            session = self.state.current_session
            if session is not None and session.user.id == user_id:
                self.state.current_session = None
                self.persistence.persist_session()
                signed_out = True

        if signed_out:
            self._broadcast("SIGNED_OUT", None)
        return bool(emails)

    def simulate_error(self, kind: ErrorKind, operation: str, message: str | None) -> None:
        """
        Make an operation fail with `message` until cleared (message=None clears).

        Auth operations are named like the methods ("sign_in"); database
        operations as "<table>.<op>" with op one of insert, upsert, update,
        get, list, delete.
        """
        with self._lock:
            if message:
                self._simulated_errors[(kind, operation)] = message
            else:
                self._simulated_errors.pop((kind, operation), None)
        action = "Set" if message else "Cleared"
        logger.debug("%s simulated %s error for %s", action, kind, operation)

    def clear_simulated_errors(self) -> None:
        with self._lock:
            self._simulated_errors.clear()
        logger.debug("Cleared all simulated errors")

    @property
    def current_session(self) -> Session | None:
        """Current session without expiry checks or loading."""
        return self.state.current_session
