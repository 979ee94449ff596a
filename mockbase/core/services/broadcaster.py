"""
AuthBroadcaster - auth-state pub/sub.

Listeners are called in registration order with (event, session).
A listener that raises is logged and skipped; delivery continues to the
rest and the caller that triggered the event never sees the error.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from mockbase.core.entities import AuthChangeEvent, Session

logger = logging.getLogger(__name__)

AuthStateListener = Callable[[AuthChangeEvent, Session | None], None]


class AuthBroadcaster:
    def __init__(self) -> None:
        self._listeners: list[AuthStateListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: AuthStateListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: AuthStateListener) -> None:
        """Remove the first registration of `listener` (by identity)."""
        with self._lock:
            for idx, registered in enumerate(self._listeners):
                if registered is listener:
                    del self._listeners[idx]
                    return

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def notify(self, event: AuthChangeEvent, session: Session | None) -> None:
        with self._lock:
            snapshot = list(self._listeners)

        for listener in snapshot:
            self.deliver(listener, event, session)

    def deliver(
        self, listener: AuthStateListener, event: AuthChangeEvent, session: Session | None
    ) -> None:
        """Call one listener; its exceptions are logged, never raised."""
        try:
            listener(event, session)
        except Exception:
            logger.exception("Error in auth state listener (event=%s)", event)
