"""Account lifecycle event dispatch.

The identity store raises account events through an
``AccountEventDispatcher``. Consumers subscribe explicitly and unsubscribe
when they shut down. Every event carries the account name and its
attributes.
"""

import logging
import threading
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class AccountEventListener(Protocol):
    def account_created(self, username: str, attributes: dict[str, Any]) -> Any: ...

    def account_deleting(self, username: str, attributes: dict[str, Any]) -> None: ...

    def account_modified(self, username: str, attributes: dict[str, Any]) -> None: ...


class AccountEventDispatcher:
    """Delivers account events to every subscribed listener, synchronously.

    Usage::

        dispatcher = AccountEventDispatcher()
        dispatcher.add_listener(pipeline)
        dispatcher.dispatch_created("alice", {"email": "alice@example.com"})

    A listener that raises is logged and skipped; the others still receive
    the event.
    """

    def __init__(self) -> None:
        self._listeners: list[AccountEventListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: AccountEventListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: AccountEventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> list[AccountEventListener]:
        with self._lock:
            return list(self._listeners)

    def dispatch_created(self, username: str, attributes: dict[str, Any] | None = None) -> None:
        self._dispatch("account_created", username, attributes or {})

    def dispatch_deleting(self, username: str, attributes: dict[str, Any] | None = None) -> None:
        self._dispatch("account_deleting", username, attributes or {})

    def dispatch_modified(self, username: str, attributes: dict[str, Any] | None = None) -> None:
        self._dispatch("account_modified", username, attributes or {})

    def _dispatch(self, handler: str, username: str, attributes: dict[str, Any]) -> None:
        for listener in self.listeners:
            try:
                getattr(listener, handler)(username, attributes)
            except Exception:
                logger.exception("Listener %r failed on %s for %s", listener, handler, username)
