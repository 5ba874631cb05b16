"""Notification contact lists for new-account alerts.

Each list is persisted as one comma-joined property. IM contacts are
usernames on the local server and are stored lower-cased; email contacts
are only trimmed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from herald.properties import PropertyStore
from herald.settings import EMAIL_CONTACTS, IM_CONTACTS

logger = logging.getLogger(__name__)


def normalize_im_contact(contact: str) -> str:
    return contact.strip().lower()


def normalize_email_contact(contact: str) -> str:
    return contact.strip()


class ContactList:
    """Ordered, deduplicated list of notification targets.

    Usage::

        im = ContactList(store, IM_CONTACTS, normalize_im_contact)
        im.load()
        im.add(" Admin ")   # stored as "admin"
        im.list()           # sorted view

    Insertion order is kept for persistence and for ``raw()``; ``list()``
    always returns a sorted copy.
    """

    def __init__(
        self,
        store: PropertyStore,
        key: str,
        normalize: Callable[[str], str],
    ) -> None:
        self._store = store
        self._key = key
        self._normalize = normalize
        self._contacts: list[str] = []
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> None:
        """Read the persisted comma-joined value. Absent or empty → empty list."""
        value = self._store.get(self._key)
        contacts: list[str] = []
        if value:
            for part in value.split(","):
                if part and part not in contacts:
                    contacts.append(part)
        with self._lock:
            self._contacts = contacts
        logger.debug("Loaded %d contact(s) from %s", len(contacts), self._key)

    def add(self, contact: str) -> bool:
        """Add a contact. Returns True if added, False if already present."""
        normalized = self._normalize(contact)
        if not normalized:
            return False
        with self._lock:
            if normalized in self._contacts:
                return False
            self._contacts.append(normalized)
            self._persist()
        logger.info("Added %s to %s", normalized, self._key)
        return True

    def remove(self, contact: str) -> bool:
        """Remove a contact. Returns True if removed, False if not found."""
        normalized = self._normalize(contact)
        with self._lock:
            if normalized not in self._contacts:
                return False
            self._contacts.remove(normalized)
            self._persist()
        logger.info("Removed %s from %s", normalized, self._key)
        return True

    def list(self) -> list[str]:
        """Contacts in lexicographic order."""
        with self._lock:
            return sorted(self._contacts)

    def raw(self) -> list[str]:
        """Contacts in insertion order."""
        with self._lock:
            return list(self._contacts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._contacts)

    def __contains__(self, contact: object) -> bool:
        if not isinstance(contact, str):
            return False
        normalized = self._normalize(contact)
        with self._lock:
            return normalized in self._contacts

    def _persist(self) -> None:
        """Write the list back. Caller holds the lock."""
        if not self._contacts:
            self._store.delete(self._key)
        else:
            self._store.set(self._key, ",".join(self._contacts))


class ContactBook:
    """The IM and email contact lists, loaded from one property store."""

    def __init__(self, store: PropertyStore) -> None:
        self.im = ContactList(store, IM_CONTACTS, normalize_im_contact)
        self.email = ContactList(store, EMAIL_CONTACTS, normalize_email_contact)

    @classmethod
    def load(cls, store: PropertyStore) -> ContactBook:
        book = cls(store)
        book.im.load()
        book.email.load()
        return book
