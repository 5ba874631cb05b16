"""Interfaces of the services the registration pipeline talks to.

The pipeline never looks these up globally; concrete implementations are
passed in when it is constructed.
"""

from collections.abc import MutableSet, Sequence
from datetime import datetime
from typing import Any, Protocol

from lxml import etree

from herald.schemas.registration import OutboundMessage


class MessageRouter(Protocol):
    """Fire-and-forget IM delivery."""

    def route(self, message: OutboundMessage) -> None: ...


class EmailTransport(Protocol):
    """Outbound email. Raises TransportError when a send fails."""

    def send(
        self,
        from_address: str | None,
        to: str,
        from_name: str,
        reply_address: str,
        subject: str,
        body: str,
        attachments: Sequence[tuple[str, bytes]] | None = None,
    ) -> None: ...


class Group(Protocol):
    name: str
    members: MutableSet[str]


class GroupStore(Protocol):
    """``get_group`` raises GroupNotFoundError for an unknown name; it never returns None."""

    def get_group(self, name: str) -> Group: ...


class PrivacyListStore(Protocol):
    def create_list(self, owner: str, name: str, template: etree._Element) -> Any: ...

    def set_default(self, owner: str, privacy_list: Any) -> None: ...


class LockoutStore(Protocol):
    def disable(self, username: str, start_time: datetime, end_time: datetime | None) -> None: ...
