"""Welcome message expansion.

A welcome message is either a plain body string or a raw XML document. The
document holds a single ``<message>`` element, or a ``<messages>`` container
whose children are each sent as a separate message, in document order::

    <messages>
      <message type="chat"><body>Welcome!</body></message>
      <message type="chat"><body>Read the rules at ...</body></message>
    </messages>
"""

import copy
import logging

from lxml import etree

from herald.errors import TemplateParseError
from herald.schemas.registration import OutboundMessage, WelcomeMessageSpec

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome"
CONTAINER_TAG = "messages"


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _child_text(element: etree._Element, name: str) -> str | None:
    for child in element:
        if isinstance(child.tag, str) and _local_name(child) == name:
            return child.text or ""
    return None


def parse_document(document: str, *, what: str = "welcome message") -> etree._Element:
    """Parse an XML string into its root element.

    Raises:
        TemplateParseError: If the document is not well-formed XML.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(document.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as exc:
        raise TemplateParseError(what, str(exc)) from exc


def message_from_element(element: etree._Element, to: str, sender: str) -> OutboundMessage:
    """Stamp a copy of *element* with recipient and sender."""
    stanza = copy.deepcopy(element)
    stanza.tail = None
    stanza.set("to", to)
    stanza.set("from", sender)
    return OutboundMessage(
        to=to,
        sender=sender,
        subject=_child_text(stanza, "subject"),
        body=_child_text(stanza, "body"),
        message_type=stanza.get("type", "normal"),
        stanza=etree.tostring(stanza, encoding="unicode"),
    )


def expand_raw(document: str, to: str, sender: str) -> list[OutboundMessage]:
    """Expand a raw XML welcome document into one or more messages."""
    root = parse_document(document)
    if _local_name(root) == CONTAINER_TAG:
        elements = [child for child in root if isinstance(child.tag, str)]
    else:
        elements = [root]
    return [message_from_element(element, to, sender) for element in elements]


def expand_welcome(
    to: str,
    spec: WelcomeMessageSpec,
    default_sender: str,
) -> list[OutboundMessage]:
    """Build the welcome messages for a new account.

    Args:
        to: Address of the new account.
        spec: The configured welcome template.
        default_sender: Used when the template has no sender override.

    Returns:
        Messages in delivery order.

    Raises:
        TemplateParseError: If a raw document is configured and malformed.
    """
    sender = spec.sender or default_sender
    if spec.raw_document:
        messages = expand_raw(spec.raw_document, to, sender)
        logger.debug("Expanded raw welcome template into %d message(s)", len(messages))
        return messages

    return [
        OutboundMessage(
            to=to,
            sender=sender,
            subject=WELCOME_SUBJECT,
            body=spec.body,
        )
    ]
