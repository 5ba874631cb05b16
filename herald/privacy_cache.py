"""Single-slot cache for the parsed default privacy-list template.

The privacy-list document is stored as an XML string in the property store.
Parsing it on every registration is wasteful, so the parsed root element is
kept until the stored document is rewritten.
"""

import copy
import logging
import threading

from lxml import etree

logger = logging.getLogger(__name__)


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


class PrivacyListCache:
    """Lazily parsed, invalidation-flagged privacy-list template.

    Usage::

        cache = PrivacyListCache()
        element = cache.get(settings.privacy_list_document(), "default")
        if element is not None:
            ...
        cache.invalidate()  # after the document is rewritten

    A failed parse is cached too: ``get`` returns None until the next
    ``invalidate`` or until a different document is passed in. The document
    is compared with the one last parsed, so a rewrite made by another
    process is picked up without an explicit invalidation. Callers receive a
    deep copy; the cached element is never handed out.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._is_set = False
        self._source: str | None = None
        self._element: etree._Element | None = None
        self._generation = 0
        self._parse_count = 0

    @property
    def generation(self) -> int:
        """Bumped on every invalidation."""
        return self._generation

    @property
    def parse_count(self) -> int:
        """Number of parse attempts since construction."""
        return self._parse_count

    @property
    def is_set(self) -> bool:
        return self._is_set

    def get(self, document: str | None, name: str | None = None) -> etree._Element | None:
        """Return a copy of the parsed template, parsing *document* if needed."""
        with self._lock:
            if not self._is_set or document != self._source:
                self._is_set = True
                self._source = document
                self._parse_count += 1
                self._element = self._parse(document, name)
            if self._element is None:
                return None
            return copy.deepcopy(self._element)

    def invalidate(self) -> None:
        with self._lock:
            self._is_set = False
            self._source = None
            self._element = None
            self._generation += 1
        logger.debug("Privacy list cache invalidated (generation %d)", self._generation)

    def clear(self) -> None:
        """Drop the cached element on shutdown."""
        self.invalidate()

    @staticmethod
    def _parse(document: str | None, name: str | None) -> etree._Element | None:
        logger.debug("Parsing privacy list template name=%s", name)
        if not document:
            logger.error("Privacy list document is empty and cannot be used as a privacy list")
            return None
        try:
            return etree.fromstring(document.encode("utf-8"), parser=_parser())
        except etree.XMLSyntaxError as exc:
            logger.error("Privacy list document can not be parsed into a valid privacy list: %s", exc)
            return None
