"""Minimal structural check for email-like addresses."""

import re

# Must at least look like x@x.xx
_ADDRESS_RE = re.compile(r".+@.+\..{2,}")


def is_valid_address(address: str | None) -> bool:
    """Return True if *address* has the shape ``local@domain.tld``.

    This is not RFC 5322 validation; it only rejects obviously malformed
    input before it is stored as a notification target.
    """
    if not address:
        return False
    return _ADDRESS_RE.fullmatch(address) is not None
