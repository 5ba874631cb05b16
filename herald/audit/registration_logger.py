"""Append-only audit log for handled registration events.

Writes RegistrationAuditEntry records as JSON Lines (one JSON object per
line), one per account, with the outcome of every action.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from herald.schemas.registration import RegistrationAuditEntry, RegistrationResult

logger = logging.getLogger(__name__)


class RegistrationAuditLog:
    """Append-only JSONL audit log for registrations.

    Usage::

        audit = RegistrationAuditLog("/path/to/registration_audit.jsonl")
        audit.log_result(event.created_at, result)

        entries = audit.read_entries(since=some_datetime)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: RegistrationAuditEntry) -> None:
        """Append a single audit entry to the log file."""
        with self._path.open("a") as f:
            f.write(entry.model_dump_json() + "\n")
        logger.debug(
            "Registration audit: %s actions=%d",
            entry.username,
            len(entry.outcomes),
        )

    def log_result(self, created_at: datetime, result: RegistrationResult) -> RegistrationAuditEntry:
        """Log the outcome of one pipeline run."""
        entry = RegistrationAuditEntry(
            timestamp=datetime.now(UTC),
            username=result.username,
            created_at=created_at,
            outcomes=result.outcomes,
        )
        self.log(entry)
        return entry

    def read_entries(
        self,
        *,
        since: datetime | None = None,
        username: str | None = None,
        limit: int | None = None,
    ) -> list[RegistrationAuditEntry]:
        """Read audit entries with optional filtering.

        Args:
            since: Only return entries after this timestamp.
            username: Only return entries for this account.
            limit: Maximum number of entries to return (newest after filtering).

        Returns:
            List of RegistrationAuditEntry objects, oldest first.
        """
        if not self._path.exists():
            return []

        entries: list[RegistrationAuditEntry] = []
        with self._path.open() as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                entry = RegistrationAuditEntry.model_validate_json(line)
                if since and entry.timestamp <= since:
                    continue
                if username and entry.username != username:
                    continue
                entries.append(entry)

        if limit is not None:
            entries = entries[-limit:]

        return entries
