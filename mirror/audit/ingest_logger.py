"""Append-only audit log for email-to-list ingestion.

Writes IngestAuditEntry records as JSON Lines (one JSON object per line),
one per message the poller consumed. Source emails are deleted after
ingestion, so this is the only record of what each one contributed.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from mirror.schemas.lists import ListCategory
from mirror.schemas.mail import IngestAuditEntry, ListEmail

logger = logging.getLogger(__name__)


class IngestAuditLog:
    """Append-only JSONL audit log.

    Usage::

        audit = IngestAuditLog("/path/to/ingest_audit.jsonl")
        audit.log_ingested(ListCategory.SHOPPING, email, extracted, added, flagged=True)

        entries = audit.read_entries(since=some_datetime)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def log(self, entry: IngestAuditEntry) -> None:
        """Append a single entry. Write errors are logged, not raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Failed to write ingest audit entry to %s: %s", self._path, e)
            return
        logger.debug(
            "Audit: %s uid=%s added=%d",
            entry.category.value,
            entry.uid,
            entry.items_added,
        )

    def log_ingested(
        self,
        category: ListCategory,
        email: ListEmail,
        extracted: list[str],
        items_added: int,
        *,
        flagged: bool,
    ) -> IngestAuditEntry:
        entry = IngestAuditEntry(
            timestamp=datetime.now(UTC),
            category=category,
            uid=email.uid,
            from_address=email.from_address,
            subject=email.subject,
            extracted=extracted,
            items_added=items_added,
            flagged=flagged,
        )
        self.log(entry)
        return entry

    def read_entries(
        self,
        *,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[IngestAuditEntry]:
        """Read audit entries, optionally filtered by timestamp.

        Args:
            since: Only return entries after this timestamp.
            limit: Maximum number of entries to return (newest after filtering).

        Returns:
            List of IngestAuditEntry objects, oldest first.
        """
        if not self._path.exists():
            return []

        entries: list[IngestAuditEntry] = []
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                entry = IngestAuditEntry.model_validate_json(line)
                if since and entry.timestamp <= since:
                    continue
                entries.append(entry)

        if limit is not None:
            entries = entries[-limit:]

        return entries
