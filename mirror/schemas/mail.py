"""Schemas for the email-to-list ingestion pipeline.

Covers the full lifecycle:
  IMAP search -> fetch -> flag \\Deleted -> extract items -> merge -> expunge -> audit log
"""

from datetime import datetime

from pydantic import BaseModel, Field

from mirror.schemas.lists import ListCategory

# --- Config ---


class MailboxConfig(BaseModel):
    """Connection parameters for the shared list mailbox."""

    server: str
    email: str
    password: str
    port: int = 993
    ssl: bool = True
    folder: str = "INBOX"
    timeout: float | None = 20.0  # socket timeout for every IMAP call


# --- Email data ---


class ListEmail(BaseModel):
    """A fetched message, reduced to what list ingestion needs.

    Sender and subject are kept for logging and the audit trail only.
    """

    uid: str
    from_address: str = ""
    subject: str = "(no subject)"
    date: datetime | None = None
    body_text: str = ""


# --- Results ---


class PollResult(BaseModel):
    """Outcome of one category's poll within a tick."""

    category: ListCategory
    matched: int = 0
    processed: int = 0
    flagged: int = 0
    items_added: int = 0
    expunged: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# --- Audit ---


class IngestAuditEntry(BaseModel):
    """A single ingested message as recorded in the JSONL audit log."""

    timestamp: datetime
    category: ListCategory
    uid: str
    from_address: str = ""
    subject: str = ""
    extracted: list[str] = Field(default_factory=list)
    items_added: int = 0
    flagged: bool = False
