"""Schemas for the household lists shown on the mirror.

Each list is a category partition holding an ordered sequence of unique
item strings. Categories also carry the subject keywords that route
incoming email to them.
"""

from enum import StrEnum

from pydantic import BaseModel, Field


class ListCategory(StrEnum):
    """A named list partition."""

    SHOPPING = "shopping"
    AMAZON = "amazon"
    COSTCO = "costco"


DEFAULT_CATEGORY = ListCategory.SHOPPING


class CategoryRule(BaseModel):
    """Mailbox search rule for one list category.

    A message qualifies when it is unread and its subject contains any of
    ``subject_keywords`` (logical OR).
    """

    category: ListCategory
    subject_keywords: tuple[str, ...] = Field(min_length=1)

    def matches_subject(self, subject: str | None) -> bool:
        """Mirror the server-side IMAP SUBJECT search (case-insensitive substring)."""
        if not subject:
            return False
        lowered = subject.lower()
        return any(kw.lower() in lowered for kw in self.subject_keywords)


# --- HTTP payloads ---


class ItemsResponse(BaseModel):
    items: list[str] = Field(default_factory=list)


class ClearedResponse(BaseModel):
    message: str = "List cleared"
    items: list[str] = Field(default_factory=list)


class IntegrationStatus(BaseModel):
    configured: bool = False


class HealthResponse(BaseModel):
    """Process status, per-list counts and optional integration flags."""

    status: str = "ok"
    counts: dict[str, int] = Field(default_factory=dict)
    integrations: dict[str, IntegrationStatus] = Field(default_factory=dict)
