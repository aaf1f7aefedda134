"""Item extractor: turns a free-text email body into candidate list items.

Stateless and pure. The filter is line based and deliberately narrow: it
drops blank lines, long lines, address lines, quoted replies and common
sign-offs. Digits, punctuation and unicode are never reasons to reject a
line. Deduplication happens later, at merge time.
"""

# Lines this long or longer are prose, not list items.
MAX_ITEM_LENGTH = 100

# Lowercased substrings that mark signature / closing lines.
SIGNATURE_MARKERS = ("sent from", "regards")


def is_item_line(line: str) -> bool:
    """Return True if an already-trimmed line qualifies as a list item."""
    if not line or len(line) >= MAX_ITEM_LENGTH:
        return False
    if "@" in line or line.startswith(">"):
        return False
    lowered = line.lower()
    return not any(marker in lowered for marker in SIGNATURE_MARKERS)


def extract_items(body: str | None) -> list[str]:
    """Extract candidate items from an email body, preserving order.

    Example::

        >>> extract_items("Milk\\n> quoted\\nEggs\\nSent from my iPhone")
        ['Milk', 'Eggs']
    """
    if not body:
        return []

    items: list[str] = []
    for line in body.split("\n"):
        trimmed = line.strip()
        if is_item_line(trimmed):
            items.append(trimmed)
    return items
