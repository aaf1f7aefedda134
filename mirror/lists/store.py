"""Persistent store for the mirror's household lists.

One JSON file per category holds the list as an indented array of strings.
The in-memory lists are the source of truth: files are written after every
accepted mutation and only read back at process start.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from mirror.schemas.lists import ListCategory

logger = logging.getLogger(__name__)

_ITEMS_ADAPTER = TypeAdapter(list[str])


class ListStore:
    """Owns one ordered, duplicate-free list per category.

    Usage::

        store = ListStore.open("data/", list(ListCategory))
        added = store.merge(ListCategory.SHOPPING, ["Milk", "Eggs"])
        store.clear(ListCategory.AMAZON)

    All mutations happen on the event loop thread, so no locking is done.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._lists: dict[ListCategory, list[str]] = {}

    @classmethod
    def open(cls, data_dir: str | Path, categories: Iterable[ListCategory]) -> "ListStore":
        """Create a store and load every category from disk."""
        store = cls(data_dir)
        for category in categories:
            store._lists[category] = store.load(category)
            logger.info(
                "Loaded %s list: %d item(s)", category.value, len(store._lists[category])
            )
        return store

    def path_for(self, category: ListCategory) -> Path:
        return self._data_dir / f"{category.value}_list.json"

    @property
    def categories(self) -> list[ListCategory]:
        return list(self._lists)

    # --- Durable state ---

    def load(self, category: ListCategory) -> list[str]:
        """Read a category's list from disk, dropping repeated items.

        Returns an empty list when the file is missing, unreadable or does
        not hold a JSON array of strings. Never raises.
        """
        path = self.path_for(category)
        if not path.exists():
            logger.info("List file not found at %s, starting empty", path)
            return []

        try:
            raw = path.read_text(encoding="utf-8")
            return list(dict.fromkeys(_ITEMS_ADAPTER.validate_json(raw)))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.error("Error loading list from %s: %s", path, e)
            return []

    def save(self, category: ListCategory, items: list[str]) -> bool:
        """Overwrite a category's file with the full list.

        Atomic write (temp file + rename). Failures are logged and reported
        as ``False``; the next successful mutation rewrites the file.
        """
        path = self.path_for(category)
        content = json.dumps(items, indent=2, ensure_ascii=False) + "\n"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
        except OSError as e:
            logger.error("Error saving list to %s: %s", path, e)
            return False

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(path))
        except OSError as e:
            logger.error("Error saving list to %s: %s", path, e)
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False

        logger.debug("List saved to %s", path)
        return True

    # --- In-memory lists ---

    def _list(self, category: ListCategory) -> list[str]:
        if category not in self._lists:
            self._lists[category] = []
        return self._lists[category]

    def items(self, category: ListCategory) -> list[str]:
        """Return a copy of a category's current items."""
        return list(self._list(category))

    def counts(self) -> dict[str, int]:
        return {category.value: len(items) for category, items in self._lists.items()}

    def merge(self, category: ListCategory, new_items: Iterable[str]) -> int:
        """Append items that are not already present. Returns the number added.

        Matching is exact and case-sensitive. Saves only if something was added.
        """
        target = self._list(category)
        existing = set(target)
        added = 0

        for item in new_items:
            if item in existing:
                continue
            target.append(item)
            existing.add(item)
            added += 1

        if added > 0:
            self.save(category, target)
            logger.info("Added %d new item(s) to %s list", added, category.value)
        return added

    def replace_all(self, category: ListCategory, items: Iterable[str]) -> list[str]:
        """Replace a category's list wholesale. Always saves.

        Duplicates in ``items`` are dropped, keeping the first occurrence.
        """
        replacement = list(dict.fromkeys(items))
        self._lists[category] = replacement
        self.save(category, replacement)
        return list(replacement)

    def clear(self, category: ListCategory) -> None:
        self.replace_all(category, [])
        logger.info("%s list cleared", category.value)
