"""
Entry store interface shared by the JSON file and MongoDB repositories.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from mood_diary.core.errors import ParseError
from mood_diary.core.models import MoodEntry, entries_from_dicts, entries_to_dicts
from mood_diary.core.transfer import merge_by_date

logger = logging.getLogger(__name__)


class EntryStore(ABC):
    """Whole-list persistence for mood entries."""

    @abstractmethod
    def load_raw(self) -> Any:
        """
        Returns the parsed persisted content as-is ([] when nothing is stored).

        Raises:
            ParseError: If the stored content cannot be parsed.
        """
        raise NotImplementedError

    @abstractmethod
    def save_raw(self, items: List[Dict[str, Any]]) -> None:
        """Replaces the persisted content wholesale."""
        raise NotImplementedError

    def load_entries(self) -> List[MoodEntry]:
        """
        Raises:
            ParseError: If the content is unparseable or not an array.
        """
        raw = self.load_raw()
        if not isinstance(raw, list):
            raise ParseError("Stored data is not an array")
        return entries_from_dicts(raw)

    def save_entries(self, entries: Sequence[MoodEntry]) -> None:
        self.save_raw(entries_to_dicts(list(entries)))

    def merge_entries(self, imported: Sequence[MoodEntry]) -> List[MoodEntry]:
        """Appends imported entries, keeping the first entry seen for each date."""
        merged = merge_by_date(self.load_entries(), imported)
        self.save_entries(merged)
        logger.info(f"[OK] Store now holds {len(merged)} entries after merge")
        return merged

    def clear(self) -> None:
        self.save_raw([])

    def close(self) -> None:
        """Releases any connection held by the store."""
