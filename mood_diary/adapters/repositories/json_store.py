"""
JSON file repository for mood entries.

The whole history is one JSON array on disk. Saves are written to a temporary
file first and swapped in with os.replace, so readers never see a partial list.
Also keeps a rolling set of backup files next to the store.
"""

import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional

from mood_diary.adapters.repositories.base import EntryStore
from mood_diary.core.errors import ParseError
from mood_diary.core.models import now_millis

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_STORE_PATH = "mood_entries.json"
DEFAULT_BACKUP_DIR = "backups"
BACKUP_PREFIX = "moodDiary_backup_"
MAX_BACKUPS = 5


class JsonFileStore(EntryStore):
    """Entry store backed by a single JSON file."""

    def __init__(self, path: Optional[str] = None, backup_dir: Optional[str] = None):
        self.path = path or os.environ.get("MOOD_DIARY_STORE", DEFAULT_STORE_PATH)
        self.backup_dir = backup_dir or os.environ.get("MOOD_DIARY_BACKUP_DIR", DEFAULT_BACKUP_DIR)

    def load_raw(self) -> Any:
        if not os.path.exists(self.path):
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise ParseError(f"Cannot read {self.path}: {e}") from e

        if not content.strip():
            return []

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing saved entries: {e}")
            raise ParseError(f"Invalid JSON in {self.path}: {e}") from e

    def save_raw(self, items: List[Dict[str, Any]]) -> None:
        self._atomic_write(self.path, items)
        logger.info(f"[OK] Saved {len(items)} entries to {self.path}")

    @staticmethod
    def _atomic_write(path: str, payload: Any) -> None:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # ========================================================================
    # BACKUPS
    # ========================================================================

    def list_backups(self) -> List[str]:
        """Backup file paths, oldest first."""
        if not os.path.isdir(self.backup_dir):
            return []
        names = sorted(
            name for name in os.listdir(self.backup_dir)
            if name.startswith(BACKUP_PREFIX) and name.endswith(".json")
        )
        return [os.path.join(self.backup_dir, name) for name in names]

    def _next_backup_path(self) -> str:
        """Unused backup path; a counter suffix separates backups from the same millisecond."""
        stamp = now_millis()
        path = os.path.join(self.backup_dir, f"{BACKUP_PREFIX}{stamp}.json")
        counter = 1
        while os.path.exists(path):
            # zero-padded so name order stays write order
            path = os.path.join(self.backup_dir, f"{BACKUP_PREFIX}{stamp}_{counter:03d}.json")
            counter += 1
        return path

    def write_backup(self, payload: Dict[str, Any]) -> str:
        """
        Stores a backup payload and prunes all but the newest MAX_BACKUPS.

        Returns:
            Path of the new backup file.
        """
        backup_path = self._next_backup_path()
        self._atomic_write(backup_path, payload)

        backups = self.list_backups()
        for old in backups[:-MAX_BACKUPS]:
            os.remove(old)
            logger.info(f"Removed old backup {old}")

        logger.info(f"[OK] Backup saved to {backup_path} ({min(len(backups), MAX_BACKUPS)} stored)")
        return backup_path
