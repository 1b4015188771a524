"""
Export, backup, share and import payloads.

Payloads carry entries in their persisted dict shape. The `version` field is
informational only and is never enforced on import.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from mood_diary.core.errors import ImportFormatError
from mood_diary.core.models import MoodEntry, entries_from_dicts, entries_to_dicts
from mood_diary.core.validator import repair_entries

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
BACKUP_VERSION = "2.0"
SHARE_ENTRY_LIMIT = 10


def _now_iso(now: Optional[datetime] = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def build_export(entries: Sequence[MoodEntry], now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "entries": entries_to_dicts(list(entries)),
        "exportDate": _now_iso(now),
        "version": EXPORT_VERSION,
    }


def export_filename(now: Optional[datetime] = None) -> str:
    return f"mood-diary-export-{(now or datetime.now(timezone.utc)).strftime('%Y-%m-%d')}.json"


def build_backup(entries: Sequence[MoodEntry], settings: Optional[Dict[str, Any]] = None,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
    """Backup payload with summary metadata and the user's settings."""
    return {
        "entries": entries_to_dicts(list(entries)),
        "metadata": {
            "totalEntries": len(entries),
            "firstEntry": entries[0].date if entries else None,
            "lastEntry": entries[-1].date if entries else None,
            "backupDate": _now_iso(now),
            "version": BACKUP_VERSION,
        },
        "settings": dict(settings or {}),
    }


def build_share_payload(entries: Sequence[MoodEntry], title: str = "My Mood Data",
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "title": title,
        "entries": entries_to_dicts(list(entries)[-SHARE_ENTRY_LIMIT:]),
        "exportDate": _now_iso(now),
        "version": EXPORT_VERSION,
    }


def parse_import(text: str) -> List[MoodEntry]:
    """
    Parses an export or backup file.

    Imported entries go through the same repair as the store, so an entry with
    no moods or an out-of-range value is corrected before it can be merged.

    Raises:
        ImportFormatError: If the text is not JSON or has no `entries` array.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError("The selected file is not a valid mood diary export.") from e

    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        raise ImportFormatError("The selected file is not a valid mood diary export.")

    version = data.get("version") or (data.get("metadata") or {}).get("version")
    logger.info(f"Parsed import payload: {len(data['entries'])} entries (version {version or 'unknown'})")
    repaired, count = repair_entries(data["entries"])
    if count:
        logger.warning(f"[WARN] Repaired {count} imported entries with invalid fields")
    return entries_from_dicts(repaired)


def merge_by_date(existing: Sequence[MoodEntry], imported: Sequence[MoodEntry]) -> List[MoodEntry]:
    """Concatenates both lists keeping only the first entry seen for each date."""
    seen = set()
    merged = []
    for entry in list(existing) + list(imported):
        if entry.date in seen:
            continue
        seen.add(entry.date)
        merged.append(entry)
    return merged


def import_into(store, text: str) -> int:
    """
    Merges an import file into the store.

    The store is only written once parsing and merging succeeded, so a bad file
    leaves it untouched.

    Returns:
        Number of entries found in the import file.

    Raises:
        ImportFormatError: If the file is malformed.
    """
    imported = parse_import(text)
    store.merge_entries(imported)
    logger.info(f"[OK] Imported {len(imported)} mood entries")
    return len(imported)
