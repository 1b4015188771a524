"""
Data integrity check and auto-repair for the persisted entry list.

Nothing in this module raises past its public functions: problems are
reported in an IntegrityReport, and repair substitutes documented defaults.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Tuple

from mood_diary.core.errors import MoodDiaryError, ParseError
from mood_diary.core.models import (
    DEFAULT_ENERGY,
    DEFAULT_INTENSITY,
    ENERGY_RANGE,
    INTENSITY_RANGE,
    NEUTRAL_MOOD,
    SLEEP_QUALITY_RANGE,
    date_to_millis,
    entry_field_errors,
    is_int_in_range,
    now_millis,
    parse_day,
)

logger = logging.getLogger(__name__)

MAX_REPORTED_ISSUES = 10


@dataclass
class IntegrityReport:
    is_valid: bool
    issues: List[str] = field(default_factory=list)
    total_entries: int = 0
    corrupted_entries: int = 0


def check_entries(raw: Any) -> IntegrityReport:
    """Validates already-parsed store content."""
    if raw is None:
        return IntegrityReport(is_valid=True)

    if not isinstance(raw, list):
        return IntegrityReport(
            is_valid=False,
            issues=["Data is not in correct array format"],
            total_entries=0,
            corrupted_entries=1,
        )

    issues: List[str] = []
    corrupted = 0
    for index, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            issues.append(f"Entry {index}: Not an object")
            corrupted += 1
            continue
        errors = entry_field_errors(item)
        if "moods" in errors:
            corrupted += 1
        for problems in errors.values():
            issues.extend(f"Entry {index}: {problem}" for problem in problems)

    return IntegrityReport(
        is_valid=not issues,
        issues=issues[:MAX_REPORTED_ISSUES],
        total_entries=len(raw),
        corrupted_entries=corrupted,
    )


def check_integrity(store) -> IntegrityReport:
    """Loads the raw store content and validates it."""
    try:
        raw = store.load_raw()
    except ParseError as e:
        logger.error(f"Store cannot be parsed: {e}")
        return IntegrityReport(
            is_valid=False,
            issues=["Data is corrupted and cannot be parsed"],
            total_entries=0,
            corrupted_entries=1,
        )

    report = check_entries(raw)
    if report.is_valid:
        logger.info(f"[OK] Data integrity check passed ({report.total_entries} entries)")
    else:
        logger.warning(f"[WARN] Data integrity issues found: {len(report.issues)} shown")
    return report


def repair_entry(item: Dict[str, Any], index: int) -> Tuple[Dict[str, Any], bool]:
    """Returns a repaired copy of one raw entry and whether anything changed."""
    repaired = dict(item)
    changed = False

    if not repaired.get("id"):
        repaired["id"] = f"repaired_{now_millis()}_{index}"
        changed = True

    if parse_day(repaired.get("date")) is None:
        repaired["date"] = date.today().isoformat()
        changed = True

    moods = repaired.get("moods")
    if isinstance(moods, list):
        kept = []
        seen = set()
        for mood in moods:
            if not isinstance(mood, dict) or not mood.get("label"):
                continue
            key = (repr(mood.get("label")), repr(mood.get("value")))
            if key not in seen:
                seen.add(key)
                kept.append(mood)
        if len(kept) != len(moods):
            moods = kept
            repaired["moods"] = kept
            changed = True
    if not isinstance(moods, list) or not moods:
        repaired["moods"] = [NEUTRAL_MOOD.to_dict()]
        changed = True

    if not is_int_in_range(repaired.get("intensity"), INTENSITY_RANGE):
        repaired["intensity"] = DEFAULT_INTENSITY
        changed = True

    if not is_int_in_range(repaired.get("energy"), ENERGY_RANGE):
        repaired["energy"] = DEFAULT_ENERGY
        changed = True

    if "sleepQuality" in repaired and repaired["sleepQuality"] is not None \
            and not is_int_in_range(repaired["sleepQuality"], SLEEP_QUALITY_RANGE):
        del repaired["sleepQuality"]
        changed = True

    if not isinstance(repaired.get("reflection"), str):
        repaired["reflection"] = ""
        changed = True

    triggers = repaired.get("triggers")
    if not isinstance(triggers, list):
        repaired["triggers"] = []
        changed = True
    elif not all(isinstance(t, str) for t in triggers):
        repaired["triggers"] = [t for t in triggers if isinstance(t, str)]
        changed = True

    if not repaired.get("timestamp"):
        repaired["timestamp"] = date_to_millis(repaired["date"][:10])
        changed = True

    return repaired, changed


def repair_entries(raw: Any) -> Tuple[List[Dict[str, Any]], int]:
    """
    Repairs raw store content.

    Returns:
        Tuple of (repaired entry dicts, number of entries that were changed).
    """
    if not isinstance(raw, list):
        logger.warning("Store content is not an array, starting from an empty list")
        return [], 0

    repaired_entries = []
    repaired_count = 0
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning(f"Dropping entry {index + 1}: not an object")
            continue
        repaired, changed = repair_entry(item, index)
        repaired_entries.append(repaired)
        if changed:
            repaired_count += 1

    return repaired_entries, repaired_count


def repair_store(store) -> int:
    """
    Rewrites the store with repaired entries.

    An unparseable store is reset to empty rather than partially recovered.

    Returns:
        Number of repaired entries, or -1 when the repair could not be saved.
    """
    try:
        raw = store.load_raw()
    except ParseError as e:
        logger.warning(f"[WARN] Store unreadable ({e}), resetting to empty")
        raw = []

    repaired, count = repair_entries(raw)
    try:
        store.save_raw(repaired)
    except (MoodDiaryError, OSError) as e:
        logger.error(f"Repair failed: could not save repaired data: {e}")
        return -1

    logger.info(f"[OK] Successfully repaired {count} entries")
    return count
