"""
Journal operations over the entry list: compose, edit, delete, search and
calendar lookups, plus the reflection prompt generator.

All functions return new lists; the stored entries themselves are replaced
wholesale, never mutated.
"""

import logging
import random
from dataclasses import replace
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Sequence

from mood_diary.core.image_analyzer import ImageAnalysis
from mood_diary.core.models import (
    DEFAULT_ENERGY,
    DEFAULT_INTENSITY,
    MOODS,
    NEUTRAL_MOOD,
    Mood,
    MoodEntry,
    new_entry_id,
    now_millis,
)

logger = logging.getLogger(__name__)


class Period(Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class SortOrder(Enum):
    DESC = "desc"
    ASC = "asc"


# ============================================================================
# ENTRY LIFECYCLE
# ============================================================================

def create_entry(moods: Sequence[Mood],
                 intensity: int = DEFAULT_INTENSITY,
                 energy: int = DEFAULT_ENERGY,
                 reflection: str = "",
                 triggers: Sequence[str] = (),
                 sleep_quality: Optional[int] = None,
                 entry_date: Optional[date] = None,
                 image: Optional[str] = None,
                 image_analysis: Optional[ImageAnalysis] = None,
                 audio_note: Optional[str] = None) -> MoodEntry:
    """
    Composes a new entry and validates it before it can reach the store.

    Raises:
        ValidationError: If the entry breaks any invariant (e.g. no mood selected).
    """
    unique_triggers: List[str] = []
    for trigger in triggers:
        if trigger not in unique_triggers:
            unique_triggers.append(trigger)

    entry = MoodEntry(
        id=new_entry_id(),
        date=(entry_date or date.today()).isoformat(),
        moods=list(moods),
        intensity=intensity,
        energy=energy,
        reflection=reflection.strip(),
        triggers=unique_triggers,
        sleep_quality=sleep_quality,
        image=image,
        image_analysis=image_analysis.to_dict() if image_analysis else None,
        audio_note=audio_note,
        timestamp=now_millis(),
    )
    entry.validate()
    return entry


def add_entry(entries: Sequence[MoodEntry], entry: MoodEntry) -> List[MoodEntry]:
    entry.validate()
    return list(entries) + [entry]


def update_entry(entries: Sequence[MoodEntry], entry_id: str,
                 reflection: Optional[str] = None,
                 intensity: Optional[int] = None,
                 energy: Optional[int] = None) -> List[MoodEntry]:
    """
    Edits reflection, intensity and energy of one entry.

    Raises:
        KeyError: If no entry has this id.
        ValidationError: If the edited entry is invalid.
    """
    updated: List[MoodEntry] = []
    found = False
    for entry in entries:
        if entry.id == entry_id:
            found = True
            changes = {}
            if reflection is not None:
                changes["reflection"] = reflection
            if intensity is not None:
                changes["intensity"] = intensity
            if energy is not None:
                changes["energy"] = energy
            edited = replace(entry, **changes)
            edited.validate()
            updated.append(edited)
        else:
            updated.append(entry)

    if not found:
        raise KeyError(entry_id)
    logger.info(f"[OK] Entry {entry_id} updated")
    return updated


def delete_entry(entries: Sequence[MoodEntry], entry_id: str) -> List[MoodEntry]:
    remaining = [e for e in entries if e.id != entry_id]
    if len(remaining) == len(entries):
        logger.warning(f"Entry {entry_id} not found, nothing deleted")
    return remaining


# ============================================================================
# HISTORY & CALENDAR
# ============================================================================

def _matches(entry: MoodEntry, term: str) -> bool:
    needle = term.lower()
    if needle in entry.reflection.lower():
        return True
    if any(needle in label.lower() for label in entry.mood_labels):
        return True
    if any(needle in trigger.lower() for trigger in entry.triggers):
        return True
    analysis_insights = (entry.image_analysis or {}).get("insights") or []
    return any(needle in insight.lower() for insight in analysis_insights)


def _in_period(day: Optional[date], period: Period, today: date) -> bool:
    if period is Period.ALL:
        return True
    if day is None:
        return False
    if period is Period.TODAY:
        return day == today
    if period is Period.WEEK:
        # Weeks run Sunday to Saturday
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start <= day <= start + timedelta(days=6)
    return day.year == today.year and day.month == today.month


def filter_entries(entries: Sequence[MoodEntry],
                   search: str = "",
                   period: Period = Period.ALL,
                   order: SortOrder = SortOrder.DESC,
                   today: Optional[date] = None) -> List[MoodEntry]:
    """Search, period filter and date sort for the history view."""
    today = today or date.today()
    filtered = [e for e in entries if not search or _matches(e, search)]
    filtered = [e for e in filtered if _in_period(e.day, period, today)]
    filtered.sort(key=lambda e: e.day or date.min, reverse=order is SortOrder.DESC)
    return filtered


def entry_for_date(entries: Sequence[MoodEntry], day: date) -> Optional[MoodEntry]:
    for entry in entries:
        if entry.day == day:
            return entry
    return None


def primary_mood(entry: MoodEntry) -> Mood:
    """First selected mood if it is in the catalog, otherwise Neutral."""
    if not entry.moods:
        return NEUTRAL_MOOD
    first = entry.moods[0]
    for mood in MOODS:
        if mood.label == first.label and mood.value == first.value:
            return mood
    return NEUTRAL_MOOD


# ============================================================================
# REFLECTION PROMPTS
# ============================================================================

def generate_reflection_prompt(moods: Sequence[Mood], intensity: int, energy: int,
                               analysis: Optional[ImageAnalysis] = None,
                               rng: Optional[random.Random] = None) -> str:
    """
    Picks a writing prompt for the selected moods.

    Raises:
        ValueError: If no mood is selected.
    """
    if not moods:
        raise ValueError("Select moods first")
    rng = rng or random.Random()

    labels = ", ".join(m.label.lower() for m in moods)
    intensity_text = "strongly" if intensity >= 4 else "moderately" if intensity >= 3 else "mildly"
    energy_text = "high energy" if energy >= 4 else "moderate energy" if energy >= 3 else "low energy"

    prompts = [
        f"You're feeling {intensity_text} {labels} with {energy_text} today. "
        "What events or thoughts contributed to these feelings?",
        f"Reflecting on your {labels} mood at intensity {intensity}/10: What patterns do you notice? "
        "What would help you feel more balanced?",
        f"With your current {labels} feelings and {energy_text}, what are three things you're grateful for today?",
        f"You're experiencing {labels} emotions. What would you tell a friend feeling the same way?",
    ]

    if analysis and analysis.insights:
        prompts.append(
            f"Looking at your photo, I notice {', '.join(analysis.insights)}. "
            "How does this image reflect your current emotional state?"
        )
        prompts.append(
            f"Your photo suggests {' and '.join(analysis.suggested_moods)} feelings. "
            "What story does this image tell about your day?"
        )

    return rng.choice(prompts)
