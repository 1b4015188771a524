"""
Data model for mood diary entries.

Defines the fixed mood and trigger catalogs and the MoodEntry record as it is
persisted (camelCase JSON field names are kept on the wire).
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from mood_diary.core.errors import ValidationError

logger = logging.getLogger(__name__)


# ============================================================================
# CATALOGS
# ============================================================================

@dataclass(frozen=True)
class Mood:
    """A selectable mood from the catalog."""
    emoji: str
    label: str
    value: int      # 1-5 intensity class
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {"emoji": self.emoji, "label": self.label, "value": self.value, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Mood":
        value = data.get("value", 3)
        return cls(
            emoji=data.get("emoji", ""),
            label=data.get("label", ""),
            value=value if isinstance(value, int) and not isinstance(value, bool) else 3,
            color=data.get("color", ""),
        )


MOODS: List[Mood] = [
    Mood("😄", "Very Happy", 5, "bg-green-100 text-green-800 dark:bg-green-900 dark:text-green-200"),
    Mood("🙂", "Happy", 4, "bg-blue-100 text-blue-800 dark:bg-blue-900 dark:text-blue-200"),
    Mood("😐", "Neutral", 3, "bg-gray-100 text-gray-800 dark:bg-gray-700 dark:text-gray-200"),
    Mood("😔", "Sad", 2, "bg-orange-100 text-orange-800 dark:bg-orange-900 dark:text-orange-200"),
    Mood("😢", "Very Sad", 1, "bg-red-100 text-red-800 dark:bg-red-900 dark:text-red-200"),
    Mood("😰", "Anxious", 2, "bg-yellow-100 text-yellow-800 dark:bg-yellow-900 dark:text-yellow-200"),
    Mood("😡", "Angry", 2, "bg-red-100 text-red-800 dark:bg-red-900 dark:text-red-200"),
    Mood("😴", "Tired", 2, "bg-purple-100 text-purple-800 dark:bg-purple-900 dark:text-purple-200"),
    Mood("🤗", "Grateful", 4, "bg-pink-100 text-pink-800 dark:bg-pink-900 dark:text-pink-200"),
    Mood("😌", "Peaceful", 4, "bg-teal-100 text-teal-800 dark:bg-teal-900 dark:text-teal-200"),
]

NEUTRAL_MOOD: Mood = MOODS[2]

TRIGGERS: List[str] = [
    "Work/Career",
    "Relationships",
    "Health",
    "Family",
    "Money",
    "Weather",
    "Sleep",
    "Exercise",
    "Social",
    "Achievement",
    "Stress",
    "Other",
]

ENERGY_LEVELS: Dict[int, str] = {
    1: "Exhausted",
    2: "Low",
    3: "Moderate",
    4: "High",
    5: "Energized",
}

INTENSITY_RANGE = (1, 10)
ENERGY_RANGE = (1, 5)
SLEEP_QUALITY_RANGE = (1, 5)

DEFAULT_INTENSITY = 5
DEFAULT_ENERGY = 3


def find_mood(label: str) -> Optional[Mood]:
    """Returns the catalog mood with this exact label, if any."""
    for mood in MOODS:
        if mood.label == label:
            return mood
    return None


def new_entry_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return int(time.time() * 1000)


def date_to_millis(day: str) -> int:
    """Epoch milliseconds at UTC midnight of a YYYY-MM-DD string."""
    parsed = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_day(value: Any) -> Optional[date]:
    """Parses a YYYY-MM-DD date (a trailing time part is ignored)."""
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


# ============================================================================
# FIELD VALIDATION
# ============================================================================

def is_int_in_range(value: Any, bounds: tuple) -> bool:
    """True for a whole number (not a bool or float) within inclusive bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return bounds[0] <= value <= bounds[1]


def entry_field_errors(data: Dict[str, Any]) -> Dict[str, List[str]]:
    """
    Checks a raw entry dict against the entry invariants.

    Returns:
        Mapping of field name to a list of problems (empty when valid).
    """
    errors: Dict[str, List[str]] = {}

    def add(field_name: str, problem: str) -> None:
        errors.setdefault(field_name, []).append(problem)

    if not data.get("id"):
        add("id", "Missing ID")

    if not data.get("date"):
        add("date", "Missing date")
    elif parse_day(data.get("date")) is None:
        add("date", "Invalid date format (expected YYYY-MM-DD)")

    moods = data.get("moods")
    if not isinstance(moods, list):
        add("moods", "Invalid moods data")
    elif not moods:
        add("moods", "At least one mood is required")
    else:
        seen = set()
        for mood in moods:
            if not isinstance(mood, dict) or not mood.get("label"):
                add("moods", "Invalid moods data")
                break
            key = (repr(mood.get("label")), repr(mood.get("value")))
            if key in seen:
                add("moods", f"Duplicate mood '{mood.get('label')}'")
            seen.add(key)

    if not is_int_in_range(data.get("intensity"), INTENSITY_RANGE):
        add("intensity", "Invalid intensity value")

    if not is_int_in_range(data.get("energy"), ENERGY_RANGE):
        add("energy", "Invalid energy value")

    sleep_quality = data.get("sleepQuality")
    if sleep_quality is not None and not is_int_in_range(sleep_quality, SLEEP_QUALITY_RANGE):
        add("sleepQuality", "Invalid sleep quality value")

    triggers = data.get("triggers", [])
    if not isinstance(triggers, list) or not all(isinstance(t, str) for t in triggers):
        add("triggers", "Invalid triggers data")

    if not isinstance(data.get("reflection", ""), str):
        add("reflection", "Invalid reflection text")

    return errors


# ============================================================================
# ENTRY
# ============================================================================

@dataclass
class MoodEntry:
    """One day's mood record."""
    id: str
    date: str                                   # YYYY-MM-DD, the only "same day" key
    moods: List[Mood] = field(default_factory=list)
    intensity: Optional[int] = DEFAULT_INTENSITY
    energy: Optional[int] = DEFAULT_ENERGY
    reflection: str = ""
    triggers: List[str] = field(default_factory=list)
    sleep_quality: Optional[int] = None
    image: Optional[str] = None
    image_analysis: Optional[Dict[str, Any]] = None
    audio_note: Optional[str] = None
    timestamp: Optional[int] = None

    @property
    def day(self) -> Optional[date]:
        return parse_day(self.date)

    @property
    def mood_labels(self) -> List[str]:
        return [mood.label for mood in self.moods]

    def to_dict(self) -> Dict[str, Any]:
        """Serializes with the persisted field names; absent optionals are omitted."""
        data: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "moods": [mood.to_dict() for mood in self.moods],
            "intensity": self.intensity,
            "energy": self.energy,
            "reflection": self.reflection,
            "triggers": list(self.triggers),
        }
        if self.sleep_quality is not None:
            data["sleepQuality"] = self.sleep_quality
        if self.image is not None:
            data["image"] = self.image
        if self.image_analysis is not None:
            data["imageAnalysis"] = self.image_analysis
        if self.audio_note is not None:
            data["audioNote"] = self.audio_note
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MoodEntry":
        """Lenient parse: never validates, tolerates missing optional fields."""
        raw_moods = data.get("moods") if isinstance(data.get("moods"), list) else []
        raw_triggers = data.get("triggers") if isinstance(data.get("triggers"), list) else []
        reflection = data.get("reflection")
        return cls(
            id=str(data.get("id", "")),
            date=str(data.get("date", "")),
            moods=[Mood.from_dict(m) for m in raw_moods if isinstance(m, dict)],
            intensity=data.get("intensity"),
            energy=data.get("energy"),
            reflection=reflection if isinstance(reflection, str) else "",
            triggers=[str(t) for t in raw_triggers],
            sleep_quality=data.get("sleepQuality"),
            image=data.get("image"),
            image_analysis=data.get("imageAnalysis"),
            audio_note=data.get("audioNote"),
            timestamp=data.get("timestamp"),
        )

    def validate(self) -> None:
        """
        Enforces the entry invariants.

        Raises:
            ValidationError: With a per-field description of every problem.
        """
        errors = entry_field_errors(self.to_dict())
        if errors:
            raise ValidationError(errors)


def entries_from_dicts(items: List[Dict[str, Any]]) -> List[MoodEntry]:
    return [MoodEntry.from_dict(item) for item in items if isinstance(item, dict)]


def entries_to_dicts(entries: List[MoodEntry]) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in entries]
