"""
Overview report for a time range of entries (the insights screen export).
"""

import logging
from calendar import monthrange
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from mood_diary.core.insights import energy_of, intensity_of, mood_distribution, pearson, sleep_quality_of
from mood_diary.core.models import MoodEntry

logger = logging.getLogger(__name__)

TOP_TRIGGER_LIMIT = 6
GOAL_WINDOW_DAYS = 7
MIN_SLEEP_POINTS = 3
GOOD_SLEEP = 4
POSITIVE_MOOD_VALUE = 4
MIXED_EMOTION_RATE = 0.3


class TimeRange(Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    ALL = "all"


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def range_start(time_range: TimeRange, today: date) -> Optional[date]:
    if time_range is TimeRange.WEEK:
        return today - timedelta(days=7)
    if time_range is TimeRange.MONTH:
        return _months_back(today, 1)
    if time_range is TimeRange.QUARTER:
        return _months_back(today, 3)
    return None


def entries_in_range(entries: Sequence[MoodEntry], time_range: TimeRange,
                     today: Optional[date] = None) -> List[MoodEntry]:
    """Entries dated on or after the start of the range (all entries for ALL)."""
    start = range_start(time_range, today or date.today())
    if start is None:
        return list(entries)
    return [e for e in entries if e.day is not None and e.day >= start]


def top_triggers(entries: Sequence[MoodEntry], limit: int = TOP_TRIGGER_LIMIT) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for entry in entries:
        for trigger in entry.triggers:
            counts[trigger] = counts.get(trigger, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"trigger": trigger, "count": count} for trigger, count in ranked[:limit]]


def average_mood_value(entry: MoodEntry) -> float:
    """Mean catalog value (1-5) of the entry's moods, 3 when there are none."""
    if not entry.moods:
        return 3.0
    return sum(m.value for m in entry.moods) / len(entry.moods)


def sleep_mood_points(entries: Sequence[MoodEntry]) -> List[Dict[str, Any]]:
    return [
        {"sleep": sleep_quality_of(e), "avgMood": average_mood_value(e), "date": e.date}
        for e in entries if sleep_quality_of(e) is not None
    ]


def goal_progress(all_entries: Sequence[MoodEntry], ranged: Sequence[MoodEntry],
                  today: date) -> Dict[str, float]:
    """Percentages (capped at 100) for logging frequency, positive ratio and energy."""
    window_start = today - timedelta(days=GOAL_WINDOW_DAYS)
    last_week = [e for e in all_entries if e.day is not None and e.day >= window_start]
    logging_progress = len(last_week) / GOAL_WINDOW_DAYS * 100

    positive = [e for e in ranged if any(m.value >= POSITIVE_MOOD_VALUE for m in e.moods)]
    positive_progress = len(positive) / len(ranged) * 100 if ranged else 0.0

    avg_energy = sum(energy_of(e) for e in ranged) / (len(ranged) or 1)
    energy_progress = avg_energy / 5 * 100

    return {
        "dailyLogging": min(logging_progress, 100.0),
        "positiveRatio": min(positive_progress, 100.0),
        "energy": min(energy_progress, 100.0),
    }


def summary_insights(entries: Sequence[MoodEntry]) -> List[str]:
    if not entries:
        return []

    insights = []
    avg_intensity = sum(intensity_of(e) for e in entries) / len(entries)
    insights.append(f"Your average mood intensity is {avg_intensity:.1f}/10")

    avg_energy = sum(energy_of(e) for e in entries) / len(entries)
    if avg_energy >= 4:
        insights.append("You maintain high energy levels consistently")
    elif avg_energy <= 2:
        insights.append("Consider focusing on activities that boost your energy")

    triggers = top_triggers(entries)
    if triggers:
        insights.append(f'Your most common mood trigger is "{triggers[0]["trigger"]}"')

    points = sleep_mood_points(entries)
    if len(points) >= MIN_SLEEP_POINTS:
        rested = [p["avgMood"] for p in points if p["sleep"] >= GOOD_SLEEP]
        avg_rested_mood = sum(rested) / len(rested) if rested else 0.0
        if avg_rested_mood > avg_intensity:
            insights.append("Better sleep quality correlates with improved mood")

    mixed = [e for e in entries if len(e.moods) > 1]
    if len(mixed) > len(entries) * MIXED_EMOTION_RATE:
        insights.append("You often experience complex, mixed emotions")

    return insights


def build_report(entries: Sequence[MoodEntry], time_range: TimeRange = TimeRange.ALL,
                 today: Optional[date] = None) -> Dict[str, Any]:
    """Builds the exportable overview for a time range."""
    today = today or date.today()
    ranged = entries_in_range(entries, time_range, today)
    count = len(ranged) or 1

    intensities = [intensity_of(e) for e in ranged]
    energies = [energy_of(e) for e in ranged]

    report = {
        "period": time_range.value,
        "totalEntries": len(ranged),
        "moodDistribution": [
            {"name": m.label, "value": m.count, "emoji": m.emoji, "color": m.color}
            for m in mood_distribution(ranged)
        ],
        "topTriggers": top_triggers(ranged),
        "intensityEnergy": [
            {"intensity": i, "energy": en, "date": e.date} for e, i, en in zip(ranged, intensities, energies)
        ],
        "intensityEnergyCorrelation": pearson(intensities, energies),
        "sleepMood": sleep_mood_points(ranged),
        "goalProgress": goal_progress(entries, ranged, today),
        "insights": summary_insights(ranged),
        "averageIntensity": sum(intensities) / count,
        "averageEnergy": sum(energies) / count,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
    logger.info(f"[REPORT] {time_range.value}: {len(ranged)} entries")
    return report
