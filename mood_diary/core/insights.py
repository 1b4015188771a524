"""
Insight engine: derived analytics over the full entry history.

Every computation is a pure function of the entry list. The engine never
mutates its input and keeps no cached state, so callers simply recompute
whenever the list changes.

Computations:
- Mood distribution over the catalog
- Weekend vs weekday intensity
- Sleep quality / intensity Pearson correlation
- Most positive trigger
- Recent mood and energy trends
- Logging streaks (current and longest)
- Mood stability score
- Recommendations
"""

import logging
import math
import statistics
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from mood_diary.core.models import (
    DEFAULT_ENERGY,
    DEFAULT_INTENSITY,
    ENERGY_RANGE,
    INTENSITY_RANGE,
    MOODS,
    SLEEP_QUALITY_RANGE,
    MoodEntry,
    is_int_in_range,
)

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION - THRESHOLDS
# ============================================================================

class InsightConfig:
    """Centralized thresholds for the insight engine."""

    # WEEKLY PATTERN
    WEEKEND_GAP: float = 0.5
    MIN_WEEKS_FOR_WEEKLY_PATTERN: int = 4

    # SLEEP CORRELATION
    MIN_SLEEP_ENTRIES: int = 5
    STRONG_CORRELATION: float = 0.6

    # TRIGGERS
    MIN_TRIGGER_OCCURRENCES: int = 2

    # TRENDS
    TREND_WINDOW: int = 6
    MOOD_TREND_THRESHOLD: float = 0.5
    ENERGY_TREND_THRESHOLD: float = 0.3

    # STREAKS
    STREAK_LOOKBACK_DAYS: int = 30

    # STABILITY
    MIN_STABILITY_ENTRIES: int = 5
    DEFAULT_STABILITY: float = 50.0
    STABILITY_DEVIATION_FACTOR: float = 20.0
    STABILITY_VERY_STABLE: float = 70.0
    STABILITY_MODERATE: float = 50.0

    # RECOMMENDATIONS
    LOW_ENERGY: float = 2.5
    LOW_INTENSITY: float = 4.0
    MIN_REFLECTION_LENGTH: int = 10
    MIN_REFLECTION_RATE: float = 0.5
    MIN_CURRENT_STREAK: int = 3

    # OUTPUT CAPS
    MAX_PATTERNS: int = 4
    MAX_PREDICTIONS: int = 3
    MAX_RECOMMENDATIONS: int = 4


class Trend(Enum):
    """Direction of a recent-window comparison."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class MoodCount:
    label: str
    emoji: str
    color: str
    count: int


@dataclass
class WeeklyAverage:
    week: str
    avg_intensity: float
    avg_energy: float
    count: int


@dataclass
class WeekdayComparison:
    weekend_avg: float
    weekday_avg: float
    weekend_count: int
    weekday_count: int


@dataclass
class Streaks:
    current: int
    longest: int


@dataclass
class Insights:
    """Derived view-model for the insights screen."""
    mood_distribution: List[MoodCount]
    weekly_averages: List[WeeklyAverage]
    weekend_vs_weekday: WeekdayComparison
    sleep_correlation: float
    most_positive_trigger: Optional[str]
    mood_trend: Trend
    energy_trend: Trend
    streaks: Streaks
    mood_stability: float
    patterns: List[str] = field(default_factory=list)
    predictions: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mood_trend"] = self.mood_trend.value
        data["energy_trend"] = self.energy_trend.value
        return data


# ============================================================================
# FIELD ACCESS WITH DEFAULTS
# ============================================================================

def intensity_of(entry: MoodEntry) -> int:
    """Entry intensity, or the default when missing or out of range."""
    if is_int_in_range(entry.intensity, INTENSITY_RANGE):
        return entry.intensity
    return DEFAULT_INTENSITY


def energy_of(entry: MoodEntry) -> int:
    if is_int_in_range(entry.energy, ENERGY_RANGE):
        return entry.energy
    return DEFAULT_ENERGY


def sleep_quality_of(entry: MoodEntry) -> Optional[int]:
    """Sleep quality, or None when it was not recorded or is unusable."""
    if is_int_in_range(entry.sleep_quality, SLEEP_QUALITY_RANGE):
        return entry.sleep_quality
    return None


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def chronological(entries: Sequence[MoodEntry]) -> List[MoodEntry]:
    """Sorts by date, then creation timestamp; undated entries sort first."""
    return sorted(entries, key=lambda e: (e.day or date.min, e.timestamp or 0))


# ============================================================================
# STATISTICS
# ============================================================================

def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient.

    Returns 0.0 for empty input or when either series has zero variance.
    """
    if len(x) != len(y):
        raise ValueError("Series must have the same length")
    n = len(x)
    if n == 0:
        return 0.0

    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(xi * yi for xi, yi in zip(x, y))
    sum_x2 = sum(xi * xi for xi in x)
    sum_y2 = sum(yi * yi for yi in y)

    numerator = n * sum_xy - sum_x * sum_y
    spread = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if spread <= 0:
        return 0.0
    return numerator / math.sqrt(spread)


def mood_distribution(entries: Sequence[MoodEntry]) -> List[MoodCount]:
    """Occurrences of each catalog mood across all entries, zero counts dropped."""
    counts = []
    for mood in MOODS:
        count = sum(
            1 for entry in entries for selected in entry.moods if selected.label == mood.label
        )
        if count > 0:
            counts.append(MoodCount(label=mood.label, emoji=mood.emoji, color=mood.color, count=count))
    return counts


def weekly_averages(entries: Sequence[MoodEntry]) -> List[WeeklyAverage]:
    """Mean intensity and energy per ISO week, in first-seen order."""
    buckets: "OrderedDict[str, List[MoodEntry]]" = OrderedDict()
    for entry in entries:
        day = entry.day
        if day is None:
            continue
        year, week, _ = day.isocalendar()
        buckets.setdefault(f"{year}-W{week:02d}", []).append(entry)

    return [
        WeeklyAverage(
            week=key,
            avg_intensity=_mean([intensity_of(e) for e in bucket]),
            avg_energy=_mean([energy_of(e) for e in bucket]),
            count=len(bucket),
        )
        for key, bucket in buckets.items()
    ]


def weekend_vs_weekday(entries: Sequence[MoodEntry]) -> WeekdayComparison:
    """Mean intensity of Saturday/Sunday entries against Monday-Friday entries."""
    weekend: List[float] = []
    weekday: List[float] = []
    for entry in entries:
        day = entry.day
        if day is None:
            continue
        if day.weekday() >= 5:
            weekend.append(intensity_of(entry))
        else:
            weekday.append(intensity_of(entry))

    return WeekdayComparison(
        weekend_avg=_mean(weekend),
        weekday_avg=_mean(weekday),
        weekend_count=len(weekend),
        weekday_count=len(weekday),
    )


def sleep_mood_correlation(entries: Sequence[MoodEntry]) -> float:
    """Correlation of sleep quality with intensity; 0.0 below the minimum sample."""
    with_sleep = [e for e in entries if sleep_quality_of(e) is not None]
    if len(with_sleep) < InsightConfig.MIN_SLEEP_ENTRIES:
        return 0.0
    return pearson([sleep_quality_of(e) for e in with_sleep], [intensity_of(e) for e in with_sleep])


def trigger_intensities(entries: Sequence[MoodEntry]) -> "OrderedDict[str, List[float]]":
    grouped: "OrderedDict[str, List[float]]" = OrderedDict()
    for entry in entries:
        for trigger in entry.triggers:
            grouped.setdefault(trigger, []).append(intensity_of(entry))
    return grouped


def most_positive_trigger(entries: Sequence[MoodEntry]) -> Optional[str]:
    """Trigger with the highest mean intensity among those seen often enough (first wins ties)."""
    best: Optional[str] = None
    best_avg = 0.0
    for trigger, values in trigger_intensities(entries).items():
        if len(values) < InsightConfig.MIN_TRIGGER_OCCURRENCES:
            continue
        avg = _mean(values)
        if avg > best_avg:
            best, best_avg = trigger, avg
    return best


def _window_trend(values: List[float], threshold: float) -> Trend:
    window = InsightConfig.TREND_WINDOW
    if len(values) < window:
        return Trend.STABLE

    recent = values[-window:]
    older = values[-2 * window:-window]
    if not older:
        return Trend.STABLE

    diff = _mean(recent) - _mean(older)
    if diff > threshold:
        return Trend.IMPROVING
    if diff < -threshold:
        return Trend.DECLINING
    return Trend.STABLE


def mood_trend(entries: Sequence[MoodEntry]) -> Trend:
    """Last 6 entries against the 6 before them (chronological order), on intensity."""
    ordered = chronological(entries)
    return _window_trend([intensity_of(e) for e in ordered], InsightConfig.MOOD_TREND_THRESHOLD)


def energy_trend(entries: Sequence[MoodEntry]) -> Trend:
    """Same windows as mood_trend, on energy with a tighter threshold."""
    ordered = chronological(entries)
    return _window_trend([energy_of(e) for e in ordered], InsightConfig.ENERGY_TREND_THRESHOLD)


def calculate_streaks(entries: Sequence[MoodEntry], today: Optional[date] = None) -> Streaks:
    """
    Longest run of consecutive logged days, and the run ending today.

    The current streak is 0 unless today has an entry, and looks back at most
    STREAK_LOOKBACK_DAYS days.
    """
    today = today or date.today()
    days = sorted({e.day for e in entries if e.day is not None})

    longest = 0
    run = 0
    previous: Optional[date] = None
    for day in days:
        if previous is not None and (day - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    logged = set(days)
    current = 0
    if today in logged:
        current = 1
        for offset in range(1, InsightConfig.STREAK_LOOKBACK_DAYS):
            if today - timedelta(days=offset) in logged:
                current += 1
            else:
                break

    return Streaks(current=current, longest=longest)


def mood_stability(entries: Sequence[MoodEntry]) -> float:
    """100 minus 20x the population std-dev of intensity, clamped to [0, 100]."""
    if len(entries) < InsightConfig.MIN_STABILITY_ENTRIES:
        return InsightConfig.DEFAULT_STABILITY

    deviation = statistics.pstdev([intensity_of(e) for e in entries])
    score = 100.0 - deviation * InsightConfig.STABILITY_DEVIATION_FACTOR
    return max(0.0, min(100.0, score))


def stability_label(score: float) -> str:
    if score >= InsightConfig.STABILITY_VERY_STABLE:
        return "Very stable mood patterns"
    if score >= InsightConfig.STABILITY_MODERATE:
        return "Moderately stable patterns"
    return "Consider focusing on consistency"


def recommendations(entries: Sequence[MoodEntry], streaks: Streaks) -> List[str]:
    """Fixed checklist evaluated against aggregate thresholds."""
    if not entries:
        return []

    result = []
    if _mean([energy_of(e) for e in entries]) < InsightConfig.LOW_ENERGY:
        result.append("Consider incorporating more physical activity or ensuring adequate rest")

    if _mean([intensity_of(e) for e in entries]) < InsightConfig.LOW_INTENSITY:
        result.append("Try practicing gratitude or mindfulness exercises")

    reflective = [e for e in entries if e.reflection and len(e.reflection) > InsightConfig.MIN_REFLECTION_LENGTH]
    if len(reflective) / len(entries) < InsightConfig.MIN_REFLECTION_RATE:
        result.append("Regular journaling could help you process emotions better")

    if streaks.current < InsightConfig.MIN_CURRENT_STREAK:
        result.append("Try to maintain consistent daily mood tracking")

    return result[:InsightConfig.MAX_RECOMMENDATIONS]


# ============================================================================
# ENGINE
# ============================================================================

class InsightEngine:
    """Runs every sub-computation and renders the text outputs."""

    def compute(self, entries: Sequence[MoodEntry], today: Optional[date] = None) -> Optional[Insights]:
        if not entries:
            return None

        weekly = weekly_averages(entries)
        comparison = weekend_vs_weekday(entries)
        correlation = sleep_mood_correlation(entries)
        top_trigger = most_positive_trigger(entries)
        recent = mood_trend(entries)
        energy = energy_trend(entries)
        streaks = calculate_streaks(entries, today)

        insights = Insights(
            mood_distribution=mood_distribution(entries),
            weekly_averages=weekly,
            weekend_vs_weekday=comparison,
            sleep_correlation=correlation,
            most_positive_trigger=top_trigger,
            mood_trend=recent,
            energy_trend=energy,
            streaks=streaks,
            mood_stability=mood_stability(entries),
            patterns=self._patterns(weekly, comparison, correlation, top_trigger),
            predictions=self._predictions(recent, energy),
            recommendations=recommendations(entries, streaks),
        )
        logger.info(
            f"[INSIGHTS] {len(entries)} entries | trend: {recent.value} | "
            f"streak: {streaks.current}/{streaks.longest} | stability: {insights.mood_stability:.0f}"
        )
        return insights

    @staticmethod
    def _patterns(weekly: List[WeeklyAverage], comparison: WeekdayComparison,
                  correlation: float, top_trigger: Optional[str]) -> List[str]:
        patterns = []

        both_sides = comparison.weekend_count > 0 and comparison.weekday_count > 0
        if len(weekly) >= InsightConfig.MIN_WEEKS_FOR_WEEKLY_PATTERN and both_sides:
            if comparison.weekend_avg > comparison.weekday_avg + InsightConfig.WEEKEND_GAP:
                patterns.append("You tend to feel better on weekends")
            elif comparison.weekday_avg > comparison.weekend_avg + InsightConfig.WEEKEND_GAP:
                patterns.append("Your mood is more positive during weekdays")

        if correlation > InsightConfig.STRONG_CORRELATION:
            patterns.append("Better sleep quality strongly correlates with improved mood")

        if top_trigger:
            patterns.append(f"{top_trigger} activities tend to boost your mood")

        return patterns[:InsightConfig.MAX_PATTERNS]

    @staticmethod
    def _predictions(recent: Trend, energy: Trend) -> List[str]:
        predictions = []
        if recent is Trend.IMPROVING:
            predictions.append("Based on recent patterns, your mood trend is positive")
        elif recent is Trend.DECLINING:
            predictions.append("Consider focusing on self-care activities this week")

        if energy is Trend.DECLINING:
            predictions.append("Your energy levels may benefit from more rest or exercise")

        return predictions[:InsightConfig.MAX_PREDICTIONS]


def compute_insights(entries: Sequence[MoodEntry], today: Optional[date] = None) -> Optional[Insights]:
    """Module-level entry point; returns None for an empty history."""
    return InsightEngine().compute(entries, today)
