"""
Image mood analysis.

Maps visual features of an uploaded photo (dominant colors, scene tags and a
detected emotion) onto suggested mood labels, a confidence score and a few
natural-language insights.

Feature extraction is pluggable through ImageFeatureExtractor:
- LengthHashFeatureExtractor: deterministic palette picks keyed on payload length
- GeminiFeatureExtractor (adapters.clients.gemini): real vision model

The mood mapping below is shared by every extractor.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from mood_diary.core.errors import AnalysisError
from mood_diary.core.models import INTENSITY_RANGE, MOODS, Mood

logger = logging.getLogger(__name__)

ImagePayload = Union[str, bytes]


# ============================================================================
# CONFIGURATION - PALETTES & ASSOCIATIONS
# ============================================================================

class ImageAnalyzerConfig:
    """Centralized palettes and mood association tables."""

    COLOR_PALETTE: List[str] = [
        "#FF6B6B",
        "#4ECDC4",
        "#45B7D1",
        "#96CEB4",
        "#FFEAA7",
        "#DDA0DD",
        "#98D8C8",
        "#F7DC6F",
        "#BB8FCE",
        "#85C1E9",
    ]

    SCENE_PALETTE: List[str] = [
        "nature", "sunset", "food", "pets", "friends", "family",
        "city", "home", "art", "books", "workout", "travel",
    ]

    EMOTION_PALETTE: List[str] = ["happy", "sad", "neutral", "surprised", "peaceful", "excited"]

    HEX_COLOR_NAMES: Dict[str, str] = {
        "#FF6B6B": "red",
        "#4ECDC4": "blue",
        "#45B7D1": "blue",
        "#96CEB4": "green",
        "#FFEAA7": "yellow",
        "#DDA0DD": "purple",
        "#98D8C8": "green",
        "#F7DC6F": "yellow",
        "#BB8FCE": "purple",
        "#85C1E9": "blue",
    }
    DEFAULT_COLOR_NAME: str = "gray"

    # Color psychology
    COLOR_MOODS: Dict[str, List[str]] = {
        "red": ["energetic", "passionate", "angry", "excited"],
        "blue": ["calm", "peaceful", "sad", "serene"],
        "green": ["peaceful", "natural", "balanced", "hopeful"],
        "yellow": ["happy", "optimistic", "cheerful", "energetic"],
        "orange": ["enthusiastic", "warm", "creative", "social"],
        "purple": ["creative", "mysterious", "spiritual", "imaginative"],
        "pink": ["loving", "gentle", "romantic", "nurturing"],
        "black": ["serious", "elegant", "mysterious", "sad"],
        "white": ["pure", "clean", "peaceful", "minimalist"],
        "brown": ["grounded", "stable", "natural", "comfortable"],
        "gray": ["neutral", "balanced", "calm", "professional"],
    }

    SCENE_MOODS: Dict[str, List[str]] = {
        "nature": ["peaceful", "calm", "refreshed", "grateful"],
        "sunset": ["peaceful", "romantic", "reflective", "grateful"],
        "beach": ["relaxed", "peaceful", "happy", "free"],
        "mountains": ["inspired", "peaceful", "adventurous", "strong"],
        "city": ["energetic", "busy", "social", "ambitious"],
        "food": ["satisfied", "social", "grateful", "happy"],
        "pets": ["happy", "loving", "grateful", "peaceful"],
        "friends": ["social", "happy", "grateful", "connected"],
        "family": ["loving", "grateful", "connected", "secure"],
        "workout": ["energetic", "strong", "accomplished", "healthy"],
        "art": ["creative", "inspired", "expressive", "thoughtful"],
        "books": ["peaceful", "thoughtful", "learning", "focused"],
        "music": ["expressive", "emotional", "creative", "energetic"],
        "travel": ["adventurous", "excited", "grateful", "free"],
        "work": ["focused", "productive", "professional", "busy"],
        "home": ["comfortable", "peaceful", "secure", "relaxed"],
    }

    MAX_COLORS: int = 3
    MAX_SCENES: int = 2
    MAX_SUGGESTED_MOODS: int = 4
    MAX_INSIGHTS: int = 3

    BASE_CONFIDENCE: float = 0.6
    CONFIDENCE_PER_MOOD: float = 0.05
    MAX_CONFIDENCE: float = 0.95

    # Above this confidence the suggestions also propose an intensity
    INTENSITY_SUGGESTION_CONFIDENCE: float = 0.7

    DEFAULT_LATENCY_SECONDS: float = 2.0


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class ImageFeatures:
    """Raw features produced by an extractor."""
    colors: List[str]
    scenes: List[str]
    emotions: List[str]


@dataclass
class ImageAnalysis:
    """Result attached to an entry as `imageAnalysis`."""
    suggested_moods: List[str]
    confidence: float
    insights: List[str]
    colors: List[str]
    objects: List[str]
    emotions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestedMoods": list(self.suggested_moods),
            "confidence": self.confidence,
            "insights": list(self.insights),
            "colors": list(self.colors),
            "objects": list(self.objects),
            "emotions": list(self.emotions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageAnalysis":
        return cls(
            suggested_moods=list(data.get("suggestedMoods", [])),
            confidence=float(data.get("confidence", 0.0)),
            insights=list(data.get("insights", [])),
            colors=list(data.get("colors", [])),
            objects=list(data.get("objects", [])),
            emotions=list(data.get("emotions", [])),
        )


@dataclass
class ImageComposition:
    """Coarse composition scores, each in [0, 1]."""
    brightness: float
    contrast: float
    saturation: float
    mood_score: float


# ============================================================================
# FEATURE EXTRACTORS
# ============================================================================

class ImageFeatureExtractor(ABC):
    """Capability interface: turn an image payload into mood-relevant features."""

    @abstractmethod
    def extract(self, payload: ImagePayload) -> ImageFeatures:
        raise NotImplementedError


class LengthHashFeatureExtractor(ImageFeatureExtractor):
    """
    Deterministic stand-in for computer vision.

    Every feature is a palette slice indexed by len(payload). The color slice
    does not wrap, so payload lengths ending in 8 or 9 yield fewer than 3 colors.
    """

    def extract(self, payload: ImagePayload) -> ImageFeatures:
        return ImageFeatures(
            colors=self.extract_colors(payload),
            scenes=self.detect_scenes(payload),
            emotions=self.detect_emotions(payload),
        )

    @staticmethod
    def extract_colors(payload: ImagePayload) -> List[str]:
        palette = ImageAnalyzerConfig.COLOR_PALETTE
        start = len(payload) % len(palette)
        return palette[start:start + ImageAnalyzerConfig.MAX_COLORS]

    @staticmethod
    def detect_scenes(payload: ImagePayload) -> List[str]:
        palette = ImageAnalyzerConfig.SCENE_PALETTE
        index = len(payload) % len(palette)
        return [palette[index], palette[(index + 1) % len(palette)]]

    @staticmethod
    def detect_emotions(payload: ImagePayload) -> List[str]:
        palette = ImageAnalyzerConfig.EMOTION_PALETTE
        return [palette[len(payload) % len(palette)]]


# ============================================================================
# MOOD MAPPING
# ============================================================================

def color_name(hex_color: str) -> str:
    """Maps a hex color onto a coarse color name ("gray" when unknown)."""
    return ImageAnalyzerConfig.HEX_COLOR_NAMES.get(hex_color.upper(), ImageAnalyzerConfig.DEFAULT_COLOR_NAME)


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def map_features_to_moods(features: ImageFeatures) -> List[str]:
    """
    Expands colors and scenes through the association tables.

    Returns:
        Every associated mood, deduplicated in first-seen order (not truncated).
    """
    color_moods: List[str] = []
    for color in features.colors:
        color_moods.extend(ImageAnalyzerConfig.COLOR_MOODS.get(color_name(color), []))

    scene_moods: List[str] = []
    for scene in features.scenes:
        scene_moods.extend(ImageAnalyzerConfig.SCENE_MOODS.get(scene, []))

    return _unique(color_moods + scene_moods + list(features.emotions))


def generate_insights(features: ImageFeatures) -> List[str]:
    """Fixed sentences triggered by scenes, color names and emotions, in priority order."""
    insights: List[str] = []
    names = {color_name(color) for color in features.colors}
    scenes = features.scenes

    if "nature" in scenes:
        insights.append("Natural settings often promote feelings of peace and well-being")

    if "friends" in scenes or "family" in scenes:
        insights.append("Social connections are visible, suggesting feelings of belonging and love")

    if "blue" in names:
        insights.append("Blue tones suggest calmness and tranquility")

    if "yellow" in names:
        insights.append("Warm yellow colors indicate positivity and energy")

    if "workout" in scenes or "travel" in scenes:
        insights.append("Active lifestyle elements suggest energy and accomplishment")

    if "happy" in features.emotions:
        insights.append("Facial expressions indicate positive emotional state")

    return insights[:ImageAnalyzerConfig.MAX_INSIGHTS]


def compute_confidence(mood_count: int) -> float:
    raw = ImageAnalyzerConfig.BASE_CONFIDENCE + ImageAnalyzerConfig.CONFIDENCE_PER_MOOD * mood_count
    return round(min(ImageAnalyzerConfig.MAX_CONFIDENCE, raw), 4)


def build_analysis(features: ImageFeatures) -> ImageAnalysis:
    """Pure mapping step shared by every extractor."""
    all_moods = map_features_to_moods(features)
    return ImageAnalysis(
        suggested_moods=all_moods[:ImageAnalyzerConfig.MAX_SUGGESTED_MOODS],
        confidence=compute_confidence(len(all_moods)),
        insights=generate_insights(features),
        colors=list(features.colors[:ImageAnalyzerConfig.MAX_COLORS]),
        objects=list(features.scenes[:ImageAnalyzerConfig.MAX_SCENES]),
        emotions=list(features.emotions[:1]),
    )


# ============================================================================
# ANALYZER
# ============================================================================

class ImageMoodAnalyzer:
    """
    Asynchronous facade over a feature extractor.

    Concurrent calls are independent: nothing here orders or cancels them, so a
    caller that replaces an image mid-analysis must drop the stale result itself.
    """

    def __init__(self, extractor: Optional[ImageFeatureExtractor] = None,
                 latency: float = ImageAnalyzerConfig.DEFAULT_LATENCY_SECONDS):
        self.extractor = extractor or LengthHashFeatureExtractor()
        self.latency = latency

    async def analyze(self, payload: ImagePayload) -> ImageAnalysis:
        """
        Analyzes an image payload (data URI or raw bytes).

        Raises:
            AnalysisError: If feature extraction fails for any reason.
        """
        if self.latency > 0:
            await asyncio.sleep(self.latency)

        try:
            features = await asyncio.to_thread(self.extractor.extract, payload)
            analysis = build_analysis(features)
        except Exception as e:
            logger.error(f"Image analysis error: {e}")
            raise AnalysisError(cause=e) from e

        logger.info(
            f"[IMAGE_ANALYZER] {len(analysis.suggested_moods)} mood indicators "
            f"(confidence {analysis.confidence:.2f})"
        )
        return analysis


async def analyze_image_mood(payload: ImagePayload,
                             extractor: Optional[ImageFeatureExtractor] = None,
                             latency: float = ImageAnalyzerConfig.DEFAULT_LATENCY_SECONDS) -> ImageAnalysis:
    """Module-level shortcut for a one-off ImageMoodAnalyzer.analyze call."""
    return await ImageMoodAnalyzer(extractor, latency).analyze(payload)


def analyze_composition(payload: ImagePayload) -> ImageComposition:
    """Composition scores keyed on payload length, like the default extractor."""
    size = len(payload)
    return ImageComposition(
        brightness=(size % 100) / 100,
        contrast=((size * 2) % 100) / 100,
        saturation=((size * 3) % 100) / 100,
        mood_score=((size % 10) + 1) / 10,
    )


# ============================================================================
# SUGGESTIONS FOR THE ENTRY FORM
# ============================================================================

def _match_catalog(label: str) -> Optional[Mood]:
    needle = label.lower()
    for mood in MOODS:
        if needle in mood.label.lower():
            return mood
    return None


def suggest_catalog_moods(analysis: ImageAnalysis) -> List[Mood]:
    """Catalog moods whose label contains a suggested mood label (first match each)."""
    result: List[Mood] = []
    for label in analysis.suggested_moods:
        mood = _match_catalog(label)
        if mood and mood not in result:
            result.append(mood)
    return result


def suggest_intensity(analysis: ImageAnalysis) -> Optional[int]:
    """
    Proposes a 1-10 intensity from a confident analysis.

    Returns:
        Twice the mean catalog value of the suggestions (3 for unmatched),
        rounded half up, or None below the confidence threshold.
    """
    if analysis.confidence <= ImageAnalyzerConfig.INTENSITY_SUGGESTION_CONFIDENCE:
        return None
    if not analysis.suggested_moods:
        return None

    values = []
    for label in analysis.suggested_moods:
        mood = _match_catalog(label)
        values.append(mood.value if mood else 3)

    scaled = int(sum(values) / len(values) * 2 + 0.5)
    return max(INTENSITY_RANGE[0], min(INTENSITY_RANGE[1], scaled))
