"""
Image feature extraction using Google Generative AI (Gemini).

Sends the uploaded photo to a multimodal Gemini model and asks for a strict
JSON description restricted to the analyzer palettes:
- COLORS: up to 3 dominant colors, snapped to the color palette
- SCENES: up to 2 scene tags
- EMOTIONS: exactly 1 facial/overall emotion

The reply feeds the same mood mapping as the deterministic extractor.
"""

import base64
import binascii
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import google.generativeai as genai

from mood_diary.core.image_analyzer import (
    ImageAnalyzerConfig,
    ImageFeatureExtractor,
    ImageFeatures,
    ImagePayload,
)

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

# Model preference order for cascade fallback
PREFERRED_MODELS = [
    'gemini-2.5-flash',
    'gemini-2.0-flash',
    'gemini-2.0-flash-lite',
    'gemini-flash-latest',
]

DEFAULT_MIME_TYPE = "image/jpeg"
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)
CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$")


# ============================================================================
# HELPERS
# ============================================================================

def decode_payload(payload: ImagePayload) -> Tuple[bytes, str]:
    """
    Turns a data URI (or raw bytes) into (image bytes, mime type).

    Raises:
        ValueError: If the payload is a string but not a base64 data URI.
    """
    if isinstance(payload, bytes):
        return payload, DEFAULT_MIME_TYPE

    match = DATA_URI_PATTERN.match(payload.strip())
    if not match:
        raise ValueError("Image payload is not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e
    return data, match.group("mime") or DEFAULT_MIME_TYPE


def build_prompt() -> str:
    """Constructs the JSON-only feature extraction prompt."""
    palette = ", ".join(ImageAnalyzerConfig.COLOR_PALETTE)
    scenes = ", ".join(ImageAnalyzerConfig.SCENE_MOODS.keys())
    emotions = ", ".join(ImageAnalyzerConfig.EMOTION_PALETTE)

    return f"""
### ROLE
You describe photos for a personal mood journal.

### TASK
Look at the attached image and answer with ONE JSON object, nothing else:
{{"colors": [...], "scenes": [...], "emotions": [...]}}

### RULES
- colors: the 1 to {ImageAnalyzerConfig.MAX_COLORS} dominant colors, each replaced by the closest value of this palette: {palette}
- scenes: 1 to {ImageAnalyzerConfig.MAX_SCENES} tags, only from: {scenes}
- emotions: exactly 1 tag, only from: {emotions}
- No markdown, no comments, no extra keys.
"""


def parse_features(response_text: str) -> Optional[ImageFeatures]:
    """
    Validates and cleans the model's JSON reply.

    Returns:
        ImageFeatures, or None if the reply is unusable.
    """
    cleaned = CODE_FENCE_PATTERN.sub("", response_text.strip())
    try:
        data: Dict[str, Any] = json.loads(cleaned)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    def strings(key: str) -> List[str]:
        values = data.get(key)
        return [v.strip() for v in values if isinstance(v, str)] if isinstance(values, list) else []

    colors = [c.upper() for c in strings("colors") if HEX_COLOR_PATTERN.match(c)]
    scenes = [s.lower() for s in strings("scenes") if s.lower() in ImageAnalyzerConfig.SCENE_MOODS]
    emotions = [e.lower() for e in strings("emotions") if e.lower() in ImageAnalyzerConfig.EMOTION_PALETTE]

    if not colors and not scenes and not emotions:
        return None

    return ImageFeatures(
        colors=colors[:ImageAnalyzerConfig.MAX_COLORS],
        scenes=scenes[:ImageAnalyzerConfig.MAX_SCENES],
        emotions=emotions[:1],
    )


# ============================================================================
# EXTRACTOR
# ============================================================================

class GeminiFeatureExtractor(ImageFeatureExtractor):
    """Feature extractor backed by Gemini vision models, with model cascade."""

    def __init__(self, api_key: Optional[str] = None, models: Optional[List[str]] = None):
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.models = models or PREFERRED_MODELS

    def extract(self, payload: ImagePayload) -> ImageFeatures:
        """
        Raises:
            RuntimeError: If no API key is configured or every model fails.
            ValueError: If the payload cannot be decoded.
        """
        if not self.api_key:
            logger.error("No GEMINI_API_KEY found in environment.")
            raise RuntimeError("GEMINI_API_KEY not set")

        image_bytes, mime_type = decode_payload(payload)
        prompt = build_prompt()
        genai.configure(api_key=self.api_key)

        for model_name in self.models:
            try:
                logger.info(f"Extracting image features with model: {model_name}")
                model = genai.GenerativeModel(model_name)
                response = model.generate_content([prompt, {"mime_type": mime_type, "data": image_bytes}])
                features = parse_features(response.text)

                if features:
                    logger.info(f"Model {model_name} detected scenes {features.scenes}")
                    return features
                else:
                    logger.warning(f"Model {model_name} returned invalid feature format: {response.text}")

            except Exception as e:
                logger.warning(f"Model {model_name} failed: {e}")
                continue

        logger.error("All models failed to describe the image.")
        raise RuntimeError("All Gemini models failed")
