import pytest
import os
import sys
from unittest.mock import MagicMock, patch

# Add project root to Python Path so modules can be imported
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mood_diary.adapters.repositories.json_store import JsonFileStore
from mood_diary.core.models import MoodEntry, date_to_millis, find_mood

# ============================================================================
# 1. GLOBAL MOCKS (ENV VARS & APIS)
# ============================================================================

@pytest.fixture(autouse=True)
def mock_env_vars(tmp_path):
    """Sets up fake environment variables for all tests."""
    with patch.dict(os.environ, {
        "GEMINI_API_KEY": "fake_key",
        "MONGODB_URI": "mongodb://localhost:27017",
        "MOOD_DIARY_STORE": str(tmp_path / "env_entries.json"),
        "MOOD_DIARY_BACKUP_DIR": str(tmp_path / "env_backups"),
    }):
        yield

@pytest.fixture
def mock_genai():
    """Mocks Google Generative AI (Gemini)."""
    with patch("mood_diary.adapters.clients.gemini.genai") as mock:
        mock.configure = MagicMock()

        model_instance = MagicMock()
        mock.GenerativeModel.return_value = model_instance

        # Default happy path response
        response = MagicMock()
        response.text = '{"colors": ["#96CEB4"], "scenes": ["nature"], "emotions": ["happy"]}'
        model_instance.generate_content.return_value = response

        yield mock

@pytest.fixture
def mock_requests():
    """Mocks requests.get for the image loader."""
    with patch("mood_diary.adapters.clients.image_loader.requests.get") as mock_get:
        yield mock_get

# ============================================================================
# 2. ENTRY FIXTURES
# ============================================================================

def build_entry(day, moods=("Happy",), intensity=5, energy=3, reflection="",
                triggers=(), sleep_quality=None, entry_id=None, timestamp=None):
    """Builds a valid MoodEntry for a YYYY-MM-DD day."""
    return MoodEntry(
        id=entry_id or f"entry-{day}",
        date=day,
        moods=[find_mood(label) for label in moods],
        intensity=intensity,
        energy=energy,
        reflection=reflection,
        triggers=list(triggers),
        sleep_quality=sleep_quality,
        timestamp=timestamp if timestamp is not None else date_to_millis(day),
    )

@pytest.fixture
def make_entry():
    """Factory fixture around build_entry."""
    return build_entry

@pytest.fixture
def sample_entries():
    """A week of realistic entries (2024-01-15 is a Monday)."""
    return [
        build_entry("2024-01-15", ("Happy", "Grateful"), 8, 4,
                    "Great day at work! Finished a big project and felt accomplished.",
                    ("Work/Career", "Achievement"), 4),
        build_entry("2024-01-16", ("Anxious",), 6, 2,
                    "Worried about the upcoming presentation. Need to prepare more.",
                    ("Work/Career", "Stress"), 2),
        build_entry("2024-01-17", ("Peaceful",), 7, 3,
                    "Went for a long walk in the park.",
                    ("Exercise", "Weather"), 4),
        build_entry("2024-01-18", ("Tired", "Sad"), 3, 1,
                    "Didn't sleep well.",
                    ("Sleep", "Health"), 1),
        build_entry("2024-01-19", ("Very Happy",), 9, 5,
                    "Presentation went really well, celebrated with friends.",
                    ("Work/Career", "Social"), 5),
        build_entry("2024-01-20", ("Happy",), 7, 4,
                    "Family brunch.",
                    ("Family",), 4),
        build_entry("2024-01-21", ("Neutral",), 5, 3, "", (), 3),
    ]

@pytest.fixture
def json_store(tmp_path):
    """Empty JSON file store in a temp directory."""
    return JsonFileStore(path=str(tmp_path / "entries.json"), backup_dir=str(tmp_path / "backups"))
