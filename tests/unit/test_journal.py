import pytest
from datetime import date
from unittest.mock import MagicMock

from mood_diary.core.errors import ValidationError
from mood_diary.core.image_analyzer import ImageAnalysis
from mood_diary.core.journal import (
    Period, SortOrder, add_entry, create_entry, delete_entry, entry_for_date,
    filter_entries, generate_reflection_prompt, primary_mood, update_entry,
)
from mood_diary.core.models import Mood, find_mood


def first_choice():
    rng = MagicMock()
    rng.choice.side_effect = lambda options: options[0]
    return rng


def last_choice():
    rng = MagicMock()
    rng.choice.side_effect = lambda options: options[-1]
    return rng


class TestEntryLifecycle:
    """Create, update and delete."""

    def test_create_entry_requires_a_mood(self):
        with pytest.raises(ValidationError) as exc_info:
            create_entry(moods=[])

        assert "moods" in exc_info.value.field_errors

    def test_create_entry_normalizes_input(self):
        entry = create_entry(
            moods=[find_mood("Happy")],
            intensity=7,
            energy=4,
            reflection="  Nice walk  ",
            triggers=["Exercise", "Weather", "Exercise"],
            sleep_quality=4,
            entry_date=date(2024, 2, 10),
        )

        assert entry.date == "2024-02-10"
        assert entry.reflection == "Nice walk"
        assert entry.triggers == ["Exercise", "Weather"]
        assert entry.id
        assert entry.timestamp > 0

    def test_create_entry_defaults_to_today(self):
        entry = create_entry(moods=[find_mood("Neutral")])
        assert entry.date == date.today().isoformat()
        assert entry.intensity == 5
        assert entry.energy == 3

    def test_create_entry_rejects_out_of_range_values(self):
        with pytest.raises(ValidationError) as exc_info:
            create_entry(moods=[find_mood("Sad")], intensity=11, energy=0)

        assert set(exc_info.value.field_errors) == {"intensity", "energy"}

    def test_create_entry_rejects_fractional_values(self):
        with pytest.raises(ValidationError) as exc_info:
            create_entry(moods=[find_mood("Happy")], intensity=5.5, energy=2.5)

        assert set(exc_info.value.field_errors) == {"intensity", "energy"}

    def test_create_entry_keeps_image_analysis(self):
        analysis = ImageAnalysis(
            suggested_moods=["calm"], confidence=0.65, insights=[], colors=["#45B7D1"], objects=["books"],
        )
        entry = create_entry(moods=[find_mood("Peaceful")], image="data:image/png;base64,AAAA",
                             image_analysis=analysis)

        assert entry.image_analysis["suggestedMoods"] == ["calm"]
        assert entry.to_dict()["imageAnalysis"]["objects"] == ["books"]

    def test_add_entry_returns_new_list(self, sample_entries):
        entry = create_entry(moods=[find_mood("Happy")], entry_date=date(2024, 1, 22))
        updated = add_entry(sample_entries, entry)

        assert len(updated) == len(sample_entries) + 1
        assert updated[-1] is entry
        assert entry not in sample_entries

    def test_update_entry(self, sample_entries):
        target = sample_entries[1]
        updated = update_entry(sample_entries, target.id, reflection="Felt better later", energy=4)

        edited = entry_for_date(updated, date(2024, 1, 16))
        assert edited.reflection == "Felt better later"
        assert edited.energy == 4
        assert edited.intensity == target.intensity
        # Original list is untouched
        assert sample_entries[1].energy == 2

    def test_update_unknown_entry(self, sample_entries):
        with pytest.raises(KeyError):
            update_entry(sample_entries, "missing", reflection="x")

    def test_update_validates(self, sample_entries):
        with pytest.raises(ValidationError):
            update_entry(sample_entries, sample_entries[0].id, intensity=42)

    def test_delete_entry(self, sample_entries):
        remaining = delete_entry(sample_entries, sample_entries[0].id)
        assert len(remaining) == len(sample_entries) - 1
        assert delete_entry(sample_entries, "missing") == sample_entries


class TestHistory:
    """Search, period filtering and calendar lookups."""

    def test_search_is_case_insensitive(self, sample_entries):
        by_reflection = filter_entries(sample_entries, search="PRESENTATION")
        by_mood = filter_entries(sample_entries, search="anx")
        by_trigger = filter_entries(sample_entries, search="family")

        assert [e.date for e in by_reflection] == ["2024-01-19", "2024-01-16"]
        assert [e.date for e in by_mood] == ["2024-01-16"]
        assert [e.date for e in by_trigger] == ["2024-01-20"]

    def test_search_matches_photo_insights(self, make_entry):
        entry = make_entry("2024-01-01")
        entry.image_analysis = {"insights": ["Blue tones suggest calmness and tranquility"]}

        assert filter_entries([entry], search="tranquility") == [entry]

    def test_week_runs_sunday_to_saturday(self, sample_entries):
        week = filter_entries(sample_entries, period=Period.WEEK, order=SortOrder.ASC,
                              today=date(2024, 1, 17))

        assert [e.date for e in week] == [
            "2024-01-15", "2024-01-16", "2024-01-17", "2024-01-18", "2024-01-19", "2024-01-20",
        ]

    def test_today_and_month(self, sample_entries):
        today = filter_entries(sample_entries, period=Period.TODAY, today=date(2024, 1, 18))
        month = filter_entries(sample_entries, period=Period.MONTH, today=date(2024, 2, 1))

        assert [e.date for e in today] == ["2024-01-18"]
        assert month == []

    def test_default_order_is_newest_first(self, sample_entries):
        ordered = filter_entries(list(reversed(sample_entries)))
        assert ordered[0].date == "2024-01-21"
        assert ordered[-1].date == "2024-01-15"

    def test_entry_for_date(self, sample_entries):
        assert entry_for_date(sample_entries, date(2024, 1, 17)).moods[0].label == "Peaceful"
        assert entry_for_date(sample_entries, date(2023, 1, 1)) is None

    def test_primary_mood(self, sample_entries, make_entry):
        assert primary_mood(sample_entries[0]).label == "Happy"

        custom = make_entry("2024-01-01")
        custom.moods = [Mood("🤔", "Curious", 3, "")]
        assert primary_mood(custom).label == "Neutral"


class TestReflectionPrompt:
    """Reflection prompt templates."""

    def test_requires_moods(self):
        with pytest.raises(ValueError):
            generate_reflection_prompt([], 5, 3)

    def test_first_template_wording(self):
        prompt = generate_reflection_prompt([find_mood("Happy"), find_mood("Tired")], 2, 2, rng=first_choice())

        assert prompt == (
            "You're feeling mildly happy, tired with low energy today. "
            "What events or thoughts contributed to these feelings?"
        )

    def test_strong_high_energy_wording(self):
        prompt = generate_reflection_prompt([find_mood("Grateful")], 8, 5, rng=first_choice())
        assert prompt.startswith("You're feeling strongly grateful with high energy today.")

    def test_photo_templates(self):
        analysis = ImageAnalysis(
            suggested_moods=["peaceful", "calm"], confidence=0.8,
            insights=["Blue tones suggest calmness and tranquility"], colors=[], objects=[],
        )
        prompt = generate_reflection_prompt([find_mood("Peaceful")], 6, 3, analysis=analysis, rng=last_choice())

        assert prompt == (
            "Your photo suggests peaceful and calm feelings. "
            "What story does this image tell about your day?"
        )

    def test_random_prompt_mentions_moods(self):
        import random

        prompt = generate_reflection_prompt([find_mood("Angry")], 5, 3, rng=random.Random(7))
        assert "angry" in prompt
