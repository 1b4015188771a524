from datetime import date
from unittest.mock import MagicMock

from mood_diary.core.errors import ParseError
from mood_diary.core.models import entry_field_errors
from mood_diary.core.validator import (
    MAX_REPORTED_ISSUES, check_entries, check_integrity, repair_entries, repair_entry, repair_store,
)


class TestIntegrityCheck:
    """Integrity report over raw store content."""

    def test_valid_entries(self, sample_entries):
        report = check_entries([e.to_dict() for e in sample_entries])

        assert report.is_valid is True
        assert report.issues == []
        assert report.total_entries == 7

    def test_not_an_array(self):
        report = check_entries({"entries": []})

        assert report.is_valid is False
        assert report.issues == ["Data is not in correct array format"]

    def test_missing_moods_counts_as_corrupted(self, make_entry):
        broken = make_entry("2024-01-15").to_dict()
        del broken["moods"]
        report = check_entries([broken, "garbage"])

        assert report.issues == ["Entry 1: Invalid moods data", "Entry 2: Not an object"]
        assert report.corrupted_entries == 2
        assert report.total_entries == 2

    def test_issue_list_is_capped(self):
        report = check_entries([{} for _ in range(20)])

        assert len(report.issues) == MAX_REPORTED_ISSUES
        assert report.corrupted_entries == 20

    def test_unparseable_store(self):
        store = MagicMock()
        store.load_raw.side_effect = ParseError("bad json")
        report = check_integrity(store)

        assert report.is_valid is False
        assert report.issues == ["Data is corrupted and cannot be parsed"]


class TestRepair:
    """Auto-repair with documented defaults."""

    def test_repair_entry_defaults(self):
        repaired, changed = repair_entry({"sleepQuality": 12, "reflection": None}, 3)

        assert changed is True
        assert repaired["id"].startswith("repaired_")
        assert repaired["id"].endswith("_3")
        assert repaired["date"] == date.today().isoformat()
        assert repaired["moods"][0]["label"] == "Neutral"
        assert repaired["intensity"] == 5
        assert repaired["energy"] == 3
        assert "sleepQuality" not in repaired
        assert repaired["reflection"] == ""
        assert repaired["triggers"] == []
        assert repaired["timestamp"] > 0
        assert entry_field_errors(repaired) == {}

    def test_valid_entry_is_unchanged(self, make_entry):
        data = make_entry("2024-01-15").to_dict()
        repaired, changed = repair_entry(data, 0)

        assert changed is False
        assert repaired == data

    def test_invalid_mood_items_are_dropped(self, make_entry):
        data = make_entry("2024-01-15").to_dict()
        data["moods"] = data["moods"] + ["oops"]
        repaired, changed = repair_entry(data, 0)

        assert changed is True
        assert [m["label"] for m in repaired["moods"]] == ["Happy"]

    def test_repair_entries_drops_non_objects(self, make_entry):
        raw = [make_entry("2024-01-15").to_dict(), 42, {"date": "2024-01-16"}]
        repaired, count = repair_entries(raw)

        assert len(repaired) == 2
        assert count == 1
        assert check_entries(repaired).is_valid is True

    def test_repair_store_resets_unparseable_data(self):
        store = MagicMock()
        store.load_raw.side_effect = ParseError("bad json")

        assert repair_store(store) == 0
        store.save_raw.assert_called_once_with([])

    def test_repair_store_reports_save_failure(self):
        store = MagicMock()
        store.load_raw.return_value = [{}]
        store.save_raw.side_effect = OSError("disk full")

        assert repair_store(store) == -1

    def test_repair_removes_duplicate_moods_and_bad_triggers(self, make_entry):
        data = make_entry("2024-01-15", moods=("Happy", "Happy", "Grateful"), triggers=("Work/Career",)).to_dict()
        data["triggers"] = ["Work/Career", 1, 2]
        assert check_entries([data]).issues == [
            "Entry 1: Duplicate mood 'Happy'",
            "Entry 1: Invalid triggers data",
        ]

        repaired, count = repair_entries([data])

        assert count == 1
        assert [m["label"] for m in repaired[0]["moods"]] == ["Happy", "Grateful"]
        assert repaired[0]["triggers"] == ["Work/Career"]
        assert check_entries(repaired).is_valid is True

    def test_repair_replaces_fractional_values(self, make_entry):
        data = make_entry("2024-01-15", sleep_quality=4).to_dict()
        data.update({"intensity": 6.5, "energy": "3", "sleepQuality": 2.5})
        repaired, changed = repair_entry(data, 0)

        assert changed is True
        assert repaired["intensity"] == 5
        assert repaired["energy"] == 3
        assert "sleepQuality" not in repaired
        assert entry_field_errors(repaired) == {}

    def test_unhashable_mood_values_do_not_break_checks(self, make_entry):
        data = make_entry("2024-01-15").to_dict()
        data["moods"] = [{"label": "Happy", "value": [4]}, {"label": "Happy", "value": [4]}]

        assert check_entries([data]).issues == ["Entry 1: Duplicate mood 'Happy'"]
        repaired, _ = repair_entry(data, 0)
        assert len(repaired["moods"]) == 1
