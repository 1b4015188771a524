import json
import os
import pytest
from unittest.mock import patch

from mood_diary import main
from mood_diary.adapters.repositories.json_store import JsonFileStore
from mood_diary.core.transfer import build_export


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keeps the CLI from creating logs/app.log during tests."""
    with patch("mood_diary.main.setup_logger") as mock_setup:
        yield mock_setup


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "cli_entries.json")


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\0" * 64)
    return str(path)


class TestAddCommand:
    """Recording entries from the command line."""

    def test_add_entry(self, store_path):
        code = main.main([
            "--store", store_path, "add",
            "--mood", "Happy", "--mood", "Grateful",
            "--intensity", "7", "--energy", "4",
            "--trigger", "Exercise", "--sleep", "4",
            "--reflection", "Morning run", "--date", "2024-01-15",
        ])

        assert code == 0
        entries = JsonFileStore(path=store_path).load_entries()
        assert len(entries) == 1
        assert entries[0].mood_labels == ["Happy", "Grateful"]
        assert entries[0].date == "2024-01-15"
        assert entries[0].sleep_quality == 4

    def test_unknown_mood(self, store_path):
        assert main.main(["--store", store_path, "add", "--mood", "Bored"]) == 1
        assert JsonFileStore(path=store_path).load_entries() == []

    def test_no_mood_selected(self, store_path):
        assert main.main(["--store", store_path, "add", "--intensity", "5"]) == 1

    def test_out_of_range_intensity(self, store_path):
        assert main.main(["--store", store_path, "add", "--mood", "Sad", "--intensity", "12"]) == 1

    def test_add_with_photo(self, store_path, photo):
        code = main.main(["--store", store_path, "--no-delay", "add", "--mood", "Peaceful", "--image", photo])

        assert code == 0
        entry = JsonFileStore(path=store_path).load_entries()[0]
        assert entry.image.startswith("data:image/png;base64,")
        assert 0.6 <= entry.image_analysis["confidence"] <= 0.95
        assert 1 <= entry.intensity <= 10

    def test_failed_analysis_still_attaches_photo(self, store_path, photo):
        with patch("mood_diary.core.image_analyzer.LengthHashFeatureExtractor.extract",
                   side_effect=RuntimeError("vision down")):
            code = main.main(["--store", store_path, "--no-delay", "add", "--mood", "Happy", "--image", photo])

        assert code == 0
        entry = JsonFileStore(path=store_path).load_entries()[0]
        assert entry.image is not None
        assert entry.image_analysis is None

    def test_rejected_photo(self, store_path, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("not an image")

        assert main.main(["--store", store_path, "--no-delay", "add", "--mood", "Happy",
                          "--image", str(notes)]) == 1


class TestReadCommands:
    """Commands that only read the history."""

    @pytest.fixture
    def filled_store(self, store_path, sample_entries):
        JsonFileStore(path=store_path).save_entries(sample_entries)
        return store_path

    def test_insights_empty_history(self, store_path):
        assert main.main(["--store", store_path, "insights"]) == 0

    def test_insights(self, filled_store):
        assert main.main(["--store", filled_store, "insights"]) == 0

    def test_history(self, filled_store):
        assert main.main(["--store", filled_store, "history", "--search", "presentation"]) == 0

    def test_report_to_file(self, filled_store, tmp_path):
        output = tmp_path / "report.json"

        assert main.main(["--store", filled_store, "report", "--range", "all", "--output", str(output)]) == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["totalEntries"] == 7
        assert data["period"] == "all"

    def test_analyze(self, photo):
        assert main.main(["--no-delay", "analyze", photo]) == 0

    def test_prompt(self, capsys):
        assert main.main(["prompt", "--mood", "Happy", "--intensity", "8"]) == 0
        assert "happy" in capsys.readouterr().out

    def test_corrupted_store_runs_in_contingency_mode(self, store_path):
        with open(store_path, "w", encoding="utf-8") as f:
            f.write("{corrupted")

        assert main.main(["--store", store_path, "history"]) == 0

    def test_mongo_store_selected(self, sample_entries):
        with patch("mood_diary.adapters.repositories.mongo.MongoEntryStore") as mock_store_cls:
            mock_store_cls.return_value.load_entries.return_value = sample_entries

            assert main.main(["--mongo", "history"]) == 0

        mock_store_cls.return_value.load_entries.assert_called_once()
        mock_store_cls.return_value.close.assert_called_once()

    def test_insights_with_malformed_values(self, store_path, make_entry):
        raw = [make_entry(f"2024-01-{day:02d}").to_dict() for day in range(1, 8)]
        for item in raw:
            item["intensity"] = "7"
            item["energy"] = None
        with open(store_path, "w", encoding="utf-8") as f:
            json.dump(raw, f)

        assert main.main(["--store", store_path, "insights"]) == 0


class TestMaintenanceCommands:
    """Validation, transfer and backups."""

    def test_repair_makes_store_valid_again(self, store_path, make_entry):
        data = make_entry("2024-01-15", moods=("Happy", "Happy")).to_dict()
        data["triggers"] = [1, 2]
        with open(store_path, "w", encoding="utf-8") as f:
            json.dump([data], f)

        assert main.main(["--store", store_path, "validate"]) == 1
        assert main.main(["--store", store_path, "validate", "--repair"]) == 0
        assert main.main(["--store", store_path, "validate"]) == 0

    def test_validate_and_repair(self, store_path):
        with open(store_path, "w", encoding="utf-8") as f:
            json.dump([{"date": "2024-01-15", "moods": [], "intensity": 99}], f)

        assert main.main(["--store", store_path, "validate"]) == 1
        assert main.main(["--store", store_path, "validate", "--repair"]) == 0
        assert main.main(["--store", store_path, "validate"]) == 0

        repaired = JsonFileStore(path=store_path).load_entries()[0]
        assert repaired.intensity == 5
        assert repaired.mood_labels == ["Neutral"]

    def test_export_then_import(self, store_path, sample_entries, tmp_path):
        JsonFileStore(path=store_path).save_entries(sample_entries)
        export_file = tmp_path / "export.json"
        other_store = str(tmp_path / "other.json")

        assert main.main(["--store", store_path, "export", "--output", str(export_file)]) == 0
        assert main.main(["--store", other_store, "import", str(export_file)]) == 0
        # Importing twice adds nothing: dates already exist
        assert main.main(["--store", other_store, "import", str(export_file)]) == 0

        assert JsonFileStore(path=other_store).load_entries() == sample_entries

    def test_share_export(self, store_path, make_entry, tmp_path):
        entries = [make_entry(f"2024-02-{day:02d}") for day in range(1, 16)]
        JsonFileStore(path=store_path).save_entries(entries)
        output = tmp_path / "share.json"

        assert main.main(["--store", store_path, "export", "--share", "--output", str(output)]) == 0
        assert len(json.loads(output.read_text(encoding="utf-8"))["entries"]) == 10

    def test_import_rejects_bad_file(self, store_path, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"hello": "world"}')

        assert main.main(["--store", store_path, "import", str(bad)]) == 1
        assert not os.path.exists(store_path)

    def test_import_merges_into_existing(self, store_path, sample_entries, make_entry, tmp_path):
        JsonFileStore(path=store_path).save_entries(sample_entries)
        payload = build_export([make_entry("2024-01-15", entry_id="dup"), make_entry("2024-01-25", entry_id="new")])
        import_file = tmp_path / "import.json"
        import_file.write_text(json.dumps(payload))

        assert main.main(["--store", store_path, "import", str(import_file)]) == 0
        ids = [e.id for e in JsonFileStore(path=store_path).load_entries()]
        assert "dup" not in ids
        assert ids[-1] == "new"

    def test_backup(self, store_path, sample_entries):
        JsonFileStore(path=store_path).save_entries(sample_entries)

        assert main.main(["--store", store_path, "backup"]) == 0
        backups = JsonFileStore(path=store_path).list_backups()
        assert len(backups) == 1

    def test_missing_import_file(self, store_path, tmp_path):
        assert main.main(["--store", store_path, "import", str(tmp_path / "missing.json")]) == 1


class TestArguments:

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            main.parse_arguments([])

    def test_build_analyzer_modes(self):
        fast = main.build_analyzer(main.parse_arguments(["--no-delay", "insights"]))
        slow = main.build_analyzer(main.parse_arguments(["insights"]))

        assert fast.latency == 0
        assert slow.latency == 2.0

    def test_gemini_mode(self):
        analyzer = main.build_analyzer(main.parse_arguments(["--gemini", "--no-delay", "insights"]))
        assert type(analyzer.extractor).__name__ == "GeminiFeatureExtractor"
