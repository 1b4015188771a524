"""
Mood Diary: command line journal with image mood hints and insights.

This module wires the domain operations to a store and an image analyzer:
1. Loads the entry history (JSON file or MongoDB)
2. Runs the requested command (add, analyze, insights, report, ...)
3. Persists changes back to the store

Supports execution modes:
- Default: JSON file store, deterministic image analyzer with simulated latency
- --mongo: MongoDB store (MONGODB_URI)
- --gemini: Gemini vision feature extraction (GEMINI_API_KEY)
- --no-delay: Skip the simulated analysis latency
"""

import argparse
import asyncio
import datetime
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv

from mood_diary.adapters.clients.image_loader import ImageLoadError, load_image
from mood_diary.adapters.repositories.base import EntryStore
from mood_diary.adapters.repositories.json_store import JsonFileStore
from mood_diary.core import insights as insight_engine
from mood_diary.core import journal, report, transfer, validator
from mood_diary.core.errors import AnalysisError, ImportFormatError, MoodDiaryError, ParseError, ValidationError
from mood_diary.core.image_analyzer import (
    ImageAnalysis,
    ImageAnalyzerConfig,
    ImageMoodAnalyzer,
    analyze_composition,
    suggest_catalog_moods,
    suggest_intensity,
)
from mood_diary.core.models import DEFAULT_ENERGY, DEFAULT_INTENSITY, Mood, MoodEntry, find_mood
from mood_diary.utils.logger import setup_logger

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def _iso_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}' (expected YYYY-MM-DD)") from None


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Mood Diary: track moods, analyze photos and review insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py add --mood Happy --intensity 7 --energy 4 --trigger Exercise
  python run.py add --image photo.jpg --no-delay     # moods suggested from the photo
  python run.py insights                             # patterns, streaks, stability
  python run.py report --range month --output report.json
  python run.py validate --repair
  python run.py --mongo history --search work
        """
    )

    parser.add_argument("--store", help="Path of the JSON entry store (default: MOOD_DIARY_STORE)")
    parser.add_argument("--mongo", action="store_true", help="Use the MongoDB store (MONGODB_URI)")
    parser.add_argument("--gemini", action="store_true", help="Use Gemini vision for image analysis")
    parser.add_argument("--no-delay", action="store_true", help="Skip the simulated analysis latency")

    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Record a mood entry")
    add.add_argument("--mood", action="append", default=[], help="Mood label (repeatable)")
    add.add_argument("--intensity", type=int, help="Intensity 1-10")
    add.add_argument("--energy", type=int, help="Energy 1-5")
    add.add_argument("--reflection", default="", help="Free text reflection")
    add.add_argument("--trigger", action="append", default=[], help="Trigger (repeatable)")
    add.add_argument("--sleep", type=int, help="Sleep quality 1-5")
    add.add_argument("--date", type=_iso_date, help="Entry date YYYY-MM-DD (default: today)")
    add.add_argument("--image", help="Photo path or URL")

    analyze = sub.add_parser("analyze", help="Analyze a photo without saving an entry")
    analyze.add_argument("image", help="Photo path or URL")

    sub.add_parser("insights", help="Show patterns, predictions and recommendations")

    rep = sub.add_parser("report", help="Build the overview report")
    rep.add_argument("--range", choices=[r.value for r in report.TimeRange], default="month")
    rep.add_argument("--output", help="Write the report JSON to this file")

    history = sub.add_parser("history", help="List entries")
    history.add_argument("--search", default="")
    history.add_argument("--period", choices=[p.value for p in journal.Period], default="all")
    history.add_argument("--order", choices=[o.value for o in journal.SortOrder], default="desc")

    validate = sub.add_parser("validate", help="Check stored data integrity")
    validate.add_argument("--repair", action="store_true", help="Repair invalid entries in place")

    export = sub.add_parser("export", help="Export all entries to JSON")
    export.add_argument("--output", help="Output file (default: mood-diary-export-<date>.json)")
    export.add_argument("--share", action="store_true", help="Only the last entries, as a share payload")

    imp = sub.add_parser("import", help="Merge an export or backup file")
    imp.add_argument("file")

    sub.add_parser("backup", help="Write a rolling backup file")

    prompt = sub.add_parser("prompt", help="Suggest a reflection prompt")
    prompt.add_argument("--mood", action="append", default=[], help="Mood label (repeatable)")
    prompt.add_argument("--intensity", type=int, default=DEFAULT_INTENSITY)
    prompt.add_argument("--energy", type=int, default=DEFAULT_ENERGY)

    return parser.parse_args(argv)


# ============================================================================
# WIRING
# ============================================================================

def build_store(args: argparse.Namespace) -> EntryStore:
    if args.mongo:
        # Imported lazily so the JSON mode never touches pymongo settings
        from mood_diary.adapters.repositories.mongo import MongoEntryStore
        return MongoEntryStore()
    return JsonFileStore(path=args.store)


def build_analyzer(args: argparse.Namespace) -> ImageMoodAnalyzer:
    latency = 0 if args.no_delay else ImageAnalyzerConfig.DEFAULT_LATENCY_SECONDS
    if args.gemini:
        from mood_diary.adapters.clients.gemini import GeminiFeatureExtractor
        return ImageMoodAnalyzer(extractor=GeminiFeatureExtractor(), latency=latency)
    return ImageMoodAnalyzer(latency=latency)


def load_history(store: EntryStore) -> List[MoodEntry]:
    """Loads entries; an unreadable store is treated as empty."""
    try:
        return store.load_entries()
    except ParseError as e:
        logger.error(f"Stored entries cannot be parsed: {e}")
        logger.warning("[WARN] CONTINGENCY MODE: Proceeding with an empty history (run 'validate --repair')")
        return []


def resolve_moods(labels: Sequence[str]) -> List[Mood]:
    """
    Raises:
        ValueError: If a label is not in the mood catalog.
    """
    moods = []
    for label in labels:
        mood = find_mood(label)
        if mood is None:
            raise ValueError(f"Unknown mood '{label}'")
        if mood not in moods:
            moods.append(mood)
    return moods


def analyze_image(analyzer: ImageMoodAnalyzer, source: str) -> Dict[str, Any]:
    """
    Loads and analyzes a photo.

    Returns:
        Dict with "image" (data URI) and "analysis" (ImageAnalysis, or None when
        analysis failed; the image is still usable).

    Raises:
        ImageLoadError: If the photo cannot be loaded.
    """
    image = load_image(source)
    try:
        analysis = asyncio.run(analyzer.analyze(image))
    except AnalysisError as e:
        logger.error(f"{e}, the photo is attached without mood hints")
        analysis = None
    return {"image": image, "analysis": analysis}


def _describe_analysis(analysis: ImageAnalysis) -> str:
    return (
        f"Suggested moods: {', '.join(analysis.suggested_moods) or 'none'} "
        f"(confidence {analysis.confidence:.0%}) | colors: {', '.join(analysis.colors)} "
        f"| scenes: {', '.join(analysis.objects)}"
    )


def _write_json(payload: Any, path: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if path:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"[OK] Written to {path}")
    else:
        print(text)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_add(args: argparse.Namespace, store: EntryStore) -> int:
    entries = load_history(store)
    moods = resolve_moods(args.mood)
    intensity = args.intensity
    image = None
    analysis = None

    if args.image:
        logger.info(">>> Analyzing photo...")
        result = analyze_image(build_analyzer(args), args.image)
        image, analysis = result["image"], result["analysis"]
        if analysis:
            logger.info(_describe_analysis(analysis))
            if not moods:
                moods = suggest_catalog_moods(analysis)
                logger.info(f"Using suggested moods: {', '.join(m.label for m in moods) or 'none'}")
            if intensity is None:
                intensity = suggest_intensity(analysis)

    entry = journal.create_entry(
        moods=moods,
        intensity=intensity if intensity is not None else DEFAULT_INTENSITY,
        energy=args.energy if args.energy is not None else DEFAULT_ENERGY,
        reflection=args.reflection,
        triggers=args.trigger,
        sleep_quality=args.sleep,
        entry_date=args.date,
        image=image,
        image_analysis=analysis,
    )

    store.save_entries(journal.add_entry(entries, entry))
    logger.info(f"[OK] Entry saved for {entry.date}: {', '.join(entry.mood_labels)} "
                f"(intensity {entry.intensity}/10, energy {entry.energy}/5)")
    return 0


def cmd_analyze(args: argparse.Namespace, store: EntryStore) -> int:
    result = analyze_image(build_analyzer(args), args.image)
    analysis = result["analysis"]
    if analysis is None:
        return 1

    logger.info(_describe_analysis(analysis))
    for line in analysis.insights:
        logger.info(f"  - {line}")

    composition = analyze_composition(result["image"])
    logger.info(
        f"Composition: brightness {composition.brightness:.2f}, contrast {composition.contrast:.2f}, "
        f"saturation {composition.saturation:.2f}, mood score {composition.mood_score:.1f}"
    )

    intensity = suggest_intensity(analysis)
    if intensity is not None:
        logger.info(f"Suggested intensity: {intensity}/10")
    return 0


def cmd_insights(args: argparse.Namespace, store: EntryStore) -> int:
    entries = load_history(store)
    result = insight_engine.compute_insights(entries)
    if result is None:
        logger.info("No entries yet: start tracking your mood to unlock insights")
        return 0

    logger.info(f"Mood trend: {result.mood_trend.value} | Energy trend: {result.energy_trend.value}")
    logger.info(f"Streak: {result.streaks.current} days (longest {result.streaks.longest})")
    logger.info(f"Stability: {result.mood_stability:.0f}% - "
                f"{insight_engine.stability_label(result.mood_stability)}")
    if result.most_positive_trigger:
        logger.info(f"Most positive trigger: {result.most_positive_trigger}")

    for title, lines in (("Patterns", result.patterns),
                         ("Predictions", result.predictions),
                         ("Recommendations", result.recommendations)):
        if lines:
            logger.info(f"{title}:")
            for line in lines:
                logger.info(f"  - {line}")
    return 0


def cmd_report(args: argparse.Namespace, store: EntryStore) -> int:
    entries = load_history(store)
    payload = report.build_report(entries, report.TimeRange(args.range))
    _write_json(payload, args.output)
    return 0


def cmd_history(args: argparse.Namespace, store: EntryStore) -> int:
    entries = journal.filter_entries(
        load_history(store),
        search=args.search,
        period=journal.Period(args.period),
        order=journal.SortOrder(args.order),
    )
    logger.info(f"{len(entries)} entries")
    for entry in entries:
        mood = journal.primary_mood(entry)
        reflection = f" | {entry.reflection[:60]}" if entry.reflection else ""
        logger.info(f"{entry.date} {mood.emoji} {', '.join(entry.mood_labels)} "
                    f"(intensity {entry.intensity}, energy {entry.energy}){reflection}")
    return 0


def cmd_validate(args: argparse.Namespace, store: EntryStore) -> int:
    result = validator.check_integrity(store)
    logger.info(f"Entries: {result.total_entries} | corrupted: {result.corrupted_entries}")
    for issue in result.issues:
        logger.warning(f"  - {issue}")

    if result.is_valid:
        return 0
    if not args.repair:
        logger.info("Run 'validate --repair' to fix these entries")
        return 1

    repaired = validator.repair_store(store)
    if repaired < 0:
        return 1
    return 0


def cmd_export(args: argparse.Namespace, store: EntryStore) -> int:
    entries = load_history(store)
    if args.share:
        payload = transfer.build_share_payload(entries)
    else:
        payload = transfer.build_export(entries)
    _write_json(payload, args.output or transfer.export_filename())
    logger.info(f"[OK] Exported {len(payload['entries'])} entries")
    return 0


def cmd_import(args: argparse.Namespace, store: EntryStore) -> int:
    with open(args.file, "r", encoding="utf-8") as f:
        text = f.read()
    count = transfer.import_into(store, text)
    logger.info(f"[OK] Successfully imported {count} mood entries")
    return 0


def cmd_backup(args: argparse.Namespace, store: EntryStore) -> int:
    entries = load_history(store)
    payload = transfer.build_backup(entries)
    # Backups are always local files, whichever store holds the entries
    target = store if isinstance(store, JsonFileStore) else JsonFileStore()
    target.write_backup(payload)
    return 0


def cmd_prompt(args: argparse.Namespace, store: EntryStore) -> int:
    text = journal.generate_reflection_prompt(resolve_moods(args.mood), args.intensity, args.energy)
    print(text)
    return 0


COMMANDS = {
    "add": cmd_add,
    "analyze": cmd_analyze,
    "insights": cmd_insights,
    "report": cmd_report,
    "history": cmd_history,
    "validate": cmd_validate,
    "export": cmd_export,
    "import": cmd_import,
    "backup": cmd_backup,
    "prompt": cmd_prompt,
}


# ============================================================================
# MAIN EXECUTION
# ============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main execution function.

    Returns:
        Process exit code (0 on success).
    """
    args = parse_arguments(argv)
    setup_logger("mood_diary")

    logger.info(f"--- Mood Diary: {args.command} ---")

    store = None
    try:
        store = build_store(args)
        return COMMANDS[args.command](args, store)

    except ValidationError as e:
        logger.error(str(e))
        for field_name, problems in e.field_errors.items():
            logger.error(f"  {field_name}: {', '.join(problems)}")
    except ImportFormatError as e:
        logger.error(f"Import failed: {e}")
    except ImageLoadError as e:
        logger.error(f"Image rejected: {e}")
    except (MoodDiaryError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
    finally:
        if store is not None:
            store.close()

    return 1


if __name__ == "__main__":
    sys.exit(main())
