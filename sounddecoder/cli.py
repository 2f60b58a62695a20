"""
Sound Decoder - command-line interface.

Invoked as 'sounddecoder' after installation, or through main.py.

Example usage:
    # Analyze one recording
    sounddecoder analyze path/to/call.wav
    sounddecoder analyze --output result.json path/to/call.mp3
    sounddecoder analyze --play path/to/call.wav

    # Past analyses
    sounddecoder history
    sounddecoder history --limit 10
    sounddecoder history --remove 3f2a9c...
    sounddecoder history --clear
"""

import argparse
import asyncio
import contextlib
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from sounddecoder import __version__
from sounddecoder.core.history import HistoryStore
from sounddecoder.core.models import (
    AnalysisTask,
    FileCandidate,
    HistoryEntry,
    PlaybackState,
    format_time,
)
from sounddecoder.core.resource import DecodedAudioResource
from sounddecoder.utils.config import load_config
from sounddecoder.utils.errors import (
    ConfigurationError,
    HistoryStoreError,
    IntakeRejectedError,
    ModelLoadError,
    ResourceUnavailableError,
)
from sounddecoder.utils.logging import get_logger, setup_logging

DEFAULT_HISTORY_FILE = Path.home() / ".sounddecoder" / "history.json"

logger = get_logger("cli")


def print_analysis(file_name: str, task: AnalysisTask, playback: PlaybackState) -> None:
    """Print one analysis outcome to the console."""
    print("\n" + "=" * 60)
    print("SOUND DECODER RESULTS")
    print("=" * 60)
    print(f"File: {file_name}")
    print(f"Duration: {format_time(playback.duration_seconds)}")
    if playback.position_seconds:
        print(f"Played: {format_time(playback.position_seconds)} / {format_time(playback.duration_seconds)}")
    print("-" * 60)

    result = task.result
    if result is None:
        reason = task.failure.value if task.failure else "unknown"
        print(f"Analysis failed ({reason})")
        if task.detail:
            print(f"  {task.detail}")
        print("-" * 60)
        return

    print(f"Species: {result.species}")
    print(f"Interpretation: {result.interpretation}")
    print(f"Confidence: {result.confidence_percent:.0f}% ({result.confidence_tier})")
    print(f"Cluster Group: {result.cluster_group}")
    if result.note:
        print(f"Note: {result.note}")
    print("-" * 60)


def print_history_entry(entry: HistoryEntry) -> None:
    result = entry.result
    print(f"{entry.entry_id}  {entry.file_name}")
    print(f"    {result.species} - {result.interpretation}")
    print(
        f"    {result.confidence_percent:.0f}% ({result.confidence_tier}), "
        f"{entry.age_label()}"
    )


def resolve_history_file(config: Dict[str, Any], override: Optional[Path]) -> Path:
    if override is not None:
        return override
    configured = config.get("history", {}).get("file")
    return Path(configured) if configured else DEFAULT_HISTORY_FILE


async def run_analysis(
    candidate: FileCandidate,
    config: Dict[str, Any],
    history: HistoryStore,
    play: bool = False,
) -> int:
    """
    Load one file into a fresh session and wait for its classification.

    Returns:
        Exit code (0 for success, 1 for rejection or failed analysis)
    """
    from sounddecoder.core.session import create_session

    session = create_session(config, history=history)
    clock: Optional["asyncio.Task[None]"] = None

    try:
        try:
            asset = session.accept_file(candidate)
        except IntakeRejectedError as e:
            print(f"Rejected: {e.message}")
            return 1
        except ResourceUnavailableError as e:
            print(f"Warning: {e.message}; continuing without playback")
            asset = session.asset

        print(f"Analyzing: {asset.name} ({asset.size_mb:.2f} MB) with {session.orchestrator.service.name}")
        handle = session.start_analysis()

        resource = session.playback.resource
        if play and isinstance(resource, DecodedAudioResource):
            session.play()
            tick = config.get("playback", {}).get("tick_interval", 0.25)
            clock = asyncio.ensure_future(resource.run_clock(tick))

        task = await handle.wait()
        print_analysis(asset.name, task, session.playback.state)
        return 0 if task.result is not None else 1

    finally:
        await session.aclose()
        if clock is not None:
            clock.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await clock


def analyze_file(
    audio_file: Path,
    config: Dict[str, Any],
    history_file: Path,
    output_json: Optional[Path] = None,
    play: bool = False,
    verbose: bool = False,
) -> int:
    """
    Analyze a single audio file and record the outcome.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    try:
        history = HistoryStore.load(history_file)
        before = len(history)
        exit_code = asyncio.run(
            run_analysis(FileCandidate.from_path(audio_file), config, history, play=play)
        )

        if len(history) > before:
            history.save(history_file)
            latest = history.recent(1)[0]
            print(f"Saved to history as {latest.entry_id}")

            if output_json:
                with open(output_json, 'w') as f:
                    f.write(latest.result.to_json(indent=2))
                print(f"JSON result saved to: {output_json}")

        return exit_code

    except (ConfigurationError, ModelLoadError, HistoryStoreError) as e:
        print(f"Error: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


def show_history(
    config: Dict[str, Any],
    history_file: Path,
    limit: Optional[int] = None,
    remove_id: Optional[str] = None,
    clear: bool = False,
) -> int:
    """List, prune or clear the persisted history."""
    try:
        history = HistoryStore.load(history_file)

        if clear:
            history.clear()
            history.save(history_file)
            print("History cleared")
            return 0

        if remove_id:
            if history.remove(remove_id):
                history.save(history_file)
                print(f"Removed {remove_id}")
            else:
                print(f"No history entry {remove_id}")
            return 0

        if limit is None:
            limit = config.get("history", {}).get("display_limit", 5)
        entries = history.recent(limit)
        if not entries:
            print("No analyses yet.")
            return 0

        print("\n" + "=" * 60)
        print(f"RECENT ANALYSES ({len(entries)} of {len(history)})")
        print("=" * 60)
        for entry in entries:
            print_history_entry(entry)
        return 0

    except HistoryStoreError as e:
        print(f"Error: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sounddecoder",
        description="Identify the animal behind a recording and what its call means",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sounddecoder analyze call.wav
  sounddecoder analyze --output result.json call.mp3
  sounddecoder history --limit 10
        """
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sounddecoder {__version__}"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    common.add_argument(
        "--history-file",
        type=Path,
        default=None,
        help=f"History JSON file (default: {DEFAULT_HISTORY_FILE})"
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", parents=[common], help="Classify one recording")
    analyze.add_argument(
        "audio_file",
        type=Path,
        help="Path to a .wav or .mp3 file"
    )
    analyze.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to save the result as JSON"
    )
    analyze.add_argument(
        "--play",
        action="store_true",
        help="Run the playback clock while the analysis is in flight"
    )

    history = subparsers.add_parser("history", parents=[common], help="Show or edit past analyses")
    history.add_argument(
        "--limit",
        "-n",
        type=int,
        default=None,
        help="Number of entries to show"
    )
    history.add_argument(
        "--remove",
        metavar="ENTRY_ID",
        default=None,
        help="Remove one entry"
    )
    history.add_argument(
        "--clear",
        action="store_true",
        help="Remove every entry"
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point for the Sound Decoder CLI."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    logging_config = config.get("logging", {})
    log_level = "DEBUG" if args.verbose else logging_config.get("level", "INFO")
    setup_logging(
        level=log_level,
        log_format=logging_config.get("format", "text"),
        log_file=logging_config.get("file"),
        colored=True,
        console_enabled=True
    )

    history_file = resolve_history_file(config, args.history_file)
    logger.debug(f"History file: {history_file}")

    if args.command == "analyze":
        exit_code = analyze_file(
            audio_file=args.audio_file,
            config=config,
            history_file=history_file,
            output_json=args.output,
            play=args.play,
            verbose=args.verbose,
        )
    else:
        exit_code = show_history(
            config=config,
            history_file=history_file,
            limit=args.limit,
            remove_id=args.remove,
            clear=args.clear,
        )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
