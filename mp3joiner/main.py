#!/usr/bin/env python3
"""
Command-line interface for mp3joiner.

This module provides the CLI entry point for joining clips of audio files
into one file, inspecting a file's tags and chapters, and rewriting them.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

from mp3joiner.builder import MP3Builder
from mp3joiner.chapter import Chapter
from mp3joiner.config import Config, ConfigurationError
from mp3joiner.errors import Mp3JoinerError
from mp3joiner.ffmpeg import FFmpeg, MediaInfo
from mp3joiner.metadata import parse_metadata, serialize_metadata
from mp3joiner.tagging import set_metadata


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``[HH:]MM:SS.cc``."""
    # Round before splitting so the seconds field never reads 60
    minutes, secs = divmod(round(seconds, 2), 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours:d}:{minutes:02d}:{secs:05.2f}"
    return f"{minutes:02d}:{secs:05.2f}"


def format_chapters(chapters: List[Chapter]) -> List[str]:
    lines = []
    for i, chapter in enumerate(chapters, 1):
        lines.append(
            f"  {i}. [{format_timestamp(chapter.start_seconds)} - "
            f"{format_timestamp(chapter.end_seconds)}] {chapter.title}"
        )
    return lines


def format_info(path: str, info: MediaInfo) -> str:
    """Format probe results of one file for display to user.

    Args:
        path: The probed file
        info: Probe results

    Returns:
        Formatted string for display
    """
    lines = [
        f"File: {path}",
        f"  Length: {format_timestamp(info.length)} ({info.length:.2f}s)",
        f"  Bitrate: {info.bitrate // 1000}k",
    ]

    if info.tags:
        lines.append("")
        lines.append("Tags:")
        for key, value in info.tags.items():
            lines.append(f"  {key}: {value}")

    lines.append("")
    lines.append(f"Chapters: {len(info.chapters)}")
    lines.extend(format_chapters(info.chapters))

    return "\n".join(lines)


def format_build_result(output: str, builder: MP3Builder) -> str:
    """Format a finished build for display to user."""
    lines = [
        "✓ Join completed successfully!",
        "",
        f"  Output: {output}",
        f"  Segments: {len(builder.segments)}",
        f"  Length: {format_timestamp(builder.duration)} ({builder.duration:.2f}s)",
        f"  Bitrate: {builder.bitrate // 1000}k",
    ]
    if builder.chapters:
        lines.append("")
        lines.append(f"Chapters: {len(builder.chapters)}")
        lines.extend(format_chapters(builder.chapters))
    return "\n".join(lines)


def parse_sections(raw_sections: List[List[str]]) -> List[Tuple[str, float, float]]:
    """Convert ``--section FILE START END`` triples into typed tuples.

    Raises:
        ValueError: If START or END is not a number
    """
    sections = []
    for file_name, start, end in raw_sections:
        try:
            sections.append((file_name, float(start), float(end)))
        except ValueError:
            raise ValueError(f"START and END must be numbers in section: {file_name} {start} {end}")
    return sections


def run_join(args: argparse.Namespace, config: Config) -> int:
    try:
        sections = parse_sections(args.sections)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    builder = MP3Builder(FFmpeg(config), config)
    for step, (file_name, start, end) in enumerate(sections, 1):
        until = "end" if end == -1 else f"{end:g}s"
        print(f"Step {step}/{len(sections) + 1}: Appending {file_name} [{start:g}s - {until}]...")
        builder.append(file_name, start, end)

    print(f"Step {len(sections) + 1}/{len(sections) + 1}: Building {args.output}...")
    output = builder.build(args.output)

    print("")
    print(format_build_result(output, builder))
    return 0


def run_info(args: argparse.Namespace, config: Config) -> int:
    info = FFmpeg(config).describe(args.file)
    if args.ffmetadata:
        print(serialize_metadata(info.tags, info.chapters))
    else:
        print(format_info(args.file, info))
    return 0


def run_tag(args: argparse.Namespace, config: Config) -> int:
    metadata_file = Path(args.metadata)
    if not metadata_file.is_file():
        print(f"Error: Metadata file not found: {args.metadata}", file=sys.stderr)
        return 1

    tags, chapters = parse_metadata(metadata_file.read_text(encoding="utf-8"))
    print(f"Writing {len(tags)} tags and {len(chapters)} chapters to {args.file}...")
    set_metadata(args.file, tags, chapters, FFmpeg(config), config)
    print("✓ Metadata updated")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mp3joiner",
        description="Join sections of audio files into one file, keeping chapters and tags.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s join -o out.mp3 -s book.mp3 0 600 -s book.mp3 1200 -1
  %(prog)s info book.mp3
  %(prog)s info book.mp3 --ffmetadata > book.txt
  %(prog)s tag book.mp3 book.txt

Configuration:
  FFMPEG_BINARY, FFPROBE_BINARY, TEMP_DIR and LOG_LEVEL are read from the
  environment or a .env file.
        """
    )

    parser.add_argument(
        "--env-file",
        dest="env_file",
        default=".env",
        help="Path to .env file (default: .env)"
    )

    sub = parser.add_subparsers(dest="command")

    join = sub.add_parser("join", help="Join sections of audio files")
    join.add_argument(
        "-o", "--output",
        required=True,
        help="Path of the joined output file"
    )
    join.add_argument(
        "-s", "--section",
        dest="sections",
        nargs=3,
        action="append",
        required=True,
        metavar=("FILE", "START", "END"),
        help="Section to append, in seconds; END -1 takes the rest of the file"
    )

    info = sub.add_parser("info", help="Show length, bitrate, tags and chapters of a file")
    info.add_argument("file", help="Audio file to inspect")
    info.add_argument(
        "--ffmetadata",
        action="store_true",
        help="Print tags and chapters as an FFMETADATA1 block"
    )

    tag = sub.add_parser("tag", help="Replace tags and chapters of a file from an FFMETADATA1 file")
    tag.add_argument("file", help="Audio file to rewrite")
    tag.add_argument("metadata", help="FFMETADATA1 file with the new tags and chapters")

    return parser


def main() -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    try:
        try:
            config = Config.load(env_file=args.env_file)
        except ConfigurationError as e:
            print(str(e), file=sys.stderr)
            return 1

        logging.basicConfig(
            level=config.logging_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

        if args.command == "join":
            return run_join(args, config)
        if args.command == "info":
            return run_info(args, config)
        return run_tag(args, config)

    except Mp3JoinerError as e:
        print(str(e), file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\n\nProcessing interrupted by user", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
