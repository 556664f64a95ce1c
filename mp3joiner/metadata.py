"""FFMETADATA1 text generation and parsing.

The format is described at https://ffmpeg.org/ffmpeg-formats.html#Metadata-1:
a ``;FFMETADATA1`` header, global ``key=value`` tags, then ``[CHAPTER]``
sections with TIMEBASE/START/END and the chapter tags. Keys and values
escape ``=``, ``;``, ``#`` and ``\\`` with a backslash.
"""

import logging
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from mp3joiner.chapter import DEFAULT_TIME_BASE, Chapter
from mp3joiner.errors import FileSystemError, ParseError

logger = logging.getLogger(__name__)

METADATA_HEADER = ";FFMETADATA1"

ILLEGAL_METADATA_CHARACTERS = re.compile(r"[#;=\\]")
ESCAPED_CHARACTER = re.compile(r"\\(.)")
SECTION_HEADER = re.compile(r"^\[([A-Z]+)\]$")


def sanitize(text: str) -> str:
    """Escape a metadata key or value.

    Values that are already escaped are first brought back to their plain
    form, so ``sanitize(sanitize(x)) == sanitize(x)``. Newlines are not
    escaped.

    Example:
        >>> sanitize("= ; # \\\\")
        '\\\\= \\\\; \\\\# \\\\\\\\'
    """
    plain = (text
        .replace("\\\\", "\\")
        .replace("\\=", "=")
        .replace("\\;", ";")
        .replace("\\#", "#")
    )
    return ILLEGAL_METADATA_CHARACTERS.sub(r"\\\g<0>", plain)


def unescape(text: str) -> str:
    """Drop the escaping backslash in front of every escaped character."""
    return ESCAPED_CHARACTER.sub(r"\1", text)


def serialize_metadata(tags: Mapping[str, str], chapters: Sequence[Chapter]) -> str:
    """Build the FFMETADATA1 text for global tags and chapters.

    Tags are written in the mapping's iteration order. Chapter sections
    carry only TIMEBASE, START, END and title.

    Returns:
        The metadata block without a trailing newline
    """
    lines = [METADATA_HEADER]

    for key, value in tags.items():
        lines.append(f"{sanitize(key)}={sanitize(value)}")

    for chapter in chapters:
        lines.append("[CHAPTER]")
        lines.append(f"TIMEBASE={chapter.time_base}")
        lines.append(f"START={chapter.start}")
        lines.append(f"END={chapter.end}")
        lines.append(f"title={sanitize(chapter.title)}")

    return "\n".join(lines)


def parse_metadata(text: str) -> Tuple[Dict[str, str], List[Chapter]]:
    """Read an FFMETADATA1 block back into tags and chapters.

    Sections other than ``[CHAPTER]`` (e.g. ``[STREAM]``) are skipped.

    Raises:
        ParseError: If the header is missing, a line has no key/value
            separator, or a chapter lacks valid START/END values
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != METADATA_HEADER:
        raise ParseError(
            "Metadata text does not start with the FFMETADATA1 header",
            context={"operation": "metadata parsing"}
        )

    tags: Dict[str, str] = {}
    chapters: List[Chapter] = []
    section: Optional[str] = None
    entries: Dict[str, str] = {}

    for number, line in enumerate(lines[1:], start=2):
        if not line.strip() or line.startswith((";", "#")):
            continue

        header = SECTION_HEADER.match(line.strip())
        if header:
            if section == "CHAPTER":
                chapters.append(_chapter_from_entries(entries))
            section = header.group(1)
            entries = {}
            continue

        key, value = _split_entry(line, number)
        if section is None:
            tags[key] = value
        else:
            entries[key] = value

    if section == "CHAPTER":
        chapters.append(_chapter_from_entries(entries))

    return tags, chapters


def _split_entry(line: str, number: int) -> Tuple[str, str]:
    """Split a ``key=value`` line on its first unescaped equals sign."""
    escaped = False
    for index, character in enumerate(line):
        if escaped:
            escaped = False
        elif character == "\\":
            escaped = True
        elif character == "=":
            return unescape(line[:index]), unescape(line[index + 1:])

    raise ParseError(
        "Metadata line has no key/value separator",
        context={"operation": "metadata parsing", "line": number}
    )


def _chapter_from_entries(entries: Dict[str, str]) -> Chapter:
    try:
        return Chapter(
            time_base=entries.get("TIMEBASE", DEFAULT_TIME_BASE),
            start=int(entries["START"]),
            end=int(entries["END"]),
            title=entries.get("title", ""),
        )
    except (KeyError, ValueError) as e:
        raise ParseError(
            "Invalid chapter section in metadata",
            context={"operation": "metadata parsing", "cause": str(e)}
        )


def create_metadata_file(
    tags: Mapping[str, str],
    chapters: Sequence[Chapter],
    directory: Optional[str] = None,
) -> str:
    """Write an FFMETADATA1 file to a fresh temporary path.

    The caller is responsible for cleaning up the temporary file; prefer
    :func:`temporary_metadata_file` which does it automatically.

    Returns:
        Path to the temporary metadata file

    Raises:
        FileSystemError: If the metadata file cannot be created
    """
    try:
        fd, metadata_path = tempfile.mkstemp(suffix=".txt", prefix="ffmpegMetaData_", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(serialize_metadata(tags, chapters))
    except OSError as e:
        raise FileSystemError(
            "Failed to create metadata file",
            context={
                "operation": "metadata file creation",
                "cause": str(e)
            }
        )

    logger.debug("Wrote %d tags and %d chapters to %s", len(tags), len(chapters), metadata_path)
    return metadata_path


@contextmanager
def temporary_metadata_file(
    tags: Mapping[str, str],
    chapters: Sequence[Chapter],
    directory: Optional[str] = None,
) -> Iterator[Path]:
    """Provide a metadata file that is removed when the block exits, however it exits."""
    metadata_path = Path(create_metadata_file(tags, chapters, directory))
    try:
        yield metadata_path
    finally:
        metadata_path.unlink(missing_ok=True)
        logger.debug("Removed metadata file %s", metadata_path)
