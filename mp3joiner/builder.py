"""Build orchestration for mp3joiner.

This module provides the builder that turns a series of "append this part of
that file" calls into a single ffmpeg concatenation, carrying the chapters
and tags of the sources over into the result.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from mp3joiner.chapter import OPEN_END, Chapter, Segment, TimeWindow
from mp3joiner.command import FFmpegCommand
from mp3joiner.config import Config
from mp3joiner.errors import (
    BuilderStateError,
    EncodeError,
    FileSystemError,
    InvalidRangeError,
    Mp3JoinerError,
    NoSegmentsError,
)
from mp3joiner.ffmpeg import FFmpeg
from mp3joiner.file_mover import create_sibling_temp_file, move_file
from mp3joiner.intervals import clip_to_window, merge_adjacent_same_title, shift_chapters
from mp3joiner.metadata import temporary_metadata_file

logger = logging.getLogger(__name__)


class BuilderState(Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    BUILT = "built"
    FAILED = "failed"


class MP3Builder:
    """Accumulates clips of audio files and joins them into one file.

    Each :meth:`append` probes its source, clips the source chapters to the
    requested window and places them at the clip's position in the output.
    Tags come from the first source that has any; the output bitrate is the
    highest bitrate among the sources. :meth:`build` runs one ffmpeg
    invocation and finishes the builder.

    A builder is not safe for concurrent use.
    """

    def __init__(self, ffmpeg: Optional[FFmpeg] = None, config: Optional[Config] = None):
        """Initialize an empty builder.

        Args:
            ffmpeg: Process gateway; created from ``config`` when omitted
            config: Configuration (binaries, temp directory)
        """
        self.config = config or Config()
        self.ffmpeg = ffmpeg or FFmpeg(self.config)
        self.state = BuilderState.EMPTY
        self.segments: List[Segment] = []
        self.chapters: List[Chapter] = []
        self.tags: Dict[str, str] = {}
        self.bitrate = 0

    @property
    def duration(self) -> float:
        """Length of the output in seconds, as appended so far."""
        return sum(segment.duration for segment in self.segments)

    def _ensure_open(self, operation: str) -> None:
        if self.state in (BuilderState.BUILT, BuilderState.FAILED):
            raise BuilderStateError(
                f"Builder is already {self.state.value}",
                context={"operation": operation}
            )

    def append(self, mp3_path: Union[str, Path], start: float, end: float = OPEN_END) -> None:
        """Append the ``[start, end)`` part of a file to the output.

        An ``end`` of -1 (or past the end of the file) takes everything up to
        the end of the file. Nothing is recorded unless every probe succeeds.

        Args:
            mp3_path: Source audio file
            start: Clip start in seconds
            end: Clip end in seconds, or -1

        Raises:
            InvalidRangeError: If start lies after end or after the end of the file
            ProbeError: If ffprobe/ffmpeg cannot describe the file
            ParseError: If the file length cannot be read from the ffmpeg stats
            BuilderStateError: If the builder has already been built
        """
        self._ensure_open("append")
        source = Path(mp3_path)

        if end != OPEN_END and start > end:
            raise InvalidRangeError(
                f"Start {start} set after end {end}",
                context={"file_path": str(source), "operation": "append"}
            )
        if start < 0:
            raise InvalidRangeError(
                f"Start must be non-negative, got {start}",
                context={"file_path": str(source), "operation": "append"}
            )

        length = self.ffmpeg.get_length_in_seconds(source)
        window = TimeWindow(start, end).resolve(length)
        if window.duration < 0:
            raise InvalidRangeError(
                f"Start {start} lies beyond the end of the file",
                context={"file_path": str(source), "operation": "append", "length": length}
            )

        clipped = clip_to_window(self.ffmpeg.get_chapters(source), window)
        placed = shift_chapters(clipped, self.duration - window.start)
        tags = self.tags or self.ffmpeg.get_tags(source)
        bitrate = self.ffmpeg.get_bitrate(source)

        self.segments.append(Segment(source_file=source, start=window.start, duration=window.duration))
        self.chapters.extend(placed)
        self.tags = dict(tags)
        self.bitrate = max(self.bitrate, bitrate)
        self.state = BuilderState.ACCUMULATING

        logger.info(
            "Appended %s [%.2f, %.2f) with %d chapters",
            source, window.start, window.end, len(placed)
        )

    def build(self, output_path: Union[str, Path]) -> str:
        """Join all appended clips into ``output_path``.

        The encode goes to a temporary file next to the output which is moved
        into place only after ffmpeg succeeded. Temporary files are removed
        on every path.

        Returns:
            Path to the written output file

        Raises:
            NoSegmentsError: If nothing was appended
            EncodeError: If ffmpeg fails or produces no output
            FileSystemError: If the output cannot be put in place
            BuilderStateError: If the builder has already been built
        """
        self._ensure_open("build")
        if not self.segments:
            raise NoSegmentsError(
                "No segments to build",
                context={"file_path": str(output_path), "operation": "build"}
            )

        output_file = Path(output_path)
        temp_output: Optional[Path] = None
        self.chapters = merge_adjacent_same_title(self.chapters)

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            temp_output = create_sibling_temp_file(output_file)

            with temporary_metadata_file(self.tags, self.chapters, self.config.temp_dir) as metadata_path:
                command = self._create_command(metadata_path, temp_output)
                self.ffmpeg.run(command, operation="concatenation")

            if not temp_output.exists() or temp_output.stat().st_size == 0:
                raise EncodeError(
                    "Concatenation produced empty or missing file",
                    context={"file_path": str(output_file), "operation": "concatenation"}
                )

            move_file(temp_output, output_file)

        except Mp3JoinerError:
            self._fail(temp_output)
            raise

        except OSError as e:
            self._fail(temp_output)
            raise FileSystemError(
                "Could not write output file",
                context={"file_path": str(output_file), "operation": "build", "cause": str(e)}
            )

        self.state = BuilderState.BUILT
        logger.info(
            "Built %s from %d segments (%.2fs, %d chapters)",
            output_file, len(self.segments), self.duration, len(self.chapters)
        )
        return str(output_file)

    def _fail(self, temp_output: Optional[Path]) -> None:
        self.state = BuilderState.FAILED
        # Only the file this build created is ours to remove
        if temp_output is not None:
            temp_output.unlink(missing_ok=True)

    def _create_command(self, metadata_path: Path, output_path: Path) -> FFmpegCommand:
        """Assemble the concat invocation.

        Inputs are the trimmed segments in append order followed by the
        metadata file, whose index is used for the metadata and chapter maps.
        """
        command = FFmpegCommand(self.config.ffmpeg_binary)
        for segment in self.segments:
            command.add_input(segment.source_file, ss=segment.start, t=segment.duration)
        metadata_index = command.add_input(metadata_path)

        count = len(self.segments)
        streams = "".join(f"[{index}:a]" for index in range(count))
        command.set_filter_complex(f"{streams}concat=n={count}:v=0:a=1[outa]")
        command.add_map("[outa]")
        command.add_output_option("map_metadata", metadata_index)
        command.add_output_option("map_chapters", metadata_index)
        command.add_output_option("b:a", f"{self.bitrate // 1000}k")
        command.set_output(output_path)
        return command
