"""ffmpeg/ffprobe process gateway for mp3joiner.

This module wraps the two external tools: ffprobe answers questions about a
file (tags, chapters, stream bitrate) as JSON, ffmpeg reports the playable
length through its ``-stats`` progress lines and runs the final encode.
"""

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mp3joiner.chapter import Chapter
from mp3joiner.command import FFmpegCommand
from mp3joiner.config import Config
from mp3joiner.errors import DependencyError, EncodeError, ParseError, ProbeError

logger = logging.getLogger(__name__)

# Matches the progress lines of `ffmpeg -stats`, e.g.
#   size=N/A time=00:17:05.36 bitrate=N/A speed=2.05e+03x
FFMPEG_STATS_PATTERN = re.compile(r"time=(\d{2,}):(\d{2}):(\d{2})\.(\d{2})")

PathLike = Union[str, Path]


def parse_duration(stats: str) -> float:
    """Extract the playable length in seconds from ffmpeg stats output.

    The stats stream contains one ``time=HH:MM:SS.CC`` entry per progress
    update; the last one is the final position.

    Raises:
        ParseError: If no well-formed time entry is present
    """
    matches = FFMPEG_STATS_PATTERN.findall(stats)
    if not matches:
        raise ParseError(
            "Did not find time in ffmpeg stats output",
            context={
                "dependency": "ffmpeg",
                "operation": "duration parsing",
                "cause": stats.strip() or "empty output"
            }
        )

    hours, minutes, seconds, centiseconds = (int(value) for value in matches[-1])
    return hours * 60 * 60 + minutes * 60 + seconds + centiseconds * 0.01


@dataclass
class MediaInfo:
    """Everything the builder needs to know about one source file."""

    length: float
    bitrate: int
    tags: Dict[str, str] = field(default_factory=dict)
    chapters: List[Chapter] = field(default_factory=list)


class FFmpeg:
    """Runs ffprobe queries and ffmpeg encodes.

    Every call blocks until the external process has exited. Failures are
    reported as ProbeError (queries) or EncodeError (encodes) carrying the
    tool's own output.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize the gateway and verify both executables are available."""
        self.config = config or Config()
        self._verify_binaries()

    @property
    def ffmpeg_binary(self) -> str:
        return self.config.ffmpeg_binary

    @property
    def ffprobe_binary(self) -> str:
        return self.config.ffprobe_binary

    def _verify_binaries(self) -> None:
        """Verify that ffmpeg and ffprobe are installed and accessible.

        Raises:
            DependencyError: If either tool is not found in system PATH
        """
        for binary in (self.ffmpeg_binary, self.ffprobe_binary):
            if not shutil.which(binary):
                raise DependencyError(
                    f"{binary} not found in system PATH",
                    context={
                        "dependency": binary,
                        "operation": "initialization",
                        "cause": f"{binary} must be installed and available in PATH"
                    }
                )

    def _execute(self, args: List[str], merge_output: bool = False) -> subprocess.CompletedProcess:
        logger.debug("Running: %s", " ".join(args))
        return subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_output else subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False
        )

    def _probe(self, path: PathLike, query: List[str], operation: str) -> Dict[str, Any]:
        """Run one ffprobe query and decode its JSON answer.

        Raises:
            ProbeError: If ffprobe fails or prints something that is not a JSON object
        """
        args = [
            self.ffprobe_binary,
            "-hide_banner",
            "-v", "error",
            *query,
            "-print_format", "json",
            str(path)
        ]
        try:
            result = self._execute(args)
        except OSError as e:
            raise ProbeError(
                "Failed to start ffprobe",
                context={
                    "file_path": str(path),
                    "dependency": "ffprobe",
                    "operation": operation,
                    "cause": str(e)
                }
            )

        if result.returncode != 0:
            raise ProbeError(
                f"ffprobe {operation} failed",
                context={
                    "file_path": str(path),
                    "dependency": "ffprobe",
                    "operation": operation,
                    "cause": result.stderr.strip() if result.stderr else "Unknown error"
                }
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(
                f"ffprobe {operation} returned invalid JSON",
                context={
                    "file_path": str(path),
                    "dependency": "ffprobe",
                    "operation": operation,
                    "cause": str(e)
                }
            )

        if not isinstance(data, dict):
            raise ProbeError(
                f"ffprobe {operation} returned unexpected JSON",
                context={"file_path": str(path), "dependency": "ffprobe", "operation": operation}
            )
        return data

    def get_tags(self, path: PathLike) -> Dict[str, str]:
        """Return the container-level tags of a file (empty if it has none)."""
        data = self._probe(path, ["-show_format"], "tag probe")
        tags = (data.get("format") or {}).get("tags") or {}
        if not isinstance(tags, dict):
            raise ProbeError(
                "ffprobe reported tags in an unexpected shape",
                context={"file_path": str(path), "dependency": "ffprobe", "operation": "tag probe"}
            )
        return {str(key): str(value) for key, value in tags.items()}

    def get_chapters(self, path: PathLike) -> List[Chapter]:
        """Return the chapters of a file sorted by start."""
        data = self._probe(path, ["-show_chapters"], "chapter probe")
        try:
            chapters = [Chapter.from_probe(entry) for entry in data.get("chapters") or []]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ProbeError(
                "ffprobe reported an invalid chapter",
                context={
                    "file_path": str(path),
                    "dependency": "ffprobe",
                    "operation": "chapter probe",
                    "cause": str(e)
                }
            )
        chapters.sort(key=lambda chapter: chapter.start_seconds)
        return chapters

    def get_bitrate(self, path: PathLike) -> int:
        """Return the bitrate (bits per second) of the first stream that reports one."""
        data = self._probe(path, ["-show_entries", "stream=bit_rate"], "bitrate probe")
        for stream in data.get("streams") or []:
            bitrate = str(stream.get("bit_rate", "")).strip()
            if bitrate.isdigit():
                return int(bitrate)

        raise ProbeError(
            "No stream bitrate reported",
            context={"file_path": str(path), "dependency": "ffprobe", "operation": "bitrate probe"}
        )

    def get_stats(self, path: PathLike) -> str:
        """Decode a file to nowhere and return ffmpeg's progress output."""
        command = FFmpegCommand(self.ffmpeg_binary, [("v", "quiet"), ("stats", None)])
        command.add_input(path)
        command.set_output("-", f="null")
        try:
            result = self._execute(command.to_args(), merge_output=True)
        except OSError as e:
            raise ProbeError(
                "Failed to start ffmpeg",
                context={"file_path": str(path), "dependency": "ffmpeg", "operation": "length probe", "cause": str(e)}
            )

        if result.returncode != 0:
            raise ProbeError(
                "ffmpeg length probe failed",
                context={
                    "file_path": str(path),
                    "dependency": "ffmpeg",
                    "operation": "length probe",
                    "cause": result.stdout.strip() if result.stdout else f"exit code {result.returncode}"
                }
            )
        return result.stdout

    def get_length_in_seconds(self, path: PathLike) -> float:
        """Return the playable length of a file in seconds.

        Raises:
            ProbeError: If ffmpeg cannot read the file
            ParseError: If the stats output holds no time entry
        """
        return parse_duration(self.get_stats(path))

    def describe(self, path: PathLike) -> MediaInfo:
        """Probe length, bitrate, tags and chapters of a file."""
        return MediaInfo(
            length=self.get_length_in_seconds(path),
            bitrate=self.get_bitrate(path),
            tags=self.get_tags(path),
            chapters=self.get_chapters(path),
        )

    def run(self, command: FFmpegCommand, operation: str = "encode") -> str:
        """Execute an ffmpeg command and return its combined output.

        Raises:
            EncodeError: If ffmpeg cannot be started or exits with a non-zero status
        """
        try:
            result = self._execute(command.to_args(), merge_output=True)
        except OSError as e:
            raise EncodeError(
                "Failed to start ffmpeg",
                output=str(e),
                context={"dependency": "ffmpeg", "operation": operation}
            )

        if result.returncode != 0:
            logger.debug("ffmpeg %s failed with exit code %d", operation, result.returncode)
            raise EncodeError(
                f"ffmpeg {operation} failed",
                output=result.stdout or "",
                context={
                    "file_path": str(command.output_path),
                    "dependency": "ffmpeg",
                    "operation": operation,
                    "exit_code": result.returncode
                }
            )
        return result.stdout or ""
