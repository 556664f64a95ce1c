"""Chapter data models for mp3joiner.

This module provides the time-base aware chapter marker, the clip window and
the segment records the builder accumulates, including conversion from the
JSON that ffprobe reports for a file's chapters.
"""

import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Tuple

DEFAULT_TIME_BASE = "1/1000000000"
DEFAULT_TICKS_PER_SECOND = 1_000_000_000

# Sentinel end position meaning "until the end of the source file"
OPEN_END = -1


def parse_time_base(time_base: str) -> Tuple[int, int]:
    """Split a ``num/den`` time-base into its integer parts.

    Args:
        time_base: Rational tick duration as reported by ffprobe, e.g. "1/1000"

    Returns:
        (numerator, denominator); the default 1/1000000000 for anything malformed
    """
    try:
        numerator, denominator = (int(part) for part in time_base.strip().split("/"))
    except (AttributeError, ValueError):
        return 1, DEFAULT_TICKS_PER_SECOND
    if numerator <= 0 or denominator <= 0:
        return 1, DEFAULT_TICKS_PER_SECOND
    return numerator, denominator


def ticks_per_second(time_base: str) -> float:
    """Return how many ticks of ``time_base`` make up one second."""
    numerator, denominator = parse_time_base(time_base)
    return denominator / numerator


@dataclass(frozen=True)
class Chapter:
    """A titled chapter marker measured in ticks of its own time-base.

    Attributes:
        time_base: Raw time-base string (``1/N`` seconds per tick)
        start: Start position in ticks
        end: End position in ticks
        title: Chapter title, possibly empty
    """
    time_base: str
    start: int
    end: int
    title: str = ""
    ticks_per_second: float = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate bounds and fix the tick multiplier once."""
        if self.start > self.end:
            raise ValueError(f"chapter start {self.start} is after end {self.end}")
        object.__setattr__(self, "ticks_per_second", ticks_per_second(self.time_base))

    @property
    def start_seconds(self) -> float:
        return self.start / self.ticks_per_second

    @property
    def end_seconds(self) -> float:
        return self.end / self.ticks_per_second

    def to_ticks(self, seconds: float) -> float:
        """Convert seconds into (fractional) ticks of this chapter's time-base."""
        # Round away float noise such as 0.1 * 1000 == 100.00000000000001
        return round(seconds * self.ticks_per_second, 6)

    def with_bounds(self, start: int, end: int) -> "Chapter":
        """Return a copy of this chapter spanning ``[start, end]`` ticks."""
        return replace(self, start=start, end=end)

    @classmethod
    def from_probe(cls, data: Dict[str, Any]) -> "Chapter":
        """Create a chapter from one entry of ffprobe's ``chapters`` array.

        Raises:
            KeyError, ValueError, TypeError: If start/end are missing or not integers
        """
        tags = data.get("tags") or {}
        return cls(
            time_base=data.get("time_base") or DEFAULT_TIME_BASE,
            start=int(data["start"]),
            end=int(data["end"]),
            title=tags.get("title", ""),
        )


@dataclass(frozen=True)
class TimeWindow:
    """A half-open ``[start, end)`` window in seconds.

    An ``end`` of -1 means the window is open-ended and reaches the end of
    the source file once resolved.
    """
    start: float
    end: float = OPEN_END

    @property
    def is_open(self) -> bool:
        return self.end == OPEN_END

    def resolve(self, length: float) -> "TimeWindow":
        """Pin an open or overlong window to the probed file length."""
        if self.is_open or self.end > length:
            return TimeWindow(start=self.start, end=length)
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class Segment:
    """One appended clip: a source file trimmed to ``[start, start + duration)``.

    Attributes:
        source_file: Path of the source audio file
        start: Trim start in seconds
        duration: Trim length in seconds
    """
    source_file: Path
    start: float
    duration: float

    def __post_init__(self):
        if self.duration < 0 or math.isnan(self.duration):
            raise ValueError(f"segment duration must be non-negative, got {self.duration}")

    @property
    def end(self) -> float:
        return self.start + self.duration
