"""Tests for the chapter, window and segment data models."""

import dataclasses
import pytest
from pathlib import Path

from mp3joiner.chapter import (
    DEFAULT_TICKS_PER_SECOND,
    DEFAULT_TIME_BASE,
    OPEN_END,
    Chapter,
    Segment,
    TimeWindow,
    parse_time_base,
    ticks_per_second,
)


class TestParseTimeBase:
    """Test cases for time-base parsing."""

    def test_parses_rational(self):
        """Test that a well-formed time-base is split into its parts."""
        assert parse_time_base("1/1000") == (1, 1000)
        assert parse_time_base(" 1/44100 ") == (1, 44100)

    @pytest.mark.parametrize("raw", ["", "abc", "1000", "1/0", "0/1000", "-1/1000", "1/1000/2", "1/x"])
    def test_malformed_falls_back_to_default(self, raw):
        """Test that malformed time-bases use the nanosecond default."""
        assert parse_time_base(raw) == (1, DEFAULT_TICKS_PER_SECOND)

    def test_none_falls_back_to_default(self):
        """Test that a missing time-base uses the default."""
        assert parse_time_base(None) == (1, DEFAULT_TICKS_PER_SECOND)

    def test_ticks_per_second(self):
        """Test the multiplier derived from a time-base."""
        assert ticks_per_second("1/1") == 1.0
        assert ticks_per_second("1/1000") == 1000.0
        assert ticks_per_second("2/1000") == 500.0
        assert ticks_per_second(DEFAULT_TIME_BASE) == DEFAULT_TICKS_PER_SECOND


class TestChapter:
    """Test cases for the Chapter class."""

    def test_multiplier_computed_at_construction(self):
        """Test that the tick multiplier is available right after creation."""
        chapter = Chapter(time_base="1/1000", start=0, end=15000, title="First")
        assert chapter.ticks_per_second == 1000.0
        assert chapter.start_seconds == 0.0
        assert chapter.end_seconds == 15.0

    def test_malformed_time_base_uses_default(self):
        """Test that a broken time-base counts nanoseconds."""
        chapter = Chapter(time_base="garbage", start=0, end=2_000_000_000, title="x")
        assert chapter.ticks_per_second == DEFAULT_TICKS_PER_SECOND
        assert chapter.end_seconds == 2.0
        # The raw string is kept for serialization
        assert chapter.time_base == "garbage"

    def test_start_after_end_raises_error(self):
        """Test that inverted chapters are rejected."""
        with pytest.raises(ValueError, match="after end"):
            Chapter(time_base="1/1", start=5, end=4, title="Invalid")

    def test_zero_length_chapter_is_valid(self):
        """Test that start == end is allowed."""
        chapter = Chapter(time_base="1/1", start=5, end=5, title="Point")
        assert chapter.start == chapter.end

    def test_chapter_is_immutable(self):
        """Test that chapters cannot be changed in place."""
        chapter = Chapter(time_base="1/1", start=0, end=10, title="demo")
        with pytest.raises(dataclasses.FrozenInstanceError):
            chapter.end = 20

    def test_with_bounds_returns_copy(self):
        """Test that with_bounds leaves the original untouched."""
        chapter = Chapter(time_base="1/1000", start=0, end=10000, title="demo")
        moved = chapter.with_bounds(2000, 8000)

        assert moved == Chapter(time_base="1/1000", start=2000, end=8000, title="demo")
        assert moved.ticks_per_second == 1000.0
        assert chapter.start == 0
        assert chapter.end == 10000

    def test_to_ticks_removes_float_noise(self):
        """Test that converting seconds to ticks is not thrown off by float error."""
        chapter = Chapter(time_base="1/1000", start=0, end=1, title="")
        assert chapter.to_ticks(0.1) == 100.0
        assert chapter.to_ticks(2.5) == 2500.0

    def test_from_probe(self):
        """Test conversion of an ffprobe chapter entry."""
        entry = {
            "id": 0,
            "time_base": "1/1000",
            "start": 0,
            "start_time": "0.000000",
            "end": 16900,
            "end_time": "16.900000",
            "tags": {"title": "LibriVox Introduction"}
        }
        chapter = Chapter.from_probe(entry)
        assert chapter == Chapter(time_base="1/1000", start=0, end=16900, title="LibriVox Introduction")

    def test_from_probe_without_title_or_time_base(self):
        """Test defaults for entries that lack tags and time-base."""
        chapter = Chapter.from_probe({"start": 5, "end": 10})
        assert chapter.title == ""
        assert chapter.time_base == DEFAULT_TIME_BASE

    def test_from_probe_missing_end(self):
        """Test that incomplete entries are rejected."""
        with pytest.raises(KeyError):
            Chapter.from_probe({"time_base": "1/1000", "start": 0})


class TestTimeWindow:
    """Test cases for the TimeWindow class."""

    def test_open_window_resolves_to_length(self):
        """Test that an open-ended window reaches the end of the file."""
        window = TimeWindow(start=3.0, end=OPEN_END)
        assert window.is_open
        resolved = window.resolve(1059.89)
        assert resolved == TimeWindow(start=3.0, end=1059.89)
        assert not resolved.is_open

    def test_window_beyond_length_is_clamped(self):
        """Test that a window past the end of the file stops at the end."""
        assert TimeWindow(start=0.0, end=2000.0).resolve(100.0) == TimeWindow(start=0.0, end=100.0)

    def test_window_inside_length_is_unchanged(self):
        """Test that a window inside the file is kept as requested."""
        window = TimeWindow(start=1.0, end=2.0)
        assert window.resolve(100.0) == window
        assert window.duration == 1.0

    def test_default_end_is_open(self):
        """Test that the end defaults to the open sentinel."""
        assert TimeWindow(start=0.0).is_open


class TestSegment:
    """Test cases for the Segment class."""

    def test_end(self):
        """Test the derived end of a segment."""
        segment = Segment(source_file=Path("a.mp3"), start=1.5, duration=2.0)
        assert segment.end == 3.5

    def test_negative_duration_raises_error(self):
        """Test that negative durations are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            Segment(source_file=Path("a.mp3"), start=2.0, duration=-1.0)
