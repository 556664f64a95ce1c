"""
Unit tests for error handling infrastructure.
"""

import pytest
from mp3joiner.errors import (
    Mp3JoinerError,
    InvalidRangeError,
    ProbeError,
    ParseError,
    NoSegmentsError,
    BuilderStateError,
    EncodeError,
    DependencyError,
    FileSystemError,
    format_error_message
)


class TestErrorFormatting:
    """Test error message formatting with context."""

    def test_format_error_with_file_path(self):
        """Test error formatting includes file path."""
        result = format_error_message("File not found", {"file_path": "/path/to/book.mp3"})

        assert "Error: File not found" in result
        assert "File: /path/to/book.mp3" in result

    def test_format_error_with_dependency(self):
        """Test error formatting includes dependency name."""
        result = format_error_message("External tool failed", {"dependency": "ffprobe"})

        assert "Error: External tool failed" in result
        assert "Tool: ffprobe" in result

    def test_format_error_with_all_context(self):
        """Test error formatting with all context fields in fixed order."""
        context = {
            "cause": "No such file or directory",
            "operation": "chapter probe",
            "dependency": "ffprobe",
            "file_path": "/path/to/book.mp3"
        }
        result = format_error_message("Chapter probe failed", context)

        assert result == (
            "Error: Chapter probe failed\n"
            "  File: /path/to/book.mp3\n"
            "  Tool: ffprobe\n"
            "  Operation: chapter probe\n"
            "  Cause: No such file or directory"
        )

    def test_format_error_with_custom_context(self):
        """Test error formatting with custom context fields."""
        result = format_error_message("ffmpeg failed", {"exit_code": 1, "line": 3})

        assert "Exit Code: 1" in result
        assert "Line: 3" in result

    def test_format_error_empty_context(self):
        """Test error formatting with no context."""
        assert format_error_message("Something went wrong", {}) == "Error: Something went wrong"


class TestEncodeError:
    """Test EncodeError exception class."""

    def test_output_kept(self):
        """Test that the ffmpeg output is stored and shown as cause."""
        error = EncodeError("ffmpeg concatenation failed", output="Invalid argument\n")

        assert error.output == "Invalid argument\n"
        assert error.context["cause"] == "Invalid argument"
        assert "Cause: Invalid argument" in str(error)

    def test_explicit_cause_wins(self):
        """Test that a given cause is not replaced by the output."""
        error = EncodeError("failed", output="long log", context={"cause": "short"})
        assert error.context["cause"] == "short"

    def test_no_output(self):
        """Test EncodeError without output."""
        error = EncodeError("failed")
        assert error.output == ""
        assert "cause" not in error.context

    def test_context_not_modified(self):
        """Test that the caller's context dict is left alone."""
        context = {"operation": "concatenation"}
        EncodeError("failed", output="log", context=context)
        assert context == {"operation": "concatenation"}


class TestErrorInheritance:
    """Test that all custom errors inherit from base exception."""

    @pytest.mark.parametrize("error_class", [
        InvalidRangeError,
        ProbeError,
        ParseError,
        NoSegmentsError,
        BuilderStateError,
        EncodeError,
        DependencyError,
        FileSystemError,
    ])
    def test_all_errors_inherit_from_base(self, error_class):
        """Test that all custom errors are Mp3JoinerError instances."""
        assert issubclass(error_class, Mp3JoinerError)
        assert issubclass(error_class, Exception)

    def test_context_available(self):
        """Test that the context is kept on the exception."""
        error = ProbeError("Probe failed", {"file_path": "book.mp3"})
        assert error.message == "Probe failed"
        assert error.context == {"file_path": "book.mp3"}
