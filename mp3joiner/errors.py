"""
Custom exception classes and error formatting for mp3joiner.

This module provides structured error handling with contextual information
so that probe and encode failures can be traced back to the file and the
ffmpeg invocation that caused them.
"""

from typing import Optional, Dict, Any


class Mp3JoinerError(Exception):
    """Base exception class for all mp3joiner errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        """
        Initialize the error with a message and optional context.

        Args:
            message: Human-readable error description
            context: Additional contextual information (file paths, tool names, etc.)
        """
        self.message = message
        self.context = context or {}
        super().__init__(self.format_error())

    def format_error(self) -> str:
        """Format the error message with context information."""
        return format_error_message(self.message, self.context)


class InvalidRangeError(Mp3JoinerError):
    """
    Exception raised when a requested clip window is invalid.

    Examples:
        - start set after end
        - start beyond the end of the source file
    """
    pass


class ProbeError(Mp3JoinerError):
    """
    Exception raised when ffprobe/ffmpeg could not describe a file.

    Examples:
        - Source file does not exist
        - Probe exited with a non-zero status
        - Probe output was not valid JSON or lacks a required field
    """
    pass


class ParseError(Mp3JoinerError):
    """
    Exception raised when tool output or a metadata file has an unexpected shape.

    Examples:
        - No ``time=HH:MM:SS.CC`` entry in the ffmpeg stats output
        - FFMETADATA1 text without header or with a broken chapter
    """
    pass


class NoSegmentsError(Mp3JoinerError):
    """Exception raised when a build is requested before anything was appended."""
    pass


class BuilderStateError(Mp3JoinerError):
    """Exception raised when a finished builder is used again."""
    pass


class EncodeError(Mp3JoinerError):
    """
    Exception raised when the ffmpeg encode/concat invocation fails.

    The combined stdout/stderr of the process is kept on ``output`` for
    diagnosis.
    """

    def __init__(self, message: str, output: str = "", context: Optional[Dict[str, Any]] = None):
        self.output = output
        context = dict(context or {})
        if output and "cause" not in context:
            context["cause"] = output.strip()
        super().__init__(message, context)


class DependencyError(Mp3JoinerError):
    """
    Exception raised for external dependency errors.

    Examples:
        - ffmpeg or ffprobe not found on PATH
    """
    pass


class FileSystemError(Mp3JoinerError):
    """
    Exception raised for file system related errors.

    Examples:
        - Missing input or target files
        - Permission denied while copying
    """
    pass


def format_error_message(message: str, context: Dict[str, Any]) -> str:
    """
    Format an error message with contextual information.

    Args:
        message: The main error message
        context: Dictionary containing contextual information
            - file_path: Path to the file involved in the error
            - dependency: Name of the external tool that failed
            - operation: Name of the operation that failed
            - cause: Original error message from external tool
            - Any other relevant key-value pairs

    Returns:
        Formatted error message string with context

    Example:
        >>> format_error_message(
        ...     "Chapter probe failed",
        ...     {"file_path": "/path/to/book.mp3", "dependency": "ffprobe", "cause": "No such file"}
        ... )
        'Error: Chapter probe failed\\n  File: /path/to/book.mp3\\n  Tool: ffprobe\\n  Cause: No such file'
    """
    lines = [f"Error: {message}"]

    if "file_path" in context:
        lines.append(f"  File: {context['file_path']}")

    if "dependency" in context:
        lines.append(f"  Tool: {context['dependency']}")

    if "operation" in context:
        lines.append(f"  Operation: {context['operation']}")

    if "cause" in context:
        lines.append(f"  Cause: {context['cause']}")

    for key, value in context.items():
        if key not in ["file_path", "dependency", "operation", "cause"]:
            # Format key as title case with spaces
            formatted_key = key.replace("_", " ").title()
            lines.append(f"  {formatted_key}: {value}")

    return "\n".join(lines)
