"""Rewrite the tags and chapters of an existing audio file.

The audio stream is copied untouched; only the metadata is replaced by the
given tags and chapters.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from mp3joiner.chapter import Chapter
from mp3joiner.command import FFmpegCommand
from mp3joiner.config import Config
from mp3joiner.errors import FileSystemError
from mp3joiner.ffmpeg import FFmpeg
from mp3joiner.file_mover import create_sibling_temp_file, overwrite_file
from mp3joiner.metadata import temporary_metadata_file

logger = logging.getLogger(__name__)


def set_metadata(
    mp3_path: Union[str, Path],
    tags: Mapping[str, str],
    chapters: Sequence[Chapter],
    ffmpeg: Optional[FFmpeg] = None,
    config: Optional[Config] = None,
) -> str:
    """Replace the tags and chapters of ``mp3_path`` in place.

    Args:
        mp3_path: Existing audio file to rewrite
        tags: Global tags for the file
        chapters: Chapters for the file, in its own timeline
        ffmpeg: Process gateway; created from ``config`` when omitted
        config: Configuration (binaries, temp directory)

    Returns:
        Path of the rewritten file

    Raises:
        FileSystemError: If the file does not exist or cannot be overwritten
        ProbeError: If the file's bitrate cannot be probed
        EncodeError: If ffmpeg fails
    """
    config = config or Config()
    ffmpeg = ffmpeg or FFmpeg(config)
    source = Path(mp3_path)

    if not source.is_file():
        raise FileSystemError(
            "Audio file does not exist",
            context={"file_path": str(source), "operation": "metadata rewrite"}
        )

    bitrate = ffmpeg.get_bitrate(source)
    temp_output = create_sibling_temp_file(source)

    try:
        with temporary_metadata_file(tags, chapters, config.temp_dir) as metadata_path:
            command = FFmpegCommand(config.ffmpeg_binary)
            command.add_input(source)
            metadata_index = command.add_input(metadata_path)
            command.add_map("0:a")
            command.add_output_option("map_metadata", metadata_index)
            command.add_output_option("map_chapters", metadata_index)
            command.add_output_option("b:a", f"{bitrate // 1000}k")
            command.add_output_option("codec", "copy")
            command.set_output(temp_output)
            ffmpeg.run(command, operation="metadata rewrite")

        overwrite_file(temp_output, source)
    finally:
        temp_output.unlink(missing_ok=True)

    logger.info("Rewrote metadata of %s (%d tags, %d chapters)", source, len(tags), len(chapters))
    return str(source)
