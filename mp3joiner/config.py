"""Configuration management for mp3joiner.

This module handles loading and validating configuration from environment
variables and .env files, with environment variables taking precedence.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Config:
    """Configuration for mp3joiner.

    Attributes:
        ffmpeg_binary: Name or path of the ffmpeg executable
        ffprobe_binary: Name or path of the ffprobe executable
        temp_dir: Directory for temporary metadata files (None for system default)
        log_level: Level for the standard library logging setup of the CLI
    """
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    temp_dir: Optional[str] = None
    log_level: str = "WARNING"

    @classmethod
    def load(cls, env_file: str = ".env") -> "Config":
        """Load configuration from .env file and environment variables.

        Environment variables take precedence over .env file values.

        Args:
            env_file: Path to the .env file (default: ".env")

        Returns:
            Config: Loaded and validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        # Load .env file if it exists (doesn't override existing env vars)
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)

        config = cls(
            ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
            ffprobe_binary=os.getenv("FFPROBE_BINARY", "ffprobe"),
            temp_dir=os.getenv("TEMP_DIR") or None,
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        )

        config.validate()

        return config

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        errors = []

        if not self.ffmpeg_binary or not self.ffmpeg_binary.strip():
            errors.append("Invalid FFMPEG_BINARY: executable name cannot be empty")

        if not self.ffprobe_binary or not self.ffprobe_binary.strip():
            errors.append("Invalid FFPROBE_BINARY: executable name cannot be empty")

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(f"Invalid LOG_LEVEL: must be one of {VALID_LOG_LEVELS}")

        if self.temp_dir and not Path(self.temp_dir).is_dir():
            errors.append(f"Invalid TEMP_DIR: {self.temp_dir} is not a directory")

        if errors:
            error_message = "Configuration validation failed:\n"
            for error in errors:
                error_message += f"  - {error}\n"
            error_message += "\nSet via environment variable or .env file"
            raise ConfigurationError(error_message)

    @property
    def logging_level(self) -> int:
        """Numeric level for ``logging.basicConfig``."""
        return getattr(logging, self.log_level, logging.WARNING)

