"""File helpers for putting encoded files in place."""

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from mp3joiner.errors import FileSystemError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_CHUNK_SIZE = 1024 * 1024


def create_sibling_temp_file(target: PathLike) -> Path:
    """Reserve a new, empty file next to ``target`` for an encode to write into.

    The name is ``<stem>.<random>.tmp<suffix>`` and is guaranteed not to
    clash with an existing file, so the caller owns it and may delete it.

    Raises:
        FileSystemError: If the file cannot be created
    """
    target = Path(target)
    try:
        fd, temp_path = tempfile.mkstemp(
            prefix=f"{target.stem}.",
            suffix=f".tmp{target.suffix}",
            dir=target.parent
        )
        os.close(fd)
    except OSError as e:
        raise FileSystemError(
            "Could not create temporary output file",
            context={"file_path": str(target), "operation": "temp file creation", "cause": str(e)}
        )
    return Path(temp_path)


def calculate_file_hash(path: PathLike) -> bytes:
    """Return the SHA-256 digest of a file's content."""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.digest()


def files_equal(left: PathLike, right: PathLike) -> bool:
    """Compare two files by content hash."""
    return calculate_file_hash(left) == calculate_file_hash(right)


def overwrite_file(source: PathLike, target: PathLike) -> None:
    """Replace the content of an existing ``target`` with that of ``source``.

    The target is truncated and rewritten in place, so its identity
    (permissions, hard links) is kept.

    Raises:
        FileSystemError: If either file is missing or the copy fails
    """
    source, target = Path(source), Path(target)
    for path in (source, target):
        if not path.is_file():
            raise FileSystemError(
                "File does not exist",
                context={"file_path": str(path), "operation": "overwrite"}
            )

    try:
        with open(source, "rb") as src, open(target, "r+b") as dst:
            dst.truncate(0)
            shutil.copyfileobj(src, dst)
    except OSError as e:
        raise FileSystemError(
            "Could not overwrite file",
            context={"file_path": str(target), "operation": "overwrite", "cause": str(e)}
        )


def move_file(source: PathLike, target: PathLike) -> str:
    """Move ``source`` to ``target``.

    When ``target`` already holds identical content the source is simply
    removed. Otherwise the target is replaced, falling back to copy and
    delete when a rename is not possible (e.g. across file systems).

    Returns:
        Path of the target

    Raises:
        FileSystemError: If the source is missing or the move fails
    """
    source, target = Path(source), Path(target)
    if not source.is_file():
        raise FileSystemError(
            "Source file does not exist",
            context={"file_path": str(source), "operation": "move"}
        )

    try:
        if target.is_file() and files_equal(source, target):
            logger.debug("%s already matches %s, dropping source", target, source)
            source.unlink()
            return str(target)

        try:
            source.replace(target)
        except OSError:
            shutil.copyfile(source, target)
            source.unlink()
    except OSError as e:
        raise FileSystemError(
            "Could not move file",
            context={"file_path": str(source), "operation": "move", "target": str(target), "cause": str(e)}
        )

    return str(target)
