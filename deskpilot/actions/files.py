"""Synchronous file helpers for the file_read/file_write actions."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FilePolicyError(ValueError):
    """A path was rejected by the file access policy."""

    pass


def _check_path(path: str, require_absolute: bool) -> Path:
    target = Path(path)
    if require_absolute and not target.is_absolute():
        raise FilePolicyError(f"path must be absolute: {path}")
    return target


def read_file(path: str, require_absolute: bool = True) -> str:
    """Read a text file.

    Args:
        path: File to read.
        require_absolute: Reject relative paths.

    Returns:
        The file contents.

    Raises:
        FilePolicyError: If the path violates the policy.
        OSError: If the file cannot be read.
    """
    target = _check_path(path, require_absolute)
    try:
        content = target.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise OSError(f"failed to read file: {e}") from e
    logger.debug(f"Read {len(content)} chars from {target}")
    return content


def write_file(path: str, content: str, require_absolute: bool = True) -> None:
    """Write a text file, creating parent directories as needed.

    Raises:
        FilePolicyError: If the path violates the policy.
        OSError: If the directory or file cannot be written.
    """
    target = _check_path(path, require_absolute)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OSError(f"failed to create directory: {e}") from e
    try:
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise OSError(f"failed to write file: {e}") from e
    logger.debug(f"Wrote {len(content)} chars to {target}")
