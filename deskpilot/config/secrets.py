"""Loading of API keys from dotenv files.

A dotenv file holds provider keys (``ANTHROPIC_API_KEY``, ``OPENAI_API_KEY``).
Because those keys grant billable access, the file is only loaded when it is
a regular file owned by the current user and unreadable by anyone else.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "DESKPILOT_ENV_FILE"


def _project_root() -> Path:
    """Resolve project root from source tree layout."""
    return Path(__file__).resolve().parents[2]


def _resolve_env_file(
    *,
    env_file: str | Path | None,
    start_dir: Path,
) -> Path | None:
    """Pick the dotenv file: explicit path, then DESKPILOT_ENV_FILE, then .env lookups."""
    env_path = env_file or os.environ.get(ENV_FILE_VAR)
    if env_path:
        resolved = Path(env_path).expanduser()
        if not resolved.is_absolute():
            resolved = start_dir / resolved
        return resolved

    for candidate in (start_dir / ".env", _project_root() / ".env"):
        if candidate.exists():
            return candidate

    return None


def _validate_permissions(env_file: Path) -> None:
    """Reject symlinked, foreign-owned or group/world-accessible files (POSIX only)."""
    if os.name == "nt":
        return

    if env_file.is_symlink():
        raise PermissionError(
            f"Refusing to load dotenv symlink: {env_file}. Use a real file with chmod 600."
        )

    file_stat = env_file.stat()
    if hasattr(os, "getuid") and file_stat.st_uid != os.getuid():
        raise PermissionError(
            f"Refusing to load dotenv owned by another user: {env_file}."
        )

    if file_stat.st_mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise PermissionError(
            f"Insecure dotenv permissions for {env_file}. Restrict access with chmod 600."
        )


def load_environment_secrets(
    env_file: str | Path | None = None,
    *,
    override: bool = False,
    strict: bool = True,
    start_dir: Path | None = None,
) -> Path | None:
    """Load API keys from a dotenv file into ``os.environ``.

    Args:
        env_file: Optional dotenv path. If omitted, checks ``DESKPILOT_ENV_FILE``,
            then ``.env`` in the working directory, then the project root.
        override: Whether dotenv values replace variables already set.
        strict: Whether an explicit but missing dotenv path should raise.
        start_dir: Base directory for relative paths (default: cwd).

    Returns:
        The loaded dotenv path, or None when no file was found.

    Raises:
        FileNotFoundError: If an explicit file is missing and ``strict``.
        PermissionError: If the file fails the ownership/permission checks.
        ValueError: If the path is not a regular file.
    """
    base_dir = (start_dir or Path.cwd()).resolve()
    resolved = _resolve_env_file(env_file=env_file, start_dir=base_dir)
    if resolved is None:
        return None

    if not resolved.exists():
        if strict:
            raise FileNotFoundError(f"Dotenv file not found: {resolved}")
        return None
    if not resolved.is_file():
        raise ValueError(f"Dotenv path is not a regular file: {resolved}")

    _validate_permissions(resolved)
    load_dotenv(dotenv_path=str(resolved), override=override)
    logger.debug(f"Loaded secrets from {resolved}")
    return resolved
