"""Actions package for executing agent actions.

This package provides:
- ActionExecutor: Dispatch from action kind to effector with failure capture
- InputBackend: Interface for actual input mechanisms
- NullInputBackend: No-op backend for testing
- PlaywrightInputBackend: Backend using Playwright's page.keyboard/mouse
- PynputInputBackend: Backend for the local desktop session
- read_file / write_file: File helpers with the absolute-path policy
"""

from deskpilot.actions.backend import (
    InputBackend,
    NullInputBackend,
    PlaywrightInputBackend,
    PynputInputBackend,
)
from deskpilot.actions.executor import ActionExecutor, split_combo
from deskpilot.actions.files import FilePolicyError, read_file, write_file

__all__ = [
    "ActionExecutor",
    "FilePolicyError",
    "InputBackend",
    "NullInputBackend",
    "PlaywrightInputBackend",
    "PynputInputBackend",
    "read_file",
    "split_combo",
    "write_file",
]
