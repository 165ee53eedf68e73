"""CLI option models and parser helpers."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from enum import StrEnum

from deskpilot import __version__


class BackendKind(StrEnum):
    """Where observations come from and input goes to."""

    DESKTOP = "desktop"
    BROWSER = "browser"
    NULL = "null"


class LogFormat(StrEnum):
    """CLI log formatter mode."""

    READABLE = "readable"
    JSON = "json"


@dataclass(frozen=True)
class LLMRuntimeConfig:
    """Resolved LLM runtime settings for this process."""

    provider: str
    model: str
    api_key: str


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="deskpilot",
        description="Autonomous desktop agent driven by a vision LLM",
    )
    parser.add_argument("--version", action="version", version=f"deskpilot {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the agent toward a goal")
    run_parser.add_argument("--goal", type=str, required=True, help="What the agent should accomplish")
    run_parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Iteration budget (overrides agent.max_iterations)",
    )
    run_parser.add_argument(
        "--backend",
        type=str,
        default=BackendKind.DESKTOP.value,
        choices=[kind.value for kind in BackendKind],
        help="Input/observation backend",
    )
    run_parser.add_argument("--url", type=str, default=None, help="Start page for the browser backend")
    run_parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    run_parser.add_argument("--config", type=str, default=None, help="Path to a YAML config file")
    run_parser.add_argument("--env-file", type=str, default=None, help="Dotenv file with API keys")
    run_parser.add_argument("--observe", action="store_true", help="Enable live observer web app")
    run_parser.add_argument("--observer-host", type=str, default=None, help="Observer host override")
    run_parser.add_argument("--observer-port", type=int, default=None, help="Observer port override")
    run_parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=[fmt.value for fmt in LogFormat],
        help="Terminal log format (overrides logging.format)",
    )

    return parser
