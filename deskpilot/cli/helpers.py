"""Shared helper utilities for the CLI: logging, keys, backends, observer, output."""

from __future__ import annotations

import json
import logging
import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from types import FrameType
from typing import IO, Any, Protocol

from deskpilot.actions.backend import (
    InputBackend,
    NullInputBackend,
    PlaywrightInputBackend,
    PynputInputBackend,
)
from deskpilot.cli.options import BackendKind, LLMRuntimeConfig, LogFormat
from deskpilot.core.events import ActionExecuted, RunErrored, RunEvent, RunFinished
from deskpilot.core.history import describe_action
from deskpilot.core.state import RunState
from deskpilot.observer.server import create_app
from deskpilot.observer.streaming import (
    STOP_COMMAND,
    ActionStreamingService,
    ScreenStreamingService,
)
from deskpilot.vision.capture import PageObserver, ScreenObserver

logger = logging.getLogger(__name__)

_LLM_PROVIDER_ENV_KEYS: dict[str, str] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}
_PLACEHOLDER_API_KEYS = frozenset(
    {
        "your_openai_api_key_here",
        "your_anthropic_api_key_here",
        "your_api_key_here",
        "changeme",
        "replace_me",
    }
)

# Typed text shown in console lines is shorter than in the decision context
CONSOLE_TEXT_CHARS = 30
DEFAULT_BROWSER_URL = "about:blank"
BROWSER_VIEWPORT = {"width": 1280, "height": 800}


class ObserverServer(Protocol):
    """Protocol for running observer server handles."""

    def stop(self) -> None:
        """Stop observer server."""
        ...


class _JSONLogFormatter(logging.Formatter):
    """Compact JSON formatter for machine-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


@dataclass
class _UvicornObserverServer:
    """Background uvicorn server handle."""

    server: Any
    thread: threading.Thread

    def stop(self) -> None:
        self.server.should_exit = True
        self.thread.join(timeout=5.0)


def _configure_logging(
    level: str = "INFO",
    log_format: str = LogFormat.READABLE.value,
) -> None:
    """Configure process-wide logging on stderr, replacing our earlier handler."""
    resolved_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, "_deskpilot_handler", False)]

    handler = logging.StreamHandler(sys.stderr)
    handler._deskpilot_handler = True  # type: ignore[attr-defined]
    if log_format == LogFormat.JSON.value:
        formatter: logging.Formatter = _JSONLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(resolved_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    # HTTP client logs are noisy at INFO during a run.
    for name in ("httpx", "httpcore", "anthropic", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _is_placeholder_api_key(value: str) -> bool:
    """Best-effort placeholder detection for env-provided API keys."""
    lowered = value.strip().lower()
    if lowered in _PLACEHOLDER_API_KEYS:
        return True
    return lowered.startswith("your_") and lowered.endswith("_here")


def _read_provider_api_key(provider: str) -> str | None:
    """Read and sanitize provider API key from environment."""
    env_key = _LLM_PROVIDER_ENV_KEYS[provider]
    raw = os.environ.get(env_key)
    if raw is None:
        return None

    cleaned = raw.strip().strip('"').strip("'")
    if not cleaned:
        logger.warning(f"{env_key} is set but blank; ignoring it.")
        return None

    if _is_placeholder_api_key(cleaned):
        logger.warning(f"{env_key} appears to be a placeholder value; ignoring it.")
        return None

    return cleaned


def _resolve_llm_runtime(provider: str, model: str) -> LLMRuntimeConfig:
    """Resolve provider/model/api-key for this run.

    Raises:
        ValueError: If the provider is unknown or its API key is missing.
    """
    normalized = provider.strip().lower()
    if normalized not in _LLM_PROVIDER_ENV_KEYS:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    api_key = _read_provider_api_key(normalized)
    if api_key is None:
        env_key = _LLM_PROVIDER_ENV_KEYS[normalized]
        raise ValueError(f"{env_key} not set (set environment variable or add it to .env)")

    return LLMRuntimeConfig(provider=normalized, model=model, api_key=api_key)


@dataclass
class _BrowserSession:
    """Playwright objects owned by one browser-backed run."""

    playwright: Any
    browser: Any
    page: Any

    def close(self) -> None:
        for closer in (self.browser.close, self.playwright.stop):
            try:
                closer()
            except Exception as e:
                logger.debug(f"Browser shutdown error: {e}")


def _start_browser(url: str | None, headless: bool) -> _BrowserSession:
    """Launch Chromium and open ``url``."""
    from playwright.sync_api import sync_playwright

    playwright = sync_playwright().start()
    try:
        browser = playwright.chromium.launch(headless=headless)
        page = browser.new_page(viewport=BROWSER_VIEWPORT)
        page.goto(url or DEFAULT_BROWSER_URL)
    except Exception:
        playwright.stop()
        raise
    logger.info(f"Browser started (headless={headless}) at {url or DEFAULT_BROWSER_URL}")
    return _BrowserSession(playwright=playwright, browser=browser, page=page)


def _build_environment(
    kind: BackendKind,
    *,
    quality: int,
    max_width: int | None,
    url: str | None = None,
    headless: bool = False,
) -> tuple[InputBackend, ScreenObserver | PageObserver, _BrowserSession | None]:
    """Create the input backend and observer for ``kind``.

    Returns:
        Tuple of (backend, observer, browser session or None).
    """
    if kind == BackendKind.BROWSER:
        session = _start_browser(url, headless)
        return (
            PlaywrightInputBackend(session.page),
            PageObserver(session.page, quality=quality, max_width=max_width),
            session,
        )

    observer = ScreenObserver(quality=quality, max_width=max_width)
    if kind == BackendKind.NULL:
        logger.warning("Null backend: actions are decided but not performed")
        return NullInputBackend(), observer, None
    return PynputInputBackend(), observer, None


def _start_observer_server(
    host: str,
    port: int,
    screen_service: ScreenStreamingService,
    action_service: ActionStreamingService,
) -> ObserverServer:
    """Start observer FastAPI server in a background thread."""
    import uvicorn

    app = create_app(
        streaming_service=screen_service,
        action_streaming_service=action_service,
    )
    config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, daemon=True, name="ObserverServer")
    thread.start()
    # Brief wait for the initial bind.
    time.sleep(0.1)
    return _UvicornObserverServer(server=server, thread=thread)


def _watch_control_commands(
    action_service: ActionStreamingService,
    cancel_event: threading.Event,
    done: threading.Event,
    poll_seconds: float = 0.2,
) -> threading.Thread:
    """Poll observer control commands and set ``cancel_event`` on stop."""

    def _poll() -> None:
        while not done.wait(poll_seconds):
            for command in action_service.pop_control_commands():
                if command.get("command") == STOP_COMMAND:
                    logger.info("Stop command received from observer")
                    cancel_event.set()

    thread = threading.Thread(target=_poll, daemon=True, name="ObserverControl")
    thread.start()
    return thread


def _install_signal_handlers(cancel_event: threading.Event) -> dict[int, Any]:
    """Route SIGINT/SIGTERM to ``cancel_event``.

    Returns:
        The previous handlers, for ``_restore_signal_handlers``.
    """

    def _handler(signum: int, frame: FrameType | None) -> None:
        logger.info(f"Received signal {signum}, stopping after the current action")
        cancel_event.set()

    previous: dict[int, Any] = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            # Not in the main thread.
            logger.debug(f"Cannot install handler for signal {sig}")
    return previous


def _restore_signal_handlers(previous: dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def _format_event_line(event: ActionExecuted, now: datetime | None = None) -> str:
    """Render an executed action as ``[HH:MM:SS] kind: detail [status]``."""
    stamp = (now or datetime.now()).strftime("%H:%M:%S")
    detail = describe_action(event.action, text_chars=CONSOLE_TEXT_CHARS)
    return f"[{stamp}] {detail} [{event.outcome.status}]"


class ConsolePrinter:
    """Event sink that prints run progress for a human at a terminal."""

    def __init__(
        self,
        stream: IO[str] | None = None,
        screen_service: ScreenStreamingService | None = None,
        frame_source: ScreenObserver | PageObserver | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        self._screen_service = screen_service
        self._frame_source = frame_source
        self.action_count = 0
        self.final_state: RunState | None = None
        self.final_result = ""
        self.error: Exception | None = None

    def _print(self, line: str) -> None:
        print(line, file=self._stream, flush=True)

    def emit(self, event: RunEvent) -> None:
        if isinstance(event, ActionExecuted):
            self.action_count += 1
            self._print(_format_event_line(event))
            self._push_frame()
        elif isinstance(event, RunFinished):
            self.final_state = event.state
            self.final_result = event.result
        elif isinstance(event, RunErrored):
            self.error = event.error

    def _push_frame(self) -> None:
        if self._screen_service is None or self._frame_source is None:
            return
        frame = self._frame_source.latest_frame
        if frame is not None:
            self._screen_service.push_frame(frame)

    def print_summary(self, state: RunState, result: str, error: Exception | None) -> int:
        """Print the outcome and total actions.

        Returns:
            Process exit code: 0 for completed/stopped, 1 otherwise.
        """
        self._print("")
        if error is not None and state != RunState.FAILED:
            self._print(f"Error: {error}")
            exit_code = 1
        elif state == RunState.COMPLETED:
            self._print(f"Completed: {result}")
            exit_code = 0
        elif state == RunState.FAILED:
            self._print(f"Failed: {result}")
            exit_code = 1
        else:
            self._print("Stopped by user")
            exit_code = 0
        self._print(f"Total actions: {self.action_count}")
        return exit_code
