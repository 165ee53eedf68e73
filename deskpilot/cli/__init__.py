"""CLI entrypoint for running DeskPilot."""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
import threading

from deskpilot.actions.executor import ActionExecutor
from deskpilot.cli.helpers import (
    ConsolePrinter,
    ObserverServer,
    _build_environment,
    _configure_logging,
    _install_signal_handlers,
    _resolve_llm_runtime,
    _restore_signal_handlers,
    _start_observer_server,
    _watch_control_commands,
)
from deskpilot.cli.options import BackendKind, LogFormat, build_arg_parser
from deskpilot.config.loader import load_config
from deskpilot.config.secrets import load_environment_secrets
from deskpilot.core.agent import Agent, AgentConfig
from deskpilot.core.decision import DecisionConfig, DecisionEngine
from deskpilot.core.events import EventSink, FanoutSink
from deskpilot.errors import DeskPilotError
from deskpilot.observer.streaming import ActionStreamingService, ScreenStreamingService

logger = logging.getLogger(__name__)


def run_command(args: argparse.Namespace) -> int:
    """Execute the `run` command.

    Returns:
        Process exit code.
    """
    if args.command != "run":
        raise ValueError(f"Unsupported command: {args.command}")

    config = load_config(args.config)
    _configure_logging(
        level=config.logging.level,
        log_format=args.log_format or config.logging.format,
    )

    llm = _resolve_llm_runtime(config.llm.provider, config.llm.model)
    engine = DecisionEngine(
        DecisionConfig(
            provider=llm.provider,
            model=llm.model,
            max_tokens=config.llm.max_tokens,
            temperature=config.llm.temperature,
        ),
        api_key=llm.api_key,
    )

    max_iterations = args.max_iterations or config.agent.max_iterations
    backend, observer, browser = _build_environment(
        BackendKind(args.backend),
        quality=config.capture.quality,
        max_width=config.capture.max_width,
        url=args.url,
        headless=args.headless,
    )
    executor = ActionExecutor(
        backend=backend,
        require_absolute_paths=config.agent.require_absolute_paths,
        click_settle_ms=config.agent.click_settle_ms,
    )

    cancel_event = threading.Event()
    done_event = threading.Event()
    screen_service: ScreenStreamingService | None = None
    action_service: ActionStreamingService | None = None
    observer_server: ObserverServer | None = None

    if args.observe:
        host = args.observer_host or config.observer.host
        port = args.observer_port or config.observer.port
        screen_service = ScreenStreamingService()
        action_service = ActionStreamingService()
        observer_server = _start_observer_server(host, port, screen_service, action_service)
        _watch_control_commands(action_service, cancel_event, done_event)
        logger.info(f"[OBSERVER] live page: http://{host}:{port}/live")

    printer = ConsolePrinter(screen_service=screen_service, frame_source=observer)
    sink: EventSink = FanoutSink(printer, action_service) if action_service else printer

    agent = Agent(
        observer=observer,
        oracle=engine,
        executor=executor,
        sink=sink,
        config=AgentConfig(
            max_iterations=max_iterations,
            stabilization_ms=config.agent.stabilization_ms,
        ),
    )

    print(f"Goal: {args.goal}")
    print(f"Model: {llm.model} ({llm.provider}), max iterations: {max_iterations}")
    print("Press Ctrl+C to stop\n", flush=True)

    previous_handlers = _install_signal_handlers(cancel_event)
    try:
        try:
            agent.run(args.goal, cancel_event=cancel_event)
        except DeskPilotError as e:
            logger.debug(f"Run ended with {type(e).__name__}: {e}")
        return printer.print_summary(agent.state, agent.result, agent.error)
    finally:
        _restore_signal_handlers(previous_handlers)
        done_event.set()
        executor.close()
        if observer_server is not None:
            with contextlib.suppress(Exception):
                observer_server.stop()
        if browser is not None:
            browser.close()


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint function."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Bootstrap logger before config loading.
    _configure_logging(
        level="INFO",
        log_format=args.log_format or LogFormat.READABLE.value,
    )

    try:
        load_environment_secrets(args.env_file, strict=args.env_file is not None)
        return run_command(args)
    except Exception as exc:
        logger.error(f"[BOOT] CLI execution failed: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
