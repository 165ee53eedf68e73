"""Action executor implementation.

This module provides the ActionExecutor that:
- Dispatches each action kind to an input backend or file helper
- Applies the click settle delay and key chord ordering
- Converts every effector failure into a failed ActionOutcome

``done`` and ``failed`` are consumed by the agent loop and are never
executed; if one reaches the executor it succeeds without side effects.

Example:
    >>> from deskpilot.actions.executor import ActionExecutor
    >>> from deskpilot.models.actions import Action
    >>>
    >>> executor = ActionExecutor()
    >>> outcome = executor.execute(Action.click(100, 200))
    >>> print(f"Success: {outcome.success}")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from deskpilot.actions.backend import InputBackend, NullInputBackend
from deskpilot.actions.files import read_file, write_file
from deskpilot.models.actions import (
    DEFAULT_BUTTON,
    DEFAULT_SCROLL_AMOUNT,
    DEFAULT_WAIT_MS,
    Action,
    ActionType,
)
from deskpilot.models.outcomes import ActionOutcome

logger = logging.getLogger(__name__)

COMBO_SEPARATOR = "+"


def split_combo(key: str) -> list[str]:
    """Split a key string into chord parts.

    ``"ctrl+shift+s"`` -> ``["ctrl", "shift", "s"]``. A string without a
    separator, or made only of separators (``"+"``), is a single key.
    """
    if COMBO_SEPARATOR not in key:
        return [key]
    parts = [part.strip() for part in key.split(COMBO_SEPARATOR) if part.strip()]
    return parts or [key]


class ActionExecutor:
    """Dispatch table from action kind to effector.

    Attributes:
        backend: The input backend used for pointer and keyboard actions.
    """

    def __init__(
        self,
        backend: InputBackend | None = None,
        require_absolute_paths: bool = True,
        click_settle_ms: float = 50.0,
    ) -> None:
        """Initialize the action executor.

        Args:
            backend: Input backend. Defaults to NullInputBackend.
            require_absolute_paths: Reject relative paths in file actions.
            click_settle_ms: Delay between pointer move and button event.
        """
        self.backend = backend if backend is not None else NullInputBackend()
        self._require_absolute_paths = require_absolute_paths
        self._click_settle_ms = click_settle_ms

        self._handlers: dict[ActionType, Callable[[Action], ActionOutcome]] = {
            ActionType.CLICK: self._execute_click,
            ActionType.TYPE: self._execute_type,
            ActionType.KEY: self._execute_key,
            ActionType.SCROLL: self._execute_scroll,
            ActionType.FILE_READ: self._execute_file_read,
            ActionType.FILE_WRITE: self._execute_file_write,
            ActionType.WAIT: self._execute_wait,
            ActionType.DONE: self._execute_sentinel,
            ActionType.FAILED: self._execute_sentinel,
        }

        logger.debug(f"ActionExecutor initialized with {type(self.backend).__name__}")

    def execute(self, action: Action) -> ActionOutcome:
        """Execute a single action.

        Never raises: effector errors become failed outcomes.

        Args:
            action: A validated action.

        Returns:
            The outcome reported by the effector.
        """
        start_time = time.time()
        handler = self._handlers.get(action.type)
        if handler is None:
            return ActionOutcome.fail(f"unknown action type: {action.type}")

        try:
            outcome = handler(action)
        except Exception as e:
            logger.warning(f"Action {action.type.value} failed: {e}")
            outcome = ActionOutcome.fail(str(e) or type(e).__name__)

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(f"Executed {action.type.value} in {duration_ms:.1f}ms")
        return outcome

    def _execute_click(self, action: Action) -> ActionOutcome:
        self.backend.mouse_move(action.x, action.y)
        # Let the move register before the button event.
        time.sleep(self._click_settle_ms / 1000)
        self.backend.mouse_click(action.button or DEFAULT_BUTTON, double=action.double)
        return ActionOutcome.ok()

    def _execute_type(self, action: Action) -> ActionOutcome:
        self.backend.type_text(action.text)
        return ActionOutcome.ok()

    def _execute_key(self, action: Action) -> ActionOutcome:
        keys = split_combo(action.key)
        # Press in order, release in reverse (ctrl+a: hold ctrl, tap a, release ctrl).
        for key in keys:
            self.backend.key_down(key)
        for key in reversed(keys):
            self.backend.key_up(key)
        return ActionOutcome.ok()

    def _execute_scroll(self, action: Action) -> ActionOutcome:
        self.backend.scroll(action.direction, action.amount or DEFAULT_SCROLL_AMOUNT)
        return ActionOutcome.ok()

    def _execute_file_read(self, action: Action) -> ActionOutcome:
        content = read_file(action.path, self._require_absolute_paths)
        return ActionOutcome.ok(data=content)

    def _execute_file_write(self, action: Action) -> ActionOutcome:
        write_file(action.path, action.content, self._require_absolute_paths)
        return ActionOutcome.ok()

    def _execute_wait(self, action: Action) -> ActionOutcome:
        time.sleep((action.ms or DEFAULT_WAIT_MS) / 1000)
        return ActionOutcome.ok()

    def _execute_sentinel(self, action: Action) -> ActionOutcome:
        logger.debug(f"Sentinel {action.type.value} reached executor; ignoring")
        return ActionOutcome.ok()

    def close(self) -> None:
        """Release the backend."""
        self.backend.close()
