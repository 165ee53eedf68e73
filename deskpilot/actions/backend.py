"""Input backend interface and implementations.

This module provides:
- InputBackend: Abstract interface for pointer and keyboard effectors
- NullInputBackend: No-op implementation for testing and dry runs
- PlaywrightInputBackend: Input into a browser page driven by Playwright
- PynputInputBackend: Input into the local desktop session via pynput

The executor owns timing (click settle delay, chord ordering); backends only
perform the raw input operation they are asked for.

Example:
    >>> from deskpilot.actions.backend import PynputInputBackend
    >>> from deskpilot.actions.executor import ActionExecutor
    >>>
    >>> executor = ActionExecutor(backend=PynputInputBackend())
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger(__name__)

SCROLL_DIRECTIONS = ("up", "down", "left", "right")
MOUSE_BUTTONS = ("left", "right", "middle")


def scroll_delta(direction: str, amount: int) -> tuple[int, int]:
    """Convert a direction and unit count to (dx, dy) with down/right positive.

    Raises:
        ValueError: If ``direction`` is not one of up/down/left/right.
    """
    normalized = direction.strip().lower()
    if normalized == "up":
        return (0, -amount)
    if normalized == "down":
        return (0, amount)
    if normalized == "left":
        return (-amount, 0)
    if normalized == "right":
        return (amount, 0)
    raise ValueError(f"invalid scroll direction: {direction}")


def _check_button(button: str) -> str:
    normalized = (button or "left").strip().lower()
    if normalized not in MOUSE_BUTTONS:
        raise ValueError(f"invalid mouse button: {button}")
    return normalized


class InputBackend(ABC):
    """Abstract interface for input mechanisms.

    Different implementations target different environments (a browser
    page, the local desktop) or do nothing at all (NullInputBackend).
    """

    # Keyboard operations

    @abstractmethod
    def key_down(self, key: str) -> None:
        """Press a key down (without releasing).

        Args:
            key: Key name (e.g., 'a', 'enter', 'ctrl').
        """
        ...

    @abstractmethod
    def key_up(self, key: str) -> None:
        """Release a key.

        Args:
            key: Key name.
        """
        ...

    @abstractmethod
    def type_text(self, text: str) -> None:
        """Inject literal text.

        Args:
            text: Text to type.
        """
        ...

    # Mouse operations

    @abstractmethod
    def mouse_move(self, x: int, y: int) -> None:
        """Move the pointer to absolute coordinates.

        Args:
            x: X coordinate.
            y: Y coordinate.
        """
        ...

    @abstractmethod
    def mouse_click(self, button: str = "left", double: bool = False) -> None:
        """Click at the current pointer position.

        Args:
            button: Button name ('left', 'right', 'middle').
            double: Whether to double-click.
        """
        ...

    @abstractmethod
    def scroll(self, direction: str, amount: int) -> None:
        """Scroll the wheel.

        Args:
            direction: 'up', 'down', 'left' or 'right'.
            amount: Number of wheel units.
        """
        ...

    def close(self) -> None:
        """Release backend resources."""
        return None


class NullInputBackend(InputBackend):
    """No-op backend.

    Used in unit tests and for dry runs. Arguments are still checked so
    that invalid input fails the same way it would on a real backend.
    """

    def key_down(self, key: str) -> None:
        """No-op key down."""
        logger.debug(f"NullInputBackend.key_down({key!r})")

    def key_up(self, key: str) -> None:
        """No-op key up."""
        logger.debug(f"NullInputBackend.key_up({key!r})")

    def type_text(self, text: str) -> None:
        """No-op type."""
        logger.debug(f"NullInputBackend.type_text({len(text)} chars)")

    def mouse_move(self, x: int, y: int) -> None:
        """No-op mouse move."""
        logger.debug(f"NullInputBackend.mouse_move({x}, {y})")

    def mouse_click(self, button: str = "left", double: bool = False) -> None:
        """No-op mouse click."""
        _check_button(button)
        logger.debug(f"NullInputBackend.mouse_click({button!r}, double={double})")

    def scroll(self, direction: str, amount: int) -> None:
        """No-op scroll."""
        scroll_delta(direction, amount)
        logger.debug(f"NullInputBackend.scroll({direction!r}, {amount})")


# Mapping from common key names to Playwright key names
_PLAYWRIGHT_KEY_MAP: dict[str, str] = {
    # Modifiers
    "ctrl": "Control",
    "control": "Control",
    "alt": "Alt",
    "shift": "Shift",
    "meta": "Meta",
    "command": "Meta",
    "cmd": "Meta",
    "win": "Meta",
    "windows": "Meta",
    # Navigation
    "enter": "Enter",
    "return": "Enter",
    "tab": "Tab",
    "escape": "Escape",
    "esc": "Escape",
    "backspace": "Backspace",
    "delete": "Delete",
    "del": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "pagedown": "PageDown",
    # Arrows
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
    # Other
    "space": " ",
}

# Function keys map by name (f1 -> F1)
_PLAYWRIGHT_KEY_MAP.update({f"f{n}": f"F{n}" for n in range(1, 13)})

# Pixels per wheel unit for backends that scroll in pixels
_WHEEL_PIXELS = 100


def _to_playwright_key(key: str) -> str:
    """Convert a key name to Playwright's expected format."""
    return _PLAYWRIGHT_KEY_MAP.get(key.lower(), key)


class PlaywrightInputBackend(InputBackend):
    """Backend that uses Playwright's page.keyboard and page.mouse.

    Example:
        >>> page = browser.new_page()
        >>> backend = PlaywrightInputBackend(page)
        >>> backend.type_text("hello")
    """

    def __init__(self, page: Page) -> None:
        """Initialize with a Playwright page.

        Args:
            page: Playwright page object to send input to.
        """
        self._page = page
        self._position = (0, 0)
        logger.debug("PlaywrightInputBackend initialized")

    def key_down(self, key: str) -> None:
        """Press a key down using Playwright."""
        self._page.keyboard.down(_to_playwright_key(key))

    def key_up(self, key: str) -> None:
        """Release a key using Playwright."""
        self._page.keyboard.up(_to_playwright_key(key))

    def type_text(self, text: str) -> None:
        """Type text using Playwright (handles unicode)."""
        self._page.keyboard.type(text)

    def mouse_move(self, x: int, y: int) -> None:
        """Move mouse using Playwright."""
        self._page.mouse.move(x, y)
        self._position = (x, y)

    def mouse_click(self, button: str = "left", double: bool = False) -> None:
        """Click at the last moved-to position using Playwright."""
        x, y = self._position
        self._page.mouse.click(
            x,
            y,
            button=_check_button(button),
            click_count=2 if double else 1,
        )

    def scroll(self, direction: str, amount: int) -> None:
        """Scroll using Playwright's mouse wheel (pixel deltas)."""
        dx, dy = scroll_delta(direction, amount)
        self._page.mouse.wheel(dx * _WHEEL_PIXELS, dy * _WHEEL_PIXELS)


class PynputInputBackend(InputBackend):
    """Backend that drives the local desktop session through pynput.

    pynput needs a display server, so it is imported when the backend is
    created rather than at module import.
    """

    def __init__(self) -> None:
        from pynput import keyboard, mouse

        self._keyboard_module = keyboard
        self._mouse_module = mouse
        self._mouse = mouse.Controller()
        self._kbd = keyboard.Controller()
        self._key_map: dict[str, Any] = {
            "ctrl": keyboard.Key.ctrl,
            "control": keyboard.Key.ctrl,
            "alt": keyboard.Key.alt,
            "shift": keyboard.Key.shift,
            "win": keyboard.Key.cmd,
            "cmd": keyboard.Key.cmd,
            "command": keyboard.Key.cmd,
            "meta": keyboard.Key.cmd,
            "enter": keyboard.Key.enter,
            "return": keyboard.Key.enter,
            "tab": keyboard.Key.tab,
            "escape": keyboard.Key.esc,
            "esc": keyboard.Key.esc,
            "backspace": keyboard.Key.backspace,
            "delete": keyboard.Key.delete,
            "del": keyboard.Key.delete,
            "space": keyboard.Key.space,
            "home": keyboard.Key.home,
            "end": keyboard.Key.end,
            "pageup": keyboard.Key.page_up,
            "pagedown": keyboard.Key.page_down,
            "up": keyboard.Key.up,
            "down": keyboard.Key.down,
            "left": keyboard.Key.left,
            "right": keyboard.Key.right,
        }
        for n in range(1, 13):
            self._key_map[f"f{n}"] = getattr(keyboard.Key, f"f{n}")
        logger.info("PynputInputBackend initialized")

    def _resolve_key(self, name: str) -> Any:
        """Resolve a key name to a pynput ``Key`` or a single character."""
        normalized = name.strip().lower()
        if normalized in self._key_map:
            return self._key_map[normalized]
        if len(normalized) == 1:
            return normalized
        raise ValueError(f"unknown key name: {name!r}")

    def key_down(self, key: str) -> None:
        """Press a key down using pynput."""
        self._kbd.press(self._resolve_key(key))

    def key_up(self, key: str) -> None:
        """Release a key using pynput."""
        self._kbd.release(self._resolve_key(key))

    def type_text(self, text: str) -> None:
        """Type text using pynput."""
        self._kbd.type(text)

    def mouse_move(self, x: int, y: int) -> None:
        """Move the pointer using pynput."""
        self._mouse.position = (x, y)

    def mouse_click(self, button: str = "left", double: bool = False) -> None:
        """Click using pynput."""
        pynput_button = getattr(self._mouse_module.Button, _check_button(button))
        self._mouse.click(pynput_button, 2 if double else 1)

    def scroll(self, direction: str, amount: int) -> None:
        """Scroll using pynput (positive dy scrolls up)."""
        dx, dy = scroll_delta(direction, amount)
        self._mouse.scroll(dx, -dy)
