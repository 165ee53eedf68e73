"""Tests for input backends."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from deskpilot.actions.backend import (
    NullInputBackend,
    PlaywrightInputBackend,
    scroll_delta,
)


class TestScrollDelta:
    """Tests for scroll_delta."""

    @pytest.mark.parametrize(
        ("direction", "expected"),
        [("up", (0, -3)), ("down", (0, 3)), ("left", (-3, 0)), ("right", (3, 0))],
    )
    def test_directions(self, direction: str, expected: tuple[int, int]) -> None:
        assert scroll_delta(direction, 3) == expected

    def test_direction_is_case_insensitive(self) -> None:
        assert scroll_delta(" Down ", 2) == (0, 2)

    def test_invalid_direction(self) -> None:
        with pytest.raises(ValueError, match="invalid scroll direction"):
            scroll_delta("diagonal", 1)


class TestNullInputBackend:
    """Tests for NullInputBackend."""

    def test_operations_are_no_ops(self) -> None:
        backend = NullInputBackend()

        backend.key_down("ctrl")
        backend.key_up("ctrl")
        backend.type_text("hello")
        backend.mouse_move(10, 10)
        backend.mouse_click("middle", double=True)
        backend.scroll("up", 3)
        backend.close()

    def test_invalid_button_rejected(self) -> None:
        with pytest.raises(ValueError, match="invalid mouse button"):
            NullInputBackend().mouse_click("thumb")


class TestPlaywrightInputBackend:
    """Tests for PlaywrightInputBackend with a mocked page."""

    @pytest.fixture
    def page(self) -> MagicMock:
        return MagicMock()

    def test_key_names_are_mapped(self, page: MagicMock) -> None:
        backend = PlaywrightInputBackend(page)

        backend.key_down("ctrl")
        backend.key_up("enter")
        backend.key_down("f5")

        page.keyboard.down.assert_any_call("Control")
        page.keyboard.up.assert_called_once_with("Enter")
        page.keyboard.down.assert_any_call("F5")

    def test_unmapped_keys_pass_through(self, page: MagicMock) -> None:
        PlaywrightInputBackend(page).key_down("a")

        page.keyboard.down.assert_called_once_with("a")

    def test_click_uses_last_position(self, page: MagicMock) -> None:
        backend = PlaywrightInputBackend(page)

        backend.mouse_move(30, 40)
        backend.mouse_click("left", double=True)

        page.mouse.move.assert_called_once_with(30, 40)
        page.mouse.click.assert_called_once_with(30, 40, button="left", click_count=2)

    def test_type_text(self, page: MagicMock) -> None:
        PlaywrightInputBackend(page).type_text("héllo")

        page.keyboard.type.assert_called_once_with("héllo")

    def test_scroll_uses_pixel_deltas(self, page: MagicMock) -> None:
        PlaywrightInputBackend(page).scroll("down", 3)

        page.mouse.wheel.assert_called_once_with(0, 300)
