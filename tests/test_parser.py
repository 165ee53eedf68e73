"""Tests for extracting actions from model replies."""

from __future__ import annotations

import pytest

from deskpilot.core.parser import PREVIEW_CHARS, clean_response, parse_action_response
from deskpilot.errors import DecisionError


class TestCleanResponse:
    """Tests for clean_response."""

    def test_plain_json_unchanged(self) -> None:
        assert clean_response('{"type": "done"}') == '{"type": "done"}'

    def test_strips_json_fence(self) -> None:
        text = '```json\n{"type": "key", "key": "enter"}\n```'

        assert clean_response(text) == '{"type": "key", "key": "enter"}'

    def test_strips_bare_fence(self) -> None:
        assert clean_response('```\n{"type": "wait"}\n```') == '{"type": "wait"}'

    def test_drops_surrounding_prose(self) -> None:
        text = 'I will click the button: {"type": "click", "x": 1, "y": 2} and then wait.'

        assert clean_response(text) == '{"type": "click", "x": 1, "y": 2}'

    def test_keeps_nested_objects(self) -> None:
        text = 'ok {"type": "done", "summary": "set {a} to {b}"} bye'

        assert clean_response(text) == '{"type": "done", "summary": "set {a} to {b}"}'


class TestParseActionResponse:
    """Tests for parse_action_response."""

    def test_parses_object(self) -> None:
        result = parse_action_response('  {"type": "scroll", "direction": "down"}\n')

        assert result == {"type": "scroll", "direction": "down"}

    def test_parses_fenced_object(self) -> None:
        result = parse_action_response('```json\n{"type": "done", "summary": "ok"}\n```')

        assert result == {"type": "done", "summary": "ok"}

    def test_does_not_validate(self) -> None:
        assert parse_action_response('{"type": "teleport"}') == {"type": "teleport"}

    def test_invalid_json_raises_decision_error(self) -> None:
        with pytest.raises(DecisionError, match="failed to parse action JSON"):
            parse_action_response("I am not sure what to do next.")

    def test_error_preview_is_bounded(self) -> None:
        reply = "x" * 1000

        with pytest.raises(DecisionError) as exc_info:
            parse_action_response(reply)

        message = str(exc_info.value)
        assert "x" * PREVIEW_CHARS + "..." in message
        assert "x" * (PREVIEW_CHARS + 1) not in message

    def test_non_object_json_rejected(self) -> None:
        with pytest.raises(DecisionError, match="expected a JSON object"):
            parse_action_response("[1, 2, 3]")
