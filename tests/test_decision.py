"""Tests for the LLM-backed decision engine (API clients are mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from deskpilot.core.decision import DEFAULT_MODELS, DecisionConfig, DecisionEngine
from deskpilot.core.prompts import SYSTEM_PROMPT
from deskpilot.errors import DecisionError
from deskpilot.models.observations import Observation


@pytest.fixture
def observation() -> Observation:
    return Observation(image_base64="aW1hZ2U=", media_type="image/jpeg", width=800, height=600)


def _anthropic_reply(text: str) -> SimpleNamespace:
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def _openai_reply(text: str | None) -> SimpleNamespace:
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestDecisionEngineInitialization:
    """Tests for engine construction."""

    def test_default_provider_and_model(self) -> None:
        engine = DecisionEngine()

        assert engine.provider == "anthropic"
        assert engine.model == DEFAULT_MODELS["anthropic"]

    def test_explicit_model(self) -> None:
        engine = DecisionEngine(DecisionConfig(provider="openai", model="gpt-4o-mini"))

        assert engine.model == "gpt-4o-mini"

    def test_invalid_provider(self) -> None:
        with pytest.raises(ValueError, match="Invalid provider"):
            DecisionEngine(DecisionConfig(provider="llamas"))


class TestAnthropicDecisions:
    """Decisions through the Anthropic Messages API."""

    def test_decide_returns_raw_action(self, observation: Observation) -> None:
        engine = DecisionEngine(api_key="test-key")
        client = MagicMock()
        client.messages.create.return_value = _anthropic_reply('{"type": "click", "x": 5, "y": 6}')
        engine._client = client

        raw = engine.decide("click it", observation, ["1. wait: 500ms [OK]"])

        assert raw == {"type": "click", "x": 5, "y": 6}
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == SYSTEM_PROMPT
        assert kwargs["max_tokens"] == 1024
        content = kwargs["messages"][0]["content"]
        assert content[0]["type"] == "text"
        assert "## Goal\nclick it" in content[0]["text"]
        assert "1. wait: 500ms [OK]" in content[0]["text"]
        assert content[1]["source"] == {
            "type": "base64",
            "media_type": "image/jpeg",
            "data": "aW1hZ2U=",
        }

    def test_skips_non_text_blocks(self, observation: Observation) -> None:
        engine = DecisionEngine()
        engine._client = MagicMock()
        engine._client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="thinking", text=""),
                SimpleNamespace(type="text", text='{"type": "done"}'),
            ]
        )

        assert engine.decide("g", observation, []) == {"type": "done"}

    def test_unparseable_reply_raises(self, observation: Observation) -> None:
        engine = DecisionEngine()
        engine._client = MagicMock()
        engine._client.messages.create.return_value = _anthropic_reply("Let me think...")

        with pytest.raises(DecisionError, match="failed to parse"):
            engine.decide("g", observation, [])


class TestOpenAIDecisions:
    """Decisions through the OpenAI chat completions API."""

    def test_decide_sends_data_uri(self, observation: Observation) -> None:
        engine = DecisionEngine(DecisionConfig(provider="openai"))
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_reply('{"type": "wait", "ms": 100}')
        engine._client = client

        raw = engine.decide("wait a bit", observation, [])

        assert raw == {"type": "wait", "ms": 100}
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        image_part = messages[1]["content"][1]
        assert image_part["image_url"]["url"] == "data:image/jpeg;base64,aW1hZ2U="


class TestApiFailures:
    """API failures surface as DecisionError after a single call."""

    def test_api_error_not_retried(self, observation: Observation) -> None:
        engine = DecisionEngine()
        engine._client = MagicMock()
        engine._client.messages.create.side_effect = [
            RuntimeError("overloaded"),
            _anthropic_reply('{"type": "done"}'),
        ]

        with pytest.raises(DecisionError, match="failed to call anthropic API: overloaded"):
            engine.decide("g", observation, [])

        assert engine._client.messages.create.call_count == 1

    def test_empty_reply_not_retried(self, observation: Observation) -> None:
        engine = DecisionEngine()
        engine._client = MagicMock()
        engine._client.messages.create.side_effect = [
            SimpleNamespace(content=[]),
            _anthropic_reply('{"type": "done", "summary": "ok"}'),
        ]

        with pytest.raises(DecisionError, match="empty response from LLM"):
            engine.decide("g", observation, [])

        assert engine._client.messages.create.call_count == 1

    def test_openai_error_wrapped(self, observation: Observation) -> None:
        engine = DecisionEngine(DecisionConfig(provider="openai"))
        engine._client = MagicMock()
        engine._client.chat.completions.create.side_effect = ConnectionError("reset")

        with pytest.raises(DecisionError, match="failed to call openai API: reset"):
            engine.decide("g", observation, [])

    def test_empty_openai_reply_is_an_error(self, observation: Observation) -> None:
        engine = DecisionEngine(DecisionConfig(provider="openai"))
        engine._client = MagicMock()
        engine._client.chat.completions.create.return_value = _openai_reply(None)

        with pytest.raises(DecisionError, match="no text response"):
            engine.decide("g", observation, [])
