"""Decision engine: the LLM-backed decision oracle.

This module provides the DecisionEngine class that:
- Builds the system and user prompts for one step
- Sends them to Anthropic (default) or OpenAI together with the screenshot
- Extracts the text reply and parses it into a raw action mapping
- Makes exactly one API call per decision; failures end the run

The returned mapping is not validated; the agent validates every decision
exactly once before acting on it.

Example:
    >>> from deskpilot.core.decision import DecisionConfig, DecisionEngine
    >>>
    >>> engine = DecisionEngine(DecisionConfig(provider="anthropic"))
    >>> raw = engine.decide("Open Notepad", observation, context=[])
    >>> print(raw["type"])
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from deskpilot.core.parser import parse_action_response
from deskpilot.core.prompts import SYSTEM_PROMPT, build_user_prompt
from deskpilot.errors import DecisionError

if TYPE_CHECKING:
    from deskpilot.models.observations import Observation

logger = logging.getLogger(__name__)

# Valid LLM providers
VALID_PROVIDERS = {"anthropic", "openai"}

# Default models per provider
DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
}


@dataclass
class DecisionConfig:
    """Configuration for the decision engine.

    Attributes:
        provider: LLM provider ("anthropic" or "openai").
        model: Model name (defaults based on provider).
        max_tokens: Maximum tokens in response.
        temperature: LLM temperature (0.0-1.0).
    """

    provider: str = "anthropic"
    model: str | None = None
    max_tokens: int = 1024
    temperature: float = 0.0


class DecisionEngine:
    """Decision oracle that asks a vision LLM for the next action.

    Attributes:
        model: The model name in use.
        provider: The LLM provider in use.
    """

    def __init__(
        self,
        config: DecisionConfig | None = None,
        api_key: str | None = None,
    ) -> None:
        """Initialize the decision engine.

        Args:
            config: Engine configuration. Uses defaults if None.
            api_key: API key for the provider. Falls back to environment.

        Raises:
            ValueError: If provider is not supported.
        """
        self._config = config or DecisionConfig()
        self._api_key = api_key

        if self._config.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider: {self._config.provider}. "
                f"Must be one of {VALID_PROVIDERS}"
            )

        if self._config.model is None:
            self._config.model = DEFAULT_MODELS[self._config.provider]

        self._client: Any = None

        logger.debug(
            f"DecisionEngine initialized: provider={self._config.provider}, "
            f"model={self._config.model}"
        )

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._config.model or DEFAULT_MODELS[self._config.provider]

    @property
    def provider(self) -> str:
        """Get the provider name."""
        return self._config.provider

    def decide(
        self,
        goal: str,
        observation: Observation,
        context: list[str],
    ) -> dict[str, Any]:
        """Ask the model for the next action.

        Args:
            goal: The run's goal.
            observation: The current screenshot.
            context: Rendered history lines, oldest first.

        Returns:
            The raw (unvalidated) action mapping.

        Raises:
            DecisionError: If the API call fails or the reply is unparseable.
        """
        prompt = build_user_prompt(goal, context)

        start_time = time.time()
        response_text = self._call_llm(prompt, observation)
        duration_ms = (time.time() - start_time) * 1000
        logger.debug(f"LLM replied in {duration_ms:.0f}ms ({len(response_text)} chars)")

        return parse_action_response(response_text)

    def _call_llm(self, prompt: str, observation: Observation) -> str:
        """Send one request to the configured provider.

        Raises:
            DecisionError: If the call fails or the reply has no text.
        """
        provider = self._config.provider
        try:
            if provider == "anthropic":
                return self._call_anthropic(prompt, observation)
            return self._call_openai(prompt, observation)
        except DecisionError:
            raise
        except Exception as e:
            logger.warning(f"{provider} API call failed: {e}")
            raise DecisionError(f"failed to call {provider} API: {e}") from e

    def _call_anthropic(self, prompt: str, observation: Observation) -> str:
        """Call the Anthropic Messages API.

        Returns:
            The first text block of the reply.
        """
        try:
            import anthropic
        except ImportError as e:
            raise DecisionError(
                "anthropic package not installed. Run: pip install anthropic"
            ) from e

        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self._api_key)

        message = self._client.messages.create(
            model=self.model,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            system=SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": observation.media_type,
                                "data": observation.image_base64,
                            },
                        },
                    ],
                }
            ],
        )

        if not message.content:
            raise DecisionError("empty response from LLM")

        for block in message.content:
            if getattr(block, "type", None) == "text" and block.text:
                return str(block.text)

        raise DecisionError("no text response from LLM")

    def _call_openai(self, prompt: str, observation: Observation) -> str:
        """Call the OpenAI chat completions API.

        Returns:
            The message content of the first choice.
        """
        try:
            import openai
        except ImportError as e:
            raise DecisionError(
                "openai package not installed. Run: pip install openai"
            ) from e

        if self._client is None:
            self._client = openai.OpenAI(api_key=self._api_key)

        data_uri = f"data:{observation.media_type};base64,{observation.image_base64}"
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_uri}},
                    ],
                },
            ],
        )

        response_text = response.choices[0].message.content
        if not response_text:
            raise DecisionError("no text response from LLM")
        return str(response_text)
