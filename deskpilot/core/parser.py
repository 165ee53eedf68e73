"""Extract the action object from raw model output."""

from __future__ import annotations

import json
import logging
from typing import Any

from deskpilot.core.history import truncate
from deskpilot.errors import DecisionError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


def clean_response(response_text: str) -> str:
    """Strip whitespace and markdown code fences from a model reply.

    Anything before the first ``{`` and after the last ``}`` is dropped so
    that a short preamble around the object does not break parsing.
    """
    text = response_text.strip()

    # Remove markdown code blocks if present
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]

    if text.endswith("```"):
        text = text[:-3]

    text = text.strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        text = text[start : end + 1]
    return text


def parse_action_response(response_text: str) -> dict[str, Any]:
    """Parse a model reply into a raw action mapping.

    The mapping is not validated here; the agent validates it once before
    acting on it.

    Args:
        response_text: Raw text returned by the model.

    Returns:
        The decoded JSON object.

    Raises:
        DecisionError: If the reply is not a JSON object.
    """
    text = clean_response(response_text)
    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(f"Unparseable response: {response_text[:500]}")
        raise DecisionError(
            f"failed to parse action JSON: {e} "
            f"(response: {truncate(response_text, PREVIEW_CHARS)})"
        ) from e

    if not isinstance(result, dict):
        raise DecisionError(
            f"expected a JSON object, got {type(result).__name__} "
            f"(response: {truncate(response_text, PREVIEW_CHARS)})"
        )
    return result
