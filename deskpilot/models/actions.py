"""Action models for the agent-oracle protocol.

An ``Action`` is a tagged record: ``type`` selects the kind and only the
fields meaningful to that kind are set. Decoded oracle output must pass
through :func:`normalize_and_validate` before it is handed to the executor.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from deskpilot.errors import ActionValidationError

DEFAULT_BUTTON = "left"
DEFAULT_SCROLL_AMOUNT = 3
DEFAULT_WAIT_MS = 500


class ActionType(StrEnum):
    """Kinds of actions the oracle may request."""

    CLICK = "click"
    TYPE = "type"
    KEY = "key"
    SCROLL = "scroll"
    FILE_READ = "file_read"
    FILE_WRITE = "file_write"
    WAIT = "wait"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether this kind ends the run instead of being executed."""
        return self in (ActionType.DONE, ActionType.FAILED)


class Action(BaseModel):
    """An action requested by the decision oracle.

    Actions are immutable. Fields that do not apply to ``type`` keep their
    zero value and are omitted from the wire form.
    """

    type: ActionType = Field(..., description="The kind of action")
    x: int = Field(default=0, description="Click X coordinate")
    y: int = Field(default=0, description="Click Y coordinate")
    button: str = Field(default="", description="Mouse button for click")
    double: bool = Field(default=False, description="Double-click flag")
    text: str = Field(default="", description="Text to type")
    key: str = Field(default="", description="Key name or '+'-joined combo")
    direction: str = Field(default="", description="Scroll direction")
    amount: int = Field(default=0, description="Scroll units")
    path: str = Field(default="", description="File path for file actions")
    content: str = Field(default="", description="Content for file_write")
    ms: int = Field(default=0, description="Wait duration in milliseconds")
    summary: str = Field(default="", description="Outcome summary for done")
    reason: str = Field(default="", description="Failure reason for failed")

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def is_terminal(self) -> bool:
        """Whether this is a done/failed sentinel."""
        return self.type.is_terminal

    def to_wire(self) -> dict[str, Any]:
        """Encode as the JSON object exchanged with the oracle."""
        return self.model_dump(mode="json", exclude_defaults=True)

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> Action:
        """Decode, normalize and validate a wire object."""
        return normalize_and_validate(data)

    @classmethod
    def click(
        cls,
        x: int,
        y: int,
        button: str = DEFAULT_BUTTON,
        double: bool = False,
    ) -> Action:
        """Create a click action."""
        return normalize_and_validate(
            {"type": ActionType.CLICK, "x": x, "y": y, "button": button, "double": double}
        )

    @classmethod
    def type_text(cls, text: str) -> Action:
        """Create a type action."""
        return normalize_and_validate({"type": ActionType.TYPE, "text": text})

    @classmethod
    def press(cls, key: str) -> Action:
        """Create a key action (single key or combo such as ``ctrl+s``)."""
        return normalize_and_validate({"type": ActionType.KEY, "key": key})

    @classmethod
    def scroll(cls, direction: str, amount: int = DEFAULT_SCROLL_AMOUNT) -> Action:
        """Create a scroll action."""
        return normalize_and_validate(
            {"type": ActionType.SCROLL, "direction": direction, "amount": amount}
        )

    @classmethod
    def file_read(cls, path: str) -> Action:
        """Create a file_read action."""
        return normalize_and_validate({"type": ActionType.FILE_READ, "path": path})

    @classmethod
    def file_write(cls, path: str, content: str) -> Action:
        """Create a file_write action."""
        return normalize_and_validate(
            {"type": ActionType.FILE_WRITE, "path": path, "content": content}
        )

    @classmethod
    def wait(cls, ms: int = DEFAULT_WAIT_MS) -> Action:
        """Create a wait action."""
        return normalize_and_validate({"type": ActionType.WAIT, "ms": ms})

    @classmethod
    def done(cls, summary: str = "") -> Action:
        """Create a done sentinel."""
        return normalize_and_validate({"type": ActionType.DONE, "summary": summary})

    @classmethod
    def failed(cls, reason: str) -> Action:
        """Create a failed sentinel."""
        return normalize_and_validate({"type": ActionType.FAILED, "reason": reason})


# Fields that must be non-empty, per kind.
_REQUIRED_FIELDS: dict[ActionType, tuple[str, ...]] = {
    ActionType.CLICK: (),
    ActionType.TYPE: ("text",),
    ActionType.KEY: ("key",),
    ActionType.SCROLL: ("direction",),
    ActionType.FILE_READ: ("path",),
    ActionType.FILE_WRITE: ("path",),
    ActionType.WAIT: (),
    ActionType.DONE: (),
    ActionType.FAILED: ("reason",),
}


def _decode(raw: Mapping[str, Any] | Action) -> Action:
    """Decode a raw mapping into an Action, rejecting unknown kinds."""
    if isinstance(raw, Action):
        return raw

    if not isinstance(raw, Mapping):
        raise ActionValidationError("type", f"action must be an object, got {type(raw).__name__}")

    tag = raw.get("type")
    try:
        kind = ActionType(str(tag)) if tag is not None else None
    except ValueError:
        kind = None
    if kind is None:
        raise ActionValidationError("type", f"unknown action type: {tag}")

    # Oracles sometimes emit explicit nulls for unused fields.
    data = {k: v for k, v in raw.items() if v is not None}
    data["type"] = kind

    try:
        return Action.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else "type"
        raise ActionValidationError(field, f"invalid {field}: {first['msg']}") from e


def normalize_and_validate(raw: Mapping[str, Any] | Action) -> Action:
    """Apply per-kind defaults, then check required fields.

    Defaults: click ``button`` -> "left"; scroll ``amount`` -> 3;
    wait ``ms`` -> 500.

    Args:
        raw: Decoded oracle output or an existing Action.

    Returns:
        A well-formed Action.

    Raises:
        ActionValidationError: If the kind is unknown, a field has the
            wrong type, or a required field is empty.
    """
    action = _decode(raw)

    updates: dict[str, Any] = {}
    if action.type == ActionType.CLICK and not action.button:
        updates["button"] = DEFAULT_BUTTON
    elif action.type == ActionType.SCROLL and action.amount == 0:
        updates["amount"] = DEFAULT_SCROLL_AMOUNT
    elif action.type == ActionType.WAIT and action.ms == 0:
        updates["ms"] = DEFAULT_WAIT_MS

    if updates:
        action = action.model_copy(update=updates)

    for field in _REQUIRED_FIELDS[action.type]:
        if not getattr(action, field):
            raise ActionValidationError(
                field, f"{field} is required for {action.type.value} action"
            )

    return action
