"""Append-only action history.

The history is the only record of what happened during a run. It is fed back
to the decision oracle on every step (``as_decision_context``) and read by
presentation layers (``all``) while the run thread keeps appending.
"""

from __future__ import annotations

import threading
from datetime import datetime

from pydantic import BaseModel, Field

from deskpilot.models.actions import Action, ActionType
from deskpilot.models.outcomes import ActionOutcome

TEXT_PREVIEW_CHARS = 50
PATH_PREVIEW_CHARS = 120
READ_PREVIEW_CHARS = 200


class HistoryEntry(BaseModel):
    """One executed action and its outcome."""

    action: Action = Field(..., description="The action that was attempted")
    outcome: ActionOutcome = Field(..., description="What the executor reported")
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the action finished",
    )

    model_config = {"frozen": True}


def truncate(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` characters, marking the cut with '...'."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def describe_action(action: Action, text_chars: int = TEXT_PREVIEW_CHARS) -> str:
    """Render an action as ``kind: parameters`` with bounded previews.

    File content is never included; typed text and paths are truncated.
    """
    kind = action.type
    if kind == ActionType.CLICK:
        dbl = " double" if action.double else ""
        detail = f"{action.button or 'left'}{dbl} at ({action.x}, {action.y})"
    elif kind == ActionType.TYPE:
        detail = f'"{truncate(action.text, text_chars)}"'
    elif kind == ActionType.KEY:
        detail = action.key
    elif kind == ActionType.SCROLL:
        detail = f"{action.direction} {action.amount}"
    elif kind in (ActionType.FILE_READ, ActionType.FILE_WRITE):
        detail = truncate(action.path, PATH_PREVIEW_CHARS)
    elif kind == ActionType.WAIT:
        detail = f"{action.ms}ms"
    elif kind == ActionType.DONE:
        detail = truncate(action.summary, text_chars)
    else:
        detail = truncate(action.reason, text_chars)
    return f"{kind.value}: {detail}"


class History:
    """Ordered, append-only log of executed actions.

    Appends and snapshots share a lock, so readers on another thread always
    see a consistent prefix of the log.
    """

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: HistoryEntry) -> None:
        """Append an entry."""
        with self._lock:
            self._entries.append(entry)

    def record(self, action: Action, outcome: ActionOutcome) -> HistoryEntry:
        """Create, append and return an entry for ``action``."""
        entry = HistoryEntry(action=action, outcome=outcome)
        self.append(entry)
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def last(self) -> HistoryEntry | None:
        """Return the most recent entry, or None if empty."""
        with self._lock:
            return self._entries[-1] if self._entries else None

    def all(self) -> tuple[HistoryEntry, ...]:
        """Return a snapshot of all entries in execution order."""
        with self._lock:
            return tuple(self._entries)

    def as_decision_context(self) -> list[str]:
        """Render the history for the decision oracle.

        Returns:
            One numbered line per entry, e.g. ``2. key: ctrl+s [OK]``. Successful
            file reads append a preview of the content read.
        """
        lines = []
        for i, entry in enumerate(self.all(), start=1):
            line = f"{i}. {describe_action(entry.action)} [{entry.outcome.status}]"
            if entry.action.type == ActionType.FILE_READ and entry.outcome.data:
                # Keep one line per entry.
                preview = entry.outcome.data.replace("\n", "\\n")
                line += f" -> \"{truncate(preview, READ_PREVIEW_CHARS)}\""
            lines.append(line)
        return lines
