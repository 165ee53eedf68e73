"""Run state machine.

A run starts ``idle``, moves to ``running`` once, and ends in exactly one of
the terminal states. Nothing leaves a terminal state.
"""

from __future__ import annotations

from enum import StrEnum

from deskpilot.errors import InvalidTransitionError


class RunState(StrEnum):
    """Possible states of a run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self in _TERMINAL_STATES

    def can_transition(self, target: RunState) -> bool:
        """Check whether ``self -> target`` is a legal transition."""
        return target in _TRANSITIONS[self]

    def transition(self, target: RunState) -> RunState:
        """Return ``target`` if the transition is legal.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(
                f"cannot transition from {self.value} to {target.value}"
            )
        return target


_TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.FAILED, RunState.STOPPED})

_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING}),
    RunState.RUNNING: _TERMINAL_STATES,
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.STOPPED: frozenset(),
}
