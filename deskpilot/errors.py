"""Exception hierarchy for DeskPilot.

Collaborator failures (observation, decision) and protocol violations are
raised as exceptions and terminate the current run. Effector failures are
not exceptions: the executor records them as failed ``ActionOutcome`` values
so the decision oracle can adapt.
"""

from __future__ import annotations


class DeskPilotError(Exception):
    """Base class for all DeskPilot errors."""

    pass


class ActionValidationError(DeskPilotError):
    """A decoded action is malformed or of an unknown kind.

    Attributes:
        field: Name of the offending field ("type" for unknown kinds).
        message: Human-readable description.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    def __repr__(self) -> str:
        return f"ActionValidationError(field={self.field!r}, message={self.message!r})"


class ObservationError(DeskPilotError):
    """The observation source failed to produce a snapshot."""

    pass


class DecisionError(DeskPilotError):
    """The decision oracle failed or returned an unparseable response."""

    pass


class BudgetExhaustedError(DeskPilotError):
    """The iteration budget ran out before a terminal decision."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(f"max iterations ({max_iterations}) reached")
        self.max_iterations = max_iterations


class NotIdleError(DeskPilotError):
    """A run was started on an agent that is not idle."""

    pass


class InvalidTransitionError(DeskPilotError):
    """A run state transition is not allowed by the state machine."""

    pass
