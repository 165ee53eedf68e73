"""Tests for the run state machine."""

from __future__ import annotations

import pytest

from deskpilot.core.state import RunState
from deskpilot.errors import InvalidTransitionError

TERMINAL = [RunState.COMPLETED, RunState.FAILED, RunState.STOPPED]


class TestRunState:
    """Transition rules."""

    def test_idle_can_only_start(self) -> None:
        assert RunState.IDLE.can_transition(RunState.RUNNING)
        for target in TERMINAL:
            assert not RunState.IDLE.can_transition(target)

    @pytest.mark.parametrize("target", TERMINAL)
    def test_running_can_reach_each_terminal_state(self, target: RunState) -> None:
        assert RunState.RUNNING.transition(target) == target

    def test_running_cannot_restart(self) -> None:
        with pytest.raises(InvalidTransitionError):
            RunState.RUNNING.transition(RunState.RUNNING)

    @pytest.mark.parametrize("state", TERMINAL)
    def test_terminal_states_are_final(self, state: RunState) -> None:
        assert state.is_terminal
        for target in RunState:
            assert not state.can_transition(target)

    def test_invalid_transition_message(self) -> None:
        with pytest.raises(InvalidTransitionError, match="cannot transition from completed to running"):
            RunState.COMPLETED.transition(RunState.RUNNING)

    def test_non_terminal_states(self) -> None:
        assert not RunState.IDLE.is_terminal
        assert not RunState.RUNNING.is_terminal
