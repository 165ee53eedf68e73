"""Agent orchestrator: the perceive-decide-act loop.

Each iteration:

1. Check cancellation
2. Observe: capture a fresh snapshot of the screen
3. Decide: ask the oracle for the next action given goal + history
4. Validate the decision (exactly once, before any side effect)
5. Stop on ``done``/``failed``; otherwise execute, record, emit
6. Wait for the UI to settle, then repeat

The loop runs at most ``max_iterations`` times. An ``Agent`` is one run: it
can be started once, and its terminal state is final.

Example:
    >>> from deskpilot.core.agent import Agent, AgentConfig
    >>> from deskpilot.core.events import CallbackSink
    >>>
    >>> agent = Agent(
    ...     observer=screen_observer,
    ...     oracle=decision_engine,
    ...     executor=action_executor,
    ...     sink=CallbackSink(print),
    ...     config=AgentConfig(max_iterations=20),
    ... )
    >>> agent.run("Open Notepad and type hello")
    >>> agent.state, agent.result
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from deskpilot.core.events import (
    ActionExecuted,
    EventSink,
    NullSink,
    RunErrored,
    RunEvent,
    RunFinished,
)
from deskpilot.core.history import History, describe_action
from deskpilot.core.state import RunState
from deskpilot.errors import (
    BudgetExhaustedError,
    DecisionError,
    NotIdleError,
    ObservationError,
)
from deskpilot.models.actions import Action, ActionType, normalize_and_validate

if TYPE_CHECKING:
    from deskpilot.models.observations import Observation
    from deskpilot.models.outcomes import ActionOutcome

logger = logging.getLogger(__name__)

MAX_ITERATIONS_RESULT = "max iterations reached"


class Observer(Protocol):
    """Source of fresh observations."""

    def observe(self) -> Observation:
        """Capture a snapshot. Raises ObservationError on failure."""
        ...


class DecisionOracle(Protocol):
    """Maps (goal, observation, history) to the next raw action."""

    def decide(
        self,
        goal: str,
        observation: Observation,
        context: list[str],
    ) -> Mapping[str, Any] | Action:
        """Return the next action. Raises DecisionError on failure."""
        ...


class Executor(Protocol):
    """Applies a validated action."""

    def execute(self, action: Action) -> ActionOutcome:
        """Execute ``action``; never raises."""
        ...


@dataclass
class AgentConfig:
    """Configuration for the agent loop.

    Attributes:
        max_iterations: Iteration budget for one run.
        stabilization_ms: Pause after each executed action so the UI can
            render before the next observation.
    """

    max_iterations: int = 100
    stabilization_ms: float = 500.0


class Agent:
    """A single run of the perceive-decide-act loop.

    Mutable run fields (state, result, iteration, error) are guarded by one
    lock; the accessors may be called from any thread while the loop runs.

    Attributes:
        state: Current run state.
        result: Summary (completed) or reason (failed); empty otherwise.
        history: Append-only log of executed actions.
    """

    def __init__(
        self,
        observer: Observer,
        oracle: DecisionOracle,
        executor: Executor,
        sink: EventSink | None = None,
        config: AgentConfig | None = None,
    ) -> None:
        """Initialize the agent.

        Args:
            observer: Observation source.
            oracle: Decision oracle.
            executor: Action executor.
            sink: Event consumer. Events are discarded if None.
            config: Loop configuration. Uses defaults if None.
        """
        self._observer = observer
        self._oracle = oracle
        self._executor = executor
        self._sink: EventSink = sink or NullSink()
        self._config = config or AgentConfig()
        self._history = History()

        self._lock = threading.Lock()
        self._state = RunState.IDLE
        self._goal = ""
        self._result = ""
        self._iteration = 0
        self._error: Exception | None = None
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None

        logger.debug(
            f"Agent initialized: max_iterations={self._config.max_iterations}, "
            f"stabilization={self._config.stabilization_ms}ms"
        )

    @property
    def state(self) -> RunState:
        """Get the current run state."""
        with self._lock:
            return self._state

    @property
    def result(self) -> str:
        """Get the terminal result string."""
        with self._lock:
            return self._result

    @property
    def goal(self) -> str:
        """Get the goal of this run."""
        with self._lock:
            return self._goal

    @property
    def iteration(self) -> int:
        """Get the number of iterations started so far."""
        with self._lock:
            return self._iteration

    @property
    def error(self) -> Exception | None:
        """Get the error that aborted the run, if any."""
        with self._lock:
            return self._error

    @property
    def history(self) -> History:
        """Get the action history."""
        return self._history

    def stop(self) -> None:
        """Request cancellation.

        The loop observes the request at the top of the next iteration or
        during the stabilization pause; an in-flight effector call is
        allowed to finish.
        """
        self._cancel.set()

    def start(
        self,
        goal: str,
        cancel_event: threading.Event | None = None,
    ) -> threading.Thread:
        """Run the loop on a dedicated background thread.

        Errors are not raised to the caller; they are emitted as
        ``RunErrored`` and available from ``error``.

        Raises:
            NotIdleError: If the agent is not idle.
        """
        self._begin(goal, cancel_event)

        def _target() -> None:
            try:
                self._run_loop()
            except Exception:
                logger.debug("Agent thread exited with an error", exc_info=True)

        thread = threading.Thread(target=_target, name="AgentRun", daemon=True)
        self._thread = thread
        thread.start()
        logger.info("Agent run started in background thread")
        return thread

    def join(self, timeout: float | None = None) -> bool:
        """Wait for a background run to finish.

        Returns:
            True if the run thread has exited.
        """
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def run(self, goal: str, cancel_event: threading.Event | None = None) -> None:
        """Run the loop in the calling thread until a terminal state.

        Args:
            goal: What the oracle should accomplish.
            cancel_event: Optional shared cancellation signal. ``stop()``
                sets the same event.

        Raises:
            NotIdleError: If the agent is not idle (state is unchanged).
            ObservationError: If capturing an observation fails.
            DecisionError: If the oracle fails or its output is unparseable.
            ActionValidationError: If the decided action is malformed.
            BudgetExhaustedError: If ``max_iterations`` is reached.
        """
        self._begin(goal, cancel_event)
        self._run_loop()

    def _begin(self, goal: str, cancel_event: threading.Event | None) -> None:
        """Move idle -> running, or raise NotIdleError."""
        with self._lock:
            if self._state != RunState.IDLE:
                raise NotIdleError(f"agent is not idle (current state: {self._state.value})")
            self._state = self._state.transition(RunState.RUNNING)
            self._goal = goal
            if cancel_event is not None:
                # A stop() issued before the run started still applies.
                if self._cancel.is_set():
                    cancel_event.set()
                self._cancel = cancel_event
        logger.info(f"Run started: goal={goal!r}")

    def _run_loop(self) -> None:
        """Iterate until terminal; the finally block never leaves a run running."""
        goal = self.goal
        max_iterations = self._config.max_iterations
        try:
            for index in range(max_iterations):
                if self._cancel.is_set():
                    self._finish(RunState.STOPPED, "")
                    return

                with self._lock:
                    self._iteration = index + 1

                if self._step(goal, index + 1):
                    return

                # Interruptible pause; a set event is handled at the loop top.
                self._cancel.wait(self._config.stabilization_ms / 1000)

            if self._cancel.is_set():
                self._finish(RunState.STOPPED, "")
                return

            self._finish(RunState.FAILED, MAX_ITERATIONS_RESULT)
            raise BudgetExhaustedError(max_iterations)

        except BudgetExhaustedError as e:
            with self._lock:
                self._error = e
            logger.warning(f"Run failed: {e}")
            raise

        except Exception as e:
            with self._lock:
                self._error = e
            logger.error(f"Run aborted: {e}")
            self._emit(RunErrored(error=e))
            raise

        finally:
            with self._lock:
                if self._state == RunState.RUNNING:
                    self._state = self._state.transition(RunState.STOPPED)

    def _step(self, goal: str, iteration: int) -> bool:
        """Run one iteration. Returns True if the run reached a terminal state."""
        iteration_start = time.time()

        obs_start = time.time()
        observation = self._observe()
        obs_duration = (time.time() - obs_start) * 1000

        dec_start = time.time()
        raw = self._decide(goal, observation)
        dec_duration = (time.time() - dec_start) * 1000

        action = normalize_and_validate(raw)
        logger.debug(f"Decision: {describe_action(action)}, {dec_duration:.1f}ms")

        if action.type == ActionType.DONE:
            self._finish(RunState.COMPLETED, action.summary)
            return True
        if action.type == ActionType.FAILED:
            self._finish(RunState.FAILED, action.reason)
            return True

        act_start = time.time()
        outcome = self._executor.execute(action)
        act_duration = (time.time() - act_start) * 1000

        self._history.record(action, outcome)
        self._emit(ActionExecuted(action=action, outcome=outcome, iteration=iteration))

        iteration_duration = (time.time() - iteration_start) * 1000
        logger.info(
            f"Iteration #{iteration}: {describe_action(action)} [{outcome.status}] "
            f"total={iteration_duration:.0f}ms "
            f"(obs={obs_duration:.0f}, dec={dec_duration:.0f}, act={act_duration:.0f})"
        )
        return False

    def _observe(self) -> Observation:
        try:
            return self._observer.observe()
        except ObservationError:
            raise
        except Exception as e:
            raise ObservationError(f"failed to capture screenshot: {e}") from e

    def _decide(self, goal: str, observation: Observation) -> Mapping[str, Any] | Action:
        context = self._history.as_decision_context()
        try:
            return self._oracle.decide(goal, observation, context)
        except DecisionError:
            raise
        except Exception as e:
            raise DecisionError(f"failed to get action from oracle: {e}") from e

    def _finish(self, state: RunState, result: str) -> None:
        """Enter a terminal state and notify the sink."""
        with self._lock:
            self._state = self._state.transition(state)
            self._result = result
        logger.info(f"Run {state.value}" + (f": {result}" if result else ""))
        self._emit(RunFinished(state=state, result=result))

    def _emit(self, event: RunEvent) -> None:
        try:
            self._sink.emit(event)
        except Exception as e:
            logger.warning(f"Event sink error: {e}")
