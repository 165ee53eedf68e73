"""Core agent logic package.

This package provides:
- Agent: The perceive-decide-act orchestrator for one run
- AgentConfig: Configuration for the agent loop
- RunState: Run state machine
- History / HistoryEntry: Append-only action log
- ActionExecuted / RunFinished / RunErrored: Run events
- CallbackSink / QueueSink / AsyncQueueSink / NullSink: Event delivery
- DecisionEngine: LLM-backed decision oracle
- DecisionConfig: Configuration for the decision engine
"""

from deskpilot.core.agent import (
    MAX_ITERATIONS_RESULT,
    Agent,
    AgentConfig,
    DecisionOracle,
    Executor,
    Observer,
)
from deskpilot.core.decision import DecisionConfig, DecisionEngine
from deskpilot.core.events import (
    ActionExecuted,
    AsyncQueueSink,
    CallbackSink,
    EventSink,
    FanoutSink,
    NullSink,
    QueueSink,
    RunErrored,
    RunEvent,
    RunFinished,
)
from deskpilot.core.history import History, HistoryEntry, describe_action
from deskpilot.core.parser import parse_action_response
from deskpilot.core.prompts import SYSTEM_PROMPT, build_user_prompt
from deskpilot.core.state import RunState

__all__ = [
    "MAX_ITERATIONS_RESULT",
    "SYSTEM_PROMPT",
    "ActionExecuted",
    "Agent",
    "AgentConfig",
    "AsyncQueueSink",
    "CallbackSink",
    "DecisionConfig",
    "DecisionEngine",
    "DecisionOracle",
    "EventSink",
    "Executor",
    "FanoutSink",
    "History",
    "HistoryEntry",
    "NullSink",
    "Observer",
    "QueueSink",
    "RunErrored",
    "RunEvent",
    "RunFinished",
    "RunState",
    "build_user_prompt",
    "describe_action",
    "parse_action_response",
]
