"""Event channel between a run and its single consumer.

A run emits three kinds of events: an action was executed, the run finished
in a terminal state, or the run errored. Sinks decide how events reach the
consumer; none of them may block the loop.

- ``CallbackSink``: direct, in-line call (blocking CLI callers).
- ``FanoutSink``: several sinks at once (console plus live observer).
- ``QueueSink``: bounded ``queue.Queue`` for a polling thread.
- ``AsyncQueueSink``: bounded ``asyncio.Queue`` on a running event loop.

The queue sinks drop events when the consumer is not keeping up.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from deskpilot.core.state import RunState
from deskpilot.models.actions import Action
from deskpilot.models.outcomes import ActionOutcome

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


@dataclass(frozen=True)
class ActionExecuted:
    """A non-terminal action was executed and recorded."""

    action: Action
    outcome: ActionOutcome
    iteration: int


@dataclass(frozen=True)
class RunFinished:
    """The run reached a terminal state."""

    state: RunState
    result: str


@dataclass(frozen=True)
class RunErrored:
    """The run aborted with an error."""

    error: Exception


RunEvent = ActionExecuted | RunFinished | RunErrored


class EventSink(Protocol):
    """Anything that accepts run events without blocking."""

    def emit(self, event: RunEvent) -> None:
        """Deliver or drop ``event``; must not block."""
        ...


class NullSink:
    """Sink that discards every event."""

    def emit(self, event: RunEvent) -> None:
        pass


class CallbackSink:
    """Deliver events synchronously to a callback.

    A raising callback is logged and otherwise ignored so that presentation
    errors never abort a run.
    """

    def __init__(self, callback: Callable[[RunEvent], None]) -> None:
        self._callback = callback

    def emit(self, event: RunEvent) -> None:
        try:
            self._callback(event)
        except Exception as e:
            logger.warning(f"Event callback error: {e}")


class FanoutSink:
    """Deliver each event to several sinks in order.

    A failing sink is logged and skipped; the remaining sinks still see the
    event.
    """

    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = list(sinks)

    def emit(self, event: RunEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception as e:
                logger.warning(f"Event sink {type(sink).__name__} error: {e}")


class QueueSink:
    """Bounded thread-safe queue of events.

    Attributes:
        queue: The underlying queue; consumers call ``get()`` on it.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.queue: queue.Queue[RunEvent] = queue.Queue(maxsize=max(1, maxsize))
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def dropped(self) -> int:
        """Number of events discarded because the queue was full."""
        with self._lock:
            return self._dropped

    def emit(self, event: RunEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            logger.debug(f"Event queue full, dropped {type(event).__name__}")

    def get(self, timeout: float | None = None) -> RunEvent:
        """Block until an event is available.

        Raises:
            queue.Empty: If ``timeout`` elapses first.
        """
        return self.queue.get(timeout=timeout)

    def drain(self) -> list[RunEvent]:
        """Return every queued event without blocking."""
        events: list[RunEvent] = []
        while True:
            try:
                events.append(self.queue.get_nowait())
            except queue.Empty:
                return events


class AsyncQueueSink:
    """Hand events to an ``asyncio.Queue`` owned by a running event loop.

    ``emit`` may be called from any thread. Events are dropped when the
    queue is full or the loop has been closed.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._loop = loop
        self.queue: asyncio.Queue[RunEvent] = asyncio.Queue(maxsize=max(1, maxsize))
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def dropped(self) -> int:
        """Number of events discarded."""
        with self._lock:
            return self._dropped

    def _count_drop(self) -> None:
        with self._lock:
            self._dropped += 1

    def _put(self, event: RunEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self._count_drop()
            logger.debug(f"Async event queue full, dropped {type(event).__name__}")

    def emit(self, event: RunEvent) -> None:
        if self._loop.is_closed():
            self._count_drop()
            return
        try:
            self._loop.call_soon_threadsafe(self._put, event)
        except RuntimeError:
            # Loop closed between the check and the call.
            self._count_drop()

    async def get(self) -> RunEvent:
        """Wait for the next event."""
        return await self.queue.get()
