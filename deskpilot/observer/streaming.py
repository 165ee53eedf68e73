"""In-process buffers between a running agent and live observer clients.

Two directions are covered:
- Agent to browser: the last observed screen (as JPEG) and a log of run
  events rendered as JSON payloads.
- Browser to agent: control commands such as "stop", drained by the CLI.
"""

from __future__ import annotations

import io
import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any

from PIL import Image

from deskpilot.core.events import ActionExecuted, RunErrored, RunEvent, RunFinished
from deskpilot.core.history import describe_action

logger = logging.getLogger(__name__)

DEFAULT_STREAM_FPS = 2
DEFAULT_STREAM_QUALITY = 70
MAX_STREAM_FPS = 30
STOP_COMMAND = "stop"


def compress_frame_to_jpeg(
    frame: bytes | Image.Image,
    quality: int = DEFAULT_STREAM_QUALITY,
) -> bytes:
    """Re-encode a captured frame as JPEG for the screen socket.

    Args:
        frame: A PIL image, or encoded image bytes in any format Pillow reads.
        quality: JPEG quality, clamped to 1-100.
    """
    image = frame if isinstance(frame, Image.Image) else Image.open(io.BytesIO(frame))
    out = io.BytesIO()
    image.convert("RGB").save(out, format="JPEG", quality=max(1, min(100, quality)))
    return out.getvalue()


def event_payload(event: RunEvent) -> dict[str, Any]:
    """Convert a run event to a JSON-serializable payload."""
    if isinstance(event, ActionExecuted):
        return {
            "event": "action",
            "iteration": event.iteration,
            "action": event.action.to_wire(),
            "summary": describe_action(event.action),
            "success": event.outcome.success,
            "error": event.outcome.error,
        }
    if isinstance(event, RunFinished):
        return {"event": "finished", "state": event.state.value, "result": event.result}
    if isinstance(event, RunErrored):
        return {
            "event": "error",
            "error_type": type(event.error).__name__,
            "error": str(event.error),
        }
    raise TypeError(f"Unsupported event type: {type(event).__name__}")


class _SequencedLog:
    """Bounded FIFO of records stamped with an increasing id.

    Not locked; owners guard it with their own lock.
    """

    def __init__(self, capacity: int) -> None:
        self._records: deque[dict[str, Any]] = deque(maxlen=capacity)
        self._last_id = 0

    def add(self, **fields: Any) -> int:
        self._last_id += 1
        self._records.append({"id": self._last_id, "timestamp": datetime.now().isoformat(), **fields})
        return self._last_id

    def after(self, record_id: int) -> list[dict[str, Any]]:
        return [record for record in self._records if record["id"] > record_id]

    def drain(self) -> list[dict[str, Any]]:
        records = list(self._records)
        self._records.clear()
        return records


class ScreenStreamingService:
    """Latest-frame holder for the ``/ws/screen`` socket.

    Only the newest frame is kept; a slow viewer skips frames rather than
    falling behind. Quality and frame rate are adjustable by viewers.
    """

    def __init__(
        self,
        stream_fps: int = DEFAULT_STREAM_FPS,
        stream_quality: int = DEFAULT_STREAM_QUALITY,
    ) -> None:
        self._lock = threading.Lock()
        self._frame: bytes | None = None
        self._fps = stream_fps
        self._quality = stream_quality

    def push_frame(self, frame: bytes | Image.Image) -> None:
        """Replace the current frame."""
        encoded = compress_frame_to_jpeg(frame, self._quality)
        with self._lock:
            self._frame = encoded

    def get_latest_frame(self) -> bytes | None:
        with self._lock:
            return self._frame

    def set_stream_fps(self, fps: int) -> None:
        self._fps = max(1, min(MAX_STREAM_FPS, fps))

    def get_stream_fps(self) -> int:
        return self._fps

    def set_stream_quality(self, quality: int) -> None:
        """Set JPEG quality for frames pushed from now on."""
        self._quality = max(1, min(100, quality))


class ActionStreamingService:
    """Run event log for ``/ws/logs`` plus the inbound control queue.

    Also an event sink: ``emit`` records run events as payloads, so the
    service can be handed to an ``Agent`` directly. Control commands flow
    the other way, from the web page back to the process running the agent.
    """

    def __init__(self, max_events: int = 500) -> None:
        capacity = max(1, max_events)
        self._lock = threading.Lock()
        self._events = _SequencedLog(capacity)
        self._commands = _SequencedLog(capacity)

    def push_event(self, payload: dict[str, Any]) -> int:
        """Append a payload to the event log.

        Returns:
            The id assigned to the event.
        """
        with self._lock:
            return self._events.add(payload=payload)

    def emit(self, event: RunEvent) -> None:
        """Record a run event."""
        self.push_event(event_payload(event))

    def get_events_since(self, last_event_id: int) -> list[dict[str, Any]]:
        """Events newer than ``last_event_id``, oldest first."""
        with self._lock:
            return self._events.after(last_event_id)

    def push_control_command(
        self,
        command: str,
        payload: dict[str, Any] | None = None,
    ) -> int:
        """Queue a control command for the agent process."""
        with self._lock:
            command_id = self._commands.add(command=command, payload=payload or {})
        logger.debug(f"Queued control command #{command_id}: {command}")
        return command_id

    def pop_control_commands(self) -> list[dict[str, Any]]:
        """Take every queued command, oldest first."""
        with self._lock:
            return self._commands.drain()
