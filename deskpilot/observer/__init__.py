"""Observer package: live screen, action log and stop control over HTTP."""

from deskpilot.observer.server import create_app
from deskpilot.observer.streaming import (
    ActionStreamingService,
    ScreenStreamingService,
    compress_frame_to_jpeg,
    event_payload,
)

__all__ = [
    "ActionStreamingService",
    "ScreenStreamingService",
    "compress_frame_to_jpeg",
    "create_app",
    "event_payload",
]
