"""FastAPI application for watching and stopping a run."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from deskpilot import __version__
from deskpilot.observer.streaming import (
    STOP_COMMAND,
    ActionStreamingService,
    ScreenStreamingService,
)

logger = logging.getLogger(__name__)

LIVE_PAGE_HTML = r"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <title>DeskPilot Live</title>
  <style>
    body { margin: 0; font: 14px system-ui, sans-serif; background: #0d1117; color: #c9d1d9; }
    header { display: flex; align-items: center; gap: 1rem; padding: 0.5rem 1rem; background: #161b22; }
    header .status { flex: 1; color: #8b949e; }
    main { display: flex; gap: 1rem; padding: 1rem; }
    #screen { flex: 3; max-width: 75%; border: 1px solid #30363d; background: #000; }
    #log { flex: 1; margin: 0; list-style: none; padding: 0; max-height: 85vh; overflow-y: auto; font: 12px monospace; }
    #log li { padding: 2px 0; border-bottom: 1px solid #21262d; }
    #log li.fail { color: #f85149; }
    #stop { background: #da3633; color: #fff; border: 0; border-radius: 4px; padding: 0.35rem 0.9rem; cursor: pointer; }
  </style>
</head>
<body>
  <header>
    <strong>DeskPilot</strong>
    <span class="status" id="status">running</span>
    <button id="stop">Stop run</button>
  </header>
  <main>
    <img id="screen" alt="Last observed screen" />
    <ul id="log"></ul>
  </main>
  <script>
    const scheme = location.protocol === "https:" ? "wss" : "ws";
    const statusEl = document.getElementById("status");
    const logEl = document.getElementById("log");

    const frames = new WebSocket(`${scheme}://${location.host}/ws/screen`);
    frames.binaryType = "arraybuffer";
    frames.onmessage = (msg) => {
      const img = document.getElementById("screen");
      URL.revokeObjectURL(img.src);
      img.src = URL.createObjectURL(new Blob([msg.data], { type: "image/jpeg" }));
    };

    function describe(p) {
      if (p.event === "action") {
        return [`#${p.iteration} ${p.summary} [${p.success ? "OK" : "ERROR: " + p.error}]`, !p.success];
      }
      if (p.event === "finished") {
        statusEl.textContent = p.result ? `${p.state}: ${p.result}` : p.state;
        return [`run ${p.state}`, p.state === "failed"];
      }
      statusEl.textContent = `error: ${p.error}`;
      return [`${p.error_type}: ${p.error}`, true];
    }

    const events = new WebSocket(`${scheme}://${location.host}/ws/logs`);
    events.onmessage = (msg) => {
      const [text, failed] = describe(JSON.parse(msg.data).payload);
      const item = document.createElement("li");
      item.textContent = text;
      if (failed) item.className = "fail";
      logEl.prepend(item);
    };

    document.getElementById("stop").addEventListener("click", () => {
      fetch("/control/stop", { method: "POST" });
      statusEl.textContent = "stopping...";
    });
  </script>
</body>
</html>
"""


def _apply_stream_config(msg: str, service: ScreenStreamingService) -> None:
    """Apply quality/fps from JSON message to service."""
    try:
        data = json.loads(msg)
        if "quality" in data:
            service.set_stream_quality(int(data["quality"]))
        if "fps" in data:
            service.set_stream_fps(int(data["fps"]))
    except (ValueError, TypeError):
        logger.debug(f"Ignoring malformed stream config: {msg[:100]}")


def create_app(
    streaming_service: ScreenStreamingService | None = None,
    action_streaming_service: ActionStreamingService | None = None,
) -> FastAPI:
    """Create FastAPI app with screen, log and control endpoints.

    Args:
        streaming_service: Shared service for frame delivery. If None, a new
            instance is created and stored on app.state.
        action_streaming_service: Shared service for run events and control
            commands.
    """
    app = FastAPI(title="DeskPilot Observer", version=__version__)
    app.state.streaming_service = streaming_service or ScreenStreamingService()
    app.state.action_streaming_service = action_streaming_service or ActionStreamingService()

    @app.get("/live")
    async def live_page() -> HTMLResponse:
        return HTMLResponse(LIVE_PAGE_HTML)

    @app.post("/control/stop")
    async def request_stop() -> dict[str, object]:
        service: ActionStreamingService = app.state.action_streaming_service
        command_id = service.push_control_command(STOP_COMMAND)
        logger.info("Stop requested from observer")
        return {"queued": True, "id": command_id}

    @app.websocket("/ws/screen")
    async def screen_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        service: ScreenStreamingService = app.state.streaming_service
        interval = 1.0 / service.get_stream_fps()
        try:
            while True:
                frame = service.get_latest_frame()
                if frame:
                    await websocket.send_bytes(frame)
                try:
                    msg = await asyncio.wait_for(websocket.receive_text(), timeout=interval)
                except TimeoutError:
                    pass
                else:
                    _apply_stream_config(msg, service)
                    interval = 1.0 / service.get_stream_fps()
        except WebSocketDisconnect:
            logger.debug("Screen WebSocket client disconnected")
        except Exception as e:
            logger.warning(f"Screen stream error: {e}")

    @app.websocket("/ws/logs")
    async def logs_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        service: ActionStreamingService = app.state.action_streaming_service
        last_event_id = 0
        try:
            while True:
                for event in service.get_events_since(last_event_id):
                    await websocket.send_json(event)
                    last_event_id = int(event["id"])
                await asyncio.sleep(0.1)
        except WebSocketDisconnect:
            logger.debug("Logs WebSocket client disconnected")
        except Exception as e:
            logger.warning(f"Logs stream error: {e}")

    return app
