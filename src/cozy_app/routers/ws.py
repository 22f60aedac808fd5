"""WebSocket presentation sink — streams engine events to the browser."""

import asyncio
import json
import queue
import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from cozy_engine.comms.event_bus import EventBus

router = APIRouter(prefix="/ws", tags=["websocket"])

# Seconds the bridge waits on its queue before checking for shutdown
_POLL_TIMEOUT = 0.5


class ConnectionManager:
    """Tracks open game-stream connections and their topic filters."""

    def __init__(self):
        # websocket -> topics it wants, None for every topic
        self.active_connections: Dict[WebSocket, Optional[Set[str]]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, topics: Optional[Set[str]] = None, greeting: Optional[dict] = None):
        """Accept a connection, send *greeting* first, then start streaming to it."""
        await websocket.accept()
        async with self._lock:
            # Broadcasts wait on the lock, so the greeting is always first
            self.active_connections[websocket] = topics
            if greeting is not None:
                await websocket.send_text(json.dumps(greeting))
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self.active_connections.pop(websocket, None)
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def broadcast(self, message: dict):
        """Send *message* to every client whose filter accepts its type."""
        if not self.active_connections:
            return

        message_str = json.dumps(message)
        msg_type = message.get("type")
        disconnected = set()

        async with self._lock:
            for connection, topics in self.active_connections.items():
                if topics is not None and msg_type not in topics:
                    continue
                try:
                    await connection.send_text(message_str)
                except Exception as e:
                    logger.warning(f"Failed to send to websocket: {e}")
                    disconnected.add(connection)

            for connection in disconnected:
                self.active_connections.pop(connection, None)

    async def send_to(self, websocket: WebSocket, message: dict):
        await websocket.send_text(json.dumps(message))


manager = ConnectionManager()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventBridge:
    """Daemon thread that forwards EventBus messages onto the asyncio loop.

    One bridge serves every client: it holds a single bus subscription and
    hands each message to ``manager.broadcast``, which applies the per-client
    topic filters.
    """

    def __init__(self, event_bus: EventBus, loop: asyncio.AbstractEventLoop):
        self._event_bus = event_bus
        self._loop = loop
        self._sub: queue.Queue | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._sub = self._event_bus.subscribe()
        self._thread = threading.Thread(target=self._bridge_loop, daemon=True, name="game-ws-bridge")
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._sub is not None:
            self._event_bus.unsubscribe(self._sub)
            self._sub = None

    def _bridge_loop(self) -> None:
        sub = self._sub
        while not self._stop.is_set():
            try:
                msg = sub.get(timeout=_POLL_TIMEOUT)
            except queue.Empty:
                continue
            try:
                asyncio.run_coroutine_threadsafe(
                    manager.broadcast({**msg, "timestamp": _timestamp()}),
                    self._loop,
                )
            except RuntimeError as e:
                logger.warning(f"Event bridge stopped, loop unavailable: {e}")
                return


def start_event_bridge(event_bus: EventBus, loop: asyncio.AbstractEventLoop) -> EventBridge:
    """Start forwarding *event_bus* to every WebSocket client on *loop*."""
    bridge = EventBridge(event_bus, loop)
    bridge.start()
    return bridge


async def handle_client_message(websocket: WebSocket, message: dict):
    """Handle messages from WebSocket clients."""
    msg_type = message.get("type")

    if msg_type == "ping":
        await manager.send_to(websocket, {"type": "pong", "timestamp": _timestamp()})
    else:
        await manager.send_to(
            websocket,
            {"type": "error", "message": f"Unknown message type: {msg_type}"},
        )


@router.websocket("/game")
async def websocket_game(websocket: WebSocket):
    """Stream EventBus messages as JSON.

    The first message is ``connected`` carrying a full snapshot so a
    late-joining client can draw the board.  ``?topics=a,b`` restricts the
    stream to those event types.  Player intents go through the HTTP
    routes; the socket only answers ``ping``.
    """
    engine = getattr(websocket.app.state, "game_engine", None)
    if engine is None:
        await websocket.accept()
        await manager.send_to(websocket, {"type": "error", "message": "Game engine not available"})
        await websocket.close()
        return

    raw_topics = websocket.query_params.get("topics", "")
    topics = {t.strip() for t in raw_topics.split(",") if t.strip()} or None
    await manager.connect(websocket, topics, greeting={
        "type": "connected",
        "timestamp": _timestamp(),
        "data": engine.snapshot(),
    })
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                message = None
            if not isinstance(message, dict):
                await manager.send_to(websocket, {"type": "error", "message": "Invalid JSON"})
                continue
            await handle_client_message(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
