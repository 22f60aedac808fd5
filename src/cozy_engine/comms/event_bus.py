"""EventBus — thread-safe pub/sub for engine events.

Every engine component (Economy, CombatSystem, GameEngine) publishes onto
one bus.  The presentation side (WebSocket bridge, tests) subscribes and
drains its own queue.  Publishing never blocks the tick: a full subscriber
queue drops its oldest message.
"""

from __future__ import annotations

import queue
import threading


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    def __init__(self, maxsize: int = 256) -> None:
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._subscribers: list[tuple[queue.Queue, frozenset[str] | None]] = []

    def subscribe(self, topics: str | list[str] | None = None) -> queue.Queue:
        """Subscribe to events. Returns a Queue receiving ``{"type", "data"}`` dicts.

        ``topics`` restricts delivery to the given event type(s); ``None``
        receives everything.
        """
        if isinstance(topics, str):
            topics = [topics]
        wanted = frozenset(topics) if topics else None
        q: queue.Queue = queue.Queue(maxsize=self._maxsize)
        with self._lock:
            self._subscribers.append((q, wanted))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(s, t) for s, t in self._subscribers if s is not q]

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q, wanted in self._subscribers:
                if wanted is not None and event_type not in wanted:
                    continue
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    # Drop oldest so state changes are never lost behind
                    # a backlog of sim_tick snapshots.
                    try:
                        q.get_nowait()
                    except queue.Empty:
                        pass
                    try:
                        q.put_nowait(msg)
                    except queue.Full:
                        pass


def drain(q: queue.Queue) -> list[dict]:
    """Return every message currently waiting in *q* without blocking."""
    messages: list[dict] = []
    while True:
        try:
            messages.append(q.get_nowait())
        except queue.Empty:
            return messages
