"""Wave configuration and the spawn scheduler.

Architecture
------------
A wave is an ordered list of SpawnEntry rows.  Each row carries an
authored ``delay``, but pacing inside a wave is set by one scheduler
cadence (``spawn_interval``, per difficulty tier): entry *i* spawns at
``start + i * spawn_interval``.  The authored delay only documents order.

Spawns are not timers.  ``start_wave()`` pushes one ScheduledEvent per
entry into an EventQueue keyed on simulation time, and the engine calls
``poll(now)`` once per tick.  Because the queue only moves when the engine
polls it, pausing the engine suspends spawning, and ``cancel()`` drops
every pending spawn at once (restart, return to menu).

Gating: a wave cannot start while the previous one is still spawning or
while any of its enemies are on the field, and nothing starts after the
last wave.
"""

from __future__ import annotations

import heapq
import itertools
import random
from dataclasses import dataclass, field
from typing import Any, Sequence

from loguru import logger

# Floating-point slack when comparing due times against the tick clock
_DUE_EPSILON = 1e-9


@dataclass(frozen=True)
class SpawnEntry:
    """One enemy in a wave."""

    enemy_kind: str
    delay: float = 0.0
    route: str | None = None


@dataclass
class WaveConfig:
    """A named, ordered batch of spawns.

    ``routes`` lists the lanes this wave may use; each spawn without its
    own route picks one at random.  Empty means the current path.
    """

    name: str
    entries: list[SpawnEntry]
    routes: tuple[str, ...] = ()

    @classmethod
    def uniform(
        cls,
        name: str,
        kind: str,
        count: int,
        routes: Sequence[str] = (),
        delay: float = 1.0,
    ) -> WaveConfig:
        entries = [SpawnEntry(kind, delay=i * delay) for i in range(count)]
        return cls(name=name, entries=entries, routes=tuple(routes))

    @classmethod
    def mixed(
        cls,
        name: str,
        groups: Sequence[tuple[str, int]],
        routes: Sequence[str] = (),
        delay: float = 1.0,
    ) -> WaveConfig:
        """Build a wave from ``(kind, count)`` groups, in group order."""
        entries: list[SpawnEntry] = []
        for kind, count in groups:
            for _ in range(count):
                entries.append(SpawnEntry(kind, delay=len(entries) * delay))
        return cls(name=name, entries=entries, routes=tuple(routes))

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass(order=True)
class ScheduledEvent:
    due: float
    sequence: int
    payload: Any = field(compare=False)


class EventQueue:
    """Min-heap of events ordered by due time, then insertion order."""

    def __init__(self) -> None:
        self._heap: list[ScheduledEvent] = []
        self._counter = itertools.count()

    def schedule(self, due: float, payload: Any) -> ScheduledEvent:
        event = ScheduledEvent(due, next(self._counter), payload)
        heapq.heappush(self._heap, event)
        return event

    def pop_due(self, now: float) -> list[Any]:
        due: list[Any] = []
        while self._heap and self._heap[0].due <= now + _DUE_EPSILON:
            due.append(heapq.heappop(self._heap).payload)
        return due

    def peek_time(self) -> float | None:
        return self._heap[0].due if self._heap else None

    def clear(self) -> None:
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._heap)


@dataclass
class SpawnOrder:
    """A spawn that has come due."""

    enemy_kind: str
    route: str | None
    wave_number: int
    index: int


class WaveScheduler:
    """Sequences the waves of one session against the simulation clock."""

    def __init__(
        self,
        waves: Sequence[WaveConfig],
        spawn_interval: float,
        rng: random.Random | None = None,
    ) -> None:
        self._waves = list(waves)
        self.spawn_interval = spawn_interval
        self._rng = rng or random.Random()
        self._queue = EventQueue()
        self._next_index = 0

    # -- Queries ---------------------------------------------------------------

    @property
    def wave_number(self) -> int:
        """1-based number of the most recently started wave (0 before any)."""
        return self._next_index

    @property
    def total_waves(self) -> int:
        return len(self._waves)

    @property
    def has_more_waves(self) -> bool:
        return self._next_index < len(self._waves)

    @property
    def is_spawning(self) -> bool:
        return len(self._queue) > 0

    @property
    def pending_spawns(self) -> int:
        return len(self._queue)

    @property
    def next_spawn_time(self) -> float | None:
        return self._queue.peek_time()

    @property
    def current_wave(self) -> WaveConfig | None:
        if 1 <= self._next_index <= len(self._waves):
            return self._waves[self._next_index - 1]
        return None

    # -- Control ---------------------------------------------------------------

    def start_wave(self, now: float, active_enemies: int = 0) -> bool:
        """Queue the next wave's spawns.  No-op (False) when gated."""
        if self.is_spawning or active_enemies > 0:
            return False
        if not self.has_more_waves:
            return False
        config = self._waves[self._next_index]
        self._next_index += 1
        for i, entry in enumerate(config.entries):
            route = entry.route
            if route is None and config.routes:
                route = self._rng.choice(config.routes)
            self._queue.schedule(
                now + i * self.spawn_interval,
                SpawnOrder(entry.enemy_kind, route, self._next_index, i),
            )
        logger.info(
            f"Wave {self._next_index}/{len(self._waves)} '{config.name}' queued: "
            f"{config.count} spawns every {self.spawn_interval}s"
        )
        return True

    def poll(self, now: float) -> list[SpawnOrder]:
        """Return spawns due at or before *now*, in schedule order."""
        return self._queue.pop_due(now)

    def cancel(self) -> int:
        """Drop all pending spawns.  Returns how many were dropped."""
        dropped = len(self._queue)
        self._queue.clear()
        return dropped

    def reset(self, waves: Sequence[WaveConfig] | None = None, spawn_interval: float | None = None) -> None:
        self.cancel()
        self._next_index = 0
        if waves is not None:
            self._waves = list(waves)
        if spawn_interval is not None:
            self.spawn_interval = spawn_interval
