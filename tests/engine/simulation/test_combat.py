"""Unit tests for CombatSystem — per-tick tower fire resolution."""

from __future__ import annotations

import queue
import threading

import pytest

from cozy_engine.simulation.combat import CombatSystem
from cozy_engine.simulation.enemy import Enemy
from cozy_engine.simulation.tower import Tower


class SimpleEventBus:
    """Minimal EventBus for unit testing."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[queue.Queue]] = {}
        self._lock = threading.Lock()

    def publish(self, topic: str, data: object = None) -> None:
        with self._lock:
            for q in self._subscribers.get(topic, []):
                q.put(data)

    def subscribe(self, topic: str) -> queue.Queue:
        q: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.setdefault(topic, []).append(q)
        return q


pytestmark = pytest.mark.unit


def _enemy(enemy_id: str, x: float, hp: float | None = None) -> Enemy:
    enemy = Enemy.spawn(enemy_id, "basic", [(x, 0.0), (x + 500.0, 0.0)])
    if hp is not None:
        enemy.hp = hp
    return enemy


class TestResolve:
    def test_tower_fires_and_publishes(self):
        bus = SimpleEventBus()
        fired = bus.subscribe("tower_fired")
        combat = CombatSystem(bus)
        tower = Tower.build("t1", "basic", (0, 30))
        enemy = _enemy("e1", 10)

        shots = combat.resolve([tower], [enemy], now=0.0)

        assert len(shots) == 1
        assert enemy.hp == pytest.approx(85.0)
        msg = fired.get_nowait()
        assert msg["tower_id"] == "t1"
        assert msg["enemy_id"] == "e1"
        assert not msg["killed"]

    def test_kill_published_once(self):
        bus = SimpleEventBus()
        killed = bus.subscribe("enemy_killed")
        combat = CombatSystem(bus)
        t1 = Tower.build("t1", "powerful", (0, 30))
        t2 = Tower.build("t2", "powerful", (0, -30))
        enemy = _enemy("e1", 10, hp=30)

        shots = combat.resolve([t1, t2], [enemy], now=0.0)

        # The first tower's kill makes the enemy untargetable for the second
        assert len(shots) == 1
        assert shots[0].killed
        assert killed.qsize() == 1
        assert killed.get_nowait()["reward"] == enemy.reward
        assert combat.kills == 1

    def test_failing_tower_does_not_stop_others(self):
        bus = SimpleEventBus()
        combat = CombatSystem(bus)

        class BrokenTower(Tower):
            def update(self, enemies, now):
                raise RuntimeError("jammed")

        broken = BrokenTower.build("broken", "basic", (0, 30))
        healthy = Tower.build("healthy", "basic", (0, -30))
        enemy = _enemy("e1", 10)

        shots = combat.resolve([broken, healthy], [enemy], now=0.0)

        assert [s.tower_id for s in shots] == ["healthy"]

    def test_no_targets_no_shots(self):
        combat = CombatSystem(SimpleEventBus())
        tower = Tower.build("t1", "basic", (0, 0))
        assert combat.resolve([tower], [], now=0.0) == []
        assert tower.last_shot_time is None


class TestKillStreaks:
    def test_streak_milestone_announced(self):
        bus = SimpleEventBus()
        streaks = bus.subscribe("kill_streak")
        combat = CombatSystem(bus)
        tower = Tower.build("t1", "powerful", (0, 30))
        for i in range(3):
            combat.resolve([tower], [_enemy(f"e{i}", 10, hp=1)], now=float(i * 2))
        assert combat.streak("t1") == 3
        assert streaks.get_nowait()["streak_name"] == "KILLING SPREE"

    def test_forget_tower_clears_streak(self):
        combat = CombatSystem(SimpleEventBus())
        tower = Tower.build("t1", "powerful", (0, 30))
        combat.resolve([tower], [_enemy("e", 10, hp=1)], now=0.0)
        combat.forget_tower("t1")
        assert combat.streak("t1") == 0

    def test_reset(self):
        combat = CombatSystem(SimpleEventBus())
        tower = Tower.build("t1", "powerful", (0, 30))
        combat.resolve([tower], [_enemy("e", 10, hp=1)], now=0.0)
        combat.reset()
        assert combat.shots_fired == 0
        assert combat.kills == 0
        assert combat.streak("t1") == 0
