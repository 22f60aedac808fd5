"""GameEngine — simulation loop, input boundary, and win/loss detection.

Architecture
------------
GameEngine owns one game session: the path catalog, the active enemies,
the TowerManager, the Economy, the WaveScheduler and the undo/redo stack.
The presentation layer never touches those directly.  It forwards intents
(place, upgrade, undo, redo, pause, next wave) through the input boundary,
each of which validates synchronously and returns an ActionResult, and it
reads state back through ``snapshot()`` or the EventBus.

Session state machine::

  setup -> active -> wave_complete -> active -> ... -> victory | defeat

``paused`` is a flag on top of the state, not a state of its own.

Time is the simulation clock, advanced only by ``tick(dt)``.  While paused
(or before start / after game over) ``tick`` returns immediately, so the
spawn queue, death grace timers and tower cooldowns are all suspended
together.

Each tick runs in a fixed order:

  1. spawn enemies whose scheduled time has come
  2. move enemies; arrivals damage the player once, pay no gold
  3. tower combat; kills pay gold and score once, on the killing tick
  4. drop inactive enemies
  5. defeat check
  6. wave gating: wave complete -> break -> next wave, or victory
  7. publish ``sim_tick``

An exception in one enemy's update is logged and that enemy is retired;
the rest of the field still updates.  Tower failures are isolated inside
CombatSystem.

All public methods hold one re-entrant lock, so the HTTP threads and the
tick thread interleave only between whole operations.
"""

from __future__ import annotations

import itertools
import random
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from .combat import CombatSystem
from .commands import PlaceTowerCommand, UndoRedoStack, UpgradeTowerCommand
from .difficulty import DifficultyTier, get_difficulty
from .economy import Economy
from .enemy import Enemy, EnemyState
from .paths import PathCatalog
from .tower import TowerManager, resolve_tower_kind, tower_cost
from .waves import SpawnOrder, WaveScheduler

if TYPE_CHECKING:
    from cozy_engine.comms.event_bus import EventBus


@dataclass
class ActionResult:
    """Outcome of an input-boundary call.  Truthy iff the action applied."""

    ok: bool
    reason: str = ""
    data: dict = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict:
        return {"ok": self.ok, "reason": self.reason, "data": self.data}


def _accepted(**data) -> ActionResult:
    return ActionResult(ok=True, data=data)


def _rejected(reason: str) -> ActionResult:
    return ActionResult(ok=False, reason=reason)


_TERMINAL_STATES = ("victory", "defeat")


class GameEngine:
    """One tower-defense session driven by an explicit time step."""

    STATES = ("setup", "active", "wave_complete", "victory", "defeat")

    def __init__(
        self,
        event_bus: EventBus,
        difficulty: DifficultyTier | str | int | None = None,
        paths: PathCatalog | None = None,
        seed: int | None = None,
        auto_advance: bool = True,
    ) -> None:
        self._event_bus = event_bus
        self._tier = difficulty if isinstance(difficulty, DifficultyTier) else get_difficulty(difficulty)
        self._paths = paths if paths is not None else PathCatalog()
        self._seed = seed
        self._rng = random.Random(seed)
        self.auto_advance = auto_advance

        self._lock = threading.RLock()
        self._economy = Economy(
            event_bus,
            starting_gold=self._tier.starting_gold,
            starting_health=self._tier.starting_health,
        )
        self._towers = TowerManager()
        self._stack = UndoRedoStack()
        self._combat = CombatSystem(event_bus)
        self._scheduler = WaveScheduler(self._tier.waves, self._tier.spawn_interval, rng=self._rng)

        self._enemies: list[Enemy] = []
        self._enemy_ids = itertools.count(1)
        self.state: str = "setup"
        self.paused: bool = False
        self.clock: float = 0.0
        self.total_kills: int = 0
        self.wave_kills: int = 0
        self._break_remaining: float = 0.0

    # -- Accessors -------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def difficulty(self) -> DifficultyTier:
        return self._tier

    @property
    def paths(self) -> PathCatalog:
        return self._paths

    @property
    def economy(self) -> Economy:
        return self._economy

    @property
    def towers(self) -> TowerManager:
        return self._towers

    @property
    def scheduler(self) -> WaveScheduler:
        return self._scheduler

    @property
    def history(self) -> UndoRedoStack:
        return self._stack

    @property
    def combat(self) -> CombatSystem:
        return self._combat

    @property
    def enemies(self) -> list[Enemy]:
        with self._lock:
            return list(self._enemies)

    @property
    def is_over(self) -> bool:
        return self.state in _TERMINAL_STATES

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> ActionResult:
        """Leave setup and start wave 1.  Refused until a valid path exists."""
        with self._lock:
            if self.state != "setup":
                return _rejected(f"game already {self.state}")
            if len(self._paths.get_current_path()) < 2:
                logger.warning("Cannot start: no valid path loaded")
                self._event_bus.publish("load_failed", {
                    "resource": "paths",
                    "reason": "no valid path available",
                })
                return _rejected("no valid path available")
            logger.info(
                f"Game started: difficulty {self._tier.level} ({self._tier.name}), "
                f"{self._scheduler.total_waves} waves"
            )
            self.state = "active"
            self._begin_next_wave()
            return _accepted(**self.get_state())

    def reset(self) -> ActionResult:
        """Back to setup.  Pending spawns are cancelled and the board cleared."""
        with self._lock:
            dropped = self._scheduler.cancel()
            if dropped:
                logger.info(f"Reset cancelled {dropped} pending spawns")
            self._scheduler.reset(self._tier.waves, self._tier.spawn_interval)
            self._rng.seed(self._seed)
            self._enemies.clear()
            self._enemy_ids = itertools.count(1)
            self._towers.clear()
            self._stack.clear()
            self._combat.reset()
            self._economy.reset(self._tier.starting_gold, self._tier.starting_health)
            self.state = "setup"
            self.paused = False
            self.clock = 0.0
            self.total_kills = 0
            self.wave_kills = 0
            self._break_remaining = 0.0
            self._publish_state_change()
            return _accepted(**self.get_state())

    # -- Simulation ------------------------------------------------------------

    def tick(self, dt: float) -> None:
        """Advance the simulation by *dt* seconds of game time."""
        with self._lock:
            if dt <= 0 or self.paused or self.state in ("setup", *_TERMINAL_STATES):
                return
            self.clock += dt
            self._spawn_due()
            self._update_enemies(dt)
            self._resolve_combat()
            self._enemies = [e for e in self._enemies if e.is_active]
            if self._economy.is_depleted:
                self._finish("defeat")
            else:
                self._gate_waves(dt)
            self._event_bus.publish("sim_tick", self.snapshot(include_paths=False))

    def _spawn_due(self) -> None:
        for order in self._scheduler.poll(self.clock):
            self._spawn(order)

    def _spawn(self, order: SpawnOrder) -> Enemy:
        route = order.route
        if route is None or not self._paths.has_path(route):
            if route is not None:
                logger.warning(f"Unknown route '{route}', spawning on current path")
            route = self._paths.current
        points = self._paths.get_path(route) or self._paths.get_current_path()
        enemy = Enemy.spawn(
            f"enemy-{next(self._enemy_ids)}",
            order.enemy_kind,
            points,
            speed_mult=self._tier.speed_mult,
            health_mult=self._tier.health_mult,
            wave_number=order.wave_number,
            route=route or "",
        )
        if enemy.is_active:
            self._enemies.append(enemy)
        self._event_bus.publish("enemy_spawned", {
            **enemy.to_dict(),
            "clock": round(self.clock, 4),
            "index": order.index,
        })
        return enemy

    def _update_enemies(self, dt: float) -> None:
        for enemy in self._enemies:
            try:
                arrived = enemy.tick(dt)
            except Exception:
                logger.exception(f"Enemy {enemy.enemy_id} update failed, retiring it")
                enemy.state = EnemyState.DEAD
                enemy.is_active = False
                continue
            if arrived:
                health = self._economy.damage_player(enemy.base_damage, f"{enemy.kind.value} reached base")
                self._event_bus.publish("enemy_arrived", {
                    "enemy_id": enemy.enemy_id,
                    "kind": enemy.kind.value,
                    "damage": enemy.base_damage,
                    "health": health,
                })

    def _resolve_combat(self) -> None:
        for shot in self._combat.resolve(self._towers.towers, self._enemies, self.clock):
            if not shot.killed:
                continue
            enemy = shot.target
            self._economy.credit(enemy.reward, f"killed {enemy.enemy_id}")
            self._economy.add_score(enemy.score_value, f"killed {enemy.enemy_id}")
            self.total_kills += 1
            self.wave_kills += 1

    def _gate_waves(self, dt: float) -> None:
        if self.state == "active":
            if not self._scheduler.is_spawning and not self._enemies:
                self._on_wave_complete()
        elif self.state == "wave_complete" and self.auto_advance:
            self._break_remaining -= dt
            if self._break_remaining <= 0:
                self._begin_next_wave()

    def _begin_next_wave(self) -> bool:
        if not self._scheduler.start_wave(self.clock, len(self._enemies)):
            return False
        self.state = "active"
        self.wave_kills = 0
        self._break_remaining = 0.0
        config = self._scheduler.current_wave
        self._event_bus.publish("wave_start", {
            "wave_number": self._scheduler.wave_number,
            "wave_name": config.name if config else "",
            "enemy_count": config.count if config else 0,
        })
        self._publish_state_change()
        # Entry 0 is due now; spawn it without waiting for the next tick
        self._spawn_due()
        return True

    def _on_wave_complete(self) -> None:
        wave = self._scheduler.wave_number
        config = self._scheduler.current_wave
        logger.info(f"Wave {wave} '{config.name if config else ''}' cleared ({self.wave_kills} kills)")
        self._event_bus.publish("wave_complete", {
            "wave_number": wave,
            "wave_name": config.name if config else "",
            "kills": self.wave_kills,
        })
        self._combat.reset_streaks()
        if not self._scheduler.has_more_waves:
            self._finish("victory")
            return
        self.state = "wave_complete"
        self._break_remaining = self._tier.wave_break
        self._publish_state_change()

    def _finish(self, result: str) -> None:
        if self.state in _TERMINAL_STATES:
            return
        self.state = result
        self._scheduler.cancel()
        logger.info(f"Game over: {result}, score {self._economy.score}")
        waves_completed = self._scheduler.wave_number if result == "victory" else self._scheduler.wave_number - 1
        self._event_bus.publish("game_over", {
            "result": result,
            "final_score": self._economy.score,
            "waves_completed": max(0, waves_completed),
            "total_kills": self.total_kills,
        })
        self._publish_state_change()

    # -- Input boundary --------------------------------------------------------

    def can_place_at(self, point: tuple[float, float]) -> tuple[bool, str]:
        """Placement check against every route in the catalog."""
        with self._lock:
            routes = [self._paths.get_path(name) or [] for name in self._paths.path_names()]
            for points in routes or [[]]:
                ok, reason = self._towers.can_place_at(point, points)
                if not ok:
                    return ok, reason
            return True, ""

    def place_tower(self, x: float, y: float, kind: str = "basic") -> ActionResult:
        """Buy and place a tower.  Gold is taken at click time."""
        with self._lock:
            if self.is_over:
                return _rejected("game is over")
            kind = resolve_tower_kind(kind)
            point = (float(x), float(y))
            ok, reason = self.can_place_at(point)
            if not ok:
                return _rejected(reason)
            cost = tower_cost(kind)
            if not self._economy.debit(cost, f"place {kind.value}"):
                return _rejected(f"insufficient gold: need {cost}, have {self._economy.gold}")
            command = PlaceTowerCommand(self._towers, self._economy, kind, point, prepaid=True)
            if not self._stack.execute(command):
                self._economy.credit(cost, f"refund failed {kind.value} placement")
                return _rejected("placement failed")
            tower = self._towers.get(command.tower_id)
            self._event_bus.publish("tower_placed", tower.to_dict())
            return _accepted(**tower.to_dict())

    def upgrade_tower(self, tower_id: str) -> ActionResult:
        with self._lock:
            if self.is_over:
                return _rejected("game is over")
            tower = self._towers.get(tower_id)
            if tower is None:
                return _rejected(f"unknown tower {tower_id}")
            cost = tower.upgrade_cost
            if not self._economy.can_afford(cost):
                return _rejected(f"insufficient gold: need {cost}, have {self._economy.gold}")
            if not self._stack.execute(UpgradeTowerCommand(self._towers, self._economy, tower_id)):
                return _rejected("upgrade failed")
            self._event_bus.publish("tower_upgraded", tower.to_dict())
            return _accepted(**tower.to_dict())

    def undo(self) -> ActionResult:
        with self._lock:
            if self.is_over:
                return _rejected("game is over")
            command = self._stack.peek_undo()
            if command is None:
                return _rejected("nothing to undo")
            if not self._stack.undo():
                return _rejected("undo failed")
            if isinstance(command, PlaceTowerCommand):
                self._combat.forget_tower(command.tower_id)
                self._event_bus.publish("tower_removed", {"tower_id": command.tower_id})
            self._event_bus.publish("command_undone", command.describe())
            return _accepted(**command.describe())

    def redo(self) -> ActionResult:
        with self._lock:
            if self.is_over:
                return _rejected("game is over")
            command = self._stack.peek_redo()
            if command is None:
                return _rejected("nothing to redo")
            if not self._stack.redo():
                return _rejected("redo failed: insufficient gold")
            if isinstance(command, PlaceTowerCommand):
                tower = self._towers.get(command.tower_id)
                if tower is not None:
                    self._event_bus.publish("tower_placed", tower.to_dict())
            self._event_bus.publish("command_redone", command.describe())
            return _accepted(**command.describe())

    def toggle_pause(self) -> ActionResult:
        with self._lock:
            if self.state not in ("active", "wave_complete"):
                return _rejected(f"cannot pause in state {self.state}")
            self.paused = not self.paused
            logger.info("Game paused" if self.paused else "Game resumed")
            self._publish_state_change()
            return _accepted(paused=self.paused)

    def start_wave(self) -> ActionResult:
        """Start the next wave now.  No-op while the field is not clear."""
        with self._lock:
            if self.state == "setup":
                return _rejected("game not started")
            if self.is_over:
                return _rejected("game is over")
            if self.paused:
                return _rejected("game is paused")
            if self._scheduler.is_spawning:
                return _rejected("wave still spawning")
            if self._enemies:
                return _rejected("enemies still on the field")
            if not self._scheduler.has_more_waves:
                return _rejected("no more waves")
            if not self._begin_next_wave():
                return _rejected("wave could not start")
            return _accepted(wave=self._scheduler.wave_number)

    # -- State -----------------------------------------------------------------

    def get_state(self) -> dict:
        """HUD view: health, gold, score, wave progress, flags."""
        with self._lock:
            config = self._scheduler.current_wave
            return {
                **self._economy.to_dict(),
                "state": self.state,
                "paused": self.paused,
                "difficulty": self._tier.level,
                "wave": self._scheduler.wave_number,
                "wave_name": config.name if config else "",
                "total_waves": self._scheduler.total_waves,
                "pending_spawns": self._scheduler.pending_spawns,
                "next_spawn_time": self._scheduler.next_spawn_time,
                "enemies_remaining": len(self._enemies),
                "total_kills": self.total_kills,
                "wave_kills": self.wave_kills,
                "can_undo": self._stack.can_undo,
                "can_redo": self._stack.can_redo,
                "clock": round(self.clock, 4),
            }

    def snapshot(self, include_paths: bool = True) -> dict:
        """Read-only view of the whole board for the presentation sink."""
        with self._lock:
            snap = {
                "hud": self.get_state(),
                "enemies": [e.to_dict() for e in self._enemies],
                "towers": [t.to_dict() for t in self._towers.towers],
            }
            if include_paths:
                snap["paths"] = self._paths.export_paths()
                snap["current_path"] = self._paths.current
            return snap

    def _publish_state_change(self) -> None:
        self._event_bus.publish("game_state_change", self.get_state())
