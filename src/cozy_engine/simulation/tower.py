"""Tower — stationary defense that shoots the nearest enemy in range.

Architecture
------------
Tower is a flat dataclass with kind-specific numbers in ``TOWER_PROFILES``.
Damage is instant (no projectile flight): ``shoot()`` applies damage to the
target on the same tick and reports whether that shot was the kill.

Fire-rate gating is a fixed cooldown of ``1 / fire_rate`` seconds measured
on the simulation clock.  A tower that has never fired may fire
immediately.  Missed opportunities do not bank extra shots, so a slow tick
rate can only make a tower fire *less* often, never in bursts.

Leveling recomputes stats from the base values every time, so
upgrade/downgrade through undo is exact:

  damage = base_damage * (1 + 0.2 * (level - 1))
  range  = base_range  * (1 + 0.1 * (level - 1))

TowerManager is the single owner of Tower instances.  Commands and the
engine refer to towers by ``tower_id`` and mutate them only through the
manager (create/add/remove/set_level).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, NamedTuple, Sequence

from loguru import logger

from .paths import Point, distance_to_polyline

if TYPE_CHECKING:
    from .enemy import Enemy


class TowerKind(str, Enum):
    BASIC = "basic"
    RAPID = "rapid"
    POWERFUL = "powerful"


class TowerProfile(NamedTuple):
    range: float
    damage: float
    fire_rate: float    # shots per second
    cost: int


TOWER_PROFILES: dict[TowerKind, TowerProfile] = {
    TowerKind.BASIC:    TowerProfile(range=100.0, damage=15.0, fire_rate=1.8, cost=50),
    TowerKind.RAPID:    TowerProfile(range=85.0,  damage=8.0,  fire_rate=4.0, cost=75),
    TowerKind.POWERFUL: TowerProfile(range=120.0, damage=35.0, fire_rate=1.2, cost=100),
}

DEFAULT_TOWER_KIND = TowerKind.BASIC

_DAMAGE_PER_LEVEL = 0.2
_RANGE_PER_LEVEL = 0.1

# Fraction of the base cost charged per current level to upgrade
_UPGRADE_COST_FACTOR = 0.5

# Click radius used to pick an existing tower
SELECT_RADIUS = 16.0

# Placement rules
TOWER_SPACING = 32.0    # minimum distance between tower centers
PATH_CLEARANCE = 24.0   # minimum distance from any path segment

# Absorbs float drift from summing fixed tick deltas
_COOLDOWN_EPSILON = 1e-9


def resolve_tower_kind(kind: str | TowerKind) -> TowerKind:
    if isinstance(kind, TowerKind):
        return kind
    try:
        return TowerKind(kind)
    except ValueError:
        logger.warning(f"Unknown tower kind '{kind}', using '{DEFAULT_TOWER_KIND.value}'")
        return DEFAULT_TOWER_KIND


def tower_cost(kind: str | TowerKind) -> int:
    return TOWER_PROFILES[resolve_tower_kind(kind)].cost


@dataclass
class ShotResult:
    """Outcome of one successful shot."""

    tower_id: str
    target: Enemy
    damage: float
    killed: bool

    def to_dict(self) -> dict:
        return {
            "tower_id": self.tower_id,
            "enemy_id": self.target.enemy_id,
            "damage": round(self.damage, 2),
            "killed": self.killed,
            "remaining_hp": round(self.target.hp, 1),
        }


@dataclass
class Tower:
    """A placed tower.  Build through ``Tower.build`` to get profile stats."""

    tower_id: str
    kind: TowerKind
    position: Point
    base_range: float
    base_damage: float
    fire_rate: float
    cost: int
    level: int = 1
    range: float = 0.0
    damage: float = 0.0
    last_shot_time: float | None = None
    shots_fired: int = 0
    kills: int = 0

    @classmethod
    def build(cls, tower_id: str, kind: str | TowerKind, position: Point, level: int = 1) -> Tower:
        kind = resolve_tower_kind(kind)
        profile = TOWER_PROFILES[kind]
        tower = cls(
            tower_id=tower_id,
            kind=kind,
            position=(float(position[0]), float(position[1])),
            base_range=profile.range,
            base_damage=profile.damage,
            fire_rate=profile.fire_rate,
            cost=profile.cost,
            level=max(1, level),
        )
        tower._apply_level_stats()
        return tower

    # -- Leveling --------------------------------------------------------------

    def _apply_level_stats(self) -> None:
        self.damage = self.base_damage * (1 + _DAMAGE_PER_LEVEL * (self.level - 1))
        self.range = self.base_range * (1 + _RANGE_PER_LEVEL * (self.level - 1))

    def upgrade(self) -> None:
        self.level += 1
        self._apply_level_stats()

    def set_level(self, level: int) -> None:
        self.level = max(1, level)
        self._apply_level_stats()

    @property
    def upgrade_cost(self) -> int:
        """Gold needed to go from the current level to the next."""
        return round(self.cost * _UPGRADE_COST_FACTOR * self.level)

    @property
    def cooldown(self) -> float:
        return 1.0 / self.fire_rate if self.fire_rate > 0 else math.inf

    # -- Combat ----------------------------------------------------------------

    def distance_to(self, point: Point) -> float:
        return math.hypot(point[0] - self.position[0], point[1] - self.position[1])

    def contains_point(self, point: Point) -> bool:
        return self.distance_to(point) <= SELECT_RADIUS

    def find_target(self, enemies: Iterable[Enemy]) -> Enemy | None:
        """Closest targetable enemy within range; the first one wins ties."""
        best: Enemy | None = None
        best_dist = math.inf
        for enemy in enemies:
            if not enemy.is_targetable:
                continue
            dist = self.distance_to(enemy.position)
            if dist <= self.range and dist < best_dist:
                best_dist = dist
                best = enemy
        return best

    def can_shoot(self, now: float) -> bool:
        if self.fire_rate <= 0:
            return False
        if self.last_shot_time is None:
            return True
        return (now - self.last_shot_time) >= self.cooldown - _COOLDOWN_EPSILON

    def shoot(self, target: Enemy, now: float) -> ShotResult | None:
        """Damage *target* if the cooldown allows.  Returns None when gated."""
        if not self.can_shoot(now):
            return None
        killed = target.apply_damage(self.damage)
        self.last_shot_time = now
        self.shots_fired += 1
        if killed:
            self.kills += 1
        return ShotResult(tower_id=self.tower_id, target=target, damage=self.damage, killed=killed)

    def update(self, enemies: Iterable[Enemy], now: float) -> ShotResult | None:
        """Acquire a target and fire at it if possible."""
        if not self.can_shoot(now):
            return None
        target = self.find_target(enemies)
        if target is None:
            return None
        return self.shoot(target, now)

    def to_dict(self) -> dict:
        return {
            "tower_id": self.tower_id,
            "kind": self.kind.value,
            "position": {"x": self.position[0], "y": self.position[1]},
            "level": self.level,
            "range": round(self.range, 2),
            "damage": round(self.damage, 2),
            "fire_rate": self.fire_rate,
            "upgrade_cost": self.upgrade_cost,
            "kills": self.kills,
            "shots_fired": self.shots_fired,
        }


class TowerManager:
    """Owns every placed tower, keyed by tower_id in placement order."""

    def __init__(self) -> None:
        self._towers: dict[str, Tower] = {}

    def create(
        self,
        kind: str | TowerKind,
        position: Point,
        tower_id: str | None = None,
        last_shot_time: float | None = None,
        shots_fired: int = 0,
        kills: int = 0,
    ) -> Tower | None:
        """Build a level-1 tower and add it.  Returns None if the id is taken.

        ``last_shot_time`` and the counters carry over the state of a tower
        removed by undo.
        """
        kind = resolve_tower_kind(kind)
        if tower_id is None:
            tower_id = f"{kind.value}-{uuid.uuid4().hex[:6]}"
        tower = Tower.build(tower_id, kind, position)
        tower.last_shot_time = last_shot_time
        tower.shots_fired = shots_fired
        tower.kills = kills
        return tower if self.add(tower) else None

    def add(self, tower: Tower) -> bool:
        if tower.tower_id in self._towers:
            logger.warning(f"Tower id {tower.tower_id} already placed")
            return False
        self._towers[tower.tower_id] = tower
        return True

    def remove(self, tower_id: str) -> Tower | None:
        return self._towers.pop(tower_id, None)

    def get(self, tower_id: str) -> Tower | None:
        return self._towers.get(tower_id)

    def set_level(self, tower_id: str, level: int) -> bool:
        tower = self._towers.get(tower_id)
        if tower is None:
            return False
        tower.set_level(level)
        return True

    @property
    def towers(self) -> list[Tower]:
        return list(self._towers.values())

    def tower_at(self, point: Point) -> Tower | None:
        for tower in self._towers.values():
            if tower.contains_point(point):
                return tower
        return None

    def can_place_at(self, point: Point, path_points: Sequence[Point]) -> tuple[bool, str]:
        """Check spacing from other towers and clearance from the path."""
        for tower in self._towers.values():
            if tower.distance_to(point) < TOWER_SPACING:
                return False, f"too close to tower {tower.tower_id}"
        if distance_to_polyline(point, path_points) < PATH_CLEARANCE:
            return False, "too close to the path"
        return True, ""

    def clear(self) -> None:
        self._towers.clear()

    def __len__(self) -> int:
        return len(self._towers)

    def __contains__(self, tower_id: str) -> bool:
        return tower_id in self._towers
