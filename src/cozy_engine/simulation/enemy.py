"""Enemy — a mobile unit walking a route toward the base.

Architecture
------------
Enemy is a flat dataclass.  Every kind shares the same fields; kind-specific
numbers come from the ``ENEMY_PROFILES`` lookup table rather than a class
hierarchy, so waves and loaders can build enemies from plain strings.

State machine::

  walking -> dying -> dead       (hp reached zero, grace period elapsed)
  walking -> arrived             (reached the last waypoint)

Movement is segment-parametric: ``segment_progress`` is the fraction of the
current segment already covered.  Each tick adds ``speed * dt / length``;
at 1.0 the enemy snaps onto the next waypoint and progress resets to zero
(distance left over in that tick is dropped).

``dying`` exists so the presentation layer can play a death effect.  A dying
enemy no longer moves, takes no damage and is never targetable, but it stays
in the active collection until ``DEATH_GRACE`` seconds of simulation time
have passed.  Reward is granted by the engine on the tick ``apply_damage``
reports the kill, not when the corpse is finally removed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Sequence

from loguru import logger

from .paths import Point, point_at_distance


class EnemyKind(str, Enum):
    BASIC = "basic"
    FAST = "fast"
    TANK = "tank"
    MONSTER = "monster"
    DEMON = "demon"
    GENIE = "genie"
    DRAGON = "dragon"
    MINI_DRAGON = "mini_dragon"


class EnemyState(str, Enum):
    WALKING = "walking"
    DYING = "dying"
    DEAD = "dead"
    ARRIVED = "arrived"


class EnemyProfile(NamedTuple):
    speed: float        # map units / second
    hp: float
    reward: int         # gold on kill
    base_damage: int    # player health lost on arrival
    score: int          # score on kill


ENEMY_PROFILES: dict[EnemyKind, EnemyProfile] = {
    EnemyKind.BASIC:       EnemyProfile(speed=60.0,  hp=100.0, reward=10, base_damage=1, score=10),
    EnemyKind.FAST:        EnemyProfile(speed=110.0, hp=60.0,  reward=8,  base_damage=1, score=12),
    EnemyKind.TANK:        EnemyProfile(speed=35.0,  hp=300.0, reward=25, base_damage=3, score=30),
    EnemyKind.MONSTER:     EnemyProfile(speed=70.0,  hp=120.0, reward=12, base_damage=1, score=15),
    EnemyKind.DEMON:       EnemyProfile(speed=80.0,  hp=160.0, reward=18, base_damage=2, score=20),
    EnemyKind.GENIE:       EnemyProfile(speed=95.0,  hp=90.0,  reward=14, base_damage=1, score=18),
    EnemyKind.DRAGON:      EnemyProfile(speed=45.0,  hp=500.0, reward=50, base_damage=5, score=60),
    EnemyKind.MINI_DRAGON: EnemyProfile(speed=100.0, hp=140.0, reward=20, base_damage=2, score=25),
}

DEFAULT_ENEMY_KIND = EnemyKind.BASIC

# Seconds between the killing blow and removal from the field
DEATH_GRACE = 1.0


def resolve_enemy_kind(kind: str | EnemyKind) -> EnemyKind:
    """Map a kind name to EnemyKind, falling back to the default row."""
    if isinstance(kind, EnemyKind):
        return kind
    try:
        return EnemyKind(kind)
    except ValueError:
        logger.warning(f"Unknown enemy kind '{kind}', using '{DEFAULT_ENEMY_KIND.value}'")
        return DEFAULT_ENEMY_KIND


@dataclass
class Enemy:
    """A single enemy on the field.  Create through ``Enemy.spawn``."""

    enemy_id: str
    kind: EnemyKind
    path: tuple[Point, ...]
    position: Point
    speed: float
    hp: float
    max_hp: float
    reward: int
    base_damage: int
    score_value: int
    waypoint_index: int = 0
    segment_progress: float = 0.0
    state: EnemyState = EnemyState.WALKING
    is_active: bool = True
    death_remaining: float = 0.0
    wave_number: int = 0
    route: str = ""
    distance_travelled: float = field(default=0.0, repr=False)

    @classmethod
    def spawn(
        cls,
        enemy_id: str,
        kind: str | EnemyKind,
        path: Sequence[Point],
        speed_mult: float = 1.0,
        health_mult: float = 1.0,
        start_offset: float = 0.0,
        wave_number: int = 0,
        route: str = "",
    ) -> Enemy:
        """Build an enemy of *kind* at the start of *path*.

        A path with fewer than two points produces an enemy that is already
        inactive, so a bad route cannot crash the first update.
        """
        kind = resolve_enemy_kind(kind)
        profile = ENEMY_PROFILES[kind]
        points = tuple((float(x), float(y)) for x, y in path)
        hp = profile.hp * health_mult
        enemy = cls(
            enemy_id=enemy_id,
            kind=kind,
            path=points,
            position=points[0] if points else (0.0, 0.0),
            speed=profile.speed * speed_mult,
            hp=hp,
            max_hp=hp,
            reward=profile.reward,
            base_damage=profile.base_damage,
            score_value=profile.score,
            wave_number=wave_number,
            route=route,
        )
        if len(points) < 2:
            logger.warning(f"Enemy {enemy_id} spawned on invalid path ({len(points)} points), deactivating")
            enemy.state = EnemyState.DEAD
            enemy.is_active = False
            return enemy
        if start_offset > 0:
            pos, index, t = point_at_distance(points, start_offset)
            enemy.position = pos
            if t >= 1.0:
                enemy.waypoint_index = index + 1
            else:
                enemy.waypoint_index = index
                enemy.segment_progress = t
        return enemy

    # -- Queries ---------------------------------------------------------------

    @property
    def is_targetable(self) -> bool:
        return self.is_active and self.state == EnemyState.WALKING

    @property
    def health_fraction(self) -> float:
        if self.max_hp <= 0:
            return 0.0
        return max(0.0, min(1.0, self.hp / self.max_hp))

    # -- Mutation --------------------------------------------------------------

    def apply_damage(self, amount: float) -> bool:
        """Apply *amount* damage.  Returns True only on the killing blow."""
        if self.state != EnemyState.WALKING or amount <= 0:
            return False
        self.hp = max(0.0, self.hp - amount)
        if self.hp <= 0:
            self.state = EnemyState.DYING
            self.death_remaining = DEATH_GRACE
            return True
        return False

    def tick(self, dt: float) -> bool:
        """Advance by *dt* seconds.  Returns True on the tick the base is reached."""
        if self.state == EnemyState.DYING:
            self.death_remaining -= dt
            if self.death_remaining <= 0:
                self.death_remaining = 0.0
                self.state = EnemyState.DEAD
                self.is_active = False
            return False
        if self.state != EnemyState.WALKING:
            return False

        last = len(self.path) - 1
        if self.waypoint_index >= last:
            self._arrive()
            return True

        a = self.path[self.waypoint_index]
        b = self.path[self.waypoint_index + 1]
        seg = math.dist(a, b)
        if seg == 0:
            self.segment_progress = 1.0
        else:
            self.segment_progress += self.speed * dt / seg

        if self.segment_progress >= 1.0:
            self.distance_travelled += math.dist(self.position, b)
            self.position = b
            self.waypoint_index += 1
            self.segment_progress = 0.0
            if self.waypoint_index >= last:
                self._arrive()
                return True
            return False

        new_pos = (
            a[0] + (b[0] - a[0]) * self.segment_progress,
            a[1] + (b[1] - a[1]) * self.segment_progress,
        )
        self.distance_travelled += math.dist(self.position, new_pos)
        self.position = new_pos
        return False

    def _arrive(self) -> None:
        self.state = EnemyState.ARRIVED
        self.is_active = False

    def to_dict(self) -> dict:
        """Render-facing view for the presentation sink."""
        return {
            "enemy_id": self.enemy_id,
            "kind": self.kind.value,
            "position": {"x": round(self.position[0], 2), "y": round(self.position[1], 2)},
            "state": self.state.value,
            "hp": round(self.hp, 1),
            "max_hp": round(self.max_hp, 1),
            "health_fraction": round(self.health_fraction, 3),
            "waypoint_index": self.waypoint_index,
            "wave": self.wave_number,
            "route": self.route,
            "distance_travelled": round(self.distance_travelled, 2),
        }
