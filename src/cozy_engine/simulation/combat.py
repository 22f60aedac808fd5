"""CombatSystem — resolves one tick of tower fire against the field.

Architecture
------------
Towers hit instantly, so there is no projectile bookkeeping: each tick
``resolve()`` walks the towers in placement order, lets each one pick its
closest target and fire if its cooldown allows, and returns the shots.
Towers earlier in the order see the damage dealt by earlier towers, so two
towers never both claim the same kill: once an enemy is dying it is no
longer targetable.

A tower whose update raises is logged and skipped; the remaining towers
still fire that tick.

Kill streaks are tracked per tower and announced at milestones (3, 5, 7,
10 kills).  The engine clears every streak when a wave completes.

Events published:
  - ``tower_fired``: every successful shot
  - ``enemy_killed``: the shot that took an enemy to zero hp
  - ``kill_streak``: streak milestone reached
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from loguru import logger

if TYPE_CHECKING:
    from cozy_engine.comms.event_bus import EventBus
    from .enemy import Enemy
    from .tower import ShotResult, Tower

_STREAK_NAMES: list[tuple[int, str]] = [
    (10, "UNSTOPPABLE"),
    (7, "DOMINATING"),
    (5, "RAMPAGE"),
    (3, "KILLING SPREE"),
]


class CombatSystem:
    """Tower targeting and damage resolution for one engine."""

    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus
        self._kill_streaks: dict[str, int] = {}
        self.shots_fired = 0
        self.kills = 0

    def resolve(self, towers: Sequence[Tower], enemies: Sequence[Enemy], now: float) -> list[ShotResult]:
        shots: list[ShotResult] = []
        for tower in towers:
            try:
                shot = tower.update(enemies, now)
            except Exception:
                logger.exception(f"Tower {tower.tower_id} update failed")
                continue
            if shot is None:
                continue
            shots.append(shot)
            self._on_shot(tower, shot)
        return shots

    def _on_shot(self, tower: Tower, shot: ShotResult) -> None:
        self.shots_fired += 1
        self._event_bus.publish("tower_fired", {
            **shot.to_dict(),
            "tower_pos": {"x": tower.position[0], "y": tower.position[1]},
            "target_pos": {"x": shot.target.position[0], "y": shot.target.position[1]},
        })
        if not shot.killed:
            return

        self.kills += 1
        enemy = shot.target
        self._event_bus.publish("enemy_killed", {
            "enemy_id": enemy.enemy_id,
            "kind": enemy.kind.value,
            "tower_id": tower.tower_id,
            "reward": enemy.reward,
            "score": enemy.score_value,
            "position": {"x": enemy.position[0], "y": enemy.position[1]},
        })

        streak = self._kill_streaks.get(tower.tower_id, 0) + 1
        self._kill_streaks[tower.tower_id] = streak
        streak_name = self._get_streak_name(streak)
        if streak_name:
            self._event_bus.publish("kill_streak", {
                "tower_id": tower.tower_id,
                "streak": streak,
                "streak_name": streak_name,
            })

    def streak(self, tower_id: str) -> int:
        return self._kill_streaks.get(tower_id, 0)

    def reset_streaks(self) -> None:
        self._kill_streaks.clear()

    def forget_tower(self, tower_id: str) -> None:
        self._kill_streaks.pop(tower_id, None)

    def reset(self) -> None:
        self._kill_streaks.clear()
        self.shots_fired = 0
        self.kills = 0

    @staticmethod
    def _get_streak_name(streak: int) -> str | None:
        for threshold, name in _STREAK_NAMES:
            if streak == threshold:
                return name
        return None
