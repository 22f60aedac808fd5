"""Difficulty tiers — the level selected before a session starts.

The selected level is read once when a GameEngine is built.  It picks the
wave table, the spawn cadence, enemy speed/health multipliers, and the
starting gold and health.  Unknown levels fall back to level "1".

Tier overview:

  level  name       cadence  speed  health  gold  lives  waves
  "1"    Meadow     6.0s     1.00   1.00    200   20     5
  "2"    Forest     4.0s     1.15   1.25    150   15     7
  "3"    Volcano    2.5s     1.30   1.50    120   10     10
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from .waves import WaveConfig

_BOTH_LANES = ("route1", "route2")


MEADOW_WAVES: list[WaveConfig] = [
    WaveConfig.uniform("Scout Party", "basic", 3),
    WaveConfig.mixed("Raiding Party", [("basic", 4), ("fast", 2)]),
    WaveConfig.mixed("Split Lanes", [("basic", 4), ("fast", 3)], routes=_BOTH_LANES),
    WaveConfig.mixed("Heavy Assault", [("basic", 4), ("tank", 2)]),
    WaveConfig.mixed("Armored Push", [("tank", 3), ("fast", 4), ("demon", 1)], routes=_BOTH_LANES),
]

FOREST_WAVES: list[WaveConfig] = [
    WaveConfig.mixed("Scouts", [("basic", 3), ("fast", 2)]),
    WaveConfig.mixed("Monster March", [("monster", 5)], routes=_BOTH_LANES),
    WaveConfig.mixed("Genie Rush", [("genie", 4), ("fast", 4)]),
    WaveConfig.mixed("Heavy Column", [("tank", 3), ("monster", 3)], routes=_BOTH_LANES),
    WaveConfig.mixed("Demon Pack", [("demon", 5), ("genie", 2)]),
    WaveConfig.mixed("Wyrmlings", [("mini_dragon", 4), ("basic", 6)], routes=_BOTH_LANES),
    WaveConfig.mixed("Forest Fire", [("dragon", 1), ("demon", 4), ("mini_dragon", 3)], routes=_BOTH_LANES),
]

VOLCANO_WAVES: list[WaveConfig] = [
    WaveConfig.mixed("Scout Party", [("fast", 5)]),
    WaveConfig.mixed("Raiding Party", [("basic", 6), ("fast", 4)], routes=_BOTH_LANES),
    WaveConfig.mixed("Assault Squad", [("monster", 6), ("genie", 3)]),
    WaveConfig.mixed("Heavy Assault", [("tank", 5), ("demon", 3)], routes=_BOTH_LANES),
    WaveConfig.mixed("Blitz Attack", [("fast", 10), ("genie", 5)], routes=_BOTH_LANES),
    WaveConfig.mixed("Armored Push", [("tank", 6), ("mini_dragon", 2)]),
    WaveConfig.mixed("Swarm", [("basic", 15), ("fast", 5)], routes=_BOTH_LANES),
    WaveConfig.mixed("Elite Strike", [("demon", 6), ("mini_dragon", 4)], routes=_BOTH_LANES),
    WaveConfig.mixed("Full Invasion", [("dragon", 2), ("tank", 6), ("monster", 8)], routes=_BOTH_LANES),
    WaveConfig.mixed("FINAL STAND", [("dragon", 4), ("mini_dragon", 6), ("demon", 8)], routes=_BOTH_LANES),
]


@dataclass
class DifficultyTier:
    level: str
    name: str
    spawn_interval: float       # seconds between spawns inside a wave
    speed_mult: float
    health_mult: float
    starting_gold: int
    starting_health: int
    wave_break: float           # seconds between a cleared wave and the next
    waves: list[WaveConfig] = field(default_factory=list)


DIFFICULTY_TIERS: dict[str, DifficultyTier] = {
    "1": DifficultyTier("1", "Meadow", spawn_interval=6.0, speed_mult=1.0, health_mult=1.0,
                        starting_gold=200, starting_health=20, wave_break=5.0, waves=MEADOW_WAVES),
    "2": DifficultyTier("2", "Forest", spawn_interval=4.0, speed_mult=1.15, health_mult=1.25,
                        starting_gold=150, starting_health=15, wave_break=4.0, waves=FOREST_WAVES),
    "3": DifficultyTier("3", "Volcano", spawn_interval=2.5, speed_mult=1.3, health_mult=1.5,
                        starting_gold=120, starting_health=10, wave_break=3.0, waves=VOLCANO_WAVES),
}

DEFAULT_LEVEL = "1"


def get_difficulty(level: str | int | None) -> DifficultyTier:
    """Return the tier for *level*, falling back to level "1"."""
    key = str(level) if level is not None else DEFAULT_LEVEL
    tier = DIFFICULTY_TIERS.get(key)
    if tier is None:
        logger.warning(f"Unknown difficulty level '{level}', using '{DEFAULT_LEVEL}'")
        tier = DIFFICULTY_TIERS[DEFAULT_LEVEL]
    return tier
