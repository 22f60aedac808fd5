"""Simulation subsystem — paths, enemies, towers, waves, economy, undo/redo."""
from .combat import CombatSystem
from .commands import Command, PlaceTowerCommand, UndoRedoStack, UpgradeTowerCommand
from .difficulty import DIFFICULTY_TIERS, DifficultyTier, get_difficulty
from .economy import Economy
from .enemy import ENEMY_PROFILES, Enemy, EnemyKind, EnemyState
from .engine import ActionResult, GameEngine
from .paths import PathCatalog, PathLoadError, load_paths
from .tower import TOWER_PROFILES, ShotResult, Tower, TowerKind, TowerManager
from .waves import EventQueue, SpawnEntry, SpawnOrder, WaveConfig, WaveScheduler

__all__ = [
    "ActionResult",
    "CombatSystem",
    "Command",
    "DIFFICULTY_TIERS",
    "DifficultyTier",
    "ENEMY_PROFILES",
    "Economy",
    "Enemy",
    "EnemyKind",
    "EnemyState",
    "EventQueue",
    "GameEngine",
    "PathCatalog",
    "PathLoadError",
    "PlaceTowerCommand",
    "ShotResult",
    "SpawnEntry",
    "SpawnOrder",
    "TOWER_PROFILES",
    "Tower",
    "TowerKind",
    "TowerManager",
    "UndoRedoStack",
    "UpgradeTowerCommand",
    "WaveConfig",
    "WaveScheduler",
    "get_difficulty",
    "load_paths",
]
