"""Reversible player actions and the linear undo/redo stack.

Architecture
------------
Each player action that changes the board is a Command with ``execute()``
and ``undo()``.  Both return a bool: False means nothing changed, and the
stack leaves its own state untouched in that case.

Commands keep only a tower_id, never a copy of the Tower.  All mutation goes
through TowerManager (create/remove/set_level) and Economy (credit/debit),
so undo and redo always act on the canonical instance and the gold ledger
stays consistent.

Gold flow:
  PlaceTowerCommand   first execute: caller already paid at click time
                      redo:          pays again, refuses if gold is short
                      undo:          removes the tower, refunds its cost
  UpgradeTowerCommand execute/redo:  pays the upgrade cost, levels up
                      undo:          restores the previous level, refunds

Stack invariant: executing a new command discards the whole redo history.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .tower import TOWER_PROFILES, resolve_tower_kind

if TYPE_CHECKING:
    from .economy import Economy
    from .paths import Point
    from .tower import TowerKind, TowerManager


class Command(ABC):
    """A reversible unit of player action."""

    @abstractmethod
    def execute(self) -> bool:
        """Apply the action.  Returns False if nothing changed."""

    @abstractmethod
    def undo(self) -> bool:
        """Reverse the action.  Returns False if nothing changed."""

    def describe(self) -> dict:
        return {"command": type(self).__name__}


class PlaceTowerCommand(Command):
    """Create a tower.  Undo removes it and refunds the purchase."""

    def __init__(
        self,
        manager: TowerManager,
        economy: Economy,
        kind: str | TowerKind,
        position: Point,
        prepaid: bool = True,
    ) -> None:
        self._manager = manager
        self._economy = economy
        self.kind = resolve_tower_kind(kind)
        self.position = (float(position[0]), float(position[1]))
        self.cost = TOWER_PROFILES[self.kind].cost
        self.tower_id: str | None = None
        # True while the gold for the next execute() is already spent
        self._prepaid = prepaid
        # Combat state of the tower at undo time, restored on redo
        self._last_shot_time: float | None = None
        self._shots_fired = 0
        self._kills = 0

    def execute(self) -> bool:
        charge = not self._prepaid
        if charge and not self._economy.can_afford(self.cost):
            return False
        tower = self._manager.create(
            self.kind,
            self.position,
            tower_id=self.tower_id,
            last_shot_time=self._last_shot_time,
            shots_fired=self._shots_fired,
            kills=self._kills,
        )
        if tower is None:
            return False
        if charge:
            self._economy.debit(self.cost, f"place {self.kind.value}")
        self._prepaid = False
        self.tower_id = tower.tower_id
        return True

    def undo(self) -> bool:
        if self.tower_id is None:
            return False
        tower = self._manager.remove(self.tower_id)
        if tower is None:
            return False
        self._last_shot_time = tower.last_shot_time
        self._shots_fired = tower.shots_fired
        self._kills = tower.kills
        self._economy.credit(self.cost, f"undo place {self.kind.value}")
        return True

    def describe(self) -> dict:
        return {
            "command": "place_tower",
            "tower_id": self.tower_id,
            "kind": self.kind.value,
            "position": {"x": self.position[0], "y": self.position[1]},
            "cost": self.cost,
        }


class UpgradeTowerCommand(Command):
    """Raise a tower one level.  Undo restores the previous level."""

    def __init__(self, manager: TowerManager, economy: Economy, tower_id: str) -> None:
        self._manager = manager
        self._economy = economy
        self.tower_id = tower_id
        self.prev_level: int | None = None
        self.cost_paid = 0

    def execute(self) -> bool:
        tower = self._manager.get(self.tower_id)
        if tower is None:
            return False
        cost = tower.upgrade_cost
        if not self._economy.debit(cost, f"upgrade {self.tower_id}"):
            return False
        self.prev_level = tower.level
        self.cost_paid = cost
        self._manager.set_level(self.tower_id, tower.level + 1)
        return True

    def undo(self) -> bool:
        if self.prev_level is None:
            return False
        if not self._manager.set_level(self.tower_id, self.prev_level):
            return False
        self._economy.credit(self.cost_paid, f"undo upgrade {self.tower_id}")
        return True

    def describe(self) -> dict:
        return {
            "command": "upgrade_tower",
            "tower_id": self.tower_id,
            "prev_level": self.prev_level,
            "cost": self.cost_paid,
        }


class UndoRedoStack:
    """Linear undo/redo history of executed commands."""

    def __init__(self) -> None:
        self._undo: list[Command] = []
        self._redo: list[Command] = []

    def execute(self, command: Command) -> bool:
        if not command.execute():
            return False
        self._undo.append(command)
        self._redo.clear()
        return True

    def undo(self) -> bool:
        if not self._undo:
            return False
        command = self._undo[-1]
        if not command.undo():
            return False
        self._redo.append(self._undo.pop())
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        command = self._redo[-1]
        if not command.execute():
            return False
        self._undo.append(self._redo.pop())
        return True

    def peek_undo(self) -> Command | None:
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> Command | None:
        return self._redo[-1] if self._redo else None

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
