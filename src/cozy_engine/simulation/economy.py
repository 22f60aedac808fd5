"""Economy — the one owner of gold, score, and player health.

Nothing else writes these numbers.  Every mutation goes through an explicit
operation that validates its input and publishes ``economy_changed`` so the
HUD can refresh without polling.

Gold never goes negative: ``debit`` refuses rather than overdraws.  Health
clamps at zero; the engine reads ``is_depleted`` to declare defeat.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from cozy_engine.comms.event_bus import EventBus


class Economy:
    """Gold, score, and player health for one game session."""

    def __init__(
        self,
        event_bus: EventBus,
        starting_gold: int = 200,
        starting_health: int = 20,
    ) -> None:
        self._event_bus = event_bus
        self._starting_gold = starting_gold
        self._starting_health = starting_health
        self.gold: int = starting_gold
        self.score: int = 0
        self.health: int = starting_health
        self.max_health: int = starting_health

    # -- Gold ------------------------------------------------------------------

    def can_afford(self, amount: int) -> bool:
        return 0 <= amount <= self.gold

    def credit(self, amount: int, reason: str = "") -> bool:
        if amount < 0:
            logger.warning(f"Refusing negative credit {amount} ({reason})")
            return False
        self.gold += amount
        self._publish("gold", amount, reason)
        return True

    def debit(self, amount: int, reason: str = "") -> bool:
        """Spend *amount* gold.  Returns False, changing nothing, if unaffordable."""
        if amount < 0:
            logger.warning(f"Refusing negative debit {amount} ({reason})")
            return False
        if amount > self.gold:
            return False
        self.gold -= amount
        self._publish("gold", -amount, reason)
        return True

    # -- Score / health --------------------------------------------------------

    def add_score(self, points: int, reason: str = "") -> None:
        if points <= 0:
            return
        self.score += points
        self._publish("score", points, reason)

    def damage_player(self, amount: int, reason: str = "") -> int:
        """Reduce player health by *amount* (clamped at 0).  Returns health left."""
        if amount <= 0:
            return self.health
        before = self.health
        self.health = max(0, self.health - amount)
        self._publish("health", self.health - before, reason)
        return self.health

    @property
    def is_depleted(self) -> bool:
        return self.health <= 0

    # -- Lifecycle -------------------------------------------------------------

    def reset(self, starting_gold: int | None = None, starting_health: int | None = None) -> None:
        if starting_gold is not None:
            self._starting_gold = starting_gold
        if starting_health is not None:
            self._starting_health = starting_health
        self.gold = self._starting_gold
        self.score = 0
        self.health = self._starting_health
        self.max_health = self._starting_health
        self._publish("reset", 0, "reset")

    def to_dict(self) -> dict:
        return {
            "gold": self.gold,
            "score": self.score,
            "health": self.health,
            "max_health": self.max_health,
        }

    def _publish(self, field: str, delta: int, reason: str) -> None:
        self._event_bus.publish("economy_changed", {
            **self.to_dict(),
            "field": field,
            "delta": delta,
            "reason": reason,
        })
