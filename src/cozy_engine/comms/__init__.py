"""Internal messaging for the simulation engine."""
from .event_bus import EventBus, drain

__all__ = ["EventBus", "drain"]
