"""Engine module — lifecycle, mode control, backpressure and event emission."""

from core.engine.engine import EngineStats, GestureEngine
from core.engine.events import EventBus

__all__ = ["EngineStats", "EventBus", "GestureEngine"]
