"""Gestures module — grab/release state machine and trajectory detectors."""

from core.gestures.grab import GrabDetector
from core.gestures.history import PositionHistory, PositionSample
from core.gestures.linear import Direction, LinearGestureDetector, swipe_up_detector, wave_detector
from core.gestures.state import GestureState

__all__ = [
    "Direction",
    "GestureState",
    "GrabDetector",
    "LinearGestureDetector",
    "PositionHistory",
    "PositionSample",
    "swipe_up_detector",
    "wave_detector",
]
