"""Trajectory gestures from a sliding window of palm positions.

Wave and swipe-up are the same classifier with different parameters: the
oldest and newest samples of a full window are compared, and the gesture
fires when the hand travelled far enough along one axis, stayed steady on
the other, and did it quickly enough.
"""

from __future__ import annotations

from enum import Enum

from loguru import logger

from core.config import LinearGestureConfig, default_swipe_config, default_wave_config
from core.gestures.history import PositionHistory, PositionSample
from core.gestures.state import GestureState
from core.types import EventKind

# Float32 landmarks make exact-threshold trajectories land a hair off.
_EPS = 1e-6


class Direction(Enum):
    HORIZONTAL = "horizontal"  # either way along x
    UP = "up"  # towards the top of the image (y decreasing)


class LinearGestureDetector:
    """Sliding-window displacement classifier with its own cooldown.

    Usage:
        >>> wave = LinearGestureDetector(EventKind.WAVE, Direction.HORIZONTAL, default_wave_config())
        >>> if wave.update(0.42, 0.5, timestamp_ms):
        ...     print("wave!")
    """

    def __init__(
        self,
        kind: EventKind,
        direction: Direction,
        config: LinearGestureConfig,
    ) -> None:
        self._kind = kind
        self._direction = direction
        self._config = config
        self._history = PositionHistory(max_len=config.window)
        self._state = GestureState()

    @property
    def kind(self) -> EventKind:
        return self._kind

    @property
    def config(self) -> LinearGestureConfig:
        return self._config

    @property
    def history(self) -> PositionHistory:
        return self._history

    @property
    def state(self) -> GestureState:
        return self._state

    def displacement(self, oldest: PositionSample, newest: PositionSample) -> tuple[float, float]:
        """Return (along-axis, cross-axis) displacement between two samples."""
        dx = newest.x - oldest.x
        dy = newest.y - oldest.y
        if self._direction is Direction.HORIZONTAL:
            return abs(dx), abs(dy)
        return -dy, abs(dx)

    def matches(self, oldest: PositionSample, newest: PositionSample) -> bool:
        along, cross = self.displacement(oldest, newest)
        elapsed = newest.timestamp_ms - oldest.timestamp_ms
        return (
            along + _EPS >= self._config.primary_threshold
            and cross < self._config.cross_limit
            and elapsed <= self._config.max_elapsed_ms + _EPS
        )

    def update(self, x: float, y: float, timestamp_ms: float) -> bool:
        """Record one palm position and evaluate the window.

        Returns:
            True if the gesture fired on this sample.
        """
        self._history.push(x, y, timestamp_ms)

        if self._state.tick_cooldown():
            return False
        if not self._history.is_full:
            return False

        oldest, newest = self._history.endpoints()
        if not self.matches(oldest, newest):
            return False

        along, cross = self.displacement(oldest, newest)
        logger.info(
            "{} detected | along={:.3f} cross={:.3f} elapsed={:.0f}ms",
            self._kind.name,
            along,
            cross,
            newest.timestamp_ms - oldest.timestamp_ms,
        )
        self._history.clear()
        self._state.fire(self._config.cooldown_frames, latch=False)
        return True

    def rearm(self) -> None:
        """Forget the trajectory; cooldown keeps running."""
        self._history.clear()
        self._state.rearm()

    def reset(self) -> None:
        self._history.clear()
        self._state.reset()


def wave_detector(config: LinearGestureConfig | None = None) -> LinearGestureDetector:
    """Horizontal wave, used to dismiss dialogs in scan mode."""
    return LinearGestureDetector(EventKind.WAVE, Direction.HORIZONTAL, config or default_wave_config())


def swipe_up_detector(config: LinearGestureConfig | None = None) -> LinearGestureDetector:
    """Upward swipe, used in browse mode."""
    return LinearGestureDetector(EventKind.SWIPE_UP, Direction.UP, config or default_swipe_config())
