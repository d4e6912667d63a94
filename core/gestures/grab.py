"""Grab / release detection.

Two geometric policies share one hold-fire-cooldown state machine:

* browse mode: closed fist (fingertips and thumb folded onto the palm),
  with an edge-triggered OPEN_HAND when the fist opens again;
* scan mode: thumb-to-index pinch, no release event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from core.config import GrabConfig
from core.gestures.state import GestureState
from core.landmarks.geometry import HandGeometry
from core.types import EventKind, Mode

if TYPE_CHECKING:
    from core.types import HandFrame


class GrabDetector:
    """Debounced grab detector with fist and pinch policies.

    Usage:
        >>> detector = GrabDetector(GrabConfig(hold_frames=2))
        >>> for frame in frames:
        ...     for kind in detector.update(frame, Mode.BROWSE):
        ...         print(kind)  # EventKind.GRAB / EventKind.OPEN_HAND
    """

    def __init__(self, config: GrabConfig | None = None) -> None:
        self._config = config or GrabConfig()
        self._geometry = HandGeometry(use_depth=self._config.use_depth)
        self._state = GestureState()

    @property
    def config(self) -> GrabConfig:
        return self._config

    @property
    def state(self) -> GestureState:
        return self._state

    def is_fist(self, frame: HandFrame) -> bool:
        """Classify a closed fist from palm-to-fingertip distances."""
        cfg = self._config
        distances = self._geometry.fingertip_palm_distances(frame)
        closed = int((distances < cfg.closed_threshold).sum())
        thumb_closed = self._geometry.thumb_palm_distance(frame) < cfg.closed_threshold * cfg.thumb_factor
        compact = float(distances.mean()) < cfg.closed_threshold * cfg.average_factor

        logger.trace(
            "Fist check | closed={} thumb={} mean={:.3f} hold={}",
            closed,
            thumb_closed,
            float(distances.mean()),
            self._state.hold,
        )
        return closed >= cfg.min_fingers_closed and thumb_closed and compact

    def is_pinch(self, frame: HandFrame) -> bool:
        return self._geometry.pinch_distance(frame) < self._config.pinch_threshold

    def update(self, frame: HandFrame, mode: Mode) -> list[EventKind]:
        """Advance the state machine with one present frame.

        Args:
            frame: Landmarks of the tracked hand.
            mode: Active mode; selects the fist or pinch policy.

        Returns:
            Events fired on this frame (at most one).
        """
        if self._state.tick_cooldown():
            return []

        if mode is Mode.BROWSE:
            return self._update_fist(frame)
        return self._update_pinch(frame)

    def _update_fist(self, frame: HandFrame) -> list[EventKind]:
        if self.is_fist(frame):
            if self._state.advance(self._config.hold_frames):
                self._state.fire(self._config.cooldown_frames, latch=True)
                logger.info("GRAB (fist) | cooldown={}", self._config.cooldown_frames)
                return [EventKind.GRAB]
            return []

        if self._state.miss():
            logger.info("OPEN_HAND (fist released)")
            return [EventKind.OPEN_HAND]
        return []

    def _update_pinch(self, frame: HandFrame) -> list[EventKind]:
        if self.is_pinch(frame):
            if self._state.advance(self._config.hold_frames):
                self._state.fire(self._config.pinch_cooldown_frames, latch=False)
                logger.info("GRAB (pinch) | cooldown={}", self._config.pinch_cooldown_frames)
                return [EventKind.GRAB]
            return []

        self._state.hold = 0
        return []

    def rearm(self) -> None:
        """Drop partial holds and the fist latch without touching the cooldown."""
        self._state.rearm()

    def reset(self) -> None:
        self._state.reset()
