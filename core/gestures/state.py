"""Explicit debounce state shared by the gesture detectors."""

from __future__ import annotations

from dataclasses import dataclass

from core.types import DetectorPhase


@dataclass(slots=True)
class GestureState:
    """Hold / cooldown / latch counters of one detector.

    The phase is derived from the counters: any remaining cooldown means
    COOLDOWN, a partial hold means HOLDING, otherwise IDLE. While cooling
    down the hold counter is never advanced.

    Attributes:
        hold: Consecutive matching frames seen so far.
        cooldown: Frames left before detection resumes.
        latched: The gesture fired and has not been released yet.
    """
    hold: int = 0
    cooldown: int = 0
    latched: bool = False

    @property
    def phase(self) -> DetectorPhase:
        if self.cooldown > 0:
            return DetectorPhase.COOLDOWN
        if self.hold > 0:
            return DetectorPhase.HOLDING
        return DetectorPhase.IDLE

    def tick_cooldown(self) -> bool:
        """Consume one cooldown frame. Returns True if the frame is suppressed."""
        if self.cooldown > 0:
            self.cooldown -= 1
            return True
        return False

    def advance(self, hold_frames: int) -> bool:
        """Count a matching frame. Returns True once the hold threshold is met."""
        self.hold += 1
        return self.hold >= hold_frames

    def fire(self, cooldown_frames: int, latch: bool = True) -> None:
        """Enter cooldown after an emitted event."""
        self.hold = 0
        self.cooldown = cooldown_frames
        if latch:
            self.latched = True

    def miss(self) -> bool:
        """Count a non-matching frame.

        Returns True exactly on the latched -> released edge.
        """
        released = self.latched
        self.latched = False
        self.hold = 0
        return released

    def rearm(self) -> None:
        """Drop partial holds and the latch; cooldown keeps running."""
        self.hold = 0
        self.latched = False

    def reset(self) -> None:
        self.hold = 0
        self.cooldown = 0
        self.latched = False
