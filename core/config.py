"""Tunables for the gesture engine.

Defaults are the reference values of the hands-free library UI, tuned for a
640x480 webcam delivering roughly 30 frames per second.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class CursorConfig:
    """Cursor mapping and smoothing.

    Attributes:
        screen_width: Target screen width in pixels.
        screen_height: Target screen height in pixels.
        margin: Normalized border excluded from the usable range on each edge;
            [margin, 1 - margin] covers the full screen.
        smoothing: Exponential smoothing factor in (0, 1]. Higher is more
            responsive, lower is smoother but laggier.
        mirror_x: Mirror the horizontal axis (selfie cameras).
    """
    screen_width: int = 1920
    screen_height: int = 1080
    margin: float = 0.1
    smoothing: float = 0.65
    mirror_x: bool = False

    def __post_init__(self) -> None:
        if not 0.0 < self.smoothing <= 1.0:
            raise ValueError(f"smoothing must be in (0, 1], got {self.smoothing}")
        if not 0.0 <= self.margin < 0.5:
            raise ValueError(f"margin must be in [0, 0.5), got {self.margin}")
        if self.screen_width <= 0 or self.screen_height <= 0:
            raise ValueError(
                f"Screen size must be positive, got {self.screen_width}x{self.screen_height}"
            )


@dataclass(frozen=True, slots=True)
class GrabConfig:
    """Fist (browse) and pinch (scan) grab policies.

    Attributes:
        closed_threshold: Palm-to-fingertip distance below which a finger
            counts as closed (T).
        thumb_factor: Thumb is closed below thumb_factor * T.
        average_factor: Mean fingertip distance must stay below average_factor * T.
        min_fingers_closed: Fingers (of 4) that must be closed for a fist.
        pinch_threshold: Thumb-to-index distance for a pinch.
        hold_frames: Consecutive matching frames before GRAB fires.
        cooldown_frames: Frames suppressed after a fist GRAB.
        pinch_cooldown_frames: Frames suppressed after a pinch GRAB.
        use_depth: Include z in distance computations.
    """
    closed_threshold: float = 0.22
    thumb_factor: float = 1.3
    average_factor: float = 1.1
    min_fingers_closed: int = 3
    pinch_threshold: float = 0.045
    hold_frames: int = 3
    cooldown_frames: int = 25
    pinch_cooldown_frames: int = 25
    use_depth: bool = True

    def __post_init__(self) -> None:
        if self.hold_frames < 1:
            raise ValueError(f"hold_frames must be >= 1, got {self.hold_frames}")
        if self.cooldown_frames < 0 or self.pinch_cooldown_frames < 0:
            raise ValueError("Cooldowns must be non-negative")
        if not 1 <= self.min_fingers_closed <= 4:
            raise ValueError(f"min_fingers_closed must be in [1, 4], got {self.min_fingers_closed}")
        if self.closed_threshold <= 0 or self.pinch_threshold <= 0:
            raise ValueError("Distance thresholds must be positive")


@dataclass(frozen=True, slots=True)
class LinearGestureConfig:
    """Sliding-window displacement classifier.

    Attributes:
        window: Number of samples compared (oldest vs newest).
        primary_threshold: Minimum displacement along the gesture axis.
        cross_limit: Displacement on the other axis must stay below this.
        max_elapsed_ms: Oldest-to-newest time must not exceed this.
        cooldown_frames: Frames suppressed after a fire.
    """
    window: int
    primary_threshold: float
    cross_limit: float
    max_elapsed_ms: float
    cooldown_frames: int

    def __post_init__(self) -> None:
        if self.window < 2:
            raise ValueError(f"window must be >= 2, got {self.window}")
        if self.cooldown_frames < 0:
            raise ValueError(f"cooldown_frames must be >= 0, got {self.cooldown_frames}")
        if self.max_elapsed_ms <= 0:
            raise ValueError(f"max_elapsed_ms must be positive, got {self.max_elapsed_ms}")


def default_wave_config() -> LinearGestureConfig:
    return LinearGestureConfig(
        window=12,
        primary_threshold=0.35,
        cross_limit=0.12,
        max_elapsed_ms=600.0,
        cooldown_frames=75,
    )


def default_swipe_config() -> LinearGestureConfig:
    return LinearGestureConfig(
        window=8,
        primary_threshold=0.25,
        cross_limit=0.15,
        max_elapsed_ms=400.0,
        cooldown_frames=30,
    )


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Configuration for the gesture engine.

    Attributes:
        cursor: Cursor mapping and smoothing.
        grab: Grab/release policies.
        wave: Horizontal wave detector (scan mode).
        swipe_up: Upward swipe detector (browse mode).
        hand_loss_reset_frames: Consecutive absent frames after which
            histories and hold state are re-armed (0 = never).
        reset_on_mode_change: Re-arm histories and hold state on mode change.
    """
    cursor: CursorConfig = field(default_factory=CursorConfig)
    grab: GrabConfig = field(default_factory=GrabConfig)
    wave: LinearGestureConfig = field(default_factory=default_wave_config)
    swipe_up: LinearGestureConfig = field(default_factory=default_swipe_config)
    hand_loss_reset_frames: int = 15
    reset_on_mode_change: bool = True

    def __post_init__(self) -> None:
        if self.hand_loss_reset_frames < 0:
            raise ValueError(
                f"hand_loss_reset_frames must be >= 0, got {self.hand_loss_reset_frames}"
            )
