"""Shared types, protocols, and constants for the handsfree core."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUM_HAND_LANDMARKS = 21
LANDMARK_DIMS = 3  # x, y, z

PALM_CENTER = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_TIP = 12
RING_TIP = 16
PINKY_TIP = 20

FINGERTIPS: tuple[int, ...] = (INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Mode(Enum):
    """Active gesture vocabulary."""
    SCAN = "scan"
    BROWSE = "browse"


class EventKind(Enum):
    CURSOR_MOVE = "cursor_move"
    GRAB = "grab"
    OPEN_HAND = "open_hand"
    WAVE = "wave"
    SWIPE_UP = "swipe_up"


class DetectorPhase(Enum):
    """Lifecycle of a debounced gesture detector."""
    IDLE = auto()
    HOLDING = auto()
    COOLDOWN = auto()


# ---------------------------------------------------------------------------
# Core Data Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HandFrame:
    """One frame of hand landmarks for the single tracked hand.

    Attributes:
        landmarks: (21, 3) array of [x, y, z]; x/y normalized to the image.
        timestamp_ms: Capture time in milliseconds (None = stamp on arrival).
        confidence: Detection confidence [0, 1].
    """
    landmarks: NDArray[np.float32]  # shape (21, 3)
    timestamp_ms: float | None = None
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if self.landmarks.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            raise ValueError(
                f"Expected shape ({NUM_HAND_LANDMARKS}, {LANDMARK_DIMS}), "
                f"got {self.landmarks.shape}"
            )

    @classmethod
    def from_points(
        cls,
        points: Any,
        timestamp_ms: float | None = None,
        confidence: float = 0.0,
    ) -> HandFrame:
        """Build a frame from any (21, 2|3) array-like of points.

        Points without a z component get z = 0.

        Raises:
            ValueError: If the points cannot form a 21-landmark frame.
        """
        arr = np.asarray(points, dtype=np.float32)
        if arr.ndim == 2 and arr.shape == (NUM_HAND_LANDMARKS, 2):
            arr = np.hstack([arr, np.zeros((NUM_HAND_LANDMARKS, 1), dtype=np.float32)])
        if arr.ndim != 2 or arr.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            raise ValueError(f"Expected 21 landmark points, got shape {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("Landmarks contain non-finite values")
        return cls(landmarks=arr, timestamp_ms=timestamp_ms, confidence=confidence)

    @property
    def palm(self) -> NDArray[np.float32]:
        """Palm-center reference point (landmark 0)."""
        return self.landmarks[PALM_CENTER]


@dataclass(frozen=True, slots=True)
class CursorSample:
    """Smoothed cursor position.

    Attributes:
        x: Screen x in pixels.
        y: Screen y in pixels.
        raw_x: Normalized palm x that produced this sample.
        raw_y: Normalized palm y that produced this sample.
    """
    x: float
    y: float
    raw_x: float
    raw_y: float


@dataclass(frozen=True, slots=True)
class GestureEvent:
    """A single emitted event.

    Attributes:
        kind: Event kind.
        timestamp_ms: Timestamp of the frame that produced the event.
        x: Cursor x at emission (pixels), if known.
        y: Cursor y at emission (pixels), if known.
    """
    kind: EventKind
    timestamp_ms: float
    x: float | None = None
    y: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value, "timestamp_ms": round(self.timestamp_ms, 3)}
        if self.x is not None and self.y is not None:
            data["x"] = round(self.x, 2)
            data["y"] = round(self.y, 2)
        return data


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class FrameSourceError(RuntimeError):
    """Raised by frame sources when the camera or pose backend fails."""


class EngineStartError(RuntimeError):
    """Raised when the engine cannot acquire its frame source."""


# ---------------------------------------------------------------------------
# Protocols (Interfaces)
# ---------------------------------------------------------------------------

class PoseSource(Protocol):
    """Protocol for landmark frame sources (camera + pose estimator)."""

    async def open(self) -> None:
        """Acquire the camera/stream and the pose backend."""
        ...

    def frames(self) -> AsyncIterator[Any]:
        """Yield raw images until the source is closed."""
        ...

    async def estimate(self, image: Any) -> HandFrame | None:
        """Run pose estimation on one image; None when no hand is found."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...
