"""Palm-driven cursor with exponential smoothing.

Maps the palm center (landmark 0) from the usable central part of the
camera image to full screen extent, then low-pass filters it so the cursor
does not jitter with landmark noise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.config import CursorConfig
from core.types import CursorSample

if TYPE_CHECKING:
    from core.types import HandFrame


class CursorSmoother:
    """Exponentially smoothed screen cursor.

    The first target seen after construction or ``reset()`` seeds the
    filter, so the cursor never sweeps in from (0, 0).

    Usage:
        >>> smoother = CursorSmoother(CursorConfig(screen_width=1280, screen_height=720))
        >>> sample = smoother.update(hand_frame)
        >>> print(sample.x, sample.y)
    """

    def __init__(self, config: CursorConfig | None = None) -> None:
        self._config = config or CursorConfig()
        self._width = float(self._config.screen_width)
        self._height = float(self._config.screen_height)
        self._x = 0.0
        self._y = 0.0
        self._seeded = False

    @property
    def config(self) -> CursorConfig:
        return self._config

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    @property
    def position(self) -> tuple[float, float] | None:
        """Current smoothed position, or None before the first frame."""
        if not self._seeded:
            return None
        return self._x, self._y

    def resize(self, width: int, height: int) -> None:
        """Change the screen extent used for mapping."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Screen size must be positive, got {width}x{height}")
        self._width = float(width)
        self._height = float(height)

    def target(self, norm_x: float, norm_y: float) -> tuple[float, float]:
        """Map a normalized palm position to a clamped screen coordinate."""
        margin = self._config.margin
        span = 1.0 - 2.0 * margin
        if self._config.mirror_x:
            norm_x = 1.0 - norm_x
        tx = (norm_x - margin) / span * self._width
        ty = (norm_y - margin) / span * self._height
        return (
            max(0.0, min(self._width, tx)),
            max(0.0, min(self._height, ty)),
        )

    def update(self, frame: HandFrame) -> CursorSample:
        """Advance the filter with one frame and return the smoothed sample."""
        raw_x, raw_y = float(frame.palm[0]), float(frame.palm[1])
        tx, ty = self.target(raw_x, raw_y)

        if not self._seeded:
            self._x, self._y = tx, ty
            self._seeded = True
        else:
            alpha = self._config.smoothing
            self._x += (tx - self._x) * alpha
            self._y += (ty - self._y) * alpha

        return CursorSample(x=self._x, y=self._y, raw_x=raw_x, raw_y=raw_y)

    def reset(self) -> None:
        """Forget the filter state; the next frame re-seeds it."""
        self._x = 0.0
        self._y = 0.0
        self._seeded = False
