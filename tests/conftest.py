"""Shared test fixtures for handsfree."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import numpy as np
import pytest

from core.config import EngineConfig
from core.engine.engine import GestureEngine
from core.types import (
    FINGERTIPS,
    INDEX_TIP,
    NUM_HAND_LANDMARKS,
    PALM_CENTER,
    THUMB_TIP,
    FrameSourceError,
    HandFrame,
    Mode,
)

# Fingertip directions (index, middle, ring, pinky), fanned upwards.
_FINGER_DIRECTIONS = np.array([[-0.3, -1.0], [0.0, -1.0], [0.3, -1.0], [0.6, -1.0]])
_THUMB_DIRECTION = np.array([-1.0, -0.2])


def build_hand(
    palm: tuple[float, float] = (0.5, 0.6),
    finger_dist: float = 0.35,
    thumb_dist: float = 0.3,
    pinch: bool = False,
    timestamp_ms: float | None = None,
) -> HandFrame:
    """Synthetic hand with fingertips at a given distance from the palm."""
    lm = np.zeros((NUM_HAND_LANDMARKS, 3), dtype=np.float32)
    palm_xy = np.array(palm)
    lm[:, :2] = palm_xy

    for tip, direction in zip(FINGERTIPS, _FINGER_DIRECTIONS):
        unit = direction / np.linalg.norm(direction)
        lm[tip, :2] = palm_xy + unit * finger_dist
        # Intermediate joints sit between the palm and the tip.
        for joint, frac in zip(range(tip - 3, tip), (0.25, 0.5, 0.75)):
            lm[joint, :2] = palm_xy + unit * finger_dist * frac

    thumb_unit = _THUMB_DIRECTION / np.linalg.norm(_THUMB_DIRECTION)
    lm[THUMB_TIP, :2] = palm_xy + thumb_unit * thumb_dist
    if pinch:
        lm[THUMB_TIP, :2] = lm[INDEX_TIP, :2] + np.array([0.01, 0.0])
    for joint, frac in zip(range(1, THUMB_TIP), (0.25, 0.5, 0.75)):
        lm[joint, :2] = lm[PALM_CENTER, :2] + (lm[THUMB_TIP, :2] - lm[PALM_CENTER, :2]) * frac

    return HandFrame(landmarks=lm, timestamp_ms=timestamp_ms, confidence=0.9)


class StubSource:
    """In-memory PoseSource: images are HandFrames (or None) passed through."""

    def __init__(
        self,
        frames: Sequence[Any] = (),
        delay: float = 0.0,
        fail_open: bool = False,
        fail_estimate: bool = False,
    ) -> None:
        self._frames = list(frames)
        self._delay = delay
        self._fail_open = fail_open
        self._fail_estimate = fail_estimate
        self.open_calls = 0
        self.close_calls = 0

    async def open(self) -> None:
        self.open_calls += 1
        if self._fail_open:
            raise FrameSourceError("camera permission denied")

    async def frames(self) -> AsyncIterator[Any]:
        for frame in self._frames:
            yield frame

    async def estimate(self, image: Any) -> HandFrame | None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail_estimate:
            raise FrameSourceError("pose backend crashed")
        return image

    def close(self) -> None:
        self.close_calls += 1


class FrameClock:
    """Deterministic ~30 fps millisecond clock."""

    def __init__(self, step_ms: float = 1000.0 / 30.0) -> None:
        self._now = 0.0
        self._step = step_ms

    def __call__(self) -> float:
        self._now += self._step
        return self._now


@pytest.fixture
def make_hand() -> Callable[..., HandFrame]:
    return build_hand


@pytest.fixture
def fist_frame() -> HandFrame:
    """Fingertips and thumb folded onto the palm, thumb away from the index tip."""
    return build_hand(finger_dist=0.1, thumb_dist=0.15)


@pytest.fixture
def open_frame() -> HandFrame:
    return build_hand(finger_dist=0.35, thumb_dist=0.3)


@pytest.fixture
def pinch_frame() -> HandFrame:
    return build_hand(finger_dist=0.35, thumb_dist=0.3, pinch=True)


@pytest.fixture
def stub_source() -> type[StubSource]:
    return StubSource


@pytest.fixture
def make_engine() -> Callable[..., GestureEngine]:
    """Build and start an engine on a StubSource."""

    def _make(
        config: EngineConfig | None = None,
        mode: Mode = Mode.SCAN,
        source: StubSource | None = None,
    ) -> GestureEngine:
        engine = GestureEngine(config or EngineConfig(), clock=FrameClock())
        asyncio.run(engine.start(source or StubSource()))
        engine.set_mode(mode)
        return engine

    return _make
