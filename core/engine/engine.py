"""Real-time gesture engine.

Orchestrates the per-frame flow: landmark frame → cursor smoothing →
{grab detector, wave detector, swipe detector} → events on the bus.

One engine instance owns all state of a tracking session. ``start`` acquires
the frame source, ``stop`` releases it and wipes every counter, history and
smoothing accumulator, so a stopped engine can be started again cleanly.

At most one frame is in flight at any time: frames delivered while the
previous one is still being processed are dropped, never queued.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

import numpy as np
from loguru import logger

from core.config import EngineConfig
from core.cursor.smoother import CursorSmoother
from core.engine.events import EventBus, EventHandler
from core.gestures.grab import GrabDetector
from core.gestures.linear import LinearGestureDetector, swipe_up_detector, wave_detector
from core.types import (
    EngineStartError,
    EventKind,
    GestureEvent,
    HandFrame,
    Mode,
    PoseSource,
)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class EngineStats:
    """Per-session counters.

    Attributes:
        processed: Frames that went through the detectors.
        absent: Frames without a usable hand.
        dropped: Frames rejected because another frame was in flight.
        events: Emitted events per kind.
    """
    processed: int = 0
    absent: int = 0
    dropped: int = 0
    events: Counter[EventKind] = field(default_factory=Counter)


class GestureEngine:
    """Gesture recognition and cursor control for a single tracked hand.

    Usage:
        >>> engine = GestureEngine(EngineConfig())
        >>> engine.on_cursor_move(lambda x, y: print(x, y))
        >>> engine.on_grab(lambda: print("grab"))
        >>> await engine.start(source)
        >>> engine.set_mode(Mode.BROWSE)
        >>> await engine.run()  # pump frames until the source ends
        >>> engine.stop()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Engine tunables (defaults to reference values).
            clock: Millisecond clock used to stamp frames without a timestamp.
        """
        self._config = config or EngineConfig()
        self._clock = clock or _monotonic_ms
        self._bus = EventBus()

        self._smoother = CursorSmoother(self._config.cursor)
        self._grab = GrabDetector(self._config.grab)
        self._wave: LinearGestureDetector = wave_detector(self._config.wave)
        self._swipe: LinearGestureDetector = swipe_up_detector(self._config.swipe_up)

        self._mode = Mode.SCAN
        self._stats = EngineStats()
        self._absent_run = 0
        self._last_ts = float("-inf")

        self._source: PoseSource | None = None
        self._running = False
        self._busy = False
        self._session = 0
        self._frame_lock = Lock()

    # ----- Properties -----

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def stats(self) -> EngineStats:
        return self._stats

    @property
    def cursor(self) -> tuple[float, float] | None:
        """Last smoothed cursor position, or None before the first hand."""
        return self._smoother.position

    @property
    def grab_detector(self) -> GrabDetector:
        return self._grab

    @property
    def wave(self) -> LinearGestureDetector:
        return self._wave

    @property
    def swipe_up(self) -> LinearGestureDetector:
        return self._swipe

    # ----- Subscriptions -----

    def subscribe(self, kind: EventKind | None, handler: EventHandler) -> Callable[[], None]:
        """Register a raw event handler (kind=None receives every event)."""
        return self._bus.subscribe(kind, handler)

    def on_cursor_move(self, callback: Callable[[float, float], None]) -> Callable[[], None]:
        return self._bus.subscribe(
            EventKind.CURSOR_MOVE,
            lambda ev: callback(ev.x, ev.y),  # type: ignore[arg-type]
        )

    def on_grab(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._bus.subscribe(EventKind.GRAB, lambda _ev: callback())

    def on_open_hand(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._bus.subscribe(EventKind.OPEN_HAND, lambda _ev: callback())

    def on_wave(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._bus.subscribe(EventKind.WAVE, lambda _ev: callback())

    def on_swipe_up(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._bus.subscribe(EventKind.SWIPE_UP, lambda _ev: callback())

    # ----- Control surface -----

    async def start(self, source: PoseSource) -> None:
        """Acquire the frame source and begin a fresh tracking session.

        Raises:
            RuntimeError: If the engine is already running.
            EngineStartError: If the source cannot be opened.
        """
        if self._running:
            raise RuntimeError("Engine already running. Call stop() first.")

        logger.info("Starting gesture engine...")
        self._reset_state()

        try:
            await source.open()
        except Exception as exc:
            logger.error("Frame source failed to start: {}", exc)
            self._close_source(source)
            self._reset_state()
            raise EngineStartError(f"Frame source failed to start: {exc}") from exc

        self._source = source
        self._running = True
        self._session += 1
        logger.info(
            "Gesture engine started | mode={} | screen={}x{}",
            self._mode.value,
            self._config.cursor.screen_width,
            self._config.cursor.screen_height,
        )

    def stop(self) -> None:
        """Release the frame source and discard all session state. Idempotent."""
        source, self._source = self._source, None
        was_running = self._running
        self._running = False
        self._session += 1

        if source is not None:
            self._close_source(source)

        self._reset_state()
        if was_running:
            logger.info("Gesture engine stopped.")

    def set_mode(self, mode: Mode | str) -> None:
        """Switch the active gesture vocabulary."""
        mode = Mode(mode)
        if mode is self._mode:
            return

        previous, self._mode = self._mode, mode
        if self._config.reset_on_mode_change:
            self._rearm_detectors()
        logger.info("Mode changed | {} -> {}", previous.value, mode.value)

    def resize(self, width: int, height: int) -> None:
        """Update the screen extent the cursor is mapped to."""
        self._smoother.resize(width, height)

    # ----- Frame handling -----

    def process(self, frame: HandFrame | Any | None) -> list[GestureEvent]:
        """Run the synchronous per-frame work on one landmark frame.

        Args:
            frame: A HandFrame, a (21, 3) array-like of points, or None when
                no hand was detected. Malformed input counts as no hand.

        Returns:
            Events emitted for this frame (empty if absent or dropped).

        Raises:
            RuntimeError: If the engine is not started.
        """
        if not self._running:
            raise RuntimeError("Engine not started. Call start() first.")

        if not self._frame_lock.acquire(blocking=False):
            self._stats.dropped += 1
            logger.debug("Frame dropped: previous frame still processing")
            return []

        try:
            hand = self._coerce(frame)
            if hand is None:
                self._on_absent()
                return []
            return self._on_hand(hand)
        finally:
            self._frame_lock.release()

    async def submit(self, image: Any) -> bool:
        """Estimate pose for one raw image and process the result.

        Covers the asynchronous pose round trip. A call arriving while
        another one is in flight is dropped.

        Returns:
            True if the frame was processed, False if it was dropped or failed.
        """
        if not self._running or self._source is None:
            return False
        if self._busy:
            self._stats.dropped += 1
            logger.debug("Frame dropped: pose estimation in flight")
            return False

        self._busy = True
        session = self._session
        try:
            frame = await self._source.estimate(image)
            if session != self._session or not self._running:
                return False
            self.process(frame)
            return True
        except Exception:
            logger.exception("Error processing frame")
            return False
        finally:
            if session == self._session:
                self._busy = False

    async def run(self) -> None:
        """Pump frames from the source into ``submit`` until it is exhausted or stopped.

        Frames are not awaited one by one, so a slow estimator produces drops
        instead of a backlog.
        """
        if not self._running or self._source is None:
            raise RuntimeError("Engine not started. Call start() first.")

        session = self._session
        pending: set[asyncio.Task[bool]] = set()
        async for image in self._source.frames():
            if session != self._session:
                break
            task = asyncio.create_task(self.submit(image))
            pending.add(task)
            task.add_done_callback(pending.discard)
            await asyncio.sleep(0)

        if pending:
            await asyncio.gather(*pending)

    # ----- Internals -----

    def _coerce(self, frame: HandFrame | Any | None) -> HandFrame | None:
        if frame is None:
            return None
        if isinstance(frame, HandFrame):
            if not np.all(np.isfinite(frame.landmarks)):
                logger.debug("Malformed frame ignored: non-finite landmarks")
                return None
            return frame
        try:
            return HandFrame.from_points(frame)
        except (ValueError, TypeError) as exc:
            logger.debug("Malformed frame ignored: {}", exc)
            return None

    def _on_absent(self) -> None:
        self._stats.absent += 1
        self._absent_run += 1
        limit = self._config.hand_loss_reset_frames
        if limit and self._absent_run == limit:
            logger.debug("Hand lost for {} frames, re-arming detectors", limit)
            self._rearm_detectors()
            self._smoother.reset()

    def _on_hand(self, hand: HandFrame) -> list[GestureEvent]:
        self._absent_run = 0
        ts = hand.timestamp_ms if hand.timestamp_ms is not None else self._clock()
        if ts < self._last_ts:
            logger.debug("Frame timestamp went backwards ({} < {}), clamping", ts, self._last_ts)
            ts = self._last_ts
        self._last_ts = ts

        sample = self._smoother.update(hand)
        kinds = [EventKind.CURSOR_MOVE]

        if self._mode is Mode.SCAN:
            if self._wave.update(sample.raw_x, sample.raw_y, ts):
                kinds.append(EventKind.WAVE)
        elif self._swipe.update(sample.raw_x, sample.raw_y, ts):
            kinds.append(EventKind.SWIPE_UP)

        kinds.extend(self._grab.update(hand, self._mode))

        self._stats.processed += 1
        events = [GestureEvent(kind, ts, sample.x, sample.y) for kind in kinds]
        for event in events:
            self._stats.events[event.kind] += 1
            self._bus.emit(event)
        return events

    def _rearm_detectors(self) -> None:
        self._grab.rearm()
        self._wave.rearm()
        self._swipe.rearm()

    def _reset_state(self) -> None:
        self._smoother.reset()
        self._grab.reset()
        self._wave.reset()
        self._swipe.reset()
        self._mode = Mode.SCAN
        self._stats = EngineStats()
        self._absent_run = 0
        self._last_ts = float("-inf")
        self._busy = False

    def _close_source(self, source: PoseSource) -> None:
        try:
            source.close()
        except Exception as exc:
            logger.warning("Error closing frame source: {}", exc)
