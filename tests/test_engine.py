"""Tests for core.engine — event bus, lifecycle, modes and frame handling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import numpy as np
import pytest

from conftest import FrameClock, StubSource, build_hand
from core.config import EngineConfig, GrabConfig
from core.engine import EventBus, GestureEngine
from core.types import EngineStartError, EventKind, FrameSourceError, GestureEvent, HandFrame, Mode

MakeEngine = Callable[..., GestureEngine]


def _kinds(events: list[GestureEvent]) -> list[EventKind]:
    return [event.kind for event in events]


def _grab_frames(engine: GestureEngine, frames: list[HandFrame | None]) -> list[int]:
    """1-based indices of frames on which GRAB fired."""
    return [
        i + 1
        for i, frame in enumerate(frames)
        if EventKind.GRAB in _kinds(engine.process(frame))
    ]


class TestEventBus:
    """Tests for EventBus."""

    def test_kind_handlers_then_catch_all(self) -> None:
        bus = EventBus()
        seen: list[str] = []
        bus.subscribe(None, lambda ev: seen.append("all"))
        bus.subscribe(EventKind.GRAB, lambda ev: seen.append("grab"))
        bus.emit(GestureEvent(EventKind.GRAB, 0.0))
        bus.emit(GestureEvent(EventKind.WAVE, 1.0))
        assert seen == ["grab", "all", "all"]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[GestureEvent] = []
        unsubscribe = bus.subscribe(EventKind.GRAB, seen.append)
        assert bus.handler_count(EventKind.GRAB) == 1
        unsubscribe()
        unsubscribe()
        bus.emit(GestureEvent(EventKind.GRAB, 0.0))
        assert seen == []
        assert bus.handler_count(EventKind.GRAB) == 0

    def test_handler_errors_propagate(self) -> None:
        bus = EventBus()

        def boom(_ev: GestureEvent) -> None:
            raise KeyError("handler failed")

        bus.subscribe(EventKind.WAVE, boom)
        with pytest.raises(KeyError):
            bus.emit(GestureEvent(EventKind.WAVE, 0.0))


class TestLifecycle:
    """Tests for start/stop semantics."""

    def test_start_and_stop(self, make_engine: MakeEngine) -> None:
        source = StubSource()
        engine = make_engine(source=source)
        assert engine.is_running
        assert source.open_calls == 1

        engine.stop()
        assert not engine.is_running
        assert source.close_calls == 1

        engine.stop()
        assert source.close_calls == 1

    def test_start_failure_releases_source(self) -> None:
        engine = GestureEngine(EngineConfig(), clock=FrameClock())
        source = StubSource(fail_open=True)
        with pytest.raises(EngineStartError) as exc_info:
            asyncio.run(engine.start(source))
        assert isinstance(exc_info.value.__cause__, FrameSourceError)
        assert source.close_calls == 1
        assert not engine.is_running

    def test_double_start_raises(self, make_engine: MakeEngine) -> None:
        engine = make_engine()
        with pytest.raises(RuntimeError, match="already running"):
            asyncio.run(engine.start(StubSource()))

    def test_process_before_start_raises(self, open_frame: HandFrame) -> None:
        engine = GestureEngine()
        with pytest.raises(RuntimeError, match="not started"):
            engine.process(open_frame)

    def test_stop_discards_state(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        engine.process(fist_frame)
        engine.process(fist_frame)
        assert engine.grab_detector.state.hold == 2
        assert engine.cursor is not None

        engine.stop()
        assert engine.mode is Mode.SCAN
        assert engine.cursor is None
        assert engine.grab_detector.state.hold == 0
        assert engine.stats.processed == 0

    def test_restart_is_clean(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        engine.process(fist_frame)
        engine.process(fist_frame)
        engine.stop()

        asyncio.run(engine.start(StubSource()))
        engine.set_mode(Mode.BROWSE)
        # A full hold is needed again after restart.
        assert _grab_frames(engine, [fist_frame] * 3) == [3]

    def test_stop_during_cooldown(
        self, make_engine: MakeEngine, fist_frame: HandFrame, open_frame: HandFrame
    ) -> None:
        config = EngineConfig(grab=GrabConfig(hold_frames=3, cooldown_frames=15))
        engine = make_engine(config=config, mode=Mode.BROWSE)
        assert _grab_frames(engine, [fist_frame] * 5) == [3]
        assert engine.grab_detector.state.cooldown > 0

        engine.stop()
        assert engine.grab_detector.state.cooldown == 0
        assert not engine.grab_detector.state.latched

        asyncio.run(engine.start(StubSource()))
        engine.set_mode(Mode.BROWSE)
        seen: list[GestureEvent] = []
        engine.subscribe(None, seen.append)

        # No release from the grab of the previous session.
        engine.process(open_frame)
        engine.process(open_frame)
        assert _grab_frames(engine, [fist_frame] * 3) == [3]
        kinds = [event.kind for event in seen]
        assert EventKind.OPEN_HAND not in kinds
        assert kinds.count(EventKind.GRAB) == 1


class TestFrameProcessing:
    """Tests for per-frame event emission."""

    def test_cursor_move_every_hand_frame(self, make_engine: MakeEngine, open_frame: HandFrame) -> None:
        engine = make_engine()
        moves: list[tuple[float, float]] = []
        engine.on_cursor_move(lambda x, y: moves.append((x, y)))

        for _ in range(5):
            assert _kinds(engine.process(open_frame)) == [EventKind.CURSOR_MOVE]
        assert engine.process(None) == []
        assert len(moves) == 5
        assert engine.stats.processed == 5
        assert engine.stats.absent == 1

    def test_browse_fist_grab_on_third_frame(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        grabs: list[int] = []
        engine.on_grab(lambda: grabs.append(1))

        results = [engine.process(fist_frame) for _ in range(3)]
        assert _kinds(results[2]) == [EventKind.CURSOR_MOVE, EventKind.GRAB]
        assert grabs == [1]
        assert engine.stats.events[EventKind.GRAB] == 1

    def test_release_after_grab(
        self, make_engine: MakeEngine, fist_frame: HandFrame, open_frame: HandFrame
    ) -> None:
        config = EngineConfig(grab=GrabConfig(hold_frames=2, cooldown_frames=1))
        engine = make_engine(config=config, mode=Mode.BROWSE)
        releases: list[int] = []
        engine.on_open_hand(lambda: releases.append(1))

        for frame in [fist_frame, fist_frame, open_frame, open_frame, open_frame]:
            engine.process(frame)
        assert releases == [1]

    def test_absent_frame_keeps_hold(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        assert _grab_frames(engine, [fist_frame, None, fist_frame, fist_frame]) == [4]

    def test_malformed_frames_count_as_absent(self, make_engine: MakeEngine) -> None:
        engine = make_engine()
        nan_points = np.full((21, 3), np.nan, dtype=np.float32)

        assert engine.process(np.zeros((5, 3))) == []
        assert engine.process("not a hand") == []
        assert engine.process(HandFrame(landmarks=nan_points)) == []
        assert engine.stats.absent == 3
        assert engine.stats.processed == 0

    def test_raw_points_accepted(self, make_engine: MakeEngine, open_frame: HandFrame) -> None:
        engine = make_engine()
        events = engine.process(open_frame.landmarks.tolist())
        assert _kinds(events) == [EventKind.CURSOR_MOVE]

    def test_backwards_timestamp_clamped(self, make_engine: MakeEngine) -> None:
        engine = make_engine()
        first = engine.process(build_hand(timestamp_ms=100.0))
        second = engine.process(build_hand(timestamp_ms=50.0))
        assert first[0].timestamp_ms == 100.0
        assert second[0].timestamp_ms == 100.0

    def test_reentrant_frame_dropped(self, make_engine: MakeEngine, open_frame: HandFrame) -> None:
        engine = make_engine()
        nested: list[list[GestureEvent]] = []
        engine.on_cursor_move(lambda x, y: nested.append(engine.process(open_frame)))

        engine.process(open_frame)
        assert nested == [[]]
        assert engine.stats.dropped == 1
        assert engine.stats.processed == 1

    def test_unsubscribed_handler_not_called(self, make_engine: MakeEngine, open_frame: HandFrame) -> None:
        engine = make_engine()
        seen: list[GestureEvent] = []
        unsubscribe = engine.subscribe(None, seen.append)
        engine.process(open_frame)
        unsubscribe()
        engine.process(open_frame)
        assert len(seen) == 1


class TestModes:
    """Tests for mode gating and mode-change re-arming."""

    @staticmethod
    def _wave(t0: float = 0.0) -> list[HandFrame]:
        return [
            build_hand(palm=(0.3 + 0.4 * i / 11, 0.5), timestamp_ms=t0 + i * 300.0 / 11)
            for i in range(12)
        ]

    @staticmethod
    def _swipe(t0: float = 0.0) -> list[HandFrame]:
        return [
            build_hand(palm=(0.5, 0.8 - 0.3 * i / 7), timestamp_ms=t0 + i * 300.0 / 7)
            for i in range(8)
        ]

    def test_default_mode_is_scan(self) -> None:
        assert GestureEngine().mode is Mode.SCAN

    def test_set_mode_accepts_strings(self, make_engine: MakeEngine) -> None:
        engine = make_engine()
        engine.set_mode("browse")
        assert engine.mode is Mode.BROWSE
        with pytest.raises(ValueError):
            engine.set_mode("drive")

    def test_wave_only_in_scan(self, make_engine: MakeEngine) -> None:
        engine = make_engine(mode=Mode.SCAN)
        waves: list[int] = []
        engine.on_wave(lambda: waves.append(1))
        for frame in self._wave():
            engine.process(frame)
        assert waves == [1]

        browse = make_engine(mode=Mode.BROWSE)
        kinds = [k for frame in self._wave() for k in _kinds(browse.process(frame))]
        assert EventKind.WAVE not in kinds

    def test_swipe_only_in_browse(self, make_engine: MakeEngine) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        swipes: list[int] = []
        engine.on_swipe_up(lambda: swipes.append(1))
        for frame in self._swipe():
            engine.process(frame)
        assert swipes == [1]

        scan = make_engine(mode=Mode.SCAN)
        kinds = [k for frame in self._swipe() for k in _kinds(scan.process(frame))]
        assert EventKind.SWIPE_UP not in kinds

    def test_fist_does_not_grab_in_scan(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.SCAN)
        assert _grab_frames(engine, [fist_frame] * 10) == []

    def test_pinch_grabs_in_scan(self, make_engine: MakeEngine, pinch_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.SCAN)
        assert _grab_frames(engine, [pinch_frame] * 3) == [3]

    def test_mode_change_rearms_hold(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        engine.process(fist_frame)
        engine.process(fist_frame)
        engine.set_mode(Mode.SCAN)
        engine.set_mode(Mode.BROWSE)
        assert _grab_frames(engine, [fist_frame] * 3) == [3]

    def test_mode_change_without_rearm(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(config=EngineConfig(reset_on_mode_change=False), mode=Mode.BROWSE)
        engine.process(fist_frame)
        engine.process(fist_frame)
        engine.set_mode(Mode.SCAN)
        engine.set_mode(Mode.BROWSE)
        assert _grab_frames(engine, [fist_frame]) == [1]

    def test_mode_change_keeps_cooldown(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(mode=Mode.BROWSE)
        assert _grab_frames(engine, [fist_frame] * 3) == [3]
        engine.set_mode(Mode.SCAN)
        engine.set_mode(Mode.BROWSE)
        assert engine.grab_detector.state.cooldown == GrabConfig().cooldown_frames


class TestHandLoss:
    """Tests for the hand-loss re-arm."""

    def test_long_absence_rearms(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(config=EngineConfig(hand_loss_reset_frames=3), mode=Mode.BROWSE)
        frames: list[HandFrame | None] = [fist_frame, fist_frame, None, None, None]
        frames += [fist_frame] * 3
        assert _grab_frames(engine, frames) == [8]

    def test_long_absence_reseeds_cursor(self, make_engine: MakeEngine) -> None:
        engine = make_engine(config=EngineConfig(hand_loss_reset_frames=2))
        engine.process(build_hand(palm=(0.1, 0.1)))
        engine.process(None)
        engine.process(None)
        assert engine.cursor is None

        events = engine.process(build_hand(palm=(0.9, 0.9)))
        width = engine.config.cursor.screen_width
        height = engine.config.cursor.screen_height
        assert (events[0].x, events[0].y) == pytest.approx((width, height))

    def test_disabled_hand_loss_reset(self, make_engine: MakeEngine, fist_frame: HandFrame) -> None:
        engine = make_engine(config=EngineConfig(hand_loss_reset_frames=0), mode=Mode.BROWSE)
        frames: list[HandFrame | None] = [fist_frame, fist_frame] + [None] * 30 + [fist_frame]
        assert _grab_frames(engine, frames) == [33]


class TestAsyncSubmit:
    """Tests for the asynchronous pose round trip."""

    def test_concurrent_submit_dropped(self, open_frame: HandFrame) -> None:
        async def scenario() -> list[bool]:
            engine = GestureEngine(clock=FrameClock())
            await engine.start(StubSource(delay=0.05))
            results = await asyncio.gather(engine.submit(open_frame), engine.submit(open_frame))
            assert engine.stats.dropped == 1
            assert engine.stats.processed == 1
            return list(results)

        assert asyncio.run(scenario()) == [True, False]

    def test_submit_not_running(self, open_frame: HandFrame) -> None:
        engine = GestureEngine()
        assert asyncio.run(engine.submit(open_frame)) is False

    def test_estimate_failure_is_contained(self, open_frame: HandFrame) -> None:
        async def scenario() -> GestureEngine:
            engine = GestureEngine(clock=FrameClock())
            await engine.start(StubSource(fail_estimate=True))
            assert await engine.submit(open_frame) is False
            assert await engine.submit(open_frame) is False
            return engine

        engine = asyncio.run(scenario())
        assert engine.stats.dropped == 0
        assert engine.is_running

    def test_stop_discards_in_flight_frame(self, fist_frame: HandFrame) -> None:
        async def scenario() -> tuple[bool, GestureEngine]:
            engine = GestureEngine(clock=FrameClock())
            await engine.start(StubSource(delay=0.02))
            task = asyncio.create_task(engine.submit(fist_frame))
            await asyncio.sleep(0)
            engine.stop()
            return await task, engine

        result, engine = asyncio.run(scenario())
        assert result is False
        assert engine.stats.processed == 0
        assert engine.cursor is None

    def test_run_pumps_source(self, fist_frame: HandFrame) -> None:
        async def scenario() -> GestureEngine:
            engine = GestureEngine(clock=FrameClock())
            await engine.start(StubSource(frames=[fist_frame] * 3 + [None]))
            engine.set_mode(Mode.BROWSE)
            await engine.run()
            return engine

        engine = asyncio.run(scenario())
        assert engine.stats.processed == 3
        assert engine.stats.absent == 1
        assert engine.stats.events[EventKind.GRAB] == 1

    def test_run_drops_frames_behind_slow_estimator(self, open_frame: HandFrame) -> None:
        async def scenario() -> GestureEngine:
            engine = GestureEngine(clock=FrameClock())
            await engine.start(StubSource(frames=[open_frame] * 5, delay=0.02))
            await engine.run()
            return engine

        engine = asyncio.run(scenario())
        assert engine.stats.processed == 1
        assert engine.stats.dropped == 4

    def test_run_requires_start(self) -> None:
        with pytest.raises(RuntimeError):
            asyncio.run(GestureEngine().run())
