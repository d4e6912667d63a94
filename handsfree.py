"""Handsfree CLI — webcam demo, session replay, API server, system info.

Usage:
    python -m handsfree demo --camera 0 --mode browse
    python -m handsfree demo --record sessions/wave.jsonl
    python -m handsfree replay sessions/wave.jsonl --mode scan
    python -m handsfree serve --port 8000
    python -m handsfree info
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time

from loguru import logger

from backend.config import settings
from backend.logging_config import setup_logging
from core.engine.engine import GestureEngine
from core.types import EngineStartError, EventKind, GestureEvent, Mode


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="handsfree",
        description="Handsfree — gesture cursor engine CLI",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- demo ----
    demo_parser = subparsers.add_parser("demo", help="Run the real-time webcam demo")
    demo_parser.add_argument("--camera", type=int, default=settings.camera_index, help="Camera device index")
    demo_parser.add_argument(
        "--mode", type=str, choices=[m.value for m in Mode], default=settings.initial_mode.value
    )
    demo_parser.add_argument("--record", type=str, default=None, help="Write landmarks to a JSONL recording")

    # ---- replay ----
    replay_parser = subparsers.add_parser("replay", help="Feed a recorded session through the engine")
    replay_parser.add_argument("recording", type=str, help="Path to a JSONL recording")
    replay_parser.add_argument(
        "--mode", type=str, choices=[m.value for m in Mode], default=settings.initial_mode.value
    )
    replay_parser.add_argument("--realtime", action="store_true", help="Reproduce the original pacing")
    replay_parser.add_argument("--cursor", action="store_true", help="Also print cursor moves")

    # ---- serve ----
    serve_parser = subparsers.add_parser("serve", help="Start the FastAPI WebSocket server")
    serve_parser.add_argument("--host", type=str, default=settings.host, help="Host")
    serve_parser.add_argument("--port", type=int, default=settings.port, help="Port")
    serve_parser.add_argument("--workers", type=int, default=settings.workers, help="Number of workers")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    # ---- info ----
    subparsers.add_parser("info", help="Show system information")

    args = parser.parse_args(argv)

    if args.command == "demo":
        setup_logging()
        cmd_demo(args)
    elif args.command == "replay":
        setup_logging(log_to_file=False)
        cmd_replay(args)
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "info":
        cmd_info()


def cmd_replay(args: argparse.Namespace) -> None:
    """Print the events a recorded session produces."""
    summary = asyncio.run(replay_session(args.recording, Mode(args.mode), args.realtime, args.cursor))
    print("\n=== REPLAY SUMMARY ===")
    for kind in EventKind:
        print(f"  {kind.value:<12} {summary.get(kind, 0)}")


async def replay_session(
    path: str,
    mode: Mode,
    realtime: bool = False,
    show_cursor: bool = False,
) -> dict[EventKind, int]:
    """Run a recording through a fresh engine and return event counts."""
    from core.vision.replay import ReplaySource

    engine = GestureEngine(settings.engine_config())

    def _print(event: GestureEvent) -> None:
        if event.kind is EventKind.CURSOR_MOVE and not show_cursor:
            return
        print(f"{event.timestamp_ms:10.1f}ms  {event.kind.value:<12} ({event.x:.0f}, {event.y:.0f})")

    engine.subscribe(None, _print)

    try:
        await engine.start(ReplaySource(path, realtime=realtime))
    except EngineStartError as exc:
        logger.error(str(exc))
        sys.exit(1)

    engine.set_mode(mode)
    await engine.run()
    counts = dict(engine.stats.events)
    logger.info(
        "Replay done | processed={} absent={} dropped={}",
        engine.stats.processed,
        engine.stats.absent,
        engine.stats.dropped,
    )
    engine.stop()
    return counts


def cmd_demo(args: argparse.Namespace) -> None:
    """Run the real-time webcam demo with an on-screen cursor."""
    try:
        asyncio.run(_demo(args))
    except KeyboardInterrupt:
        logger.info("Demo interrupted")


async def _demo(args: argparse.Namespace) -> None:
    import cv2

    from core.vision.camera import MediaPipeCameraSource
    from core.vision.replay import LandmarkRecorder

    config = settings.engine_config()
    engine = GestureEngine(config)
    source = MediaPipeCameraSource(
        camera_index=args.camera,
        width=settings.camera_width,
        height=settings.camera_height,
        flip_horizontal=settings.camera_flip,
        min_detection_confidence=settings.min_detection_confidence,
        min_tracking_confidence=settings.min_tracking_confidence,
    )
    # The overlay is drawn on the camera image, so map the cursor onto it.
    engine.resize(settings.camera_width, settings.camera_height)

    recorder = LandmarkRecorder(args.record) if args.record else None
    last_event: list[str] = ["-"]

    def _on_event(event: GestureEvent) -> None:
        if event.kind is not EventKind.CURSOR_MOVE:
            last_event[0] = event.kind.value

    engine.subscribe(None, _on_event)

    try:
        await engine.start(source)
    except EngineStartError as exc:
        logger.error(str(exc))
        sys.exit(1)

    engine.set_mode(Mode(args.mode))
    if recorder is not None:
        recorder.open()

    logger.info("Press 'q' to quit, 'm' to toggle scan/browse mode")

    try:
        async for image in source.frames():
            hand = await source.estimate(image)
            if recorder is not None:
                recorder.write(hand, time.monotonic() * 1000.0)
            engine.process(hand)

            cursor = engine.cursor
            if cursor is not None:
                cv2.circle(image, (int(cursor[0]), int(cursor[1])), 12, (241, 102, 99), 3)
            if hand is not None:
                h, w = image.shape[:2]
                for lm in hand.landmarks:
                    cv2.circle(image, (int(lm[0] * w), int(lm[1] * h)), 3, (99, 102, 241), -1)

            cv2.putText(
                image,
                f"Mode: {engine.mode.value} | Last: {last_event[0]} | Frames: {engine.stats.processed}",
                (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.7,
                (0, 255, 0),
                2,
            )
            cv2.imshow("Handsfree", image)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("m"):
                engine.set_mode(Mode.BROWSE if engine.mode is Mode.SCAN else Mode.SCAN)
    finally:
        engine.stop()
        if recorder is not None:
            recorder.close()
        cv2.destroyAllWindows()


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI API server (optional server mode)."""
    import uvicorn

    logger.info("Starting Handsfree API server...")
    uvicorn.run(
        "backend.apps.api.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_level="info",
    )


def cmd_info() -> None:
    """Show system information."""
    import platform

    import numpy as np

    try:
        import cv2
        cv_ver = cv2.__version__
    except ImportError:
        cv_ver = "not installed"

    try:
        import mediapipe as mp
        mp_ver = mp.__version__
    except ImportError:
        mp_ver = "not installed"

    print(f"""
Handsfree — gesture cursor engine
══════════════════════════════════════════════
  Python:       {platform.python_version()}
  Platform:     {platform.system()} {platform.machine()}
  NumPy:        {np.__version__}
  OpenCV:       {cv_ver}
  MediaPipe:    {mp_ver}
  Screen:       {settings.screen_width}x{settings.screen_height}
  Start mode:   {settings.initial_mode.value}
""")


if __name__ == "__main__":
    main()
