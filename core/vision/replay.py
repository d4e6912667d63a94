"""Recorded landmark sessions.

A recording is a JSON-lines file, one frame per line:

    {"t": 1033.4, "landmarks": [[x, y, z], ... 21 points]}
    {"t": 1066.7, "landmarks": null}

``null`` landmarks mean no hand was detected in that frame.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, TextIO

from loguru import logger

from core.types import FrameSourceError, HandFrame


class ReplaySource:
    """PoseSource that plays back a recorded session.

    Usage:
        >>> source = ReplaySource("sessions/wave.jsonl", realtime=False)
        >>> await engine.start(source)
        >>> await engine.run()
    """

    def __init__(self, path: str | Path, realtime: bool = False) -> None:
        """Initialize the replay source.

        Args:
            path: Recording to play.
            realtime: Sleep between frames to reproduce the original pacing.
        """
        self._path = Path(path)
        self._realtime = realtime
        self._records: list[dict[str, Any]] | None = None

    @property
    def num_frames(self) -> int:
        return len(self._records or [])

    async def open(self) -> None:
        """Load the recording.

        Raises:
            FrameSourceError: If the file is missing or not valid JSON lines.
        """
        if not self._path.exists():
            raise FrameSourceError(f"Recording not found: {self._path}")

        records = []
        for lineno, line in enumerate(self._path.read_text().splitlines(), start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise FrameSourceError(f"{self._path}:{lineno}: invalid JSON ({exc.msg})") from exc
            if not isinstance(record, dict):
                raise FrameSourceError(f"{self._path}:{lineno}: expected a JSON object")
            records.append(record)

        self._records = records
        logger.info("Replay loaded: {} ({} frames)", self._path.name, len(records))

    async def frames(self) -> AsyncIterator[dict[str, Any]]:
        previous_t: float | None = None
        for record in self._records or []:
            if self._records is None:
                return
            t = record.get("t")
            if self._realtime and previous_t is not None and t is not None:
                await asyncio.sleep(max(0.0, (t - previous_t) / 1000.0))
            previous_t = t
            yield record

    async def estimate(self, image: dict[str, Any]) -> HandFrame | None:
        landmarks = image.get("landmarks")
        if landmarks is None:
            return None
        try:
            return HandFrame.from_points(landmarks, timestamp_ms=image.get("t"))
        except (ValueError, TypeError) as exc:
            logger.debug("Skipping malformed recorded frame: {}", exc)
            return None

    def close(self) -> None:
        self._records = None


class LandmarkRecorder:
    """Write frames in the replay format.

    Usage:
        >>> with LandmarkRecorder("sessions/new.jsonl") as recorder:
        ...     recorder.write(hand_frame_or_none, timestamp_ms)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fh: TextIO | None = None
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def open(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self._path.open("w", encoding="utf-8")

    def write(self, frame: HandFrame | None, timestamp_ms: float) -> None:
        if self._fh is None:
            raise RuntimeError("Recorder not open. Call open() first.")
        record = {
            "t": round(timestamp_ms, 3),
            "landmarks": None if frame is None else frame.landmarks.tolist(),
        }
        self._fh.write(json.dumps(record) + "\n")
        self._count += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            logger.info("Recording saved: {} ({} frames)", self._path, self._count)

    def __enter__(self) -> LandmarkRecorder:
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
