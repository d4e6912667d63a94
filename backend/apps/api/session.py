"""One gesture engine per WebSocket connection.

The browser runs pose estimation itself and streams landmarks; the
``RemoteLandmarkSource`` turns those messages into engine frames.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from loguru import logger

from core.engine.engine import GestureEngine
from core.types import GestureEvent, HandFrame, Mode

if TYPE_CHECKING:
    from backend.apps.api.schemas import FrameMessage
    from core.config import EngineConfig


class RemoteLandmarkSource:
    """PoseSource whose "images" are landmark messages from a client."""

    def __init__(self) -> None:
        self._open = False

    async def open(self) -> None:
        self._open = True

    async def frames(self) -> AsyncIterator[FrameMessage]:
        # Frames are pushed by the connection handler, never pulled.
        return
        yield

    async def estimate(self, image: FrameMessage) -> HandFrame | None:
        if image.landmarks is None:
            return None
        try:
            return HandFrame.from_points(image.landmarks, timestamp_ms=image.timestamp_ms)
        except (ValueError, TypeError) as exc:
            logger.debug("Ignoring malformed client frame: {}", exc)
            return None

    def close(self) -> None:
        self._open = False


class GestureSession:
    """Engine plus event collection for one client connection.

    Usage:
        >>> session = GestureSession(settings.engine_config())
        >>> await session.open(Mode.SCAN)
        >>> events = await session.push(frame_message)
        >>> session.close()
    """

    def __init__(self, config: EngineConfig) -> None:
        self._engine = GestureEngine(config)
        self._source = RemoteLandmarkSource()
        self._pending: list[GestureEvent] = []
        self._engine.subscribe(None, self._pending.append)
        self._frame_count = 0

    @property
    def engine(self) -> GestureEngine:
        return self._engine

    @property
    def frame_count(self) -> int:
        return self._frame_count

    async def open(self, mode: Mode) -> None:
        await self._engine.start(self._source)
        self._engine.set_mode(mode)

    async def push(self, message: FrameMessage) -> tuple[int, list[GestureEvent]]:
        """Process one client frame.

        Returns:
            (frame_id, events emitted for this frame)
        """
        self._frame_count += 1
        self._pending.clear()
        await self._engine.submit(message)
        events = list(self._pending)
        self._pending.clear()
        return self._frame_count, events

    def set_mode(self, mode: Mode) -> None:
        self._engine.set_mode(mode)

    def resize(self, width: int, height: int) -> None:
        self._engine.resize(width, height)

    def close(self) -> None:
        self._engine.stop()
