"""Webcam frame source: OpenCV capture feeding MediaPipe Hands."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import cv2
import numpy as np
from loguru import logger

from core.types import FrameSourceError, HandFrame


class MediaPipeCameraSource:
    """PoseSource backed by a local camera and MediaPipe Hands.

    Blocking OpenCV and MediaPipe calls run in worker threads so the event
    loop stays responsive.

    Usage:
        >>> source = MediaPipeCameraSource(camera_index=0)
        >>> await engine.start(source)
        >>> await engine.run()
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: int = 640,
        height: int = 480,
        flip_horizontal: bool = True,
        min_detection_confidence: float = 0.6,
        min_tracking_confidence: float = 0.6,
    ) -> None:
        self._camera_index = camera_index
        self._width = width
        self._height = height
        self._flip = flip_horizontal
        self._min_detection_confidence = min_detection_confidence
        self._min_tracking_confidence = min_tracking_confidence
        self._capture: cv2.VideoCapture | None = None
        self._detector: Any = None
        self._last_image: np.ndarray | None = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def last_image(self) -> np.ndarray | None:
        """Most recent camera image (already flipped), for overlays."""
        return self._last_image

    async def open(self) -> None:
        """Open the camera and load MediaPipe Hands.

        Raises:
            FrameSourceError: If the camera or MediaPipe is unavailable.
        """
        capture = await asyncio.to_thread(cv2.VideoCapture, self._camera_index)
        if not capture.isOpened():
            capture.release()
            raise FrameSourceError(f"Cannot open camera {self._camera_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)

        try:
            from core.vision.detector import MediaPipeHandDetector

            self._detector = MediaPipeHandDetector(
                min_detection_confidence=self._min_detection_confidence,
                min_tracking_confidence=self._min_tracking_confidence,
            )
        except Exception as exc:
            capture.release()
            raise FrameSourceError(f"MediaPipe Hands unavailable: {exc}") from exc

        self._capture = capture
        logger.info(
            "Camera {} opened | {}x{} | flip={}",
            self._camera_index,
            self._width,
            self._height,
            self._flip,
        )

    async def frames(self) -> AsyncIterator[np.ndarray]:
        """Yield camera images until the camera stops or the source is closed."""
        while self._capture is not None:
            ok, image = await asyncio.to_thread(self._capture.read)
            if not ok or image is None:
                logger.warning("Camera {} returned no frame, stopping", self._camera_index)
                return
            if self._flip:
                image = cv2.flip(image, 1)
            self._last_image = image
            yield image

    async def estimate(self, image: np.ndarray) -> HandFrame | None:
        if self._detector is None:
            raise FrameSourceError("Camera source is not open")
        return await asyncio.to_thread(self._detector.detect, image)

    def close(self) -> None:
        """Release the camera and MediaPipe resources."""
        if self._detector is not None:
            self._detector.close()
            self._detector = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Camera {} released", self._camera_index)
