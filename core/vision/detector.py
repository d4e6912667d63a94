"""MediaPipe-based hand landmark detector.

This module wraps Google's MediaPipe Hands solution to provide a clean,
typed interface for single-hand landmark extraction.
"""

from __future__ import annotations

import time
from typing import Any

import cv2
import mediapipe as mp
import numpy as np

from core.types import LANDMARK_DIMS, NUM_HAND_LANDMARKS, HandFrame


class MediaPipeHandDetector:
    """Single-hand landmark detector using MediaPipe Hands.

    Usage:
        >>> detector = MediaPipeHandDetector()
        >>> frame = detector.detect(bgr_frame)
        >>> if frame is not None:
        ...     print(frame.palm)
        >>> detector.close()
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.6,
        min_tracking_confidence: float = 0.6,
        model_complexity: int = 1,
    ) -> None:
        """Initialize MediaPipe Hands.

        Args:
            min_detection_confidence: Minimum confidence for hand detection.
            min_tracking_confidence: Minimum confidence for landmark tracking.
            model_complexity: 0 (lite) or 1 (full) landmark model.
        """
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=1,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._last_inference_ms: float = 0.0
        self._closed = False

    @property
    def last_inference_ms(self) -> float:
        """Return last inference time in milliseconds."""
        return self._last_inference_ms

    def detect(self, frame: np.ndarray) -> HandFrame | None:
        """Detect the hand in a BGR frame.

        Args:
            frame: BGR image as numpy array (H, W, 3), dtype uint8.

        Returns:
            HandFrame for the detected hand, or None when no hand is visible.

        Raises:
            ValueError: If frame is not a valid BGR image.
        """
        if frame is None or frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(
                f"Expected BGR frame with shape (H, W, 3), got "
                f"{'None' if frame is None else frame.shape}"
            )

        # MediaPipe expects RGB
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False

        t_start = time.perf_counter()
        results = self._hands.process(rgb_frame)
        self._last_inference_ms = (time.perf_counter() - t_start) * 1000.0

        if not results.multi_hand_landmarks:
            return None

        hand_lms = results.multi_hand_landmarks[0]
        landmarks = np.array(
            [[lm.x, lm.y, lm.z] for lm in hand_lms.landmark],
            dtype=np.float32,
        )
        if landmarks.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            return None

        confidence = 0.0
        if results.multi_handedness:
            confidence = float(results.multi_handedness[0].classification[0].score)

        return HandFrame(
            landmarks=landmarks,
            timestamp_ms=time.monotonic() * 1000.0,
            confidence=confidence,
        )

    def close(self) -> None:
        """Release MediaPipe resources."""
        if not self._closed:
            self._hands.close()
            self._closed = True

    def __enter__(self) -> MediaPipeHandDetector:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
