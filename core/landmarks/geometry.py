"""Geometric measurements on hand landmarks.

All grab heuristics are built from these distances.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from core.types import FINGERTIPS, INDEX_TIP, PALM_CENTER, THUMB_TIP

if TYPE_CHECKING:
    from core.types import HandFrame


class HandGeometry:
    """Distance measurements used by the fist and pinch policies.

    Usage:
        >>> geometry = HandGeometry(use_depth=True)
        >>> tips = geometry.fingertip_palm_distances(frame)  # (4,)
        >>> pinch = geometry.pinch_distance(frame)
    """

    def __init__(self, use_depth: bool = True) -> None:
        self._dims = 3 if use_depth else 2

    @property
    def use_depth(self) -> bool:
        return self._dims == 3

    def fingertip_palm_distances(self, frame: HandFrame) -> np.ndarray:
        """Distance from the palm center to index, middle, ring and pinky tips."""
        lm = frame.landmarks[:, : self._dims]
        return np.linalg.norm(lm[list(FINGERTIPS)] - lm[PALM_CENTER], axis=1)

    def thumb_palm_distance(self, frame: HandFrame) -> float:
        lm = frame.landmarks[:, : self._dims]
        return float(np.linalg.norm(lm[THUMB_TIP] - lm[PALM_CENTER]))

    def pinch_distance(self, frame: HandFrame) -> float:
        """Distance between the thumb tip and the index fingertip."""
        lm = frame.landmarks[:, : self._dims]
        return float(np.linalg.norm(lm[THUMB_TIP] - lm[INDEX_TIP]))
