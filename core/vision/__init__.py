"""Vision module — landmark frame sources.

The camera source (``core.vision.camera``) and the MediaPipe detector
(``core.vision.detector``) pull in OpenCV and MediaPipe; import them
directly when a camera is needed.
"""

from core.vision.replay import LandmarkRecorder, ReplaySource

__all__ = ["LandmarkRecorder", "ReplaySource"]
