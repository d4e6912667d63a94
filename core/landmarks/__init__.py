"""Landmarks module — geometric measurements on hand landmarks."""

from core.landmarks.geometry import HandGeometry

__all__ = ["HandGeometry"]
