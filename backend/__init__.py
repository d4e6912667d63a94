"""Handsfree — FastAPI backend (optional server mode).

This package provides a WebSocket bridge for browser UIs that run their own
pose estimation and stream landmarks to the gesture engine.
It is OPTIONAL — the core engine runs entirely in-process without this.
"""
