"""Handsfree — Centralised Settings (Pydantic v2).

Single source of truth for all configuration.
Loads from .env, environment variables, or defaults.
"""

from __future__ import annotations

import json

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.config import CursorConfig, EngineConfig, GrabConfig, LinearGestureConfig
from core.types import Mode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "Handsfree"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ── Server ───────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    cors_origins: list[str] = ["*"]

    # ── Camera / pose source ─────────────────────────────────
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480
    camera_flip: bool = True
    min_detection_confidence: float = 0.6
    min_tracking_confidence: float = 0.6

    # ── Cursor ───────────────────────────────────────────────
    screen_width: int = 1920
    screen_height: int = 1080
    cursor_margin: float = 0.1
    cursor_smoothing: float = 0.65
    cursor_mirror_x: bool = False

    # ── Grab / release ───────────────────────────────────────
    grab_threshold: float = 0.22
    grab_thumb_factor: float = 1.3
    grab_average_factor: float = 1.1
    grab_min_fingers: int = 3
    grab_hold_frames: int = 3
    grab_cooldown_frames: int = 25
    pinch_threshold: float = 0.045
    pinch_cooldown_frames: int = 25
    grab_use_depth: bool = True

    # ── Wave (scan mode) ─────────────────────────────────────
    wave_window: int = 12
    wave_threshold: float = 0.35
    wave_max_vertical: float = 0.12
    wave_max_ms: float = 600.0
    wave_cooldown_frames: int = 75

    # ── Swipe-up (browse mode) ───────────────────────────────
    swipe_window: int = 8
    swipe_threshold: float = 0.25
    swipe_max_horizontal: float = 0.15
    swipe_max_ms: float = 400.0
    swipe_cooldown_frames: int = 30

    # ── Engine ───────────────────────────────────────────────
    initial_mode: Mode = Mode.SCAN
    hand_loss_reset_frames: int = 15
    reset_on_mode_change: bool = True

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return json.loads(v)
        return v

    def engine_config(self) -> EngineConfig:
        """Build the core engine configuration from these settings."""
        return EngineConfig(
            cursor=CursorConfig(
                screen_width=self.screen_width,
                screen_height=self.screen_height,
                margin=self.cursor_margin,
                smoothing=self.cursor_smoothing,
                mirror_x=self.cursor_mirror_x,
            ),
            grab=GrabConfig(
                closed_threshold=self.grab_threshold,
                thumb_factor=self.grab_thumb_factor,
                average_factor=self.grab_average_factor,
                min_fingers_closed=self.grab_min_fingers,
                pinch_threshold=self.pinch_threshold,
                hold_frames=self.grab_hold_frames,
                cooldown_frames=self.grab_cooldown_frames,
                pinch_cooldown_frames=self.pinch_cooldown_frames,
                use_depth=self.grab_use_depth,
            ),
            wave=LinearGestureConfig(
                window=self.wave_window,
                primary_threshold=self.wave_threshold,
                cross_limit=self.wave_max_vertical,
                max_elapsed_ms=self.wave_max_ms,
                cooldown_frames=self.wave_cooldown_frames,
            ),
            swipe_up=LinearGestureConfig(
                window=self.swipe_window,
                primary_threshold=self.swipe_threshold,
                cross_limit=self.swipe_max_horizontal,
                max_elapsed_ms=self.swipe_max_ms,
                cooldown_frames=self.swipe_cooldown_frames,
            ),
            hand_loss_reset_frames=self.hand_loss_reset_frames,
            reset_on_mode_change=self.reset_on_mode_change,
        )


settings = Settings()
