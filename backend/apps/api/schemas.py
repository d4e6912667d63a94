# ============================================================
#  Handsfree — Pydantic API Schemas
# ============================================================
"""Handsfree — Pydantic API Schemas.

Messages exchanged over the gesture WebSocket, plus REST responses.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from core.types import GestureEvent, Mode

# ── Client → Server ──────────────────────────────────────────


class FrameMessage(BaseModel):
    type: Literal["frame"] = "frame"
    landmarks: list[list[float]] | None = Field(
        default=None,
        description="21 [x, y, z] points, or null when no hand is visible",
    )
    timestamp_ms: float | None = Field(default=None, ge=0.0)


class ModeMessage(BaseModel):
    type: Literal["mode"]
    mode: Mode


class ResizeMessage(BaseModel):
    type: Literal["resize"]
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


ClientMessage = Annotated[
    Union[FrameMessage, ModeMessage, ResizeMessage],
    Field(discriminator="type"),
]

client_message_adapter: TypeAdapter[FrameMessage | ModeMessage | ResizeMessage] = TypeAdapter(
    ClientMessage
)

# ── Server → Client ──────────────────────────────────────────


class EventPayload(BaseModel):
    kind: str = Field(..., description="cursor_move | grab | open_hand | wave | swipe_up")
    timestamp_ms: float
    x: float | None = None
    y: float | None = None

    @classmethod
    def from_event(cls, event: GestureEvent) -> EventPayload:
        return cls(**event.to_dict())


class FrameResponse(BaseModel):
    frame_id: int
    events: list[EventPayload] = Field(default_factory=list)


class ModeResponse(BaseModel):
    mode: Mode


# ── Health ───────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    active_sessions: int
    uptime_seconds: float
