"""Handsfree — API Routes.

REST health probe and the gesture WebSocket.
Every connection owns its own engine from core/.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger
from pydantic import ValidationError

from backend.apps.api.dependencies import get_settings
from backend.apps.api.schemas import (
    EventPayload,
    FrameMessage,
    FrameResponse,
    HealthResponse,
    ModeMessage,
    ModeResponse,
    client_message_adapter,
)
from backend.apps.api.session import GestureSession
from backend.config import Settings

router = APIRouter()

_sessions: set[GestureSession] = set()


def active_sessions() -> int:
    return len(_sessions)


# ── Health ───────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Liveness / readiness probe."""
    from backend.apps.api.main import get_uptime

    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        active_sessions=active_sessions(),
        uptime_seconds=round(get_uptime(), 2),
    )


# ── WebSocket Gesture Stream ─────────────────────────────────


@router.websocket("/ws/gestures")
async def websocket_gestures(
    ws: WebSocket,
    settings: Settings = Depends(get_settings),
) -> None:
    """Real-time gesture events over WebSocket.

    Protocol:
      Client → Server: {"type": "frame", "landmarks": [[x, y, z] * 21] | null, "timestamp_ms": n}
                       {"type": "mode", "mode": "scan" | "browse"}
                       {"type": "resize", "width": w, "height": h}
      Server → Client: {"frame_id": n, "events": [...]} per frame
                       {"mode": ...} per mode change
                       {"error": ...} for invalid messages
    """
    await ws.accept()
    session = GestureSession(settings.engine_config())
    await session.open(settings.initial_mode)
    _sessions.add(session)
    logger.info("WebSocket client connected | sessions={}", active_sessions())

    try:
        while True:
            data = await ws.receive_text()

            try:
                message = client_message_adapter.validate_json(data)
            except ValidationError as e:
                await ws.send_json(
                    {"error": "Invalid message", "detail": [err["msg"] for err in e.errors()]}
                )
                continue

            if isinstance(message, FrameMessage):
                frame_id, events = await session.push(message)
                response = FrameResponse(
                    frame_id=frame_id,
                    events=[EventPayload.from_event(ev) for ev in events],
                )
                await ws.send_json(response.model_dump(mode="json", exclude_none=True))
            elif isinstance(message, ModeMessage):
                session.set_mode(message.mode)
                await ws.send_json(ModeResponse(mode=session.engine.mode).model_dump(mode="json"))
            else:
                session.resize(message.width, message.height)

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected | frames={}", session.frame_count)
    except Exception as e:
        logger.error("WebSocket error: {}", e)
        await ws.close(code=1011, reason="Internal error")
    finally:
        session.close()
        _sessions.discard(session)
