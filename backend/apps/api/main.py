# ============================================================
#  Handsfree — FastAPI Application Factory
# ============================================================
"""
FastAPI application with:
  • REST health endpoint
  • WebSocket endpoint streaming gesture events for client-side landmarks
  • CORS plus request ID, timing and security header middleware
  • Structured logging integration
  • Graceful startup / shutdown lifecycle

NOTE: This is OPTIONAL. The gesture engine (core/) runs without a server.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from backend.apps.api.middleware import RequestContextMiddleware
from backend.apps.api.routes import router as api_router
from backend.config import settings
from backend.logging_config import setup_logging

_start_time: float = 0.0


def get_uptime() -> float:
    return time.time() - _start_time


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ANN001
    """Startup / shutdown lifecycle."""
    global _start_time
    _start_time = time.time()
    setup_logging()
    logger.info(
        "{} v{} starting  |  env={}  debug={}",
        settings.app_name,
        settings.app_version,
        settings.app_env,
        settings.debug,
    )
    yield
    logger.info("{} shutting down gracefully", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "**Handsfree** — gesture cursor engine.\n\n"
            "Stream hand landmarks over `/api/ws/gestures` and receive cursor, "
            "grab, release, wave and swipe-up events."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    # ── Routes ───────────────────────────────────────────────
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
