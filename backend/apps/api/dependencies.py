# ============================================================
#  Handsfree — Dependency Injection
# ============================================================
"""
FastAPI dependency providers.
Routes receive settings through here so tests can override them.
"""
from __future__ import annotations

from functools import lru_cache

from backend.config import Settings, settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    return settings
