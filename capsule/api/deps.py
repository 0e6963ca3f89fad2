"""FastAPI dependency injection functions for shared state."""

from __future__ import annotations

from fastapi import HTTPException, Request

from capsule.config import CapsuleConfig
from capsule.engine.capsule_registry import CapsuleRegistry, CapsuleSession
from capsule.engine.log_buffer import LogBuffer


def get_registry(request: Request) -> CapsuleRegistry:
    """Get the shared CapsuleRegistry from app state."""
    return request.app.state.registry


def get_log_buffer(request: Request) -> LogBuffer:
    """Get the shared LogBuffer from app state."""
    return request.app.state.log_buffer


def get_capsule_config(request: Request) -> CapsuleConfig:
    """Get the configuration the app was created with."""
    return request.app.state.config


def get_session(capsule_id: str, request: Request) -> CapsuleSession:
    """Resolve the ``{capsule_id}`` path parameter to a loaded session."""
    session = get_registry(request).get(capsule_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Capsule '{capsule_id}' not found")
    return session
