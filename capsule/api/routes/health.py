"""Health and system info routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from capsule.api.deps import get_capsule_config, get_registry
from capsule.api.models import SystemInfoResponse
from capsule.config import CapsuleConfig
from capsule.engine.capsule_registry import CapsuleRegistry

VERSION = "0.1.0"

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Liveness check -- always returns ok if the server is running."""
    return {"status": "ok"}


@router.get("/info", response_model=SystemInfoResponse)
async def system_info(
    registry: CapsuleRegistry = Depends(get_registry),
    config: CapsuleConfig = Depends(get_capsule_config),
) -> SystemInfoResponse:
    """System information snapshot."""
    return SystemInfoResponse(
        version=VERSION,
        loaded_capsules=registry.count(),
        max_capsules=registry.max_sessions,
        manifest_name=config.manifest_name,
        max_upload_bytes=config.max_upload_bytes,
        min_tags=config.validation.min_tags,
    )
