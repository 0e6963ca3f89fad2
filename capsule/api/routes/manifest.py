"""Manifest routes -- validate manifest text without an archive."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from capsule.api.deps import get_capsule_config
from capsule.api.models import ValidateManifestRequest, ValidateManifestResponse
from capsule.api.routes.capsules import diagnostics_to_response, item_to_response
from capsule.config import CapsuleConfig
from capsule.lib.manifest.parser import parse_manifest

logger = logging.getLogger("api.manifest")

router = APIRouter(prefix="/api/manifest", tags=["manifest"])


@router.post("/validate", response_model=ValidateManifestResponse)
async def validate_manifest(
    body: ValidateManifestRequest,
    config: CapsuleConfig = Depends(get_capsule_config),
) -> ValidateManifestResponse:
    """Parse manifest text and return items plus line-level diagnostics."""
    min_tags = body.min_tags if body.min_tags is not None else config.validation.min_tags
    result = parse_manifest(body.text, min_tags=min_tags)

    return ValidateManifestResponse(
        valid=result.ok,
        items=[item_to_response(i) for i in result.items],
        errors=diagnostics_to_response(result.errors),
        fatal_error=result.fatal_error,
    )
