"""Capsule routes -- upload, browse items and diagnostics, serve archive files."""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterable

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from capsule.api.deps import get_capsule_config, get_log_buffer, get_registry, get_session
from capsule.api.models import (
    CapsuleSummaryResponse,
    DiagnosticResponse,
    ExplanationResponse,
    ItemResponse,
    ProblematicPartResponse,
    RequirementsResponse,
    StatisticsResponse,
    UnmetRequirement,
)
from capsule.config import CapsuleConfig
from capsule.engine.capsule_registry import CapsuleRegistry, CapsuleSession, new_capsule_id
from capsule.engine.loader import load_capsule
from capsule.engine.log_buffer import LogBuffer
from capsule.lib.archive.structure import requirement_errors
from capsule.lib.archive.zip_source import ArchiveError, ArchiveTooLargeError
from capsule.lib.manifest.models import ArchiveItem, ItemType, ValidationError
from capsule.lib.manifest.validators import is_valid_filename
from capsule.lib.tracing import bind_capsule

logger = logging.getLogger("api.capsules")

router = APIRouter(prefix="/api/capsules", tags=["capsules"])


def item_to_response(item: ArchiveItem) -> ItemResponse:
    """Convert an ArchiveItem to its API shape."""
    return ItemResponse(
        filename=item.filename,
        type=item.type,
        title=item.title,
        description=item.description,
        date=item.date,
        tags=list(item.tags),
        emoji=item.emoji,
        known_type=item.item_type is not ItemType.UNKNOWN,
    )


def diagnostic_to_response(error: ValidationError) -> DiagnosticResponse:
    """Convert a ValidationError to its API shape."""
    return DiagnosticResponse(
        line_number=error.line_number,
        line=error.line,
        error=error.error,
        expected_format=error.expected_format,
        kind=error.kind.value,
        category=error.category.value,
        severity=error.severity.value,
        problematic_parts=[
            ProblematicPartResponse(**part.to_dict()) for part in error.problematic_parts
        ],
    )


def diagnostics_to_response(errors: Iterable[ValidationError]) -> list[DiagnosticResponse]:
    return [diagnostic_to_response(e) for e in errors]


def _session_to_response(session: CapsuleSession) -> CapsuleSummaryResponse:
    report = session.report
    return CapsuleSummaryResponse(
        capsule_id=session.capsule_id,
        filename=session.filename,
        manifest_name=report.manifest_name,
        size_bytes=session.size_bytes,
        loaded_at=session.loaded_at,
        item_count=len(report.items),
        error_count=report.error_count,
        warning_count=report.warning_count,
        has_errors=report.has_errors,
        requirements_met=report.requirements.is_valid,
    )


async def _read_upload(request: Request, limit: int) -> bytes:
    """Read the request body, refusing it as soon as it passes ``limit`` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail=f"Archive exceeds the {limit} byte limit")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise HTTPException(status_code=413, detail=f"Archive exceeds the {limit} byte limit")
    return bytes(body)


@router.post("", response_model=CapsuleSummaryResponse, status_code=201)
async def upload_capsule(
    request: Request,
    filename: str = "",
    registry: CapsuleRegistry = Depends(get_registry),
    config: CapsuleConfig = Depends(get_capsule_config),
) -> CapsuleSummaryResponse:
    """Upload a capsule ZIP as the raw request body and validate it."""
    data = await _read_upload(request, config.max_upload_bytes)
    if not data:
        raise HTTPException(status_code=400, detail="Request body is empty")

    capsule_id = new_capsule_id()
    try:
        archive, report = load_capsule(
            data, filename=filename, config=config, trace_id=capsule_id
        )
    except ArchiveTooLargeError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except ArchiveError as e:
        bind_capsule(logger, capsule_id).warning("Rejected upload %s: %s", filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    session = registry.register(
        CapsuleSession(
            capsule_id=capsule_id,
            archive=archive,
            report=report,
            filename=filename,
            size_bytes=len(data),
        )
    )
    return _session_to_response(session)


@router.get("", response_model=list[CapsuleSummaryResponse])
async def list_capsules(
    registry: CapsuleRegistry = Depends(get_registry),
) -> list[CapsuleSummaryResponse]:
    """List loaded capsules, oldest first."""
    return [_session_to_response(s) for s in registry.list_sessions()]


@router.get("/{capsule_id}", response_model=CapsuleSummaryResponse)
async def get_capsule(
    session: CapsuleSession = Depends(get_session),
) -> CapsuleSummaryResponse:
    return _session_to_response(session)


@router.delete("/{capsule_id}", status_code=204)
async def delete_capsule(
    capsule_id: str,
    registry: CapsuleRegistry = Depends(get_registry),
    log_buffer: LogBuffer = Depends(get_log_buffer),
) -> None:
    """Forget a capsule and drop its captured log lines."""
    try:
        registry.delete(capsule_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Capsule '{capsule_id}' not found")
    log_buffer.discard(capsule_id)


@router.get("/{capsule_id}/items", response_model=list[ItemResponse])
async def list_items(
    type: str | None = None,
    tag: str | None = None,
    session: CapsuleSession = Depends(get_session),
) -> list[ItemResponse]:
    """Items in manifest order, optionally filtered by type and tag."""
    items = session.report.items
    if type:
        wanted = type.strip().upper()
        items = [i for i in items if i.type.upper() == wanted]
    if tag:
        items = [i for i in items if i.has_tag(tag.strip())]
    return [item_to_response(i) for i in items]


@router.get("/{capsule_id}/errors", response_model=list[DiagnosticResponse])
async def list_errors(
    category: str | None = None,
    severity: str | None = None,
    session: CapsuleSession = Depends(get_session),
) -> list[DiagnosticResponse]:
    """Diagnostics for a capsule, optionally filtered for display."""
    errors = session.report.all_errors()
    if category:
        errors = [e for e in errors if e.category.value == category.lower()]
    if severity:
        errors = [e for e in errors if e.severity.value == severity.lower()]
    return diagnostics_to_response(errors)


@router.get("/{capsule_id}/requirements", response_model=RequirementsResponse)
async def get_requirements(
    session: CapsuleSession = Depends(get_session),
) -> RequirementsResponse:
    """Aggregate requirements, explanation files and statistics."""
    report = session.report
    req = report.requirements
    expl = report.explanations
    stats = report.statistics

    return RequirementsResponse(
        capsule_id=session.capsule_id,
        news_count=req.news_count,
        media_count=req.media_count,
        personal_count=req.personal_count,
        meme_count=req.meme_count,
        files_with_valid_tags=req.files_with_valid_tags,
        total_files=req.total_files,
        is_valid=req.is_valid,
        unmet=[
            UnmetRequirement(description=d, actual=a, required=r) for d, a, r in req.unmet()
        ],
        diagnostics=diagnostics_to_response(requirement_errors(req)),
        valid_personal=expl.valid_personal,
        valid_memes=expl.valid_memes,
        total_personal=expl.total_personal,
        total_memes=expl.total_memes,
        explanations=[
            ExplanationResponse(
                filename=d.filename,
                type=d.type,
                title=d.title,
                explanation_file=d.explanation_file,
                word_count=d.word_count,
                required_words=d.required_words,
                is_valid=d.is_valid,
                error=d.error,
            )
            for d in expl.details
        ],
        statistics=StatisticsResponse(
            total_files=stats.total_files,
            file_types=stats.file_types,
            tag_count=stats.tag_count,
            date_min=stats.date_min.isoformat() if stats.date_min else None,
            date_max=stats.date_max.isoformat() if stats.date_max else None,
        ),
    )


@router.get("/{capsule_id}/files/{path:path}")
async def get_file(
    path: str,
    session: CapsuleSession = Depends(get_session),
) -> Response:
    """Serve a file from the capsule archive with a guessed media type."""
    # Reject path traversal
    if ".." in path.split("/"):
        raise HTTPException(status_code=400, detail="Path traversal ('..') not allowed")

    if path.startswith("/") or path.startswith("\\"):
        raise HTTPException(status_code=400, detail="Absolute paths not allowed")

    if not is_valid_filename(path.rsplit("/", 1)[-1]):
        raise HTTPException(status_code=400, detail=f"Invalid file name: {path}")

    archive = session.archive
    if not archive.exists(path):
        raise HTTPException(status_code=404, detail=f"File not found: {path}")

    try:
        content = archive.read_bytes(path)
    except ArchiveError as e:
        raise HTTPException(status_code=422, detail=str(e))

    media_type, _ = mimetypes.guess_type(path)
    return Response(
        content=content,
        media_type=media_type or "application/octet-stream",
    )
