"""Pydantic request/response models for the Time Capsule API."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ── Items & diagnostics ───────────────────────────────────────────────────


class ItemResponse(BaseModel):
    """One manifest item as rendered by the viewer."""

    filename: str
    type: str
    title: str = ""
    description: str = ""
    date: str = ""
    tags: list[str] = []
    emoji: str = ""
    known_type: bool = True


class ProblematicPartResponse(BaseModel):
    index: int
    part: str
    field: str
    is_empty: bool = False
    is_problematic: bool = True
    expected: bool = True


class DiagnosticResponse(BaseModel):
    """A line-addressable validation diagnostic."""

    line_number: int
    line: str
    error: str
    expected_format: str
    kind: str
    category: str
    severity: str
    problematic_parts: list[ProblematicPartResponse] = []


# ── Capsules ──────────────────────────────────────────────────────────────


class CapsuleSummaryResponse(BaseModel):
    """Overview of one loaded capsule."""

    capsule_id: str
    filename: str = ""
    manifest_name: str | None = None
    size_bytes: int = 0
    loaded_at: str = ""
    item_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    has_errors: bool = False
    requirements_met: bool = False


class ExplanationResponse(BaseModel):
    filename: str
    type: str
    title: str
    explanation_file: str | None = None
    word_count: int = 0
    required_words: int = 0
    is_valid: bool = False
    error: str | None = None


class UnmetRequirement(BaseModel):
    description: str
    actual: int
    required: int


class StatisticsResponse(BaseModel):
    total_files: int = 0
    file_types: dict[str, int] = {}
    tag_count: int = 0
    date_min: str | None = None
    date_max: str | None = None


class RequirementsResponse(BaseModel):
    """Aggregate requirements, explanation checks and statistics."""

    capsule_id: str
    news_count: int = 0
    media_count: int = 0
    personal_count: int = 0
    meme_count: int = 0
    files_with_valid_tags: int = 0
    total_files: int = 0
    is_valid: bool = False
    unmet: list[UnmetRequirement] = []
    diagnostics: list[DiagnosticResponse] = []
    valid_personal: int = 0
    valid_memes: int = 0
    total_personal: int = 0
    total_memes: int = 0
    explanations: list[ExplanationResponse] = []
    statistics: StatisticsResponse = StatisticsResponse()


# ── Manifest ──────────────────────────────────────────────────────────────


class ValidateManifestRequest(BaseModel):
    """Request body for validating manifest text without an archive."""

    text: str
    min_tags: int | None = Field(default=None, ge=0, le=100)


class ValidateManifestResponse(BaseModel):
    valid: bool
    items: list[ItemResponse] = []
    errors: list[DiagnosticResponse] = []
    fatal_error: str | None = None


# ── System ────────────────────────────────────────────────────────────────


class LogEntryResponse(BaseModel):
    """A captured log record."""

    timestamp: str
    level: str
    logger_name: str
    message: str
    capsule_id: str | None = None


class SystemInfoResponse(BaseModel):
    """System information response."""

    version: str = "0.1.0"
    loaded_capsules: int = 0
    max_capsules: int = 0
    manifest_name: str = "manifest.txt"
    max_upload_bytes: int = 0
    min_tags: int = 5
