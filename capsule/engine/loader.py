"""Capsule loader -- runs the full validation pipeline over an uploaded archive."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from capsule.config import CapsuleConfig, get_config
from capsule.lib.archive.explanations import ExplanationSummary, validate_explanations
from capsule.lib.archive.structure import (
    ArchiveStatistics,
    RequirementsReport,
    archive_statistics,
    validate_archive_requirements,
    validate_structure,
)
from capsule.lib.archive.zip_source import ArchiveError, ZipArchive
from capsule.lib.manifest.models import ArchiveItem, Severity, ValidationError
from capsule.lib.manifest.parser import parse_manifest
from capsule.lib.tracing import Log, bind_capsule

logger = logging.getLogger("engine.loader")


@dataclass
class CapsuleReport:
    """Everything the viewer needs to render one capsule."""

    filename: str = ""
    manifest_name: str | None = None
    items: list[ArchiveItem] = field(default_factory=list)
    manifest_errors: list[ValidationError] = field(default_factory=list)
    structure_errors: list[ValidationError] = field(default_factory=list)
    requirements: RequirementsReport = field(default_factory=RequirementsReport)
    explanations: ExplanationSummary = field(default_factory=ExplanationSummary)
    statistics: ArchiveStatistics = field(default_factory=ArchiveStatistics)

    def all_errors(self) -> list[ValidationError]:
        """Manifest diagnostics in line order, then archive-level ones."""
        return self.manifest_errors + self.structure_errors

    @property
    def has_errors(self) -> bool:
        return any(e.severity is Severity.ERROR for e in self.all_errors())

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self.all_errors() if e.severity is Severity.WARNING)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.all_errors() if e.severity is Severity.ERROR)


def load_capsule(
    data: bytes,
    *,
    filename: str = "",
    config: CapsuleConfig | None = None,
    log: Log | None = None,
    trace_id: str | None = None,
) -> tuple[ZipArchive, CapsuleReport]:
    """Open a capsule archive and validate it end to end.

    Args:
        data: Raw ZIP bytes.
        filename: Original upload name, kept for display.
        config: Thresholds and limits; defaults to the global configuration.
        log: Diagnostic sink shared by every stage; defaults to the module logger.
        trace_id: Capsule id bound to every log record.

    Returns:
        The opened archive and its report. A missing manifest yields a report
        with a single critical error and no items.

    Raises:
        ArchiveError: If ``data`` is not a usable ZIP archive, or the manifest
            cannot be read from it. The archive is closed before raising.
    """
    cfg = config or get_config()
    log = bind_capsule(log or logger, trace_id)

    archive = ZipArchive.from_bytes(data, max_bytes=cfg.max_upload_bytes)
    log.info("Loading capsule %s (%d files)", filename or "<upload>", len(archive.file_list()))
    try:
        report = _build_report(archive, filename, cfg, log)
    except ArchiveError as e:
        log.error("Capsule %s is unreadable: %s", filename or "<upload>", e)
        archive.close()
        raise
    return archive, report


def _build_report(
    archive: ZipArchive, filename: str, cfg: CapsuleConfig, log: Log
) -> CapsuleReport:
    report = CapsuleReport(filename=filename)
    validation = cfg.validation

    manifest_name = archive.find_case_insensitive(cfg.manifest_name)
    if manifest_name is None:
        log.error("Manifest %s not found in archive", cfg.manifest_name)
        report.structure_errors.append(ValidationError.missing_manifest(cfg.manifest_name))
        report.requirements = validate_archive_requirements([], validation.policy())
        return report

    report.manifest_name = manifest_name
    parsed = parse_manifest(
        archive.read_text(manifest_name), min_tags=validation.min_tags, log=log
    )
    report.items = parsed.items
    report.manifest_errors = parsed.errors

    report.structure_errors = validate_structure(report.items, archive.exists, log=log)
    report.requirements = validate_archive_requirements(report.items, validation.policy())
    report.explanations = validate_explanations(
        report.items,
        archive,
        personal_words=validation.personal_explanation_words,
        meme_words=validation.meme_explanation_words,
        log=log,
    )
    report.statistics = archive_statistics(report.items)

    log.info(
        "Capsule loaded: %d items, %d errors, %d warnings, requirements %s",
        len(report.items),
        report.error_count,
        report.warning_count,
        "met" if report.requirements.is_valid else "unmet",
    )
    return report
