"""Archive library -- ZIP access and structural validation of capsule archives."""

from capsule.lib.archive.structure import (
    ArchiveStatistics,
    RequirementsPolicy,
    RequirementsReport,
    archive_statistics,
    requirement_errors,
    validate_archive_requirements,
    validate_structure,
)
from capsule.lib.archive.zip_source import ArchiveError, ArchiveTooLargeError, ZipArchive
from capsule.lib.archive.explanations import (
    ExplanationDetail,
    ExplanationSummary,
    count_words,
    find_explanation_file,
    validate_explanations,
)

__all__ = [
    "ArchiveStatistics",
    "RequirementsPolicy",
    "RequirementsReport",
    "archive_statistics",
    "requirement_errors",
    "validate_archive_requirements",
    "validate_structure",
    "ArchiveError",
    "ArchiveTooLargeError",
    "ZipArchive",
    "ExplanationDetail",
    "ExplanationSummary",
    "count_words",
    "find_explanation_file",
    "validate_explanations",
]
