"""Structural validation -- manifest items against archive contents and policy."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from capsule.lib.manifest.models import ArchiveItem, ItemType, ValidationError
from capsule.lib.manifest.validators import DEFAULT_MIN_TAGS, parse_date
from capsule.lib.tracing import Log, bind_capsule

logger = logging.getLogger("capsule.archive.structure")

FileExists = Callable[[str], bool]


@dataclass(frozen=True)
class RequirementsPolicy:
    """Aggregate thresholds a complete capsule must meet."""

    min_news: int = 5
    min_media: int = 5
    min_personal: int = 2
    min_tags_per_item: int = DEFAULT_MIN_TAGS


@dataclass
class RequirementsReport:
    """Counts behind the aggregate check. Informational, never blocks rendering."""

    news_count: int = 0
    media_count: int = 0
    personal_count: int = 0
    meme_count: int = 0
    files_with_valid_tags: int = 0
    total_files: int = 0
    is_valid: bool = True
    policy: RequirementsPolicy = field(default_factory=RequirementsPolicy)

    def unmet(self) -> list[tuple[str, int, int]]:
        """Failed rules as ``(description, actual, required)``."""
        rules = [
            ("news items", self.news_count, self.policy.min_news),
            ("media items", self.media_count, self.policy.min_media),
            ("personal items", self.personal_count, self.policy.min_personal),
            (
                f"items with at least {self.policy.min_tags_per_item} tags",
                self.files_with_valid_tags,
                self.total_files,
            ),
        ]
        return [rule for rule in rules if rule[1] < rule[2]]

    def to_dict(self) -> dict:
        return {
            "news_count": self.news_count,
            "media_count": self.media_count,
            "personal_count": self.personal_count,
            "meme_count": self.meme_count,
            "files_with_valid_tags": self.files_with_valid_tags,
            "total_files": self.total_files,
            "is_valid": self.is_valid,
        }


@dataclass
class ArchiveStatistics:
    """Summary figures for the viewer's overview panel."""

    total_files: int = 0
    file_types: dict[str, int] = field(default_factory=dict)
    files_by_type: dict[str, list[ArchiveItem]] = field(default_factory=dict)
    tag_count: int = 0
    date_min: datetime | None = None
    date_max: datetime | None = None


def validate_structure(
    items: Iterable[ArchiveItem],
    file_exists: FileExists,
    *,
    log: Log | None = None,
    trace_id: str | None = None,
) -> list[ValidationError]:
    """Check that every manifest item's file is present in the archive.

    Args:
        items: Parsed manifest items.
        file_exists: Case-sensitive exact-name lookup supplied by the archive.
        log: Diagnostic sink; defaults to the module logger.
        trace_id: Optional capsule id bound to every log record.

    Returns:
        One missing-file error per absent file, numbered by item position.
    """
    log = bind_capsule(log or logger, trace_id)

    errors: list[ValidationError] = []
    for position, item in enumerate(items, start=1):
        if file_exists(item.filename):
            continue
        errors.append(
            ValidationError.missing_file(item.filename, position, item.manifest_line())
        )
        log.warning("Manifest references missing file: %s", item.filename)

    return errors


def validate_archive_requirements(
    items: Iterable[ArchiveItem], policy: RequirementsPolicy | None = None
) -> RequirementsReport:
    """Count items per category and check them against the policy."""
    policy = policy or RequirementsPolicy()
    report = RequirementsReport(policy=policy)

    for item in items:
        report.total_files += 1
        item_type = item.item_type
        if item_type is ItemType.NEWS:
            report.news_count += 1
        elif item_type is ItemType.MEDIA:
            report.media_count += 1
        elif item_type is ItemType.PERSONAL:
            report.personal_count += 1
        elif item_type is ItemType.MEME:
            report.meme_count += 1

        if item.has_minimum_tags(policy.min_tags_per_item):
            report.files_with_valid_tags += 1

    report.is_valid = (
        report.news_count >= policy.min_news
        and report.media_count >= policy.min_media
        and report.personal_count >= policy.min_personal
        and report.files_with_valid_tags == report.total_files
    )
    return report


def requirement_errors(report: RequirementsReport) -> list[ValidationError]:
    """Express unmet aggregate rules as diagnostics with synthetic line numbers."""
    return [
        ValidationError.requirement_unmet(description, actual, required, line_number=index)
        for index, (description, actual, required) in enumerate(report.unmet(), start=1)
    ]


def archive_statistics(items: Iterable[ArchiveItem]) -> ArchiveStatistics:
    stats = ArchiveStatistics()
    counts: Counter[str] = Counter()

    for item in items:
        stats.total_files += 1
        type_key = item.type.upper()
        counts[type_key] += 1
        stats.files_by_type.setdefault(type_key, []).append(item)
        stats.tag_count += item.tag_count

        # Unparseable or impossible dates stay out of the range
        parsed = parse_date(item.date)
        if parsed is None:
            continue
        if stats.date_min is None or parsed < stats.date_min:
            stats.date_min = parsed
        if stats.date_max is None or parsed > stats.date_max:
            stats.date_max = parsed

    stats.file_types = dict(counts)
    return stats
