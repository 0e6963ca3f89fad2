"""Manifest parser -- typed items plus line-level diagnostics.

``parse_manifest`` never raises on bad input. Only the first failing field of
a line is reported; an item is recorded only when every required field
passes. Insufficient tags are the one exception: the line yields a warning
and the item is still kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from capsule.lib.manifest.models import ArchiveItem, ProblematicPart, ValidationError
from capsule.lib.manifest.tokenizer import (
    ManifestLine,
    annotate_parts,
    field_layout,
    iter_manifest_lines,
    tokenize,
)
from capsule.lib.manifest.validators import (
    DEFAULT_MIN_TAGS,
    is_valid_date,
    is_valid_filename,
    is_valid_type,
    parse_tags,
)
from capsule.lib.tracing import Log, bind_capsule

logger = logging.getLogger("capsule.manifest")


@dataclass
class ManifestParseResult:
    """Outcome of one parse.

    ``fatal_error`` is only set when the caller passed something other than
    text; the per-line ``errors`` list is empty in that case.
    """

    items: list[ArchiveItem] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)
    fatal_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.fatal_error is None and not self.errors


@dataclass
class ManifestFormatCheck:
    """Structure-only pre-check: delimiters and field counts."""

    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    valid_count: int = 0
    invalid_count: int = 0

    @property
    def total(self) -> int:
        return self.valid_count + self.invalid_count


def _missing_tags_part(index: int) -> ProblematicPart:
    return ProblematicPart(
        index=index, part="", field="tags", is_empty=True, is_problematic=True, expected=True
    )


def _fields_by_name(parts: list[str]) -> dict[str, str]:
    names = field_layout(len(parts))
    return {name: value for name, value in zip(names, parts) if name != "extra"}


def parse_line(
    record: ManifestLine, *, min_tags: int = DEFAULT_MIN_TAGS
) -> tuple[ArchiveItem | None, ValidationError | None]:
    """Parse one manifest line.

    Returns ``(item, None)`` for a clean line, ``(None, error)`` for a
    rejected one and ``(item, warning)`` when only the tag count is short.
    """
    tokens = tokenize(record)
    if isinstance(tokens, ValidationError):
        return None, tokens

    fields = _fields_by_name(tokens)
    line, number = record.raw, record.line_number

    filename = fields["filename"]
    if not is_valid_filename(filename):
        return None, ValidationError.invalid_filename(
            filename, number, line, annotate_parts(tokens, problematic_field="filename")
        )

    type_value = fields["type"]
    if not is_valid_type(type_value):
        return None, ValidationError.invalid_type(
            type_value, number, line, annotate_parts(tokens, problematic_field="type")
        )

    date = fields["date"]
    if not is_valid_date(date):
        return None, ValidationError.invalid_date(
            date, number, line, annotate_parts(tokens, problematic_field="date")
        )

    tags = parse_tags(fields.get("tags"))
    item = ArchiveItem(
        filename=filename,
        type=type_value,
        title=fields.get("title", ""),
        description=fields.get("description", ""),
        date=date,
        tags=tuple(tags),
    )

    if len(tags) < min_tags:
        return item, ValidationError.insufficient_tags(
            len(tags),
            min_tags,
            number,
            line,
            annotate_parts(tokens, problematic_field="tags")
            if "tags" in fields
            else annotate_parts(tokens) + (_missing_tags_part(len(tokens)),),
        )

    return item, None


def parse_manifest(
    text: str,
    *,
    min_tags: int = DEFAULT_MIN_TAGS,
    log: Log | None = None,
    trace_id: str | None = None,
) -> ManifestParseResult:
    """Parse manifest text into archive items and validation errors.

    Args:
        text: Raw manifest content.
        min_tags: Tag count below which an insufficient-tags warning is emitted.
        log: Diagnostic sink; defaults to the module logger.
        trace_id: Optional capsule id bound to every log record.

    Returns:
        ManifestParseResult with items and errors in manifest order.
    """
    log = bind_capsule(log or logger, trace_id)

    if not isinstance(text, str):
        log.error("Manifest must be text, got %s", type(text).__name__)
        return ManifestParseResult(fatal_error="Manifest must be a string")

    result = ManifestParseResult()
    for record in iter_manifest_lines(text):
        item, error = parse_line(record, min_tags=min_tags)
        if item is not None:
            result.items.append(item)
        if error is not None:
            result.errors.append(error)
            log.debug(
                "Line %d flagged (%s): %s",
                record.line_number,
                error.kind.value,
                error.error,
            )

    log.info(
        "Manifest parsed: %d items, %d errors",
        len(result.items),
        len(result.errors),
    )
    return result


def validate_manifest_format(text: str) -> ManifestFormatCheck:
    """Check delimiters and field counts without validating field values."""
    if not isinstance(text, str):
        return ManifestFormatCheck(valid=False)

    check = ManifestFormatCheck(valid=True)
    for record in iter_manifest_lines(text):
        tokens = tokenize(record)
        if isinstance(tokens, ValidationError):
            check.errors.append(tokens)
            check.invalid_count += 1
        else:
            check.valid_count += 1

    check.valid = not check.errors
    return check

