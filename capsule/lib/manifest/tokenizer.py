"""Manifest tokenizer -- logical lines and pipe-delimited fields.

Delimiter spacing is strict: a line containing ``|`` must show a space after
some delimiter and a space before some delimiter (``a | b``). Unspaced lines
such as ``a|b|c`` are rejected even though splitting them would work.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from capsule.lib.manifest.models import ProblematicPart, ValidationError

DELIMITER = "|"
COMMENT_PREFIX = "#"
MIN_FIELDS = 4

_FULL_LAYOUT = ("filename", "type", "title", "description", "date", "tags")
_LAYOUTS: dict[int, tuple[str, ...]] = {
    # Short forms always end with the date; tags need the full six fields.
    4: ("filename", "type", "title", "date"),
    5: ("filename", "type", "title", "description", "date"),
}


@dataclass(frozen=True)
class ManifestLine:
    """A non-blank, non-comment manifest line."""

    line_number: int
    raw: str


def iter_manifest_lines(text: str) -> Iterator[ManifestLine]:
    """Yield trimmed content lines, skipping blanks and ``#`` comments."""
    for index, physical in enumerate(text.split("\n")):
        line = physical.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        yield ManifestLine(line_number=index + 1, raw=line)


def has_proper_spacing(line: str) -> bool:
    return f"{DELIMITER} " in line and f" {DELIMITER}" in line


def split_fields(line: str) -> list[str]:
    return [part.strip() for part in line.split(DELIMITER)]


def field_layout(count: int) -> tuple[str, ...]:
    """Field names by position for a line with ``count`` fields."""
    if count in _LAYOUTS:
        return _LAYOUTS[count]
    if count < MIN_FIELDS:
        return _LAYOUTS[MIN_FIELDS][:count]
    return _FULL_LAYOUT + ("extra",) * (count - len(_FULL_LAYOUT))


def annotate_parts(
    parts: list[str],
    *,
    problematic_field: str | None = None,
    all_problematic: bool = False,
) -> tuple[ProblematicPart, ...]:
    """Build field annotations for every token on a line.

    Missing required fields (lines shorter than ``MIN_FIELDS``) are appended
    as empty, problematic entries.
    """
    names = field_layout(len(parts))
    annotated = [
        ProblematicPart(
            index=i,
            part=part,
            field=names[i],
            is_empty=part == "",
            is_problematic=all_problematic or names[i] == problematic_field,
            expected=i < len(_FULL_LAYOUT),
        )
        for i, part in enumerate(parts)
    ]

    if len(parts) < MIN_FIELDS:
        required = _LAYOUTS[MIN_FIELDS]
        for i in range(len(parts), MIN_FIELDS):
            annotated.append(
                ProblematicPart(
                    index=i,
                    part="",
                    field=required[i],
                    is_empty=True,
                    is_problematic=True,
                    expected=True,
                )
            )

    return tuple(annotated)


def tokenize(record: ManifestLine) -> list[str] | ValidationError:
    """Split a manifest line into trimmed fields, or describe why it can't be."""
    line = record.raw
    parts = split_fields(line)

    if DELIMITER in line and not has_proper_spacing(line):
        return ValidationError.malformed_delimiter(
            line,
            record.line_number,
            annotate_parts(parts, all_problematic=True),
        )

    if len(parts) < MIN_FIELDS:
        return ValidationError.insufficient_fields(
            line,
            record.line_number,
            found=len(parts),
            required=MIN_FIELDS,
            parts=annotate_parts(parts),
        )

    return parts
